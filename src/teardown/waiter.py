"""Wait for a load balancer to disappear."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from src.aws.provider import LoadBalancerProvider, ProviderError
from src.teardown.resolve import LoadBalancerTarget, resolve_load_balancer, target_name
from src.utils.cancellation import CancellationToken, Deadline

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WaitResult:
    """Outcome of a deletion wait.

    Attributes:
        absent: True when the load balancer was confirmed gone
        polls: Describe calls made
        elapsed_seconds: Time spent waiting
        cancelled: True when the wait ended because of cancellation
        last_error: Last transient describe error, if any
    """

    absent: bool
    polls: int
    elapsed_seconds: float
    cancelled: bool = False
    last_error: Optional[str] = None


class DeletionWaiter:
    """Poll until a load balancer is absent or the deadline passes.

    A deadline miss is not a failure here; the recreation check re-verifies
    absence of the old load balancer on its own.
    """

    def __init__(
        self,
        provider: LoadBalancerProvider,
        poll_interval: float = 10.0,
        max_wait: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize deletion waiter.

        Args:
            provider: Load balancer provider
            poll_interval: Seconds between describe calls
            max_wait: Maximum seconds to wait
            clock: Monotonic clock (injectable for tests)
        """
        if poll_interval < 0 or max_wait < 0:
            raise ValueError("poll_interval and max_wait must be non-negative")
        self.provider = provider
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self.clock = clock

    def wait(self, target: LoadBalancerTarget, token: Optional[CancellationToken] = None) -> WaitResult:
        token = token or CancellationToken()
        deadline = Deadline(self.max_wait, clock=self.clock)
        name = target_name(target)
        polls = 0
        last_error: Optional[str] = None

        while True:
            if token.cancelled:
                logger.warning(f"Wait for {name} deletion cancelled")
                return WaitResult(False, polls, deadline.elapsed, cancelled=True, last_error=last_error)

            polls += 1
            try:
                if resolve_load_balancer(self.provider, target) is None:
                    logger.info(f"Load balancer {name} confirmed deleted after {polls} poll(s)")
                    return WaitResult(True, polls, deadline.elapsed, last_error=last_error)
            except ProviderError as e:
                last_error = str(e)
                logger.debug(f"Transient error checking {name}: {e}")

            if deadline.expired:
                logger.warning(f"Load balancer {name} still visible after {self.max_wait}s")
                return WaitResult(False, polls, deadline.elapsed, last_error=last_error)

            logger.debug(f"Load balancer {name} still present, next check in {self.poll_interval}s")
            if token.wait(deadline.next_wait(self.poll_interval)):
                logger.warning(f"Wait for {name} deletion cancelled")
                return WaitResult(False, polls, deadline.elapsed, cancelled=True, last_error=last_error)
