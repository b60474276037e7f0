"""Recreation poller.

Polls until the service is fronted by a new load balancer that differs from
the old one, and the old one is provably gone.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from src.aws.provider import LoadBalancerProvider, ProviderError
from src.models.recreation import RecreationResult, RecreationState, TickObservation
from src.models.resources import LoadBalancerRef
from src.teardown.resolve import LoadBalancerTarget, target_name
from src.utils.cancellation import CancellationToken, Deadline
from src.verify.resolver import ResolverError, ServiceResolver

logger = logging.getLogger(__name__)


class RecreationPoller:
    """Wait for a service's load balancer to be recreated.

    State transitions:
        WAITING_NEW_LB → CONFIRMED   new identity found, distinct from old, old absent
        WAITING_NEW_LB → TIMED_OUT   deadline exceeded or cancelled

    TIMED_OUT is a definitive failure for the caller.
    """

    def __init__(
        self,
        provider: LoadBalancerProvider,
        resolver: ServiceResolver,
        poll_interval: float = 10.0,
        timeout: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if poll_interval < 0 or timeout < 0:
            raise ValueError("poll_interval and timeout must be non-negative")
        self.provider = provider
        self.resolver = resolver
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.clock = clock
        self.state = RecreationState.WAITING_NEW_LB

    def tick(self, namespace: str, service: str, old: LoadBalancerTarget) -> TickObservation:
        """Run one observation without waiting."""
        try:
            current = self.resolver.resolve(namespace, service)
        except ResolverError as e:
            logger.debug(f"Service {namespace}/{service} lookup not available yet: {e}")
            return TickObservation(current_name=None, old_absent=False, resolver_error=str(e))

        if current is None:
            return TickObservation(current_name=None, old_absent=False)

        old_name = target_name(old)
        try:
            described = self.provider.describe_load_balancer(old_name)
        except ProviderError as e:
            logger.debug(f"Could not confirm {old_name} is gone: {e}")
            return TickObservation(current_name=current, old_absent=False)

        if described is None:
            return TickObservation(current_name=current, old_absent=True)
        if isinstance(old, LoadBalancerRef) and old.is_resolved and not old.same_object(described):
            return TickObservation(current_name=current, old_absent=True, replacement_arn=described.arn)
        return TickObservation(current_name=current, old_absent=False)

    @staticmethod
    def is_recreated(observation: TickObservation, old: LoadBalancerTarget) -> bool:
        if observation.current_name is None or not observation.old_absent:
            return False
        if observation.current_name != target_name(old):
            return True
        # same name: only a different ARN under that name proves a new object
        return observation.replacement_arn is not None

    def poll(
        self,
        namespace: str,
        service: str,
        old: LoadBalancerTarget,
        token: Optional[CancellationToken] = None,
    ) -> RecreationResult:
        """Poll until CONFIRMED or TIMED_OUT.

        Args:
            namespace: Service namespace
            service: Service name
            old: Load balancer that was deleted (name or resolved reference)
            token: Cancellation token (optional)

        Returns:
            RecreationResult in a terminal state
        """
        token = token or CancellationToken()
        deadline = Deadline(self.timeout, clock=self.clock)
        old_name = target_name(old)
        self.state = RecreationState.WAITING_NEW_LB
        ticks = 0
        observation: Optional[TickObservation] = None

        logger.info(f"Waiting for {namespace}/{service} to get a load balancer other than {old_name}")

        while True:
            if token.cancelled:
                return self._timed_out(old_name, ticks, deadline, observation, cancelled=True)

            ticks += 1
            observation = self.tick(namespace, service, old)

            if self.is_recreated(observation, old):
                self.state = RecreationState.CONFIRMED
                logger.info(
                    f"Load balancer for {namespace}/{service} recreated: {old_name} -> {observation.current_name}"
                )
                return RecreationResult(
                    state=self.state,
                    old_name=old_name,
                    new_name=observation.current_name,
                    ticks=ticks,
                    elapsed_seconds=deadline.elapsed,
                    last_observation=observation,
                )

            if observation.current_name and not observation.old_absent:
                logger.debug(f"{observation.current_name} found but {old_name} is still describable")

            if deadline.expired:
                return self._timed_out(old_name, ticks, deadline, observation)

            if token.wait(deadline.next_wait(self.poll_interval)):
                return self._timed_out(old_name, ticks, deadline, observation, cancelled=True)

    def _timed_out(
        self,
        old_name: str,
        ticks: int,
        deadline: Deadline,
        observation: Optional[TickObservation],
        cancelled: bool = False,
    ) -> RecreationResult:
        self.state = RecreationState.TIMED_OUT
        if cancelled:
            logger.error(f"Recreation check for {old_name} cancelled after {ticks} tick(s)")
        else:
            logger.error(f"No new load balancer replaced {old_name} within {self.timeout}s")
        return RecreationResult(
            state=self.state,
            old_name=old_name,
            new_name=None,
            ticks=ticks,
            elapsed_seconds=deadline.elapsed,
            cancelled=cancelled,
            last_observation=observation,
        )
