"""Recreation poll state and result model."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class RecreationState(Enum):
    """Recreation poller states.

    State transitions:
        waiting_new_lb → confirmed (new, distinct LB found and old LB absent)
        waiting_new_lb → timed_out (deadline exceeded or cancelled)
    """

    WAITING_NEW_LB = "waiting_new_lb"
    CONFIRMED = "confirmed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self is not RecreationState.WAITING_NEW_LB


@dataclass(frozen=True)
class TickObservation:
    """What a single poll tick saw.

    Attributes:
        current_name: Load balancer name resolved for the service (None if unavailable)
        old_absent: Whether the old load balancer was confirmed gone this tick
        resolver_error: Transient resolver error message, if any
        replacement_arn: ARN now described under the old name, when it differs from the old ARN
    """

    current_name: Optional[str]
    old_absent: bool
    resolver_error: Optional[str] = None
    replacement_arn: Optional[str] = None


@dataclass(frozen=True)
class RecreationResult:
    """Final result of a recreation poll.

    Attributes:
        state: Terminal state (CONFIRMED or TIMED_OUT)
        old_name: Load balancer name that was deleted
        new_name: Load balancer name confirmed as its replacement (optional)
        ticks: Number of poll ticks performed
        elapsed_seconds: Wall time spent polling
        cancelled: True when the poll ended because of cancellation
        last_observation: Observation from the final tick (optional)
    """

    state: RecreationState
    old_name: str
    new_name: Optional[str] = None
    ticks: int = 0
    elapsed_seconds: float = 0.0
    cancelled: bool = False
    last_observation: Optional[TickObservation] = None

    @property
    def confirmed(self) -> bool:
        return self.state is RecreationState.CONFIRMED
