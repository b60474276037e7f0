"""Typed references to load balancer resources.

All references are built fresh per teardown from live describe calls or from
caller input. None of them outlive a single teardown-and-verify cycle.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class LoadBalancerRef:
    """Load balancer reference.

    The name is the stable lookup identity. The ARN is filled in by a describe
    call and is required for listener and target group queries.

    Attributes:
        name: Load balancer name
        arn: Load balancer ARN (None until resolved)
        dns_name: Public DNS name reported by the provider (optional)
        security_group_ids: Security groups attached to the load balancer
    """

    name: str
    arn: Optional[str] = None
    dns_name: Optional[str] = None
    security_group_ids: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_resolved(self) -> bool:
        return self.arn is not None

    def same_object(self, other: Optional[LoadBalancerRef]) -> bool:
        """Check whether ``other`` describes the same underlying load balancer.

        A describe that returns a different ARN under the same name means the
        original object was replaced.
        """
        if other is None or other.name != self.name:
            return False
        if self.arn is None or other.arn is None:
            return True
        return self.arn == other.arn


@dataclass(frozen=True)
class ListenerRef:
    """Listener attached to exactly one load balancer."""

    arn: str
    load_balancer_arn: str
    port: Optional[int] = None
    protocol: Optional[str] = None


@dataclass(frozen=True)
class TargetGroupRef:
    """Target group owned by the load balancer under teardown."""

    arn: str
    name: Optional[str] = None


@dataclass(frozen=True)
class SecurityGroupRef:
    """Orphan security group reference supplied by the caller."""

    id: str
