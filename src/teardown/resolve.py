"""Load balancer identity resolution shared by the reapers and waiters."""

from __future__ import annotations

import logging
from typing import Optional, Union

from src.aws.provider import LoadBalancerProvider
from src.models.resources import LoadBalancerRef

logger = logging.getLogger(__name__)

LoadBalancerTarget = Union[str, LoadBalancerRef]


def target_name(target: LoadBalancerTarget) -> str:
    return target if isinstance(target, str) else target.name


def resolve_load_balancer(provider: LoadBalancerProvider, target: LoadBalancerTarget) -> Optional[LoadBalancerRef]:
    """Describe a load balancer and check it is still the object we started with.

    When ``target`` already carries an ARN and the provider now returns a
    different ARN for the same name, the original load balancer has been
    replaced; that is reported as absent.

    Returns:
        Live LoadBalancerRef, or None if the load balancer is gone

    Raises:
        ProviderError: If the describe call fails for a reason other than not-found
    """
    name = target_name(target)
    current = provider.describe_load_balancer(name)
    if current is None:
        return None

    if isinstance(target, LoadBalancerRef) and target.is_resolved and not target.same_object(current):
        logger.info(f"Load balancer {name} was replaced ({target.arn} -> {current.arn}); treating original as gone")
        return None

    return current
