"""Load balancer recreation verification.

Classes:
    RecreationPoller: Waits for a new, distinct load balancer for a service
    KubectlServiceResolver: Resolves a service to its load balancer name
    RecreationScenario: Delete, tear down and verify recreation end to end
"""

from __future__ import annotations

from src.verify.poller import RecreationPoller
from src.verify.resolver import KubectlServiceResolver, ResolverError, ServiceResolver
from src.verify.scenario import RecreationScenario, ScenarioError, ScenarioResult

__all__ = [
    "RecreationPoller",
    "ServiceResolver",
    "KubectlServiceResolver",
    "ResolverError",
    "RecreationScenario",
    "ScenarioError",
    "ScenarioResult",
]
