"""End-to-end load balancer recreation scenario.

Deletes the load balancer currently fronting a service, cleans up what it
leaves behind, and verifies a new one takes its place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from src.aws.provider import LoadBalancerProvider, ProviderError
from src.models.recreation import RecreationResult
from src.models.teardown_outcome import TeardownOutcome
from src.teardown.orchestrator import TeardownOrchestrator
from src.teardown.scanner import OrphanSecurityGroupScanner, ScanResult
from src.utils.cancellation import CancellationToken
from src.verify.poller import RecreationPoller
from src.verify.resolver import ResolverError, ServiceResolver

logger = logging.getLogger(__name__)


class ScenarioError(Exception):
    """The scenario could not start (no load balancer to delete)."""


@dataclass
class ScenarioResult:
    """Result of a recreation scenario.

    Attributes:
        old_name: Load balancer that was deleted
        scan: Orphan security groups found before deletion
        teardown: Teardown outcome
        recreation: Recreation poll result (None when teardown was fatal)
    """

    old_name: str
    scan: ScanResult
    teardown: TeardownOutcome
    recreation: Optional[RecreationResult] = None

    @property
    def passed(self) -> bool:
        return not self.teardown.is_fatal and self.recreation is not None and self.recreation.confirmed


class RecreationScenario:
    """Delete a service's load balancer and verify it is recreated."""

    def __init__(
        self,
        provider: LoadBalancerProvider,
        resolver: ServiceResolver,
        orchestrator: TeardownOrchestrator,
        poller: RecreationPoller,
        scanner: Optional[OrphanSecurityGroupScanner] = None,
    ) -> None:
        self.provider = provider
        self.resolver = resolver
        self.orchestrator = orchestrator
        self.poller = poller
        self.scanner = scanner or OrphanSecurityGroupScanner(provider)

    def run(self, namespace: str, service: str, token: Optional[CancellationToken] = None) -> ScenarioResult:
        """Run the scenario.

        Raises:
            ScenarioError: If the service has no load balancer to start from
        """
        token = token or CancellationToken()

        try:
            old_name = self.resolver.resolve(namespace, service)
        except ResolverError as e:
            raise ScenarioError(f"Could not resolve load balancer for {namespace}/{service}: {e}") from e
        if not old_name:
            raise ScenarioError(f"Service {namespace}/{service} has no load balancer")

        try:
            old = self.provider.describe_load_balancer(old_name)
        except ProviderError as e:
            raise ScenarioError(f"Could not describe load balancer {old_name}: {e}") from e
        if old is None:
            raise ScenarioError(
                f"Load balancer {old_name} for {namespace}/{service} does not exist in ELBv2 "
                "(classic ELBs are not supported)"
            )

        logger.info(f"Service {namespace}/{service} is fronted by {old.name} ({old.arn})")

        scan = self.scanner.scan(old)
        teardown = self.orchestrator.run(old, scan.orphans, token=token)
        result = ScenarioResult(old_name=old.name, scan=scan, teardown=teardown)
        if teardown.is_fatal:
            return result

        result.recreation = self.poller.poll(namespace, service, old, token=token)
        return result
