"""Service to load balancer resolution via kubectl."""

from __future__ import annotations

import json
import logging
import subprocess
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)


class ResolverError(Exception):
    """The service lookup failed; callers treat this as transient."""


class ServiceResolver(ABC):
    """Resolve a Kubernetes service to the name of its cloud load balancer."""

    @abstractmethod
    def resolve(self, namespace: str, service: str) -> Optional[str]:
        """Return the load balancer name, or None while none is published.

        Raises:
            ResolverError: If the lookup itself fails
        """
        pass


def load_balancer_name_from_hostname(hostname: str) -> str:
    """Derive the ELB name from its DNS hostname.

    ``a1b2c3-1234567890.us-east-1.elb.amazonaws.com`` -> ``a1b2c3``
    ``internal-a1b2c3-1234567890.us-east-1.elb.amazonaws.com`` -> ``a1b2c3``
    """
    label = hostname.split(".", 1)[0]
    if label.startswith("internal-"):
        label = label[len("internal-") :]
    if "-" in label:
        label = label.rsplit("-", 1)[0]
    return label


class KubectlServiceResolver(ServiceResolver):
    """Resolve services with ``kubectl get service -o json``."""

    def __init__(
        self,
        kubeconfig: Optional[str] = None,
        context: Optional[str] = None,
        timeout: float = 30.0,
        runner: Callable[..., Any] = subprocess.run,
    ) -> None:
        """Initialize resolver.

        Args:
            kubeconfig: Path to kubeconfig (optional, kubectl default otherwise)
            context: kubeconfig context name (optional)
            timeout: Seconds before the kubectl call is abandoned
            runner: subprocess runner (injectable for tests)
        """
        self.kubeconfig = kubeconfig
        self.context = context
        self.timeout = timeout
        self.runner = runner

    def _command(self, namespace: str, service: str) -> List[str]:
        cmd = ["kubectl", "get", "service", service, "--namespace", namespace, "-o", "json"]
        if self.kubeconfig:
            cmd += ["--kubeconfig", self.kubeconfig]
        if self.context:
            cmd += ["--context", self.context]
        return cmd

    def resolve(self, namespace: str, service: str) -> Optional[str]:
        cmd = self._command(namespace, service)
        logger.debug(f"$ {' '.join(cmd)}")
        try:
            result = self.runner(cmd, capture_output=True, text=True, timeout=self.timeout, check=False)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ResolverError(f"kubectl lookup of {namespace}/{service} failed: {e}") from e

        if result.returncode != 0:
            raise ResolverError(f"kubectl lookup of {namespace}/{service} failed: {(result.stderr or '').strip()}")

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise ResolverError(f"kubectl returned invalid JSON for {namespace}/{service}: {e}") from e

        ingress = data.get("status", {}).get("loadBalancer", {}).get("ingress") or []
        hostname = ingress[0].get("hostname") if ingress else None
        if not hostname:
            logger.debug(f"Service {namespace}/{service} has no load balancer hostname yet")
            return None

        name = load_balancer_name_from_hostname(hostname)
        logger.debug(f"Service {namespace}/{service} -> {hostname} -> {name}")
        return name
