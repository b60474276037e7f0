"""Load balancer teardown module.

This module deletes the resources that depend on a load balancer in
dependency order and waits for the load balancer itself to disappear.

Classes:
    TeardownOrchestrator: Runs the stages and classifies failures
    ListenerReaper: Deletes listeners (failures are fatal)
    TargetGroupReaper: Deletes target groups (failures are warnings)
    SecurityGroupReaper: Deletes orphan security groups (best effort)
    DeletionWaiter: Waits for the load balancer to be gone
    OrphanSecurityGroupScanner: Finds a load balancer's security groups
"""

from __future__ import annotations

from src.teardown.errors import ListenerTeardownError
from src.teardown.listeners import ListenerReaper
from src.teardown.orchestrator import TeardownOrchestrator
from src.teardown.scanner import OrphanSecurityGroupScanner
from src.teardown.security_groups import SecurityGroupReaper
from src.teardown.target_groups import TargetGroupReaper
from src.teardown.waiter import DeletionWaiter, WaitResult

__all__ = [
    "TeardownOrchestrator",
    "ListenerReaper",
    "TargetGroupReaper",
    "SecurityGroupReaper",
    "DeletionWaiter",
    "WaitResult",
    "OrphanSecurityGroupScanner",
    "ListenerTeardownError",
]
