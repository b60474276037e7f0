"""Teardown error types."""

from __future__ import annotations

from typing import List

from src.models.teardown_outcome import ResourceFailure


class ListenerTeardownError(Exception):
    """Listener cleanup did not finish; later stages are unsafe to run.

    Attributes:
        load_balancer_name: Load balancer whose listeners were being deleted
        deleted: Listeners deleted before the failure
        failures: Failed listener operations
    """

    def __init__(self, load_balancer_name: str, deleted: int, failures: List[ResourceFailure]) -> None:
        first = failures[0] if failures else None
        detail = f"{first.resource_id}: {first.error_code} - {first.error_message}" if first else "unknown error"
        super().__init__(
            f"Listener teardown for {load_balancer_name} failed after {deleted} deletion(s): {detail}"
        )
        self.load_balancer_name = load_balancer_name
        self.deleted = deleted
        self.failures = list(failures)
