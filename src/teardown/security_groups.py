"""Security group reaper."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Union

from src.aws.provider import LoadBalancerProvider, ProviderError, ResourceNotFoundError
from src.models.resources import SecurityGroupRef
from src.models.teardown_outcome import ResourceFailure, StageName, StageOutcome
from src.utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)

SecurityGroupInput = Union[str, SecurityGroupRef]


class SecurityGroupReaper:
    """Best-effort deletion of orphan security groups.

    The groups are supplied by the caller. Every failure is logged as a
    warning and skipped. ``DependencyViolation`` is retried with exponential
    backoff since ENIs of a just-deleted load balancer release their groups
    a little later.
    """

    def __init__(
        self,
        provider: LoadBalancerProvider,
        max_retries: int = 3,
        backoff_seconds: float = 2.0,
    ) -> None:
        """Initialize security group reaper.

        Args:
            provider: Load balancer provider
            max_retries: Attempts per group when the group is still in use (default: 3)
            backoff_seconds: Base wait between attempts, doubled each retry
        """
        self.provider = provider
        self.max_retries = max(1, max_retries)
        self.backoff_seconds = backoff_seconds

    def reap(
        self,
        security_groups: Iterable[SecurityGroupInput],
        token: Optional[CancellationToken] = None,
    ) -> StageOutcome:
        outcome = StageOutcome(stage=StageName.SECURITY_GROUPS, ran=True)
        token = token or CancellationToken()

        for group_id in self._normalize(security_groups):
            if token.cancelled:
                outcome.add_warning(f"Security group cleanup cancelled before {group_id}")
                break
            self._delete_one(group_id, outcome, token)

        return outcome

    def _delete_one(self, group_id: str, outcome: StageOutcome, token: CancellationToken) -> None:
        for attempt in range(self.max_retries):
            try:
                self.provider.delete_security_group(group_id)
            except ResourceNotFoundError:
                logger.debug(f"Security group {group_id} already deleted")
                outcome.record_absent()
                return
            except ProviderError as e:
                if e.code == "DependencyViolation" and attempt < self.max_retries - 1:
                    wait_time = self.backoff_seconds * (2**attempt)
                    logger.debug(
                        f"Security group {group_id} still in use, "
                        f"retrying in {wait_time}s (attempt {attempt + 1}/{self.max_retries})"
                    )
                    if token.wait(wait_time):
                        break
                    continue

                logger.warning(f"Failed to delete security group {group_id}: {e}")
                outcome.record_failure(ResourceFailure(resource_id=group_id, error_code=e.code, error_message=str(e)))
                return

            logger.info(f"Deleted security group {group_id}")
            outcome.record_deleted()
            return

        logger.warning(f"Security group {group_id} cleanup cancelled")
        outcome.record_failure(ResourceFailure(resource_id=group_id, error_code="Cancelled", error_message="cancelled"))

    @staticmethod
    def _normalize(security_groups: Iterable[SecurityGroupInput]) -> List[str]:
        seen = set()
        group_ids = []
        for group in security_groups:
            group_id = group if isinstance(group, str) else group.id
            if not group_id or group_id in seen:
                continue
            seen.add(group_id)
            group_ids.append(group_id)
        return group_ids
