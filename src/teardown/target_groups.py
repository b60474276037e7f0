"""Target group reaper."""

from __future__ import annotations

import logging

from src.aws.provider import LoadBalancerProvider, ProviderError, ResourceNotFoundError
from src.models.teardown_outcome import ResourceFailure, StageName, StageOutcome
from src.teardown.resolve import LoadBalancerTarget, resolve_load_balancer, target_name

logger = logging.getLogger(__name__)


class TargetGroupReaper:
    """Discover and delete the target groups of a load balancer.

    Each target group is deleted independently; one failure never stops the
    rest. The load balancer is always resolved to its ARN before listing.
    """

    def __init__(self, provider: LoadBalancerProvider) -> None:
        self.provider = provider

    def reap(self, target: LoadBalancerTarget) -> StageOutcome:
        outcome = StageOutcome(stage=StageName.TARGET_GROUPS, ran=True)
        name = target_name(target)

        try:
            lb = resolve_load_balancer(self.provider, target)
        except ProviderError as e:
            logger.warning(f"Could not resolve load balancer {name} for target group cleanup: {e}")
            outcome.record_failure(ResourceFailure(resource_id=name, error_code=e.code, error_message=str(e)))
            return outcome

        if lb is None:
            logger.info(f"Load balancer {name} already gone, no target groups to delete")
            return outcome

        try:
            target_groups = self.provider.describe_target_groups(lb.arn)
        except ResourceNotFoundError:
            logger.info(f"Load balancer {name} disappeared while listing target groups")
            return outcome
        except ProviderError as e:
            logger.warning(f"Could not list target groups for {name}: {e}")
            outcome.record_failure(ResourceFailure(resource_id=lb.arn, error_code=e.code, error_message=str(e)))
            return outcome

        logger.info(f"Found {len(target_groups)} target group(s) on {name}")

        seen = set()
        for tg in target_groups:
            if tg.arn in seen:
                continue
            seen.add(tg.arn)

            try:
                self.provider.delete_target_group(tg.arn)
            except ResourceNotFoundError:
                logger.debug(f"Target group {tg.arn} already deleted")
                outcome.record_absent()
                continue
            except ProviderError as e:
                logger.warning(f"Failed to delete target group {tg.arn}: {e}")
                outcome.record_failure(ResourceFailure(resource_id=tg.arn, error_code=e.code, error_message=str(e)))
                continue

            logger.info(f"Deleted target group {tg.name or tg.arn}")
            outcome.record_deleted()

        return outcome
