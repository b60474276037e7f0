"""Listener reaper."""

from __future__ import annotations

import logging
from typing import List

from src.aws.provider import LoadBalancerProvider, ProviderError, ResourceNotFoundError
from src.models.resources import ListenerRef
from src.models.teardown_outcome import ResourceFailure, StageName, StageOutcome
from src.teardown.resolve import LoadBalancerTarget, resolve_load_balancer, target_name

logger = logging.getLogger(__name__)


class ListenerReaper:
    """Discover and delete every listener attached to a load balancer.

    Stops at the first failed deletion: listeners left behind can block target
    group deletion, so a partial result is reported as a failure for the
    orchestrator to treat as fatal.
    """

    def __init__(self, provider: LoadBalancerProvider) -> None:
        self.provider = provider

    def reap(self, target: LoadBalancerTarget) -> StageOutcome:
        """Delete all listeners of ``target``.

        Args:
            target: Load balancer name or reference

        Returns:
            StageOutcome for the listener stage. ``failed > 0`` means the stage did not succeed.
        """
        outcome = StageOutcome(stage=StageName.LISTENERS, ran=True)
        name = target_name(target)

        try:
            lb = resolve_load_balancer(self.provider, target)
        except ProviderError as e:
            logger.error(f"Could not resolve load balancer {name}: {e}")
            outcome.record_failure(ResourceFailure(resource_id=name, error_code=e.code, error_message=str(e)))
            return outcome

        if lb is None:
            logger.info(f"Load balancer {name} already gone, no listeners to delete")
            return outcome

        try:
            listeners = self._unique(self.provider.describe_listeners(lb.arn))
        except ResourceNotFoundError:
            logger.info(f"Load balancer {name} disappeared while listing listeners")
            return outcome
        except ProviderError as e:
            logger.error(f"Could not list listeners for {name}: {e}")
            outcome.record_failure(ResourceFailure(resource_id=lb.arn, error_code=e.code, error_message=str(e)))
            return outcome

        logger.info(f"Found {len(listeners)} listener(s) on {name}")

        for listener in listeners:
            try:
                self.provider.delete_listener(listener.arn)
            except ResourceNotFoundError:
                logger.debug(f"Listener {listener.arn} already deleted")
                outcome.record_absent()
                continue
            except ProviderError as e:
                logger.error(f"Failed to delete listener {listener.arn}: {e}")
                outcome.record_failure(
                    ResourceFailure(resource_id=listener.arn, error_code=e.code, error_message=str(e))
                )
                break

            logger.info(f"Deleted listener {listener.arn}")
            outcome.record_deleted()

        return outcome

    @staticmethod
    def _unique(listeners: List[ListenerRef]) -> List[ListenerRef]:
        seen = set()
        unique = []
        for listener in listeners:
            if listener.arn in seen:
                continue
            seen.add(listener.arn)
            unique.append(listener)
        return unique
