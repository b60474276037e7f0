"""Teardown orchestrator.

Runs the reapers and the deletion waiter in dependency order against one
load balancer and decides which stage failures abort the run.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Callable, Iterable, Optional

from src.aws.provider import LoadBalancerProvider, ProviderError, ResourceNotFoundError
from src.models.resources import LoadBalancerRef
from src.models.teardown_outcome import ResourceFailure, StageName, StageOutcome, TeardownOutcome
from src.teardown.errors import ListenerTeardownError
from src.teardown.listeners import ListenerReaper
from src.teardown.resolve import LoadBalancerTarget, resolve_load_balancer, target_name
from src.teardown.security_groups import SecurityGroupInput, SecurityGroupReaper
from src.teardown.target_groups import TargetGroupReaper
from src.teardown.waiter import DeletionWaiter
from src.utils.cancellation import CancellationToken, OperationCancelled

logger = logging.getLogger(__name__)


class TeardownOrchestrator:
    """Teardown orchestrator.

    Stage order:
        listeners → target groups → security groups → load balancer absence wait

    Listeners go first because a target group referenced by a live listener
    rule cannot be deleted. Target groups go before security groups because
    they can keep groups in use. The absence wait is last.

    Only a listener stage failure aborts the run. Target group, security group
    and wait problems are recorded as warnings and the run continues.

    Attributes:
        provider: Load balancer provider
        listener_reaper: Listener stage
        target_group_reaper: Target group stage
        security_group_reaper: Security group stage
        waiter: Absence wait stage
        delete_load_balancer: Delete the load balancer after its target groups
    """

    def __init__(
        self,
        provider: LoadBalancerProvider,
        poll_interval: float = 10.0,
        deletion_wait: float = 300.0,
        delete_load_balancer: bool = False,
        security_group_retries: int = 3,
        security_group_backoff: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize teardown orchestrator.

        Args:
            provider: Load balancer provider
            poll_interval: Seconds between absence checks
            deletion_wait: Maximum seconds to wait for the load balancer to disappear
            delete_load_balancer: Issue the load balancer delete between the
                target group and security group stages (default: False)
            security_group_retries: Attempts per security group while in use
            security_group_backoff: Base backoff between security group attempts
            clock: Monotonic clock (injectable for tests)
        """
        self.provider = provider
        self.delete_load_balancer = delete_load_balancer
        self.listener_reaper = ListenerReaper(provider)
        self.target_group_reaper = TargetGroupReaper(provider)
        self.security_group_reaper = SecurityGroupReaper(
            provider,
            max_retries=security_group_retries,
            backoff_seconds=security_group_backoff,
        )
        self.waiter = DeletionWaiter(provider, poll_interval=poll_interval, max_wait=deletion_wait, clock=clock)

    def run(
        self,
        load_balancer: LoadBalancerTarget,
        security_groups: Iterable[SecurityGroupInput] = (),
        token: Optional[CancellationToken] = None,
    ) -> TeardownOutcome:
        """Tear down a load balancer's dependents and wait for it to disappear.

        Args:
            load_balancer: Load balancer name or reference
            security_groups: Orphan security group IDs to delete
            token: Cancellation token for the whole run (optional)

        Returns:
            TeardownOutcome; ``is_fatal`` is True only for listener failures or cancellation
        """
        token = token or CancellationToken()
        name = target_name(load_balancer)
        outcome = TeardownOutcome(load_balancer_name=name)
        security_groups = list(security_groups)

        logger.info(f"Starting teardown of load balancer {name}")
        target = self._pin_identity(load_balancer, outcome)

        # Listeners
        listeners = self.listener_reaper.reap(target)
        outcome.stages[StageName.LISTENERS] = listeners
        if listeners.failed:
            listeners.fatal = True
            outcome.record_fatal(ListenerTeardownError(name, listeners.deleted, listeners.failures))
            return self._finish(outcome)

        if self._cancelled(token, outcome):
            return self._finish(outcome)

        # Target groups
        target_groups = self.target_group_reaper.reap(target)
        outcome.stages[StageName.TARGET_GROUPS] = target_groups
        self._warn_failures(target_groups, "Target group")

        if self._cancelled(token, outcome):
            return self._finish(outcome)

        lb_stage = StageOutcome(stage=StageName.LOAD_BALANCER, ran=True)
        outcome.stages[StageName.LOAD_BALANCER] = lb_stage
        if self.delete_load_balancer:
            self._delete(target, lb_stage)

        # Security groups
        security = self.security_group_reaper.reap(security_groups, token=token)
        outcome.stages[StageName.SECURITY_GROUPS] = security
        self._warn_failures(security, "Security group")

        if self._cancelled(token, outcome):
            return self._finish(outcome)

        # Absence wait
        result = self.waiter.wait(target, token=token)
        if result.absent:
            if lb_stage.deleted == 0:
                lb_stage.record_absent()
        elif result.cancelled:
            outcome.record_fatal(OperationCancelled(f"Teardown of {name} cancelled"))
        else:
            lb_stage.add_warning(
                f"Load balancer {name} still visible after {result.elapsed_seconds:.0f}s ({result.polls} checks)"
            )

        return self._finish(outcome)

    def _pin_identity(self, load_balancer: LoadBalancerTarget, outcome: TeardownOutcome) -> LoadBalancerTarget:
        """Resolve the ARN once so later stages can detect a replaced load balancer."""
        if isinstance(load_balancer, LoadBalancerRef) and load_balancer.is_resolved:
            outcome.load_balancer_arn = load_balancer.arn
            return load_balancer

        try:
            current = resolve_load_balancer(self.provider, load_balancer)
        except ProviderError as e:
            logger.warning(f"Could not resolve {target_name(load_balancer)} before teardown: {e}")
            return load_balancer

        if current is None:
            logger.info(f"Load balancer {target_name(load_balancer)} not found at teardown start")
            return load_balancer

        outcome.load_balancer_arn = current.arn
        return current

    def _delete(self, target: LoadBalancerTarget, stage: StageOutcome) -> None:
        name = target_name(target)
        try:
            lb = resolve_load_balancer(self.provider, target)
            if lb is None:
                logger.info(f"Load balancer {name} already gone, skipping delete")
                return
            self.provider.delete_load_balancer(lb.arn)
        except ResourceNotFoundError:
            logger.info(f"Load balancer {name} already gone")
            return
        except ProviderError as e:
            logger.warning(f"Failed to delete load balancer {name}: {e}")
            stage.record_failure(ResourceFailure(resource_id=name, error_code=e.code, error_message=str(e)))
            stage.add_warning(f"Load balancer {name} not deleted: {e.code}")
            return

        logger.info(f"Deleted load balancer {name}")
        stage.record_deleted()

    @staticmethod
    def _warn_failures(stage: StageOutcome, label: str) -> None:
        for failure in stage.failures:
            stage.add_warning(f"{label} {failure.resource_id} not deleted: {failure.error_code}")

    @staticmethod
    def _cancelled(token: CancellationToken, outcome: TeardownOutcome) -> bool:
        if not token.cancelled:
            return False
        outcome.record_fatal(OperationCancelled(f"Teardown of {outcome.load_balancer_name} cancelled"))
        logger.warning(f"Teardown of {outcome.load_balancer_name} cancelled: {token.reason}")
        return True

    @staticmethod
    def _finish(outcome: TeardownOutcome) -> TeardownOutcome:
        outcome.completed_at = datetime.utcnow()
        if outcome.is_fatal:
            logger.error(f"Teardown of {outcome.load_balancer_name} failed: {outcome.fatal_error}")
        elif outcome.warnings:
            logger.warning(
                f"Teardown of {outcome.load_balancer_name} finished with {len(outcome.warnings)} warning(s)"
            )
        else:
            logger.info(f"Teardown of {outcome.load_balancer_name} completed")
        return outcome
