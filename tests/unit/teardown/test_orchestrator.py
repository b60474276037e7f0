"""Tests for TeardownOrchestrator class."""

from __future__ import annotations

from src.models.teardown_outcome import STAGE_ORDER, StageName, StageStatus
from src.teardown.errors import ListenerTeardownError
from src.teardown.orchestrator import TeardownOrchestrator
from src.utils.cancellation import CancellationToken, OperationCancelled
from tests.fixtures.provider import FakeClock, FakeLoadBalancerProvider, lb_arn, target_group_arn

SECURITY_GROUPS = ["sg-1", "sg-2", "sg-3"]


def _orchestrator(provider: FakeLoadBalancerProvider, **kwargs) -> TeardownOrchestrator:
    kwargs.setdefault("poll_interval", 0)
    kwargs.setdefault("deletion_wait", 5)
    kwargs.setdefault("security_group_backoff", 0)
    return TeardownOrchestrator(provider, clock=FakeClock(), **kwargs)


class TestTeardownOrchestrator:
    """Test suite for TeardownOrchestrator."""

    def test_full_teardown_in_dependency_order(self) -> None:
        """Test listeners, target groups, load balancer, then security groups are deleted in order."""
        provider = FakeLoadBalancerProvider()
        provider.add_load_balancer("lb-old", listeners=2, target_groups=1, security_groups=SECURITY_GROUPS)

        outcome = _orchestrator(provider, delete_load_balancer=True).run("lb-old", SECURITY_GROUPS)

        assert not outcome.is_fatal
        assert outcome.warnings == []
        assert outcome.stage(StageName.LISTENERS).deleted == 2
        assert outcome.stage(StageName.TARGET_GROUPS).deleted == 1
        assert outcome.stage(StageName.SECURITY_GROUPS).deleted == 3
        assert outcome.stage(StageName.LOAD_BALANCER).deleted == 1
        assert outcome.load_balancer_arn == lb_arn("lb-old")
        assert outcome.validate()

        operations = [op for op, _ in provider.deletes()]
        assert operations == (
            ["delete_listener"] * 2 + ["delete_target_group"] + ["delete_load_balancer"] + ["delete_security_group"] * 3
        )

    def test_no_dependents_makes_no_deletes(self) -> None:
        """Test a load balancer with nothing attached issues no delete calls."""
        provider = FakeLoadBalancerProvider()
        provider.add_load_balancer("lb-old")

        outcome = _orchestrator(provider).run("lb-old")

        assert not outcome.is_fatal
        assert provider.deletes() == []

    def test_no_dependents_while_deleting_is_all_success(self) -> None:
        """Test a dependent-free load balancer on its way out ends with every stage completed."""
        provider = FakeLoadBalancerProvider(linger=3)
        provider.add_load_balancer("lb-old")
        provider.remove_load_balancer("lb-old")

        outcome = _orchestrator(provider).run("lb-old")

        assert not outcome.is_fatal
        assert outcome.warnings == []
        assert provider.deletes() == []
        assert outcome.load_balancer_arn == lb_arn("lb-old")
        for name in STAGE_ORDER:
            assert outcome.stage(name).status == StageStatus.COMPLETED
            assert outcome.stage(name).failed == 0
        assert outcome.stage(StageName.LOAD_BALANCER).already_absent == 1
        assert outcome.validate()

    def test_absent_load_balancer_succeeds_with_nothing_deleted(self) -> None:
        """Test an already-deleted load balancer is a successful no-op."""
        provider = FakeLoadBalancerProvider()

        outcome = _orchestrator(provider).run("lb-old")

        assert not outcome.is_fatal
        assert outcome.warnings == []
        assert provider.deletes() == []
        assert outcome.stage(StageName.LOAD_BALANCER).already_absent == 1
        for name in (StageName.LISTENERS, StageName.TARGET_GROUPS, StageName.SECURITY_GROUPS):
            assert outcome.stage(name).deleted == 0
            assert outcome.stage(name).status == StageStatus.COMPLETED

    def test_target_group_failure_is_a_warning(self) -> None:
        """Test a failed target group delete is reported but the run continues."""
        provider = FakeLoadBalancerProvider()
        provider.add_load_balancer("lb-old", listeners=2, target_groups=1, security_groups=SECURITY_GROUPS)
        provider.fail_on("delete_target_group", target_group_arn("lb-old-tg0"), code="ResourceInUse")

        outcome = _orchestrator(provider, delete_load_balancer=True).run("lb-old", SECURITY_GROUPS)

        assert not outcome.is_fatal
        tg_stage = outcome.stage(StageName.TARGET_GROUPS)
        assert tg_stage.failed == 1
        assert tg_stage.status == StageStatus.WARNING
        assert len(outcome.warnings) == 1
        assert "ResourceInUse" in outcome.warnings[0]
        assert outcome.stage(StageName.SECURITY_GROUPS).deleted == 3
        # absence wait still ran
        assert provider.calls[-1] == ("describe_load_balancer", "lb-old")

    def test_listener_failure_is_fatal(self) -> None:
        """Test a listener failure aborts before target groups are touched."""
        provider = FakeLoadBalancerProvider()
        ref = provider.add_load_balancer("lb-old", listeners=3, target_groups=1, security_groups=SECURITY_GROUPS)
        provider.fail_on("delete_listener", provider.listeners[ref.arn][1].arn, code="AccessDenied")

        outcome = _orchestrator(provider).run("lb-old", SECURITY_GROUPS)

        assert outcome.is_fatal
        assert isinstance(outcome.fatal_error, ListenerTeardownError)
        assert outcome.fatal_error.deleted == 1
        assert outcome.stage(StageName.LISTENERS).status == StageStatus.FATAL
        for name in (StageName.TARGET_GROUPS, StageName.SECURITY_GROUPS, StageName.LOAD_BALANCER):
            assert outcome.stage(name).status == StageStatus.SKIPPED
        assert provider.deletes("delete_target_group") == []
        assert provider.deletes("delete_security_group") == []
        assert outcome.validate()

    def test_listener_listing_error_is_fatal(self) -> None:
        """Test failure to list listeners is also fatal."""
        provider = FakeLoadBalancerProvider()
        provider.add_load_balancer("lb-old", listeners=1)
        provider.fail_on("describe_listeners", lb_arn("lb-old"), code="Throttling")

        outcome = _orchestrator(provider).run("lb-old")

        assert outcome.is_fatal
        assert provider.deletes() == []

    def test_security_group_failure_is_a_warning(self) -> None:
        """Test security group failures never abort the run."""
        provider = FakeLoadBalancerProvider()
        provider.add_load_balancer("lb-old", security_groups=SECURITY_GROUPS)
        provider.fail_on("delete_security_group", "sg-2", code="UnauthorizedOperation")

        outcome = _orchestrator(provider, delete_load_balancer=True).run("lb-old", SECURITY_GROUPS)

        assert not outcome.is_fatal
        assert outcome.stage(StageName.SECURITY_GROUPS).deleted == 2
        assert outcome.warnings == ["Security group sg-2 not deleted: UnauthorizedOperation"]

    def test_wait_deadline_is_a_warning(self) -> None:
        """Test a load balancer that never disappears produces a warning, not a fatal error."""
        provider = FakeLoadBalancerProvider()
        provider.add_load_balancer("lb-old", listeners=1)

        outcome = _orchestrator(provider, deletion_wait=3).run("lb-old")

        assert not outcome.is_fatal
        lb_stage = outcome.stage(StageName.LOAD_BALANCER)
        assert lb_stage.status == StageStatus.WARNING
        assert "still visible" in lb_stage.warnings[0]

    def test_load_balancer_delete_failure_is_a_warning(self) -> None:
        """Test a failed load balancer delete is recorded and security groups are still cleaned."""
        provider = FakeLoadBalancerProvider()
        provider.add_load_balancer("lb-old", security_groups=["sg-1"])
        provider.fail_on("delete_load_balancer", lb_arn("lb-old"), code="OperationNotPermitted")

        outcome = _orchestrator(provider, delete_load_balancer=True, deletion_wait=2).run("lb-old", ["sg-1"])

        assert not outcome.is_fatal
        lb_stage = outcome.stage(StageName.LOAD_BALANCER)
        assert lb_stage.failed == 1
        assert any("OperationNotPermitted" in w for w in lb_stage.warnings)
        assert outcome.stage(StageName.SECURITY_GROUPS).deleted == 1

    def test_eventual_deletion_is_waited_for(self) -> None:
        """Test a deleted load balancer that lingers is confirmed gone without warnings."""
        provider = FakeLoadBalancerProvider(linger=2)
        provider.add_load_balancer("lb-old", listeners=1)

        outcome = _orchestrator(provider, delete_load_balancer=True, deletion_wait=60).run("lb-old")

        assert not outcome.is_fatal
        assert outcome.warnings == []
        assert outcome.stage(StageName.LOAD_BALANCER).deleted == 1

    def test_cancellation_is_fatal(self) -> None:
        """Test a cancelled token stops the run after the current stage."""
        provider = FakeLoadBalancerProvider()
        provider.add_load_balancer("lb-old", listeners=1, target_groups=1)
        token = CancellationToken()
        token.cancel("test abort")

        outcome = _orchestrator(provider).run("lb-old", token=token)

        assert outcome.is_fatal
        assert isinstance(outcome.fatal_error, OperationCancelled)
        assert outcome.stage(StageName.TARGET_GROUPS).status == StageStatus.SKIPPED
        assert provider.deletes("delete_target_group") == []
        assert outcome.validate()

    def test_outcome_has_completion_time(self) -> None:
        """Test the outcome records start and completion."""
        provider = FakeLoadBalancerProvider()

        outcome = _orchestrator(provider).run("lb-old")

        assert outcome.completed_at is not None
        assert outcome.duration_seconds >= 0
