"""Tests for TeardownOutcome model.

Test coverage for stage bookkeeping, warning aggregation and validation rules.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from src.models.teardown_outcome import (
    STAGE_ORDER,
    ResourceFailure,
    StageName,
    StageOutcome,
    StageStatus,
    TeardownOutcome,
)


class TestStageOutcome:
    """Test suite for StageOutcome model."""

    def test_not_run_is_skipped(self) -> None:
        """Test a stage the orchestrator never reached reports SKIPPED."""
        assert StageOutcome(stage=StageName.LISTENERS).status == StageStatus.SKIPPED

    def test_clean_run_is_completed(self) -> None:
        """Test a stage with only deletions is COMPLETED."""
        stage = StageOutcome(stage=StageName.TARGET_GROUPS, ran=True)
        stage.record_deleted()
        stage.record_absent()

        assert stage.status == StageStatus.COMPLETED
        assert stage.succeeded
        assert stage.deleted == 1
        assert stage.already_absent == 1

    def test_failure_is_warning_status(self) -> None:
        """Test a recorded failure moves the stage to WARNING."""
        stage = StageOutcome(stage=StageName.SECURITY_GROUPS, ran=True)
        stage.record_failure(ResourceFailure(resource_id="sg-1", error_code="DependencyViolation"))

        assert stage.status == StageStatus.WARNING
        assert not stage.succeeded
        assert stage.failed == 1

    def test_fatal_overrides_warning(self) -> None:
        """Test a fatal stage reports FATAL."""
        stage = StageOutcome(stage=StageName.LISTENERS, ran=True, fatal=True)
        stage.record_failure(ResourceFailure(resource_id="arn:l1", error_code="AccessDenied"))

        assert stage.status == StageStatus.FATAL

    def test_to_dict(self) -> None:
        """Test serialization includes failure details."""
        stage = StageOutcome(stage=StageName.TARGET_GROUPS, ran=True)
        stage.record_failure(ResourceFailure("arn:tg", "ResourceInUse", "in use"))

        data = stage.to_dict()

        assert data["stage"] == "target_groups"
        assert data["status"] == "warning"
        assert data["failures"] == [{"resource_id": "arn:tg", "error_code": "ResourceInUse", "error_message": "in use"}]


class TestTeardownOutcome:
    """Test suite for TeardownOutcome model."""

    def test_every_stage_present(self) -> None:
        """Test a new outcome has a skipped entry for every stage."""
        outcome = TeardownOutcome(load_balancer_name="lb-old")

        assert list(outcome.stages) == STAGE_ORDER
        assert all(outcome.stage(name).status == StageStatus.SKIPPED for name in STAGE_ORDER)
        assert not outcome.is_fatal
        assert outcome.duration_seconds is None

    def test_first_fatal_error_wins(self) -> None:
        """Test later fatal errors do not replace the first."""
        outcome = TeardownOutcome(load_balancer_name="lb-old")
        first = RuntimeError("listener")
        outcome.record_fatal(first)
        outcome.record_fatal(RuntimeError("cancelled"))

        assert outcome.fatal_error is first

    def test_warnings_aggregate_in_stage_order(self) -> None:
        """Test warnings are collected across stages in execution order."""
        outcome = TeardownOutcome(load_balancer_name="lb-old")
        outcome.stage(StageName.SECURITY_GROUPS).add_warning("sg")
        outcome.stage(StageName.TARGET_GROUPS).add_warning("tg")

        assert outcome.warnings == ["tg", "sg"]

    def test_fatal_stage_warnings_excluded(self) -> None:
        """Test a fatal stage contributes to the fatal error, not to warnings."""
        outcome = TeardownOutcome(load_balancer_name="lb-old")
        listeners = outcome.stage(StageName.LISTENERS)
        listeners.fatal = True
        listeners.add_warning("listener")

        assert outcome.warnings == []

    def test_validate_passes_for_aborted_run(self) -> None:
        """Test a fatal listener stage with later stages skipped is valid."""
        outcome = TeardownOutcome(load_balancer_name="lb-old")
        listeners = outcome.stage(StageName.LISTENERS)
        listeners.ran = True
        listeners.fatal = True
        listeners.record_failure(ResourceFailure("arn:l1", "AccessDenied"))
        outcome.record_fatal(RuntimeError("listener teardown failed"))

        assert outcome.validate()

    def test_validate_rejects_stage_after_fatal(self) -> None:
        """Test a stage that ran after a fatal stage is invalid."""
        outcome = TeardownOutcome(load_balancer_name="lb-old")
        outcome.stage(StageName.LISTENERS).ran = True
        outcome.stage(StageName.LISTENERS).fatal = True
        outcome.stage(StageName.TARGET_GROUPS).ran = True
        outcome.record_fatal(RuntimeError("listener teardown failed"))

        with pytest.raises(ValueError, match="ran after a fatal stage"):
            outcome.validate()

    def test_validate_rejects_fatal_stage_without_error(self) -> None:
        """Test a fatal stage requires a recorded fatal error."""
        outcome = TeardownOutcome(load_balancer_name="lb-old")
        outcome.stage(StageName.LISTENERS).fatal = True

        with pytest.raises(ValueError, match="no fatal error"):
            outcome.validate()

    def test_validate_rejects_mismatched_failures(self) -> None:
        """Test failure details must match the failed count."""
        outcome = TeardownOutcome(load_balancer_name="lb-old")
        outcome.stage(StageName.TARGET_GROUPS).failed = 2

        with pytest.raises(ValueError, match="Failure details"):
            outcome.validate()

    def test_validate_rejects_completion_before_start(self) -> None:
        """Test time ordering is validated."""
        started = datetime(2026, 3, 1, 12, 0, 0)
        outcome = TeardownOutcome(
            load_balancer_name="lb-old",
            started_at=started,
            completed_at=started - timedelta(seconds=1),
        )

        with pytest.raises(ValueError, match="Completion time"):
            outcome.validate()

    def test_to_dict(self) -> None:
        """Test outcome serialization."""
        started = datetime(2026, 3, 1, 12, 0, 0)
        outcome = TeardownOutcome(
            load_balancer_name="lb-old",
            load_balancer_arn="arn:lb",
            started_at=started,
            completed_at=started + timedelta(seconds=42),
        )

        data = outcome.to_dict()

        assert data["load_balancer_name"] == "lb-old"
        assert data["fatal"] is False
        assert data["started_at"] == "2026-03-01T12:00:00Z"
        assert [s["stage"] for s in data["stages"]] == [name.value for name in STAGE_ORDER]
        assert outcome.duration_seconds == 42
