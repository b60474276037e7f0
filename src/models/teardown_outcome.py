"""Teardown outcome model.

Per-stage ledger of what a teardown run deleted, found already absent, or
failed to delete, plus the first fatal error if any.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class StageName(Enum):
    """Teardown stages in execution order."""

    LISTENERS = "listeners"
    TARGET_GROUPS = "target_groups"
    SECURITY_GROUPS = "security_groups"
    LOAD_BALANCER = "load_balancer"


STAGE_ORDER = [
    StageName.LISTENERS,
    StageName.TARGET_GROUPS,
    StageName.SECURITY_GROUPS,
    StageName.LOAD_BALANCER,
]


class StageStatus(Enum):
    """Stage result classification."""

    COMPLETED = "completed"
    WARNING = "warning"
    FATAL = "fatal"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ResourceFailure:
    """A single failed deletion.

    Attributes:
        resource_id: ARN or ID of the resource
        error_code: Provider error code (e.g., "ResourceInUse")
        error_message: Human-readable error
    """

    resource_id: str
    error_code: str
    error_message: str = ""


@dataclass
class StageOutcome:
    """Result of a single teardown stage.

    Attributes:
        stage: Which stage this is
        deleted: Resources deleted by this run
        already_absent: Resources the provider reported as gone
        failed: Resources that could not be deleted
        failures: Details for each failed resource
        warnings: Tolerable problems worth reporting
        fatal: True when this stage aborted the teardown
        ran: False until the orchestrator executes the stage
    """

    stage: StageName
    deleted: int = 0
    already_absent: int = 0
    failed: int = 0
    failures: List[ResourceFailure] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    fatal: bool = False
    ran: bool = False

    def record_deleted(self) -> None:
        self.deleted += 1

    def record_absent(self) -> None:
        self.already_absent += 1

    def record_failure(self, failure: ResourceFailure) -> None:
        self.failed += 1
        self.failures.append(failure)

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    @property
    def status(self) -> StageStatus:
        if not self.ran:
            return StageStatus.SKIPPED
        if self.fatal:
            return StageStatus.FATAL
        if self.failed or self.warnings:
            return StageStatus.WARNING
        return StageStatus.COMPLETED

    @property
    def succeeded(self) -> bool:
        return self.failed == 0 and not self.fatal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage.value,
            "status": self.status.value,
            "deleted": self.deleted,
            "already_absent": self.already_absent,
            "failed": self.failed,
            "failures": [
                {"resource_id": f.resource_id, "error_code": f.error_code, "error_message": f.error_message}
                for f in self.failures
            ],
            "warnings": list(self.warnings),
        }


@dataclass
class TeardownOutcome:
    """Teardown outcome entity.

    Returned to the caller after a teardown run. Stage-level warnings never
    make the outcome fatal; only ``fatal_error`` does.

    Attributes:
        load_balancer_name: Name of the load balancer torn down
        load_balancer_arn: ARN resolved during the run (optional)
        stages: Stage outcomes keyed by stage name
        fatal_error: First fatal error, if any
        started_at: When the run started
        completed_at: When the run finished (optional)
    """

    load_balancer_name: str
    load_balancer_arn: Optional[str] = None
    stages: Dict[StageName, StageOutcome] = field(default_factory=dict)
    fatal_error: Optional[Exception] = None
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        for name in STAGE_ORDER:
            self.stages.setdefault(name, StageOutcome(stage=name))

    def stage(self, name: StageName) -> StageOutcome:
        return self.stages[name]

    def record_fatal(self, error: Exception) -> None:
        """Keep the first fatal error; later ones are ignored."""
        if self.fatal_error is None:
            self.fatal_error = error

    @property
    def is_fatal(self) -> bool:
        return self.fatal_error is not None

    @property
    def warnings(self) -> List[str]:
        collected: List[str] = []
        for name in STAGE_ORDER:
            outcome = self.stages[name]
            if outcome.fatal:
                continue
            collected.extend(outcome.warnings)
        return collected

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def validate(self) -> bool:
        """Validate outcome invariants.

        Validation rules:
            - failure details match each stage's failed count
            - a fatal stage implies a fatal error is recorded
            - no stage after a fatal stage has run

        Returns:
            True if validation passes

        Raises:
            ValueError: If any validation rule fails
        """
        aborted = False
        for name in STAGE_ORDER:
            outcome = self.stages[name]
            if len(outcome.failures) != outcome.failed:
                raise ValueError(f"Failure details don't match failed count for {name.value}")
            if aborted and outcome.ran:
                raise ValueError(f"Stage {name.value} ran after a fatal stage")
            if outcome.fatal:
                if self.fatal_error is None:
                    raise ValueError(f"Stage {name.value} is fatal but no fatal error is recorded")
                aborted = True

        if self.completed_at and self.completed_at < self.started_at:
            raise ValueError("Completion time before start time")

        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "load_balancer_name": self.load_balancer_name,
            "load_balancer_arn": self.load_balancer_arn,
            "fatal": self.is_fatal,
            "fatal_error": str(self.fatal_error) if self.fatal_error else None,
            "started_at": self.started_at.isoformat() + "Z",
            "completed_at": self.completed_at.isoformat() + "Z" if self.completed_at else None,
            "stages": [self.stages[name].to_dict() for name in STAGE_ORDER],
            "warnings": self.warnings,
        }
