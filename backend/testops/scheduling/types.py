"""
Type definitions for the scheduled test system.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from ..config import SchedulingSettings
from ..models import ScheduledTest, TestCategory, TestSubType

# Type alias for the suspension primitive used between attempts
SleepFunction = Callable[[float], Awaitable[None]]


class RunOutcome(str, Enum):
    """Final state of one Run-And-Report protocol instance."""

    SKIPPED = "skipped"
    INVOKE_FAILED = "invoke_failed"
    REPORT_READY = "report_ready"
    REPORT_FAILED = "report_failed"


class EpisodeOutcome(str, Enum):
    """Final state of one readiness-gated report episode."""

    REPORT_READY = "report_ready"
    REPORT_FAILED = "report_failed"


@dataclass(frozen=True)
class ScheduleSnapshot:
    """
    Frozen copy of a scheduled test taken when its cron job is registered.

    The cron fire callback closes over this snapshot, so a job never observes
    later edits to the row; updates go through ``replace`` instead.
    """

    id: int
    user_id: int
    project_id: int
    category: TestCategory
    sub_type: TestSubType
    cron_expression: str
    email_to: Optional[str]
    is_active: bool
    config_json: Optional[dict[str, Any]] = None
    project_name: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, schedule: ScheduledTest) -> "ScheduleSnapshot":
        project = schedule.__dict__.get("project")
        return cls(
            id=schedule.id,
            user_id=schedule.user_id,
            project_id=schedule.project_id,
            category=schedule.category,
            sub_type=schedule.sub_type,
            cron_expression=schedule.cron_expression,
            email_to=schedule.email_to,
            is_active=bool(schedule.is_active),
            config_json=dict(schedule.config_json) if schedule.config_json else None,
            project_name=project.name if project is not None else None,
            created_at=schedule.created_at,
        )

    @property
    def has_recipient(self) -> bool:
        return bool(self.email_to and self.email_to.strip())


@dataclass(frozen=True)
class RetryPolicy:
    """Timing constants of the run-and-report pipeline, in seconds."""

    initial_delay: float = 10
    readiness_retry_delay: float = 15
    report_retry_delay: float = 5
    max_attempts: int = 3

    @classmethod
    def from_settings(cls, scheduling: SchedulingSettings) -> "RetryPolicy":
        return cls(
            initial_delay=scheduling.initial_delay_seconds,
            readiness_retry_delay=scheduling.readiness_retry_delay_seconds,
            report_retry_delay=scheduling.report_retry_delay_seconds,
            max_attempts=scheduling.max_attempts,
        )
