"""
Scheduled test execution: cron registry, run-and-report protocol and the
readiness-gated report episode.
"""

from .episode import ReportEpisode
from .invoker import SubTypeEndpoint, TestInvoker
from .manager import ScheduledTestManager
from .readiness import check_readiness
from .registry import CronRegistry
from .service import AssetUpload, ScheduledTestService
from .types import EpisodeOutcome, RetryPolicy, RunOutcome, ScheduleSnapshot

__all__ = [
    "CronRegistry",
    "AssetUpload",
    "EpisodeOutcome",
    "ReportEpisode",
    "RetryPolicy",
    "RunOutcome",
    "ScheduleSnapshot",
    "ScheduledTestManager",
    "ScheduledTestService",
    "SubTypeEndpoint",
    "TestInvoker",
    "check_readiness",
]
