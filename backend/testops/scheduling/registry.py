"""
Cron registry holding the live job of every registered schedule.
"""

from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from ..utils.cron import build_cron_trigger

# Type alias for the coroutine function run on every cron fire
AsyncFireCallback = Callable[..., Awaitable[Any]]


class CronRegistry:
    """
    In-process mapping from schedule id to its APScheduler job.

    Owned by one ScheduledTestManager. At most one job exists per schedule id:
    adding a job for an id always removes the previous one first.
    """

    def __init__(self, scheduler: Optional[AsyncIOScheduler] = None):
        self.scheduler = scheduler or AsyncIOScheduler()
        # schedule id -> job
        self._jobs: Dict[int, Job] = {}

    @staticmethod
    def job_id(schedule_id: int) -> str:
        return f"schedule-{schedule_id}"

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        self._jobs.clear()

    def add(
        self,
        schedule_id: int,
        cron: str,
        callback: AsyncFireCallback,
        args: Optional[list] = None,
        max_instances: int = 1,
    ) -> Job:
        """
        Create and start a cron job for a schedule, replacing any existing one.

        Args:
            schedule_id: Schedule the job belongs to
            cron: 5-field cron expression
            callback: Coroutine function invoked on each fire
            args: Positional arguments passed to the callback
            max_instances: Concurrent fires APScheduler lets run for the job

        Raises:
            InvalidCronExpressionError: If the expression cannot be scheduled
        """
        trigger = build_cron_trigger(cron)

        self.remove(schedule_id)
        job = self.scheduler.add_job(
            callback,
            trigger=trigger,
            args=args or [],
            id=self.job_id(schedule_id),
            max_instances=max_instances,
            replace_existing=True,
        )
        self._jobs[schedule_id] = job
        return job

    def remove(self, schedule_id: int) -> bool:
        """Remove and stop the job of a schedule. Returns False if none existed."""
        job = self._jobs.pop(schedule_id, None)
        if self.scheduler.get_job(self.job_id(schedule_id)):
            self.scheduler.remove_job(self.job_id(schedule_id))
        return job is not None

    def has_job(self, schedule_id: int) -> bool:
        return schedule_id in self._jobs

    def get_job(self, schedule_id: int) -> Optional[Job]:
        return self._jobs.get(schedule_id)

    def schedule_ids(self) -> List[int]:
        return sorted(self._jobs)

    def __len__(self) -> int:
        return len(self._jobs)

    def get_next_run_time(self, schedule_id: int) -> Optional[datetime]:
        """Next fire time of a schedule's job, or None if it has no job."""
        scheduler_job = self.scheduler.get_job(self.job_id(schedule_id))
        if scheduler_job is None:
            return None
        # Jobs added before the scheduler starts have no next_run_time yet
        return getattr(scheduler_job, "next_run_time", None)
