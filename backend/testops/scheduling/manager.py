"""
Scheduled Test Manager - cron lifecycle and the run-and-report protocol.
"""

import asyncio
import logging
import sys
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Optional, Set

from sqlalchemy.ext.asyncio import AsyncSession

from ..db.crud.scheduled_test import get_all_scheduled_tests, set_last_run_at
from ..db.database import get_async_session
from ..logger import log_exception, logger
from ..models import ScheduledTest
from .episode import ReportEpisode
from .invoker import TestInvoker
from .registry import CronRegistry
from .types import RetryPolicy, RunOutcome, ScheduleSnapshot, SleepFunction

if TYPE_CHECKING:
    from ..notifications import EmailNotifier


class ScheduledTestManager:
    """
    Keeps the cron registry consistent with the persisted scheduled tests.

    Every cron fire runs ``run_and_report``: invoke the test, then after a
    fixed delay hand over to the report episode. One instance is created at
    application startup and shared through ``app.state``.
    """

    def __init__(
        self,
        invoker: TestInvoker,
        episode: ReportEpisode,
        notifier: "EmailNotifier",
        registry: Optional[CronRegistry] = None,
        policy: RetryPolicy = RetryPolicy(),
        session_factory: Callable[[], AsyncSession] = get_async_session,
        sleep: SleepFunction = asyncio.sleep,
        allow_overlapping_runs: bool = False,
    ):
        self.invoker = invoker
        self.episode = episode
        self.notifier = notifier
        self.registry = registry or CronRegistry()
        self.policy = policy
        self.session_factory = session_factory
        self.sleep = sleep
        self.allow_overlapping_runs = allow_overlapping_runs
        self._in_flight: Set[int] = set()
        self._initialized = False

    async def initialize(self) -> None:
        """
        Start the scheduler and register every active schedule from the database.
        """
        if self._initialized:
            return

        self.registry.start()
        count = await self.register_all()
        logger.info(f"Scheduled test manager started with {count} active cron jobs")

        self._initialized = True

    async def shutdown(self) -> None:
        """
        Shutdown the scheduler. In-flight protocol runs are not cancelled.
        """
        self.registry.shutdown()
        self._initialized = False

    async def register_all(self) -> int:
        """
        Register a cron job for every active schedule in the database.

        A schedule that fails to register is logged and skipped; the others
        are still registered.

        Returns:
            Number of jobs registered
        """
        async with self.session_factory() as session:
            schedules = await get_all_scheduled_tests(session)

        count = 0
        for schedule in schedules:
            try:
                if self.register(schedule):
                    count += 1
            except Exception as e:
                logger.error(
                    f"Failed to register cron job for schedule #{schedule.id} "
                    f"('{schedule.cron_expression}'): {e}"
                )
        return count

    def register(self, schedule: ScheduledTest | ScheduleSnapshot) -> bool:
        """
        Create and start the cron job of a schedule.

        Returns:
            False without creating a job if the schedule is inactive
        """
        snapshot = (
            schedule
            if isinstance(schedule, ScheduleSnapshot)
            else ScheduleSnapshot.from_model(schedule)
        )
        if not snapshot.is_active:
            return False

        # The in-flight guard in run_and_report decides overlaps, not APScheduler
        self.registry.add(
            snapshot.id,
            snapshot.cron_expression,
            self.run_and_report,
            args=[snapshot],
            max_instances=sys.maxsize,
        )
        logger.info(
            f"Registered cron job for schedule #{snapshot.id} "
            f"('{snapshot.cron_expression}', {snapshot.sub_type.value})"
        )
        return True

    def unregister(self, schedule_id: int) -> bool:
        """
        Remove and stop the cron job of a schedule. No-op if it has none.
        """
        removed = self.registry.remove(schedule_id)
        if removed:
            logger.info(f"Unregistered cron job for schedule #{schedule_id}")
        return removed

    def replace(self, schedule: ScheduledTest | ScheduleSnapshot) -> bool:
        """
        Re-register a schedule after it changed so no stale job keeps firing.
        """
        self.unregister(schedule.id)
        return self.register(schedule)

    def is_registered(self, schedule_id: int) -> bool:
        return self.registry.has_job(schedule_id)

    def get_next_run_time(self, schedule_id: int) -> Optional[datetime]:
        return self.registry.get_next_run_time(schedule_id)

    def is_in_flight(self, schedule_id: int) -> bool:
        return schedule_id in self._in_flight

    async def run_and_report(self, schedule: ScheduleSnapshot) -> RunOutcome:
        """
        Cron fire callback: invoke the test, then generate and send its report.

        Never raises; every failure ends in a log entry and, if the schedule
        has a recipient, exactly one notification.
        """
        if not self.allow_overlapping_runs and schedule.id in self._in_flight:
            logger.warning(
                f"Skipping firing of schedule #{schedule.id}: "
                "previous run is still in progress"
            )
            return RunOutcome.SKIPPED

        self._in_flight.add(schedule.id)
        try:
            return await self._run_and_report(schedule)
        except Exception as e:
            logger.error(
                f"Unexpected error in scheduled run of schedule #{schedule.id}: {e}",
                exc_info=True,
            )
            return RunOutcome.REPORT_FAILED
        finally:
            self._in_flight.discard(schedule.id)

    async def _run_and_report(self, schedule: ScheduleSnapshot) -> RunOutcome:
        logger.info(
            f"Starting scheduled test run for schedule #{schedule.id} "
            f"- project {schedule.project_id}"
        )

        try:
            test_run_id = await self.invoker.invoke(schedule)
        except Exception as e:
            logger.error(f"Error running test for schedule #{schedule.id}: {e}")
            if schedule.has_recipient:
                sent = await self._send_test_run_failure(schedule, str(e))
                logger.log(
                    logging.INFO if sent else logging.ERROR,
                    f"Error notification email to {schedule.email_to}: "
                    f"{'sent' if sent else 'failed'}",
                )
            return RunOutcome.INVOKE_FAILED

        logger.info(
            f"Test run started for schedule #{schedule.id} - test_run_id={test_run_id}"
        )
        await self._touch_last_run(schedule.id)

        # Results may still be written after the endpoint returned
        await self.sleep(self.policy.initial_delay)

        outcome = await self.episode.run(test_run_id, schedule)
        return RunOutcome(outcome.value)

    @log_exception(
        "Failed to record last run time of schedule #{schedule_id}",
        level=logging.WARNING,
    )
    async def _touch_last_run(self, schedule_id: int) -> None:
        async with self.session_factory() as session:
            await set_last_run_at(session, schedule_id, datetime.now(timezone.utc))

    @log_exception(
        "Error notification email for schedule #{schedule.id}", default_return=False
    )
    async def _send_test_run_failure(self, schedule: ScheduleSnapshot, error: str) -> bool:
        return await self.notifier.send_test_run_failure(
            schedule.email_to, schedule, error
        )
