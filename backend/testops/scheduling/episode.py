"""
Readiness-gated report episode.

After a scheduled run has been triggered, the episode waits for its results to
be fully written, generates the report and notifies the schedule's recipient.
Not-ready results and report generator failures are retried within one bounded
attempt budget; exhausting it produces a single report-generation-failure
notification, never a test-failure one.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Optional

from ..executions import ExecutionDetail, ExecutionStore
from ..logger import log_exception, logger
from ..storage import LocalStorage
from .readiness import check_readiness
from .types import EpisodeOutcome, RetryPolicy, ScheduleSnapshot, SleepFunction

if TYPE_CHECKING:
    from ..notifications import EmailNotifier
    from ..reports import ReportGenerator


class ReportEpisode:
    """Runs report episodes for test runs triggered by schedules."""

    def __init__(
        self,
        executions: ExecutionStore,
        storage: LocalStorage,
        report_generator: "ReportGenerator",
        notifier: "EmailNotifier",
        policy: RetryPolicy = RetryPolicy(),
        sleep: SleepFunction = asyncio.sleep,
    ):
        self.executions = executions
        self.storage = storage
        self.report_generator = report_generator
        self.notifier = notifier
        self.policy = policy
        self.sleep = sleep

    async def run(self, test_run_id: int, schedule: ScheduleSnapshot) -> EpisodeOutcome:
        """
        Produce and deliver the report of one test run.

        Args:
            test_run_id: Run returned by the test invoker
            schedule: Snapshot of the schedule that triggered the run

        Returns:
            REPORT_READY once a report was generated, REPORT_FAILED after the
            attempt budget is exhausted
        """
        max_attempts = self.policy.max_attempts
        error = ""

        for attempt in range(1, max_attempts + 1):
            is_final = attempt == max_attempts
            logger.info(
                f"Generating report for test run #{test_run_id} "
                f"(attempt {attempt}/{max_attempts})"
            )

            detail = await self._fetch_detail(test_run_id)
            if detail is None or not await check_readiness(detail, self.storage):
                if detail is None or not detail.found:
                    error = f"Test run #{test_run_id} not found"
                else:
                    error = (
                        f"Test run #{test_run_id} results were not ready "
                        f"after {attempt} checks"
                    )

                if not is_final:
                    logger.warning(
                        f"Test run #{test_run_id} data not ready, retrying in "
                        f"{self.policy.readiness_retry_delay}s (attempt {attempt})"
                    )
                    await self.sleep(self.policy.readiness_retry_delay)
                    continue
                break

            try:
                report_path = await self.report_generator.generate(detail)
            except Exception as e:
                error = f"{type(e).__name__}: {e}"
                logger.error(
                    f"Error generating report for test run #{test_run_id} "
                    f"(attempt {attempt}): {error}",
                    exc_info=True,
                )
                if not is_final:
                    await self.sleep(self.policy.report_retry_delay)
                    continue
                break

            logger.info(f"Report for test run #{test_run_id} generated: {report_path}")
            if schedule.has_recipient:
                sent = await self._send_report_ready(schedule, report_path, detail)
                logger.log(
                    logging.INFO if sent else logging.ERROR,
                    f"Report email for test run #{test_run_id} to {schedule.email_to}: "
                    f"{'sent' if sent else 'failed'}",
                )
            return EpisodeOutcome.REPORT_READY

        logger.error(
            f"Giving up on report for test run #{test_run_id} after "
            f"{max_attempts} attempts: {error}"
        )
        if schedule.has_recipient:
            sent = await self._send_report_failure(schedule, error)
            logger.log(
                logging.INFO if sent else logging.ERROR,
                f"Report failure email for test run #{test_run_id} to "
                f"{schedule.email_to}: {'sent' if sent else 'failed'}",
            )
        return EpisodeOutcome.REPORT_FAILED

    @log_exception(
        "Error checking test run #{test_run_id} data readiness",
        level=logging.WARNING,
    )
    async def _fetch_detail(self, test_run_id: int) -> Optional[ExecutionDetail]:
        return await self.executions.get_details(test_run_id)

    @log_exception("Report email for schedule #{schedule.id}", default_return=False)
    async def _send_report_ready(
        self, schedule: ScheduleSnapshot, report_path: str, detail: ExecutionDetail
    ) -> bool:
        return await self.notifier.send_report_ready(
            schedule.email_to, schedule, report_path, detail
        )

    @log_exception(
        "Report failure email for schedule #{schedule.id}", default_return=False
    )
    async def _send_report_failure(self, schedule: ScheduleSnapshot, error: str) -> bool:
        return await self.notifier.send_report_generation_failure(
            schedule.email_to, schedule, error
        )
