"""
Test cron registry uniqueness and job lifecycle.
"""

import pytest

from testops.errors import InvalidCronExpressionError
from testops.scheduling.registry import CronRegistry


async def noop(*args):
    return None


@pytest.fixture
async def registry():
    registry = CronRegistry()
    registry.start()
    yield registry
    registry.shutdown()


class TestCronRegistry:
    async def test_add_creates_job(self, registry):
        registry.add(1, "*/5 * * * *", noop)

        assert registry.has_job(1)
        assert registry.scheduler.get_job(CronRegistry.job_id(1)) is not None
        assert registry.get_next_run_time(1) is not None

    async def test_max_instances_reaches_scheduler_job(self, registry):
        registry.add(1, "*/5 * * * *", noop)
        registry.add(2, "*/5 * * * *", noop, max_instances=50)

        assert registry.scheduler.get_job(CronRegistry.job_id(1)).max_instances == 1
        assert registry.scheduler.get_job(CronRegistry.job_id(2)).max_instances == 50

    async def test_at_most_one_job_per_schedule(self, registry):
        for cron in ("*/5 * * * *", "0 2 * * *", "0 3 * * 1-5"):
            registry.add(1, cron, noop)

        jobs = [
            job
            for job in registry.scheduler.get_jobs()
            if job.id == CronRegistry.job_id(1)
        ]
        assert len(jobs) == 1
        assert len(registry) == 1
        # The last registration wins
        assert registry.get_next_run_time(1).hour == 3

    async def test_remove_is_idempotent(self, registry):
        registry.add(1, "*/5 * * * *", noop)
        registry.add(2, "*/5 * * * *", noop)

        assert registry.remove(1) is True
        assert registry.remove(1) is False
        assert registry.remove(99) is False
        assert registry.schedule_ids() == [2]
        assert registry.scheduler.get_job(CronRegistry.job_id(1)) is None

    async def test_invalid_cron_does_not_replace_existing_job(self, registry):
        registry.add(1, "0 2 * * *", noop)

        with pytest.raises(InvalidCronExpressionError):
            registry.add(1, "not a cron", noop)

        assert registry.has_job(1)
        assert registry.get_next_run_time(1).hour == 2

    async def test_next_run_time_of_unknown_schedule(self, registry):
        assert registry.get_next_run_time(5) is None

    async def test_shutdown_clears_jobs(self):
        registry = CronRegistry()
        registry.start()
        registry.add(1, "*/5 * * * *", noop)

        registry.shutdown()

        assert not registry.running
        assert len(registry) == 0
