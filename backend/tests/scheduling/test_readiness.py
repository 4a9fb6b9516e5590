"""
Test the readiness check of test run results.
"""

import json

import pytest

from testops.scheduling.readiness import check_readiness


class TestReadiness:
    async def test_ready_without_recorded_files(self, storage, ready_detail):
        assert await check_readiness(ready_detail(), storage) is True

    async def test_missing_test_run(self, storage, ready_detail):
        detail = ready_detail()
        detail.test_run = None

        assert await check_readiness(detail, storage) is False

    @pytest.mark.parametrize("field", ["summary", "details"])
    async def test_empty_results_are_not_ready(self, storage, ready_detail, field):
        detail = ready_detail()
        setattr(detail, field, {} if field == "summary" else [])

        assert await check_readiness(detail, storage) is False

    async def test_recorded_files_must_exist(self, storage, ready_detail):
        detail = ready_detail()
        detail.test_run.summary_path = "results/42/summary.json"
        detail.test_run.raw_result_path = "results/42/raw.json"

        assert await check_readiness(detail, storage) is False

        await storage.write_text("results/42/summary.json", json.dumps({"passes": 1}))
        assert await check_readiness(detail, storage) is False

        await storage.write_text("results/42/raw.json", "{}")
        assert await check_readiness(detail, storage) is True

    async def test_repeated_checks_are_stable(self, storage, ready_detail, empty_detail):
        ready = ready_detail()
        not_ready = empty_detail()

        assert {await check_readiness(ready, storage) for _ in range(5)} == {True}
        assert {await check_readiness(not_ready, storage) for _ in range(5)} == {False}
