"""
Tests for the log_exception decorator used for best-effort side effects.

Tests cover:
- Exception logging and default return values for sync and async functions
- Parameter binding, with ``self`` left out of the logged arguments
- Prefix formatting from call arguments, including attribute access
- Configurable log level
"""

import asyncio
import logging

import pytest

from testops.logger import log_exception
from testops.scheduling.types import ScheduleSnapshot


class TestBasicExceptionLogging:
    """Exceptions are logged and replaced by the default return value."""

    def test_sync_function(self, caplog):
        @log_exception("Delete asset")
        def delete_asset(path: str) -> bool:
            raise FileNotFoundError("gone")

        assert delete_asset("uploads/a.json") is None
        assert "Delete asset: FileNotFoundError: gone" in caplog.text
        assert "ERROR" in caplog.text

    async def test_async_function(self, caplog):
        @log_exception("Send email", default_return=False)
        async def send(recipient: str) -> bool:
            await asyncio.sleep(0)
            raise ConnectionError("SMTP unreachable")

        assert await send("qa@example.com") is False
        assert "Send email: ConnectionError: SMTP unreachable" in caplog.text

    async def test_successful_call_is_not_logged(self, caplog):
        @log_exception("Touch last run")
        async def touch(schedule_id: int) -> int:
            return schedule_id

        assert await touch(7) == 7
        assert caplog.text == ""

    def test_base_exceptions_propagate(self):
        @log_exception()
        def cancelled():
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            cancelled()


class TestArgumentsAndPrefix:
    def test_bound_arguments_with_defaults(self, caplog):
        @log_exception()
        def invoke(url: str, timeout: int = 300):
            raise TimeoutError("too slow")

        invoke("http://runner.local")

        assert "url='http://runner.local'" in caplog.text
        assert "timeout=300" in caplog.text

    def test_self_is_not_logged(self, caplog):
        class Storage:
            def __repr__(self):
                return "<Storage>"

            @log_exception("Remove {path}")
            def remove(self, path: str):
                raise PermissionError("read-only")

        Storage().remove("reports/r.html")

        assert "Remove reports/r.html: PermissionError" in caplog.text
        assert "<Storage>" not in caplog.text

    def test_prefix_attribute_access(self, caplog, make_snapshot):
        @log_exception("Error notification email for schedule #{schedule.id}")
        def notify(schedule: ScheduleSnapshot):
            raise RuntimeError("boom")

        notify(make_snapshot(schedule_id=12))

        assert "Error notification email for schedule #12:" in caplog.text

    def test_missing_prefix_parameter_falls_back(self, caplog):
        @log_exception("Schedule #{schedule_id}")
        def run(test_run_id: int):
            raise ValueError("boom")

        run(3)

        assert "Failed to format prefix" in caplog.text
        assert "Schedule #{schedule_id}: ValueError: boom" in caplog.text

    def test_binding_failure_falls_back_to_raw_args(self, caplog):
        @log_exception("Bind")
        def single(value: int):
            raise ValueError("boom")

        assert single(1, 2) is None  # type: ignore[call-arg]
        assert "Failed to bind arguments" in caplog.text
        assert "args=(1, 2)" in caplog.text


class TestLogLevel:
    def test_warning_level_without_traceback(self, caplog):
        @log_exception("Delete old asset", level=logging.WARNING)
        def delete(path: str):
            raise FileNotFoundError("gone")

        delete("uploads/old.json")

        record = next(r for r in caplog.records if "Delete old asset" in r.message)
        assert record.levelno == logging.WARNING
        assert record.exc_info is None

    def test_error_level_includes_traceback(self, caplog):
        @log_exception("Generate report")
        def generate():
            raise RuntimeError("renderer crashed")

        generate()

        record = next(r for r in caplog.records if "Generate report" in r.message)
        assert record.levelno == logging.ERROR
        assert record.exc_info is not None

    def test_log_location_points_at_caller(self, caplog):
        @log_exception()
        def failing_operation():
            raise ValueError("boom")

        failing_operation()

        record = caplog.records[-1]
        assert record.funcName == "test_log_location_points_at_caller"
