"""
Classification and flattening of test run summaries for reports and emails.
"""

from enum import Enum
from typing import Any, Optional

from ..models import TestSubType


class ResultStatus(str, Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    WARNING = "WARNING"
    FAILED = "FAILED"
    COMPLETED = "COMPLETED"
    NO_DATA = "NO_DATA"


TEST_TYPE_DISPLAY_NAMES = {
    TestSubType.POSTMAN: "API Test",
    TestSubType.QUICK: "Performance Test",
    TestSubType.SCRIPT: "Load Test",
}

STATUS_MARKERS = {
    ResultStatus.EXCELLENT: "✅",
    ResultStatus.GOOD: "✅",
    ResultStatus.COMPLETED: "✅",
    ResultStatus.WARNING: "⚠️",
    ResultStatus.NO_DATA: "⚠️",
    ResultStatus.FAILED: "❌",
}


def display_test_type(sub_type: Optional[TestSubType | str]) -> str:
    try:
        return TEST_TYPE_DISPLAY_NAMES[TestSubType(sub_type)]
    except ValueError:
        return "Test"


def _number(value: Any) -> float:
    """Read a metric that is either a bare number or a ``{"value": n}`` object."""
    if isinstance(value, dict):
        value = value.get("value")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def _summary_dict(summary: Any) -> dict[str, Any]:
    # k6 summaries are sometimes stored as a list of {"name": ..., "val": ...}
    if isinstance(summary, list):
        return {
            item["name"]: item.get("val")
            for item in summary
            if isinstance(item, dict) and "name" in item
        }
    return summary if isinstance(summary, dict) else {}


def classify_result(summary: Any, sub_type: Optional[TestSubType | str]) -> ResultStatus:
    """
    Grade a test run from its summary.

    API tests are graded on the assertion pass ratio, performance and load
    tests on the request error rate.
    """
    data = _summary_dict(summary)

    if sub_type == TestSubType.POSTMAN:
        passes = _number(data.get("passes"))
        failures = _number(data.get("failures"))
        total = passes + failures
        if total == 0:
            return ResultStatus.NO_DATA
        success_rate = passes / total * 100
        if success_rate >= 95:
            return ResultStatus.EXCELLENT
        if success_rate >= 90:
            return ResultStatus.GOOD
        if success_rate >= 70:
            return ResultStatus.WARNING
        return ResultStatus.FAILED

    if sub_type in (TestSubType.QUICK, TestSubType.SCRIPT):
        error_rate = _number(data.get("error_rate"))
        if error_rate == 0:
            return ResultStatus.EXCELLENT
        if error_rate < 0.01:
            return ResultStatus.GOOD
        if error_rate < 0.05:
            return ResultStatus.WARNING
        return ResultStatus.FAILED

    return ResultStatus.COMPLETED


def describe_result(summary: Any, sub_type: Optional[TestSubType | str]) -> str:
    """One-line human readable summary of a test run."""
    data = _summary_dict(summary)

    if sub_type == TestSubType.POSTMAN:
        passes = int(_number(data.get("passes")))
        failures = int(_number(data.get("failures")))
        return f"{passes} passes, {failures} failures"

    if sub_type in (TestSubType.QUICK, TestSubType.SCRIPT):
        error_rate = _number(data.get("error_rate"))
        duration = _number(data.get("http_req_duration_p95"))
        return f"Error rate: {error_rate * 100:.2f}%, P95 duration: {duration:.2f}ms"

    return "Test completed successfully"


def summary_metrics(summary: Any) -> list[tuple[str, str]]:
    """Flatten a summary into (metric, value) rows for tabular display."""
    rows: list[tuple[str, str]] = []

    def visit(prefix: str, value: Any) -> None:
        if isinstance(value, dict):
            if set(value) == {"value"}:
                visit(prefix, value["value"])
                return
            for key, sub_value in value.items():
                visit(f"{prefix}.{key}" if prefix else str(key), sub_value)
        elif isinstance(value, float):
            rows.append((prefix, f"{value:.2f}"))
        elif isinstance(value, list):
            rows.append((prefix, f"{len(value)} items"))
        else:
            rows.append((prefix, str(value)))

    visit("", _summary_dict(summary))
    return rows
