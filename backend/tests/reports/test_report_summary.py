"""
Test result classification used by report documents and email subjects.
"""

import pytest

from testops.models import TestSubType
from testops.reports.summary import (
    ResultStatus,
    classify_result,
    describe_result,
    display_test_type,
    summary_metrics,
)


class TestClassifyResult:
    @pytest.mark.parametrize(
        "passes,failures,expected",
        [
            (100, 0, ResultStatus.EXCELLENT),
            (95, 5, ResultStatus.EXCELLENT),
            (92, 8, ResultStatus.GOOD),
            (75, 25, ResultStatus.WARNING),
            (50, 50, ResultStatus.FAILED),
            (0, 0, ResultStatus.NO_DATA),
        ],
    )
    def test_api_tests_graded_on_pass_ratio(self, passes, failures, expected):
        summary = {"passes": passes, "failures": failures}

        assert classify_result(summary, TestSubType.POSTMAN) == expected

    @pytest.mark.parametrize(
        "error_rate,expected",
        [
            (0, ResultStatus.EXCELLENT),
            (0.005, ResultStatus.GOOD),
            (0.02, ResultStatus.WARNING),
            (0.2, ResultStatus.FAILED),
        ],
    )
    def test_performance_tests_graded_on_error_rate(self, error_rate, expected):
        assert classify_result({"error_rate": error_rate}, "quick") == expected
        assert (
            classify_result({"error_rate": {"value": error_rate}}, TestSubType.SCRIPT)
            == expected
        )

    def test_list_form_summary(self):
        summary = [{"name": "error_rate", "val": 0.02}, {"name": "vus", "val": 10}]

        assert classify_result(summary, TestSubType.QUICK) == ResultStatus.WARNING

    def test_unknown_sub_type_is_completed(self):
        assert classify_result({}, None) == ResultStatus.COMPLETED


class TestDescribeResult:
    def test_api_description(self):
        summary = {"passes": 9, "failures": 1}

        assert describe_result(summary, TestSubType.POSTMAN) == "9 passes, 1 failures"

    def test_performance_description(self):
        summary = {"error_rate": 0.0125, "http_req_duration_p95": 321.456}

        assert (
            describe_result(summary, TestSubType.QUICK)
            == "Error rate: 1.25%, P95 duration: 321.46ms"
        )

    def test_display_names(self):
        assert display_test_type(TestSubType.POSTMAN) == "API Test"
        assert display_test_type("script") == "Load Test"
        assert display_test_type(None) == "Test"


def test_summary_metrics_flattens_nested_values():
    summary = {
        "http_reqs": {"value": 120},
        "http_req_duration": {"avg": 12.3456, "p95": 40.0},
        "checks": [1, 2, 3],
    }

    assert summary_metrics(summary) == [
        ("http_reqs", "120"),
        ("http_req_duration.avg", "12.35"),
        ("http_req_duration.p95", "40.00"),
        ("checks", "3 items"),
    ]
