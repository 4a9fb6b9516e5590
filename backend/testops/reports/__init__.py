from .generator import ReportGenerator
from .summary import ResultStatus, classify_result, describe_result, display_test_type

__all__ = [
    "ReportGenerator",
    "ResultStatus",
    "classify_result",
    "describe_result",
    "display_test_type",
]
