"""
Readiness check for test run results.

A run is ready once every artifact it records is present in storage and the
summary and detail rows it is expected to have are non-empty.
"""

from ..executions import ExecutionDetail
from ..logger import logger
from ..models import TestSubType
from ..storage import LocalStorage

# Sub types whose runs always produce structured detail rows
DETAIL_ROW_SUB_TYPES = frozenset(
    {TestSubType.POSTMAN, TestSubType.QUICK, TestSubType.SCRIPT}
)


async def check_readiness(detail: ExecutionDetail, storage: LocalStorage) -> bool:
    """
    Decide whether a test run is fully materialized.

    Args:
        detail: Execution detail as fetched from the execution store
        storage: Artifact storage used to check recorded paths

    Returns:
        True only if all recorded artifacts exist, the summary is non-empty
        and, for sub types with detail rows, at least one row exists
    """
    test_run = detail.test_run
    if test_run is None:
        logger.debug(f"Test run #{detail.test_run_id} not found, not ready")
        return False

    checks: dict[str, bool] = {}

    if test_run.summary_path:
        checks["summary_file"] = await storage.exists(test_run.summary_path)

    if test_run.raw_result_path:
        checks["raw_result_file"] = await storage.exists(test_run.raw_result_path)

    checks["summary_data"] = bool(detail.summary)

    if test_run.sub_type in DETAIL_ROW_SUB_TYPES:
        checks["detail_rows"] = len(detail.details) > 0

    ready = all(checks.values())
    logger.debug(
        f"Test run #{detail.test_run_id} data ready check: {ready} "
        f"({sum(checks.values())}/{len(checks)} checks passed, {checks})"
    )
    return ready
