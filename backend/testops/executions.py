"""
Read side of the execution store: assembles the full detail of one test run.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from .db.crud.test_run import get_test_run_by_id, get_test_run_detail_rows
from .db.database import get_async_session
from .errors import ExecutionNotFoundError
from .logger import logger
from .models import TestRun, TestSubType
from .storage import LocalStorage


@dataclass
class ExecutionDetail:
    """
    Everything known about one test run.

    ``test_run`` is None when no run exists with the requested id. Summary and
    raw result are read from storage; a missing or unreadable file yields an
    empty value rather than an error.
    """

    test_run_id: int
    test_run: Optional[TestRun] = None
    project_name: Optional[str] = None
    summary: Any = field(default_factory=dict)
    details: list[dict[str, Any]] = field(default_factory=list)
    raw_result: Any = field(default_factory=dict)

    @property
    def found(self) -> bool:
        return self.test_run is not None

    @property
    def sub_type(self) -> Optional[TestSubType]:
        return self.test_run.sub_type if self.test_run else None


class ExecutionStore:
    """Loads test run rows and their stored artifacts."""

    def __init__(
        self,
        storage: LocalStorage,
        session_factory: Callable[[], AsyncSession] = get_async_session,
    ):
        self.storage = storage
        self.session_factory = session_factory

    async def get_details(self, test_run_id: int) -> ExecutionDetail:
        async with self.session_factory() as session:
            test_run = await get_test_run_by_id(session, test_run_id)
            if test_run is None:
                return ExecutionDetail(test_run_id=test_run_id)
            rows = await get_test_run_detail_rows(session, test_run_id)

        return ExecutionDetail(
            test_run_id=test_run_id,
            test_run=test_run,
            project_name=test_run.project.name if test_run.project else None,
            summary=await self._load_artifact(test_run.summary_path, test_run_id),
            details=[{"name": row.name, **(row.data or {})} for row in rows],
            raw_result=await self._load_artifact(
                test_run.raw_result_path, test_run_id
            ),
        )

    async def require_details(self, test_run_id: int) -> ExecutionDetail:
        """
        Like get_details, but for callers that need the run to exist.

        Raises:
            ExecutionNotFoundError: If no run exists with the id
        """
        detail = await self.get_details(test_run_id)
        if not detail.found:
            raise ExecutionNotFoundError(test_run_id)
        return detail

    async def _load_artifact(self, path: Optional[str], test_run_id: int) -> Any:
        if not path or not await self.storage.exists(path):
            return {}
        try:
            return await self.storage.read_json(path)
        except (OSError, ValueError) as e:
            logger.error(f"Error reading artifact {path} for test run #{test_run_id}: {e}")
            return {}
