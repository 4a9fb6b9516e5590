"""
Scheduled test CRUD gateway.

Every write keeps the cron registry consistent with the database: a created
schedule is registered, an updated one is replaced and a deleted one is
unregistered. Test assets are stored under ``uploads/schedule/<sub_type>``.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..db.crud.project import get_project_by_id
from ..db.crud.scheduled_test import (
    create_scheduled_test,
    delete_scheduled_test,
    get_all_scheduled_tests,
    get_scheduled_test_by_id,
    update_scheduled_test,
)
from ..db.crud.test_run import get_test_runs_for_schedule
from ..db.database import get_async_session
from ..errors import (
    MissingTestAssetError,
    ProjectNotFoundError,
    ScheduleNotFoundError,
)
from ..logger import log_exception, logger
from ..models import (
    ScheduledTest,
    ScheduledTestCreate,
    ScheduledTestUpdate,
    TestRun,
    TestSubType,
)
from ..storage import LocalStorage
from .manager import ScheduledTestManager

UPLOAD_DIR = "uploads/schedule"


@dataclass(frozen=True)
class AssetUpload:
    """A test asset file received with a create or update request."""

    filename: str
    content: bytes


class ScheduledTestService:
    def __init__(
        self,
        manager: ScheduledTestManager,
        storage: LocalStorage,
        session_factory: Callable[[], AsyncSession] = get_async_session,
    ):
        self.manager = manager
        self.storage = storage
        self.session_factory = session_factory

    async def create(
        self, data: ScheduledTestCreate, upload: Optional[AssetUpload] = None
    ) -> ScheduledTest:
        """
        Persist a new schedule and register its cron job.

        Raises:
            MissingTestAssetError: If no file was uploaded for a sub type that needs one
            ProjectNotFoundError: If the project does not exist
        """
        if upload is None and data.sub_type != TestSubType.QUICK:
            raise MissingTestAssetError(data.sub_type.value)

        async with self.session_factory() as session:
            if await get_project_by_id(session, data.project_id) is None:
                raise ProjectNotFoundError(data.project_id)

            input_file_path = None
            if upload is not None:
                input_file_path = await self._store_asset(data.sub_type, upload)

            try:
                schedule = await create_scheduled_test(
                    session,
                    ScheduledTest(**data.model_dump(), input_file_path=input_file_path),
                )
            except Exception:
                if input_file_path:
                    await self._delete_asset(input_file_path)
                raise
            # Reload so the joined project is available to the cron snapshot
            schedule = await get_scheduled_test_by_id(session, schedule.id)

        assert schedule is not None
        logger.info(
            f"Created scheduled test #{schedule.id} for project {schedule.project_id} "
            f"('{schedule.cron_expression}')"
        )
        self.manager.register(schedule)
        return schedule

    async def update(
        self,
        schedule_id: int,
        changes: ScheduledTestUpdate,
        upload: Optional[AssetUpload] = None,
    ) -> ScheduledTest:
        """
        Apply changes to a schedule and replace its cron job.

        Raises:
            ScheduleNotFoundError: If the schedule does not exist
        """
        async with self.session_factory() as session:
            existing = await get_scheduled_test_by_id(session, schedule_id)
            if existing is None:
                raise ScheduleNotFoundError(schedule_id)

            values = changes.model_dump(exclude_unset=True)
            new_project_id = values.get("project_id")
            if new_project_id not in (None, existing.project_id):
                if await get_project_by_id(session, new_project_id) is None:
                    raise ProjectNotFoundError(new_project_id)

            previous_asset = existing.input_file_path
            if upload is not None:
                sub_type = values.get("sub_type") or existing.sub_type
                values["input_file_path"] = await self._store_asset(sub_type, upload)

            try:
                schedule = await update_scheduled_test(session, schedule_id, values)
            except Exception:
                if upload is not None:
                    await self._delete_asset(values["input_file_path"])
                raise

        if schedule is None:
            if upload is not None:
                await self._delete_asset(values["input_file_path"])
            raise ScheduleNotFoundError(schedule_id)

        if upload is not None and previous_asset:
            await self._delete_asset(previous_asset)

        logger.info(f"Updated scheduled test #{schedule_id}: {sorted(values)}")
        self.manager.replace(schedule)
        return schedule

    async def delete(self, schedule_id: int) -> None:
        """
        Delete a schedule, its stored asset and its cron job.

        Raises:
            ScheduleNotFoundError: If the schedule does not exist
        """
        async with self.session_factory() as session:
            existing = await get_scheduled_test_by_id(session, schedule_id)
            if existing is None:
                raise ScheduleNotFoundError(schedule_id)

            if existing.input_file_path:
                await self._delete_asset(existing.input_file_path)

            await delete_scheduled_test(session, schedule_id)

        self.manager.unregister(schedule_id)
        logger.info(f"Deleted scheduled test #{schedule_id}")

    async def get(self, schedule_id: int) -> ScheduledTest:
        async with self.session_factory() as session:
            schedule = await get_scheduled_test_by_id(session, schedule_id)
        if schedule is None:
            raise ScheduleNotFoundError(schedule_id)
        return schedule

    async def list_all(self, user_id: Optional[int] = None) -> list[ScheduledTest]:
        async with self.session_factory() as session:
            return await get_all_scheduled_tests(session, user_id=user_id)

    async def get_test_runs(self, schedule_id: int, limit: int = 50) -> list[TestRun]:
        """Runs triggered by a schedule, newest first."""
        async with self.session_factory() as session:
            if await get_scheduled_test_by_id(session, schedule_id) is None:
                raise ScheduleNotFoundError(schedule_id)
            return await get_test_runs_for_schedule(session, schedule_id, limit)

    async def get_next_run_time(self, schedule_id: int) -> Optional[datetime]:
        """
        Next fire time of a schedule, or None if it has no live cron job.

        Raises:
            ScheduleNotFoundError: If the schedule does not exist
        """
        await self.get(schedule_id)
        return self.manager.get_next_run_time(schedule_id)

    async def _store_asset(self, sub_type: TestSubType, upload: AssetUpload) -> str:
        return await self.storage.save_upload(
            f"{UPLOAD_DIR}/{TestSubType(sub_type).value}",
            upload.filename,
            upload.content,
        )

    @log_exception("Could not delete stored asset {path}", level=logging.WARNING)
    async def _delete_asset(self, path: str) -> None:
        if not await self.storage.delete(path):
            logger.warning(f"Stored asset {path} was already gone")
