"""
Shared fixtures: temporary database, artifact storage and fake collaborators
for the scheduling pipeline.
"""

import tempfile
from pathlib import Path
from typing import Any, Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from testops.db.crud.project import create_project
from testops.executions import ExecutionDetail
from testops.models import Base, Project, TestCategory, TestRun, TestSubType
from testops.scheduling.types import ScheduleSnapshot
from testops.storage import LocalStorage


@pytest.fixture(scope="function")
async def session_maker():
    """Create a temporary SQLite database and yield its session factory."""
    temp_db = tempfile.NamedTemporaryFile(delete=False, suffix=".db")
    temp_db.close()

    engine = create_async_engine(f"sqlite+aiosqlite:///{temp_db.name}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    TestSessionLocal = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )

    yield TestSessionLocal

    await engine.dispose()
    Path(temp_db.name).unlink(missing_ok=True)


@pytest.fixture
async def project(session_maker) -> Project:
    async with session_maker() as session:
        return await create_project(session, Project(user_id=1, name="Checkout API"))


@pytest.fixture
def storage(tmp_path) -> LocalStorage:
    return LocalStorage(tmp_path / "storage")


class FakeSleep:
    """Records requested delays instead of sleeping."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeInvoker:
    def __init__(self, test_run_id: int = 42, error: Optional[Exception] = None):
        self.test_run_id = test_run_id
        self.error = error
        self.calls: list[ScheduleSnapshot] = []

    async def invoke(self, schedule: ScheduleSnapshot) -> int:
        self.calls.append(schedule)
        if self.error is not None:
            raise self.error
        return self.test_run_id


class FakeExecutions:
    """Returns the scripted details in order, repeating the last one."""

    def __init__(self, *details: ExecutionDetail):
        self.details = list(details)
        self.calls = 0

    async def get_details(self, test_run_id: int) -> ExecutionDetail:
        index = min(self.calls, len(self.details) - 1)
        self.calls += 1
        return self.details[index]


class FakeReportGenerator:
    """Fails the first ``failures`` calls, then returns a report path."""

    def __init__(self, failures: int = 0, path: str = "reports/test_run_42.html"):
        self.failures = failures
        self.path = path
        self.calls = 0

    async def generate(self, detail: ExecutionDetail) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError("renderer crashed")
        return self.path


class FakeNotifier:
    def __init__(self, result: bool = True):
        self.result = result
        self.sent: list[tuple[str, str, Any]] = []

    async def send_test_run_failure(self, recipient, schedule, error) -> bool:
        self.sent.append(("test_run_failure", recipient, error))
        return self.result

    async def send_report_ready(self, recipient, schedule, report_path, detail) -> bool:
        self.sent.append(("report_ready", recipient, report_path))
        return self.result

    async def send_report_generation_failure(self, recipient, schedule, error) -> bool:
        self.sent.append(("report_generation_failure", recipient, error))
        return self.result

    @property
    def kinds(self) -> list[str]:
        return [kind for kind, _, _ in self.sent]


def make_snapshot(
    schedule_id: int = 7,
    sub_type: TestSubType = TestSubType.POSTMAN,
    email_to: Optional[str] = "qa@example.com",
    is_active: bool = True,
    cron_expression: str = "0 2 * * *",
) -> ScheduleSnapshot:
    return ScheduleSnapshot(
        id=schedule_id,
        user_id=1,
        project_id=3,
        category=TestCategory.API,
        sub_type=sub_type,
        cron_expression=cron_expression,
        email_to=email_to,
        is_active=is_active,
        project_name="Checkout API",
    )


def ready_detail(
    test_run_id: int = 42, sub_type: TestSubType = TestSubType.POSTMAN
) -> ExecutionDetail:
    """Execution detail with a summary and one detail row, no stored files."""
    return ExecutionDetail(
        test_run_id=test_run_id,
        test_run=TestRun(
            id=test_run_id,
            project_id=3,
            category=TestCategory.API,
            sub_type=sub_type,
        ),
        project_name="Checkout API",
        summary={"passes": 10, "failures": 0},
        details=[{"name": "GET /health", "status": "passed"}],
    )


def empty_detail(
    test_run_id: int = 42, sub_type: TestSubType = TestSubType.POSTMAN
) -> ExecutionDetail:
    """Execution detail whose results have not been written yet."""
    detail = ready_detail(test_run_id, sub_type)
    detail.summary = {}
    detail.details = []
    return detail


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture(name="make_snapshot")
def make_snapshot_fixture():
    return make_snapshot


@pytest.fixture(name="ready_detail")
def ready_detail_fixture():
    return ready_detail


@pytest.fixture(name="empty_detail")
def empty_detail_fixture():
    return empty_detail


@pytest.fixture
def fakes():
    """The fake collaborator classes, for tests that configure their own."""

    class Fakes:
        Invoker = FakeInvoker
        Executions = FakeExecutions
        ReportGenerator = FakeReportGenerator
        Notifier = FakeNotifier
        Sleep = FakeSleep

    return Fakes
