from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from .utils.cron import validate_cron_expression


class TZDatetime(TypeDecorator):
    """Custom DateTime type that ensures timezone-aware datetimes."""

    impl = DateTime(timezone=True)

    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is None:
            raise ValueError(
                "Naive datetime is not allowed. Please provide a timezone-aware datetime."
            )
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            # Assume UTC if no timezone info is present
            return value.replace(tzinfo=timezone.utc)
        return value


class Base(AsyncAttrs, DeclarativeBase):
    """SQLAlchemy declarative base for all ORM models with async support."""

    pass


class TestCategory(str, Enum):
    __test__ = False

    API = "api"
    PERF = "perf"


class TestSubType(str, Enum):
    """Kind of test asset a schedule or run executes."""

    __test__ = False

    POSTMAN = "postman"
    QUICK = "quick"
    SCRIPT = "script"


class Project(Base):
    """Project table ORM model."""

    __tablename__ = "project"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(String(1024))
    created_at: Mapped[datetime] = mapped_column(
        TZDatetime(), default=lambda: datetime.now(timezone.utc)
    )


class ScheduledTest(Base):
    """Recurring test definition driving one cron job."""

    __tablename__ = "scheduled_test"
    __test__ = False

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    project_id: Mapped[int] = mapped_column(ForeignKey("project.id"), index=True)
    category: Mapped[TestCategory] = mapped_column(SQLAlchemyEnum(TestCategory))
    sub_type: Mapped[TestSubType] = mapped_column(SQLAlchemyEnum(TestSubType))
    cron_expression: Mapped[str] = mapped_column(String(100))
    email_to: Mapped[Optional[str]] = mapped_column(String(255))
    config_json: Mapped[Optional[dict]] = mapped_column(JSON)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    last_run_at: Mapped[Optional[datetime]] = mapped_column(TZDatetime())
    input_file_path: Mapped[Optional[str]] = mapped_column(String(1024))
    created_at: Mapped[datetime] = mapped_column(
        TZDatetime(), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        TZDatetime(),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    project: Mapped[Project] = relationship(lazy="joined")


class TestRun(Base):
    """One execution of a test, ad hoc or triggered by a schedule."""

    __tablename__ = "test_run"
    __test__ = False
    __table_args__ = (
        Index("idx_test_run_schedule_time", "scheduled_test_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(ForeignKey("project.id"), index=True)
    scheduled_test_id: Mapped[Optional[int]] = mapped_column(Integer)
    category: Mapped[TestCategory] = mapped_column(SQLAlchemyEnum(TestCategory))
    sub_type: Mapped[TestSubType] = mapped_column(SQLAlchemyEnum(TestSubType))
    input_file_path: Mapped[Optional[str]] = mapped_column(String(1024))
    summary_path: Mapped[Optional[str]] = mapped_column(String(1024))
    raw_result_path: Mapped[Optional[str]] = mapped_column(String(1024))
    created_at: Mapped[datetime] = mapped_column(
        TZDatetime(), default=lambda: datetime.now(timezone.utc)
    )

    project: Mapped[Project] = relationship(lazy="joined")


class TestRunDetail(Base):
    """Structured per-request or per-metric result row of a test run."""

    __tablename__ = "test_run_detail"
    __test__ = False

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    test_run_id: Mapped[int] = mapped_column(
        ForeignKey("test_run.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String(255))
    data: Mapped[dict] = mapped_column(JSON, default=dict)


# Pydantic models for request/response serialization


class ScheduledTestBase(BaseModel):
    project_id: int
    category: TestCategory
    sub_type: TestSubType
    cron_expression: str
    email_to: Optional[str] = None
    config_json: Optional[dict[str, Any]] = None
    is_active: bool = True

    @field_validator("cron_expression")
    @classmethod
    def check_cron_expression(cls, value: str) -> str:
        return validate_cron_expression(value)


class ScheduledTestCreate(ScheduledTestBase):
    """Scheduled test creation model with validation."""

    user_id: int


class ScheduledTestUpdate(BaseModel):
    """Partial update; unset fields keep their stored value."""

    project_id: Optional[int] = None
    category: Optional[TestCategory] = None
    sub_type: Optional[TestSubType] = None
    cron_expression: Optional[str] = None
    email_to: Optional[str] = None
    config_json: Optional[dict[str, Any]] = None
    is_active: Optional[bool] = None

    @field_validator("cron_expression")
    @classmethod
    def check_cron_expression(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return validate_cron_expression(value)


class ScheduledTestPublic(BaseModel):
    """Scheduled test model for API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    project_id: int
    category: TestCategory
    sub_type: TestSubType
    cron_expression: str
    email_to: Optional[str] = None
    config_json: Optional[dict[str, Any]] = None
    is_active: bool
    last_run_at: Optional[datetime] = None
    input_file_path: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class TestRunPublic(BaseModel):
    __test__ = False

    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: int
    scheduled_test_id: Optional[int] = None
    category: TestCategory
    sub_type: TestSubType
    summary_path: Optional[str] = None
    raw_result_path: Optional[str] = None
    created_at: datetime


class TestRunDetailResponse(BaseModel):
    __test__ = False

    test_run: TestRunPublic
    project_name: Optional[str] = None
    summary: dict[str, Any]
    details: list[dict[str, Any]]
    raw_result: dict[str, Any]
