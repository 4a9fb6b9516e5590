from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from .config import settings
from .db.database import init_db
from .executions import ExecutionStore
from .logger import logger
from .notifications import EmailNotifier
from .reports import ReportGenerator
from .routers import scheduled_tests, test_runs
from .scheduling import (
    ReportEpisode,
    RetryPolicy,
    ScheduledTestManager,
    ScheduledTestService,
    TestInvoker,
)
from .storage import LocalStorage


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up and initializing the database...")
    await init_db()

    storage = LocalStorage(settings.storage_path)
    executions = ExecutionStore(storage)
    notifier = EmailNotifier(settings.smtp, storage)
    policy = RetryPolicy.from_settings(settings.scheduling)
    manager = ScheduledTestManager(
        invoker=TestInvoker(
            settings.test_run_api_base,
            timeout=settings.scheduling.invoke_timeout_seconds,
        ),
        episode=ReportEpisode(
            executions, storage, ReportGenerator(storage), notifier, policy=policy
        ),
        notifier=notifier,
        policy=policy,
        allow_overlapping_runs=settings.scheduling.allow_overlapping_runs,
    )

    api_app.state.execution_store = executions
    api_app.state.schedule_manager = manager
    api_app.state.schedule_service = ScheduledTestService(manager, storage)

    logger.info("Initializing scheduled test manager...")
    await manager.initialize()
    logger.info("Startup complete.")
    yield

    logger.info("Shutting down scheduled test manager...")
    await manager.shutdown()


api_app = FastAPI(root_path="/api")

api_app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

api_app.include_router(scheduled_tests.router)
api_app.include_router(test_runs.router)

app = FastAPI(lifespan=lifespan, title="TestOps Scheduler")
app.mount("/api", api_app)
