from typing import Annotated, Optional

from fastapi import Header, HTTPException, Request, status

from .config import settings
from .executions import ExecutionStore
from .scheduling import ScheduledTestService


def verify_api_token(authorization: Annotated[Optional[str], Header()] = None):
    """
    Require ``Authorization: Bearer <api_token>`` when an API token is configured.
    """
    if not settings.api_token:
        return

    scheme, _, given_token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not given_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if given_token != settings.api_token:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API token",
        )


def get_schedule_service(request: Request) -> ScheduledTestService:
    return request.app.state.schedule_service


def get_execution_store(request: Request) -> ExecutionStore:
    return request.app.state.execution_store
