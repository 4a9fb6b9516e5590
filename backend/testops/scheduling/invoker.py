"""
Test invoker: triggers a test run through the execution endpoint of a sub type.
"""

from enum import Enum
from typing import Optional

import httpx

from ..errors import TestInvocationError, UnsupportedSubTypeError
from ..logger import logger
from ..models import TestSubType
from .types import ScheduleSnapshot


class SubTypeEndpoint(str, Enum):
    """Execution endpoint path template for each test sub type."""

    POSTMAN = "/test-run/postman/{project_id}"
    QUICK = "/test-run/performance/quick/{project_id}"
    SCRIPT = "/test-run/performance/script/{project_id}"

    @classmethod
    def for_sub_type(cls, sub_type: TestSubType | str) -> "SubTypeEndpoint":
        try:
            return cls[TestSubType(sub_type).name]
        except (KeyError, ValueError):
            raise UnsupportedSubTypeError(sub_type)


class TestInvoker:
    """Starts test runs over HTTP and returns the id of the created run."""

    __test__ = False

    def __init__(
        self,
        base_url: str,
        timeout: float = 300.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def build_url(self, schedule: ScheduleSnapshot) -> str:
        endpoint = SubTypeEndpoint.for_sub_type(schedule.sub_type)
        path = endpoint.value.format(project_id=schedule.project_id)
        return f"{self.base_url}{path}?scheduleId={schedule.id}"

    async def invoke(self, schedule: ScheduleSnapshot) -> int:
        """
        POST to the execution endpoint of the schedule's sub type.

        Returns:
            The test_run_id reported by the endpoint

        Raises:
            UnsupportedSubTypeError: If the sub type has no endpoint
            TestInvocationError: On transport errors, timeouts, non-2xx responses
                or a response body without an integer test_run_id
        """
        url = self.build_url(schedule)
        logger.debug(f"Invoking test run for schedule #{schedule.id}: POST {url}")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.post(url)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TestInvocationError(
                f"Request failed with status code {e.response.status_code}: "
                f"{e.response.text[:500]}"
            ) from e
        except httpx.HTTPError as e:
            raise TestInvocationError(f"{type(e).__name__}: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise TestInvocationError(f"Malformed response body: {e}") from e

        test_run_id = data.get("test_run_id") if isinstance(data, dict) else None
        if not isinstance(test_run_id, int) or isinstance(test_run_id, bool):
            raise TestInvocationError(
                f"Response did not contain an integer test_run_id: {data!r}"
            )
        return test_run_id
