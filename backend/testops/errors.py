"""
Exception types raised by the scheduling and reporting subsystems.
"""


class TestOpsError(Exception):
    """Base class for all service errors."""

    __test__ = False


class InvalidCronExpressionError(TestOpsError, ValueError):
    """Cron expression is not a valid 5-field expression."""


class ScheduleNotFoundError(TestOpsError, LookupError):
    """No scheduled test exists with the given id."""

    def __init__(self, schedule_id: int):
        super().__init__(f"Scheduled test #{schedule_id} not found")
        self.schedule_id = schedule_id


class MissingTestAssetError(TestOpsError, ValueError):
    """A test asset upload is required for the given sub type."""

    def __init__(self, sub_type: str):
        super().__init__(f"File input is required for sub_type={sub_type}")
        self.sub_type = sub_type


class UnsupportedSubTypeError(TestOpsError, ValueError):
    """No execution endpoint is known for the given sub type."""

    def __init__(self, sub_type: object):
        super().__init__(f"No test execution endpoint for sub_type={sub_type!r}")
        self.sub_type = sub_type


class TestInvocationError(TestOpsError):
    """The test execution endpoint could not be called successfully."""


class ExecutionNotFoundError(TestOpsError, LookupError):
    """No test run exists with the given id."""

    def __init__(self, test_run_id: int):
        super().__init__(f"Test run #{test_run_id} not found")
        self.test_run_id = test_run_id


class ReportGenerationError(TestOpsError):
    """The report document could not be produced."""


class StoragePathError(TestOpsError, ValueError):
    """A storage path points outside the storage root."""


class ProjectNotFoundError(TestOpsError, LookupError):
    """No project exists with the given id."""

    def __init__(self, project_id: int):
        super().__init__(f"Project #{project_id} not found")
        self.project_id = project_id
