"""
Report generator for scheduled test runs.

Renders an HTML report from the full execution detail and stores it in the
artifact storage, returning the storage path of the document.
"""

from datetime import datetime, timezone
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..errors import ReportGenerationError
from ..executions import ExecutionDetail
from ..logger import logger
from ..storage import LocalStorage
from .summary import classify_result, describe_result, display_test_type, summary_metrics

# Detail rows beyond this are summarized in the report instead of listed
MAX_DETAIL_ROWS = 200


class ReportGenerator:
    """Generates and stores test run reports."""

    def __init__(self, storage: LocalStorage, reports_dir: str = "reports"):
        self.storage = storage
        self.reports_dir = reports_dir.strip("/")
        self.env = Environment(
            loader=FileSystemLoader(str(Path(__file__).parent / "templates")),
            autoescape=select_autoescape(["html"]),
        )

    def render(self, detail: ExecutionDetail) -> str:
        """Render the report document of a test run as HTML."""
        test_run = detail.test_run
        if test_run is None:
            raise ReportGenerationError(
                f"No test run detail found for ID: {detail.test_run_id}"
            )

        detail_columns: list[str] = []
        for row in detail.details[:MAX_DETAIL_ROWS]:
            for key in row:
                if key not in detail_columns:
                    detail_columns.append(key)

        template = self.env.get_template("report.html")
        return template.render(
            test_run=test_run,
            project_name=detail.project_name or "Unknown Project",
            test_type=display_test_type(test_run.sub_type),
            status=classify_result(detail.summary, test_run.sub_type).value,
            description=describe_result(detail.summary, test_run.sub_type),
            metrics=summary_metrics(detail.summary),
            detail_columns=detail_columns,
            detail_rows=detail.details[:MAX_DETAIL_ROWS],
            hidden_rows=max(len(detail.details) - MAX_DETAIL_ROWS, 0),
            generated_at=datetime.now(timezone.utc),
        )

    async def generate(self, detail: ExecutionDetail) -> str:
        """
        Render and store the report of a test run.

        Returns:
            Storage path of the generated report

        Raises:
            ReportGenerationError: If the detail has no test run or rendering fails
        """
        try:
            html = self.render(detail)
        except ReportGenerationError:
            raise
        except Exception as e:
            raise ReportGenerationError(
                f"Failed to render report for test run #{detail.test_run_id}: {e}"
            ) from e

        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
        path = (
            f"{self.reports_dir}/test_run_{detail.test_run_id}_{timestamp}.html"
        )
        stored_path = await self.storage.write_text(path, html)
        logger.info(f"Stored report for test run #{detail.test_run_id} at {stored_path}")
        return stored_path
