"""
Email notifications for scheduled test runs.

Three mutually exclusive messages exist for one scheduled firing: the test run
could not be started, the report is ready, or the test ran but its report
could not be generated. Every send returns a success flag and never raises.
"""

import re
import smtplib
from dataclasses import dataclass
from datetime import datetime
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from pathlib import Path, PurePosixPath
from typing import List, Optional

from asyncer import asyncify
from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..config import SMTPSettings
from ..executions import ExecutionDetail
from ..logger import logger
from ..reports.summary import (
    STATUS_MARKERS,
    classify_result,
    describe_result,
    display_test_type,
)
from ..scheduling.types import ScheduleSnapshot
from ..storage import LocalStorage

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_CONTENT_TYPES = {
    ".pdf": ("application", "pdf"),
    ".html": ("text", "html"),
}


@dataclass(frozen=True)
class EmailAttachment:
    filename: str
    content: bytes
    maintype: str = "application"
    subtype: str = "octet-stream"


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_PATTERN.match(email))


def format_schedule_time(value: Optional[datetime]) -> str:
    return value.strftime("%d/%m/%Y %H:%M:%S") if value else ""


class EmailNotifier:
    """Sends scheduled test notifications over SMTP."""

    def __init__(self, smtp: SMTPSettings, storage: LocalStorage):
        self.smtp = smtp
        self.storage = storage
        templates_dir = Path(__file__).parent / "templates"
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(["html"]),
        )

    async def send_test_run_failure(
        self, recipient: str, schedule: ScheduleSnapshot, error: str
    ) -> bool:
        """Notify that the scheduled test could not be run."""
        subject = (
            f"🚨 FAILED - Scheduled Test: "
            f"{format_schedule_time(schedule.created_at) or f'#{schedule.id}'}"
        )
        html = self._render(
            "test_run_failure.html",
            schedule=schedule,
            error=error,
        )
        return await self.send_mail(recipient, subject, html)

    async def send_report_ready(
        self,
        recipient: str,
        schedule: ScheduleSnapshot,
        report_path: str,
        detail: ExecutionDetail,
    ) -> bool:
        """Send the generated report of a scheduled test run as an attachment."""
        try:
            content = await self.storage.read_bytes(report_path)
        except OSError as e:
            logger.error(f"Report file {report_path} could not be read: {e}")
            return False

        filename = PurePosixPath(report_path).name
        maintype, subtype = _CONTENT_TYPES.get(
            PurePosixPath(report_path).suffix.lower(), ("application", "octet-stream")
        )

        sub_type = detail.sub_type or schedule.sub_type
        status = classify_result(detail.summary, sub_type)
        project_name = detail.project_name or schedule.project_name or "Unknown Project"
        subject = (
            f"{STATUS_MARKERS.get(status, '📊')} {display_test_type(sub_type)} "
            f"Report - {project_name}"
        )
        html = self._render(
            "report_ready.html",
            schedule=schedule,
            project_name=project_name,
            test_run_id=detail.test_run_id,
            status=status.value,
            description=describe_result(detail.summary, sub_type),
        )
        attachment = EmailAttachment(
            filename=filename, content=content, maintype=maintype, subtype=subtype
        )
        return await self.send_mail(recipient, subject, html, [attachment])

    async def send_report_generation_failure(
        self, recipient: str, schedule: ScheduleSnapshot, error: str
    ) -> bool:
        """Notify that the test ran but its report could not be produced."""
        subject = (
            f"⚠️ Report Generation Failed - "
            f"{format_schedule_time(schedule.created_at) or f'#{schedule.id}'}"
        )
        html = self._render(
            "report_generation_failure.html",
            schedule=schedule,
            error=error,
        )
        return await self.send_mail(recipient, subject, html)

    async def send_mail(
        self,
        to: str,
        subject: str,
        html: str,
        attachments: Optional[List[EmailAttachment]] = None,
    ) -> bool:
        """
        Build and deliver one email.

        Returns:
            True if the SMTP server accepted the message
        """
        recipients = [address.strip() for address in to.split(",") if address.strip()]
        invalid = [address for address in recipients if not is_valid_email(address)]
        if not recipients or invalid:
            logger.error(f"Failed to send email to {to}: invalid address {invalid}")
            return False

        message = self._build_message(recipients, subject, html, attachments or [])
        try:
            await asyncify(self._deliver)(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to}: {e}", exc_info=True)
            return False

        logger.info(f"Email sent successfully to {to}: {subject}")
        return True

    def _render(self, template_name: str, **context) -> str:
        template = self.env.get_template(template_name)
        return template.render(
            display_test_type=display_test_type,
            schedule_time=format_schedule_time(context["schedule"].created_at),
            now=datetime.now().strftime("%d/%m/%Y %H:%M:%S"),
            **context,
        )

    def _build_message(
        self,
        recipients: List[str],
        subject: str,
        html: str,
        attachments: List[EmailAttachment],
    ) -> MIMEMultipart:
        message = MIMEMultipart("mixed")
        message["From"] = formataddr(
            (self.smtp.from_name, self.smtp.from_address or self.smtp.username or "")
        )
        message["To"] = ", ".join(recipients)
        message["Subject"] = subject
        message["X-Test-Automation"] = "true"
        message.attach(MIMEText(html, "html", "utf-8"))

        for attachment in attachments:
            part = MIMEApplication(attachment.content, _subtype=attachment.subtype)
            if attachment.maintype != "application":
                part.replace_header(
                    "Content-Type", f"{attachment.maintype}/{attachment.subtype}"
                )
            part.add_header(
                "Content-Disposition", "attachment", filename=attachment.filename
            )
            message.attach(part)
        return message

    def _deliver(self, message: MIMEMultipart) -> None:
        if self.smtp.use_ssl:
            server = smtplib.SMTP_SSL(
                self.smtp.host, self.smtp.port, timeout=self.smtp.timeout_seconds
            )
        else:
            server = smtplib.SMTP(
                self.smtp.host, self.smtp.port, timeout=self.smtp.timeout_seconds
            )

        with server:
            if self.smtp.use_tls and not self.smtp.use_ssl:
                server.starttls()
            if self.smtp.username and self.smtp.password:
                server.login(self.smtp.username, self.smtp.password)
            server.send_message(message)
