"""
Cron expression validation and trigger construction.
"""

import re

from apscheduler.triggers.cron import CronTrigger

from ..errors import InvalidCronExpressionError

_CRON_FIELD = re.compile(r"^[\d*/,\-A-Za-z]+$")


def build_cron_trigger(cron: str) -> CronTrigger:
    """
    Build an APScheduler trigger from a 5-field cron expression.

    Args:
        cron: Cron expression (minute hour day month day_of_week)

    Returns:
        CronTrigger for the expression

    Raises:
        InvalidCronExpressionError: If the expression is malformed or out of range
    """
    cron_parts = cron.strip().split()
    if len(cron_parts) != 5:
        raise InvalidCronExpressionError(
            "Cron expression must have exactly 5 fields (minute hour day month day_of_week)"
        )

    for part in cron_parts:
        if not _CRON_FIELD.match(part):
            raise InvalidCronExpressionError(
                f"Invalid cron field '{part}' in expression '{cron}'"
            )

    try:
        return CronTrigger(
            minute=cron_parts[0],
            hour=cron_parts[1],
            day=cron_parts[2],
            month=cron_parts[3],
            day_of_week=cron_parts[4],
        )
    except ValueError as e:
        raise InvalidCronExpressionError(f"Invalid cron expression '{cron}': {e}")


def validate_cron_expression(cron: str) -> str:
    """Return the normalized expression, raising if it cannot be scheduled."""
    build_cron_trigger(cron)
    return " ".join(cron.split())
