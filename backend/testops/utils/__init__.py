"""
Utility functions shared across the TestOps backend.
"""

from .cron import build_cron_trigger, validate_cron_expression

__all__ = ["build_cron_trigger", "validate_cron_expression"]
