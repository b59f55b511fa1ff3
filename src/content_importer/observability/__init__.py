"""Observability - logging and run reports."""

from .logger import LogContext, clear_all_context, configure_logging, current_context
from .reporter import ImportReport, ReportGenerator

__all__ = [
    "ReportGenerator",
    "ImportReport",
    "configure_logging",
    "current_context",
    "clear_all_context",
    "LogContext",
]
