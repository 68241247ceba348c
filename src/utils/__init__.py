"""
Utilidades de MAGIS.
"""

from .datetime_utils import ensure_utc, format_display, parse_timestamp, to_display_tz, utc_now
from .logger import ExamSessionLogger, get_logger, log_function_calls, setup_logging

__all__ = [
    "ExamSessionLogger",
    "ensure_utc",
    "format_display",
    "get_logger",
    "log_function_calls",
    "parse_timestamp",
    "setup_logging",
    "to_display_tz",
    "utc_now",
]
