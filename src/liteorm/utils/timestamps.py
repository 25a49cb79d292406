"""
liteorm - Timestamp Utilities
Formats local time for auto-create, auto-update and soft-delete columns.
"""

from datetime import datetime
from typing import Optional

from .config import TIME_FORMAT

TIME_FORMATS = ('datetime', 'date', 'time', 'timestamp', 'iso')

_current_format = TIME_FORMAT if TIME_FORMAT in TIME_FORMATS else 'datetime'


def set_time_format(time_format: str) -> None:
    """
    Set the global format used when stamping timestamp columns.

    Args:
        time_format: One of 'datetime', 'date', 'time', 'timestamp', 'iso'

    Raises:
        ValueError: If the format is unknown
    """
    global _current_format
    if time_format not in TIME_FORMATS:
        raise ValueError(f"Unknown time format '{time_format}', expected one of {TIME_FORMATS}")
    _current_format = time_format


def get_time_format() -> str:
    return _current_format


def format_timestamp(moment: datetime, time_format: str) -> str:
    """
    Render a datetime in one of the supported formats.

    Args:
        moment: The datetime to render
        time_format: Format name

    Returns:
        Formatted string ('timestamp' is epoch milliseconds)
    """
    if time_format == 'date':
        return moment.strftime('%Y-%m-%d')
    if time_format == 'time':
        return moment.strftime('%H:%M:%S')
    if time_format == 'timestamp':
        return str(int(moment.timestamp() * 1000))
    if time_format == 'iso':
        return moment.isoformat()
    return moment.strftime('%Y-%m-%d %H:%M:%S')


def get_local_time_string(time_format: Optional[str] = None) -> str:
    """Current local time in the given (or global) format."""
    return format_timestamp(datetime.now(), time_format or _current_format)
