"""
Date helpers shared by the planner, the manager and the JSON output.

Input dates are ISO 8601 strings; naive values are taken as local time.
Output dates are ISO 8601 with the local UTC offset, "Z" when the offset is zero.
"""

from datetime import datetime
from typing import Optional

from dateutil import parser as date_parser

from eventkit_gateway.core.errors import ValidationError


def local_tzinfo():
    return datetime.now().astimezone().tzinfo


def parse_iso_datetime(value: str, option: str) -> datetime:
    """
    Parse an ISO 8601 string into a timezone-aware datetime.

    Args:
        value: ISO 8601 date or datetime string
        option: CLI option name used in the error message (e.g. "--start")

    Returns:
        Aware datetime (naive input is interpreted in the local timezone)

    Raises:
        ValidationError: If the string is not ISO 8601
    """
    try:
        dt = date_parser.isoparse(value.strip())
    except (ValueError, OverflowError, AttributeError):
        raise ValidationError(f"Invalid {option} date format. Use ISO8601 (e.g., 2026-02-01T09:00:00Z).")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=local_tzinfo())
    return dt


def format_local_iso(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime as local ISO 8601 with offset, or None."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=local_tzinfo())

    text = dt.astimezone().replace(microsecond=0).isoformat()
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text
