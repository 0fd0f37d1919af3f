"""
Recurrence planner.

Turns the loosely structured --recurrence-* tokens into a RecurrenceRule.
Two parsing policies coexist:

- weekday tokens are strict: one unknown day name fails the whole rule
- month and numeric list tokens are lenient: bad entries are dropped

Pure functions only; nothing here touches the store.
"""

import logging
import re
from typing import Callable, List, Optional, Tuple

from eventkit_gateway.core.dates import parse_iso_datetime
from eventkit_gateway.core.errors import ValidationError
from eventkit_gateway.core.models import (
    Frequency,
    RecurrenceEnd,
    RecurrenceRule,
    RecurrenceSpec,
    Weekday,
    WeekdayOrdinal,
)

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = {
    "mon": Weekday.MONDAY, "monday": Weekday.MONDAY,
    "tue": Weekday.TUESDAY, "tuesday": Weekday.TUESDAY,
    "wed": Weekday.WEDNESDAY, "wednesday": Weekday.WEDNESDAY,
    "thu": Weekday.THURSDAY, "thursday": Weekday.THURSDAY,
    "fri": Weekday.FRIDAY, "friday": Weekday.FRIDAY,
    "sat": Weekday.SATURDAY, "saturday": Weekday.SATURDAY,
    "sun": Weekday.SUNDAY, "sunday": Weekday.SUNDAY,
}

MONTH_NAMES = {
    "jan": 1, "january": 1, "feb": 2, "february": 2, "mar": 3, "march": 3,
    "apr": 4, "april": 4, "may": 5, "jun": 6, "june": 6,
    "jul": 7, "july": 7, "aug": 8, "august": 8, "sep": 9, "september": 9,
    "oct": 10, "october": 10, "nov": 11, "november": 11, "dec": 12, "december": 12,
}

_INT_RE = re.compile(r"^[+-]?[0-9]+$")
_ORDINAL_PREFIX_RE = re.compile(r"^[+-]?[0-9]+")


def _split_tokens(text: str) -> List[str]:
    """Split on commas, trim, and skip empty tokens."""
    return [part.strip() for part in text.split(",") if part.strip()]


def _parse_int(token: str) -> Optional[int]:
    if _INT_RE.match(token):
        return int(token)
    return None


def _parse_token_list(
    text: Optional[str],
    parse_one: Callable[[str], Optional[int]],
    label: str
) -> Tuple[List[int], int]:
    """
    Parse a comma-separated list leniently.

    Returns:
        (values, dropped_count) - tokens parse_one rejects are counted, not raised
    """
    if text is None:
        return [], 0

    values: List[int] = []
    dropped = 0
    for token in _split_tokens(text):
        value = parse_one(token)
        if value is None:
            dropped += 1
            continue
        values.append(value)

    if dropped:
        logger.debug(f"Dropped {dropped} unparsable {label} token(s) from '{text}'")
    return values, dropped


def _parse_month(token: str) -> Optional[int]:
    value = _parse_int(token)
    if value is not None:
        return value if 1 <= value <= 12 else None
    return MONTH_NAMES.get(token.lower())


def parse_frequency(token: str) -> Frequency:
    """Match daily/weekly/monthly/yearly case-insensitively."""
    try:
        return Frequency(token.strip().lower())
    except ValueError:
        raise ValidationError(f"Invalid recurrence frequency: {token}")


def parse_interval(token: Optional[str]) -> int:
    """
    Parse the recurrence interval.

    Absent or non-numeric input falls back to 1; a number below 1 is an error.
    """
    if token is None:
        return 1
    value = _parse_int(token.strip())
    if value is None:
        logger.debug(f"Non-numeric recurrence interval '{token}', using 1")
        return 1
    if value < 1:
        raise ValidationError(f"Recurrence interval must be at least 1, got {value}")
    return value


def parse_weekday(token: str) -> WeekdayOrdinal:
    """
    Parse one weekday token such as "wed", "1mon" or "-1fri".

    Raises:
        ValidationError: If the text after the ordinal is not a weekday name
    """
    part = token.strip().lower()
    ordinal = None

    match = _ORDINAL_PREFIX_RE.match(part)
    if match:
        ordinal = int(match.group(0)) or None  # 0 means "every"
        part = part[match.end():]

    weekday = WEEKDAY_NAMES.get(part)
    if weekday is None:
        raise ValidationError(f"Invalid recurrence day: {token.strip()}")
    return WeekdayOrdinal(weekday=weekday, ordinal=ordinal)


def parse_weekdays(text: Optional[str]) -> List[WeekdayOrdinal]:
    if text is None:
        return []
    return [parse_weekday(token) for token in _split_tokens(text)]


def parse_months(text: Optional[str]) -> List[int]:
    """Months as 1-12 or names; anything else is dropped."""
    values, _ = _parse_token_list(text, _parse_month, "month")
    return values


def parse_int_list(text: Optional[str], label: str = "number") -> List[int]:
    """Signed integers (negative counts from the end); anything else is dropped."""
    values, _ = _parse_token_list(text, _parse_int, label)
    return values


def parse_end(end_count: Optional[str], end_date: Optional[str]) -> Optional[RecurrenceEnd]:
    """
    Build the end condition. A count takes precedence over a date.

    A non-numeric count is ignored; a numeric count below 1 or an unparsable
    date is an error.
    """
    if end_date is not None and end_date.strip():
        # Validated even when a count wins
        parsed_date = parse_iso_datetime(end_date, "--recurrence-end-date")
    else:
        parsed_date = None

    count = _parse_int(end_count.strip()) if end_count is not None else None
    if end_count is not None and count is None:
        logger.debug(f"Non-numeric recurrence end count '{end_count}' ignored")

    if count is not None:
        if count < 1:
            raise ValidationError(f"Recurrence end count must be at least 1, got {count}")
        if parsed_date is not None:
            logger.debug("Both end count and end date given; using the count")
        return RecurrenceEnd.after_count(count)

    if parsed_date is not None:
        return RecurrenceEnd.on_date(parsed_date)
    return None


def build_rule(spec: RecurrenceSpec) -> RecurrenceRule:
    """
    Build a canonical RecurrenceRule from raw CLI tokens.

    Args:
        spec: RecurrenceSpec whose frequency is set

    Returns:
        Fully populated RecurrenceRule

    Raises:
        ValidationError: Bad frequency, weekday, interval, end count or end date
    """
    if spec.frequency is None or not spec.frequency.strip():
        raise ValidationError("Recurrence frequency is required")

    return RecurrenceRule(
        frequency=parse_frequency(spec.frequency),
        interval=parse_interval(spec.interval),
        days_of_week=parse_weekdays(spec.days),
        months=parse_months(spec.months),
        days_of_month=parse_int_list(spec.days_of_month, "day-of-month"),
        weeks_of_year=parse_int_list(spec.weeks_of_year, "week-of-year"),
        days_of_year=parse_int_list(spec.days_of_year, "day-of-year"),
        set_positions=parse_int_list(spec.set_positions, "set-position"),
        end=parse_end(spec.end_count, spec.end_date),
    )


def plan_recurrence(spec: RecurrenceSpec) -> Optional[RecurrenceRule]:
    """build_rule() when a frequency was given, None (no recurrence) otherwise."""
    if spec.frequency is None or not spec.frequency.strip():
        if any([spec.interval, spec.end_count, spec.end_date, spec.days, spec.months,
                spec.days_of_month, spec.weeks_of_year, spec.days_of_year, spec.set_positions]):
            logger.warning("Recurrence options given without --recurrence-frequency; ignoring them")
        return None
    return build_rule(spec)
