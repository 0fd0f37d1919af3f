"""
PyObjC EventKit conversion utilities.

Provides helper functions for:
- NSDate / NSDateComponents <-> Python datetime conversions
- EventKit enum values <-> gateway strings
- EKEvent / EKReminder / EKCalendar / EKRecurrenceRule <-> gateway records

Readers only call methods on the objects they are given, so they work on any
object shaped like the EventKit one. Builders import PyObjC lazily.
"""

import logging
import re
from datetime import datetime
from typing import Optional, List, Tuple

from eventkit_gateway.core.dates import local_tzinfo
from eventkit_gateway.core.models import (
    CalendarRecord,
    EventRecord,
    Frequency,
    LocationRef,
    RecurrenceEnd,
    RecurrenceRule,
    ReminderRecord,
    Weekday,
    WeekdayOrdinal,
)

logger = logging.getLogger(__name__)

# EventKit enum values (stable across macOS releases)
EK_ENTITY_TYPE_EVENT = 0
EK_ENTITY_TYPE_REMINDER = 1
EK_SPAN_THIS_EVENT = 0

EK_SOURCE_TYPE_LOCAL = 0
EK_SOURCE_TYPE_CALDAV = 2

# NSDateComponentUndefined == NSIntegerMax on 64-bit systems
NS_UNDEFINED_COMPONENT = 9223372036854775807

AVAILABILITY_TO_EK = {
    "busy": 0,
    "free": 1,
    "tentative": 2,
    "unavailable": 3,
}
EK_TO_AVAILABILITY = {value: name for name, value in AVAILABILITY_TO_EK.items()}

FREQUENCY_TO_EK = {
    Frequency.DAILY: 0,
    Frequency.WEEKLY: 1,
    Frequency.MONTHLY: 2,
    Frequency.YEARLY: 3,
}
EK_TO_FREQUENCY = {value: freq for freq, value in FREQUENCY_TO_EK.items()}

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{6})$")


# =============================================================================
# Dates
# =============================================================================

def nsdate_to_datetime(nsdate) -> Optional[datetime]:
    """
    Convert NSDate to a local, timezone-aware datetime.

    Args:
        nsdate: Objective-C NSDate object (or None)

    Returns:
        datetime, or None if nsdate is missing
    """
    if nsdate is None:
        return None
    return datetime.fromtimestamp(float(nsdate.timeIntervalSince1970()), tz=local_tzinfo())


def datetime_to_nsdate(dt: Optional[datetime]):
    """Convert a datetime to NSDate (None passes through)."""
    if dt is None:
        return None

    from Foundation import NSDate
    return NSDate.dateWithTimeIntervalSince1970_(dt.timestamp())


def nsdatecomponents_to_datetime(components) -> Optional[datetime]:
    """
    Convert NSDateComponents to a local datetime.

    Reminder due dates may be date-only, in which case the time components
    are NSDateComponentUndefined and are read as midnight.
    """
    if components is None:
        return None

    def _value(raw, default):
        return default if raw is None or raw == NS_UNDEFINED_COMPONENT else raw

    year = _value(components.year(), 0)
    month = _value(components.month(), 0)
    day = _value(components.day(), 0)
    if year <= 0 or month <= 0 or day <= 0:
        logger.debug("NSDateComponents without a full date")
        return None

    return datetime(
        year, month, day,
        _value(components.hour(), 0),
        _value(components.minute(), 0),
        _value(components.second(), 0),
        tzinfo=local_tzinfo(),
    )


def datetime_to_nsdatecomponents(dt: Optional[datetime]):
    """Convert a datetime to NSDateComponents in local time."""
    if dt is None:
        return None

    from Foundation import NSDateComponents

    local = dt.astimezone(local_tzinfo()) if dt.tzinfo else dt
    components = NSDateComponents.alloc().init()
    components.setYear_(local.year)
    components.setMonth_(local.month)
    components.setDay_(local.day)
    components.setHour_(local.hour)
    components.setMinute_(local.minute)
    components.setSecond_(local.second)
    return components


# =============================================================================
# Colours
# =============================================================================

def rgb_to_hex(red: float, green: float, blue: float) -> str:
    """Convert 0.0-1.0 RGB components to #RRGGBB."""
    return "#{:02X}{:02X}{:02X}".format(round(red * 255), round(green * 255), round(blue * 255))


def hex_to_rgb(value: Optional[str]) -> Optional[Tuple[float, float, float]]:
    """Parse #RRGGBB (leading # optional) to 0.0-1.0 components, or None."""
    if not value:
        return None
    match = _HEX_RE.match(value.strip())
    if not match:
        return None
    rgb = int(match.group(1), 16)
    return ((rgb >> 16) & 0xFF) / 255.0, ((rgb >> 8) & 0xFF) / 255.0, (rgb & 0xFF) / 255.0


def color_to_hex(color) -> str:
    """Convert NSColor to hex string."""
    if color is None:
        return "#000000"
    try:
        return rgb_to_hex(color.redComponent(), color.greenComponent(), color.blueComponent())
    except Exception as e:
        # Pattern and catalog colours have no RGB components
        logger.debug(f"Colour has no RGB components: {e}")
        return "#000000"


def hex_to_nscolor(value: str):
    rgb = hex_to_rgb(value)
    if rgb is None:
        return None

    from AppKit import NSColor
    return NSColor.colorWithSRGBRed_green_blue_alpha_(rgb[0], rgb[1], rgb[2], 1.0)


# =============================================================================
# Recurrence
# =============================================================================

def _ints(values) -> List[int]:
    return [int(v) for v in values] if values else []


def rule_from_ek(ek_rule) -> Optional[RecurrenceRule]:
    """Read an EKRecurrenceRule into a RecurrenceRule."""
    frequency = EK_TO_FREQUENCY.get(int(ek_rule.frequency()))
    if frequency is None:
        logger.warning(f"Unknown EventKit recurrence frequency {ek_rule.frequency()}")
        return None

    days = []
    for day in ek_rule.daysOfTheWeek() or []:
        week_number = int(day.weekNumber())
        days.append(WeekdayOrdinal(Weekday(int(day.dayOfTheWeek())), week_number or None))

    end = None
    ek_end = ek_rule.recurrenceEnd()
    if ek_end is not None:
        if ek_end.endDate() is not None:
            end = RecurrenceEnd.on_date(nsdate_to_datetime(ek_end.endDate()))
        elif int(ek_end.occurrenceCount()) > 0:
            end = RecurrenceEnd.after_count(int(ek_end.occurrenceCount()))

    return RecurrenceRule(
        frequency=frequency,
        interval=int(ek_rule.interval()),
        days_of_week=days,
        months=_ints(ek_rule.monthsOfTheYear()),
        days_of_month=_ints(ek_rule.daysOfTheMonth()),
        weeks_of_year=_ints(ek_rule.weeksOfTheYear()),
        days_of_year=_ints(ek_rule.daysOfTheYear()),
        set_positions=_ints(ek_rule.setPositions()),
        end=end,
    )


def rule_to_ek(rule: RecurrenceRule):
    """
    Create an EKRecurrenceRule from a RecurrenceRule.

    Empty lists are passed as nil so EventKit treats them as unconstrained.
    """
    from EventKit import EKRecurrenceDayOfWeek, EKRecurrenceEnd, EKRecurrenceRule

    days = None
    if rule.days_of_week:
        days = []
        for day in rule.days_of_week:
            if day.ordinal:
                days.append(EKRecurrenceDayOfWeek.dayOfWeek_weekNumber_(int(day.weekday), day.ordinal))
            else:
                days.append(EKRecurrenceDayOfWeek.dayOfWeek_(int(day.weekday)))

    end = None
    if rule.end is not None:
        if rule.end.count is not None:
            end = EKRecurrenceEnd.recurrenceEndWithOccurrenceCount_(rule.end.count)
        else:
            end = EKRecurrenceEnd.recurrenceEndWithEndDate_(datetime_to_nsdate(rule.end.date))

    return EKRecurrenceRule.alloc().initRecurrenceWithFrequency_interval_daysOfTheWeek_daysOfTheMonth_monthsOfTheYear_weeksOfTheYear_daysOfTheYear_setPositions_end_(
        FREQUENCY_TO_EK[rule.frequency],
        rule.interval,
        days,
        rule.days_of_month or None,
        rule.months or None,
        rule.weeks_of_year or None,
        rule.days_of_year or None,
        rule.set_positions or None,
        end,
    )


# =============================================================================
# Records
# =============================================================================

def _url_string(url) -> Optional[str]:
    return str(url.absoluteString()) if url is not None else None


def location_from_ek(structured) -> Optional[LocationRef]:
    if structured is None:
        return None
    geo = structured.geoLocation()
    if geo is None:
        return LocationRef(title=str(structured.title() or ""))
    coordinate = geo.coordinate()
    return LocationRef(
        title=str(structured.title() or ""),
        latitude=float(coordinate.latitude),
        longitude=float(coordinate.longitude),
        radius=float(structured.radius()),
    )


def location_to_ek(location: Optional[LocationRef]):
    """Create an EKStructuredLocation; a resolved reference gets its CLLocation."""
    if location is None:
        return None

    from EventKit import EKStructuredLocation

    structured = EKStructuredLocation.locationWithTitle_(location.title)
    if location.resolved:
        from CoreLocation import CLLocation
        structured.setGeoLocation_(
            CLLocation.alloc().initWithLatitude_longitude_(location.latitude, location.longitude)
        )
        structured.setRadius_(location.radius)
    return structured


def read_travel_time(ek_event) -> Optional[float]:
    """travelTime is only reachable through key-value coding."""
    try:
        value = ek_event.valueForKey_("travelTime")
    except Exception as e:
        logger.debug(f"travelTime not readable: {e}")
        return None
    if value is None:
        return None
    value = float(value)
    return value if value > 0 else None


def relative_alarm_offsets(ek_item) -> List[float]:
    """Relative offsets (seconds) of the item's alarms; absolute-date alarms are skipped."""
    offsets = []
    for alarm in ek_item.alarms() or []:
        if alarm.absoluteDate() is None:
            offsets.append(float(alarm.relativeOffset()))
    return offsets


def event_from_ek(ek_event) -> EventRecord:
    """Read an EKEvent into an EventRecord."""
    calendar = ek_event.calendar()
    rules = [rule_from_ek(r) for r in (ek_event.recurrenceRules() or [])]

    return EventRecord(
        id=str(ek_event.eventIdentifier() or ""),
        title=str(ek_event.title() or ""),
        calendar_id=str(calendar.calendarIdentifier()) if calendar is not None else "",
        calendar_title=str(calendar.title()) if calendar is not None else "",
        start_date=nsdate_to_datetime(ek_event.startDate()),
        end_date=nsdate_to_datetime(ek_event.endDate()),
        all_day=bool(ek_event.isAllDay()),
        location=ek_event.location() or None,
        structured_location=location_from_ek(ek_event.structuredLocation()),
        notes=ek_event.notes() or None,
        url=_url_string(ek_event.URL()),
        availability=EK_TO_AVAILABILITY.get(int(ek_event.availability())),
        travel_time=read_travel_time(ek_event),
        alarms=relative_alarm_offsets(ek_event),
        recurrence_rules=[r for r in rules if r is not None],
    )


def reminder_from_ek(ek_reminder) -> ReminderRecord:
    """Read an EKReminder into a ReminderRecord."""
    calendar = ek_reminder.calendar()
    return ReminderRecord(
        id=str(ek_reminder.calendarItemIdentifier() or ""),
        title=str(ek_reminder.title() or ""),
        list_id=str(calendar.calendarIdentifier()) if calendar is not None else "",
        list_title=str(calendar.title()) if calendar is not None else "",
        due_date=nsdatecomponents_to_datetime(ek_reminder.dueDateComponents()),
        priority=int(ek_reminder.priority()),
        completed=bool(ek_reminder.isCompleted()),
        completion_date=nsdate_to_datetime(ek_reminder.completionDate()),
        notes=ek_reminder.notes() or None,
        url=_url_string(ek_reminder.URL()),
    )


def calendar_from_ek(ek_calendar, entity_type: int) -> CalendarRecord:
    """Read an EKCalendar into a CalendarRecord."""
    source = ek_calendar.source()
    return CalendarRecord(
        id=str(ek_calendar.calendarIdentifier()),
        title=str(ek_calendar.title() or ""),
        type="reminder" if entity_type == EK_ENTITY_TYPE_REMINDER else "event",
        source=str(source.title()) if source is not None else "Unknown",
        color=color_to_hex(ek_calendar.color()),
        allows_modifications=bool(ek_calendar.allowsContentModifications()),
    )


def error_message(error) -> str:
    """Human-readable text of an NSError (or anything else)."""
    if error is None:
        return "unknown error"
    describe = getattr(error, "localizedDescription", None)
    if callable(describe):
        return str(describe())
    return str(error)
