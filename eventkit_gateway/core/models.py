"""
Data models for EventKit Gateway.

Defines the records read from and written to the calendar store, the
canonical recurrence rule produced by the planner, and one result class per
operation. Every result renders to a fixed set of JSON keys; optional values
are emitted as null rather than omitted.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Optional, List, Dict, Any

from eventkit_gateway.core.dates import format_local_iso

SUCCESS = "success"


# =============================================================================
# Recurrence
# =============================================================================

class Frequency(str, Enum):
    """Recurrence frequency, in EventKit order (daily=0 ... yearly=3)."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class Weekday(IntEnum):
    """Day of week, numbered the way EventKit numbers EKWeekday."""
    SUNDAY = 1
    MONDAY = 2
    TUESDAY = 3
    WEDNESDAY = 4
    THURSDAY = 5
    FRIDAY = 6
    SATURDAY = 7


@dataclass(frozen=True)
class WeekdayOrdinal:
    """A weekday, optionally qualified as the Nth (or Nth-from-last) in the period"""
    weekday: Weekday
    ordinal: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"weekday": self.weekday.name.lower(), "ordinal": self.ordinal}


@dataclass(frozen=True)
class RecurrenceEnd:
    """
    End condition of a recurrence rule.

    Exactly one of count or date is set; a rule with no end carries
    end=None instead of an empty RecurrenceEnd.
    """
    count: Optional[int] = None
    date: Optional[datetime] = None

    def __post_init__(self):
        if (self.count is None) == (self.date is None):
            raise ValueError("RecurrenceEnd needs exactly one of count or date")

    @classmethod
    def after_count(cls, count: int) -> 'RecurrenceEnd':
        return cls(count=count)

    @classmethod
    def on_date(cls, date: datetime) -> 'RecurrenceEnd':
        return cls(date=date)

    def to_dict(self) -> Dict[str, Any]:
        return {"count": self.count, "date": format_local_iso(self.date)}


@dataclass
class RecurrenceSpec:
    """Raw recurrence tokens as typed on the command line"""
    frequency: Optional[str] = None
    interval: Optional[str] = None
    end_count: Optional[str] = None
    end_date: Optional[str] = None
    days: Optional[str] = None
    months: Optional[str] = None
    days_of_month: Optional[str] = None
    weeks_of_year: Optional[str] = None
    days_of_year: Optional[str] = None
    set_positions: Optional[str] = None


@dataclass
class RecurrenceRule:
    """Canonical, store-independent description of a repeating schedule"""
    frequency: Frequency
    interval: int = 1
    days_of_week: List[WeekdayOrdinal] = field(default_factory=list)
    months: List[int] = field(default_factory=list)
    days_of_month: List[int] = field(default_factory=list)
    weeks_of_year: List[int] = field(default_factory=list)
    days_of_year: List[int] = field(default_factory=list)
    set_positions: List[int] = field(default_factory=list)
    end: Optional[RecurrenceEnd] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frequency": self.frequency.value,
            "interval": self.interval,
            "daysOfWeek": [day.to_dict() for day in self.days_of_week],
            "months": list(self.months),
            "daysOfMonth": list(self.days_of_month),
            "weeksOfYear": list(self.weeks_of_year),
            "daysOfYear": list(self.days_of_year),
            "setPositions": list(self.set_positions),
            "end": self.end.to_dict() if self.end else None,
        }


# =============================================================================
# Access and location
# =============================================================================

@dataclass
class AccessResult:
    """Outcome of the two grant channels"""
    calendar_granted: bool = False
    reminders_granted: bool = False
    calendar_error: Optional[str] = None
    reminders_error: Optional[str] = None


@dataclass
class LocationRef:
    """Structured location: a title plus an optional resolved coordinate"""
    title: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    radius: float = 0.0

    @property
    def resolved(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "radius": self.radius if self.resolved else None,
        }


# =============================================================================
# Store records
# =============================================================================

@dataclass
class CalendarRecord:
    """Event calendar or reminder list"""
    id: Optional[str] = None
    title: str = ""
    type: str = "event"  # 'event' or 'reminder'
    source: str = "Unknown"
    color: Optional[str] = None
    allows_modifications: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id or "",
            "title": self.title,
            "type": self.type,
            "source": self.source,
            "color": self.color or "#000000",
            "allowsModifications": self.allows_modifications,
        }


@dataclass
class EventRecord:
    """Calendar event data model"""
    id: Optional[str] = None
    title: str = ""
    calendar_id: str = ""
    calendar_title: str = ""
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    all_day: bool = False
    location: Optional[str] = None
    structured_location: Optional[LocationRef] = None
    notes: Optional[str] = None
    url: Optional[str] = None
    availability: Optional[str] = None  # 'busy', 'free', 'tentative', 'unavailable'
    travel_time: Optional[float] = None  # seconds
    alarms: List[float] = field(default_factory=list)  # relative offsets in seconds
    recurrence_rules: List[RecurrenceRule] = field(default_factory=list)

    @property
    def has_alarms(self) -> bool:
        return bool(self.alarms)

    @property
    def has_recurrence_rules(self) -> bool:
        return bool(self.recurrence_rules)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id or "",
            "title": self.title,
            "calendar": {"id": self.calendar_id, "title": self.calendar_title},
            "startDate": format_local_iso(self.start_date),
            "endDate": format_local_iso(self.end_date),
            "allDay": self.all_day,
            "location": self.location or None,
            "structuredLocation": self.structured_location.to_dict() if self.structured_location else None,
            "notes": self.notes or None,
            "url": self.url or None,
            "availability": self.availability,
            "travelTime": self.travel_time,
            "hasAlarms": self.has_alarms,
            "hasRecurrenceRules": self.has_recurrence_rules,
            "recurrenceRules": [rule.to_dict() for rule in self.recurrence_rules],
        }


@dataclass
class ReminderRecord:
    """Reminder data model"""
    id: Optional[str] = None
    title: str = ""
    list_id: str = ""
    list_title: str = ""
    due_date: Optional[datetime] = None
    priority: int = 0  # 0 = none, 1 = high, 5 = medium, 9 = low
    completed: bool = False
    completion_date: Optional[datetime] = None
    notes: Optional[str] = None
    url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id or "",
            "title": self.title,
            "list": {"id": self.list_id, "title": self.list_title},
            "completed": self.completed,
            "priority": self.priority,
            "dueDate": format_local_iso(self.due_date),
            "completionDate": format_local_iso(self.completion_date),
            "notes": self.notes or None,
            "url": self.url or None,
        }


# =============================================================================
# Operation results
# =============================================================================

class GatewayResult(ABC):
    """Success payload of one operation"""

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """Render the result as the JSON object printed on stdout."""


@dataclass
class CalendarList(GatewayResult):
    calendars: List[CalendarRecord]

    def to_dict(self) -> Dict[str, Any]:
        return {"calendars": [c.to_dict() for c in self.calendars], "count": len(self.calendars)}


@dataclass
class EventList(GatewayResult):
    events: List[EventRecord]

    def to_dict(self) -> Dict[str, Any]:
        return {"events": [e.to_dict() for e in self.events], "count": len(self.events)}


@dataclass
class ReminderList(GatewayResult):
    reminders: List[ReminderRecord]

    def to_dict(self) -> Dict[str, Any]:
        return {"reminders": [r.to_dict() for r in self.reminders], "count": len(self.reminders)}


@dataclass
class EventDetail(GatewayResult):
    event: EventRecord

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.event.to_dict()}


@dataclass
class ReminderDetail(GatewayResult):
    reminder: ReminderRecord

    def to_dict(self) -> Dict[str, Any]:
        return {"reminder": self.reminder.to_dict()}


@dataclass
class EventSaved(GatewayResult):
    message: str
    event: EventRecord

    def to_dict(self) -> Dict[str, Any]:
        return {"status": SUCCESS, "message": self.message, "event": self.event.to_dict()}


@dataclass
class ReminderSaved(GatewayResult):
    message: str
    reminder: ReminderRecord

    def to_dict(self) -> Dict[str, Any]:
        return {"status": SUCCESS, "message": self.message, "reminder": self.reminder.to_dict()}


@dataclass
class EventDeleted(GatewayResult):
    message: str
    event_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"status": SUCCESS, "message": self.message, "deletedEventID": self.event_id}


@dataclass
class ReminderDeleted(GatewayResult):
    message: str
    reminder_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"status": SUCCESS, "message": self.message, "deletedReminderID": self.reminder_id}


@dataclass
class CalendarSaved(GatewayResult):
    """Create, update and delete of a calendar all report the calendar id"""
    message: str
    calendar_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"status": SUCCESS, "message": self.message, "id": self.calendar_id}


@dataclass
class AliasSaved(GatewayResult):
    name: str
    target_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": SUCCESS,
            "message": f"Alias '{self.name}' set successfully",
            "alias": {"name": self.name, "id": self.target_id},
        }


@dataclass
class AliasRemoved(GatewayResult):
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"status": SUCCESS, "message": f"Alias '{self.name}' removed successfully"}


@dataclass
class AliasList(GatewayResult):
    aliases: Dict[str, str]
    config_path: str

    def to_dict(self) -> Dict[str, Any]:
        items = [{"name": name, "id": self.aliases[name]} for name in sorted(self.aliases)]
        return {"aliases": items, "count": len(items), "configPath": self.config_path}
