"""
Business logic layer for EventKit Gateway.

Handles:
- Input validation (dates, enums, recurrence) before anything touches the store
- The one-time access gate
- Alias resolution for calendar and reminder-list arguments
- Event, reminder, calendar and alias operations, each returning a result object
"""

import dataclasses
import logging
import math
from datetime import datetime
from typing import Optional, Union

from eventkit_gateway.alarms import parse_alarm_offsets
from eventkit_gateway.core.config import Config
from eventkit_gateway.core.dates import local_tzinfo, parse_iso_datetime
from eventkit_gateway.core.errors import NotFoundError, PersistenceError, ValidationError
from eventkit_gateway.core.models import (
    AccessResult,
    AliasList,
    AliasRemoved,
    AliasSaved,
    CalendarList,
    CalendarRecord,
    CalendarSaved,
    EventDeleted,
    EventDetail,
    EventList,
    EventRecord,
    EventSaved,
    RecurrenceSpec,
    ReminderDeleted,
    ReminderDetail,
    ReminderList,
    ReminderRecord,
    ReminderSaved,
)
from eventkit_gateway.core.store import CalendarStore
from eventkit_gateway.eventkit.access import AccessGate
from eventkit_gateway.eventkit.conversions import hex_to_rgb, rgb_to_hex
from eventkit_gateway.eventkit.geocoder import (
    ADD_GEOCODE_TIMEOUT,
    UPDATE_GEOCODE_TIMEOUT,
    LocationResolver,
)
from eventkit_gateway.recurrence import plan_recurrence

logger = logging.getLogger(__name__)

AVAILABILITY_VALUES = ("busy", "free", "tentative", "unavailable")

PRIORITY_NAMES = {
    "none": 0,
    "high": 1,
    "medium": 5,
    "low": 9,
}


# =============================================================================
# Validators
# =============================================================================

def validate_availability(value: Optional[str]) -> Optional[str]:
    """
    Validate an event availability name.

    Args:
        value: busy, free, tentative or unavailable (any case), or None

    Returns:
        Lowercased availability, or None when not given

    Raises:
        ValidationError: If the name is not one of the four values
    """
    if value is None:
        return None

    normalized = value.strip().lower()
    if normalized not in AVAILABILITY_VALUES:
        raise ValidationError(
            f"Invalid availability: {value}. Use one of: {', '.join(AVAILABILITY_VALUES)}"
        )
    return normalized


def validate_priority(value: Union[str, int, None]) -> int:
    """
    Validate reminder priority (0-9 or none/high/medium/low).

    Args:
        value: Priority as an int, a numeric string or a name; None means 0

    Returns:
        Priority 0-9 (0 = none, 1 = high, 5 = medium, 9 = low)

    Raises:
        ValidationError: If the value is out of range or not a known name
    """
    if value is None:
        return 0

    if isinstance(value, str):
        text = value.strip().lower()
        if text in PRIORITY_NAMES:
            return PRIORITY_NAMES[text]
        try:
            value = int(text)
        except ValueError:
            raise ValidationError(
                f"Invalid priority: {value}. Use 0-9 or one of: none, high, medium, low"
            )

    if not 0 <= value <= 9:
        raise ValidationError(f"Priority must be between 0 and 9, got {value}")
    return value


def validate_bool(value: Union[str, bool, None], option: str) -> Optional[bool]:
    """Parse true/false (also yes/no, 1/0) from the command line."""
    if value is None or isinstance(value, bool):
        return value

    text = value.strip().lower()
    if text in ("true", "yes", "1"):
        return True
    if text in ("false", "no", "0"):
        return False
    raise ValidationError(f"Invalid {option} value: {value}. Use true or false")


def parse_travel_time(value: Optional[str]) -> Optional[float]:
    """
    Convert travel time in minutes to seconds.

    Non-numeric input is ignored (returns None) rather than rejected.
    """
    if value is None:
        return None
    try:
        minutes = float(value)
    except ValueError:
        logger.debug(f"Ignoring non-numeric travel time '{value}'")
        return None
    if not math.isfinite(minutes) or minutes < 0:
        logger.debug(f"Ignoring travel time '{value}'")
        return None
    return minutes * 60


def normalize_color(value: Optional[str]) -> Optional[str]:
    """Return #RRGGBB for a valid hex colour; warn and return None otherwise."""
    if value is None:
        return None
    rgb = hex_to_rgb(value)
    if rgb is None:
        logger.warning(f"Ignoring invalid color '{value}', expected #RRGGBB")
        return None
    return rgb_to_hex(*rgb)


def validate_range(start: datetime, end: datetime, start_option: str, end_option: str) -> None:
    if end < start:
        raise ValidationError(f"{end_option} must not be before {start_option}")


# =============================================================================
# Manager
# =============================================================================

class CalendarManager:
    """
    Orchestrates one gateway operation.

    Every store-backed operation validates its inputs first, then runs the
    access gate (once per manager), then resolves aliases, then calls the
    store. Alias operations never touch the store.
    """

    def __init__(
        self,
        store: CalendarStore,
        config: Config,
        access_gate: Optional[AccessGate] = None,
        location_resolver: Optional[LocationResolver] = None
    ):
        """
        Args:
            store: Calendar store implementation
            config: Loaded configuration (aliases and settings)
            access_gate: Override for the default gate over the store's grant channels
            location_resolver: Override for the default resolver over the store's geocoder
        """
        self.store = store
        self.config = config
        self.access_gate = access_gate or AccessGate(
            store.request_calendar_access,
            store.request_reminders_access,
            timeout=config.get("access_timeout"),
            pump=store.pump,
        )
        self.location_resolver = location_resolver or LocationResolver(store.geocode, pump=store.pump)
        self._access: Optional[AccessResult] = None

    def _ensure_access(self) -> AccessResult:
        if self._access is None:
            self._access = self.access_gate.request_access()
        return self._access

    def _resolve(self, name: str) -> str:
        return self.config.resolve_alias(name)

    def _persist(self, action: str, operation, *args):
        """Run a store write, prefixing store failures with the action."""
        try:
            return operation(*args)
        except PersistenceError as e:
            logger.error(f"Failed to {action}: {e.message}")
            raise PersistenceError(f"Failed to {action}: {e.message}") from e

    def _require_event(self, event_id: str) -> EventRecord:
        event = self.store.get_event(event_id)
        if event is None:
            raise NotFoundError(f"Event not found with ID: {event_id}")
        return event

    def _require_reminder(self, reminder_id: str) -> ReminderRecord:
        reminder = self.store.get_reminder(reminder_id)
        if reminder is None:
            raise NotFoundError(f"Reminder not found with ID: {reminder_id}")
        return reminder

    def _require_writable(self, calendar_id: str, kind: str) -> CalendarRecord:
        calendar = self.store.get_calendar(calendar_id)
        if calendar is None:
            raise NotFoundError(f"{kind} not found with ID: {calendar_id}")
        if not calendar.allows_modifications:
            raise PersistenceError(f"{kind} '{calendar.title}' is read-only")
        return calendar

    def _geocode_timeout(self, key: str, fallback: float) -> float:
        return float(self.config.get(key, fallback))

    # =========================================================================
    # Listing
    # =========================================================================

    def list_calendars(self) -> CalendarList:
        """List all event calendars and reminder lists."""
        self._ensure_access()
        return CalendarList(self.store.list_calendars())

    def list_events(self, calendar: str, start: str, end: str) -> EventList:
        """
        List events in a calendar within a date range.

        Args:
            calendar: Calendar ID or alias
            start: ISO 8601 range start (--from)
            end: ISO 8601 range end (--to)
        """
        start_date = parse_iso_datetime(start, "--from")
        end_date = parse_iso_datetime(end, "--to")
        validate_range(start_date, end_date, "--from", "--to")

        self._ensure_access()
        calendar_id = self._resolve(calendar)
        if self.store.get_calendar(calendar_id) is None:
            raise NotFoundError(f"Calendar not found with ID: {calendar_id}")

        return EventList(self.store.fetch_events(calendar_id, start_date, end_date))

    def list_reminders(self, list_name: str, completed: Union[str, bool, None] = None) -> ReminderList:
        """
        List reminders in a reminder list.

        Args:
            list_name: Reminder list ID or alias
            completed: Optional completion filter (true/false)
        """
        completed_filter = validate_bool(completed, "--completed")

        self._ensure_access()
        list_id = self._resolve(list_name)
        if self.store.get_calendar(list_id) is None:
            raise NotFoundError(f"Reminder list not found with ID: {list_id}")

        return ReminderList(self.store.fetch_reminders(list_id, completed_filter))

    def show_event(self, event_id: str) -> EventDetail:
        self._ensure_access()
        return EventDetail(self._require_event(event_id))

    def show_reminder(self, reminder_id: str) -> ReminderDetail:
        self._ensure_access()
        return ReminderDetail(self._require_reminder(reminder_id))

    # =========================================================================
    # Events
    # =========================================================================

    def add_event(
        self,
        calendar: str,
        title: str,
        start: str,
        end: str,
        location: Optional[str] = None,
        notes: Optional[str] = None,
        all_day: bool = False,
        url: Optional[str] = None,
        availability: Optional[str] = None,
        travel_time: Optional[str] = None,
        alarms: Optional[str] = None,
        recurrence: Optional[RecurrenceSpec] = None
    ) -> EventSaved:
        """
        Create a calendar event.

        Args:
            calendar: Calendar ID or alias
            title: Event title
            start: ISO 8601 start
            end: ISO 8601 end
            location: Address text; geocoded best effort
            notes: Free-form notes
            all_day: Mark as all-day event
            url: Event URL
            availability: busy, free, tentative or unavailable
            travel_time: Minutes as text; non-numeric is ignored
            alarms: Comma-separated minutes before start
            recurrence: Raw recurrence tokens

        Returns:
            EventSaved with the stored event

        Raises:
            ValidationError: Bad date, availability or recurrence token
            NotFoundError: Unknown calendar
            PersistenceError: Read-only calendar or store failure
        """
        start_date = parse_iso_datetime(start, "--start")
        end_date = parse_iso_datetime(end, "--end")
        validate_range(start_date, end_date, "--start", "--end")
        availability = validate_availability(availability)
        rule = plan_recurrence(recurrence) if recurrence is not None else None
        alarm_offsets = parse_alarm_offsets(alarms)
        travel_seconds = parse_travel_time(travel_time)

        self._ensure_access()
        calendar_id = self._resolve(calendar)
        target = self._require_writable(calendar_id, "Calendar")

        structured_location = None
        if location:
            structured_location = self.location_resolver.resolve(
                location, self._geocode_timeout("geocode_timeout_add", ADD_GEOCODE_TIMEOUT)
            )

        event = EventRecord(
            title=title,
            calendar_id=calendar_id,
            calendar_title=target.title,
            start_date=start_date,
            end_date=end_date,
            all_day=all_day,
            location=location or None,
            structured_location=structured_location,
            notes=notes,
            url=url,
            availability=availability,
            travel_time=travel_seconds,
            alarms=alarm_offsets or [],
            recurrence_rules=[rule] if rule else [],
        )

        saved = self._persist("create event", self.store.save_event, event)
        logger.info(f"Created event '{title}' ({saved.id}) in calendar {calendar_id}")
        return EventSaved("Event created successfully", saved)

    def update_event(
        self,
        event_id: str,
        title: Optional[str] = None,
        start: Optional[str] = None,
        end: Optional[str] = None,
        location: Optional[str] = None,
        notes: Optional[str] = None,
        all_day: Union[str, bool, None] = None,
        url: Optional[str] = None,
        availability: Optional[str] = None,
        travel_time: Optional[str] = None,
        alarms: Optional[str] = None
    ) -> EventSaved:
        """
        Update any subset of an event's fields.

        Fields left as None are unchanged. An empty location clears both the
        location text and the structured location; an empty alarms string
        removes all alarms.
        """
        start_date = parse_iso_datetime(start, "--start") if start is not None else None
        end_date = parse_iso_datetime(end, "--end") if end is not None else None
        all_day_flag = validate_bool(all_day, "--all-day")
        availability = validate_availability(availability)
        alarm_offsets = parse_alarm_offsets(alarms)
        travel_seconds = parse_travel_time(travel_time)

        self._ensure_access()
        current = self._require_event(event_id)

        changes = {}
        if title is not None:
            changes["title"] = title
        if start_date is not None:
            changes["start_date"] = start_date
        if end_date is not None:
            changes["end_date"] = end_date
        if notes is not None:
            changes["notes"] = notes
        if all_day_flag is not None:
            changes["all_day"] = all_day_flag
        if url is not None:
            changes["url"] = url or None
        if availability is not None:
            changes["availability"] = availability
        if travel_seconds is not None:
            changes["travel_time"] = travel_seconds
        if alarm_offsets is not None:
            changes["alarms"] = alarm_offsets

        if location is not None:
            if location.strip():
                changes["location"] = location
                changes["structured_location"] = self.location_resolver.resolve(
                    location, self._geocode_timeout("geocode_timeout_update", UPDATE_GEOCODE_TIMEOUT)
                )
            else:
                changes["location"] = None
                changes["structured_location"] = None

        updated = dataclasses.replace(current, **changes)
        if updated.start_date and updated.end_date:
            validate_range(updated.start_date, updated.end_date, "--start", "--end")

        saved = self._persist("update event", self.store.save_event, updated)
        logger.info(f"Updated event {event_id}: {', '.join(sorted(changes)) or 'no changes'}")
        return EventSaved("Event updated successfully", saved)

    def delete_event(self, event_id: str) -> EventDeleted:
        self._ensure_access()
        event = self._require_event(event_id)

        self._persist("delete event", self.store.remove_event, event_id)
        logger.info(f"Deleted event {event_id}")
        return EventDeleted(f"Event '{event.title}' deleted successfully", event_id)

    # =========================================================================
    # Reminders
    # =========================================================================

    def add_reminder(
        self,
        list_name: str,
        title: str,
        due: Optional[str] = None,
        priority: Union[str, int, None] = None,
        notes: Optional[str] = None
    ) -> ReminderSaved:
        """
        Create a reminder.

        Args:
            list_name: Reminder list ID or alias
            title: Reminder title
            due: Optional ISO 8601 due date
            priority: 0-9 or none/high/medium/low
            notes: Free-form notes
        """
        due_date = parse_iso_datetime(due, "--due") if due is not None else None
        priority_value = validate_priority(priority)

        self._ensure_access()
        list_id = self._resolve(list_name)
        target = self._require_writable(list_id, "Reminder list")

        reminder = ReminderRecord(
            title=title,
            list_id=list_id,
            list_title=target.title,
            due_date=due_date,
            priority=priority_value,
            notes=notes,
        )

        saved = self._persist("create reminder", self.store.save_reminder, reminder)
        logger.info(f"Created reminder '{title}' ({saved.id}) in list {list_id}")
        return ReminderSaved("Reminder created successfully", saved)

    def complete_reminder(self, reminder_id: str) -> ReminderSaved:
        """Mark a reminder completed and stamp the completion date."""
        self._ensure_access()
        current = self._require_reminder(reminder_id)

        completed = dataclasses.replace(
            current,
            completed=True,
            completion_date=datetime.now(local_tzinfo()),
        )
        saved = self._persist("complete reminder", self.store.save_reminder, completed)
        logger.info(f"Completed reminder {reminder_id}")
        return ReminderSaved(f"Reminder '{current.title or 'Untitled'}' marked as completed", saved)

    def delete_reminder(self, reminder_id: str) -> ReminderDeleted:
        self._ensure_access()
        reminder = self._require_reminder(reminder_id)

        self._persist("delete reminder", self.store.remove_reminder, reminder_id)
        logger.info(f"Deleted reminder {reminder_id}")
        return ReminderDeleted(f"Reminder '{reminder.title}' deleted successfully", reminder_id)

    # =========================================================================
    # Calendars
    # =========================================================================

    def create_calendar(self, title: str, color: Optional[str] = None, calendar_type: str = "event") -> CalendarSaved:
        """
        Create an event calendar (or reminder list) in the preferred source.

        Args:
            title: Calendar title
            color: Optional #RRGGBB colour; invalid values are ignored
            calendar_type: 'event' or 'reminder'
        """
        if calendar_type not in ("event", "reminder"):
            raise ValidationError(f"Invalid calendar type: {calendar_type}. Use event or reminder")
        if not title or not title.strip():
            raise ValidationError("Calendar title cannot be empty")
        hex_color = normalize_color(color)

        self._ensure_access()
        record = CalendarRecord(title=title.strip(), type=calendar_type, color=hex_color)
        saved = self._persist("create calendar", self.store.save_calendar, record)
        logger.info(f"Created {calendar_type} calendar '{saved.title}' ({saved.id})")
        return CalendarSaved("Calendar created successfully", saved.id)

    def update_calendar(
        self,
        calendar: str,
        title: Optional[str] = None,
        color: Optional[str] = None
    ) -> CalendarSaved:
        hex_color = normalize_color(color)

        self._ensure_access()
        calendar_id = self._resolve(calendar)
        current = self.store.get_calendar(calendar_id)
        if current is None:
            raise NotFoundError(f"Calendar not found with ID: {calendar_id}")

        updated = dataclasses.replace(
            current,
            title=title if title else current.title,
            color=hex_color or current.color,
        )
        self._persist("update calendar", self.store.save_calendar, updated)
        return CalendarSaved("Calendar updated successfully", calendar_id)

    def delete_calendar(self, calendar: str) -> CalendarSaved:
        self._ensure_access()
        calendar_id = self._resolve(calendar)
        if self.store.get_calendar(calendar_id) is None:
            raise NotFoundError(f"Calendar not found with ID: {calendar_id}")

        self._persist("delete calendar", self.store.remove_calendar, calendar_id)
        logger.info(f"Deleted calendar {calendar_id}")
        return CalendarSaved("Calendar deleted successfully", calendar_id)

    # =========================================================================
    # Aliases
    # =========================================================================

    def set_alias(self, name: str, target_id: str) -> AliasSaved:
        self.config.set_alias(name, target_id)
        return AliasSaved(name.strip(), target_id.strip())

    def remove_alias(self, name: str) -> AliasRemoved:
        if not self.config.remove_alias(name):
            raise NotFoundError(f"Alias '{name}' not found")
        return AliasRemoved(name)

    def list_aliases(self) -> AliasList:
        return AliasList(self.config.aliases, str(self.config.config_path))
