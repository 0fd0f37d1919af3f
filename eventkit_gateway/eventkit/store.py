"""
macOS EventKit implementation of the calendar store.

All PyObjC imports are lazy so the rest of the package (and its tests) import
on any platform. Grant requests and reminder fetches are asynchronous in
EventKit; geocoding goes through CLGeocoder, whose completion handler is
delivered on the main run loop.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from eventkit_gateway.core.errors import NotFoundError, PersistenceError
from eventkit_gateway.core.models import CalendarRecord, EventRecord, ReminderRecord
from eventkit_gateway.core.store import CalendarStore, GeocodeCompletion, GrantCompletion
from eventkit_gateway.eventkit.bridge import CallbackSlot, cocoa_run_loop_pump
from eventkit_gateway.eventkit.conversions import (
    AVAILABILITY_TO_EK,
    EK_ENTITY_TYPE_EVENT,
    EK_ENTITY_TYPE_REMINDER,
    EK_SOURCE_TYPE_CALDAV,
    EK_SOURCE_TYPE_LOCAL,
    EK_SPAN_THIS_EVENT,
    calendar_from_ek,
    datetime_to_nsdate,
    datetime_to_nsdatecomponents,
    error_message,
    event_from_ek,
    hex_to_nscolor,
    location_to_ek,
    reminder_from_ek,
    rule_to_ek,
)

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 15.0  # seconds


class EventKitStore(CalendarStore):
    """CalendarStore backed by EKEventStore"""

    def __init__(self, fetch_timeout: float = DEFAULT_FETCH_TIMEOUT):
        """
        Args:
            fetch_timeout: Ceiling for asynchronous reminder fetches
        """
        self.fetch_timeout = fetch_timeout
        self._event_store = None  # Lazy-loaded EventKit store
        self._geocoder = None  # Held so CLGeocoder outlives its callback

    @property
    def event_store(self):
        """Lazy-load EventKit event store."""
        if self._event_store is None:
            from EventKit import EKEventStore
            self._event_store = EKEventStore.alloc().init()
            logger.debug("Initialized EKEventStore")
        return self._event_store

    @property
    def pump(self) -> Optional[Callable[[float], None]]:
        return cocoa_run_loop_pump

    # =========================================================================
    # Asynchronous channels
    # =========================================================================

    def _request_access(self, entity_type: int, full_access_selector: str, completion: GrantCompletion) -> None:
        def handler(granted, error):
            completion(bool(granted), error_message(error) if error is not None else None)

        store = self.event_store
        # macOS 14+ replaced requestAccessToEntityType with full-access variants
        full_access = getattr(store, full_access_selector, None)
        if full_access is not None:
            full_access(handler)
        else:
            store.requestAccessToEntityType_completion_(entity_type, handler)

    def request_calendar_access(self, completion: GrantCompletion) -> None:
        self._request_access(EK_ENTITY_TYPE_EVENT, "requestFullAccessToEventsWithCompletion_", completion)

    def request_reminders_access(self, completion: GrantCompletion) -> None:
        self._request_access(EK_ENTITY_TYPE_REMINDER, "requestFullAccessToRemindersWithCompletion_", completion)

    def geocode(self, address: str, completion: GeocodeCompletion) -> None:
        from CoreLocation import CLGeocoder

        def handler(placemarks, error):
            if placemarks:
                location = placemarks[0].location()
                if location is not None:
                    coordinate = location.coordinate()
                    completion(float(coordinate.latitude), float(coordinate.longitude), None)
                    return
            completion(None, None, error_message(error) if error is not None else "no placemarks")

        self._geocoder = CLGeocoder.alloc().init()
        self._geocoder.geocodeAddressString_completionHandler_(address, handler)

    # =========================================================================
    # Calendars
    # =========================================================================

    def _ek_calendar(self, calendar_id: str):
        return self.event_store.calendarWithIdentifier_(calendar_id)

    def _entity_type_of(self, ek_calendar) -> int:
        # allowedEntityTypes is a bitmask: 1 << EKEntityType
        mask = int(ek_calendar.allowedEntityTypes())
        return EK_ENTITY_TYPE_REMINDER if mask & (1 << EK_ENTITY_TYPE_REMINDER) else EK_ENTITY_TYPE_EVENT

    def list_calendars(self) -> List[CalendarRecord]:
        calendars = []
        for entity_type in (EK_ENTITY_TYPE_EVENT, EK_ENTITY_TYPE_REMINDER):
            for ek_calendar in self.event_store.calendarsForEntityType_(entity_type) or []:
                calendars.append(calendar_from_ek(ek_calendar, entity_type))
        logger.info(f"Found {len(calendars)} calendars and reminder lists")
        return calendars

    def get_calendar(self, calendar_id: str) -> Optional[CalendarRecord]:
        ek_calendar = self._ek_calendar(calendar_id)
        if ek_calendar is None:
            return None
        return calendar_from_ek(ek_calendar, self._entity_type_of(ek_calendar))

    def _default_source(self):
        """Prefer iCloud, then Local, then whatever exists."""
        sources = list(self.event_store.sources() or [])
        for source in sources:
            if int(source.sourceType()) == EK_SOURCE_TYPE_CALDAV and source.title() == "iCloud":
                return source
        for source in sources:
            if int(source.sourceType()) == EK_SOURCE_TYPE_LOCAL:
                return source
        return sources[0] if sources else None

    def save_calendar(self, calendar: CalendarRecord) -> CalendarRecord:
        from EventKit import EKCalendar

        entity_type = EK_ENTITY_TYPE_REMINDER if calendar.type == "reminder" else EK_ENTITY_TYPE_EVENT
        if calendar.id is None:
            source = self._default_source()
            if source is None:
                raise PersistenceError("No suitable calendar source found")
            ek_calendar = EKCalendar.calendarForEntityType_eventStore_(entity_type, self.event_store)
            ek_calendar.setSource_(source)
        else:
            ek_calendar = self._ek_calendar(calendar.id)
            if ek_calendar is None:
                raise NotFoundError(f"Calendar not found with ID: {calendar.id}")
            entity_type = self._entity_type_of(ek_calendar)

        ek_calendar.setTitle_(calendar.title)
        if calendar.color:
            ns_color = hex_to_nscolor(calendar.color)
            if ns_color is not None:
                ek_calendar.setColor_(ns_color)

        ok, error = self.event_store.saveCalendar_commit_error_(ek_calendar, True, None)
        if not ok:
            raise PersistenceError(error_message(error))
        return calendar_from_ek(ek_calendar, entity_type)

    def remove_calendar(self, calendar_id: str) -> None:
        ek_calendar = self._ek_calendar(calendar_id)
        if ek_calendar is None:
            raise NotFoundError(f"Calendar not found with ID: {calendar_id}")

        ok, error = self.event_store.removeCalendar_commit_error_(ek_calendar, True, None)
        if not ok:
            raise PersistenceError(error_message(error))

    # =========================================================================
    # Events
    # =========================================================================

    def fetch_events(self, calendar_id: str, start: datetime, end: datetime) -> List[EventRecord]:
        ek_calendar = self._ek_calendar(calendar_id)
        if ek_calendar is None:
            raise NotFoundError(f"Calendar not found with ID: {calendar_id}")

        predicate = self.event_store.predicateForEventsWithStartDate_endDate_calendars_(
            datetime_to_nsdate(start), datetime_to_nsdate(end), [ek_calendar]
        )
        events = [event_from_ek(e) for e in (self.event_store.eventsMatchingPredicate_(predicate) or [])]
        logger.info(f"Retrieved {len(events)} events from calendar {calendar_id}")
        return events

    def get_event(self, event_id: str) -> Optional[EventRecord]:
        ek_event = self.event_store.eventWithIdentifier_(event_id)
        if ek_event is None:
            logger.debug(f"Event not found: {event_id}")
            return None
        return event_from_ek(ek_event)

    def _apply_event(self, ek_event, event: EventRecord, current: Optional[EventRecord]) -> None:
        from EventKit import EKAlarm
        from Foundation import NSURL

        ek_event.setTitle_(event.title)
        ek_event.setStartDate_(datetime_to_nsdate(event.start_date))
        ek_event.setEndDate_(datetime_to_nsdate(event.end_date))
        ek_event.setAllDay_(event.all_day)
        ek_event.setLocation_(event.location)
        ek_event.setStructuredLocation_(location_to_ek(event.structured_location))
        ek_event.setNotes_(event.notes)
        ek_event.setURL_(NSURL.URLWithString_(event.url) if event.url else None)

        if event.availability in AVAILABILITY_TO_EK:
            ek_event.setAvailability_(AVAILABILITY_TO_EK[event.availability])

        if event.travel_time is not None:
            try:
                ek_event.setValue_forKey_(event.travel_time, "travelTime")
            except Exception as e:
                logger.warning(f"Could not set travel time: {e}")

        current_alarms = current.alarms if current else []
        if event.alarms != current_alarms:
            for alarm in list(ek_event.alarms() or []):
                ek_event.removeAlarm_(alarm)
            for offset in event.alarms:
                ek_event.addAlarm_(EKAlarm.alarmWithRelativeOffset_(offset))

        current_rules = current.recurrence_rules if current else []
        if event.recurrence_rules != current_rules:
            for rule in list(ek_event.recurrenceRules() or []):
                ek_event.removeRecurrenceRule_(rule)
            for rule in event.recurrence_rules:
                ek_event.addRecurrenceRule_(rule_to_ek(rule))

    def save_event(self, event: EventRecord) -> EventRecord:
        from EventKit import EKEvent

        if event.id is None:
            ek_calendar = self._ek_calendar(event.calendar_id)
            if ek_calendar is None:
                raise NotFoundError(f"Calendar not found with ID: {event.calendar_id}")
            ek_event = EKEvent.eventWithEventStore_(self.event_store)
            ek_event.setCalendar_(ek_calendar)
            current = None
        else:
            ek_event = self.event_store.eventWithIdentifier_(event.id)
            if ek_event is None:
                raise NotFoundError(f"Event not found with ID: {event.id}")
            current = event_from_ek(ek_event)

        self._apply_event(ek_event, event, current)

        ok, error = self.event_store.saveEvent_span_commit_error_(ek_event, EK_SPAN_THIS_EVENT, True, None)
        if not ok:
            raise PersistenceError(error_message(error))
        return event_from_ek(ek_event)

    def remove_event(self, event_id: str) -> None:
        ek_event = self.event_store.eventWithIdentifier_(event_id)
        if ek_event is None:
            raise NotFoundError(f"Event not found with ID: {event_id}")

        ok, error = self.event_store.removeEvent_span_commit_error_(ek_event, EK_SPAN_THIS_EVENT, True, None)
        if not ok:
            raise PersistenceError(error_message(error))

    # =========================================================================
    # Reminders
    # =========================================================================

    def fetch_reminders(self, list_id: str, completed: Optional[bool] = None) -> List[ReminderRecord]:
        ek_calendar = self._ek_calendar(list_id)
        if ek_calendar is None:
            raise NotFoundError(f"Reminder list not found with ID: {list_id}")

        predicate = self.event_store.predicateForRemindersInCalendars_([ek_calendar])

        slot = CallbackSlot()
        self.event_store.fetchRemindersMatchingPredicate_completion_(
            predicate, lambda reminders: slot.resolve(reminders)
        )
        if not slot.wait(self.fetch_timeout, self.pump):
            logger.error("EventKit reminder fetch timed out")
            raise PersistenceError(f"Timed out fetching reminders after {self.fetch_timeout:g} seconds")

        fetched = slot.values[0] or []
        reminders = [reminder_from_ek(r) for r in fetched]
        if completed is not None:
            reminders = [r for r in reminders if r.completed == completed]

        logger.info(f"Retrieved {len(reminders)} reminders from list {list_id}")
        return reminders

    def _ek_reminder(self, reminder_id: str):
        from EventKit import EKReminder

        item = self.event_store.calendarItemWithIdentifier_(reminder_id)
        if item is None or not isinstance(item, EKReminder):
            return None
        return item

    def get_reminder(self, reminder_id: str) -> Optional[ReminderRecord]:
        ek_reminder = self._ek_reminder(reminder_id)
        if ek_reminder is None:
            logger.debug(f"Reminder not found: {reminder_id}")
            return None
        return reminder_from_ek(ek_reminder)

    def save_reminder(self, reminder: ReminderRecord) -> ReminderRecord:
        from EventKit import EKReminder
        from Foundation import NSURL

        if reminder.id is None:
            ek_calendar = self._ek_calendar(reminder.list_id)
            if ek_calendar is None:
                raise NotFoundError(f"Reminder list not found with ID: {reminder.list_id}")
            ek_reminder = EKReminder.reminderWithEventStore_(self.event_store)
            ek_reminder.setCalendar_(ek_calendar)
        else:
            ek_reminder = self._ek_reminder(reminder.id)
            if ek_reminder is None:
                raise NotFoundError(f"Reminder not found with ID: {reminder.id}")

        ek_reminder.setTitle_(reminder.title)
        ek_reminder.setPriority_(reminder.priority)
        ek_reminder.setNotes_(reminder.notes)
        ek_reminder.setDueDateComponents_(datetime_to_nsdatecomponents(reminder.due_date))
        ek_reminder.setURL_(NSURL.URLWithString_(reminder.url) if reminder.url else None)
        ek_reminder.setCompleted_(reminder.completed)
        if reminder.completed:
            ek_reminder.setCompletionDate_(datetime_to_nsdate(reminder.completion_date))

        ok, error = self.event_store.saveReminder_commit_error_(ek_reminder, True, None)
        if not ok:
            raise PersistenceError(error_message(error))
        return reminder_from_ek(ek_reminder)

    def remove_reminder(self, reminder_id: str) -> None:
        ek_reminder = self._ek_reminder(reminder_id)
        if ek_reminder is None:
            raise NotFoundError(f"Reminder not found with ID: {reminder_id}")

        ok, error = self.event_store.removeReminder_commit_error_(ek_reminder, True, None)
        if not ok:
            raise PersistenceError(error_message(error))
