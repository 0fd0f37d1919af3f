"""
Calendar store interface.

The manager talks to the host calendar database only through this interface.
EventKitStore (eventkit_gateway.eventkit.store) implements it on macOS; tests
use an in-memory implementation.

Callback-style methods take a completion callable and return immediately.
The completion may fire on any thread, or only while the host run loop is
serviced through pump().
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional

from eventkit_gateway.core.models import CalendarRecord, EventRecord, ReminderRecord

# completion(granted, error_message)
GrantCompletion = Callable[[bool, Optional[str]], None]
# completion(latitude, longitude, error_message); coordinates are None on failure
GeocodeCompletion = Callable[[Optional[float], Optional[float], Optional[str]], None]


class CalendarStore(ABC):
    """Abstract calendar/reminder store"""

    # Asynchronous channels

    @abstractmethod
    def request_calendar_access(self, completion: GrantCompletion) -> None:
        """Start the calendar grant request."""

    @abstractmethod
    def request_reminders_access(self, completion: GrantCompletion) -> None:
        """Start the reminders grant request."""

    @abstractmethod
    def geocode(self, address: str, completion: GeocodeCompletion) -> None:
        """Start an address-to-coordinate lookup."""

    @property
    def pump(self) -> Optional[Callable[[float], None]]:
        """Callable servicing the host run loop for a slice of seconds.

        None when callbacks are delivered on background threads.
        """
        return None

    # Calendars

    @abstractmethod
    def list_calendars(self) -> List[CalendarRecord]:
        pass

    @abstractmethod
    def get_calendar(self, calendar_id: str) -> Optional[CalendarRecord]:
        pass

    @abstractmethod
    def save_calendar(self, calendar: CalendarRecord) -> CalendarRecord:
        """Create (id is None) or update a calendar. Raises PersistenceError."""

    @abstractmethod
    def remove_calendar(self, calendar_id: str) -> None:
        """Raises PersistenceError."""

    # Events

    @abstractmethod
    def fetch_events(self, calendar_id: str, start: datetime, end: datetime) -> List[EventRecord]:
        pass

    @abstractmethod
    def get_event(self, event_id: str) -> Optional[EventRecord]:
        pass

    @abstractmethod
    def save_event(self, event: EventRecord) -> EventRecord:
        """Create (id is None) or update an event. Raises PersistenceError."""

    @abstractmethod
    def remove_event(self, event_id: str) -> None:
        """Raises PersistenceError."""

    # Reminders

    @abstractmethod
    def fetch_reminders(self, list_id: str, completed: Optional[bool] = None) -> List[ReminderRecord]:
        pass

    @abstractmethod
    def get_reminder(self, reminder_id: str) -> Optional[ReminderRecord]:
        pass

    @abstractmethod
    def save_reminder(self, reminder: ReminderRecord) -> ReminderRecord:
        """Create (id is None) or update a reminder. Raises PersistenceError."""

    @abstractmethod
    def remove_reminder(self, reminder_id: str) -> None:
        """Raises PersistenceError."""
