"""
Shared fixtures for unit tests.

FakeStore is an in-memory CalendarStore: grant and geocode completions fire
synchronously, saves assign sequential identifiers, and any write can be made
to fail by setting fail_writes.
"""

import copy
import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from eventkit_gateway.core.config import Config
from eventkit_gateway.core.errors import PersistenceError
from eventkit_gateway.core.models import CalendarRecord, EventRecord, ReminderRecord
from eventkit_gateway.core.store import CalendarStore


class FakeStore(CalendarStore):
    """In-memory calendar store"""

    def __init__(self):
        self.calendar_grant = (True, None)
        self.reminders_grant = (True, None)
        self.geocode_result = (37.3349, -122.0090, None)  # None means never completes
        self.fail_writes: Optional[str] = None

        self.access_requests: List[str] = []
        self.geocode_requests: List[str] = []

        self.calendars: Dict[str, CalendarRecord] = {}
        self.events: Dict[str, EventRecord] = {}
        self.reminders: Dict[str, ReminderRecord] = {}
        self._next_id = 1

    def _new_id(self, prefix: str) -> str:
        new_id = f"{prefix}-{self._next_id}"
        self._next_id += 1
        return new_id

    def _check_write(self) -> None:
        if self.fail_writes:
            raise PersistenceError(self.fail_writes)

    def add_calendar(self, calendar_id: str, title: str, type: str = "event",
                     allows_modifications: bool = True) -> CalendarRecord:
        record = CalendarRecord(
            id=calendar_id, title=title, type=type, source="iCloud",
            color="#1BADF8", allows_modifications=allows_modifications,
        )
        self.calendars[calendar_id] = record
        return record

    # Channels

    def request_calendar_access(self, completion):
        self.access_requests.append("calendar")
        completion(*self.calendar_grant)

    def request_reminders_access(self, completion):
        self.access_requests.append("reminders")
        completion(*self.reminders_grant)

    def geocode(self, address, completion):
        self.geocode_requests.append(address)
        if self.geocode_result is not None:
            completion(*self.geocode_result)

    # Calendars

    def list_calendars(self):
        return list(self.calendars.values())

    def get_calendar(self, calendar_id):
        return self.calendars.get(calendar_id)

    def save_calendar(self, calendar):
        self._check_write()
        saved = copy.deepcopy(calendar)
        if saved.id is None:
            saved.id = self._new_id("CAL")
            saved.source = "iCloud"
        self.calendars[saved.id] = saved
        return copy.deepcopy(saved)

    def remove_calendar(self, calendar_id):
        self._check_write()
        del self.calendars[calendar_id]

    # Events

    def fetch_events(self, calendar_id, start, end):
        return [
            copy.deepcopy(e) for e in self.events.values()
            if e.calendar_id == calendar_id and e.start_date < end and e.end_date > start
        ]

    def get_event(self, event_id):
        event = self.events.get(event_id)
        return copy.deepcopy(event) if event else None

    def save_event(self, event):
        self._check_write()
        saved = copy.deepcopy(event)
        if saved.id is None:
            saved.id = self._new_id("EVT")
        self.events[saved.id] = saved
        return copy.deepcopy(saved)

    def remove_event(self, event_id):
        self._check_write()
        del self.events[event_id]

    # Reminders

    def fetch_reminders(self, list_id, completed=None):
        return [
            copy.deepcopy(r) for r in self.reminders.values()
            if r.list_id == list_id and (completed is None or r.completed == completed)
        ]

    def get_reminder(self, reminder_id):
        reminder = self.reminders.get(reminder_id)
        return copy.deepcopy(reminder) if reminder else None

    def save_reminder(self, reminder):
        self._check_write()
        saved = copy.deepcopy(reminder)
        if saved.id is None:
            saved.id = self._new_id("REM")
        self.reminders[saved.id] = saved
        return copy.deepcopy(saved)

    def remove_reminder(self, reminder_id):
        self._check_write()
        del self.reminders[reminder_id]


@pytest.fixture
def store():
    """FakeStore with one writable calendar, one read-only calendar and one reminder list"""
    fake = FakeStore()
    fake.add_calendar("CAL-WORK", "Work")
    fake.add_calendar("CAL-HOLIDAYS", "Holidays", allows_modifications=False)
    fake.add_calendar("LIST-GROCERIES", "Groceries", type="reminder")
    return fake


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "config.json"


@pytest.fixture
def config(config_path):
    return Config(config_path)
