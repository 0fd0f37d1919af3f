"""
Unit tests for date helpers and record/result serialization.
"""

from datetime import datetime, timedelta, timezone

import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from eventkit_gateway.core.dates import format_local_iso, parse_iso_datetime
from eventkit_gateway.core.errors import ValidationError
from eventkit_gateway.core.models import (
    AliasList,
    AliasSaved,
    CalendarList,
    CalendarRecord,
    EventDeleted,
    EventRecord,
    Frequency,
    LocationRef,
    RecurrenceEnd,
    RecurrenceRule,
    ReminderRecord,
    Weekday,
    WeekdayOrdinal,
)


class TestParseIsoDatetime:
    """Tests for ISO 8601 input parsing."""

    def test_utc_suffix(self):
        dt = parse_iso_datetime("2026-02-01T09:00:00Z", "--start")
        assert dt == datetime(2026, 2, 1, 9, 0, tzinfo=timezone.utc)

    def test_explicit_offset(self):
        dt = parse_iso_datetime("2026-02-01T09:00:00+02:00", "--start")
        assert dt.utcoffset() == timedelta(hours=2)

    def test_naive_input_is_local(self):
        """Naive datetimes get the local timezone."""
        dt = parse_iso_datetime("2026-02-01T09:00:00", "--start")
        assert dt.tzinfo is not None
        assert (dt.hour, dt.minute) == (9, 0)

    def test_surrounding_whitespace_ignored(self):
        dt = parse_iso_datetime("  2026-02-01T09:00:00Z ", "--start")
        assert dt.year == 2026

    def test_invalid_names_option(self):
        """The error message names the offending option."""
        with pytest.raises(ValidationError) as exc_info:
            parse_iso_datetime("next tuesday", "--from")
        assert "--from" in exc_info.value.message


class TestFormatLocalIso:
    """Tests for ISO 8601 output formatting."""

    def test_none_is_none(self):
        assert format_local_iso(None) is None

    def test_round_trips_instant(self):
        """Formatted output parses back to the same instant."""
        dt = datetime(2026, 2, 1, 9, 30, 15, 123456, tzinfo=timezone.utc)
        text = format_local_iso(dt)
        assert parse_iso_datetime(text, "--start") == dt.replace(microsecond=0)

    def test_has_offset_or_z(self):
        text = format_local_iso(datetime(2026, 2, 1, 9, 0, tzinfo=timezone.utc))
        assert text.endswith("Z") or text[-6] in "+-"
        assert "." not in text


class TestRecurrenceModels:
    """Tests for recurrence value objects."""

    def test_end_requires_exactly_one(self):
        with pytest.raises(ValueError):
            RecurrenceEnd()
        with pytest.raises(ValueError):
            RecurrenceEnd(count=3, date=datetime(2026, 1, 1, tzinfo=timezone.utc))

    def test_rule_to_dict(self):
        rule = RecurrenceRule(
            frequency=Frequency.MONTHLY,
            interval=2,
            days_of_week=[WeekdayOrdinal(Weekday.FRIDAY, -1)],
            months=[1, 6],
            end=RecurrenceEnd.after_count(5),
        )
        data = rule.to_dict()
        assert data["frequency"] == "monthly"
        assert data["interval"] == 2
        assert data["daysOfWeek"] == [{"weekday": "friday", "ordinal": -1}]
        assert data["months"] == [1, 6]
        assert data["daysOfMonth"] == []
        assert data["end"] == {"count": 5, "date": None}


class TestRecordSerialization:
    """Tests for the fixed JSON shape of records and results."""

    def test_event_optional_fields_are_null(self):
        """Optional event fields are present as null, never omitted."""
        event = EventRecord(
            id="EVT-1",
            title="Standup",
            calendar_id="CAL-1",
            calendar_title="Work",
            start_date=datetime(2026, 2, 2, 9, 0, tzinfo=timezone.utc),
            end_date=datetime(2026, 2, 2, 9, 15, tzinfo=timezone.utc),
        )
        data = event.to_dict()
        assert data["calendar"] == {"id": "CAL-1", "title": "Work"}
        for key in ("location", "structuredLocation", "notes", "url", "availability", "travelTime"):
            assert key in data
            assert data[key] is None
        assert data["hasAlarms"] is False
        assert data["hasRecurrenceRules"] is False
        assert data["recurrenceRules"] == []

    def test_event_flags_follow_contents(self):
        event = EventRecord(
            alarms=[-1800.0],
            recurrence_rules=[RecurrenceRule(frequency=Frequency.DAILY)],
        )
        data = event.to_dict()
        assert data["hasAlarms"] is True
        assert data["hasRecurrenceRules"] is True

    def test_unresolved_location_has_no_coordinate(self):
        location = LocationRef(title="Somewhere")
        assert not location.resolved
        assert location.to_dict() == {"title": "Somewhere", "latitude": None, "longitude": None, "radius": None}

    def test_resolved_location(self):
        location = LocationRef(title="Apple Park", latitude=37.33, longitude=-122.01)
        assert location.resolved
        assert location.to_dict()["radius"] == 0.0

    def test_reminder_to_dict(self):
        reminder = ReminderRecord(id="REM-1", title="Milk", list_id="LIST-1", list_title="Groceries", priority=1)
        data = reminder.to_dict()
        assert data["list"] == {"id": "LIST-1", "title": "Groceries"}
        assert data["priority"] == 1
        assert data["completed"] is False
        assert data["dueDate"] is None
        assert data["completionDate"] is None

    def test_calendar_default_color(self):
        data = CalendarRecord(id="CAL-1", title="Work").to_dict()
        assert data["color"] == "#000000"
        assert data["allowsModifications"] is True

    def test_calendar_list_counts(self):
        result = CalendarList([CalendarRecord(id="A"), CalendarRecord(id="B")])
        assert result.to_dict()["count"] == 2

    def test_event_deleted_payload(self):
        result = EventDeleted("Event 'Standup' deleted successfully", "EVT-1")
        assert result.to_dict() == {
            "status": "success",
            "message": "Event 'Standup' deleted successfully",
            "deletedEventID": "EVT-1",
        }

    def test_alias_saved_payload(self):
        data = AliasSaved("work", "CAL-1").to_dict()
        assert data["message"] == "Alias 'work' set successfully"
        assert data["alias"] == {"name": "work", "id": "CAL-1"}

    def test_alias_list_sorted(self):
        data = AliasList({"work": "CAL-1", "home": "CAL-2"}, "/tmp/config.json").to_dict()
        assert [a["name"] for a in data["aliases"]] == ["home", "work"]
        assert data["count"] == 2
        assert data["configPath"] == "/tmp/config.json"
