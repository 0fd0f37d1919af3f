"""
Unit tests for the recurrence planner.
Tests token parsing for each rule field and the strict/lenient split between
weekday tokens and everything else.
"""

from datetime import datetime, timezone

import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from eventkit_gateway.core.errors import ValidationError
from eventkit_gateway.core.models import Frequency, RecurrenceSpec, Weekday, WeekdayOrdinal
from eventkit_gateway.recurrence import (
    _parse_token_list,
    build_rule,
    parse_end,
    parse_frequency,
    parse_int_list,
    parse_interval,
    parse_months,
    parse_weekday,
    parse_weekdays,
    plan_recurrence,
)


class TestFrequency:
    """Tests for frequency parsing."""

    @pytest.mark.parametrize("token,expected", [
        ("daily", Frequency.DAILY),
        ("WEEKLY", Frequency.WEEKLY),
        ("Monthly", Frequency.MONTHLY),
        (" yearly ", Frequency.YEARLY),
    ])
    def test_valid(self, token, expected):
        assert parse_frequency(token) == expected

    def test_invalid(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_frequency("fortnightly")
        assert exc_info.value.message == "Invalid recurrence frequency: fortnightly"


class TestInterval:
    """Tests for interval parsing."""

    def test_absent_defaults_to_one(self):
        assert parse_interval(None) == 1

    def test_numeric(self):
        assert parse_interval("3") == 3

    def test_non_numeric_defaults_to_one(self):
        assert parse_interval("often") == 1

    def test_below_one_is_error(self):
        with pytest.raises(ValidationError):
            parse_interval("0")
        with pytest.raises(ValidationError):
            parse_interval("-2")


class TestWeekdays:
    """Tests for strict weekday parsing."""

    def test_ordinal_examples(self):
        assert parse_weekday("1mon") == WeekdayOrdinal(Weekday.MONDAY, 1)
        assert parse_weekday("-1fri") == WeekdayOrdinal(Weekday.FRIDAY, -1)
        assert parse_weekday("wed") == WeekdayOrdinal(Weekday.WEDNESDAY, None)

    def test_long_names_and_case(self):
        assert parse_weekday("Thursday") == WeekdayOrdinal(Weekday.THURSDAY, None)
        assert parse_weekday("2SUNDAY") == WeekdayOrdinal(Weekday.SUNDAY, 2)
        assert parse_weekday("+3sat") == WeekdayOrdinal(Weekday.SATURDAY, 3)

    def test_zero_ordinal_means_every(self):
        assert parse_weekday("0tue") == WeekdayOrdinal(Weekday.TUESDAY, None)

    def test_unknown_day_fails(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_weekday("xyz")
        assert exc_info.value.message == "Invalid recurrence day: xyz"

    def test_one_bad_token_fails_the_list(self):
        with pytest.raises(ValidationError):
            parse_weekdays("mon,xyz,fri")

    def test_list_skips_empty_tokens(self):
        days = parse_weekdays("mon, ,wed,")
        assert [d.weekday for d in days] == [Weekday.MONDAY, Weekday.WEDNESDAY]

    def test_absent(self):
        assert parse_weekdays(None) == []


class TestLenientLists:
    """Tests for month and integer lists, which drop bad tokens."""

    def test_months_mixed(self):
        assert parse_months("jan,13,foo,8") == [1, 8]

    def test_months_long_names(self):
        assert parse_months("March, december") == [3, 12]

    def test_int_list_drops_garbage(self):
        assert parse_int_list("1,15,-1,x,2.5") == [1, 15, -1]

    def test_token_list_reports_drops(self):
        values, dropped = _parse_token_list("1,a,2,b", lambda t: int(t) if t.isdigit() else None, "test")
        assert values == [1, 2]
        assert dropped == 2

    def test_absent(self):
        assert parse_months(None) == []
        assert parse_int_list(None) == []


class TestEnd:
    """Tests for the recurrence end condition."""

    def test_count_wins_over_date(self):
        end = parse_end("5", "2030-01-01T00:00:00Z")
        assert end.count == 5
        assert end.date is None

    def test_date_only(self):
        end = parse_end(None, "2026-06-30T00:00:00Z")
        assert end.date == datetime(2026, 6, 30, tzinfo=timezone.utc)

    def test_non_numeric_count_ignored(self):
        end = parse_end("lots", "2026-06-30T00:00:00Z")
        assert end.count is None
        assert end.date is not None

    def test_non_numeric_count_without_date(self):
        assert parse_end("lots", None) is None

    def test_count_below_one_is_error(self):
        with pytest.raises(ValidationError):
            parse_end("0", None)

    def test_invalid_date_is_error(self):
        with pytest.raises(ValidationError):
            parse_end(None, "someday")

    def test_neither(self):
        assert parse_end(None, None) is None


class TestBuildRule:
    """Tests for assembling a full rule."""

    def test_full_rule(self):
        spec = RecurrenceSpec(
            frequency="monthly",
            interval="2",
            end_count="10",
            days="-1fri",
            months="jan,jun",
            days_of_month="1,-1",
            weeks_of_year="20",
            days_of_year="100",
            set_positions="-1",
        )
        rule = build_rule(spec)
        assert rule.frequency == Frequency.MONTHLY
        assert rule.interval == 2
        assert rule.days_of_week == [WeekdayOrdinal(Weekday.FRIDAY, -1)]
        assert rule.months == [1, 6]
        assert rule.days_of_month == [1, -1]
        assert rule.weeks_of_year == [20]
        assert rule.days_of_year == [100]
        assert rule.set_positions == [-1]
        assert rule.end.count == 10

    def test_minimal_rule(self):
        rule = build_rule(RecurrenceSpec(frequency="daily"))
        assert rule.interval == 1
        assert rule.days_of_week == []
        assert rule.end is None

    def test_bad_weekday_fails_build(self):
        with pytest.raises(ValidationError):
            build_rule(RecurrenceSpec(frequency="weekly", days="mon,funday"))

    def test_requires_frequency(self):
        with pytest.raises(ValidationError):
            build_rule(RecurrenceSpec(days="mon"))

    def test_plan_without_frequency(self):
        """No frequency means no recurrence, even with other options set."""
        assert plan_recurrence(RecurrenceSpec()) is None
        assert plan_recurrence(RecurrenceSpec(days="mon")) is None

    def test_plan_with_frequency(self):
        rule = plan_recurrence(RecurrenceSpec(frequency="weekly", days="mon,wed,fri"))
        assert [d.weekday for d in rule.days_of_week] == [Weekday.MONDAY, Weekday.WEDNESDAY, Weekday.FRIDAY]
