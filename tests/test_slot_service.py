"""
Tests for the slot availability engine.

Run with: pytest tests/test_slot_service.py -v
"""
from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from app.core.config import Settings
from app.core.errors import InvalidDateError
from app.services.slot_service import (
    DEFAULT_POLICY,
    BusinessHours,
    BusinessHoursPolicy,
    compute_availability,
    day_of_week,
    format_hour_label,
    is_slot_open,
    parse_calendar_date,
)
from conftest import MONDAY, SATURDAY, SUNDAY, WEDNESDAY, booking


# ============================================================================
# BUSINESS HOURS POLICY
# ============================================================================

class TestBusinessHoursPolicy:

    def test_default_policy_intervals(self):
        assert DEFAULT_POLICY.hours_for(0) is None
        for dow in range(1, 6):
            assert DEFAULT_POLICY.hours_for(dow) == BusinessHours(9, 18)
        assert DEFAULT_POLICY.hours_for(6) == BusinessHours(8, 19)

    def test_from_settings_matches_default(self):
        policy = BusinessHoursPolicy.from_settings(Settings())
        for dow in range(7):
            assert policy.hours_for(dow) == DEFAULT_POLICY.hours_for(dow)

    def test_from_settings_uses_configured_hours(self):
        policy = BusinessHoursPolicy.from_settings(Settings(weekday_start_hour=10, weekday_end_hour=16))
        assert policy.hours_for(3) == BusinessHours(10, 16)
        assert policy.hours_for(0) is None

    @pytest.mark.parametrize("interval", [BusinessHours(18, 9), BusinessHours(9, 9), BusinessHours(-1, 5), BusinessHours(9, 25)])
    def test_invalid_interval_rejected(self, interval):
        with pytest.raises(ValueError):
            BusinessHoursPolicy({1: interval})

    def test_days_not_listed_are_closed(self):
        policy = BusinessHoursPolicy({3: BusinessHours(9, 12)})
        assert policy.hours_for(1) is None
        assert policy.hours_for(3) == BusinessHours(9, 12)


# ============================================================================
# LABELS AND DATES
# ============================================================================

class TestFormatting:

    @pytest.mark.parametrize(
        "hour,label",
        [
            (0, "12:00 AM"),
            (9, "9:00 AM"),
            (11, "11:00 AM"),
            (12, "12:00 PM"),
            (13, "1:00 PM"),
            (17, "5:00 PM"),
            (23, "11:00 PM"),
            (24, "12:00 AM"),
        ],
    )
    def test_format_hour_label(self, hour, label):
        assert format_hour_label(hour) == label

    def test_day_of_week_is_sunday_based(self):
        assert day_of_week(SUNDAY) == 0
        assert day_of_week(MONDAY) == 1
        assert day_of_week(WEDNESDAY) == 3
        assert day_of_week(SATURDAY) == 6

    def test_parse_iso_date_string(self):
        assert parse_calendar_date("2025-11-05") == WEDNESDAY

    def test_parse_timestamp_keeps_calendar_date(self):
        assert parse_calendar_date(datetime(2025, 11, 5, 23, 59)) == WEDNESDAY

    def test_aware_timestamp_uses_business_timezone(self):
        # 02:00 UTC on the 9th is still the evening of the 8th in New York
        tz = ZoneInfo("America/New_York")
        assert parse_calendar_date("2025-11-09T02:00:00+00:00", tz) == SATURDAY
        assert parse_calendar_date("2025-11-09T02:00:00+00:00") == SUNDAY

    @pytest.mark.parametrize("value", ["2025-02-30", "not-a-date", "", "11/05/2025", None, 20251105])
    def test_unparseable_date_raises(self, value):
        with pytest.raises(InvalidDateError):
            parse_calendar_date(value)


# ============================================================================
# COMPUTE AVAILABILITY
# ============================================================================

class TestComputeAvailability:

    def test_sunday_closed(self):
        result = compute_availability(SUNDAY)
        assert result.is_closed is True
        assert result.slots == ()
        assert result.business_hours_label is None
        assert result.total_slot_count == 0
        assert result.booked_slot_count == 0
        assert result.day_name == "Sunday"

    def test_sunday_closed_regardless_of_bookings(self):
        result = compute_availability(SUNDAY, [booking(SUNDAY, 10), booking(SUNDAY, 11, "scheduled")])
        assert result.is_closed is True
        assert result.slots == ()

    @pytest.mark.parametrize("offset", range(5))
    def test_weekdays_have_nine_slots(self, offset):
        d = date.fromordinal(MONDAY.toordinal() + offset)
        result = compute_availability(d, [])
        assert result.is_closed is False
        assert [s.hour for s in result.slots] == list(range(9, 18))
        assert result.slots[0].label == "9:00 AM"
        assert result.slots[-1].label == "5:00 PM"
        assert result.total_slot_count == 9
        assert result.booked_slot_count == 0
        assert result.business_hours_label == "9:00 AM - 6:00 PM"

    def test_saturday_has_eleven_slots(self):
        result = compute_availability(SATURDAY, [])
        assert [s.hour for s in result.slots] == list(range(8, 19))
        assert result.slots[0].label == "8:00 AM"
        assert result.slots[-1].label == "6:00 PM"
        assert result.total_slot_count == 11
        assert result.business_hours_label == "8:00 AM - 7:00 PM"

    def test_wednesday_scenario(self):
        """Confirmed 9 AM blocks; completed 2 PM does not."""
        result = compute_availability(
            WEDNESDAY, [booking(WEDNESDAY, 9, "confirmed"), booking(WEDNESDAY, 14, "completed")]
        )
        labels = result.slot_labels
        assert "9:00 AM" not in labels
        assert "2:00 PM" in labels
        assert len(labels) == 8
        assert result.total_slot_count == 9
        assert result.booked_slot_count == 1
        assert result.day_name == "Wednesday"

    def test_cancelled_booking_does_not_block(self):
        result = compute_availability(WEDNESDAY, [booking(WEDNESDAY, 10, "cancelled")])
        assert is_slot_open(result, 10)

    @pytest.mark.parametrize("status", ["scheduled", "confirmed", "in_progress"])
    def test_occupying_statuses_block(self, status):
        result = compute_availability(WEDNESDAY, [booking(WEDNESDAY, 10, status)])
        assert not is_slot_open(result, 10)
        assert result.booked_slot_count == 1

    def test_duplicate_bookings_counted_once(self):
        result = compute_availability(
            WEDNESDAY,
            [booking(WEDNESDAY, 11), booking(WEDNESDAY, 11, "scheduled"), booking(WEDNESDAY, 11, minute=30)],
        )
        assert len(result.slots) == 8
        assert result.booked_slot_count == 1
        assert len({s.hour for s in result.slots}) == len(result.slots)

    def test_minutes_ignored(self):
        result = compute_availability(WEDNESDAY, [booking(WEDNESDAY, 15, minute=45)])
        assert not is_slot_open(result, 15)

    def test_out_of_hours_booking_not_counted(self):
        result = compute_availability(WEDNESDAY, [booking(WEDNESDAY, 7), booking(WEDNESDAY, 20)])
        assert len(result.slots) == 9
        assert result.booked_slot_count == 0

    def test_bookings_on_other_days_ignored(self):
        result = compute_availability(WEDNESDAY, [booking(MONDAY, 9), booking(SATURDAY, 10)])
        assert len(result.slots) == 9

    def test_order_is_ascending_after_filtering(self):
        result = compute_availability(WEDNESDAY, [booking(WEDNESDAY, 12), booking(WEDNESDAY, 10)])
        hours = [s.hour for s in result.slots]
        assert hours == sorted(hours)
        assert hours == [9, 11, 13, 14, 15, 16, 17]

    def test_idempotent(self):
        bookings = [booking(WEDNESDAY, 9), booking(WEDNESDAY, 13, "in_progress")]
        first = compute_availability(WEDNESDAY, bookings)
        second = compute_availability(WEDNESDAY, bookings)
        assert first == second
        assert first.model_dump_json() == second.model_dump_json()

    def test_accepts_string_and_timestamp(self):
        assert compute_availability("2025-11-05") == compute_availability(WEDNESDAY)
        assert compute_availability(datetime(2025, 11, 5, 16, 30)) == compute_availability(WEDNESDAY)

    def test_aware_booking_converted_to_business_timezone(self):
        tz = ZoneInfo("America/New_York")
        aware = booking(WEDNESDAY, 14).model_copy(
            update={"scheduled_date": datetime(2025, 11, 5, 14, 0, tzinfo=ZoneInfo("UTC"))}
        )
        result = compute_availability(WEDNESDAY, [aware], tz=tz)
        # 14:00 UTC is 9:00 AM in New York (EST)
        assert not is_slot_open(result, 9)
        assert is_slot_open(result, 14)

    def test_invalid_date_raises(self):
        with pytest.raises(InvalidDateError):
            compute_availability("2025-13-01", [])

    def test_custom_policy(self):
        policy = BusinessHoursPolicy({3: BusinessHours(10, 12)})
        result = compute_availability(WEDNESDAY, [], policy)
        assert result.slot_labels == ["10:00 AM", "11:00 AM"]
        assert compute_availability(MONDAY, [], policy).is_closed
