"""Hourly appointment slot availability.

Everything here is pure: callers fetch bookings and pass them in, so the same
computation serves the booking API and the chat assistant.
"""
import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime, tzinfo
from typing import NamedTuple
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict

from app.core.config import Settings
from app.core.errors import InvalidDateError
from app.models.appointment import AppointmentStatus

# 0=Sunday .. 6=Saturday
DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
SUNDAY = 0
SATURDAY = 6

CalendarDate = date

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class BusinessHours(NamedTuple):
    start_hour: int
    end_hour: int  # exclusive


class BusinessHoursPolicy:
    """Day-of-week (0=Sunday) to an optional [start_hour, end_hour) interval."""

    def __init__(self, hours: Mapping[int, BusinessHours | None]) -> None:
        for day, interval in hours.items():
            if not 0 <= day <= 6:
                raise ValueError(f"day of week must be 0-6, got {day}")
            if interval is not None and not 0 <= interval.start_hour < interval.end_hour <= 24:
                raise ValueError(f"invalid business hours for {DAY_NAMES[day]}: {interval}")
        self._hours = {day: hours.get(day) for day in range(7)}

    @classmethod
    def from_settings(cls, settings: Settings) -> "BusinessHoursPolicy":
        weekday = BusinessHours(settings.weekday_start_hour, settings.weekday_end_hour)
        hours: dict[int, BusinessHours | None] = {day: weekday for day in range(1, 6)}
        hours[SUNDAY] = None
        hours[SATURDAY] = BusinessHours(settings.saturday_start_hour, settings.saturday_end_hour)
        return cls(hours)

    def hours_for(self, day_of_week: int) -> BusinessHours | None:
        return self._hours[day_of_week]


DEFAULT_POLICY = BusinessHoursPolicy(
    {
        SUNDAY: None,
        1: BusinessHours(9, 18),
        2: BusinessHours(9, 18),
        3: BusinessHours(9, 18),
        4: BusinessHours(9, 18),
        5: BusinessHours(9, 18),
        SATURDAY: BusinessHours(8, 19),
    }
)


class BookingRecord(BaseModel):
    """Read-only snapshot of an existing appointment."""

    model_config = ConfigDict(frozen=True)

    scheduled_date: datetime
    status: AppointmentStatus

    @property
    def occupies_slot(self) -> bool:
        return self.status.occupies_slot


class TimeSlot(BaseModel):
    model_config = ConfigDict(frozen=True)

    hour: int
    label: str

    @property
    def time(self) -> str:
        return f"{self.hour:02d}:00"


class AvailabilityResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: CalendarDate
    day_name: str
    is_closed: bool
    business_hours_label: str | None
    slots: tuple[TimeSlot, ...]
    total_slot_count: int
    booked_slot_count: int

    @property
    def slot_labels(self) -> list[str]:
        return [s.label for s in self.slots]


def format_hour_label(hour: int) -> str:
    """12-hour clock label: 0 -> '12:00 AM', 13 -> '1:00 PM'. Hour 24 wraps to midnight."""
    hour = hour % 24
    suffix = "AM" if hour < 12 else "PM"
    display = hour % 12 or 12
    return f"{display}:00 {suffix}"


def day_of_week(d: date) -> int:
    """0=Sunday .. 6=Saturday."""
    return (d.weekday() + 1) % 7


def _to_local(dt: datetime, tz: tzinfo | None) -> datetime:
    # Aware timestamps move into the business zone; naive ones already are local
    if dt.tzinfo is not None and tz is not None:
        return dt.astimezone(tz).replace(tzinfo=None)
    return dt.replace(tzinfo=None)


def parse_calendar_date(value: date | datetime | str, tz: tzinfo | None = None) -> date:
    """Normalize a date, timestamp or ISO string to a calendar date in the business zone."""
    if isinstance(value, datetime):
        return _to_local(value, tz).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if _ISO_DATE_RE.match(text):
                return date.fromisoformat(text)
            if "T" in text:
                return _to_local(datetime.fromisoformat(text), tz).date()
        except ValueError as e:
            raise InvalidDateError(value) from e
    raise InvalidDateError(value)


def occupied_hours(bookings: Iterable[BookingRecord], d: date, tz: tzinfo | None = None) -> set[int]:
    """Distinct hours on `d` held by bookings whose status blocks a slot. Minutes are ignored."""
    hours: set[int] = set()
    for booking in bookings:
        if not booking.occupies_slot:
            continue
        local = _to_local(booking.scheduled_date, tz)
        if local.date() != d:
            continue
        hours.add(local.hour)
    return hours


def compute_availability(
    target: date | datetime | str,
    bookings_on_date: Iterable[BookingRecord] = (),
    policy: BusinessHoursPolicy = DEFAULT_POLICY,
    tz: tzinfo | None = None,
) -> AvailabilityResult:
    """Open hourly slots for one calendar day.

    `bookings_on_date` may span more than the day; anything outside it is ignored.
    Raises InvalidDateError when `target` cannot be read as a date.
    """
    d = parse_calendar_date(target, tz)
    dow = day_of_week(d)
    day_name = DAY_NAMES[dow]
    hours = policy.hours_for(dow)
    if hours is None:
        return AvailabilityResult(
            date=d,
            day_name=day_name,
            is_closed=True,
            business_hours_label=None,
            slots=(),
            total_slot_count=0,
            booked_slot_count=0,
        )

    candidates = [
        TimeSlot(hour=h, label=format_hour_label(h)) for h in range(hours.start_hour, hours.end_hour)
    ]
    taken = {h for h in occupied_hours(bookings_on_date, d, tz) if hours.start_hour <= h < hours.end_hour}
    return AvailabilityResult(
        date=d,
        day_name=day_name,
        is_closed=False,
        business_hours_label=f"{format_hour_label(hours.start_hour)} - {format_hour_label(hours.end_hour)}",
        slots=tuple(s for s in candidates if s.hour not in taken),
        total_slot_count=len(candidates),
        booked_slot_count=len(taken),
    )


def is_slot_open(result: AvailabilityResult, hour: int) -> bool:
    return any(s.hour == hour for s in result.slots)


def business_timezone(settings: Settings) -> ZoneInfo:
    return ZoneInfo(settings.business_timezone)
