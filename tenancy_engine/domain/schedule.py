"""Due-date generation for weekly, fortnightly and monthly rent"""

from datetime import date, timedelta
from typing import Iterator

from tenancy_engine.domain.exceptions import InsufficientConfigurationError, InvalidScheduleError
from tenancy_engine.domain.models import Frequency, RentSettings
from tenancy_engine.utils.date_utils import clamp_to_month

WEEKDAYS = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}

CYCLE_LENGTH_DAYS = {
    Frequency.WEEKLY: 7,
    Frequency.FORTNIGHTLY: 14,
}


def _require(settings: RentSettings) -> Frequency:
    missing = [
        name
        for name in ("frequency", "due_day", "tracking_start_date")
        if getattr(settings, name) is None
    ]
    if missing:
        raise InsufficientConfigurationError(missing)
    try:
        return Frequency(settings.frequency)
    except ValueError:
        raise InvalidScheduleError(f"Unknown frequency: {settings.frequency!r}")


def parse_due_day(frequency: Frequency, due_day: str | int) -> int:
    """
    Weekday index (Monday=0) for Weekly/Fortnightly, day of month for Monthly.

    Monthly accepts "15" as well as 15. Weekday names are case-insensitive.
    """
    if frequency == Frequency.MONTHLY:
        try:
            day = int(due_day)
        except (TypeError, ValueError):
            raise InvalidScheduleError(f"Monthly due day must be 1-31, got {due_day!r}")
        if not 1 <= day <= 31:
            raise InvalidScheduleError(f"Monthly due day must be 1-31, got {day}")
        return day

    if not isinstance(due_day, str) or due_day.strip().lower() not in WEEKDAYS:
        raise InvalidScheduleError(f"Invalid day name: {due_day!r}")
    return WEEKDAYS[due_day.strip().lower()]


def first_due_date(settings: RentSettings) -> date:
    """The first due date on or after tracking_start_date"""
    frequency = _require(settings)
    target = parse_due_day(frequency, settings.due_day)
    start = settings.tracking_start_date

    if frequency == Frequency.MONTHLY:
        candidate = clamp_to_month(start.year, start.month, target)
        if candidate < start:
            year, month = (start.year + 1, 1) if start.month == 12 else (start.year, start.month + 1)
            candidate = clamp_to_month(year, month, target)
        return candidate

    return start + timedelta(days=(target - start.weekday()) % 7)


def next_due_date(current: date, settings: RentSettings) -> date:
    """
    Advance exactly one cycle.

    Monthly dates are clamped from the configured due day every step, so a
    31st schedule runs Jan 31 -> Feb 28 -> Mar 31, never sticking at 28.
    """
    frequency = _require(settings)
    if frequency != Frequency.MONTHLY:
        return current + timedelta(days=CYCLE_LENGTH_DAYS[frequency])

    target = parse_due_day(frequency, settings.due_day)
    year, month = (current.year + 1, 1) if current.month == 12 else (current.year, current.month + 1)
    return clamp_to_month(year, month, target)


def iter_due_dates(settings: RentSettings, until: date) -> Iterator[date]:
    """Due dates from the first one up to and including until"""
    current = first_due_date(settings)
    while current <= until:
        yield current
        current = next_due_date(current, settings)


def find_next_due_date_after(day: date, settings: RentSettings, anchor: date | None = None) -> date:
    """Roll anchor (default: first due date) forward until strictly after day"""
    current = anchor or first_due_date(settings)
    while current <= day:
        current = next_due_date(current, settings)
    return current


def count_cycles(settings: RentSettings, as_of: date) -> int:
    """Cycles whose due date is on or before as_of"""
    frequency = _require(settings)
    first = first_due_date(settings)
    if as_of < first:
        return 0
    if frequency in CYCLE_LENGTH_DAYS:
        return 1 + (as_of - first).days // CYCLE_LENGTH_DAYS[frequency]
    return sum(1 for _ in iter_due_dates(settings, as_of))


def is_on_schedule(day: date, settings: RentSettings) -> bool:
    """Whether day falls on the due-date grid the current settings generate"""
    first = first_due_date(settings)
    if day < first:
        return False
    return find_next_due_date_after(day - timedelta(days=1), settings, first) == day
