"""Working-day arithmetic against the jurisdiction holiday calendar"""

from datetime import date, timedelta

from tenancy_engine.domain.holidays import HolidayCalendar, get_default_calendar
from tenancy_engine.utils.date_utils import generate_date_range

ONE_DAY = timedelta(days=1)


def is_working_day(day: date, region: str | None = None, calendar: HolidayCalendar | None = None) -> bool:
    """
    Working days exclude:
    - Saturdays and Sundays
    - national public holidays
    - the region's anniversary day
    - the summer blackout (25 Dec - 15 Jan) when enabled
    """
    calendar = calendar or get_default_calendar()
    if day.weekday() >= 5:
        return False
    if calendar.is_blackout(day):
        return False
    return not calendar.is_holiday(day, region)


def next_working_day(day: date, region: str | None = None, calendar: HolidayCalendar | None = None) -> date:
    """First working day strictly after day"""
    calendar = calendar or get_default_calendar()
    current = day + ONE_DAY
    while not is_working_day(current, region, calendar):
        current += ONE_DAY
    return current


def add_working_days(day: date, n: int, region: str | None = None, calendar: HolidayCalendar | None = None) -> date:
    """
    Step forward n working days; day itself is never counted.

    n == 0 rolls a non-working day forward to the next working day.
    """
    if n < 0:
        raise ValueError("n must be >= 0")
    calendar = calendar or get_default_calendar()
    if n == 0 and not is_working_day(day, region, calendar):
        return next_working_day(day, region, calendar)
    current = day
    for _ in range(n):
        current = next_working_day(current, region, calendar)
    return current


def working_days_between(start: date, end: date, region: str | None = None, calendar: HolidayCalendar | None = None) -> int:
    """
    Working days in (start, end]: start excluded, end included.

    Negative when end is before start, so the sign follows calendar order.
    """
    if end < start:
        return -working_days_between(end, start, region, calendar)
    if end == start:
        return 0
    calendar = calendar or get_default_calendar()
    return sum(
        1 for day in generate_date_range(start + ONE_DAY, end) if is_working_day(day, region, calendar)
    )
