"""Date manipulation utilities"""

import calendar
from datetime import date, datetime, timedelta
from typing import List
from zoneinfo import ZoneInfo

from tenancy_engine.config import settings


def generate_date_range(start: date, end: date) -> List[date]:
    """Generate list of dates from start to end (inclusive)"""
    days = (end - start).days + 1
    return [start + timedelta(days=i) for i in range(days)]


def calendar_days_between(start: date, end: date) -> int:
    """Calendar days from start to end (positive if end is after start)"""
    return (end - start).days


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def clamp_to_month(year: int, month: int, day: int) -> date:
    """Build a date, snapping day to the month's last day (31 -> 30, 28 or 29)"""
    return date(year, month, min(day, days_in_month(year, month)))


def local_timezone() -> ZoneInfo:
    return ZoneInfo(settings.local_timezone)


def to_local_datetime(moment: datetime) -> datetime:
    """Convert an aware datetime to local time; naive values are taken as already local"""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=local_timezone())
    return moment.astimezone(local_timezone())


def to_local_date(moment: date | datetime) -> date:
    """Normalise a date or timestamp to the local calendar date"""
    if isinstance(moment, datetime):
        return to_local_datetime(moment).date()
    return moment
