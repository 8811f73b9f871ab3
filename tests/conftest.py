"""Pytest fixtures for testing"""

import pytest
from datetime import date, datetime
from typing import Callable

from tenancy_engine.domain.holidays import HolidayCalendar, load_holiday_table
from tenancy_engine.domain.models import (
    DebtSnapshot,
    Frequency,
    NoticeRecord,
    NoticeType,
    RentSettings,
)


@pytest.fixture
def nz_calendar() -> HolidayCalendar:
    """Built-in NZ holidays with the summer blackout applied"""
    return HolidayCalendar(load_holiday_table(), summer_blackout=True)


@pytest.fixture
def nz_calendar_no_blackout() -> HolidayCalendar:
    """Built-in NZ holidays, 25 Dec - 15 Jan treated as ordinary days"""
    return HolidayCalendar(load_holiday_table(), summer_blackout=False)


@pytest.fixture
def weekly_settings() -> RentSettings:
    """$500 a week, due Wednesdays, tracked from Wed 1 Jan 2025"""
    return RentSettings(
        frequency=Frequency.WEEKLY,
        rent_amount_cents=50000,
        due_day="Wednesday",
        tracking_start_date=date(2025, 1, 1),
    )


@pytest.fixture
def february_settings() -> RentSettings:
    """$500 a week, due Wednesdays, tracked from Wed 5 Feb 2025 (clear of the blackout)"""
    return RentSettings(
        frequency=Frequency.WEEKLY,
        rent_amount_cents=50000,
        due_day="Wednesday",
        tracking_start_date=date(2025, 2, 5),
    )


@pytest.fixture
def make_strike() -> Callable[..., NoticeRecord]:
    """Factory for strike notices served by email at 10am on their OSD"""

    def _make(osd: date, number: int | None = None, occasion: date | None = None,
              notice_type: NoticeType = NoticeType.STRIKE, notice_id: str | None = None) -> NoticeRecord:
        return NoticeRecord(
            type=notice_type,
            sent_at=datetime(osd.year, osd.month, osd.day, 10, 0),
            official_service_date=osd,
            strike_number=number,
            due_date_for_occasion=occasion,
            notice_id=notice_id,
        )

    return _make


@pytest.fixture
def make_remedy() -> Callable[..., NoticeRecord]:
    """Factory for remedy notices naming a set of (due_date, unpaid_cents) lines"""

    def _make(osd: date, unpaid: list[tuple[date, int]], notice_id: str | None = None) -> NoticeRecord:
        snapshot = DebtSnapshot(
            entry_ids=tuple(f"rent:{d.isoformat()}" for d, _ in unpaid),
            due_dates=tuple(d for d, _ in unpaid),
            unpaid_amounts=tuple(unpaid),
            total_owed_cents=sum(amount for _, amount in unpaid),
        )
        return NoticeRecord(
            type=NoticeType.REMEDY,
            sent_at=datetime(osd.year, osd.month, osd.day, 10, 0),
            official_service_date=osd,
            debt_snapshot=snapshot,
            notice_id=notice_id,
        )

    return _make
