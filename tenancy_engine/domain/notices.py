"""
Notice law - official service dates and statutory deadlines.

The 5pm rule (RTA s136) is the only working-day-sensitive step. Every
deadline after the official service date (OSD) is plain calendar arithmetic
and runs until 23:59 local time on the deadline date.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Sequence

from tenancy_engine.domain.holidays import HolidayCalendar, get_default_calendar
from tenancy_engine.domain.models import (
    DebtSnapshot,
    DeliveryMethod,
    NoticeRecord,
    NoticeType,
    PaymentEvent,
    RemedyNoticeStatus,
    TribunalWindow,
)
from tenancy_engine.domain.money import is_money_zero
from tenancy_engine.domain.rta_constants import (
    LETTERBOX_SERVICE_WORKING_DAYS,
    MAX_STRIKES,
    POSTAL_SERVICE_WORKING_DAYS,
    REMEDY_PERIOD_DAYS,
    SERVICE_CUTOFF,
    STRIKE_WINDOW_DAYS,
    TRIBUNAL_FILING_WINDOW_DAYS,
)
from tenancy_engine.domain.working_days import add_working_days, is_working_day, next_working_day
from tenancy_engine.utils.date_utils import local_timezone, to_local_date, to_local_datetime

logger = logging.getLogger(__name__)

DEADLINE_CUTOFF = time(23, 59)


def official_service_date(
    sent_at: datetime,
    region: str | None = None,
    delivery_method: DeliveryMethod = DeliveryMethod.EMAIL,
    calendar: HolidayCalendar | None = None,
) -> date:
    """
    Date a notice is legally served, evaluated in local (NZ) time.

    - Email / hand delivery: sent before 5pm on a working day -> that day,
      otherwise the next working day
    - Letterbox: 2 working days after the day of delivery
    - Post: 4 working days after the day of posting
    """
    calendar = calendar or get_default_calendar()
    local = to_local_datetime(sent_at)
    sent_day = local.date()

    if delivery_method == DeliveryMethod.LETTERBOX:
        return add_working_days(sent_day, LETTERBOX_SERVICE_WORKING_DAYS, region, calendar)
    if delivery_method == DeliveryMethod.POST:
        return add_working_days(sent_day, POSTAL_SERVICE_WORKING_DAYS, region, calendar)

    if local.time() < SERVICE_CUTOFF and is_working_day(sent_day, region, calendar):
        return sent_day
    return next_working_day(sent_day, region, calendar)


def remedy_expiry_date(osd: date) -> date:
    """Last day for the tenant to remedy a s56 notice"""
    return osd + timedelta(days=REMEDY_PERIOD_DAYS)


def tribunal_filing_deadline(third_strike_osd: date) -> date:
    """Last day to apply to the Tribunal on the three-strikes route"""
    return third_strike_osd + timedelta(days=TRIBUNAL_FILING_WINDOW_DAYS)


def strike_window_expiry(first_strike_osd: date) -> date:
    """Last day a strike still counts towards three"""
    return first_strike_osd + timedelta(days=STRIKE_WINDOW_DAYS)


def notice_expiry_date(notice_type: NoticeType, osd: date, strike_number: int | None = None) -> date | None:
    """
    The statutory deadline a notice starts running, if any.

    - REMEDY: last day to remedy
    - third strike: last day to apply to the Tribunal
    """
    if notice_type == NoticeType.REMEDY:
        return remedy_expiry_date(osd)
    if notice_type in (NoticeType.STRIKE, NoticeType.SOCIAL_STRIKE) and strike_number == MAX_STRIKES:
        return tribunal_filing_deadline(osd)
    return None


def deadline_cutoff(deadline: date) -> datetime:
    """The moment a deadline lapses: 23:59 local time on the deadline date"""
    return datetime.combine(deadline, DEADLINE_CUTOFF, tzinfo=local_timezone())


def is_deadline_open(deadline: date, as_of: date | datetime) -> bool:
    if isinstance(as_of, datetime):
        return to_local_datetime(as_of) <= deadline_cutoff(deadline)
    return as_of <= deadline


def tribunal_window(third_strike_osd: date, as_of: date | datetime) -> TribunalWindow:
    """Countdown for the 28-day filing window (deadline day counts as day 0)"""
    deadline = tribunal_filing_deadline(third_strike_osd)
    is_open = is_deadline_open(deadline, as_of)
    days_remaining = (deadline - to_local_date(as_of)).days if is_open else None
    return TribunalWindow(deadline=deadline, is_open=is_open, days_remaining=days_remaining)


def prepare_notice(
    notice_type: NoticeType,
    sent_at: datetime,
    region: str | None = None,
    delivery_method: DeliveryMethod = DeliveryMethod.EMAIL,
    strike_number: int | None = None,
    due_date_for_occasion: date | None = None,
    debt_snapshot: DebtSnapshot | None = None,
    notice_id: str | None = None,
    calendar: HolidayCalendar | None = None,
) -> NoticeRecord:
    """Build a notice record with its authoritative service date and deadline"""
    osd = official_service_date(sent_at, region, delivery_method, calendar)
    expiry = notice_expiry_date(notice_type, osd, strike_number)
    logger.debug(
        "Notice prepared",
        extra={
            "notice_type": notice_type.value,
            "delivery_method": delivery_method.value,
            "sent_at": sent_at.isoformat(),
            "official_service_date": osd.isoformat(),
            "expiry_date": expiry.isoformat() if expiry else None,
        },
    )
    return NoticeRecord(
        type=notice_type,
        sent_at=sent_at,
        official_service_date=osd,
        strike_number=strike_number,
        due_date_for_occasion=due_date_for_occasion,
        debt_snapshot=debt_snapshot,
        delivery_method=delivery_method,
        notice_id=notice_id,
        expiry_date=expiry,
    )


def remedy_notice_status(
    notice: NoticeRecord,
    payments: Sequence[PaymentEvent],
    as_of: date | datetime,
) -> RemedyNoticeStatus:
    """
    Check a remedy notice against the debt it named, not the current balance.

    The snapshot is taken when the notice is sent, so payments dated from
    the send date (up to as_of) go to the named debt first, including money
    paid between sending and the OSD. A tenant who clears that debt has
    remedied the notice even if new arrears have built up since.
    """
    if notice.type != NoticeType.REMEDY or notice.debt_snapshot is None:
        raise ValueError("remedy_notice_status needs a REMEDY notice with a debt snapshot")

    as_of = to_local_date(as_of)
    osd = notice.official_service_date
    expiry = remedy_expiry_date(osd)
    required = notice.debt_snapshot.total_owed_cents

    sent_day = to_local_date(notice.sent_at)
    paid_since = sum(p.amount_cents for p in payments if sent_day <= p.date <= as_of)
    paid_toward = min(paid_since, required)
    is_remedied = is_money_zero(required - paid_toward)
    is_expired = as_of > expiry

    return RemedyNoticeStatus(
        notice_id=notice.notice_id,
        official_service_date=osd,
        expiry_date=expiry,
        is_expired=is_expired,
        is_remedied=is_remedied,
        amount_required_cents=required,
        amount_paid_toward_notice_cents=paid_toward,
        days_remaining=None if is_expired else (expiry - as_of).days,
        days_since_expiry=(as_of - expiry).days if is_expired else None,
    )
