"""
Strike/eligibility state machine - the single source of a tenant's status.

Nothing here is stored. Every call rebuilds the status from the rent
settings, the full payment and notice history, and an explicit as_of, so
"simulate as of date X" is just another call.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Sequence

from tenancy_engine import config
from tenancy_engine.domain.holidays import HolidayCalendar, get_default_calendar
from tenancy_engine.domain.ledger import calculate_ledger, snapshot_debt
from tenancy_engine.domain.models import (
    ActionKind,
    ActionRejected,
    DeliveryMethod,
    Diagnostic,
    DueDateStrikeStatus,
    EligibleAction,
    InsufficientConfiguration,
    LedgerState,
    LineKind,
    NoticeRecord,
    NoticeType,
    PaymentEvent,
    RejectionReason,
    RemedyNoticeStatus,
    RentSettings,
    RouteKind,
    TenantStatus,
    TerminationRoute,
)
from tenancy_engine.domain.money import format_cents, is_money_zero
from tenancy_engine.domain.notices import (
    prepare_notice,
    remedy_notice_status,
    strike_window_expiry,
    tribunal_window,
)
from tenancy_engine.domain.rta_constants import (
    CITATIONS,
    MAX_STRIKES,
    REMEDY_NOTICE_ELIGIBLE_DAYS,
    STRIKE_2_TIER_WORKING_DAYS,
    STRIKE_3_TIER_WORKING_DAYS,
    STRIKE_NOTICE_WORKING_DAYS,
    STRIKE_WINDOW_DAYS,
    TERMINATION_ELIGIBLE_DAYS,
)
from tenancy_engine.domain.schedule import is_on_schedule
from tenancy_engine.domain.working_days import working_days_between
from tenancy_engine.utils.date_utils import to_local_date, to_local_datetime

logger = logging.getLogger(__name__)

SEVERITY_NAMES: Dict[int, str] = {
    0: "GREEN",
    1: "AMBER_OUTLINE",
    2: "GOLD_SOLID",
    3: "RED_SOLID_STRIKE",
    4: "RED_SOLID_STRIKE",
    5: "RED_BREATHING_TERMINATION",
}

# Strikes that must already be active before the tier's own strike is issued
STRIKES_REQUIRED_BEFORE = {3: 1, 4: 2}


def _service_order_key(notice: NoticeRecord):
    return notice.official_service_date, to_local_datetime(notice.sent_at)


def active_strikes(notices: Sequence[NoticeRecord], as_of: date | datetime) -> List[NoticeRecord]:
    """
    STRIKE and SOCIAL_STRIKE notices with OSD in [as_of - 90 days, as_of].

    Returned oldest first. Paying the debt does not remove a strike; only
    the window does.
    """
    as_of = to_local_date(as_of)
    window_start = as_of - timedelta(days=STRIKE_WINDOW_DAYS)
    active = [
        n for n in notices if n.is_strike and window_start <= n.official_service_date <= as_of
    ]
    return sorted(active, key=_service_order_key)


def strikes_in_force(notices: Sequence[NoticeRecord], as_of: date | datetime) -> List[NoticeRecord]:
    """
    Strikes that take a number when the next strike is numbered or capped.

    Unlike active_strikes this includes strikes sent by as_of but not yet
    served (e.g. emailed after 5pm on a Friday, served Monday).
    """
    as_of = to_local_date(as_of)
    window_start = as_of - timedelta(days=STRIKE_WINDOW_DAYS)
    in_force = [
        n
        for n in notices
        if n.is_strike and to_local_date(n.sent_at) <= as_of and n.official_service_date >= window_start
    ]
    return sorted(in_force, key=_service_order_key)


def struck_occasions(notices: Sequence[NoticeRecord]) -> set[date]:
    """Due dates already named by a STRIKE notice, whenever it was served"""
    return {
        n.due_date_for_occasion
        for n in notices
        if n.type == NoticeType.STRIKE and n.due_date_for_occasion is not None
    }


def due_date_strike_statuses(
    ledger: LedgerState,
    notices: Sequence[NoticeRecord],
    region: str | None = None,
    calendar: HolidayCalendar | None = None,
) -> tuple[DueDateStrikeStatus, ...]:
    """
    Every rent due date before as_of and whether it can carry a strike.

    A due date is strike-eligible once it has been unpaid for at least 5
    working days and no STRIKE has named it yet.
    """
    struck = struck_occasions(notices)
    statuses = []
    for line in ledger.lines:
        if line.kind != LineKind.RENT or line.due_date >= ledger.as_of:
            continue
        unpaid = line.unpaid_cents
        overdue = working_days_between(line.due_date, ledger.as_of, region, calendar) if unpaid > 0 else 0
        already = line.due_date in struck
        statuses.append(
            DueDateStrikeStatus(
                due_date=line.due_date,
                unpaid_cents=unpaid,
                working_days_overdue=overdue,
                is_strike_eligible=unpaid > 0 and overdue >= STRIKE_NOTICE_WORKING_DAYS and not already,
                strike_already_issued=already,
            )
        )
    return tuple(statuses)


def determine_severity(
    balance_cents: int,
    days_overdue: int,
    working_days_overdue: int,
    active_strike_count: int,
    remedy_notice_pending: bool = False,
) -> tuple[int, str, str, bool]:
    """
    Map arrears age and strike memory to one severity tier.

    Tiers are checked high to low and the first match wins:
    - 5: 21+ calendar days overdue, or 3+ active strikes
    - 4: 15+ working days (strike 3 zone)
    - 3: 10-14 working days (strike 2 zone)
    - 2: 5-9 working days (strike 1 zone)
    - 1: 1-4 working days (notice to remedy zone)
    - 0: settled, or not yet a working day overdue

    Strike memory outranks a settled balance: three active strikes stay at
    tier 5 even when nothing is owed.

    Strikes must be issued 1, 2, 3 in order, so a tenant in the strike 2 or
    strike 3 zone without the earlier strikes is flagged to catch up.

    Returns: (tier, severity_name, label, catch_up_required)
    """
    if days_overdue >= TERMINATION_ELIGIBLE_DAYS or active_strike_count >= MAX_STRIKES:
        if active_strike_count >= MAX_STRIKES:
            label = "Termination eligible (3 strikes within 90 days)"
        else:
            label = f"Termination eligible ({days_overdue} days overdue)"
        return 5, SEVERITY_NAMES[5], label, False

    if balance_cents <= 0 or is_money_zero(balance_cents) or working_days_overdue < 1:
        label = "Paid" if balance_cents <= 0 or is_money_zero(balance_cents) else "Current"
        return 0, SEVERITY_NAMES[0], label, False

    if working_days_overdue >= STRIKE_3_TIER_WORKING_DAYS:
        tier, zone_strike = 4, 3
    elif working_days_overdue >= STRIKE_2_TIER_WORKING_DAYS:
        tier, zone_strike = 3, 2
    elif working_days_overdue >= STRIKE_NOTICE_WORKING_DAYS:
        tier, zone_strike = 2, 1
    else:
        label = "Remedy notice sent, monitoring" if remedy_notice_pending else "Notice to remedy ready"
        return 1, SEVERITY_NAMES[1], label, False

    catch_up = active_strike_count < STRIKES_REQUIRED_BEFORE.get(tier, 0)
    if catch_up:
        label = f"Strike {zone_strike} zone (issue strike {active_strike_count + 1} first)"
    elif active_strike_count >= zone_strike:
        label = f"{working_days_overdue} working days overdue ({active_strike_count} active strikes)"
    else:
        label = f"Strike {zone_strike} ready"
    return tier, SEVERITY_NAMES[tier], label, catch_up


def remedy_notice_statuses(
    notices: Sequence[NoticeRecord],
    payments: Sequence[PaymentEvent],
    as_of: date | datetime,
) -> tuple[tuple[RemedyNoticeStatus, ...], list[Diagnostic]]:
    """Status of each served remedy notice, oldest first"""
    as_of_date = to_local_date(as_of)
    statuses = []
    diagnostics = []
    remedies = sorted(
        (n for n in notices if n.type == NoticeType.REMEDY and n.official_service_date <= as_of_date),
        key=_service_order_key,
    )
    for notice in remedies:
        if notice.debt_snapshot is None:
            diagnostics.append(
                Diagnostic(
                    "remedy_snapshot_missing",
                    f"Remedy notice served {notice.official_service_date} has no debt snapshot and was skipped",
                    notice.official_service_date,
                )
            )
            continue
        statuses.append(remedy_notice_status(notice, payments, as_of))
    return tuple(statuses), diagnostics


def assess_termination_routes(
    days_overdue: int,
    strikes: Sequence[NoticeRecord],
    remedy_statuses: Sequence[RemedyNoticeStatus],
    as_of: date | datetime,
) -> tuple[tuple[TerminationRoute, ...], list[Diagnostic]]:
    """
    The three independent routes to a Tribunal termination application.

    - s55(1)(a): 21+ calendar days in arrears, no expiry
    - s55(1)(aa): 3 active strikes, open for 28 days from the third OSD and
      lost for that triad once it lapses
    - s56: a notice to remedy expired while its named debt is still unpaid

    strikes must be the active strikes, oldest first.
    """
    routes = []
    diagnostics = []

    if days_overdue >= TERMINATION_ELIGIBLE_DAYS:
        routes.append(
            TerminationRoute(kind=RouteKind.ARREARS_21_DAYS, citation=CITATIONS[RouteKind.ARREARS_21_DAYS.value])
        )

    if len(strikes) >= MAX_STRIKES:
        third = strikes[MAX_STRIKES - 1]
        window = tribunal_window(third.official_service_date, as_of)
        if window.is_open:
            routes.append(
                TerminationRoute(
                    kind=RouteKind.THREE_STRIKES,
                    citation=CITATIONS[RouteKind.THREE_STRIKES.value],
                    filing_deadline=window.deadline,
                    days_remaining=window.days_remaining,
                    notice_id=third.notice_id,
                )
            )
        else:
            diagnostics.append(
                Diagnostic(
                    "tribunal_window_lapsed",
                    f"Three-strikes filing deadline {window.deadline} has passed",
                    window.deadline,
                )
            )

    unremedied = [s for s in remedy_statuses if s.can_apply_to_tribunal]
    if unremedied:
        latest = unremedied[-1]
        routes.append(
            TerminationRoute(
                kind=RouteKind.UNREMEDIED_BREACH,
                citation=CITATIONS[RouteKind.UNREMEDIED_BREACH.value],
                notice_id=latest.notice_id,
            )
        )

    return tuple(routes), diagnostics


def check_notice_issue(
    candidate: NoticeRecord,
    existing: Sequence[NoticeRecord],
    as_of: date | datetime,
    due_date_statuses: Sequence[DueDateStrikeStatus] | None = None,
) -> ActionRejected | None:
    """
    Whether a notice may legally be issued alongside the existing history.

    Returns None when it may, otherwise an ActionRejected naming the rule:
    - a STRIKE must name a due date no earlier STRIKE has named
    - strikes go out on different calendar days
    - no more than 3 active strikes, numbered in order
    - a REMEDY must name some debt
    When due_date_statuses is given, the named occasion must also be
    strike-eligible (unpaid for 5+ working days).
    """
    if candidate.type == NoticeType.REMEDY:
        snapshot = candidate.debt_snapshot
        if snapshot is None or snapshot.total_owed_cents <= 0:
            return ActionRejected(RejectionReason.NOTHING_OWED, "A notice to remedy must name unpaid rent")
        return None

    if candidate.type == NoticeType.STRIKE:
        occasion = candidate.due_date_for_occasion
        if occasion is None:
            return ActionRejected(RejectionReason.MISSING_OCCASION, "A strike notice must name the rent due date it addresses")
        if occasion in struck_occasions(existing):
            return ActionRejected(
                RejectionReason.DUPLICATE_OCCASION,
                f"A strike has already been issued for the rent due {occasion}",
            )

    sent_day = to_local_date(candidate.sent_at)
    if any(n.is_strike and to_local_date(n.sent_at) == sent_day for n in existing):
        return ActionRejected(RejectionReason.SAME_DAY_STRIKE, f"A strike was already sent on {sent_day}")

    active = len(strikes_in_force(existing, as_of))
    if active >= MAX_STRIKES:
        return ActionRejected(
            RejectionReason.STRIKE_LIMIT_REACHED,
            f"{active} strikes have already been issued within the 90-day window",
        )
    if candidate.strike_number is not None and candidate.strike_number != active + 1:
        return ActionRejected(
            RejectionReason.OUT_OF_SEQUENCE,
            f"Next strike must be strike {active + 1}, not strike {candidate.strike_number}",
        )

    if candidate.type == NoticeType.STRIKE and due_date_statuses is not None:
        status = next((s for s in due_date_statuses if s.due_date == candidate.due_date_for_occasion), None)
        if status is None or not status.is_strike_eligible:
            return ActionRejected(
                RejectionReason.OCCASION_NOT_OVERDUE,
                f"Rent due {candidate.due_date_for_occasion} is not unpaid for {STRIKE_NOTICE_WORKING_DAYS} working days",
            )
    return None


def check_strike_issue(
    settings: RentSettings,
    payments: Sequence[PaymentEvent],
    notices: Sequence[NoticeRecord],
    due_date_for_occasion: date | None,
    sent_at: datetime,
    region: str | None = None,
    delivery_method: DeliveryMethod = DeliveryMethod.EMAIL,
    notice_type: NoticeType = NoticeType.STRIKE,
    notice_id: str | None = None,
    calendar: HolidayCalendar | None = None,
) -> NoticeRecord | ActionRejected | InsufficientConfiguration:
    """
    Validate a strike about to be sent and, if allowed, build its record.

    The strike is numbered from the strikes already sent within the window,
    served or not.
    """
    region = region or config.settings.default_region
    calendar = calendar or get_default_calendar()
    as_of = to_local_date(sent_at)

    statuses = None
    if notice_type == NoticeType.STRIKE:
        ledger = calculate_ledger(settings, payments, as_of)
        if isinstance(ledger, InsufficientConfiguration):
            return ledger
        statuses = due_date_strike_statuses(ledger, notices, region, calendar)

    candidate = prepare_notice(
        notice_type,
        sent_at,
        region=region,
        delivery_method=delivery_method,
        strike_number=len(strikes_in_force(notices, as_of)) + 1,
        due_date_for_occasion=due_date_for_occasion,
        notice_id=notice_id,
        calendar=calendar,
    )
    rejection = check_notice_issue(candidate, notices, as_of, statuses)
    if rejection is not None:
        logger.info("Strike rejected", extra={"reason": rejection.reason.value, "sent_at": sent_at.isoformat()})
        return rejection
    return candidate


def check_remedy_issue(
    settings: RentSettings,
    payments: Sequence[PaymentEvent],
    sent_at: datetime,
    region: str | None = None,
    delivery_method: DeliveryMethod = DeliveryMethod.EMAIL,
    notice_id: str | None = None,
    calendar: HolidayCalendar | None = None,
) -> NoticeRecord | ActionRejected | InsufficientConfiguration:
    """Build a notice to remedy with its frozen debt snapshot, or say why not"""
    region = region or config.settings.default_region
    ledger = calculate_ledger(settings, payments, sent_at)
    if isinstance(ledger, InsufficientConfiguration):
        return ledger

    candidate = prepare_notice(
        NoticeType.REMEDY,
        sent_at,
        region=region,
        delivery_method=delivery_method,
        debt_snapshot=snapshot_debt(ledger),
        notice_id=notice_id,
        calendar=calendar,
    )
    rejection = check_notice_issue(candidate, (), ledger.as_of)
    if rejection is not None:
        return rejection
    return candidate


def _integrity_diagnostics(
    settings: RentSettings,
    ledger: LedgerState | None,
    notices: Sequence[NoticeRecord],
    as_of: date,
    calendar: HolidayCalendar,
) -> List[Diagnostic]:
    diagnostics: List[Diagnostic] = []

    if settings.tracking_start_date is not None:
        for notice in notices:
            if notice.official_service_date < settings.tracking_start_date:
                diagnostics.append(
                    Diagnostic(
                        "notice_before_tracking_start",
                        f"{notice.type.value} notice served {notice.official_service_date} "
                        f"predates tracking start {settings.tracking_start_date}",
                        notice.official_service_date,
                    )
                )

    if ledger is not None:
        # Recorded occasions are ground truth; a mismatch means the due day changed
        for occasion in sorted(struck_occasions(notices)):
            if not is_on_schedule(occasion, settings):
                logger.warning("Strike occasion off current schedule", extra={"due_date": occasion.isoformat()})
                diagnostics.append(
                    Diagnostic(
                        "setting_drift",
                        f"Strike recorded for {occasion} does not match the current due-date schedule",
                        occasion,
                    )
                )

    start = ledger.oldest_unpaid_due_date if ledger and ledger.oldest_unpaid_due_date else as_of
    for year in calendar.missing_years(start, as_of):
        logger.warning("No holiday data for year", extra={"year": year})
        diagnostics.append(
            Diagnostic(
                "holiday_data_missing",
                f"No public holiday table for {year}; only weekends and the summer blackout were excluded",
            )
        )
    return diagnostics


def _estimate_status(
    problem: InsufficientConfiguration,
    settings: RentSettings,
    payments: Sequence[PaymentEvent],
    notices: Sequence[NoticeRecord],
    as_of: date | datetime,
    calendar: HolidayCalendar,
) -> TenantStatus:
    """Status from notices alone when the ledger cannot be computed"""
    as_of_date = to_local_date(as_of)
    strikes = active_strikes(notices, as_of_date)
    remedies, diagnostics = remedy_notice_statuses(notices, payments, as_of)
    routes, route_diagnostics = assess_termination_routes(0, strikes, remedies, as_of)
    diagnostics += route_diagnostics
    diagnostics += _integrity_diagnostics(settings, None, notices, as_of_date, calendar)

    if len(strikes) >= MAX_STRIKES:
        tier, name, label, _ = determine_severity(0, 0, 0, len(strikes))
    else:
        tier, name, label = 0, SEVERITY_NAMES[0], "Settings incomplete"

    actions = ()
    if routes:
        actions = (EligibleAction(ActionKind.APPLY_FOR_TERMINATION, routes=tuple(r.kind for r in routes)),)

    return TenantStatus(
        as_of=as_of_date,
        severity_tier=tier,
        severity_name=name,
        label=label,
        working_days_overdue=0,
        days_overdue=0,
        current_balance_cents=0,
        active_strike_count=len(strikes),
        strike_window_expiry=strike_window_expiry(strikes[0].official_service_date) if strikes else None,
        next_strike_number=None,
        catch_up_required=False,
        eligible_actions=actions,
        termination_routes=routes,
        remedy_notices=remedies,
        configuration_error=problem,
        diagnostics=tuple(diagnostics),
    )


def evaluate_tenant_status(
    settings: RentSettings,
    payments: Sequence[PaymentEvent],
    notices: Sequence[NoticeRecord],
    as_of: date | datetime,
    region: str | None = None,
    calendar: HolidayCalendar | None = None,
) -> TenantStatus:
    """
    Main entry point: compute the canonical status for one tenant.

    Requirements:
    - ledger balance and arrears age from scratch (no stored state)
    - working days overdue against the region's holidays
    - active strikes over the trailing 90 days, independent of the balance
    - severity tier, legally available actions and open termination routes

    Args:
        settings: rent schedule for the tenancy
        payments: full payment history
        notices: full notice history, including notices served after as_of
        as_of: evaluation date or moment (naive datetimes are NZ local time)
        region: anniversary-day region; falls back to the configured default

    Returns:
        TenantStatus. When the settings are incomplete the status is an
        estimate built from notices only and carries configuration_error.
    """
    region = region or config.settings.default_region
    calendar = calendar or get_default_calendar()
    as_of_date = to_local_date(as_of)

    ledger = calculate_ledger(settings, payments, as_of_date)
    if isinstance(ledger, InsufficientConfiguration):
        return _estimate_status(ledger, settings, payments, notices, as_of, calendar)

    diagnostics = list(ledger.diagnostics)

    working_days_overdue = 0
    if ledger.days_overdue > 0:
        working_days_overdue = working_days_between(ledger.oldest_unpaid_due_date, as_of_date, region, calendar)

    strikes = active_strikes(notices, as_of_date)
    active_count = len(strikes)
    issued_count = len(strikes_in_force(notices, as_of_date))
    statuses = due_date_strike_statuses(ledger, notices, region, calendar)
    remedies, remedy_diagnostics = remedy_notice_statuses(notices, payments, as_of)
    diagnostics += remedy_diagnostics
    remedy_pending = any(r.is_pending for r in remedies)

    tier, name, label, catch_up = determine_severity(
        ledger.current_balance_cents,
        ledger.days_overdue,
        working_days_overdue,
        active_count,
        remedy_pending,
    )

    routes, route_diagnostics = assess_termination_routes(ledger.days_overdue, strikes, remedies, as_of)
    diagnostics += route_diagnostics
    diagnostics += _integrity_diagnostics(settings, ledger, notices, as_of_date, calendar)

    actions = []
    if (
        ledger.days_overdue >= REMEDY_NOTICE_ELIGIBLE_DAYS
        and ledger.current_balance_cents > 0
        and not remedy_pending
    ):
        actions.append(EligibleAction(ActionKind.ISSUE_REMEDY_NOTICE))

    target = next((s for s in statuses if s.is_strike_eligible), None)
    struck_today = any(n.is_strike and to_local_date(n.sent_at) == as_of_date for n in notices)
    if target is not None and issued_count < MAX_STRIKES and not struck_today:
        actions.append(
            EligibleAction(
                ActionKind.ISSUE_STRIKE,
                strike_number=issued_count + 1,
                due_date_for_occasion=target.due_date,
            )
        )

    if routes:
        actions.append(EligibleAction(ActionKind.APPLY_FOR_TERMINATION, routes=tuple(r.kind for r in routes)))

    status = TenantStatus(
        as_of=as_of_date,
        severity_tier=tier,
        severity_name=name,
        label=label,
        working_days_overdue=working_days_overdue,
        days_overdue=ledger.days_overdue,
        current_balance_cents=ledger.current_balance_cents,
        active_strike_count=active_count,
        strike_window_expiry=strike_window_expiry(strikes[0].official_service_date) if strikes else None,
        next_strike_number=issued_count + 1 if issued_count < MAX_STRIKES else None,
        catch_up_required=catch_up,
        eligible_actions=tuple(actions),
        termination_routes=routes,
        due_date_statuses=statuses,
        remedy_notices=remedies,
        ledger=ledger,
        diagnostics=tuple(diagnostics),
    )

    logger.debug(
        "Tenant status evaluated",
        extra={
            "as_of": as_of_date.isoformat(),
            "severity_tier": tier,
            "balance": format_cents(ledger.current_balance_cents),
            "working_days_overdue": working_days_overdue,
            "active_strikes": active_count,
        },
    )
    return status
