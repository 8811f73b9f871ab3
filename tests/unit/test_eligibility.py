"""Unit tests for the strike/eligibility state machine"""

import pytest
from datetime import date, datetime, timedelta

from tenancy_engine.domain.eligibility import (
    active_strikes,
    assess_termination_routes,
    check_notice_issue,
    check_remedy_issue,
    check_strike_issue,
    determine_severity,
    due_date_strike_statuses,
    evaluate_tenant_status,
)
from tenancy_engine.domain.holidays import HolidayCalendar
from tenancy_engine.domain.ledger import calculate_ledger
from tenancy_engine.domain.models import (
    ActionKind,
    ActionRejected,
    DueDateStrikeStatus,
    InsufficientConfiguration,
    NoticeRecord,
    NoticeType,
    PaymentEvent,
    RejectionReason,
    RentSettings,
    RouteKind,
)
from tenancy_engine.domain.notices import remedy_notice_status


# --- active strikes -------------------------------------------------------

def test_strike_memory_window(make_strike):
    """Test 89 days counts, 90 days counts (inclusive), 91 days does not"""
    as_of = date(2025, 6, 1)
    notices = [make_strike(as_of - timedelta(days=89))]
    assert len(active_strikes(notices, as_of)) == 1

    notices = [make_strike(as_of - timedelta(days=90))]
    assert len(active_strikes(notices, as_of)) == 1

    notices = [make_strike(as_of - timedelta(days=91))]
    assert len(active_strikes(notices, as_of)) == 0


def test_future_strikes_not_active(make_strike):
    assert len(active_strikes([make_strike(date(2025, 6, 2))], date(2025, 6, 1))) == 0


def test_social_strikes_count_and_remedy_does_not(make_strike, make_remedy):
    notices = [
        make_strike(date(2025, 3, 3), notice_type=NoticeType.SOCIAL_STRIKE),
        make_strike(date(2025, 3, 10), occasion=date(2025, 3, 5)),
        make_remedy(date(2025, 3, 4), [(date(2025, 2, 26), 50000)]),
    ]
    assert len(active_strikes(notices, date(2025, 3, 20))) == 2


def test_active_strikes_sorted_by_service_date(make_strike):
    notices = [
        make_strike(date(2025, 2, 10), notice_id="c"),
        make_strike(date(2025, 1, 1), notice_id="a"),
        make_strike(date(2025, 1, 20), notice_id="b"),
    ]
    assert [n.notice_id for n in active_strikes(notices, date(2025, 2, 15))] == ["a", "b", "c"]


# --- severity ----------------------------------------------------------------

def test_severity_tier_5_by_days():
    tier, name, label, catch_up = determine_severity(150000, 21, 14, 0)
    assert (tier, name, catch_up) == (5, "RED_BREATHING_TERMINATION", False)
    assert "21 days overdue" in label


def test_severity_tier_5_by_strikes_even_when_paid():
    """Test strike memory keeps three strikes at tier 5 after the debt is cleared"""
    tier, _, label, _ = determine_severity(0, 0, 0, 3)
    assert tier == 5
    assert "3 strikes" in label


def test_severity_tier_4_requires_earlier_strikes():
    assert determine_severity(100000, 20, 15, 2) == (4, "RED_SOLID_STRIKE", "Strike 3 ready", False)

    tier, _, label, catch_up = determine_severity(100000, 20, 15, 0)
    assert tier == 4
    assert catch_up
    assert label == "Strike 3 zone (issue strike 1 first)"


def test_severity_tier_3_boundaries():
    """Test 10-14 working days is the strike 2 zone"""
    assert determine_severity(100000, 15, 10, 1)[0] == 3
    assert determine_severity(100000, 20, 14, 1)[0] == 3
    assert determine_severity(100000, 15, 10, 0)[3] is True
    assert determine_severity(100000, 15, 10, 1)[2] == "Strike 2 ready"


def test_severity_tier_2_and_1_boundaries():
    assert determine_severity(50000, 9, 9, 0)[:3] == (2, "GOLD_SOLID", "Strike 1 ready")
    assert determine_severity(50000, 7, 5, 0)[0] == 2
    assert determine_severity(50000, 7, 4, 0)[:3] == (1, "AMBER_OUTLINE", "Notice to remedy ready")
    assert determine_severity(50000, 2, 1, 0, remedy_notice_pending=True)[2] == "Remedy notice sent, monitoring"


def test_severity_tier_0():
    assert determine_severity(0, 0, 0, 0)[:3] == (0, "GREEN", "Paid")
    assert determine_severity(-5000, 0, 0, 1)[:3] == (0, "GREEN", "Paid")
    assert determine_severity(50000, 1, 0, 0)[:3] == (0, "GREEN", "Current")


# --- termination routes ---------------------------------------------------

def test_three_strikes_route_open_then_lapsed(make_strike):
    strikes = [make_strike(date(2025, 1, 1)), make_strike(date(2025, 1, 20)), make_strike(date(2025, 2, 10), notice_id="s3")]

    routes, diagnostics = assess_termination_routes(0, strikes, [], date(2025, 2, 15))
    assert [r.kind for r in routes] == [RouteKind.THREE_STRIKES]
    assert routes[0].filing_deadline == date(2025, 3, 10)
    assert routes[0].days_remaining == 23
    assert routes[0].notice_id == "s3"
    assert diagnostics == []

    routes, diagnostics = assess_termination_routes(0, strikes, [], date(2025, 3, 15))
    assert routes == ()
    assert [d.code for d in diagnostics] == ["tribunal_window_lapsed"]


def test_21_day_route_has_no_expiry():
    routes, _ = assess_termination_routes(400, [], [], date(2026, 6, 1))
    assert [r.kind for r in routes] == [RouteKind.ARREARS_21_DAYS]
    assert routes[0].filing_deadline is None
    assert "s55(1)(a)" in routes[0].citation


def test_unremedied_route_uses_latest_qualifying_notice(make_remedy):
    older = make_remedy(date(2025, 2, 5), [(date(2025, 1, 29), 50000)], notice_id="r1")
    newer = make_remedy(date(2025, 3, 5), [(date(2025, 2, 26), 50000)], notice_id="r2")
    as_of = date(2025, 3, 25)
    statuses = [remedy_notice_status(n, [], as_of) for n in (older, newer)]

    routes, _ = assess_termination_routes(0, [], statuses, as_of)

    assert [r.kind for r in routes] == [RouteKind.UNREMEDIED_BREACH]
    assert routes[0].notice_id == "r2"


# --- per due date strike tracking -----------------------------------------

def test_due_date_strike_statuses(february_settings: RentSettings, make_strike, nz_calendar: HolidayCalendar):
    ledger = calculate_ledger(february_settings, [], date(2025, 2, 20))
    notices = [make_strike(date(2025, 2, 13), number=1, occasion=date(2025, 2, 5))]

    statuses = due_date_strike_statuses(ledger, notices, calendar=nz_calendar)

    assert [s.due_date for s in statuses] == [date(2025, 2, 5), date(2025, 2, 12), date(2025, 2, 19)]
    assert [s.working_days_overdue for s in statuses] == [10, 6, 1]
    assert [s.strike_already_issued for s in statuses] == [True, False, False]
    assert [s.is_strike_eligible for s in statuses] == [False, True, False]


def test_paid_due_dates_are_not_strike_eligible(february_settings: RentSettings, nz_calendar: HolidayCalendar):
    ledger = calculate_ledger(february_settings, [PaymentEvent(50000, date(2025, 2, 5))], date(2025, 2, 20))

    statuses = due_date_strike_statuses(ledger, [], calendar=nz_calendar)

    assert statuses[0].unpaid_cents == 0
    assert statuses[0].working_days_overdue == 0
    assert not statuses[0].is_strike_eligible


# --- notice issue rules ---------------------------------------------------

def _candidate(sent_at: datetime, occasion: date | None, number: int | None = None,
               notice_type: NoticeType = NoticeType.STRIKE) -> NoticeRecord:
    return NoticeRecord(
        type=notice_type,
        sent_at=sent_at,
        official_service_date=sent_at.date(),
        strike_number=number,
        due_date_for_occasion=occasion,
    )


def test_strike_requires_occasion():
    rejection = check_notice_issue(_candidate(datetime(2025, 2, 13, 10), None), [], date(2025, 2, 13))
    assert rejection.reason == RejectionReason.MISSING_OCCASION


def test_duplicate_occasion_rejected(make_strike):
    existing = [make_strike(date(2025, 2, 13), number=1, occasion=date(2025, 2, 5))]

    rejection = check_notice_issue(_candidate(datetime(2025, 2, 20, 10), date(2025, 2, 5)), existing, date(2025, 2, 20))

    assert isinstance(rejection, ActionRejected)
    assert rejection.reason == RejectionReason.DUPLICATE_OCCASION


def test_same_day_strike_rejected(make_strike):
    """Test a second strike on the same local day, even for a new occasion"""
    existing = [make_strike(date(2025, 2, 13), number=1, occasion=date(2025, 2, 5))]

    rejection = check_notice_issue(_candidate(datetime(2025, 2, 13, 15), date(2025, 2, 12)), existing, date(2025, 2, 13))
    assert rejection.reason == RejectionReason.SAME_DAY_STRIKE

    social = _candidate(datetime(2025, 2, 13, 16), None, notice_type=NoticeType.SOCIAL_STRIKE)
    assert check_notice_issue(social, existing, date(2025, 2, 13)).reason == RejectionReason.SAME_DAY_STRIKE


def test_strike_limit_reached(make_strike):
    existing = [make_strike(date(2025, 1, 20)), make_strike(date(2025, 2, 3)), make_strike(date(2025, 2, 10))]

    rejection = check_notice_issue(_candidate(datetime(2025, 2, 20, 10), date(2025, 2, 12)), existing, date(2025, 2, 20))

    assert rejection.reason == RejectionReason.STRIKE_LIMIT_REACHED


def test_strike_out_of_sequence(make_strike):
    existing = [make_strike(date(2025, 2, 10), number=1, occasion=date(2025, 1, 29))]

    rejection = check_notice_issue(_candidate(datetime(2025, 2, 20, 10), date(2025, 2, 5), number=3), existing, date(2025, 2, 20))

    assert rejection.reason == RejectionReason.OUT_OF_SEQUENCE


def test_strike_occasion_must_be_overdue():
    statuses = [DueDateStrikeStatus(date(2025, 2, 12), 50000, 4, False, False)]

    rejection = check_notice_issue(_candidate(datetime(2025, 2, 18, 10), date(2025, 2, 12)), [], date(2025, 2, 18), statuses)

    assert rejection.reason == RejectionReason.OCCASION_NOT_OVERDUE


def test_social_strike_needs_no_occasion():
    assert check_notice_issue(_candidate(datetime(2025, 2, 13, 10), None, 1, NoticeType.SOCIAL_STRIKE), [], date(2025, 2, 13)) is None


def test_remedy_must_name_debt():
    notice = _candidate(datetime(2025, 2, 13, 10), None, notice_type=NoticeType.REMEDY)
    assert check_notice_issue(notice, [], date(2025, 2, 13)).reason == RejectionReason.NOTHING_OWED


def test_check_strike_issue_builds_numbered_notice(february_settings: RentSettings, nz_calendar: HolidayCalendar):
    result = check_strike_issue(
        february_settings, [], [], date(2025, 2, 5), datetime(2025, 2, 13, 10, 0), calendar=nz_calendar
    )

    assert isinstance(result, NoticeRecord)
    assert result.strike_number == 1
    assert result.official_service_date == date(2025, 2, 13)
    assert result.due_date_for_occasion == date(2025, 2, 5)


def test_check_strike_issue_rejects_recent_occasion(february_settings: RentSettings, nz_calendar: HolidayCalendar):
    result = check_strike_issue(
        february_settings, [], [], date(2025, 2, 12), datetime(2025, 2, 13, 10, 0), calendar=nz_calendar
    )
    assert result.reason == RejectionReason.OCCASION_NOT_OVERDUE


def test_check_strike_issue_counts_unserved_strike(february_settings: RentSettings, nz_calendar: HolidayCalendar):
    """Test a strike emailed Friday evening (served Monday) still takes number 1"""
    first = check_strike_issue(
        february_settings, [], [], date(2025, 2, 5), datetime(2025, 3, 14, 18, 0), calendar=nz_calendar
    )
    assert first.strike_number == 1
    assert first.official_service_date == date(2025, 3, 17)

    second = check_strike_issue(
        february_settings, [], [first], date(2025, 2, 12), datetime(2025, 3, 15, 10, 0), calendar=nz_calendar
    )

    assert isinstance(second, NoticeRecord)
    assert second.strike_number == 2
    assert second.official_service_date == date(2025, 3, 17)


def test_check_strike_issue_third_strike_carries_filing_deadline(february_settings: RentSettings, make_strike,
                                                                 nz_calendar: HolidayCalendar):
    existing = [
        make_strike(date(2025, 2, 13), number=1, occasion=date(2025, 2, 5)),
        make_strike(date(2025, 2, 20), number=2, occasion=date(2025, 2, 12)),
    ]

    result = check_strike_issue(
        february_settings, [], existing, date(2025, 2, 19), datetime(2025, 2, 27, 10, 0), calendar=nz_calendar
    )

    assert result.strike_number == 3
    assert result.expiry_date == date(2025, 3, 27)


def test_strike_limit_counts_unserved_strike(make_strike):
    """Test a fourth strike is refused while the third is sent but not yet served"""
    existing = [
        make_strike(date(2025, 2, 3), number=1),
        make_strike(date(2025, 2, 10), number=2),
        NoticeRecord(
            type=NoticeType.STRIKE,
            sent_at=datetime(2025, 2, 14, 18, 0),
            official_service_date=date(2025, 2, 17),
            strike_number=3,
        ),
    ]

    rejection = check_notice_issue(_candidate(datetime(2025, 2, 15, 10), date(2025, 2, 12)), existing, date(2025, 2, 15))

    assert rejection.reason == RejectionReason.STRIKE_LIMIT_REACHED


def test_check_strike_issue_missing_settings(nz_calendar: HolidayCalendar):
    settings = RentSettings(frequency=None, rent_amount_cents=None, due_day=None, tracking_start_date=None)
    result = check_strike_issue(settings, [], [], date(2025, 2, 5), datetime(2025, 2, 13, 10, 0), calendar=nz_calendar)
    assert isinstance(result, InsufficientConfiguration)


def test_check_remedy_issue_freezes_debt(february_settings: RentSettings, nz_calendar: HolidayCalendar):
    payments = [PaymentEvent(20000, date(2025, 2, 6))]

    result = check_remedy_issue(february_settings, payments, datetime(2025, 2, 13, 10, 0), calendar=nz_calendar)

    assert result.type == NoticeType.REMEDY
    assert result.debt_snapshot.entry_ids == ("rent:2025-02-05", "rent:2025-02-12")
    assert result.debt_snapshot.unpaid_amounts == ((date(2025, 2, 5), 30000), (date(2025, 2, 12), 50000))
    assert result.debt_snapshot.total_owed_cents == 80000


def test_check_remedy_issue_nothing_owed(february_settings: RentSettings, nz_calendar: HolidayCalendar):
    payments = [PaymentEvent(100000, date(2025, 2, 12))]
    result = check_remedy_issue(february_settings, payments, datetime(2025, 2, 13, 10, 0), calendar=nz_calendar)
    assert result.reason == RejectionReason.NOTHING_OWED


# --- full evaluation --------------------------------------------------------

def test_evaluate_tier_1_offers_remedy_only(february_settings: RentSettings, nz_calendar: HolidayCalendar):
    status = evaluate_tenant_status(february_settings, [], [], date(2025, 2, 12), calendar=nz_calendar)

    assert status.severity_tier == 1
    assert status.working_days_overdue == 4
    assert [a.kind for a in status.eligible_actions] == [ActionKind.ISSUE_REMEDY_NOTICE]


def test_evaluate_holiday_is_not_a_working_day_overdue(february_settings: RentSettings, nz_calendar: HolidayCalendar):
    """Test rent due the day before Waitangi Day is 1 day but 0 working days overdue"""
    status = evaluate_tenant_status(february_settings, [], [], date(2025, 2, 6), calendar=nz_calendar)

    assert status.days_overdue == 1
    assert status.working_days_overdue == 0
    assert status.severity_tier == 0
    assert status.label == "Current"
    assert status.allows(ActionKind.ISSUE_REMEDY_NOTICE)


def test_evaluate_tier_2_offers_strike_1(february_settings: RentSettings, nz_calendar: HolidayCalendar):
    status = evaluate_tenant_status(february_settings, [], [], date(2025, 2, 13), calendar=nz_calendar)

    assert status.severity_tier == 2
    assert status.label == "Strike 1 ready"
    strike = next(a for a in status.eligible_actions if a.kind == ActionKind.ISSUE_STRIKE)
    assert strike.strike_number == 1
    assert strike.due_date_for_occasion == date(2025, 2, 5)
    assert status.next_strike_number == 1


def test_evaluate_tier_3_catch_up(february_settings: RentSettings, nz_calendar: HolidayCalendar):
    status = evaluate_tenant_status(february_settings, [], [], date(2025, 2, 20), calendar=nz_calendar)

    assert status.severity_tier == 3
    assert status.catch_up_required
    assert status.label == "Strike 2 zone (issue strike 1 first)"


def test_evaluate_tier_3_after_strike_1(february_settings: RentSettings, make_strike, nz_calendar: HolidayCalendar):
    notices = [make_strike(date(2025, 2, 13), number=1, occasion=date(2025, 2, 5))]

    status = evaluate_tenant_status(february_settings, [], notices, date(2025, 2, 20), calendar=nz_calendar)

    assert status.severity_tier == 3
    assert not status.catch_up_required
    assert status.active_strike_count == 1
    assert status.strike_window_expiry == date(2025, 5, 14)
    strike = next(a for a in status.eligible_actions if a.kind == ActionKind.ISSUE_STRIKE)
    assert strike.strike_number == 2
    assert strike.due_date_for_occasion == date(2025, 2, 12)


def test_evaluate_no_strike_on_day_one_was_sent(february_settings: RentSettings, make_strike, nz_calendar: HolidayCalendar):
    notices = [make_strike(date(2025, 2, 20), number=1, occasion=date(2025, 2, 5))]

    status = evaluate_tenant_status(february_settings, [], notices, date(2025, 2, 20), calendar=nz_calendar)

    assert not status.allows(ActionKind.ISSUE_STRIKE)


def test_evaluate_numbers_next_strike_after_unserved_one(february_settings: RentSettings,
                                                        nz_calendar: HolidayCalendar):
    """Test a strike sent Friday evening is not yet active but is counted for numbering"""
    first = check_strike_issue(
        february_settings, [], [], date(2025, 2, 5), datetime(2025, 3, 14, 18, 0), calendar=nz_calendar
    )

    status = evaluate_tenant_status(february_settings, [], [first], date(2025, 3, 15), calendar=nz_calendar)

    assert status.active_strike_count == 0
    assert status.next_strike_number == 2
    strike = next(a for a in status.eligible_actions if a.kind == ActionKind.ISSUE_STRIKE)
    assert strike.strike_number == 2
    assert strike.due_date_for_occasion == date(2025, 2, 12)


def test_evaluate_remedy_paid_before_service_date(february_settings: RentSettings, nz_calendar: HolidayCalendar):
    """Test a tenant who pays the weekend after a Friday-evening remedy notice has no s56 route"""
    notice = check_remedy_issue(february_settings, [], datetime(2025, 2, 21, 18, 0), calendar=nz_calendar)
    assert notice.debt_snapshot.total_owed_cents == 150000
    assert notice.expiry_date == date(2025, 3, 10)

    status = evaluate_tenant_status(
        february_settings, [PaymentEvent(450000, date(2025, 2, 22))], [notice], date(2025, 3, 20), calendar=nz_calendar
    )

    assert status.current_balance_cents == -100000
    assert status.severity_tier == 0
    assert status.remedy_notices[0].is_remedied
    assert status.termination_routes == ()


def test_evaluate_pending_remedy_suppresses_new_remedy(february_settings: RentSettings, make_remedy, nz_calendar: HolidayCalendar):
    notices = [make_remedy(date(2025, 2, 10), [(date(2025, 2, 5), 50000)])]

    status = evaluate_tenant_status(february_settings, [], notices, date(2025, 2, 12), calendar=nz_calendar)

    assert status.label == "Remedy notice sent, monitoring"
    assert not status.allows(ActionKind.ISSUE_REMEDY_NOTICE)
    assert status.remedy_notices[0].is_pending


def test_evaluate_setting_drift(february_settings: RentSettings, make_strike, nz_calendar: HolidayCalendar):
    """Test a strike naming a Tuesday after the due day moved to Wednesday"""
    notices = [make_strike(date(2025, 2, 13), number=1, occasion=date(2025, 2, 4))]

    status = evaluate_tenant_status(february_settings, [], notices, date(2025, 2, 20), calendar=nz_calendar)

    assert "setting_drift" in [d.code for d in status.diagnostics]
    assert status.active_strike_count == 1


def test_evaluate_notice_before_tracking_start(february_settings: RentSettings, make_strike, nz_calendar: HolidayCalendar):
    notices = [make_strike(date(2025, 1, 28), number=1, occasion=date(2025, 1, 22))]

    status = evaluate_tenant_status(february_settings, [], notices, date(2025, 2, 13), calendar=nz_calendar)

    codes = [d.code for d in status.diagnostics]
    assert "notice_before_tracking_start" in codes


def test_evaluate_remedy_without_snapshot_skipped(february_settings: RentSettings, nz_calendar: HolidayCalendar):
    notice = NoticeRecord(type=NoticeType.REMEDY, sent_at=datetime(2025, 2, 7, 9), official_service_date=date(2025, 2, 7))

    status = evaluate_tenant_status(february_settings, [], [notice], date(2025, 2, 12), calendar=nz_calendar)

    assert status.remedy_notices == ()
    assert "remedy_snapshot_missing" in [d.code for d in status.diagnostics]


def test_evaluate_missing_holiday_year(nz_calendar: HolidayCalendar):
    settings = RentSettings(frequency="Weekly", rent_amount_cents=50000, due_day="Monday",
                            tracking_start_date=date(2029, 2, 5))

    status = evaluate_tenant_status(settings, [], [], date(2029, 2, 20), calendar=nz_calendar)

    assert "holiday_data_missing" in [d.code for d in status.diagnostics]
    assert status.working_days_overdue > 0


@pytest.mark.parametrize("as_of", [date(2025, 2, 13), datetime(2025, 2, 13, 9, 30)])
def test_evaluate_is_deterministic(february_settings: RentSettings, make_strike, nz_calendar: HolidayCalendar, as_of):
    payments = [PaymentEvent(10000, date(2025, 2, 7))]
    notices = [make_strike(date(2025, 1, 28), notice_type=NoticeType.SOCIAL_STRIKE)]

    first = evaluate_tenant_status(february_settings, payments, notices, as_of, calendar=nz_calendar)
    second = evaluate_tenant_status(february_settings, payments, notices, as_of, calendar=nz_calendar)

    assert first == second
    assert first.as_of == date(2025, 2, 13)
