"""
Rent ledger calculator - deterministic balance and arrears age.

The balance is pure arithmetic over the schedule and the payment list:

    total due       = cycles elapsed x rent + opening arrears
    current balance = total due - total paid

Everything is recomputed from scratch on every call; nothing is patched in
place, so the same inputs always give the same LedgerState.
"""

import logging
from datetime import date, datetime
from typing import List, Sequence

from tenancy_engine.domain.exceptions import InsufficientConfigurationError, InvalidScheduleError
from tenancy_engine.domain.models import (
    DebtSnapshot,
    Diagnostic,
    InsufficientConfiguration,
    LedgerLine,
    LedgerState,
    LineKind,
    PaymentEvent,
    RentSettings,
)
from tenancy_engine.domain.money import is_money_zero
from tenancy_engine.domain.schedule import (
    count_cycles,
    find_next_due_date_after,
    first_due_date,
    iter_due_dates,
    next_due_date,
)
from tenancy_engine.utils.date_utils import calendar_days_between, to_local_date

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("frequency", "rent_amount_cents", "due_day", "tracking_start_date")


def entry_id_for(kind: LineKind, due_date: date) -> str:
    """Stable ledger entry identifier, e.g. 'rent:2025-01-08'"""
    return f"{kind.value}:{due_date.isoformat()}"


def check_configuration(settings: RentSettings) -> InsufficientConfiguration | None:
    """Return why settings cannot be used, or None when they are complete"""
    missing = tuple(name for name in REQUIRED_FIELDS if getattr(settings, name) is None)
    if missing:
        return InsufficientConfiguration(missing, f"Missing rent settings: {', '.join(missing)}")
    if settings.rent_amount_cents <= 0:
        return InsufficientConfiguration(("rent_amount_cents",), "Rent amount must be greater than zero")
    if settings.opening_arrears_cents < 0:
        return InsufficientConfiguration(("opening_arrears_cents",), "Opening arrears cannot be negative")
    try:
        first_due_date(settings)
    except (InvalidScheduleError, InsufficientConfigurationError) as e:
        return InsufficientConfiguration(("frequency", "due_day"), str(e))
    return None


def _build_lines(settings: RentSettings, as_of: date, total_paid_cents: int) -> List[LedgerLine]:
    """Opening arrears first, then one line per elapsed cycle; payments fill oldest first"""
    obligations = []
    if settings.opening_arrears_cents > 0:
        obligations.append(
            (LineKind.OPENING_ARREARS, settings.tracking_start_date, settings.opening_arrears_cents)
        )
    for due in iter_due_dates(settings, as_of):
        obligations.append((LineKind.RENT, due, settings.rent_amount_cents))

    lines = []
    remaining = total_paid_cents
    for kind, due, amount in obligations:
        paid = max(0, min(amount, remaining))
        remaining -= paid
        lines.append(
            LedgerLine(
                entry_id=entry_id_for(kind, due),
                kind=kind,
                due_date=due,
                amount_cents=amount,
                paid_cents=paid,
            )
        )
    return lines


def calculate_ledger(
    settings: RentSettings,
    payments: Sequence[PaymentEvent],
    as_of: date | datetime,
) -> LedgerState | InsufficientConfiguration:
    """
    Main entry point: compute the tenant's ledger as of a date.

    Payments dated after as_of are left out so "as of" simulations see only
    money that had arrived by then. Returns InsufficientConfiguration instead
    of guessing when the settings are incomplete.
    """
    problem = check_configuration(settings)
    if problem is not None:
        logger.warning("Ledger not computed: %s", problem.reason)
        return problem

    as_of = to_local_date(as_of)
    diagnostics: List[Diagnostic] = []

    # Stable sort keeps the caller's order for same-day payments
    counted = []
    for payment in sorted(payments, key=lambda p: p.date):
        if payment.date > as_of:
            diagnostics.append(
                Diagnostic(
                    "future_payment_ignored",
                    f"Payment dated {payment.date} is after {as_of} and was not counted",
                    payment.date,
                )
            )
            continue
        if payment.date < settings.tracking_start_date:
            diagnostics.append(
                Diagnostic(
                    "payment_before_tracking_start",
                    f"Payment dated {payment.date} predates tracking start {settings.tracking_start_date}",
                    payment.date,
                )
            )
        counted.append(payment)

    first = first_due_date(settings)
    cycles_elapsed = count_cycles(settings, as_of)
    rent = settings.rent_amount_cents
    total_due = cycles_elapsed * rent + settings.opening_arrears_cents
    total_paid = sum(p.amount_cents for p in counted)

    balance = total_due - total_paid
    if is_money_zero(balance):
        balance = 0

    lines = _build_lines(settings, as_of, total_paid)

    # A line is covered once cumulative payments reach its cumulative obligation
    oldest_unpaid = next(
        (line.due_date for line in lines if line.unpaid_cents > 0 and line.due_date < as_of),
        None,
    )
    days_overdue = 0
    if oldest_unpaid is not None and balance > 0:
        days_overdue = max(0, calendar_days_between(oldest_unpaid, as_of))

    cycles_paid_in_full = max(0, total_paid - settings.opening_arrears_cents) // rent
    cycles_unpaid = max(0, cycles_elapsed - cycles_paid_in_full)

    paid_until = None
    if cycles_paid_in_full > 0:
        paid_until = first
        for _ in range(cycles_paid_in_full - 1):
            paid_until = next_due_date(paid_until, settings)
            if paid_until > as_of:
                break
        paid_until = min(paid_until, as_of)

    state = LedgerState(
        as_of=as_of,
        total_due_cents=total_due,
        total_paid_cents=total_paid,
        current_balance_cents=balance,
        cycles_elapsed=cycles_elapsed,
        cycles_paid_in_full=cycles_paid_in_full,
        cycles_unpaid=cycles_unpaid,
        first_due_date=first,
        next_due_date=find_next_due_date_after(as_of, settings, first),
        paid_until_date=paid_until,
        oldest_unpaid_due_date=oldest_unpaid,
        days_overdue=days_overdue,
        lines=tuple(lines),
        diagnostics=tuple(diagnostics),
    )

    logger.debug(
        "Ledger calculated",
        extra={
            "as_of": as_of.isoformat(),
            "cycles_elapsed": cycles_elapsed,
            "total_due_cents": total_due,
            "total_paid_cents": total_paid,
            "balance_cents": balance,
            "days_overdue": days_overdue,
        },
    )
    return state


def snapshot_debt(state: LedgerState) -> DebtSnapshot:
    """
    Freeze the overdue debt a remedy notice will name.

    Only lines due before the ledger date and still unpaid are included.
    """
    owed = [line for line in state.lines if line.unpaid_cents > 0 and line.due_date < state.as_of]
    return DebtSnapshot(
        entry_ids=tuple(line.entry_id for line in owed),
        due_dates=tuple(line.due_date for line in owed),
        unpaid_amounts=tuple((line.due_date, line.unpaid_cents) for line in owed),
        total_owed_cents=sum(line.unpaid_cents for line in owed),
    )
