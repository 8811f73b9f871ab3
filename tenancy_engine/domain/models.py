"""Domain models - immutable dataclasses representing tenancy ledgers, notices and status"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


class Frequency(str, Enum):
    WEEKLY = "Weekly"
    FORTNIGHTLY = "Fortnightly"
    MONTHLY = "Monthly"


class NoticeType(str, Enum):
    STRIKE = "STRIKE"  # s55(1)(aa) rent strike
    SOCIAL_STRIKE = "SOCIAL_STRIKE"  # s55A anti-social behaviour
    REMEDY = "REMEDY"  # s56 14-day notice to remedy


class DeliveryMethod(str, Enum):
    EMAIL = "email"
    HAND = "hand"
    LETTERBOX = "letterbox"
    POST = "post"


class LineKind(str, Enum):
    OPENING_ARREARS = "opening_arrears"
    RENT = "rent"


@dataclass(frozen=True)
class RentSettings:
    """
    Rent schedule for one tenancy.

    Any of the first four fields may be None when the tenant record is
    incomplete; the ledger calculator reports that instead of guessing.
    due_day is a weekday name for Weekly/Fortnightly, or 1-31 for Monthly.
    """

    frequency: Frequency | None
    rent_amount_cents: int | None
    due_day: str | int | None
    tracking_start_date: date | None
    opening_arrears_cents: int = 0


@dataclass(frozen=True)
class PaymentEvent:
    """Money credited to the tenancy on a given date"""

    amount_cents: int
    date: date
    payment_id: str | None = None


@dataclass(frozen=True)
class Diagnostic:
    """Non-fatal data anomaly surfaced to the caller"""

    code: str
    message: str
    subject: date | None = None


@dataclass(frozen=True)
class LedgerLine:
    """One obligation in the ledger with the payments allocated to it"""

    entry_id: str
    kind: LineKind
    due_date: date
    amount_cents: int
    paid_cents: int

    @property
    def unpaid_cents(self) -> int:
        return self.amount_cents - self.paid_cents


@dataclass(frozen=True)
class LedgerState:
    """Balance and arrears age derived from settings and payments as of one date"""

    as_of: date
    total_due_cents: int
    total_paid_cents: int
    current_balance_cents: int  # positive = tenant owes, negative = credit
    cycles_elapsed: int
    cycles_paid_in_full: int
    cycles_unpaid: int
    first_due_date: date
    next_due_date: date
    paid_until_date: date | None
    oldest_unpaid_due_date: date | None
    days_overdue: int
    lines: tuple[LedgerLine, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def is_overdue(self) -> bool:
        return self.days_overdue > 0

    @property
    def credit_cents(self) -> int:
        return -self.current_balance_cents if self.current_balance_cents < 0 else 0


@dataclass(frozen=True)
class InsufficientConfiguration:
    """Result variant: settings cannot produce a deterministic balance"""

    missing_fields: tuple[str, ...]
    reason: str


@dataclass(frozen=True)
class DebtSnapshot:
    """
    The debt a remedy notice named, frozen at the moment it was issued.

    unpaid_amounts pairs each named due date with the amount outstanding on
    it at issue time.
    """

    entry_ids: tuple[str, ...]
    due_dates: tuple[date, ...]
    unpaid_amounts: tuple[tuple[date, int], ...]
    total_owed_cents: int


@dataclass(frozen=True)
class NoticeRecord:
    """A notice that has been (or is about to be) served on the tenant"""

    type: NoticeType
    sent_at: datetime
    official_service_date: date
    strike_number: int | None = None
    due_date_for_occasion: date | None = None
    debt_snapshot: DebtSnapshot | None = None
    delivery_method: DeliveryMethod = DeliveryMethod.EMAIL
    notice_id: str | None = None
    expiry_date: date | None = None  # remedy expiry, or tribunal deadline for a third strike

    @property
    def is_strike(self) -> bool:
        return self.type in (NoticeType.STRIKE, NoticeType.SOCIAL_STRIKE)


class ActionKind(str, Enum):
    ISSUE_REMEDY_NOTICE = "issue_remedy_notice"
    ISSUE_STRIKE = "issue_strike"
    APPLY_FOR_TERMINATION = "apply_for_termination"


class RouteKind(str, Enum):
    ARREARS_21_DAYS = "arrears_21_days"  # s55(1)(a)
    THREE_STRIKES = "three_strikes"  # s55(1)(aa)
    UNREMEDIED_BREACH = "unremedied_breach"  # s56


class RejectionReason(str, Enum):
    MISSING_OCCASION = "missing_occasion"
    DUPLICATE_OCCASION = "duplicate_occasion"
    SAME_DAY_STRIKE = "same_day_strike"
    STRIKE_LIMIT_REACHED = "strike_limit_reached"
    OUT_OF_SEQUENCE = "out_of_sequence"
    OCCASION_NOT_OVERDUE = "occasion_not_overdue"
    NOTHING_OWED = "nothing_owed"


@dataclass(frozen=True)
class ActionRejected:
    """Result variant: a notice may not legally be issued"""

    reason: RejectionReason
    message: str


@dataclass(frozen=True)
class EligibleAction:
    kind: ActionKind
    strike_number: int | None = None
    due_date_for_occasion: date | None = None
    routes: tuple[RouteKind, ...] = ()


@dataclass(frozen=True)
class TerminationRoute:
    """A statutory route to a tribunal termination application that is open now"""

    kind: RouteKind
    citation: str
    filing_deadline: date | None = None
    days_remaining: int | None = None
    notice_id: str | None = None


@dataclass(frozen=True)
class TribunalWindow:
    deadline: date
    is_open: bool
    days_remaining: int | None


@dataclass(frozen=True)
class RemedyNoticeStatus:
    """Where a 14-day notice to remedy stands against the debt it named"""

    notice_id: str | None
    official_service_date: date
    expiry_date: date
    is_expired: bool
    is_remedied: bool
    amount_required_cents: int
    amount_paid_toward_notice_cents: int
    days_remaining: int | None
    days_since_expiry: int | None

    @property
    def is_pending(self) -> bool:
        return not self.is_expired and not self.is_remedied

    @property
    def can_apply_to_tribunal(self) -> bool:
        return self.is_expired and not self.is_remedied


@dataclass(frozen=True)
class DueDateStrikeStatus:
    """One elapsed rent due date and whether it can carry a strike"""

    due_date: date
    unpaid_cents: int
    working_days_overdue: int
    is_strike_eligible: bool
    strike_already_issued: bool


@dataclass(frozen=True)
class TenantStatus:
    """Canonical compliance status for one tenant as of one date"""

    as_of: date
    severity_tier: int
    severity_name: str
    label: str
    working_days_overdue: int
    days_overdue: int
    current_balance_cents: int
    active_strike_count: int
    strike_window_expiry: date | None
    next_strike_number: int | None
    catch_up_required: bool
    eligible_actions: tuple[EligibleAction, ...]
    termination_routes: tuple[TerminationRoute, ...]
    due_date_statuses: tuple[DueDateStrikeStatus, ...] = ()
    remedy_notices: tuple[RemedyNoticeStatus, ...] = ()
    ledger: LedgerState | None = None
    configuration_error: InsufficientConfiguration | None = None
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def is_termination_eligible(self) -> bool:
        return bool(self.termination_routes)

    @property
    def is_estimate(self) -> bool:
        """True when the ledger could not be computed and only notices were used"""
        return self.ledger is None

    def allows(self, kind: ActionKind) -> bool:
        return any(action.kind == kind for action in self.eligible_actions)
