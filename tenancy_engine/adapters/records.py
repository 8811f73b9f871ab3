"""
Pydantic record models - validate persistence rows and convert them to domain objects.

Rows arrive the way the tenant store keeps them: dollar amounts, ISO date
strings, loosely cased enum values. Everything past this module works in
integer cents and domain dataclasses.
"""

import time
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from tenancy_engine.domain.eligibility import evaluate_tenant_status
from tenancy_engine.domain.holidays import HolidayCalendar
from tenancy_engine.domain.models import (
    DebtSnapshot,
    DeliveryMethod,
    Frequency,
    NoticeRecord,
    NoticeType,
    PaymentEvent,
    RentSettings,
    TenantStatus,
)
from tenancy_engine.domain.money import format_cents, to_cents
from tenancy_engine.domain.notices import notice_expiry_date, official_service_date
from tenancy_engine.observability.logging import log_status_evaluation


class RentSettingsRecord(BaseModel):
    """Rent settings as stored on the tenant record (any field may be unset)"""

    rent_frequency: Optional[Frequency] = None
    rent_amount: Optional[Decimal] = Field(None, gt=0, description="Rent per cycle in dollars")
    rent_due_day: Optional[str | int] = Field(None, description="Weekday name, or 1-31 for Monthly")
    tracking_start_date: Optional[date] = None
    opening_arrears: Decimal = Field(Decimal("0"), ge=0, description="Debt at tracking start in dollars")

    @field_validator("rent_frequency", mode="before")
    @classmethod
    def normalise_frequency(cls, v):
        if isinstance(v, str):
            return v.strip().capitalize()
        return v

    def to_domain(self) -> RentSettings:
        return RentSettings(
            frequency=self.rent_frequency,
            rent_amount_cents=to_cents(self.rent_amount) if self.rent_amount is not None else None,
            due_day=self.rent_due_day,
            tracking_start_date=self.tracking_start_date,
            opening_arrears_cents=to_cents(self.opening_arrears),
        )


class PaymentRecord(BaseModel):
    """A recorded payment; amount in dollars or amount_cents, not both"""

    model_config = ConfigDict(populate_by_name=True)

    payment_id: Optional[str] = None
    amount: Optional[Decimal] = Field(None, gt=0)
    amount_cents: Optional[int] = Field(None, gt=0)
    paid_on: date = Field(..., alias="date")

    @model_validator(mode="after")
    def one_amount(self) -> "PaymentRecord":
        if (self.amount is None) == (self.amount_cents is None):
            raise ValueError("Exactly one of amount or amount_cents is required")
        return self

    def to_domain(self) -> PaymentEvent:
        cents = self.amount_cents if self.amount_cents is not None else to_cents(self.amount)
        return PaymentEvent(amount_cents=cents, date=self.paid_on, payment_id=self.payment_id)


class DebtSnapshotRecord(BaseModel):
    """Debt named by a notice to remedy, as stored in the notice metadata"""

    ledger_entry_ids: List[str] = Field(default_factory=list)
    due_dates: List[date] = Field(default_factory=list)
    unpaid_amounts: Dict[date, Decimal] = Field(default_factory=dict)
    total_amount_owed: Decimal = Field(..., ge=0)

    def to_domain(self) -> DebtSnapshot:
        return DebtSnapshot(
            entry_ids=tuple(self.ledger_entry_ids),
            due_dates=tuple(self.due_dates),
            unpaid_amounts=tuple((day, to_cents(amount)) for day, amount in sorted(self.unpaid_amounts.items())),
            total_owed_cents=to_cents(self.total_amount_owed),
        )


class NoticeRecordModel(BaseModel):
    """
    A served notice as stored.

    The stored official_service_date and expiry_date are authoritative. Rows
    written before those dates were persisted get them computed from sent_at.
    """

    model_config = ConfigDict(populate_by_name=True)

    notice_id: Optional[str] = None
    notice_type: NoticeType = Field(..., alias="type")
    sent_at: datetime
    official_service_date: Optional[date] = None
    expiry_date: Optional[date] = None
    strike_number: Optional[int] = Field(None, ge=1, le=3)
    due_date_for_occasion: Optional[date] = None
    delivery_method: DeliveryMethod = DeliveryMethod.EMAIL
    debt_snapshot: Optional[DebtSnapshotRecord] = None

    @field_validator("notice_type", mode="before")
    @classmethod
    def normalise_type(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("delivery_method", mode="before")
    @classmethod
    def normalise_delivery(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    def to_domain(self, region: str | None = None, calendar: HolidayCalendar | None = None) -> NoticeRecord:
        osd = self.official_service_date or official_service_date(
            self.sent_at, region, self.delivery_method, calendar
        )
        expiry = self.expiry_date or notice_expiry_date(self.notice_type, osd, self.strike_number)
        return NoticeRecord(
            type=self.notice_type,
            sent_at=self.sent_at,
            official_service_date=osd,
            strike_number=self.strike_number,
            due_date_for_occasion=self.due_date_for_occasion,
            debt_snapshot=self.debt_snapshot.to_domain() if self.debt_snapshot else None,
            delivery_method=self.delivery_method,
            notice_id=self.notice_id,
            expiry_date=expiry,
        )


class ActionView(BaseModel):
    kind: str
    strike_number: Optional[int] = None
    due_date_for_occasion: Optional[date] = None
    routes: List[str] = Field(default_factory=list)


class RouteView(BaseModel):
    kind: str
    citation: str
    filing_deadline: Optional[date] = None
    days_remaining: Optional[int] = None
    notice_id: Optional[str] = None


class DiagnosticView(BaseModel):
    code: str
    message: str
    subject: Optional[date] = None


class TenantStatusView(BaseModel):
    """JSON-ready rendering of a TenantStatus for the notification layer"""

    as_of: date
    severity_tier: int
    severity_name: str
    label: str
    balance_cents: int
    balance_display: str
    working_days_overdue: int
    days_overdue: int
    active_strike_count: int
    strike_window_expiry: Optional[date] = None
    next_strike_number: Optional[int] = None
    catch_up_required: bool
    paid_until_date: Optional[date] = None
    oldest_unpaid_due_date: Optional[date] = None
    next_due_date: Optional[date] = None
    eligible_actions: List[ActionView]
    termination_routes: List[RouteView]
    is_estimate: bool
    missing_settings: List[str] = Field(default_factory=list)
    diagnostics: List[DiagnosticView] = Field(default_factory=list)

    @classmethod
    def from_status(cls, status: TenantStatus) -> "TenantStatusView":
        ledger = status.ledger
        return cls(
            as_of=status.as_of,
            severity_tier=status.severity_tier,
            severity_name=status.severity_name,
            label=status.label,
            balance_cents=status.current_balance_cents,
            balance_display=format_cents(status.current_balance_cents),
            working_days_overdue=status.working_days_overdue,
            days_overdue=status.days_overdue,
            active_strike_count=status.active_strike_count,
            strike_window_expiry=status.strike_window_expiry,
            next_strike_number=status.next_strike_number,
            catch_up_required=status.catch_up_required,
            paid_until_date=ledger.paid_until_date if ledger else None,
            oldest_unpaid_due_date=ledger.oldest_unpaid_due_date if ledger else None,
            next_due_date=ledger.next_due_date if ledger else None,
            eligible_actions=[
                ActionView(
                    kind=a.kind.value,
                    strike_number=a.strike_number,
                    due_date_for_occasion=a.due_date_for_occasion,
                    routes=[r.value for r in a.routes],
                )
                for a in status.eligible_actions
            ],
            termination_routes=[
                RouteView(
                    kind=r.kind.value,
                    citation=r.citation,
                    filing_deadline=r.filing_deadline,
                    days_remaining=r.days_remaining,
                    notice_id=r.notice_id,
                )
                for r in status.termination_routes
            ],
            is_estimate=status.is_estimate,
            missing_settings=list(status.configuration_error.missing_fields) if status.configuration_error else [],
            diagnostics=[DiagnosticView(code=d.code, message=d.message, subject=d.subject) for d in status.diagnostics],
        )


def evaluate_records(
    tenant_id: str,
    settings_record: RentSettingsRecord,
    payment_records: Sequence[PaymentRecord],
    notice_records: Sequence[NoticeRecordModel],
    as_of: date | datetime,
    region: str | None = None,
    calendar: HolidayCalendar | None = None,
) -> TenantStatus:
    """
    Evaluate a tenant straight from stored rows.

    Flow:
    1. Convert rows to domain objects
    2. Run the status evaluation
    3. Log the outcome for the audit trail
    """
    start_time = time.time()

    status = evaluate_tenant_status(
        settings_record.to_domain(),
        [p.to_domain() for p in payment_records],
        [n.to_domain(region, calendar) for n in notice_records],
        as_of,
        region=region,
        calendar=calendar,
    )

    duration_ms = (time.time() - start_time) * 1000
    log_status_evaluation(tenant_id, status, duration_ms)
    return status
