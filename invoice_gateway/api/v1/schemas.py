"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from invoice_gateway.domain.models import (
    InstallmentStatus,
    InvoiceStatus,
    RecurringCharge,
    TransactionKind,
)
from invoice_gateway.domain.money import to_cents


class DomainSchema(BaseModel):
    """Response schema read from domain dataclasses"""

    model_config = ConfigDict(from_attributes=True)


class RecurringChargeSchema(BaseModel):
    """Subscription-like charge to project into forecast invoices"""

    description: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, description="Charge amount per cycle")
    day_of_month: int = Field(..., ge=1, le=31)
    card_id: Optional[str] = None
    category: str = ""

    def to_domain(self) -> RecurringCharge:
        return RecurringCharge(
            description=self.description,
            amount_cents=to_cents(self.amount),
            day_of_month=self.day_of_month,
            card_id=self.card_id,
            category=self.category,
        )


class InvoiceRequest(BaseModel):
    """Request body for POST /v1/invoices"""

    card: Dict[str, Any] = Field(..., description="Card record as delivered by the aggregator")
    transactions: List[Any] = Field(default_factory=list, description="Raw transaction records")
    card_id: str = Field("all", min_length=1, description="Card/account id to keep, or 'all'")
    forecast_months: Optional[int] = Field(None, ge=0, le=24)
    as_of_date: Optional[date] = Field(None, description="Reference date (defaults to today)")
    recurring: List[RecurringChargeSchema] = Field(default_factory=list)


class InvoiceItemSchema(DomainSchema):
    item_id: str
    description: str
    amount_cents: int
    date: date
    kind: TransactionKind
    category: str
    transaction_id: Optional[str] = None
    purchase_id: Optional[str] = None
    installment_number: Optional[int] = None
    total_installments: Optional[int] = None
    is_projected: bool
    source: str


class LateChargesSchema(DomainSchema):
    late_fee_cents: int
    interest_cents: int
    total_charges_cents: int
    days_overdue: int


class InvoiceSchema(DomainSchema):
    invoice_id: str
    card_id: str
    month_key: str
    status: InvoiceStatus
    period_start: date
    closing_date: date
    due_date: date
    total_cents: int
    purchases_cents: int
    credits_cents: int
    outstanding_cents: int = Field(
        ...,
        description=(
            "Closed invoice: total minus payments posted after closing. Those payments also "
            "lower the current invoice; do not add this to the current total"
        ),
    )
    is_overdue: bool
    late_charges: Optional[LateChargesSchema] = None
    source: str
    items: List[InvoiceItemSchema]


class PeriodsSchema(DomainSchema):
    closing_day: int
    due_day: int
    before_last_closing_date: date
    last_closing_date: date
    current_closing_date: date
    next_closing_date: date
    last_period_start: date
    current_period_start: date
    next_period_start: date
    last_due_date: date
    current_due_date: date
    next_due_date: date
    last_month_key: str
    current_month_key: str
    next_month_key: str


class InstallmentSchema(DomainSchema):
    """Single installment of a purchase"""

    sequence: int
    total_installments: int
    amount_cents: int
    billing_month: str
    closing_date: date
    due_date: date
    status: InstallmentStatus
    transaction_id: Optional[str] = None


class PurchaseSchema(DomainSchema):
    purchase_id: str
    card_id: str
    description: str
    category: str
    total_cents: int
    installment_count: int
    origin_date: date
    first_billing_month: str
    installments: List[InstallmentSchema]


class FutureCommitmentSchema(DomainSchema):
    total_cents: int
    by_month: Dict[str, int]


class ExcludedTransactionSchema(DomainSchema):
    transaction_id: str
    reason: str


class InvoiceBuildResponse(DomainSchema):
    """Response for POST /v1/invoices"""

    closed_invoice: InvoiceSchema
    current_invoice: InvoiceSchema
    future_invoices: List[InvoiceSchema]
    periods: PeriodsSchema
    purchases: List[PurchaseSchema]
    future_commitment: FutureCommitmentSchema
    excluded: List[ExcludedTransactionSchema]


class LateChargeRequest(BaseModel):
    """Request body for POST /v1/late-charges"""

    amount: Decimal = Field(..., description="Overdue amount")
    due_date: date
    as_of_date: Optional[date] = Field(None, description="Payment/reference date (defaults to today)")


class LateChargeResponse(LateChargesSchema):
    """Response for POST /v1/late-charges"""

    amount_cents: int


class AuditEntrySchema(DomainSchema):
    computation_id: str
    operation: str
    details: Dict[str, Any]
    result: Dict[str, Any]
    recorded_at: datetime


class AuditResponse(BaseModel):
    """Response for GET /v1/audit"""

    card_id: str
    entries: List[AuditEntrySchema]
