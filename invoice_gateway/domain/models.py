"""Domain models - pure Python dataclasses representing billing entities"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from invoice_gateway.domain.money import from_cents


class TransactionType(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"


class TransactionKind(str, Enum):
    """Classification outcome used for invoice totals"""

    PURCHASE = "purchase"
    PAYMENT = "payment"
    REFUND = "refund"


class InvoiceStatus(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    FORECAST = "FORECAST"


class InstallmentStatus(str, Enum):
    PENDING = "pending"
    BILLED = "billed"
    PAID = "paid"
    EXCLUDED = "excluded"  # real slice the user marked as ignored


@dataclass(frozen=True)
class Transaction:
    """Card transaction after normalization at the ingestion boundary"""

    transaction_id: str
    description: str
    amount_cents: int  # signed as delivered; totals use the magnitude
    date: date
    type: TransactionType
    category: str = ""
    account_id: Optional[str] = None
    card_id: Optional[str] = None
    installment_number: Optional[int] = None
    total_installments: Optional[int] = None
    purchase_amount_cents: Optional[int] = None
    manual_invoice_month: Optional[str] = None
    invoice_month_key: Optional[str] = None
    invoice_month_key_manual: bool = False
    is_refund: Optional[bool] = None
    is_payment: Optional[bool] = None
    ignored: bool = False

    @property
    def owner_id(self) -> str:
        return self.card_id or self.account_id or ""

    @property
    def amount(self) -> Decimal:
        return from_cents(self.amount_cents)


@dataclass(frozen=True)
class Bill:
    """Bill snapshot reported by the aggregator (current bill or history entry)"""

    total_amount_cents: int
    due_date: Optional[date] = None
    state: str = "OPEN"  # "OPEN" or "CLOSED"
    bill_id: Optional[str] = None


@dataclass(frozen=True)
class ConnectedAccount:
    """Credit card billing configuration and snapshot state"""

    account_id: str
    closing_day: int
    due_day: int
    credit_limit_cents: Optional[int] = None
    manual_credit_limit_cents: Optional[int] = None
    available_credit_limit_cents: Optional[int] = None
    used_credit_limit_cents: Optional[int] = None
    current_bill: Optional[Bill] = None
    bills: List[Bill] = field(default_factory=list)


@dataclass(frozen=True)
class Installment:
    """One payment slice of a purchase"""

    purchase_id: str
    sequence: int
    total_installments: int
    amount_cents: int
    billing_month: str
    closing_date: date
    due_date: date
    status: InstallmentStatus
    transaction_id: Optional[str] = None

    @property
    def is_projected(self) -> bool:
        return self.transaction_id is None

    @property
    def amount(self) -> Decimal:
        return from_cents(self.amount_cents)


@dataclass(frozen=True)
class Purchase:
    """Logical parent of the installments of one split purchase"""

    purchase_id: str
    card_id: str
    description: str
    category: str
    total_cents: int
    installment_count: int
    origin_date: date
    first_billing_month: str
    installments: List[Installment]

    @property
    def total(self) -> Decimal:
        return from_cents(self.total_cents)


@dataclass(frozen=True)
class InvoiceItem:
    """Single line of an invoice; amount_cents is always the positive magnitude"""

    item_id: str
    description: str
    amount_cents: int
    date: date
    kind: TransactionKind
    category: str = ""
    transaction_id: Optional[str] = None
    purchase_id: Optional[str] = None
    installment_number: Optional[int] = None
    total_installments: Optional[int] = None
    is_projected: bool = False
    source: str = "transaction"  # transaction | installment | recurring | carried_balance

    @property
    def is_payment(self) -> bool:
        return self.kind == TransactionKind.PAYMENT

    @property
    def is_refund(self) -> bool:
        return self.kind == TransactionKind.REFUND

    @property
    def signed_cents(self) -> int:
        """Contribution to the invoice total: purchases add, credits subtract"""
        return self.amount_cents if self.kind == TransactionKind.PURCHASE else -self.amount_cents

    @property
    def amount(self) -> Decimal:
        return from_cents(self.amount_cents)


@dataclass(frozen=True)
class LateCharges:
    """Late fee and interest owed on an overdue amount"""

    late_fee_cents: int
    interest_cents: int
    total_charges_cents: int
    days_overdue: int

    @property
    def late_fee(self) -> Decimal:
        return from_cents(self.late_fee_cents)

    @property
    def interest(self) -> Decimal:
        return from_cents(self.interest_cents)

    @property
    def total_charges(self) -> Decimal:
        return from_cents(self.total_charges_cents)


@dataclass(frozen=True)
class Invoice:
    """Aggregate of all items of one billing cycle"""

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
    items: List[InvoiceItem]
    source: str = "transactions"  # transactions | snapshot
    # closed invoice only: total minus payments posted after closing. Those payments
    # also lower the current invoice, so the two figures must not be added together.
    outstanding_cents: int = 0
    is_overdue: bool = False
    late_charges: Optional[LateCharges] = None

    @property
    def total(self) -> Decimal:
        return from_cents(self.total_cents)

    @property
    def projected_items(self) -> int:
        return sum(1 for item in self.items if item.is_projected)


@dataclass(frozen=True)
class InvoicePeriods:
    """Closing/due dates of the cycles around the reference date"""

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


@dataclass(frozen=True)
class BillingCycle:
    month_key: str
    period_start: date
    closing_date: date
    due_date: date


@dataclass(frozen=True)
class ExcludedTransaction:
    """Transaction left out of cycle bucketing, with the reason"""

    transaction_id: str
    reason: str
    # parsed record, when there is one (ignored transactions)
    transaction: Optional[Transaction] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class FutureCommitment:
    """Installments still to be billed after a reference date"""

    total_cents: int
    by_month: Dict[str, int]

    @property
    def total(self) -> Decimal:
        return from_cents(self.total_cents)


@dataclass(frozen=True)
class RecurringCharge:
    """Subscription-like charge expected every cycle (from an external collaborator)"""

    description: str
    amount_cents: int
    day_of_month: int
    card_id: Optional[str] = None
    category: str = ""


@dataclass(frozen=True)
class InvoiceBuildResult:
    """Output of the invoice builder"""

    closed_invoice: Invoice
    current_invoice: Invoice
    future_invoices: List[Invoice]
    periods: InvoicePeriods
    purchases: List[Purchase]
    future_commitment: FutureCommitment
    excluded: List[ExcludedTransaction]
