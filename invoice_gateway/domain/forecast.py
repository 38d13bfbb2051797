"""Projections: recurring charges, month-by-month invoice forecast, credit limit impact"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from invoice_gateway.domain.installments import normalize_description
from invoice_gateway.domain.models import (
    ConnectedAccount,
    Invoice,
    InvoiceBuildResult,
    InvoiceItem,
    RecurringCharge,
    TransactionKind,
)
from invoice_gateway.domain.money import from_cents
from invoice_gateway.domain.periods import BillingSchedule
from invoice_gateway.utils.date_utils import add_months_to_key, clamped_date, shift_month


@dataclass(frozen=True)
class InvoiceForecast:
    """Expected total of one cycle"""

    month_key: str
    total_cents: int
    installments_count: int
    new_purchases_count: int
    items: List[InvoiceItem]

    @property
    def total(self) -> Decimal:
        return from_cents(self.total_cents)


@dataclass(frozen=True)
class LimitImpact:
    """Credit limit headroom now and after the known future invoices"""

    available_cents: int
    committed_cents: int
    after_closed_cents: int


def _charge_date(charge: RecurringCharge, period_start: date, closing_date: date) -> date:
    """Occurrence of the charge's day of month inside the cycle window"""
    year, month = closing_date.year, closing_date.month
    for candidate_year, candidate_month in ((year, month), shift_month(year, month, -1)):
        candidate = clamped_date(candidate_year, candidate_month, charge.day_of_month)
        if period_start <= candidate <= closing_date:
            return candidate
    return closing_date


def project_recurring_charges(
    charges: Iterable[RecurringCharge],
    schedule: BillingSchedule,
    month_key: str,
    existing_items: Iterable[InvoiceItem] = (),
) -> List[InvoiceItem]:
    """
    Projected items for recurring charges in one cycle.

    A charge whose description root already has an item in the cycle is
    considered materialized and is not projected again.

    Raises:
        ValueError: a charge with a non-positive amount or day outside 1..31
    """
    cycle = schedule.cycle(month_key)
    seen_roots = {normalize_description(item.description) for item in existing_items}

    projected = []
    for charge in charges:
        if charge.amount_cents <= 0:
            raise ValueError(f"Recurring charge amount must be greater than zero: {charge.description!r}")
        if not 1 <= charge.day_of_month <= 31:
            raise ValueError(f"Recurring charge day must be between 1 and 31: {charge.day_of_month}")

        root = normalize_description(charge.description)
        if root in seen_roots:
            continue
        seen_roots.add(root)

        projected.append(
            InvoiceItem(
                item_id=f"recurring_{root.replace(' ', '_')}_{month_key}",
                description=charge.description,
                amount_cents=charge.amount_cents,
                date=_charge_date(charge, cycle.period_start, cycle.closing_date),
                kind=TransactionKind.PURCHASE,
                category=charge.category,
                is_projected=True,
                source="recurring",
            )
        )
    return projected


def _forecast_from_invoice(invoice: Invoice) -> InvoiceForecast:
    installments = sum(1 for item in invoice.items if (item.total_installments or 0) > 1)
    return InvoiceForecast(
        month_key=invoice.month_key,
        total_cents=invoice.total_cents,
        installments_count=installments,
        new_purchases_count=sum(1 for item in invoice.items if item.kind == TransactionKind.PURCHASE)
        - installments,
        items=list(invoice.items),
    )


def generate_invoice_forecast(result: InvoiceBuildResult, months_ahead: int = 12) -> List[InvoiceForecast]:
    """Current and future invoices as a month series, zero-filling months without an invoice"""
    by_month = {
        invoice.month_key: _forecast_from_invoice(invoice)
        for invoice in [result.current_invoice, *result.future_invoices]
    }

    start = result.current_invoice.month_key
    forecasts = []
    for offset in range(max(months_ahead, len(by_month))):
        month_key = add_months_to_key(start, offset)
        forecasts.append(
            by_month.get(month_key)
            or InvoiceForecast(
                month_key=month_key,
                total_cents=0,
                installments_count=0,
                new_purchases_count=0,
                items=[],
            )
        )
    return forecasts


def calculate_future_limit_impact(card: Optional[ConnectedAccount], result: InvoiceBuildResult) -> LimitImpact:
    limit_cents = 0
    used_cents = 0
    if card is not None:
        if card.manual_credit_limit_cents is not None:
            limit_cents = card.manual_credit_limit_cents
        elif card.credit_limit_cents is not None:
            limit_cents = card.credit_limit_cents
        used_cents = abs(card.used_credit_limit_cents or 0)

    committed = sum(invoice.total_cents for invoice in result.future_invoices)
    return LimitImpact(
        available_cents=limit_cents - used_cents,
        committed_cents=committed,
        after_closed_cents=limit_cents - result.current_invoice.total_cents - committed,
    )
