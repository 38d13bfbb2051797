"""Invoice builder: closed, current and forecast invoices of one card"""

import logging
from collections import defaultdict
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from invoice_gateway.domain.audit import AuditLog, AuditTrail
from invoice_gateway.domain.business_days import HolidayCalendar
from invoice_gateway.domain.classification import DEFAULT_RULES, ClassificationRules, classify_or_default
from invoice_gateway.domain.forecast import project_recurring_charges
from invoice_gateway.domain.installments import (
    calculate_future_commitment,
    process_transactions_to_installments,
)
from invoice_gateway.domain.late_charges import DEFAULT_RATES, LateChargeRates, calculate_late_charges
from invoice_gateway.domain.models import (
    BillingCycle,
    ConnectedAccount,
    ExcludedTransaction,
    Installment,
    Invoice,
    InvoiceBuildResult,
    InvoiceItem,
    InvoiceStatus,
    LateCharges,
    Purchase,
    RecurringCharge,
    Transaction,
    TransactionKind,
)
from invoice_gateway.domain.money import from_cents
from invoice_gateway.domain.normalization import normalize_account, normalize_transactions
from invoice_gateway.domain.periods import BillingSchedule
from invoice_gateway.utils.date_utils import add_months, add_months_to_key, parse_date, parse_month_key, to_month_key

logger = logging.getLogger(__name__)


def _transaction_item(
    transaction: Transaction,
    kind: TransactionKind,
    installment: Optional[Installment],
) -> InvoiceItem:
    return InvoiceItem(
        item_id=transaction.transaction_id,
        description=transaction.description,
        amount_cents=abs(transaction.amount_cents),
        date=transaction.date,
        kind=kind,
        category=transaction.category,
        transaction_id=transaction.transaction_id,
        purchase_id=installment.purchase_id if installment else None,
        installment_number=installment.sequence if installment else None,
        total_installments=installment.total_installments if installment else None,
    )


def _projected_installment_item(purchase: Purchase, installment: Installment, cycle: BillingCycle) -> InvoiceItem:
    # keep the purchase day of month, inside the cycle window
    expected = add_months(purchase.origin_date, installment.sequence - 1)
    item_date = min(max(expected, cycle.period_start), cycle.closing_date)
    return InvoiceItem(
        item_id=f"{purchase.purchase_id}_inst_{installment.sequence}",
        description=f"{purchase.description} {installment.sequence}/{installment.total_installments}",
        amount_cents=installment.amount_cents,
        date=item_date,
        kind=TransactionKind.PURCHASE,
        category=purchase.category,
        purchase_id=purchase.purchase_id,
        installment_number=installment.sequence,
        total_installments=installment.total_installments,
        is_projected=True,
        source="installment",
    )


def _snapshot_totals(account: ConnectedAccount, cycles: Mapping[str, BillingCycle], closed_key: str) -> Dict[str, int]:
    """
    Aggregator bill totals per cycle, matched on the adjusted due date.

    Bills whose due date matches no cycle exactly fall back to the due date's
    month, where the earliest cycle due that month wins. A current bill without
    a due date is taken as the closed invoice's.
    """
    due_dates = {cycle.due_date: key for key, cycle in cycles.items()}
    due_months: Dict[str, str] = {}
    for key, cycle in sorted(cycles.items(), key=lambda entry: entry[1].due_date):
        due_months.setdefault(to_month_key(cycle.due_date), key)
    snapshots: Dict[str, int] = {}

    bills = ([account.current_bill] if account.current_bill else []) + list(account.bills)
    for index, bill in enumerate(bills):
        total = abs(bill.total_amount_cents)
        if total == 0:
            continue
        if bill.due_date is not None:
            key = due_dates.get(bill.due_date) or due_months.get(to_month_key(bill.due_date))
        else:
            key = closed_key if index == 0 and account.current_bill else None
        if key is not None and key not in snapshots:
            snapshots[key] = total
    return snapshots


def _assemble_invoice(
    card_id: str,
    cycle: BillingCycle,
    status: InvoiceStatus,
    items: List[InvoiceItem],
    snapshot_cents: Optional[int] = None,
) -> Invoice:
    ordered = sorted(items, key=lambda item: (-item.date.toordinal(), item.item_id))
    purchases_cents = sum(item.amount_cents for item in ordered if item.kind == TransactionKind.PURCHASE)
    credits_cents = sum(item.amount_cents for item in ordered if item.kind != TransactionKind.PURCHASE)
    total_cents = max(0, purchases_cents - credits_cents)

    source = "transactions"
    # sync lag: the network confirmed a bill before its charges arrived
    if purchases_cents == 0 and snapshot_cents:
        total_cents = snapshot_cents
        source = "snapshot"

    return Invoice(
        invoice_id=f"{card_id}_{cycle.month_key}",
        card_id=card_id,
        month_key=cycle.month_key,
        status=status,
        period_start=cycle.period_start,
        closing_date=cycle.closing_date,
        due_date=cycle.due_date,
        total_cents=total_cents,
        purchases_cents=purchases_cents,
        credits_cents=credits_cents,
        items=ordered,
        source=source,
        outstanding_cents=total_cents,
    )


def _resolve_as_of(as_of_date: Union[date, datetime, str, None]) -> date:
    if as_of_date is None:
        return date.today()
    resolved = parse_date(as_of_date)
    if resolved is None:
        raise ValueError(f"Invalid reference date: {as_of_date!r}")
    return resolved


def _invoice_summary(invoice: Invoice) -> Dict[str, Any]:
    return {
        "month_key": invoice.month_key,
        "total_cents": invoice.total_cents,
        "items": len(invoice.items),
        "source": invoice.source,
    }


def build_invoices(
    card: Union[ConnectedAccount, Mapping, None],
    transactions: Iterable[Any],
    card_id: str = "all",
    forecast_months: int = 3,
    as_of_date: Union[date, datetime, str, None] = None,
    *,
    rules: ClassificationRules = DEFAULT_RULES,
    calendar: Optional[HolidayCalendar] = None,
    rates: LateChargeRates = DEFAULT_RATES,
    audit: Optional[AuditLog] = None,
    recurring: Sequence[RecurringCharge] = (),
    roll_unpaid_balance: bool = False,
) -> InvoiceBuildResult:
    """
    Build the closed, current and forecast invoices of a card.

    Each transaction lands in the cycle whose window (previous closing, closing]
    contains its date, unless a manual invoice month pins it elsewhere. Bill
    payments and true refunds subtract, everything else adds; totals are
    floored at zero. Forecast cycles only hold projections (installments not
    yet billed and recurring charges).

    Args:
        card: card configuration (ConnectedAccount or raw aggregator record)
        transactions: raw records or Transaction instances
        card_id: card/account to keep, "all" keeps every transaction
        forecast_months: number of cycles projected after the current one
        as_of_date: reference "today"; resolved once here when omitted
        rules: payment/refund matcher rules
        calendar: holiday calendar for date adjustment (weekends only by default)
        rates: late-charge rates for an overdue closed invoice
        audit: log receiving this computation's audit entries
        recurring: subscription-like charges to project into forecast cycles
        roll_unpaid_balance: carry an overdue closed balance into the current invoice

    Raises:
        ConfigurationError: card missing or without valid closing/due day
        ValueError: negative forecast_months or unparseable as_of_date
    """
    if forecast_months < 0:
        raise ValueError(f"forecast_months must be >= 0, got {forecast_months}")

    account = normalize_account(card)
    today = _resolve_as_of(as_of_date)
    trail = AuditTrail(card_id=card_id)

    schedule = BillingSchedule.from_account(account, calendar)
    periods = schedule.periods(today)

    normalized, excluded = normalize_transactions(transactions, card_id, trail)
    normalized.sort(key=lambda tx: (tx.date, tx.transaction_id))

    ignored_records = [item.transaction for item in excluded if item.reason == "ignored" and item.transaction]
    purchases = process_transactions_to_installments(normalized + ignored_records, schedule, today, trail)
    installments_by_tx = {
        installment.transaction_id: installment
        for purchase in purchases
        for installment in purchase.installments
        if installment.transaction_id
    }

    closed_key = periods.last_month_key
    current_key = periods.current_month_key
    future_keys = [add_months_to_key(current_key, offset) for offset in range(1, forecast_months + 1)]
    cycles = {key: schedule.cycle(key) for key in [closed_key, current_key, *future_keys]}
    buckets: Dict[str, List[InvoiceItem]] = defaultdict(list)

    horizon_key = future_keys[-1] if future_keys else current_key
    out_of_window: List[ExcludedTransaction] = []
    payments_after_closing = 0
    for transaction in normalized:
        kind = classify_or_default(transaction, rules, trail)

        overrides = [transaction.manual_invoice_month]
        if transaction.invoice_month_key_manual:
            overrides.append(transaction.invoice_month_key)
        for value in overrides:
            if value and parse_month_key(value) is None:
                trail.record(
                    "invoice_month_override_ignored",
                    {"transaction_id": transaction.transaction_id, "month_key": value},
                    {"reason": "malformed month key"},
                )

        month_key, overridden = schedule.resolve_invoice_month(transaction)
        # overrides to any month before the closed cycle land on the closed invoice
        if overridden and month_key < closed_key:
            month_key = closed_key
        if overridden:
            trail.record(
                "invoice_month_override",
                {"transaction_id": transaction.transaction_id, "date": transaction.date.isoformat()},
                {"month_key": month_key},
            )

        if kind == TransactionKind.PAYMENT and periods.last_closing_date < transaction.date <= today:
            payments_after_closing += abs(transaction.amount_cents)

        if month_key in cycles:
            buckets[month_key].append(
                _transaction_item(transaction, kind, installments_by_tx.get(transaction.transaction_id))
            )
        elif month_key > horizon_key:
            out_of_window.append(
                ExcludedTransaction(transaction_id=transaction.transaction_id, reason="out_of_window")
            )
            trail.record(
                "transaction_excluded",
                {"transaction_id": transaction.transaction_id, "month_key": month_key},
                {"reason": "out_of_window", "horizon": horizon_key},
            )

    projected_keys = {current_key, *future_keys}
    for purchase in purchases:
        for installment in purchase.installments:
            if installment.is_projected and installment.billing_month in projected_keys:
                buckets[installment.billing_month].append(
                    _projected_installment_item(purchase, installment, cycles[installment.billing_month])
                )

    card_charges = [
        charge for charge in recurring if card_id == "all" or charge.card_id in (None, card_id)
    ]
    for key in future_keys:
        buckets[key].extend(project_recurring_charges(card_charges, schedule, key, buckets[key]))

    snapshots = _snapshot_totals(account, cycles, closed_key)

    closed = _assemble_invoice(
        card_id, cycles[closed_key], InvoiceStatus.CLOSED, buckets[closed_key], snapshots.get(closed_key)
    )
    outstanding = max(0, closed.total_cents - payments_after_closing)
    late_charges: Optional[LateCharges] = None
    is_overdue = today > closed.due_date and outstanding > 0
    if is_overdue:
        late_charges = calculate_late_charges(from_cents(outstanding), closed.due_date, today, rates)
        trail.record(
            "late_charges",
            {"month_key": closed_key, "outstanding_cents": outstanding, "due_date": closed.due_date.isoformat()},
            {"total_charges_cents": late_charges.total_charges_cents, "days_overdue": late_charges.days_overdue},
        )
    closed = replace(closed, outstanding_cents=outstanding, is_overdue=is_overdue, late_charges=late_charges)

    if roll_unpaid_balance and is_overdue:
        carried = outstanding + (late_charges.total_charges_cents if late_charges else 0)
        buckets[current_key].append(
            InvoiceItem(
                item_id=f"carried_balance_{closed_key}",
                description=f"Unpaid balance {closed_key}",
                amount_cents=carried,
                date=cycles[current_key].period_start,
                kind=TransactionKind.PURCHASE,
                source="carried_balance",
            )
        )

    current = _assemble_invoice(
        card_id, cycles[current_key], InvoiceStatus.OPEN, buckets[current_key], snapshots.get(current_key)
    )
    future = [
        _assemble_invoice(card_id, cycles[key], InvoiceStatus.FORECAST, buckets[key]) for key in future_keys
    ]

    result = InvoiceBuildResult(
        closed_invoice=closed,
        current_invoice=current,
        future_invoices=future,
        periods=periods,
        purchases=purchases,
        future_commitment=calculate_future_commitment(purchases, today),
        excluded=excluded + out_of_window,
    )

    trail.record(
        "build_invoices",
        {
            "card_id": card_id,
            "as_of_date": today.isoformat(),
            "forecast_months": forecast_months,
            "transactions": len(normalized),
            "excluded": len(result.excluded),
        },
        {
            "closed": _invoice_summary(closed),
            "current": _invoice_summary(current),
            "future": [_invoice_summary(invoice) for invoice in future],
            "purchases": len(purchases),
            "future_commitment_cents": result.future_commitment.total_cents,
        },
    )
    if audit is not None:
        audit.commit(trail)

    logger.debug(
        "Invoices built",
        extra={"card_id": card_id, "closed_total_cents": closed.total_cents, "current_total_cents": current.total_cents},
    )
    return result
