"""Installment purchase reconstruction from split card transactions"""

import re
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from invoice_gateway.domain.audit import AuditTrail
from invoice_gateway.domain.classification import fold_text
from invoice_gateway.domain.models import (
    FutureCommitment,
    Installment,
    InstallmentStatus,
    Purchase,
    Transaction,
    TransactionType,
)
from invoice_gateway.domain.periods import BillingSchedule
from invoice_gateway.utils.date_utils import add_months, add_months_to_key

# "3/12" but not the day/month of a date such as "05/12/2025"
INSTALLMENT_PATTERN = re.compile(r"(?<![\d/])(\d{1,3})\s*/\s*(\d{1,3})(?![\d/])")
PARCELA_PATTERN = re.compile(r"\bparc(?:ela)?\s*\d+\b")


@dataclass(frozen=True)
class InstallmentInfo:
    current: int
    total: int


@dataclass(frozen=True)
class InstallmentForecast:
    """Installments billed in one cycle"""

    month_key: str
    total_cents: int
    installments: List[Installment]


def extract_installment_info(transaction: Transaction) -> Optional[InstallmentInfo]:
    """
    Installment position of a transaction, or None for single-payment charges.

    Structured aggregator fields win over the description marker.
    """
    number, total = transaction.installment_number, transaction.total_installments

    match = INSTALLMENT_PATTERN.search(transaction.description or "")
    described = None
    if match:
        current, count = int(match.group(1)), int(match.group(2))
        if count > 1 and 1 <= current <= count:
            described = InstallmentInfo(current, count)

    if total is not None and total > 1:
        if number is None:
            number = described.current if described and described.total == total else 1
        if 1 <= number <= total:
            return InstallmentInfo(number, total)
        return None

    return described


def normalize_description(description: str) -> str:
    """Merchant root used to group installments: 'Loja Ávila 2/10' -> 'loja avila'"""
    stripped = INSTALLMENT_PATTERN.sub(" ", description or "")
    folded = PARCELA_PATTERN.sub(" ", fold_text(stripped))
    return " ".join(folded.split())


def split_amount(total_cents: int, count: int) -> List[int]:
    """
    Split a purchase total into `count` installment amounts.

    The last installment absorbs the rounding remainder so the slices always sum
    to the total: 100.00 in 3x -> [33.33, 33.33, 33.34].
    """
    if count <= 0:
        raise ValueError(f"Installment count must be positive, got {count}")

    base_amount = total_cents // count
    remainder = total_cents % count
    return [base_amount + (remainder if i == count - 1 else 0) for i in range(count)]


def _installment_status(transaction: Optional[Transaction], due_date: date, as_of_date: date) -> InstallmentStatus:
    if transaction is None:
        return InstallmentStatus.PENDING
    if transaction.ignored:
        return InstallmentStatus.EXCLUDED
    if as_of_date > due_date:
        return InstallmentStatus.PAID
    return InstallmentStatus.BILLED


def _display_description(description: str) -> str:
    return " ".join(INSTALLMENT_PATTERN.sub(" ", description or "").split())


def _build_purchase(
    purchase_id: str,
    owner: str,
    count: int,
    anchor: str,
    bucket: Dict[int, Transaction],
    schedule: BillingSchedule,
    as_of_date: date,
) -> Purchase:
    first_sequence = min(sequence for sequence, tx in bucket.items() if not tx.ignored)
    first = bucket[first_sequence]

    declared_total = next(
        (abs(tx.purchase_amount_cents) for tx in bucket.values() if tx.purchase_amount_cents),
        None,
    )
    if declared_total is not None:
        planned = split_amount(declared_total, count)
    else:
        # the last slice may carry a remainder, so prefer any other observed slice
        reference = min((seq for seq in bucket if seq != count), default=first_sequence)
        planned = [abs(bucket[reference].amount_cents)] * count

    installments = []
    for sequence in range(1, count + 1):
        cycle = schedule.cycle(add_months_to_key(anchor, sequence - 1))
        transaction = bucket.get(sequence)
        installments.append(
            Installment(
                purchase_id=purchase_id,
                sequence=sequence,
                total_installments=count,
                amount_cents=abs(transaction.amount_cents) if transaction else planned[sequence - 1],
                billing_month=cycle.month_key,
                closing_date=cycle.closing_date,
                due_date=cycle.due_date,
                status=_installment_status(transaction, cycle.due_date, as_of_date),
                transaction_id=transaction.transaction_id if transaction else None,
            )
        )

    return Purchase(
        purchase_id=purchase_id,
        card_id=owner,
        description=_display_description(first.description),
        category=first.category,
        total_cents=declared_total if declared_total is not None else sum(i.amount_cents for i in installments),
        installment_count=count,
        origin_date=add_months(first.date, -(first_sequence - 1)),
        first_billing_month=anchor,
        installments=installments,
    )


def process_transactions_to_installments(
    transactions: Iterable[Transaction],
    schedule: BillingSchedule,
    as_of_date: date,
    trail: Optional[AuditTrail] = None,
) -> List[Purchase]:
    """
    Group installment transactions into purchases and synthesize every slice.

    Grouping key is (card, description root, installment count, cycle of the
    first installment). A repeated installment number inside one key starts a
    separate purchase: two identical purchases are never merged.

    Transactions flagged `ignored` only occupy their installment slot, which is
    reported as EXCLUDED instead of being projected. They are placed after the
    real ones and never form a purchase on their own.

    Args:
        transactions: normalized transactions (any order), ignored ones included
        schedule: billing schedule of the card the transactions belong to
        as_of_date: reference date for installment status

    Returns:
        Purchases ordered by first billing month, then purchase id
    """
    groups: Dict[Tuple[str, str, int, str], List[Dict[int, Transaction]]] = defaultdict(list)

    for transaction in sorted(transactions, key=lambda tx: (tx.ignored, tx.date, tx.transaction_id)):
        if transaction.type != TransactionType.EXPENSE:
            continue
        info = extract_installment_info(transaction)
        if info is None:
            continue

        month_key, _ = schedule.resolve_invoice_month(transaction)
        anchor = add_months_to_key(month_key, -(info.current - 1))
        key = (transaction.owner_id, normalize_description(transaction.description), info.total, anchor)

        buckets = groups[key]
        target = next((bucket for bucket in buckets if info.current not in bucket), None)
        if target is None:
            target = {}
            buckets.append(target)
        target[info.current] = transaction

    purchases = []
    for (owner, root, count, anchor), buckets in groups.items():
        base_id = f"purchase_{owner or 'unknown'}_{root.replace(' ', '_')[:20]}_{count}x_{anchor}"
        index = 0
        for bucket in buckets:
            if all(tx.ignored for tx in bucket.values()):
                continue
            purchase_id = base_id if index == 0 else f"{base_id}_{index + 1}"
            purchases.append(_build_purchase(purchase_id, owner, count, anchor, bucket, schedule, as_of_date))
            index += 1

            if index > 1 and trail is not None:
                trail.record(
                    "installment_group_split",
                    {"purchase_root": root, "installments": count, "anchor_month": anchor},
                    {"purchase_id": purchase_id},
                )

    purchases.sort(key=lambda p: (p.first_billing_month, p.purchase_id))
    return purchases


def calculate_future_commitment(purchases: Iterable[Purchase], as_of_date: date) -> FutureCommitment:
    """Sum of installments whose due date falls after the reference date"""
    by_month: Dict[str, int] = defaultdict(int)
    for purchase in purchases:
        for installment in purchase.installments:
            if installment.status == InstallmentStatus.EXCLUDED:
                continue
            if installment.due_date > as_of_date:
                by_month[installment.billing_month] += installment.amount_cents

    return FutureCommitment(
        total_cents=sum(by_month.values()),
        by_month=dict(sorted(by_month.items())),
    )


def installments_for_month(purchases: Iterable[Purchase], month_key: str) -> List[Installment]:
    installments = [
        installment
        for purchase in purchases
        for installment in purchase.installments
        if installment.billing_month == month_key and installment.status != InstallmentStatus.EXCLUDED
    ]
    return sorted(installments, key=lambda i: (i.purchase_id, i.sequence))


def generate_installment_forecast(
    purchases: Iterable[Purchase],
    start_month: str,
    months_ahead: int = 12,
) -> List[InstallmentForecast]:
    purchases = list(purchases)
    forecasts = []
    for offset in range(months_ahead):
        month_key = add_months_to_key(start_month, offset)
        installments = installments_for_month(purchases, month_key)
        forecasts.append(
            InstallmentForecast(
                month_key=month_key,
                total_cents=sum(i.amount_cents for i in installments),
                installments=installments,
            )
        )
    return forecasts
