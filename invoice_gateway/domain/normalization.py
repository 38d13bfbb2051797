"""Ingestion boundary: raw aggregator/manual records -> strict domain records"""

from collections.abc import Mapping
from typing import Any, Iterable, List, Optional, Tuple, Union

from invoice_gateway.domain.audit import AuditTrail
from invoice_gateway.domain.exceptions import ConfigurationError, InvalidTransactionDataError
from invoice_gateway.domain.models import (
    Bill,
    ConnectedAccount,
    ExcludedTransaction,
    Transaction,
    TransactionType,
)
from invoice_gateway.domain.money import to_cents
from invoice_gateway.utils.date_utils import parse_date

RawTransaction = Union[Transaction, Mapping]

TYPE_ALIASES = {
    "expense": TransactionType.EXPENSE,
    "debit": TransactionType.EXPENSE,
    "income": TransactionType.INCOME,
    "credit": TransactionType.INCOME,
}


def _pick(raw: Mapping, *keys: str) -> Any:
    """First non-None value among camelCase/snake_case aliases"""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _coerce_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _coerce_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
        return value.strip().lower() == "true"
    return None


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _raw_owner_ids(raw: Mapping) -> Tuple[Optional[str], Optional[str]]:
    return (
        _optional_str(_pick(raw, "cardId", "card_id")),
        _optional_str(_pick(raw, "accountId", "account_id")),
    )


def normalize_transaction(
    raw: RawTransaction,
    index: int = 0,
    trail: Optional[AuditTrail] = None,
) -> Transaction:
    """
    Build a strict Transaction from a loosely-typed record.

    Missing optional fields are treated as unset. A missing type defaults to
    expense (the cost-inclusive choice) and is reported on the trail.

    Raises:
        InvalidTransactionDataError: the record is not a mapping or its date is
            missing/unparseable
    """
    if isinstance(raw, Transaction):
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidTransactionDataError(f"record-{index}", "invalid_record")

    transaction_id = _optional_str(_pick(raw, "id", "transaction_id", "transactionId")) or f"record-{index}"

    parsed_date = parse_date(raw.get("date"))
    if parsed_date is None:
        raise InvalidTransactionDataError(transaction_id, "invalid_date")

    raw_type = str(raw.get("type") or "").strip().lower()
    transaction_type = TYPE_ALIASES.get(raw_type)
    if transaction_type is None:
        transaction_type = TransactionType.EXPENSE
        if trail is not None:
            trail.record(
                "transaction_type_defaulted",
                {"transaction_id": transaction_id, "raw_type": raw_type},
                {"type": transaction_type.value},
            )

    metadata = raw.get("creditCardMetadata")
    metadata = metadata if isinstance(metadata, Mapping) else {}

    installment_number = _coerce_int(
        _pick(raw, "installmentNumber", "installment_number")
    ) or _coerce_int(metadata.get("installmentNumber"))
    total_installments = _coerce_int(
        _pick(raw, "totalInstallments", "total_installments", "installments")
    ) or _coerce_int(metadata.get("totalInstallments"))

    purchase_amount = _pick(raw, "purchaseAmount", "purchase_amount")
    if purchase_amount is None:
        purchase_amount = metadata.get("totalAmount")

    card_id, account_id = _raw_owner_ids(raw)

    return Transaction(
        transaction_id=transaction_id,
        description=str(raw.get("description") or "").strip(),
        amount_cents=to_cents(raw.get("amount")),
        date=parsed_date,
        type=transaction_type,
        category=str(raw.get("category") or "").strip(),
        account_id=account_id,
        card_id=card_id,
        installment_number=installment_number,
        total_installments=total_installments,
        purchase_amount_cents=to_cents(purchase_amount) if purchase_amount is not None else None,
        manual_invoice_month=_optional_str(_pick(raw, "manualInvoiceMonth", "manual_invoice_month")),
        invoice_month_key=_optional_str(_pick(raw, "invoiceMonthKey", "invoice_month_key")),
        invoice_month_key_manual=_coerce_bool(
            _pick(raw, "invoiceMonthKeyManual", "invoice_month_key_manual")
        )
        is True,
        is_refund=_coerce_bool(_pick(raw, "isRefund", "is_refund")),
        is_payment=_coerce_bool(_pick(raw, "isPayment", "is_payment")),
        ignored=_coerce_bool(raw.get("ignored")) is True,
    )


def _belongs_to_card(raw: RawTransaction, card_id: str) -> bool:
    if card_id == "all":
        return True
    if isinstance(raw, Transaction):
        return card_id in (raw.card_id, raw.account_id)
    if isinstance(raw, Mapping):
        return card_id in _raw_owner_ids(raw)
    return True


def normalize_transactions(
    raws: Iterable[RawTransaction],
    card_id: str = "all",
    trail: Optional[AuditTrail] = None,
) -> Tuple[List[Transaction], List[ExcludedTransaction]]:
    """
    Normalize a batch, keeping only the given card's transactions.

    One bad record never aborts the batch: it is returned in the excluded list
    with its reason (invalid_record, invalid_date, ignored).
    """
    transactions: List[Transaction] = []
    excluded: List[ExcludedTransaction] = []

    for index, raw in enumerate(raws):
        if not _belongs_to_card(raw, card_id):
            continue

        try:
            transaction = normalize_transaction(raw, index, trail)
        except InvalidTransactionDataError as e:
            excluded.append(ExcludedTransaction(transaction_id=e.transaction_id, reason=e.reason))
            continue

        if transaction.ignored:
            excluded.append(
                ExcludedTransaction(transaction_id=transaction.transaction_id, reason="ignored", transaction=transaction)
            )
            continue

        transactions.append(transaction)

    if trail is not None:
        for item in excluded:
            trail.record(
                "transaction_excluded",
                {"transaction_id": item.transaction_id},
                {"reason": item.reason},
            )

    return transactions, excluded


def _normalize_bill(raw: Any) -> Optional[Bill]:
    if isinstance(raw, Bill):
        return raw
    if not isinstance(raw, Mapping):
        return None
    return Bill(
        total_amount_cents=to_cents(_pick(raw, "totalAmount", "total_amount") or 0),
        due_date=parse_date(_pick(raw, "dueDate", "due_date")),
        state=str(_pick(raw, "state", "status") or "OPEN").strip().upper(),
        bill_id=_optional_str(raw.get("id")),
    )


def _optional_cents(raw: Mapping, *keys: str) -> Optional[int]:
    value = _pick(raw, *keys)
    return to_cents(value) if value is not None else None


def normalize_account(card: Union[ConnectedAccount, Mapping, None]) -> ConnectedAccount:
    """
    Build a ConnectedAccount from a card record.

    Manual closing/due days set by the user win over the aggregator's.

    Raises:
        ConfigurationError: no card, or closing day / due day missing or invalid
    """
    if isinstance(card, ConnectedAccount):
        return card
    if not isinstance(card, Mapping):
        raise ConfigurationError("Card configuration is required to build invoices")

    closing_day = _coerce_int(_pick(card, "manualClosingDay", "manual_closing_day")) or _coerce_int(
        _pick(card, "closingDay", "closing_day")
    )
    due_day = _coerce_int(_pick(card, "manualDueDay", "manual_due_day")) or _coerce_int(
        _pick(card, "dueDay", "due_day")
    )

    if closing_day is None or not 1 <= closing_day <= 31:
        raise ConfigurationError(f"Card closing day is missing or invalid: {closing_day!r}")
    if due_day is None or not 1 <= due_day <= 31:
        raise ConfigurationError(f"Card due day is missing or invalid: {due_day!r}")

    raw_bills = card.get("bills")
    bills = [bill for bill in (_normalize_bill(b) for b in raw_bills or []) if bill is not None] if isinstance(
        raw_bills, list
    ) else []

    return ConnectedAccount(
        account_id=_optional_str(card.get("id")) or "",
        closing_day=closing_day,
        due_day=due_day,
        credit_limit_cents=_optional_cents(card, "creditLimit", "credit_limit"),
        manual_credit_limit_cents=_optional_cents(card, "manualCreditLimit", "manual_credit_limit"),
        available_credit_limit_cents=_optional_cents(card, "availableCreditLimit", "available_credit_limit"),
        used_credit_limit_cents=_optional_cents(card, "usedCreditLimit", "used_credit_limit"),
        current_bill=_normalize_bill(_pick(card, "currentBill", "current_bill")),
        bills=bills,
    )
