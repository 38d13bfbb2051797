"""Purchase / bill payment / refund classification rules"""

import re
import unicodedata
from dataclasses import dataclass
from functools import lru_cache
from typing import FrozenSet, Iterable, Optional

from invoice_gateway.domain.audit import AuditTrail
from invoice_gateway.domain.exceptions import ClassificationAmbiguous
from invoice_gateway.domain.models import Transaction, TransactionKind, TransactionType

TOKEN_PATTERN = re.compile(r"[a-z0-9]+")


@dataclass(frozen=True)
class ClassificationRules:
    """
    Matcher strategy for payment and refund detection.

    A bill payment needs an explicit phrase, a payment category, or BOTH a
    payment token and an invoice token. A single payment-like token is never
    enough ("PGTO LOJA XYZ" is a purchase at a store).
    """

    payment_phrases: FrozenSet[str]
    payment_tokens: FrozenSet[str]
    invoice_tokens: FrozenSet[str]
    payment_categories: FrozenSet[str]
    payment_reversal_keywords: FrozenSet[str]
    refund_keywords: FrozenSet[str]
    refund_categories: FrozenSet[str]


DEFAULT_RULES = ClassificationRules(
    payment_phrases=frozenset(
        {
            "pagamento de fatura",
            "pagamento fatura",
            "pagamento recebido",
            "pagto fatura",
            "pgto fatura",
            "pag fatura",
            "credit card payment",
            "invoice payment",
            "bill payment",
            "payment received",
        }
    ),
    payment_tokens=frozenset({"pagamento", "pagto", "pgto", "pag", "payment", "pymt"}),
    invoice_tokens=frozenset({"fatura", "invoice", "bill", "statement"}),
    payment_categories=frozenset(
        {
            "credit card payment",
            "pagamento de cartao",
            "pagamento de cartao de credito",
            "pagamento de fatura",
        }
    ),
    payment_reversal_keywords=frozenset({"estorno", "cancelamento", "cancelado", "reversal"}),
    refund_keywords=frozenset(
        {
            "estorno",
            "reembolso",
            "devolucao",
            "cancelamento",
            "cancelado",
            "refund",
            "chargeback",
            "cashback",
        }
    ),
    refund_categories=frozenset({"reembolso", "refund", "refunds", "estorno"}),
)


@lru_cache(maxsize=4096)
def fold_text(value: str) -> str:
    """Lowercase, strip accents and punctuation: 'Devolução!' -> 'devolucao'"""
    decomposed = unicodedata.normalize("NFKD", value or "")
    ascii_only = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(TOKEN_PATTERN.findall(ascii_only.lower()))


def _contains_any(folded: str, keywords: Iterable[str]) -> bool:
    padded = f" {folded} "
    return any(f" {fold_text(keyword)} " in padded for keyword in keywords)


def is_bill_payment(
    description: Optional[str],
    category: Optional[str] = None,
    rules: ClassificationRules = DEFAULT_RULES,
) -> bool:
    """True when the description/category describe paying down a card invoice"""
    text = fold_text(description or "")
    folded_category = fold_text(category or "")

    # "Estorno de pagamento" reverses a payment, it does not settle an invoice
    if _contains_any(text, rules.payment_reversal_keywords):
        return False

    if folded_category and folded_category in {fold_text(c) for c in rules.payment_categories}:
        return True

    if _contains_any(text, rules.payment_phrases):
        return True

    tokens = set(text.split())
    return bool(tokens & rules.payment_tokens) and bool(tokens & rules.invoice_tokens)


def is_refund(transaction: Transaction, rules: ClassificationRules = DEFAULT_RULES) -> bool:
    """
    True only for income-type credits returned to the cardholder.

    An expense is never a refund, whatever its wording: "ESTORNO DE TAXA ADM"
    charged as an expense is still a cost on the invoice.
    """
    if transaction.type != TransactionType.INCOME:
        return False
    if transaction.is_payment or is_bill_payment(transaction.description, transaction.category, rules):
        return False
    if transaction.is_refund is not None:
        return transaction.is_refund

    folded_category = fold_text(transaction.category)
    if folded_category and folded_category in {fold_text(c) for c in rules.refund_categories}:
        return True
    return _contains_any(fold_text(transaction.description), rules.refund_keywords) or _contains_any(
        folded_category, rules.refund_keywords
    )


def classify_transaction(transaction: Transaction, rules: ClassificationRules = DEFAULT_RULES) -> TransactionKind:
    """
    Classify a transaction for invoice totals.

    Raises:
        ClassificationAmbiguous: income with no payment/refund signal, or an
            expense explicitly flagged as a refund
    """
    if transaction.is_payment is not None:
        if transaction.is_payment:
            return TransactionKind.PAYMENT
    elif is_bill_payment(transaction.description, transaction.category, rules):
        return TransactionKind.PAYMENT

    if transaction.type == TransactionType.EXPENSE:
        if transaction.is_refund:
            raise ClassificationAmbiguous(transaction.transaction_id, "expense flagged as refund")
        return TransactionKind.PURCHASE

    if is_refund(transaction, rules):
        return TransactionKind.REFUND

    raise ClassificationAmbiguous(transaction.transaction_id, "income without payment or refund signal")


def classify_or_default(
    transaction: Transaction,
    rules: ClassificationRules = DEFAULT_RULES,
    trail: Optional[AuditTrail] = None,
) -> TransactionKind:
    """Classify, falling back to the conservative default on ambiguity"""
    try:
        return classify_transaction(transaction, rules)
    except ClassificationAmbiguous as e:
        if trail is not None:
            trail.record(
                "classification_ambiguous",
                {"transaction_id": e.transaction_id, "reason": e.reason},
                {"kind": e.default_kind},
            )
        return TransactionKind(e.default_kind)
