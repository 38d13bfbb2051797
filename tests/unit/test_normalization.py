"""Unit tests for the raw record ingestion boundary"""

from datetime import date

import pytest

from invoice_gateway.domain.audit import AuditTrail
from invoice_gateway.domain.exceptions import ConfigurationError, InvalidTransactionDataError
from invoice_gateway.domain.models import ConnectedAccount, TransactionType
from invoice_gateway.domain.normalization import (
    normalize_account,
    normalize_transaction,
    normalize_transactions,
)


def test_normalize_camel_case_record():
    """Test aggregator camelCase fields map onto the strict record"""
    transaction = normalize_transaction(
        {
            "id": "tx_1",
            "description": " LOJA  ",
            "amount": "123.45",
            "date": "2026-01-05T13:45:00.000Z",
            "type": "DEBIT",
            "cardId": "card_1",
            "installmentNumber": 2,
            "totalInstallments": "3",
            "manualInvoiceMonth": "2026-02",
            "isRefund": "false",
        }
    )

    assert transaction.transaction_id == "tx_1"
    assert transaction.description == "LOJA"
    assert transaction.amount_cents == 12345
    assert transaction.date == date(2026, 1, 5)
    assert transaction.type == TransactionType.EXPENSE
    assert transaction.card_id == "card_1"
    assert transaction.installment_number == 2
    assert transaction.total_installments == 3
    assert transaction.manual_invoice_month == "2026-02"
    assert transaction.is_refund is False
    assert transaction.is_payment is None


def test_normalize_snake_case_and_metadata():
    """Test snake_case keys and nested credit card metadata"""
    transaction = normalize_transaction(
        {
            "transaction_id": "tx_2",
            "amount": 50,
            "date": "2026-01-05",
            "type": "credit",
            "account_id": "acc_1",
            "creditCardMetadata": {"installmentNumber": 1, "totalInstallments": 4, "totalAmount": 200},
        }
    )

    assert transaction.type == TransactionType.INCOME
    assert transaction.account_id == "acc_1"
    assert transaction.owner_id == "acc_1"
    assert transaction.installment_number == 1
    assert transaction.total_installments == 4
    assert transaction.purchase_amount_cents == 20000


def test_missing_optional_fields_are_unset():
    """Test sparse records normalize with defaults instead of failing"""
    trail = AuditTrail()
    transaction = normalize_transaction({"date": "2026-01-05"}, index=7, trail=trail)

    assert transaction.transaction_id == "record-7"
    assert transaction.description == ""
    assert transaction.amount_cents == 0
    assert transaction.type == TransactionType.EXPENSE
    assert transaction.installment_number is None
    assert transaction.ignored is False
    assert [entry.operation for entry in trail.entries] == ["transaction_type_defaulted"]


@pytest.mark.parametrize("raw_date", [None, "", "05/01/2026", "2026-13-40", 20260105])
def test_invalid_date_raises(raw_date):
    """Test an unusable date rejects the single record"""
    with pytest.raises(InvalidTransactionDataError) as exc_info:
        normalize_transaction({"id": "bad", "date": raw_date, "amount": 1})
    assert exc_info.value.reason == "invalid_date"
    assert exc_info.value.transaction_id == "bad"


def test_batch_excludes_bad_records_without_aborting():
    """Test one bad record never aborts the batch"""
    trail = AuditTrail(card_id="all")
    transactions, excluded = normalize_transactions(
        [
            {"id": "ok", "date": "2026-01-05", "amount": 10},
            {"id": "no_date", "amount": 10},
            {"id": "hidden", "date": "2026-01-05", "amount": 10, "ignored": True},
            "not a record",
        ],
        trail=trail,
    )

    assert [tx.transaction_id for tx in transactions] == ["ok"]
    assert [(item.transaction_id, item.reason) for item in excluded] == [
        ("no_date", "invalid_date"),
        ("hidden", "ignored"),
        ("record-3", "invalid_record"),
    ]
    assert sum(1 for entry in trail.entries if entry.operation == "transaction_excluded") == 3


def test_batch_filters_by_card_or_account():
    """Test card filter matches card id or account id"""
    raws = [
        {"id": "a", "date": "2026-01-05", "cardId": "card_1"},
        {"id": "b", "date": "2026-01-05", "accountId": "card_1"},
        {"id": "c", "date": "2026-01-05", "cardId": "card_2"},
        {"id": "d", "date": "bad", "cardId": "card_2"},
    ]

    transactions, excluded = normalize_transactions(raws, card_id="card_1")

    assert [tx.transaction_id for tx in transactions] == ["a", "b"]
    assert excluded == []


def test_normalize_account_prefers_manual_days():
    """Test user-set closing/due days win over the aggregator's"""
    account = normalize_account(
        {
            "id": "card_1",
            "closingDay": 5,
            "dueDay": 15,
            "manualClosingDay": 10,
            "manualDueDay": "20",
            "creditLimit": "5000.00",
            "currentBill": {"totalAmount": 850.75, "dueDate": "2026-01-20", "state": "closed"},
            "bills": [{"id": "b1", "totalAmount": 100, "dueDate": "2025-12-20"}, "junk"],
        }
    )

    assert account.closing_day == 10
    assert account.due_day == 20
    assert account.credit_limit_cents == 500000
    assert account.manual_credit_limit_cents is None
    assert account.current_bill.total_amount_cents == 85075
    assert account.current_bill.due_date == date(2026, 1, 20)
    assert account.current_bill.state == "CLOSED"
    assert [bill.bill_id for bill in account.bills] == ["b1"]


def test_normalize_account_passthrough():
    """Test an already strict account is returned unchanged"""
    account = ConnectedAccount(account_id="card_1", closing_day=10, due_day=20)
    assert normalize_account(account) is account


@pytest.mark.parametrize(
    "card",
    [None, {}, {"closingDay": 10}, {"dueDay": 20}, {"closingDay": 0, "dueDay": 20}, {"closingDay": 10, "dueDay": "x"}],
)
def test_normalize_account_requires_billing_days(card):
    """Test missing closing/due day is a configuration error, never defaulted"""
    with pytest.raises(ConfigurationError):
        normalize_account(card)
