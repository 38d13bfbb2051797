"""Unit tests for billing cycle boundaries"""

from datetime import date

import pytest

from invoice_gateway.domain.business_days import BrazilianHolidayCalendar
from invoice_gateway.domain.exceptions import ConfigurationError
from invoice_gateway.domain.models import Transaction, TransactionType
from invoice_gateway.domain.periods import BillingSchedule, invoice_month_key


def _tx(day: date, **overrides) -> Transaction:
    fields = dict(
        transaction_id="tx",
        description="COMPRA",
        amount_cents=1000,
        date=day,
        type=TransactionType.EXPENSE,
    )
    fields.update(overrides)
    return Transaction(**fields)


@pytest.mark.parametrize("closing_day,due_day", [(None, 20), (10, None), (0, 20), (32, 20), (True, 20), ("10", 20)])
def test_invalid_days_raise_configuration_error(closing_day, due_day):
    """Test billing cycle cannot be defined without valid closing/due days"""
    with pytest.raises(ConfigurationError):
        BillingSchedule(closing_day, due_day)


def test_closing_date_adjusted_backward():
    """Test closing on Saturday Jan 10 2026 becomes Friday Jan 9"""
    schedule = BillingSchedule(10, 20)
    assert schedule.closing_date(2026, 1) == date(2026, 1, 9)
    assert schedule.closing_date(2026, 2) == date(2026, 2, 10)


def test_closing_day_clamped_to_month_length():
    """Test closing day 31 falls on the last day of short months"""
    schedule = BillingSchedule(31, 10)
    assert schedule.closing_date(2026, 3) == date(2026, 3, 31)
    # Feb 28 2026 is a Saturday
    assert schedule.closing_date(2026, 2) == date(2026, 2, 27)


def test_due_date_same_month_when_due_after_closing():
    """Test due day after closing day is due in the closing month"""
    schedule = BillingSchedule(10, 20)
    assert schedule.due_date(2026, 1) == date(2026, 1, 20)


def test_due_date_next_month_when_due_before_closing():
    """Test due day before closing day is due in the following month"""
    schedule = BillingSchedule(25, 5)
    assert schedule.due_date(2026, 1) == date(2026, 2, 5)


def test_due_date_holiday_rolls_forward():
    """Test due May 1 2026 (holiday, Friday) becomes Monday May 4"""
    schedule = BillingSchedule(20, 1, BrazilianHolidayCalendar())
    assert schedule.due_date(2026, 4) == date(2026, 5, 4)


def test_cycle_window_starts_after_previous_closing():
    """Test cycle period starts the day after the previous adjusted closing"""
    schedule = BillingSchedule(10, 20)
    cycle = schedule.cycle("2026-02")

    assert cycle.period_start == date(2026, 1, 10)
    assert cycle.closing_date == date(2026, 2, 10)
    assert cycle.due_date == date(2026, 2, 20)


def test_transaction_on_closing_day_belongs_to_closing_cycle():
    """Test window is exclusive of the previous closing and inclusive of its own"""
    schedule = BillingSchedule(10, 20)

    assert schedule.cycle_key_for_date(date(2026, 2, 10)) == "2026-02"
    assert schedule.cycle_key_for_date(date(2026, 2, 11)) == "2026-03"
    # adjusted closing Jan 9: the nominal closing day already falls in February's cycle
    assert schedule.cycle_key_for_date(date(2026, 1, 9)) == "2026-01"
    assert schedule.cycle_key_for_date(date(2026, 1, 10)) == "2026-02"


def test_closing_on_first_rolling_into_previous_month():
    """Test a closing day of 1 adjusted back into the previous month"""
    schedule = BillingSchedule(1, 10)
    # Feb 1 2026 is a Sunday -> closes Friday Jan 30
    assert schedule.closing_date(2026, 2) == date(2026, 1, 30)
    assert schedule.cycle_key_for_date(date(2026, 1, 30)) == "2026-02"
    assert schedule.cycle_key_for_date(date(2026, 1, 31)) == "2026-03"


def test_manual_invoice_month_wins():
    """Test manual invoice month overrides date-based bucketing"""
    schedule = BillingSchedule(10, 20)
    transaction = _tx(date(2026, 1, 20), manual_invoice_month="2026-01")

    assert schedule.resolve_invoice_month(transaction) == ("2026-01", True)


def test_invoice_month_key_needs_manual_flag():
    """Test invoice_month_key only overrides when flagged manual"""
    schedule = BillingSchedule(10, 20)

    unflagged = _tx(date(2026, 1, 20), invoice_month_key="2026-05")
    flagged = _tx(date(2026, 1, 20), invoice_month_key="2026-05", invoice_month_key_manual=True)

    assert schedule.resolve_invoice_month(unflagged) == ("2026-02", False)
    assert schedule.resolve_invoice_month(flagged) == ("2026-05", True)


def test_malformed_override_is_ignored():
    """Test an unparseable override falls back to the transaction date"""
    schedule = BillingSchedule(10, 20)
    transaction = _tx(date(2026, 1, 20), manual_invoice_month="janeiro")

    assert schedule.resolve_invoice_month(transaction) == ("2026-02", False)


def test_periods_around_reference_date():
    """Test closed/current/next cycles for closing 10, due 20, today Jan 15 2026"""
    periods = BillingSchedule(10, 20).periods(date(2026, 1, 15))

    assert periods.last_month_key == "2026-01"
    assert periods.current_month_key == "2026-02"
    assert periods.next_month_key == "2026-03"
    assert periods.before_last_closing_date == date(2025, 12, 10)
    assert periods.last_closing_date == date(2026, 1, 9)
    assert periods.current_closing_date == date(2026, 2, 10)
    assert periods.last_period_start == date(2025, 12, 11)
    assert periods.current_period_start == date(2026, 1, 10)
    assert periods.last_due_date == date(2026, 1, 20)
    assert periods.current_due_date == date(2026, 2, 20)


def test_today_on_closing_date_is_still_current():
    """Test the cycle stays open through its closing day"""
    periods = BillingSchedule(10, 20).periods(date(2026, 2, 10))
    assert periods.current_month_key == "2026-02"


def test_invoice_month_key_helper():
    """Test standalone month-key helper"""
    assert invoice_month_key(date(2026, 1, 7), 10) == "2026-01"
    assert invoice_month_key(date(2026, 1, 12), 10) == "2026-02"
