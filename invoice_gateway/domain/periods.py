"""Billing cycle boundaries for a card"""

from datetime import date, timedelta
from typing import Optional, Tuple

from invoice_gateway.domain.business_days import (
    HolidayCalendar,
    adjust_closing_date,
    adjust_due_date,
)
from invoice_gateway.domain.exceptions import ConfigurationError
from invoice_gateway.domain.models import BillingCycle, ConnectedAccount, InvoicePeriods, Transaction
from invoice_gateway.utils.date_utils import (
    add_months_to_key,
    clamped_date,
    parse_month_key,
    shift_month,
)


class BillingSchedule:
    """
    Closing and due dates of every cycle of one card.

    A cycle is keyed by the YYYY-MM of its closing date and covers the window
    (previous adjusted closing, this adjusted closing]: a transaction dated on the
    closing day belongs to the cycle closing that day.
    """

    def __init__(self, closing_day: int, due_day: int, calendar: Optional[HolidayCalendar] = None):
        for name, value in (("closing_day", closing_day), ("due_day", due_day)):
            if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 31:
                raise ConfigurationError(f"{name} must be an integer between 1 and 31, got {value!r}")
        self.closing_day = closing_day
        self.due_day = due_day
        self.calendar = calendar

    @classmethod
    def from_account(cls, account: ConnectedAccount, calendar: Optional[HolidayCalendar] = None) -> "BillingSchedule":
        return cls(account.closing_day, account.due_day, calendar)

    def closing_date(self, year: int, month: int) -> date:
        """Adjusted closing date of the cycle closing in (year, month)"""
        return adjust_closing_date(clamped_date(year, month, self.closing_day), self.calendar)

    def due_date(self, year: int, month: int) -> date:
        """
        Adjusted due date of the cycle closing in (year, month).

        Due in the closing month when due_day > closing_day, else in the following month.
        """
        if self.due_day <= self.closing_day:
            year, month = shift_month(year, month, 1)
        return adjust_due_date(clamped_date(year, month, self.due_day), self.calendar)

    def cycle(self, month_key: str) -> BillingCycle:
        parsed = parse_month_key(month_key)
        if parsed is None:
            raise ValueError(f"Invalid month key: {month_key!r}")
        year, month = parsed
        previous_year, previous_month = shift_month(year, month, -1)
        return BillingCycle(
            month_key=month_key,
            period_start=self.closing_date(previous_year, previous_month) + timedelta(days=1),
            closing_date=self.closing_date(year, month),
            due_date=self.due_date(year, month),
        )

    def cycle_key_for_date(self, day: date) -> str:
        """Month key of the cycle whose window contains `day`"""
        year, month = day.year, day.month
        # closing on the 1st can roll back into the previous month
        while day > self.closing_date(year, month):
            year, month = shift_month(year, month, 1)
        return f"{year:04d}-{month:02d}"

    def resolve_invoice_month(self, transaction: Transaction) -> Tuple[str, bool]:
        """
        Cycle a transaction belongs to, and whether a manual override decided it.

        Precedence: manual_invoice_month, then invoice_month_key (only when flagged
        manual), then date-based bucketing. Malformed override keys are skipped.
        """
        if parse_month_key(transaction.manual_invoice_month) is not None:
            return transaction.manual_invoice_month.strip(), True
        if transaction.invoice_month_key_manual and parse_month_key(transaction.invoice_month_key) is not None:
            return transaction.invoice_month_key.strip(), True
        return self.cycle_key_for_date(transaction.date), False

    def periods(self, as_of_date: date) -> InvoicePeriods:
        """Closed (last), current and next cycles relative to the reference date"""
        current_key = self.cycle_key_for_date(as_of_date)
        before_last = self.cycle(add_months_to_key(current_key, -2))
        last = self.cycle(add_months_to_key(current_key, -1))
        current = self.cycle(current_key)
        upcoming = self.cycle(add_months_to_key(current_key, 1))

        return InvoicePeriods(
            closing_day=self.closing_day,
            due_day=self.due_day,
            before_last_closing_date=before_last.closing_date,
            last_closing_date=last.closing_date,
            current_closing_date=current.closing_date,
            next_closing_date=upcoming.closing_date,
            last_period_start=last.period_start,
            current_period_start=current.period_start,
            next_period_start=upcoming.period_start,
            last_due_date=last.due_date,
            current_due_date=current.due_date,
            next_due_date=upcoming.due_date,
            last_month_key=last.month_key,
            current_month_key=current.month_key,
            next_month_key=upcoming.month_key,
        )


def invoice_month_key(
    transaction_date: date,
    closing_day: int,
    calendar: Optional[HolidayCalendar] = None,
) -> str:
    """Month key of the invoice a purchase on `transaction_date` lands in"""
    return BillingSchedule(closing_day, closing_day, calendar).cycle_key_for_date(transaction_date)
