"""Late fee and interest on overdue invoice amounts"""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Union

from invoice_gateway.domain.exceptions import ConfigurationError
from invoice_gateway.domain.models import LateCharges
from invoice_gateway.domain.money import to_cents

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400
DAYS_PER_MONTH = Decimal(30)

DateLike = Union[date, datetime]


def _coerce_rate(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class LateChargeRates:
    """
    Rates applied to overdue amounts.

    Defaults follow Brazilian card practice: 2% flat late fee, 1% monthly
    default interest (mora) and 15% monthly revolving interest, both prorated
    per day over a 30-day month.
    """

    late_fee_rate: Decimal = Decimal("0.02")
    mora_monthly_rate: Decimal = Decimal("0.01")
    revolving_monthly_rate: Decimal = Decimal("0.15")

    def __post_init__(self):
        for name in ("late_fee_rate", "mora_monthly_rate", "revolving_monthly_rate"):
            rate = _coerce_rate(getattr(self, name))
            if not rate.is_finite() or rate < 0:
                raise ConfigurationError(f"{name} must be a non-negative number, got {rate}")
            object.__setattr__(self, name, rate)


DEFAULT_RATES = LateChargeRates()

NO_CHARGES = LateCharges(late_fee_cents=0, interest_cents=0, total_charges_cents=0, days_overdue=0)


def _as_naive_datetime(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    return datetime.combine(value, time.min)


def days_overdue(due_date: DateLike, as_of_date: DateLike) -> int:
    """Whole days past due, rounding any partial day up; 0 when not overdue"""
    if not isinstance(due_date, datetime) and not isinstance(as_of_date, datetime):
        return max(0, (as_of_date - due_date).days)

    elapsed = _as_naive_datetime(as_of_date) - _as_naive_datetime(due_date)
    return max(0, math.ceil(elapsed.total_seconds() / SECONDS_PER_DAY))


def _round_cents(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_late_charges(
    amount: Any,
    due_date: DateLike,
    as_of_date: DateLike,
    rates: LateChargeRates = DEFAULT_RATES,
) -> LateCharges:
    """
    Charges owed on `amount` when paid on `as_of_date` instead of `due_date`.

    Each component is computed on integer cents and rounded half up on its own:
        late fee  = amount * late_fee_rate
        mora      = amount * mora_monthly_rate / 30 * days
        revolving = amount * revolving_monthly_rate / 30 * days
        interest  = mora + revolving

    Not overdue (as_of_date <= due_date) or a non-positive amount yields zeros.

    Example:
        1000.00 due 2026-01-01, paid 2026-01-11 (10 days):
        fee 20.00, mora 3.33, revolving 50.00 -> total 73.33
    """
    amount_cents = to_cents(amount)
    days = days_overdue(due_date, as_of_date)

    if days <= 0 or amount_cents <= 0:
        return NO_CHARGES

    base = Decimal(amount_cents)
    late_fee = _round_cents(base * rates.late_fee_rate)
    mora = _round_cents(base * rates.mora_monthly_rate * days / DAYS_PER_MONTH)
    revolving = _round_cents(base * rates.revolving_monthly_rate * days / DAYS_PER_MONTH)
    interest = mora + revolving

    logger.debug(
        "Late charges computed",
        extra={"amount_cents": amount_cents, "days_overdue": days, "total_charges_cents": late_fee + interest},
    )

    return LateCharges(
        late_fee_cents=late_fee,
        interest_cents=interest,
        total_charges_cents=late_fee + interest,
        days_overdue=days,
    )
