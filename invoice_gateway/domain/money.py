"""Integer-cents money arithmetic"""

import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_cents(value: Any) -> int:
    """
    Convert a monetary value to integer cents.

    Rounds half away from zero at the cents boundary. Anything that is not a
    finite number (None, booleans, text, NaN, infinity) is treated as 0 and a
    warning is logged, so one bad amount cannot poison a whole invoice.

    Example:
        Decimal("10.10") -> 1010
        0.1 -> 10 (float converted through its shortest repr, not its binary value)
    """
    if value is None or isinstance(value, bool):
        logger.warning("Non-numeric amount treated as 0", extra={"raw_amount": repr(value)})
        return 0

    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        logger.warning("Non-numeric amount treated as 0", extra={"raw_amount": repr(value)})
        return 0

    if not amount.is_finite():
        logger.warning("Non-finite amount treated as 0", extra={"raw_amount": repr(value)})
        return 0

    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    """Convert integer cents back to a two-decimal Decimal"""
    return Decimal(int(cents)).scaleb(-2).quantize(CENT)


def sum_money(*values: Any) -> Decimal:
    """Sum monetary values in cents space and convert back once"""
    return from_cents(sum(to_cents(value) for value in values))
