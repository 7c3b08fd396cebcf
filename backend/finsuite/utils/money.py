from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Annotated, Any

from pydantic import PlainSerializer

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


def money(value: Any) -> Decimal:
    """Coerce a number, string or None into a 2dp Decimal."""
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            return ZERO
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def non_negative(value: Any) -> Decimal:
    amount = money(value)
    return amount if amount > 0 else ZERO


def percentage(part: Any, whole: Any) -> Decimal:
    """Return part / whole * 100 rounded to 2 places, or 0 when whole is 0."""
    whole_amount = money(whole)
    if whole_amount == 0:
        return ZERO
    return money(money(part) / whole_amount * 100)


# Response field type: Decimal in Python, a JSON number on the wire.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
