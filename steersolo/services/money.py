from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any


def as_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value in (None, ""):
        return Decimal("0")
    return Decimal(str(value))


def round_naira(value: Decimal) -> Decimal:
    return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def to_kobo(amount: Any) -> int:
    return int((as_decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_naira(amount: Any) -> str:
    value = as_decimal(amount)
    if value == value.to_integral_value():
        return f"₦{int(value):,}"
    return f"₦{value:,.2f}"
