"""
Money helpers. All amounts are Decimal and rounded to the configured minor unit.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Tuple, Union

from app.core.config import settings

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() avoids binary float artifacts (15.5 -> 15.5, not 15.4999...)
    return Decimal(str(value))


def round_money(value: Number, quantum: Optional[Decimal] = None) -> Decimal:
    """Round to the currency minor unit using commercial rounding (ROUND_HALF_UP)."""
    quantum = quantum if quantum is not None else settings.MONEY_QUANTUM
    return to_decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)


def sum_money(values: Iterable[Number], quantum: Optional[Decimal] = None) -> Decimal:
    total = sum((to_decimal(v) for v in values), Decimal("0"))
    return round_money(total, quantum)


def format_money(value: Number, currency: Optional[str] = None) -> str:
    currency = currency or settings.CURRENCY
    return f"{to_decimal(value):.2f} {currency}"


LINE_QUANTUM = Decimal("0.01")


def line_total(unit_price: Number, quantity: int) -> Decimal:
    """Line amount, rounded to cents before any document-level rounding."""
    return round_money(to_decimal(unit_price) * quantity, LINE_QUANTUM)


def document_total(lines: Iterable[Tuple[Number, int]]) -> Decimal:
    """Sum of (unit_price, quantity) lines, each rounded with `line_total`, then rounded to the quantum.

    Admission checks and issued invoices both use this, so the amount that was
    admitted is the amount that gets invoiced.
    """
    return sum_money(line_total(price, quantity) for price, quantity in lines)
