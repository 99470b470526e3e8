"""Cart totals under the fixed sales-tax policy."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from retail_pos.config import TAX_RATE
from retail_pos.models import CartLine, TransactionSummary

Q = Decimal("0.01")


def round2(value: Decimal) -> Decimal:
    """Round a money amount to cents, half up."""
    return value.quantize(Q, rounding=ROUND_HALF_UP)


def line_subtotal(quantity: int, unit_price: Decimal) -> Decimal:
    return round2(unit_price * quantity)


def summarize(lines: Iterable[CartLine]) -> TransactionSummary:
    """
    Compute subtotal, tax and total for a set of lines.

    Each figure is rounded on its own: ``total`` is rounded from the unrounded
    ``subtotal + tax`` and is not the sum of the two rounded values.
    """
    subtotal = sum((line.subtotal for line in lines), Decimal("0"))
    tax = subtotal * TAX_RATE
    return TransactionSummary(
        subtotal=round2(subtotal),
        tax=round2(tax),
        total=round2(subtotal + tax),
    )
