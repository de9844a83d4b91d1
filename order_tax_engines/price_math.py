"""
PriceMath -- decimal-safe arithmetic primitives for order pricing.

Responsibility:
    Rounding, line multiplication, summation, percentage and inclusive-tax
    extraction.  Every other engine delegates arithmetic here.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - ``round2`` is the ONLY sanctioned rounding function for amounts:
      ROUND_HALF_UP to two decimal places.
    - Line amounts are rounded once, before summation, so many lines never
      accumulate rounding drift.  Sums of rounded terms are exact.
    - Decimal-only arithmetic; floats are refused by the value objects
      before they ever reach this module.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Iterable

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

# Enough significant digits for the inclusive-pricing division to be exact
# to well beyond the cent before round2 is applied.
_PRECISION = 34


def round2(value: Decimal) -> Decimal:
    """Round half up to two decimal places (10.555 -> 10.56, 10.554 -> 10.55)."""
    with localcontext() as ctx:
        # quantize needs a digit for every integer place plus the cents
        ctx.prec = max(_PRECISION, value.adjusted() + 3)
        return value.quantize(CENT, rounding=ROUND_HALF_UP)


def line_amount(
    unit_price: Decimal,
    quantity: int,
    modifiers_price: Decimal | None = None,
) -> Decimal:
    """``round2(unit_price * quantity + modifiers_price)``; modifiers are per line."""
    return round2(unit_price * quantity + (modifiers_price or ZERO))


def sum_amounts(amounts: Iterable[Decimal]) -> Decimal:
    """Exact sum of already-rounded amounts, always two decimal places."""
    total = ZERO
    for amount in amounts:
        total += amount
    return round2(total)


def percent_of(amount: Decimal, rate_percent: Decimal) -> Decimal:
    """Tax on top of ``amount`` at ``rate_percent`` (5.5 means 5.5%), rounded."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return round2(amount * rate_percent / HUNDRED)


def extract_inclusive_tax(gross: Decimal, rate_percent: Decimal) -> Decimal:
    """
    Tax contained in a tax-inclusive ``gross`` amount.

    ``round2(gross - gross / (1 + rate/100))``.  At rate 18% a gross of
    118.00 contains 18.00 of tax.
    """
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        net = gross / (1 + rate_percent / HUNDRED)
        return round2(gross - net)
