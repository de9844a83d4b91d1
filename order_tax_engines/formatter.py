"""
ResultFormatter -- display strings for amounts, rates and tax states.

Pure functions.  Total on their input: anything that is not a number formats
as zero instead of raising, because these strings go straight to a screen.
Arithmetic never happens here; amounts are only quantized for display.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from order_tax_engines.price_math import ZERO, round2
from order_tax_kernel.domain.values import (
    OrderTotals,
    ServiceType,
    TaxConfiguration,
    TaxType,
)

DEFAULT_CURRENCY_SYMBOL = "₹"

# Magnitudes with more integer digits than this format as zero
MAX_DISPLAY_DIGITS = 100


@dataclass(frozen=True)
class DisplayInfo:
    """Badge label plus one-line explanation."""

    label: str
    message: str


def _displayable(value: Decimal) -> Decimal:
    if not value.is_finite() or value.adjusted() >= MAX_DISPLAY_DIGITS:
        return ZERO
    return value


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, bool) or value is None:
        return ZERO
    if isinstance(value, Decimal):
        return _displayable(value)
    if isinstance(value, (int, float)):
        value = repr(value)
    if not isinstance(value, str):
        return ZERO
    try:
        parsed = Decimal(value.strip())
    except InvalidOperation:
        return ZERO
    return _displayable(parsed)


def format_currency(amount: Any, symbol: str = DEFAULT_CURRENCY_SYMBOL) -> str:
    """``format_currency(Decimal("316.5"))`` -> ``"₹316.50"``."""
    value = round2(_to_decimal(amount))
    if value < 0:
        return f"-{symbol}{value.copy_negate()}"
    return f"{symbol}{value}"


def format_rate(rate: Any) -> str:
    """``format_rate(Decimal("5.5"))`` -> ``"5.50%"``."""
    return f"{round2(_to_decimal(rate))}%"


def tax_display_info(totals: OrderTotals) -> DisplayInfo:
    breakdown = totals.tax_breakdown
    if breakdown.is_tax_exempt:
        return DisplayInfo("Tax Exempt", "This order is exempt from tax charges")
    if breakdown.is_price_inclusive:
        return DisplayInfo("Tax Inclusive", "Tax is included in the item prices")
    return DisplayInfo("Tax Applied", "Tax calculated and added to order total")


def configuration_status(configuration: TaxConfiguration) -> DisplayInfo:
    """Status shown next to a configuration in the settings list."""
    if not configuration.is_active:
        return DisplayInfo("Inactive", "This tax configuration is not active")
    if configuration.is_tax_exempt:
        return DisplayInfo("Tax Exempt", "Orders are exempt from tax")
    if configuration.is_price_inclusive:
        return DisplayInfo(
            "Tax Inclusive",
            f"{format_rate(configuration.tax_rate)} tax included in prices",
        )
    return DisplayInfo(
        "Active",
        f"{format_rate(configuration.tax_rate)} tax added to orders",
    )


def service_type_label(service_type: ServiceType | str) -> str:
    try:
        return ServiceType(service_type).label
    except ValueError:
        return str(service_type)


def tax_type_label(tax_type: TaxType | str) -> str:
    try:
        return TaxType(tax_type).label
    except ValueError:
        return str(tax_type)
