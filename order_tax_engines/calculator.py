"""
Tax Calculator - Compute order totals from a resolved configuration.

Supports tax-exclusive pricing (tax added on top), tax-inclusive pricing
(tax extracted from the gross) and exemption.  Pure functions with no I/O:
the configuration is resolved beforehand and passed in.

Usage:
    from decimal import Decimal
    from order_tax_engines.calculator import TaxCalculator
    from order_tax_kernel.domain.values import OrderItemForTax

    calculator = TaxCalculator()
    totals = calculator.compute(
        configuration,   # TaxConfiguration at 5.5%, exclusive
        [OrderItemForTax("paneer-tikka", 2, Decimal("150.00"))],
    )
    print(totals.subtotal_amount)  # 300.00
    print(totals.tax_amount)       # 16.50
    print(totals.total_amount)     # 316.50
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from order_tax_engines.price_math import (
    ZERO,
    extract_inclusive_tax,
    line_amount,
    percent_of,
    round2,
    sum_amounts,
)
from order_tax_engines.tracer import traced_engine
from order_tax_kernel.domain.validation import (
    require_non_negative,
    require_quantity,
    require_tax_rate,
)
from order_tax_kernel.domain.values import (
    OrderItemForTax,
    OrderTotals,
    ServiceType,
    TaxBreakdown,
    TaxConfiguration,
)
from order_tax_kernel.logging_config import get_logger

logger = get_logger("engines.calculator")

ABSENT_CONFIGURATION_MESSAGE = "Tax will be calculated at checkout"


@dataclass(frozen=True)
class _TaxSplit:
    subtotal: Decimal
    tax: Decimal
    total: Decimal


class TaxCalculator:
    """
    Compute {subtotal, tax, total, breakdown} for a list of order items.

    Pure functions - no I/O, no clock, never suspends.

    Handles:
        - No applicable configuration (subtotal-only with a display message)
        - Tax-exempt configurations (zero tax regardless of rate)
        - Tax-inclusive (reverse) calculation
        - Tax-exclusive calculation
    """

    def __init__(self, absent_message: str = ABSENT_CONFIGURATION_MESSAGE):
        self._absent_message = absent_message

    @traced_engine("tax_calculator", "1.0", fingerprint_fields=("items",))
    def compute(
        self,
        configuration: TaxConfiguration | None,
        items: Sequence[OrderItemForTax],
        service_type: ServiceType | None = None,
    ) -> OrderTotals:
        """
        Calculate totals for ``items`` under ``configuration``.

        Args:
            configuration: Resolved configuration, or None when none applies.
            items: Order lines.  Each line is rounded once before summation.
            service_type: Echoed on the result; defaults to the
                configuration's service type.

        Returns:
            A new, immutable OrderTotals.

        Raises:
            ValidationError: If an item has quantity < 1, a negative price,
                a quantity or price above the accepted maximum, or the
                configuration's rate is outside [0, 100].
        """
        t0 = time.monotonic()
        self._validate(configuration, items)

        raw_subtotal = sum_amounts(
            line_amount(item.unit_price, item.quantity, item.modifiers_price)
            for item in items
        )
        logger.info("tax_calculation_started", extra={
            "item_count": len(items),
            "raw_subtotal": str(raw_subtotal),
            "configuration_id": configuration.id if configuration else None,
        })

        if configuration is None:
            totals = self._without_configuration(raw_subtotal, service_type)
        else:
            if configuration.is_tax_exempt:
                split = _TaxSplit(raw_subtotal, ZERO, raw_subtotal)
            elif configuration.is_price_inclusive:
                split = self._calculate_inclusive(raw_subtotal, configuration.tax_rate)
            else:
                split = self._calculate_exclusive(raw_subtotal, configuration.tax_rate)

            totals = OrderTotals(
                subtotal_amount=split.subtotal,
                tax_amount=split.tax,
                total_amount=split.total,
                tax_breakdown=TaxBreakdown(
                    tax_rate=configuration.tax_rate,
                    tax_amount=split.tax,
                    is_tax_exempt=bool(configuration.is_tax_exempt),
                    is_price_inclusive=bool(configuration.is_price_inclusive),
                    tax_type=configuration.tax_type,
                ),
                service_type=service_type or configuration.service_type,
            )

        duration_ms = round((time.monotonic() - t0) * 1000, 2)
        logger.info("tax_calculation_completed", extra={
            "subtotal_amount": str(totals.subtotal_amount),
            "tax_amount": str(totals.tax_amount),
            "total_amount": str(totals.total_amount),
            "is_tax_exempt": totals.tax_breakdown.is_tax_exempt,
            "is_price_inclusive": totals.tax_breakdown.is_price_inclusive,
            "duration_ms": duration_ms,
        })
        return totals

    def _validate(
        self,
        configuration: TaxConfiguration | None,
        items: Sequence[OrderItemForTax],
    ) -> None:
        # Value objects validate on construction; the engine re-checks at its boundary.
        for index, item in enumerate(items):
            require_quantity(item.quantity, f"items[{index}].quantity")
            require_non_negative(item.unit_price, f"items[{index}].unit_price")
            if item.modifiers_price is not None:
                require_non_negative(item.modifiers_price, f"items[{index}].modifiers_price")
        if configuration is not None:
            require_tax_rate(configuration.tax_rate, "configuration.tax_rate")

    def _without_configuration(
        self, raw_subtotal: Decimal, service_type: ServiceType | None
    ) -> OrderTotals:
        logger.debug("tax_calculation_no_configuration", extra={})
        return OrderTotals(
            subtotal_amount=raw_subtotal,
            tax_amount=ZERO,
            total_amount=raw_subtotal,
            tax_breakdown=TaxBreakdown(
                tax_rate=ZERO,
                tax_amount=ZERO,
                is_tax_exempt=True,
                is_price_inclusive=False,
            ),
            service_type=service_type,
            display_message=self._absent_message,
        )

    def _calculate_exclusive(self, raw_subtotal: Decimal, rate: Decimal) -> _TaxSplit:
        """Tax added on top of the subtotal."""
        tax = percent_of(raw_subtotal, rate)
        return _TaxSplit(raw_subtotal, tax, round2(raw_subtotal + tax))

    def _calculate_inclusive(self, raw_subtotal: Decimal, rate: Decimal) -> _TaxSplit:
        """Tax extracted from a gross subtotal; the total never changes."""
        tax = extract_inclusive_tax(raw_subtotal, rate)
        return _TaxSplit(round2(raw_subtotal - tax), tax, raw_subtotal)


def compute_totals(
    configuration: TaxConfiguration | None,
    items: Sequence[OrderItemForTax],
    service_type: ServiceType | None = None,
) -> OrderTotals:
    """Convenience wrapper around a default TaxCalculator."""
    return TaxCalculator().compute(configuration, items, service_type)
