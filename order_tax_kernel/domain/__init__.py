"""
Pure domain layer.

Immutable value objects, validation helpers and the clock abstraction, with
NO dependencies on:
- ORM (SQLAlchemy)
- Network
- Wall-clock time (except SystemClock)
"""

from order_tax_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from order_tax_kernel.domain.values import (
    OrderItemForTax,
    OrderTotals,
    ServiceType,
    TaxBreakdown,
    TaxConfiguration,
    TaxConfigurationDraft,
    TaxConfigurationPatch,
    TaxPreview,
    TaxType,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "OrderItemForTax",
    "OrderTotals",
    "ServiceType",
    "TaxBreakdown",
    "TaxConfiguration",
    "TaxConfigurationDraft",
    "TaxConfigurationPatch",
    "TaxPreview",
    "TaxType",
]
