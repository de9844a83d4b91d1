"""
Module: order_tax_engines
Responsibility:
    Package entrypoint re-exporting the calculation layer: price arithmetic,
    configuration resolution, the tax calculator, the calculation cache and
    display formatting.

Architecture position:
    Engines -- calculation layer.  May import order_tax_kernel only.
    MUST NOT import order_tax_services or order_tax_config.

Invariants enforced:
    - Decimal-only arithmetic (see ``price_math``).
    - Engines never read the wall clock directly; the cache takes a Clock.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from order_tax_engines import TaxCalculator, TaxConfigurationResolver
    from order_tax_engines import CalculationCache, CacheKey
    from order_tax_engines import format_currency, format_rate
"""

from order_tax_kernel.logging_config import get_logger

logger = get_logger("engines")

from order_tax_engines.cache import (
    CacheEntry,
    CalculationCache,
    EntryState,
)
from order_tax_engines.calculator import (
    ABSENT_CONFIGURATION_MESSAGE,
    TaxCalculator,
    compute_totals,
)
from order_tax_engines.fingerprint import (
    CacheKey,
    compute_input_fingerprint,
    fingerprint_items,
)
from order_tax_engines.formatter import (
    DisplayInfo,
    configuration_status,
    format_currency,
    format_rate,
    service_type_label,
    tax_display_info,
    tax_type_label,
)
from order_tax_engines.price_math import (
    CENT,
    ZERO,
    extract_inclusive_tax,
    line_amount,
    percent_of,
    round2,
    sum_amounts,
)
from order_tax_engines.resolver import (
    ConfigurationSource,
    TaxConfigurationResolver,
    select_configuration,
)
from order_tax_engines.tracer import traced_engine

__all__ = [
    "ABSENT_CONFIGURATION_MESSAGE",
    "CENT",
    "ZERO",
    "CacheEntry",
    "CacheKey",
    "CalculationCache",
    "ConfigurationSource",
    "DisplayInfo",
    "EntryState",
    "TaxCalculator",
    "TaxConfigurationResolver",
    "compute_input_fingerprint",
    "compute_totals",
    "configuration_status",
    "extract_inclusive_tax",
    "fingerprint_items",
    "format_currency",
    "format_rate",
    "line_amount",
    "percent_of",
    "round2",
    "select_configuration",
    "service_type_label",
    "sum_amounts",
    "tax_display_info",
    "tax_type_label",
    "traced_engine",
]
