"""
Engine settings schema.

Frozen dataclasses the loader parses YAML into.  No I/O here.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any

from order_tax_kernel.domain.values import ServiceType, TaxConfigurationDraft, TaxType


@dataclass(frozen=True)
class EngineSettings:
    """Runtime knobs of the tax engine.  Defaults match the bundled engine.yaml."""

    cache_ttl_seconds: float = 30.0
    cache_max_entries: int = 1024
    resolve_timeout_seconds: float = 5.0
    currency_code: str = "INR"
    currency_symbol: str = "₹"
    absent_configuration_message: str = "Tax will be calculated at checkout"
    store_base_url: str | None = None
    store_timeout_seconds: float = 10.0
    sample_item_price: Decimal = Decimal("100.00")

    def __post_init__(self) -> None:
        if self.cache_ttl_seconds <= 0:
            raise ValueError(f"cache_ttl_seconds must be positive, got {self.cache_ttl_seconds}")
        if self.cache_max_entries < 1:
            raise ValueError(f"cache_max_entries must be >= 1, got {self.cache_max_entries}")
        if self.resolve_timeout_seconds <= 0:
            raise ValueError(
                f"resolve_timeout_seconds must be positive, got {self.resolve_timeout_seconds}"
            )
        if self.store_timeout_seconds <= 0:
            raise ValueError(
                f"store_timeout_seconds must be positive, got {self.store_timeout_seconds}"
            )
        if self.sample_item_price < 0:
            raise ValueError(f"sample_item_price cannot be negative, got {self.sample_item_price}")
        if not self.currency_code:
            raise ValueError("currency_code is required")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class OrganizationDefault:
    """Suggested starting configuration for one (organization type, service type)."""

    organization_type: str
    service_type: ServiceType
    name: str
    tax_rate: Decimal
    is_default: bool
    tax_type: TaxType = TaxType.GST
    description: str | None = None

    def to_draft(self) -> TaxConfigurationDraft:
        return TaxConfigurationDraft(
            name=self.name,
            tax_rate=self.tax_rate,
            tax_type=self.tax_type,
            service_type=self.service_type,
            is_default=self.is_default,
            description=self.description,
            organization_type=self.organization_type,
        )
