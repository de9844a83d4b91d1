"""
Values -- Immutable, self-validating domain value objects.

Responsibility:
    Provides the value types that flow through the tax engine: the tax and
    service type enumerations, TaxConfiguration and its create/update inputs,
    OrderItemForTax (calculation input) and TaxBreakdown / OrderTotals
    (calculation output).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by engines, stores and services.  Depends only on
    ``order_tax_kernel.domain.validation``.

Invariants enforced:
    - ``0 <= tax_rate <= 100`` on every TaxConfiguration.
    - ``quantity >= 1``, ``unit_price >= 0``, ``modifiers_price >= 0`` on
      every OrderItemForTax.
    - Amounts and rates are Decimal, never float.
    - OrderTotals is frozen; a new calculation produces a new instance.

Failure modes:
    - ValidationError (field + reason) on construction with invalid values.
    - ValueError from the Enum constructor on unknown tax/service types.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from order_tax_kernel.domain.validation import (
    DESCRIPTION_MAX_LENGTH,
    NAME_MAX_LENGTH,
    NAME_MIN_LENGTH,
    REGION_MAX_LENGTH,
    parse_decimal,
    parse_money,
    parse_quantity,
    parse_tax_rate,
    require_non_negative,
    require_quantity,
    require_rate_precision,
    require_tax_rate,
    require_text,
)
from order_tax_kernel.exceptions import ValidationError


class TaxType(str, Enum):
    """Kind of tax.  GST replaced VAT, service tax and sales tax for food service."""

    GST = "GST"

    @property
    def label(self) -> str:
        return _TAX_TYPE_LABELS[self]


class ServiceType(str, Enum):
    """Channel of consumption a configuration applies to."""

    DINE_IN = "DINE_IN"
    TAKEAWAY = "TAKEAWAY"
    DELIVERY = "DELIVERY"
    ALL = "ALL"  # Catch-all, used when no channel-specific default exists

    @property
    def label(self) -> str:
        return _SERVICE_TYPE_LABELS[self]


_TAX_TYPE_LABELS = {
    TaxType.GST: "GST (Goods & Services Tax)",
}

_SERVICE_TYPE_LABELS = {
    ServiceType.DINE_IN: "Dine In",
    ServiceType.TAKEAWAY: "Takeaway",
    ServiceType.DELIVERY: "Delivery",
    ServiceType.ALL: "All Services",
}


def _enum(enum_cls: type[Enum], value: Any, field_name: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(field_name, f"unknown {enum_cls.__name__}", value) from None


def _parse_timestamp(value: Any, field_name: str) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    try:
        # Remote payloads use a trailing "Z"
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(field_name, "must be an ISO-8601 timestamp", value) from None


# ---------------------------------------------------------------------------
# Tax configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TaxConfiguration:
    """
    A named tax policy owned by exactly one organization.

    Contract:
        Read-only to the resolver and calculator.  Created, updated and
        deleted through a TaxConfigurationStore.

    Guarantees:
        - ``tax_rate`` is a Decimal in ``[0, 100]`` (percentage, 5.5 = 5.5%).
        - ``updated_at`` drives the resolver's deterministic tie-break.

    Non-goals:
        - ``applicable_region`` is advisory; the resolver never reads it.
    """

    id: str
    organization_id: str
    name: str
    tax_rate: Decimal
    tax_type: TaxType = TaxType.GST
    service_type: ServiceType = ServiceType.ALL
    is_default: bool = False
    is_active: bool = True
    is_tax_exempt: bool = False
    is_price_inclusive: bool = False
    description: str | None = None
    organization_type: str | None = None
    applicable_region: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValidationError("id", "is required", self.id)
        if not self.organization_id:
            raise ValidationError("organization_id", "is required", self.organization_id)
        object.__setattr__(self, "tax_rate", require_tax_rate(self.tax_rate))
        object.__setattr__(self, "tax_type", _enum(TaxType, self.tax_type, "tax_type"))
        object.__setattr__(
            self, "service_type", _enum(ServiceType, self.service_type, "service_type")
        )

    def to_dict(self) -> dict[str, Any]:
        """camelCase wire shape used by the configuration API."""
        return {
            "id": self.id,
            "organizationId": self.organization_id,
            "name": self.name,
            "description": self.description,
            "organizationType": self.organization_type,
            "taxType": self.tax_type.value,
            "taxRate": str(self.tax_rate),
            "serviceType": self.service_type.value,
            "isDefault": self.is_default,
            "isActive": self.is_active,
            "isTaxExempt": self.is_tax_exempt,
            "isPriceInclusive": self.is_price_inclusive,
            "applicableRegion": self.applicable_region,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> TaxConfiguration:
        """
        Parse a camelCase API payload.

        ``taxRate`` may arrive as a JSON string ("5.00") or number; it goes
        through ``parse_decimal`` instead of being coerced.  A payload
        without ``serviceType`` applies to ALL service types.
        """
        try:
            return cls(
                id=str(payload["id"]),
                organization_id=str(payload["organizationId"]),
                name=payload.get("name") or "",
                tax_rate=parse_decimal("tax_rate", payload["taxRate"]),
                tax_type=payload.get("taxType") or TaxType.GST,
                service_type=payload.get("serviceType") or ServiceType.ALL,
                is_default=bool(payload.get("isDefault", False)),
                is_active=bool(payload.get("isActive", True)),
                is_tax_exempt=bool(payload.get("isTaxExempt", False)),
                is_price_inclusive=bool(payload.get("isPriceInclusive", False)),
                description=payload.get("description"),
                organization_type=payload.get("organizationType"),
                applicable_region=payload.get("applicableRegion"),
                created_at=_parse_timestamp(payload.get("createdAt"), "created_at"),
                updated_at=_parse_timestamp(payload.get("updatedAt"), "updated_at"),
            )
        except KeyError as e:
            raise ValidationError(e.args[0], "is required") from None


@dataclass(frozen=True)
class TaxConfigurationDraft:
    """
    Input for creating a configuration.

    Validated on construction with the same rules the settings form uses:
    name 2..100 chars, description <= 500, region <= 100, rate in [0, 100]
    with at most two decimal places.
    """

    name: str
    tax_rate: Decimal
    tax_type: TaxType = TaxType.GST
    service_type: ServiceType = ServiceType.ALL
    is_default: bool = False
    is_active: bool = True
    is_tax_exempt: bool = False
    is_price_inclusive: bool = False
    description: str | None = None
    organization_type: str | None = None
    applicable_region: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "name",
            require_text(
                self.name, "name",
                min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH,
            ),
        )
        object.__setattr__(
            self,
            "description",
            require_text(
                self.description, "description",
                max_length=DESCRIPTION_MAX_LENGTH, optional=True,
            ),
        )
        object.__setattr__(
            self,
            "applicable_region",
            require_text(
                self.applicable_region, "applicable_region",
                max_length=REGION_MAX_LENGTH, optional=True,
            ),
        )
        object.__setattr__(
            self, "tax_rate", require_rate_precision(require_tax_rate(self.tax_rate))
        )
        object.__setattr__(self, "tax_type", _enum(TaxType, self.tax_type, "tax_type"))
        object.__setattr__(
            self, "service_type", _enum(ServiceType, self.service_type, "service_type")
        )

    @classmethod
    def from_form(cls, form: Mapping[str, Any]) -> TaxConfigurationDraft:
        """Build a draft from settings-form fields (tax rate entered as text)."""
        return cls(
            name=form.get("name"),
            tax_rate=parse_tax_rate(form.get("taxRate")),
            tax_type=form.get("taxType") or TaxType.GST,
            service_type=form.get("serviceType") or ServiceType.ALL,
            is_default=bool(form.get("isDefault", False)),
            is_active=bool(form.get("isActive", True)),
            is_tax_exempt=bool(form.get("isTaxExempt", False)),
            is_price_inclusive=bool(form.get("isPriceInclusive", False)),
            description=form.get("description"),
            organization_type=form.get("organizationType"),
            applicable_region=form.get("applicableRegion"),
        )

    def to_configuration(
        self, configuration_id: str, organization_id: str, now: datetime
    ) -> TaxConfiguration:
        return TaxConfiguration(
            id=configuration_id,
            organization_id=organization_id,
            created_at=now,
            updated_at=now,
            **{f.name: getattr(self, f.name) for f in fields(self)},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "organizationType": self.organization_type,
            "taxType": self.tax_type.value,
            "taxRate": str(self.tax_rate),
            "serviceType": self.service_type.value,
            "isDefault": self.is_default,
            "isActive": self.is_active,
            "isTaxExempt": self.is_tax_exempt,
            "isPriceInclusive": self.is_price_inclusive,
            "applicableRegion": self.applicable_region,
        }


_PATCH_WIRE_NAMES = {
    "name": "name",
    "description": "description",
    "organization_type": "organizationType",
    "tax_type": "taxType",
    "tax_rate": "taxRate",
    "service_type": "serviceType",
    "is_default": "isDefault",
    "is_active": "isActive",
    "is_tax_exempt": "isTaxExempt",
    "is_price_inclusive": "isPriceInclusive",
    "applicable_region": "applicableRegion",
}


@dataclass(frozen=True)
class TaxConfigurationPatch:
    """Partial update.  ``None`` means "leave unchanged"."""

    name: str | None = None
    tax_rate: Decimal | None = None
    tax_type: TaxType | None = None
    service_type: ServiceType | None = None
    is_default: bool | None = None
    is_active: bool | None = None
    is_tax_exempt: bool | None = None
    is_price_inclusive: bool | None = None
    description: str | None = None
    organization_type: str | None = None
    applicable_region: str | None = None

    def __post_init__(self) -> None:
        if self.tax_rate is not None:
            object.__setattr__(
                self, "tax_rate", require_rate_precision(require_tax_rate(self.tax_rate))
            )
        if self.name is not None:
            object.__setattr__(
                self,
                "name",
                require_text(
                    self.name, "name",
                    min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH,
                ),
            )
        if self.description is not None:
            require_text(self.description, "description", max_length=DESCRIPTION_MAX_LENGTH)
        if self.applicable_region is not None:
            require_text(self.applicable_region, "applicable_region", max_length=REGION_MAX_LENGTH)
        if self.tax_type is not None:
            object.__setattr__(self, "tax_type", _enum(TaxType, self.tax_type, "tax_type"))
        if self.service_type is not None:
            object.__setattr__(
                self, "service_type", _enum(ServiceType, self.service_type, "service_type")
            )

    def changes(self) -> dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def apply_to(self, configuration: TaxConfiguration, now: datetime) -> TaxConfiguration:
        """Return a new configuration with the changes applied; the input is untouched."""
        return replace(configuration, updated_at=now, **self.changes())

    def to_dict(self) -> dict[str, Any]:
        wire: dict[str, Any] = {}
        for name, value in self.changes().items():
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, Decimal):
                value = str(value)
            wire[_PATCH_WIRE_NAMES[name]] = value
        return wire


# ---------------------------------------------------------------------------
# Calculation input / output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OrderItemForTax:
    """
    One priced order line.  Not persisted.

    ``modifiers_price`` is added once per line, not multiplied by quantity;
    callers that price modifiers per unit pre-multiply it.  ``unit_price`` is
    whatever price the caller resolved (list or discount); the engine is
    agnostic to discount logic.
    """

    menu_item_id: str
    quantity: int
    unit_price: Decimal
    modifiers_price: Decimal | None = None

    def __post_init__(self) -> None:
        require_quantity(self.quantity)
        object.__setattr__(
            self, "unit_price", require_non_negative(self.unit_price, "unit_price")
        )
        if self.modifiers_price is not None:
            object.__setattr__(
                self,
                "modifiers_price",
                require_non_negative(self.modifiers_price, "modifiers_price"),
            )

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> OrderItemForTax:
        """Parse a camelCase cart line; numeric fields may be text."""
        modifiers = payload.get("modifiersPrice")
        return cls(
            menu_item_id=str(payload.get("menuItemId", "")),
            quantity=parse_quantity(payload.get("quantity")),
            unit_price=parse_money("unit_price", payload.get("unitPrice")),
            modifiers_price=(
                parse_money("modifiers_price", modifiers) if modifiers is not None else None
            ),
        )


@dataclass(frozen=True)
class TaxBreakdown:
    """How the tax portion of an OrderTotals was derived."""

    tax_rate: Decimal
    tax_amount: Decimal
    is_tax_exempt: bool
    is_price_inclusive: bool
    tax_type: TaxType | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "taxType": self.tax_type.value if self.tax_type else None,
            "taxRate": str(self.tax_rate),
            "taxAmount": str(self.tax_amount),
            "isTaxExempt": self.is_tax_exempt,
            "isPriceInclusive": self.is_price_inclusive,
        }


@dataclass(frozen=True)
class OrderTotals:
    """
    The engine's sole output contract.

    Guarantees:
        - Immutable after construction.
        - All amounts carry exactly two decimal places.
    """

    subtotal_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    tax_breakdown: TaxBreakdown
    service_type: ServiceType | None = None
    display_message: str | None = None

    @property
    def has_tax(self) -> bool:
        return self.tax_amount > 0

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "subtotalAmount": str(self.subtotal_amount),
            "taxAmount": str(self.tax_amount),
            "totalAmount": str(self.total_amount),
            "serviceType": self.service_type.value if self.service_type else None,
            "taxBreakdown": self.tax_breakdown.to_dict(),
        }
        if self.display_message:
            payload["displayMessage"] = self.display_message
        return payload


@dataclass(frozen=True)
class TaxPreview:
    """What the settings screen shows for an organization's current setup."""

    has_configuration: bool
    configuration: TaxConfiguration | None = None
    sample_breakdown: OrderTotals | None = None
    message: str | None = None
    sample_items: tuple[OrderItemForTax, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"hasConfiguration": self.has_configuration}
        if self.configuration is not None:
            payload["configuration"] = self.configuration.to_dict()
        if self.sample_breakdown is not None:
            payload["exampleCalculation"] = {
                "subtotal": str(self.sample_breakdown.subtotal_amount),
                "taxAmount": str(self.sample_breakdown.tax_amount),
                "total": str(self.sample_breakdown.total_amount),
                "message": self.sample_breakdown.display_message,
            }
        if self.message:
            payload["message"] = self.message
        return payload
