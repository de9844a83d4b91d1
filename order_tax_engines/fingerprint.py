"""
order_tax_engines.fingerprint -- Stable hashing of calculation inputs.

Responsibility:
    Produce deterministic fingerprints for (a) cache keys over a list of
    order items and (b) engine trace records.

Invariants enforced:
    - Same items in the same order always fingerprint identically, across
      processes and interpreter runs (no ``hash()``; SHA-256 only).
    - Order-sensitive: [A, B] and [B, A] are different fingerprints.
    - Decimal values are normalized, so 150, 150.0 and 150.00 are the same
      price.  No precision is discarded: 1.005 and 1.00 stay distinct.
    - Item fingerprints hash a JSON array of
      ``[menu_item_id, quantity, unit_price, modifiers_price]`` rows, so no
      menu item id can be mistaken for a field or row separator.
    - Dict keys are sorted before hashing.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Sequence

from order_tax_kernel.domain.values import OrderItemForTax, ServiceType

_FINGERPRINT_LENGTH = 16


def _canonical_decimal(value: Decimal) -> str:
    # Fixed-point text: normalize() would render 100 as 1E+2
    normalized = value.normalize()
    if normalized.is_zero():
        return "0"
    return format(normalized, "f")


def _canonicalize(value: Any) -> str:
    """Stable string form of a value for fingerprinting.

    Unknown types fall back to ``str(value)``.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return _canonical_decimal(value)
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value
    if isinstance(value, OrderItemForTax):
        return _canonicalize_item(value)
    if isinstance(value, dict):
        items = sorted(value.items())
        return "{" + ",".join(f"{k}:{_canonicalize(v)}" for k, v in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    return str(value)


def _item_row(item: OrderItemForTax) -> list[Any]:
    return [
        item.menu_item_id,
        item.quantity,
        _canonical_decimal(item.unit_price),
        None if item.modifiers_price is None else _canonical_decimal(item.modifiers_price),
    ]


def _canonicalize_item(item: OrderItemForTax) -> str:
    return json.dumps(_item_row(item), separators=(",", ":"), ensure_ascii=False)


def _digest(canonical: str) -> str:
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:_FINGERPRINT_LENGTH]


def fingerprint_items(items: Sequence[OrderItemForTax]) -> str:
    """Fingerprint of the JSON array of (menu_item_id, quantity, unit_price, modifiers_price) rows."""
    canonical = json.dumps(
        [_item_row(item) for item in items], separators=(",", ":"), ensure_ascii=False
    )
    return _digest(canonical)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: dict[str, Any],
) -> str:
    """Fingerprint of selected keyword arguments.  Missing fields hash as "null"."""
    parts: list[str] = []
    for field in fingerprint_fields:
        parts.append(f"{field}={_canonicalize(kwargs.get(field))}")
    return _digest("|".join(parts))


@dataclass(frozen=True)
class CacheKey:
    """``(organization_id, service_type, fingerprint(items))``."""

    organization_id: str
    service_type: ServiceType
    items_fingerprint: str

    @classmethod
    def for_items(
        cls,
        organization_id: str,
        service_type: ServiceType,
        items: Sequence[OrderItemForTax],
    ) -> CacheKey:
        return cls(organization_id, ServiceType(service_type), fingerprint_items(items))

    def __str__(self) -> str:
        return f"{self.organization_id}:{self.service_type.value}:{self.items_fingerprint}"
