"""
Configuration Loader (``order_tax_config.loader``).

Responsibility
--------------
Loads YAML files and parses them into the frozen dataclasses of
``order_tax_config.schema``.  Runtime callers go through
``order_tax_config.get_engine_settings()``; this module is the tooling
underneath.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; unknown keys are rejected rather than ignored.
* Numbers that become money or rates are parsed into ``Decimal`` from
  their text form, never through float arithmetic.
* ``compute_checksum`` is deterministic for identical settings.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid value  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping

import yaml

from order_tax_config.schema import EngineSettings, OrganizationDefault
from order_tax_kernel.domain.values import ServiceType, TaxType

ENV_PREFIX = "ORDER_TAX_"

_FLOAT_FIELDS = {"cache_ttl_seconds", "resolve_timeout_seconds", "store_timeout_seconds"}
_INT_FIELDS = {"cache_max_entries"}
_DECIMAL_FIELDS = {"sample_item_price"}
_NULLABLE_FIELDS = {"store_base_url"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def parse_decimal_value(name: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a number, got {value!r}")
    try:
        # YAML floats go through str() so 5.5 stays Decimal("5.5")
        parsed = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"{name} must be a number, got {value!r}") from None
    if not parsed.is_finite():
        raise ValueError(f"{name} must be finite, got {value!r}")
    return parsed


def _coerce(name: str, value: Any) -> Any:
    if value is None:
        if name in _NULLABLE_FIELDS:
            return None
        raise ValueError(f"{name} is required, got null")
    if name in _DECIMAL_FIELDS:
        return parse_decimal_value(name, value)
    try:
        if name in _FLOAT_FIELDS:
            return float(value)
        if name in _INT_FIELDS:
            if isinstance(value, bool):
                raise ValueError
            return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number, got {value!r}") from None
    return str(value)


def parse_settings(
    data: Mapping[str, Any],
    environ: Mapping[str, str] | None = None,
) -> EngineSettings:
    """
    Build EngineSettings from a parsed YAML mapping plus environment overrides.

    ``ORDER_TAX_CACHE_TTL_SECONDS=10`` overrides ``cache_ttl_seconds``.
    Empty environment values are ignored.
    """
    known = {f.name for f in fields(EngineSettings)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown engine settings: {', '.join(sorted(unknown))}")

    values: dict[str, Any] = dict(data)
    for name in known:
        override = (environ or {}).get(ENV_PREFIX + name.upper())
        if override:
            values[name] = override

    return EngineSettings(**{name: _coerce(name, value) for name, value in values.items()})


def parse_organization_defaults(data: Mapping[str, Any]) -> dict[str, tuple[OrganizationDefault, ...]]:
    """
    Parse the ``organization_types`` mapping of organization_defaults.yaml.

    Each organization type lists one or more entries of
    ``{service_type, name, tax_rate, is_default, description?}``.
    """
    result: dict[str, tuple[OrganizationDefault, ...]] = {}
    for org_type, entries in (data.get("organization_types") or {}).items():
        parsed = []
        for entry in entries:
            parsed.append(
                OrganizationDefault(
                    organization_type=str(org_type).upper(),
                    service_type=ServiceType(entry["service_type"]),
                    name=entry["name"],
                    tax_rate=parse_decimal_value("tax_rate", entry["tax_rate"]),
                    is_default=bool(entry.get("is_default", False)),
                    tax_type=TaxType(entry.get("tax_type", TaxType.GST.value)),
                    description=entry.get("description"),
                )
            )
        if not parsed:
            raise ValueError(f"Organization type {org_type} has no default entries")
        result[str(org_type).upper()] = tuple(parsed)
    return result


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
