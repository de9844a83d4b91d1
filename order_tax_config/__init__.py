"""
order_tax_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the ONLY way to obtain engine settings at runtime through
    ``get_engine_settings()``, and the organization-type starting
    configurations through ``get_organization_defaults()``.  No other
    component reads configuration files or ``ORDER_TAX_*`` environment
    variables directly.

Architecture position:
    Configuration -- YAML-driven.  Sits above ``order_tax_kernel`` and
    beside ``order_tax_services``.  The kernel and the engines MUST NEVER
    import from ``order_tax_config``; services receive an EngineSettings
    instance.

Invariants enforced:
    - Single entrypoint for runtime settings.
    - Validation on load: an invalid file or override raises before any
      service is built.
    - Deterministic checksum: same effective settings, same checksum.

Failure modes:
    - ``FileNotFoundError`` -- explicit ``path`` does not exist.
    - ``ValueError`` -- unknown key or invalid value.
    - ``yaml.YAMLError`` -- malformed file.

Audit relevance:
    Every successful ``get_engine_settings()`` call emits an
    ``ORDER_TAX_CONFIG_TRACE`` log entry with the source path and checksum
    of the effective settings.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

from order_tax_config.loader import (
    compute_checksum,
    load_yaml_file,
    parse_organization_defaults,
    parse_settings,
)
from order_tax_config.schema import EngineSettings, OrganizationDefault
from order_tax_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULTS_DIR = Path(__file__).parent / "defaults"
DEFAULT_SETTINGS_PATH = _DEFAULTS_DIR / "engine.yaml"
DEFAULT_ORGANIZATION_DEFAULTS_PATH = _DEFAULTS_DIR / "organization_defaults.yaml"


def get_engine_settings(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> EngineSettings:
    """
    Load EngineSettings from YAML, then apply ``ORDER_TAX_<FIELD>`` overrides.

    Args:
        path: Settings file.  Defaults to the bundled ``defaults/engine.yaml``.
        environ: Environment mapping; ``os.environ`` when omitted.

    Returns:
        Frozen, validated EngineSettings.
    """
    source = Path(path) if path is not None else DEFAULT_SETTINGS_PATH
    data = load_yaml_file(source)
    settings = parse_settings(data, os.environ if environ is None else environ)
    checksum = compute_checksum(settings.to_dict())

    _logger.info(
        "ORDER_TAX_CONFIG_TRACE",
        extra={
            "trace_type": "ORDER_TAX_CONFIG_TRACE",
            "source": str(source),
            "checksum": checksum,
            "cache_ttl_seconds": settings.cache_ttl_seconds,
            "resolve_timeout_seconds": settings.resolve_timeout_seconds,
            "currency_code": settings.currency_code,
        },
    )
    return settings


def get_organization_defaults(
    path: Path | str | None = None,
) -> dict[str, tuple[OrganizationDefault, ...]]:
    """Organization type (upper case) -> suggested starting configurations."""
    source = Path(path) if path is not None else DEFAULT_ORGANIZATION_DEFAULTS_PATH
    return parse_organization_defaults(load_yaml_file(source))


__all__ = [
    "DEFAULT_ORGANIZATION_DEFAULTS_PATH",
    "DEFAULT_SETTINGS_PATH",
    "EngineSettings",
    "OrganizationDefault",
    "compute_checksum",
    "get_engine_settings",
    "get_organization_defaults",
]
