"""
TaxConfigurationResolver -- choose the single configuration that applies.

Responsibility:
    Given an organization and a service type, select one TaxConfiguration
    or determine that none applies.

Architecture position:
    Engines.  ``select_configuration`` is pure; ``TaxConfigurationResolver``
    adds the one suspending step (fetching the organization's
    configurations through a ``ConfigurationSource``).  Engines never
    import services: any object with an async ``list_configurations`` is a
    source.

Selection, considering only active configurations of the organization:
    1. exact service type match with ``is_default``;
    2. service type ALL with ``is_default``;
    3. ties inside a tier: latest ``updated_at`` wins, then greatest ``id``
       (a missing ``updated_at`` sorts before any timestamp);
    4. nothing matched -> None.  Not an error.

Failure modes:
    - Exceptions from the source (TransientFailure, ...) propagate; the
      service decides how to degrade.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Protocol, Sequence

from order_tax_kernel.domain.values import ServiceType, TaxConfiguration
from order_tax_kernel.logging_config import get_logger

logger = get_logger("engines.resolver")

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class ConfigurationSource(Protocol):
    async def list_configurations(self, organization_id: str) -> Sequence[TaxConfiguration]:
        ...


def _recency(configuration: TaxConfiguration) -> tuple[datetime, str]:
    updated_at = configuration.updated_at or _EPOCH
    if updated_at.tzinfo is None:
        updated_at = updated_at.replace(tzinfo=timezone.utc)
    return (updated_at, configuration.id)


def _pick(candidates: list[TaxConfiguration]) -> TaxConfiguration | None:
    if not candidates:
        return None
    if len(candidates) > 1:
        logger.warning("tax_configuration_tie", extra={
            "candidate_ids": [c.id for c in candidates],
            "service_type": candidates[0].service_type,
        })
    return max(candidates, key=_recency)


def select_configuration(
    configurations: Iterable[TaxConfiguration],
    organization_id: str,
    service_type: ServiceType,
) -> TaxConfiguration | None:
    """Pure selection step.  See module docstring for the priority rules."""
    service_type = ServiceType(service_type)
    eligible = [
        c for c in configurations
        if c.organization_id == organization_id and c.is_active and c.is_default
    ]

    if service_type is not ServiceType.ALL:
        exact = _pick([c for c in eligible if c.service_type is service_type])
        if exact is not None:
            return exact

    return _pick([c for c in eligible if c.service_type is ServiceType.ALL])


class TaxConfigurationResolver:
    """
    Resolve the applicable configuration for (organization, service type).

    Contract:
        ``resolve`` may suspend on the source; it never retries and never
        swallows source errors.
    """

    def __init__(self, source: ConfigurationSource):
        self._source = source

    async def resolve(
        self,
        organization_id: str,
        service_type: ServiceType,
    ) -> TaxConfiguration | None:
        configurations = await self._source.list_configurations(organization_id)
        selected = select_configuration(configurations, organization_id, service_type)

        logger.info("tax_configuration_resolved", extra={
            "organization_id": organization_id,
            "service_type": ServiceType(service_type),
            "candidate_count": len(configurations),
            "configuration_id": selected.id if selected else None,
            "tax_rate": str(selected.tax_rate) if selected else None,
        })
        return selected
