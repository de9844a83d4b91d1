"""
TaxConfigurationStore -- async persistence contract for tax configurations.

Responsibility:
    Read and write an organization's configurations.  Every operation is
    scoped by ``organization_id``; a configuration id from another
    organization is "not found".

Architecture position:
    Services.  Implementations: ``InMemoryTaxConfigurationStore`` (this
    module), ``SqlTaxConfigurationStore`` (``sql_store``) and
    ``HttpTaxConfigurationStore`` (``http_store``).  Any store satisfies the
    resolver's ``ConfigurationSource`` protocol.

Invariants enforced:
    - Stores persist; they do not decide.  The one-active-default rule and
      cache invalidation live in ``OrderTaxService``.
    - Returned configurations are frozen DTOs; callers never hold a live row.

Failure modes:
    - ConfigurationNotFoundError on get/update/delete of an unknown id.
    - TransientFailure subclasses from remote stores.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from uuid import uuid4

from order_tax_kernel.domain.clock import Clock, SystemClock
from order_tax_kernel.domain.values import (
    TaxConfiguration,
    TaxConfigurationDraft,
    TaxConfigurationPatch,
)
from order_tax_kernel.exceptions import ConfigurationNotFoundError
from order_tax_kernel.logging_config import get_logger

logger = get_logger("services.store")


class TaxConfigurationStore(ABC):
    """Async CRUD over one organization's tax configurations."""

    @abstractmethod
    async def list_configurations(self, organization_id: str) -> list[TaxConfiguration]:
        ...

    @abstractmethod
    async def get_configuration(
        self, organization_id: str, configuration_id: str
    ) -> TaxConfiguration:
        ...

    @abstractmethod
    async def create_configuration(
        self, organization_id: str, draft: TaxConfigurationDraft
    ) -> TaxConfiguration:
        ...

    @abstractmethod
    async def update_configuration(
        self,
        organization_id: str,
        configuration_id: str,
        patch: TaxConfigurationPatch,
    ) -> TaxConfiguration:
        ...

    @abstractmethod
    async def delete_configuration(self, organization_id: str, configuration_id: str) -> None:
        ...


class InMemoryTaxConfigurationStore(TaxConfigurationStore):
    """
    Dict-backed store.  Timestamps come from the injected clock.

    Used by tests and by callers that seed configurations locally.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        configurations: list[TaxConfiguration] | None = None,
    ):
        self._clock = clock or SystemClock()
        self._rows: dict[str, dict[str, TaxConfiguration]] = {}
        for configuration in configurations or ():
            self.seed(configuration)

    def seed(self, configuration: TaxConfiguration) -> None:
        """Insert a fully formed configuration as-is (ids and timestamps kept)."""
        self._rows.setdefault(configuration.organization_id, {})[configuration.id] = configuration

    def _require(self, organization_id: str, configuration_id: str) -> TaxConfiguration:
        configuration = self._rows.get(organization_id, {}).get(configuration_id)
        if configuration is None:
            raise ConfigurationNotFoundError(organization_id, configuration_id)
        return configuration

    async def list_configurations(self, organization_id: str) -> list[TaxConfiguration]:
        return list(self._rows.get(organization_id, {}).values())

    async def get_configuration(
        self, organization_id: str, configuration_id: str
    ) -> TaxConfiguration:
        return self._require(organization_id, configuration_id)

    async def create_configuration(
        self, organization_id: str, draft: TaxConfigurationDraft
    ) -> TaxConfiguration:
        configuration = draft.to_configuration(
            str(uuid4()), organization_id, self._clock.now()
        )
        self.seed(configuration)
        logger.debug("tax_configuration_stored", extra={
            "organization_id": organization_id,
            "configuration_id": configuration.id,
        })
        return configuration

    async def update_configuration(
        self,
        organization_id: str,
        configuration_id: str,
        patch: TaxConfigurationPatch,
    ) -> TaxConfiguration:
        current = self._require(organization_id, configuration_id)
        updated = patch.apply_to(current, self._clock.now())
        self._rows[organization_id][configuration_id] = updated
        return updated

    async def delete_configuration(self, organization_id: str, configuration_id: str) -> None:
        self._require(organization_id, configuration_id)
        del self._rows[organization_id][configuration_id]
