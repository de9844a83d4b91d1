"""
order_tax_services.tax_service -- Order tax facade.

Responsibility:
    The one surface callers use: compute tax for a cart, and manage an
    organization's tax configurations.  Composes the configuration store,
    the resolver, the calculator and the calculation cache.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

Invariants enforced:
    - At most one active default configuration per (organization, service
      type); checked before every create and update
      (DefaultConfigurationConflictError).
    - Every configuration mutation invalidates that organization's cached
      totals before returning.
    - ``calculate_tax`` never raises a TransientFailure.  On store failure
      or resolve timeout it answers with the last good totals cached for
      the same key (even if expired), else with subtotal-only totals.

Failure modes:
    - ValidationError: malformed items, drafts or patches.
    - ConfigurationNotFoundError: unknown configuration id.
    - DefaultConfigurationConflictError: second active default.
    - TransientFailure subclasses: only from configuration management calls.

Usage:
    store = InMemoryTaxConfigurationStore(clock)
    service = OrderTaxService(store, get_engine_settings(), clock=clock)

    # or let the settings pick the store
    service = OrderTaxService.from_settings(clock=clock)

    totals = await service.calculate_tax(
        org_id, ServiceType.DINE_IN,
        [OrderItemForTax("paneer-tikka", 2, Decimal("150.00"))],
    )
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from typing import Any, Callable

from order_tax_config.schema import EngineSettings, OrganizationDefault
from order_tax_engines.cache import CalculationCache
from order_tax_engines.calculator import TaxCalculator
from order_tax_engines.fingerprint import CacheKey
from order_tax_engines.formatter import format_currency, format_rate
from order_tax_engines.resolver import TaxConfigurationResolver
from order_tax_kernel.domain.clock import Clock, SystemClock
from order_tax_kernel.domain.values import (
    OrderItemForTax,
    OrderTotals,
    ServiceType,
    TaxConfiguration,
    TaxConfigurationDraft,
    TaxConfigurationPatch,
    TaxPreview,
)
from order_tax_kernel.exceptions import (
    DefaultConfigurationConflictError,
    StoreTimeoutError,
    TransientFailure,
    ValidationError,
)
from order_tax_kernel.logging_config import LogContext, get_logger
from order_tax_services.http_store import HttpTaxConfigurationStore
from order_tax_services.sql_store import SqlTaxConfigurationStore
from order_tax_services.store import InMemoryTaxConfigurationStore, TaxConfigurationStore

logger = get_logger("services.tax")

MANAGER_ROLES = frozenset({"OWNER", "ADMINISTRATOR", "MANAGER"})
FALLBACK_ORGANIZATION_TYPE = "RESTAURANT"
PREVIEW_ITEM_ID = "sample-item"


def _service_type(value: Any, field: str = "service_type") -> ServiceType:
    try:
        return ServiceType(value)
    except ValueError:
        raise ValidationError(field, "unknown ServiceType", value) from None


def _coerce_items(items: Iterable[OrderItemForTax | Mapping[str, Any]]) -> tuple[OrderItemForTax, ...]:
    coerced = []
    for item in items:
        if isinstance(item, OrderItemForTax):
            coerced.append(item)
        elif isinstance(item, Mapping):
            coerced.append(OrderItemForTax.from_dict(item))
        else:
            raise ValidationError("items", f"unsupported item type {type(item).__name__}", item)
    return tuple(coerced)


def create_store(
    settings: EngineSettings,
    clock: Clock | None = None,
    session_factory: Callable[[], Any] | None = None,
) -> TaxConfigurationStore:
    """
    Pick the configuration store ``settings`` describe.

    ``store_base_url`` selects the remote API.  Without it configurations
    stay local: in the database when ``session_factory`` is given, else in
    memory.
    """
    if settings.store_base_url:
        store: TaxConfigurationStore = HttpTaxConfigurationStore.from_settings(settings)
    elif session_factory is not None:
        store = SqlTaxConfigurationStore(session_factory, clock)
    else:
        store = InMemoryTaxConfigurationStore(clock)
    logger.info("tax_configuration_store_selected", extra={
        "store": type(store).__name__,
        "store_base_url": settings.store_base_url,
    })
    return store


class OrderTaxService:
    """
    Order tax facade.

    Contract:
        One instance per event loop.  ``cache`` and ``calculator`` are
        injectable; by default they are built from ``settings``.
    """

    def __init__(
        self,
        store: TaxConfigurationStore,
        settings: EngineSettings | None = None,
        clock: Clock | None = None,
        cache: CalculationCache | None = None,
        calculator: TaxCalculator | None = None,
        organization_defaults: Mapping[str, tuple[OrganizationDefault, ...]] | None = None,
    ):
        self._settings = settings or EngineSettings()
        self._clock = clock or SystemClock()
        self._store = store
        self._resolver = TaxConfigurationResolver(store)
        self._cache = cache or CalculationCache(
            clock=self._clock,
            ttl_seconds=self._settings.cache_ttl_seconds,
            max_entries=self._settings.cache_max_entries,
        )
        self._calculator = calculator or TaxCalculator(
            absent_message=self._settings.absent_configuration_message,
        )
        self._organization_defaults = organization_defaults

    @classmethod
    def from_settings(
        cls,
        settings: EngineSettings | None = None,
        clock: Clock | None = None,
        session_factory: Callable[[], Any] | None = None,
    ) -> OrderTaxService:
        """Service over the store ``create_store`` picks for ``settings``.

        Loads the engine settings when none are given.
        """
        if settings is None:
            from order_tax_config import get_engine_settings

            settings = get_engine_settings()
        store = create_store(settings, clock=clock, session_factory=session_factory)
        return cls(store, settings, clock=clock)

    @property
    def cache(self) -> CalculationCache:
        return self._cache

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    # =========================================================================
    # Calculation
    # =========================================================================

    async def calculate_tax(
        self,
        organization_id: str,
        service_type: ServiceType | str,
        items: Iterable[OrderItemForTax | Mapping[str, Any]],
    ) -> OrderTotals:
        """
        Compute {subtotal, tax, total, breakdown} for ``items``.

        Identical (organization, service type, items) requests inside the
        cache TTL resolve and compute once.

        Raises:
            ValidationError: invalid service type or item.
        """
        service_type = _service_type(service_type)
        order_items = _coerce_items(items)
        key = CacheKey.for_items(organization_id, service_type, order_items)

        with LogContext.bind(organization_id=organization_id):
            try:
                return await self._cache.get_or_compute(
                    key,
                    lambda: self._resolve_and_compute(organization_id, service_type, order_items),
                )
            except TransientFailure as exc:
                stale = self._cache.stale(key)
                logger.warning("tax_calculation_degraded", extra={
                    "error_code": exc.code,
                    "cache_key": str(key),
                    "served_stale": stale is not None,
                })
                if stale is not None:
                    return stale
                return self._calculator.compute(None, order_items, service_type)

    async def _resolve_and_compute(
        self,
        organization_id: str,
        service_type: ServiceType,
        items: tuple[OrderItemForTax, ...],
    ) -> OrderTotals:
        configuration = await self._resolve(organization_id, service_type)
        return self._calculator.compute(configuration, items, service_type)

    async def _resolve(
        self, organization_id: str, service_type: ServiceType
    ) -> TaxConfiguration | None:
        timeout = self._settings.resolve_timeout_seconds
        try:
            return await asyncio.wait_for(
                self._resolver.resolve(organization_id, service_type), timeout
            )
        except asyncio.TimeoutError:
            raise StoreTimeoutError("resolve", timeout) from None

    # =========================================================================
    # Configuration management
    # =========================================================================

    async def list_configurations(self, organization_id: str) -> list[TaxConfiguration]:
        return list(await self._store.list_configurations(organization_id))

    async def get_configuration(
        self, organization_id: str, configuration_id: str
    ) -> TaxConfiguration:
        return await self._store.get_configuration(organization_id, configuration_id)

    async def create_configuration(
        self, organization_id: str, draft: TaxConfigurationDraft
    ) -> TaxConfiguration:
        """
        Persist a new configuration.

        Raises:
            DefaultConfigurationConflictError: ``draft`` is an active default
                and the organization already has one for its service type.
        """
        if draft.is_default and draft.is_active:
            await self._check_default_conflict(organization_id, draft.service_type, exclude_id=None)

        created = await self._store.create_configuration(organization_id, draft)
        self._cache.invalidate_organization(organization_id)
        logger.info("tax_configuration_created", extra={
            "organization_id": organization_id,
            "configuration_id": created.id,
            "service_type": created.service_type,
            "tax_rate": str(created.tax_rate),
            "is_default": created.is_default,
        })
        return created

    async def update_configuration(
        self,
        organization_id: str,
        configuration_id: str,
        patch: TaxConfigurationPatch,
    ) -> TaxConfiguration:
        current = await self._store.get_configuration(organization_id, configuration_id)
        # Check the configuration as it will look after the patch
        proposed = patch.apply_to(current, self._clock.now())
        if proposed.is_default and proposed.is_active:
            await self._check_default_conflict(
                organization_id, proposed.service_type, exclude_id=configuration_id
            )

        updated = await self._store.update_configuration(organization_id, configuration_id, patch)
        self._cache.invalidate_organization(organization_id)
        logger.info("tax_configuration_updated", extra={
            "organization_id": organization_id,
            "configuration_id": configuration_id,
            "changed_fields": sorted(patch.changes()),
        })
        return updated

    async def delete_configuration(self, organization_id: str, configuration_id: str) -> None:
        await self._store.delete_configuration(organization_id, configuration_id)
        self._cache.invalidate_organization(organization_id)
        logger.info("tax_configuration_deleted", extra={
            "organization_id": organization_id,
            "configuration_id": configuration_id,
        })

    async def _check_default_conflict(
        self,
        organization_id: str,
        service_type: ServiceType,
        exclude_id: str | None,
    ) -> None:
        for existing in await self._store.list_configurations(organization_id):
            if (
                existing.id != exclude_id
                and existing.is_default
                and existing.is_active
                and existing.service_type is service_type
            ):
                logger.warning("tax_configuration_default_conflict", extra={
                    "organization_id": organization_id,
                    "service_type": service_type,
                    "existing_id": existing.id,
                })
                raise DefaultConfigurationConflictError(
                    organization_id, service_type.value, existing.id
                )

    async def preview_configuration(
        self,
        organization_id: str,
        service_type: ServiceType | str | None = None,
    ) -> TaxPreview:
        """
        What the settings screen shows: the configuration that would apply
        to ``service_type`` (DINE_IN when omitted) and the totals of a
        one-item sample order priced at ``settings.sample_item_price``.
        """
        target = _service_type(service_type) if service_type is not None else ServiceType.DINE_IN
        sample = (OrderItemForTax(PREVIEW_ITEM_ID, 1, self._settings.sample_item_price),)

        configuration = await self._resolve(organization_id, target)
        totals = self._calculator.compute(configuration, sample, target)

        if configuration is None:
            message = (
                f"No tax configuration applies to {target.label}. "
                f"{self._settings.absent_configuration_message}"
            )
        else:
            message = (
                f"{configuration.name} ({format_rate(configuration.tax_rate)}) "
                f"applies to {target.label}"
            )
        return TaxPreview(
            has_configuration=configuration is not None,
            configuration=configuration,
            sample_breakdown=totals,
            message=message,
            sample_items=sample,
        )

    # =========================================================================
    # Helpers for settings screens
    # =========================================================================

    def default_draft(
        self,
        organization_type: str | None,
        service_type: ServiceType | str = ServiceType.ALL,
    ) -> TaxConfigurationDraft:
        """
        Suggested starting configuration for an organization type.

        Unknown organization types get the RESTAURANT suggestion.  Types
        with a single suggestion return it whatever ``service_type`` asks.
        """
        service_type = _service_type(service_type)
        defaults = self._load_organization_defaults()
        org_type = (organization_type or "").upper()
        entries = defaults.get(org_type) or defaults[FALLBACK_ORGANIZATION_TYPE]

        for entry in entries:
            if entry.service_type is service_type:
                return entry.to_draft()
        return entries[0].to_draft()

    def _load_organization_defaults(self) -> Mapping[str, tuple[OrganizationDefault, ...]]:
        if self._organization_defaults is None:
            from order_tax_config import get_organization_defaults

            self._organization_defaults = get_organization_defaults()
        return self._organization_defaults

    def format_amount(self, amount: Any) -> str:
        """``amount`` as display currency with the configured symbol."""
        return format_currency(amount, self._settings.currency_symbol)

    @staticmethod
    def can_manage_configurations(role: str | None) -> bool:
        return (role or "").upper() in MANAGER_ROLES
