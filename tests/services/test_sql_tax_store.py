"""
Tests for SqlTaxConfigurationStore against in-memory SQLite.

Covers:
- Create / get / list / update / delete round trips through the ORM
- Organization scoping
- Decimal and timezone preservation
- Use as the configuration source of OrderTaxService
"""

from decimal import Decimal

import pytest

from order_tax_kernel.domain.values import (
    ServiceType,
    TaxConfigurationDraft,
    TaxConfigurationPatch,
)
from order_tax_kernel.exceptions import ConfigurationNotFoundError
from order_tax_services.sql_store import SqlTaxConfigurationStore
from order_tax_services.tax_service import OrderTaxService
from tests.conftest import ORG_ID, OTHER_ORG_ID


@pytest.fixture
def sql_store(sqlite_session_factory, clock):
    return SqlTaxConfigurationStore(sqlite_session_factory, clock)


def _draft(**overrides):
    values = dict(name="Dine-in GST", tax_rate=Decimal("5.50"),
                  service_type=ServiceType.DINE_IN, is_default=True)
    values.update(overrides)
    return TaxConfigurationDraft(**values)


class TestSqlStore:
    @pytest.mark.asyncio
    async def test_create_then_get(self, sql_store, clock):
        created = await sql_store.create_configuration(ORG_ID, _draft())

        fetched = await sql_store.get_configuration(ORG_ID, created.id)

        assert fetched == created
        assert fetched.tax_rate == Decimal("5.50")
        assert fetched.service_type is ServiceType.DINE_IN
        assert fetched.updated_at == clock.now()
        assert fetched.updated_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_list_is_scoped_to_organization(self, sql_store):
        await sql_store.create_configuration(ORG_ID, _draft())
        await sql_store.create_configuration(OTHER_ORG_ID, _draft(name="Other GST"))

        listed = await sql_store.list_configurations(ORG_ID)

        assert [c.name for c in listed] == ["Dine-in GST"]

    @pytest.mark.asyncio
    async def test_update(self, sql_store, clock):
        created = await sql_store.create_configuration(ORG_ID, _draft())
        clock.advance(60)

        updated = await sql_store.update_configuration(
            ORG_ID, created.id, TaxConfigurationPatch(tax_rate=Decimal("12.00"), is_default=False)
        )
        fetched = await sql_store.get_configuration(ORG_ID, created.id)

        assert updated == fetched
        assert fetched.tax_rate == Decimal("12.00")
        assert fetched.is_default is False
        assert fetched.created_at == created.created_at
        assert fetched.updated_at == clock.now()

    @pytest.mark.asyncio
    async def test_delete(self, sql_store):
        created = await sql_store.create_configuration(ORG_ID, _draft())

        await sql_store.delete_configuration(ORG_ID, created.id)

        assert await sql_store.list_configurations(ORG_ID) == []

    @pytest.mark.asyncio
    async def test_foreign_id_not_found(self, sql_store):
        created = await sql_store.create_configuration(ORG_ID, _draft())

        with pytest.raises(ConfigurationNotFoundError):
            await sql_store.get_configuration(OTHER_ORG_ID, created.id)
        with pytest.raises(ConfigurationNotFoundError):
            await sql_store.update_configuration(
                OTHER_ORG_ID, created.id, TaxConfigurationPatch(name="Hijack")
            )
        with pytest.raises(ConfigurationNotFoundError):
            await sql_store.delete_configuration(OTHER_ORG_ID, "missing")


class TestServiceOverSql:
    @pytest.mark.asyncio
    async def test_calculation_uses_persisted_configuration(self, sql_store, clock, two_thalis):
        service = OrderTaxService(sql_store, clock=clock)
        await service.create_configuration(ORG_ID, _draft())

        totals = await service.calculate_tax(ORG_ID, ServiceType.DINE_IN, two_thalis)

        assert totals.tax_amount == Decimal("16.50")
        assert totals.total_amount == Decimal("316.50")
