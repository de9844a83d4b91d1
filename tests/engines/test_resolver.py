"""
Tests for TaxConfigurationResolver.

Covers:
- Exact service type default beats the ALL default
- Inactive and non-default configurations are ignored
- Other organizations are ignored
- Deterministic tie-break (latest updated_at, then greatest id)
"""

from datetime import datetime
from decimal import Decimal

import pytest

from order_tax_engines.resolver import TaxConfigurationResolver, select_configuration
from order_tax_kernel.domain.values import ServiceType
from order_tax_kernel.exceptions import StoreUnavailableError
from tests.conftest import ORG_ID, OTHER_ORG_ID


class TestSelectConfiguration:
    def test_exact_match_beats_all(self, make_configuration):
        dine_in = make_configuration(tax_rate="5", service_type=ServiceType.DINE_IN)
        catch_all = make_configuration(tax_rate="12", service_type=ServiceType.ALL)

        selected = select_configuration([catch_all, dine_in], ORG_ID, ServiceType.DINE_IN)

        assert selected is dine_in

    def test_falls_back_to_all(self, make_configuration):
        dine_in = make_configuration(tax_rate="5", service_type=ServiceType.DINE_IN)
        catch_all = make_configuration(tax_rate="12", service_type=ServiceType.ALL)

        selected = select_configuration([dine_in, catch_all], ORG_ID, ServiceType.DELIVERY)

        assert selected is catch_all

    def test_resolving_all_only_considers_all(self, make_configuration):
        dine_in = make_configuration(service_type=ServiceType.DINE_IN)

        assert select_configuration([dine_in], ORG_ID, ServiceType.ALL) is None

    def test_inactive_ignored(self, make_configuration):
        inactive = make_configuration(service_type=ServiceType.DINE_IN, is_active=False)
        catch_all = make_configuration(service_type=ServiceType.ALL)

        assert select_configuration([inactive, catch_all], ORG_ID, ServiceType.DINE_IN) is catch_all

    def test_non_default_ignored(self, make_configuration):
        not_default = make_configuration(service_type=ServiceType.DINE_IN, is_default=False)

        assert select_configuration([not_default], ORG_ID, ServiceType.DINE_IN) is None

    def test_other_organization_ignored(self, make_configuration):
        foreign = make_configuration(organization_id=OTHER_ORG_ID)

        assert select_configuration([foreign], ORG_ID, ServiceType.TAKEAWAY) is None

    def test_nothing_configured(self):
        assert select_configuration([], ORG_ID, ServiceType.DINE_IN) is None

    def test_accepts_string_service_type(self, make_configuration):
        dine_in = make_configuration(service_type=ServiceType.DINE_IN)

        assert select_configuration([dine_in], ORG_ID, "DINE_IN") is dine_in


class TestTieBreak:
    def test_latest_updated_wins(self, make_configuration):
        older = make_configuration(tax_rate="5", configuration_id="cfg-b", updated_offset=0)
        newer = make_configuration(tax_rate="12", configuration_id="cfg-a", updated_offset=60)

        assert select_configuration([newer, older], ORG_ID, ServiceType.ALL) is newer
        assert select_configuration([older, newer], ORG_ID, ServiceType.ALL) is newer

    def test_equal_timestamps_greatest_id_wins(self, make_configuration):
        first = make_configuration(configuration_id="cfg-a")
        second = make_configuration(configuration_id="cfg-b")

        assert select_configuration([first, second], ORG_ID, ServiceType.ALL) is second
        assert select_configuration([second, first], ORG_ID, ServiceType.ALL) is second

    def test_missing_timestamp_loses(self, make_configuration):
        stamped = make_configuration(configuration_id="cfg-a")
        unstamped = make_configuration(configuration_id="cfg-z")
        object.__setattr__(unstamped, "updated_at", None)

        assert select_configuration([unstamped, stamped], ORG_ID, ServiceType.ALL) is stamped

    def test_naive_and_aware_timestamps_compare(self, make_configuration):
        aware = make_configuration(configuration_id="cfg-a", updated_offset=0)
        naive = make_configuration(configuration_id="cfg-b")
        object.__setattr__(naive, "updated_at", datetime(2024, 6, 1, 13, 0, 0))

        assert select_configuration([aware, naive], ORG_ID, ServiceType.ALL) is naive

    def test_tie_is_logged(self, make_configuration, captured_logs):
        select_configuration(
            [make_configuration(), make_configuration()], ORG_ID, ServiceType.ALL
        )

        assert any(r["message"] == "tax_configuration_tie" for r in captured_logs())


class _ListSource:
    def __init__(self, configurations):
        self.configurations = configurations
        self.calls = 0

    async def list_configurations(self, organization_id):
        self.calls += 1
        return [c for c in self.configurations if c.organization_id == organization_id]


class _FailingSource:
    async def list_configurations(self, organization_id):
        raise StoreUnavailableError("list_configurations", "connection refused")


class TestResolver:
    @pytest.mark.asyncio
    async def test_resolves_through_source(self, make_configuration):
        dine_in = make_configuration(tax_rate="5", service_type=ServiceType.DINE_IN)
        source = _ListSource([dine_in, make_configuration(tax_rate="12")])

        selected = await TaxConfigurationResolver(source).resolve(ORG_ID, ServiceType.DINE_IN)

        assert selected.tax_rate == Decimal("5")
        assert source.calls == 1

    @pytest.mark.asyncio
    async def test_absent_is_none(self):
        selected = await TaxConfigurationResolver(_ListSource([])).resolve(ORG_ID, ServiceType.ALL)

        assert selected is None

    @pytest.mark.asyncio
    async def test_source_errors_propagate(self):
        with pytest.raises(StoreUnavailableError):
            await TaxConfigurationResolver(_FailingSource()).resolve(ORG_ID, ServiceType.ALL)
