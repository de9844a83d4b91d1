"""
Pytest fixtures for the order tax test suite.

Provides:
- Structured logging setup and a ``captured_logs`` fixture
- A deterministic clock shared by stores, cache and service
- Configuration factories and an in-memory store
- An in-memory SQLite session factory for the SQL store
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session, sessionmaker

from order_tax_config.schema import EngineSettings
from order_tax_engines.cache import CalculationCache
from order_tax_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from order_tax_kernel.domain.clock import DeterministicClock
from order_tax_kernel.domain.values import (
    OrderItemForTax,
    ServiceType,
    TaxConfiguration,
)
from order_tax_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from order_tax_services.store import InMemoryTaxConfigurationStore
from order_tax_services.tax_service import OrderTaxService

ORG_ID = "org-spice-route"
OTHER_ORG_ID = "org-blue-door"
START_TIME = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, handler=logging.NullHandler())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture order_tax logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            ...
            logs = captured_logs()
            assert any(r["message"] == "tax_calculation_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("order_tax")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Time
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(START_TIME)


# =============================================================================
# Domain factories
# =============================================================================


@pytest.fixture
def make_configuration():
    """
    Build a TaxConfiguration with sensible defaults.

    ``updated_offset`` shifts ``updated_at`` in seconds from START_TIME.
    """
    counter = {"n": 0}

    def _make(
        *,
        tax_rate: str = "5.00",
        service_type: ServiceType = ServiceType.ALL,
        is_default: bool = True,
        is_active: bool = True,
        is_tax_exempt: bool = False,
        is_price_inclusive: bool = False,
        organization_id: str = ORG_ID,
        configuration_id: str | None = None,
        updated_offset: int = 0,
        name: str | None = None,
    ) -> TaxConfiguration:
        counter["n"] += 1
        stamp = START_TIME + timedelta(seconds=updated_offset)
        return TaxConfiguration(
            id=configuration_id or f"cfg-{counter['n']:03d}",
            organization_id=organization_id,
            name=name or f"GST {tax_rate}% {service_type.value}",
            tax_rate=Decimal(tax_rate),
            service_type=service_type,
            is_default=is_default,
            is_active=is_active,
            is_tax_exempt=is_tax_exempt,
            is_price_inclusive=is_price_inclusive,
            created_at=stamp,
            updated_at=stamp,
        )

    return _make


@pytest.fixture
def two_thalis() -> list[OrderItemForTax]:
    """2 x 150.00 -- the rounding boundary order."""
    return [OrderItemForTax("veg-thali", 2, Decimal("150.00"))]


# =============================================================================
# Stores and service
# =============================================================================


@pytest.fixture
def store(clock) -> InMemoryTaxConfigurationStore:
    return InMemoryTaxConfigurationStore(clock)


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings(resolve_timeout_seconds=0.5)


@pytest.fixture
def cache(clock, settings) -> CalculationCache:
    return CalculationCache(clock=clock, ttl_seconds=settings.cache_ttl_seconds)


@pytest.fixture
def service(store, settings, clock, cache) -> OrderTaxService:
    return OrderTaxService(store, settings, clock=clock, cache=cache)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def sqlite_session_factory() -> Generator[sessionmaker[Session], None, None]:
    """Fresh in-memory SQLite database with the tax_configurations table."""
    init_engine_from_url("sqlite://", pool_pre_ping=False)
    create_tables()
    yield get_session_factory()
    drop_tables()
    reset_engine()
