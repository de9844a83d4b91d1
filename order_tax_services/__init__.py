"""
Module: order_tax_services
Responsibility:
    Stateful orchestration: configuration stores and the OrderTaxService
    facade that composes the engines.

Architecture position:
    Services -- may import order_tax_kernel, order_tax_engines and the
    order_tax_config schema.

Usage:
    from order_tax_services import OrderTaxService, InMemoryTaxConfigurationStore
"""

from order_tax_services.http_store import HttpTaxConfigurationStore
from order_tax_services.sql_store import SqlTaxConfigurationStore
from order_tax_services.store import InMemoryTaxConfigurationStore, TaxConfigurationStore
from order_tax_services.tax_service import MANAGER_ROLES, OrderTaxService, create_store
from order_tax_services.tracker import CalculationTracker

__all__ = [
    "CalculationTracker",
    "HttpTaxConfigurationStore",
    "InMemoryTaxConfigurationStore",
    "MANAGER_ROLES",
    "OrderTaxService",
    "SqlTaxConfigurationStore",
    "TaxConfigurationStore",
    "create_store",
]
