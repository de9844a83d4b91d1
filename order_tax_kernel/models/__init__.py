"""ORM models.  Importing this package registers every table on Base.metadata."""

from order_tax_kernel.models.tax_configuration import TaxConfigurationModel

__all__ = ["TaxConfigurationModel"]
