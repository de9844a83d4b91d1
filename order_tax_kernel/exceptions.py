"""
Typed Exception Hierarchy for the Order Tax Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the engine are settings screens and cart screens.  Both need to
turn a failure into a precise message ("Tax rate cannot exceed 100%") or a
precise behavior ("show subtotal now, tax pending").  Parsing exception
messages for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (field, reason, ids)

Example:
    try:
        await service.create_configuration(org_id, draft)
    except ValidationError as e:
        form.set_error(e.field, e.reason)
    except DefaultConfigurationConflictError as e:
        banner(f"{e.service_type} already has default {e.existing_id}")

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    OrderTaxError (base)
    |
    +-- ValidationError
    |
    +-- ConflictError
    |   +-- DefaultConfigurationConflictError
    |
    +-- ConfigurationNotFoundError
    |
    +-- TransientFailure
        +-- StoreUnavailableError
        +-- StoreTimeoutError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_ERROR            | Negative price, quantity < 1, rate
                |                             | outside [0, 100], malformed draft
----------------|-----------------------------|-----------------------------------------
Conflict        | DEFAULT_CONFIGURATION_CONFLICT | Second active default for the same
                |                             | (organization, service type)
----------------|-----------------------------|-----------------------------------------
Lookup          | CONFIGURATION_NOT_FOUND     | Update/delete/get of unknown id
----------------|-----------------------------|-----------------------------------------
Transient       | STORE_UNAVAILABLE           | Network error or 5xx from the store
                | STORE_TIMEOUT               | Store call exceeded its time budget
----------------|-----------------------------|-----------------------------------------

===============================================================================
PROPAGATION
===============================================================================

ValidationError, ConflictError and ConfigurationNotFoundError are caller
bugs or user input errors; they propagate to the UI unchanged.

TransientFailure NEVER escapes ``OrderTaxService.calculate_tax``.  The
service answers with the last good cached totals or the "no configuration"
fallback instead.  It does propagate out of configuration management calls
so the settings screen can offer a retry.

"No configuration applies" is not an exception at all: the resolver returns
``None`` and the calculator produces subtotal-only totals.
"""

from __future__ import annotations

from typing import Any


class OrderTaxError(Exception):
    """
    Base exception for all order tax errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "ORDER_TAX_ERROR"


# Validation


class ValidationError(OrderTaxError):
    """Invalid input: never clamped, never coerced."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str, value: Any = None):
        self.field = field
        self.reason = reason
        self.value = value
        super().__init__(f"Invalid {field}: {reason}")


# Conflicts


class ConflictError(OrderTaxError):
    """Base exception for configuration invariant conflicts."""

    code: str = "CONFLICT"


class DefaultConfigurationConflictError(ConflictError):
    """
    An organization may hold at most one active default per service type.
    """

    code: str = "DEFAULT_CONFIGURATION_CONFLICT"

    def __init__(self, organization_id: str, service_type: str, existing_id: str):
        self.organization_id = organization_id
        self.service_type = service_type
        self.existing_id = existing_id
        super().__init__(
            f"Organization {organization_id} already has an active default "
            f"tax configuration for {service_type}: {existing_id}"
        )


# Lookup


class ConfigurationNotFoundError(OrderTaxError):
    """Tax configuration with given ID was not found for the organization."""

    code: str = "CONFIGURATION_NOT_FOUND"

    def __init__(self, organization_id: str, configuration_id: str):
        self.organization_id = organization_id
        self.configuration_id = configuration_id
        super().__init__(
            f"Tax configuration not found: {configuration_id} "
            f"(organization {organization_id})"
        )


# Transient failures


class TransientFailure(OrderTaxError):
    """Base exception for recoverable store failures (network, timeout)."""

    code: str = "TRANSIENT_FAILURE"


class StoreUnavailableError(TransientFailure):
    """The configuration store could not be reached or answered with 5xx."""

    code: str = "STORE_UNAVAILABLE"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Tax configuration store unavailable during {operation}: {reason}")


class StoreTimeoutError(TransientFailure):
    """A store call did not finish within its time budget."""

    code: str = "STORE_TIMEOUT"

    def __init__(self, operation: str, timeout_seconds: float):
        self.operation = operation
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Tax configuration store timed out during {operation} "
            f"after {timeout_seconds}s"
        )
