"""
Domain validation and parsing helpers.

Pure checks with no I/O.  Numbers enter the engine either as ``int`` /
``Decimal`` values or as text that goes through exactly one of the
``parse_*`` functions below.  Anything non-numeric, non-finite or out of
range is rejected with ``ValidationError``; nothing is clamped and nothing
becomes NaN.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from order_tax_kernel.exceptions import ValidationError

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500
REGION_MAX_LENGTH = 100

TAX_RATE_MIN = Decimal("0")
TAX_RATE_MAX = Decimal("100")
TAX_RATE_DECIMAL_PLACES = 2

# Largest accepted price and quantity; line amounts stay within context precision
MAX_AMOUNT = Decimal("999999999999.99")
MAX_QUANTITY = 1_000_000


def require_decimal(value: Any, field: str = "amount") -> Decimal:
    """Return ``value`` as a finite Decimal; ints are widened, floats refused."""
    # bool is an int subclass; True is not a price
    if isinstance(value, bool):
        raise ValidationError(field, "must be a number, not a boolean", value)
    if isinstance(value, int):
        return Decimal(value)
    if not isinstance(value, Decimal):
        raise ValidationError(
            field, f"must be Decimal or int, not {type(value).__name__}", value
        )
    if not value.is_finite():
        raise ValidationError(field, "must be a finite number", value)
    return value


def require_non_negative(value: Any, field: str) -> Decimal:
    amount = require_decimal(value, field)
    if amount < 0:
        raise ValidationError(field, "cannot be negative", value)
    if amount > MAX_AMOUNT:
        raise ValidationError(field, f"cannot exceed {MAX_AMOUNT}", value)
    return amount


def require_quantity(value: Any, field: str = "quantity") -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(field, "must be an integer", value)
    if value < 1:
        raise ValidationError(field, "must be at least 1", value)
    if value > MAX_QUANTITY:
        raise ValidationError(field, f"cannot exceed {MAX_QUANTITY}", value)
    return value


def require_tax_rate(value: Any, field: str = "tax_rate") -> Decimal:
    rate = require_decimal(value, field)
    if rate < TAX_RATE_MIN:
        raise ValidationError(field, "Tax rate cannot be negative", value)
    if rate > TAX_RATE_MAX:
        raise ValidationError(field, "Tax rate cannot exceed 100%", value)
    return rate


def require_rate_precision(rate: Decimal, field: str = "tax_rate") -> Decimal:
    """Reject rates with more than two decimal places (5.125 is not a GST rate)."""
    exponent = rate.normalize().as_tuple().exponent
    if isinstance(exponent, int) and -exponent > TAX_RATE_DECIMAL_PLACES:
        raise ValidationError(
            field,
            f"must have at most {TAX_RATE_DECIMAL_PLACES} decimal places",
            rate,
        )
    return rate


def require_text(
    value: Any,
    field: str,
    *,
    min_length: int = 0,
    max_length: int | None = None,
    optional: bool = False,
) -> str | None:
    if value is None:
        if optional:
            return None
        raise ValidationError(field, "is required", value)
    if not isinstance(value, str):
        raise ValidationError(field, "must be text", value)
    text = value.strip()
    if optional and not text:
        return None
    if len(text) < min_length:
        raise ValidationError(
            field, f"must be at least {min_length} characters long", value
        )
    if max_length is not None and len(text) > max_length:
        raise ValidationError(
            field, f"must be at most {max_length} characters long", value
        )
    return text


# ---------------------------------------------------------------------------
# Textual input
# ---------------------------------------------------------------------------


def parse_decimal(field: str, text: Any) -> Decimal:
    """
    Parse a numeric value from text (form input, JSON string fields).

    Decimal and int values pass straight through ``require_decimal``.  Floats
    are converted through ``repr`` so ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary expansion.

    Raises:
        ValidationError: empty, non-numeric, NaN or infinite input.
    """
    if isinstance(text, (Decimal, int)) and not isinstance(text, bool):
        return require_decimal(text, field)
    if isinstance(text, float):
        text = repr(text)
    if not isinstance(text, str) or not text.strip():
        raise ValidationError(field, "must be a number", text)
    try:
        value = Decimal(text.strip())
    except InvalidOperation:
        raise ValidationError(field, "must be a number", text) from None
    if not value.is_finite():
        raise ValidationError(field, "must be a finite number", text)
    return value


def parse_money(field: str, text: Any) -> Decimal:
    value = parse_decimal(field, text)
    if value < 0:
        raise ValidationError(field, "cannot be negative", text)
    if value > MAX_AMOUNT:
        raise ValidationError(field, f"cannot exceed {MAX_AMOUNT}", text)
    return value


def parse_tax_rate(text: Any, field: str = "tax_rate") -> Decimal:
    rate = require_tax_rate(parse_decimal(field, text), field)
    return require_rate_precision(rate, field)


def parse_quantity(text: Any, field: str = "quantity") -> int:
    value = parse_decimal(field, text)
    if value != value.to_integral_value():
        raise ValidationError(field, "must be an integer", text)
    return require_quantity(int(value), field)
