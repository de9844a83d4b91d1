"""
Property-based tests for the tax calculator and cache keys.

Properties checked over generated carts and configurations:
- Exclusive pricing: total == subtotal + tax, tax == round2(subtotal * rate / 100)
- Inclusive pricing: total is the raw subtotal and subtotal + tax == total
- Exemption: tax is zero whatever the rate
- No configuration: subtotal-only totals with a display message
- Every amount carries exactly two decimal places
- Line amounts are rounded before summation
- Tax never decreases as the rate increases
- Cache key fingerprints are deterministic and numeric-form agnostic
"""

from decimal import ROUND_HALF_UP, Decimal

from hypothesis import given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from order_tax_engines.calculator import ABSENT_CONFIGURATION_MESSAGE, TaxCalculator
from order_tax_engines.fingerprint import CacheKey, fingerprint_items
from order_tax_kernel.domain.values import (
    OrderItemForTax,
    ServiceType,
    TaxConfiguration,
)

CENT = Decimal("0.01")

prices = st.decimals(
    min_value=Decimal("0.00"),
    max_value=Decimal("99999.99"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)

rates = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("100"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)


@composite
def order_items(draw):
    """Generate a valid priced order line."""
    return OrderItemForTax(
        menu_item_id=draw(st.sampled_from(["dosa", "idli", "vada", "lassi"])),
        quantity=draw(st.integers(min_value=1, max_value=50)),
        unit_price=draw(prices),
        modifiers_price=draw(st.one_of(st.none(), prices)),
    )


carts = st.lists(order_items(), min_size=1, max_size=12)


def _configuration(rate: Decimal, *, inclusive: bool = False, exempt: bool = False) -> TaxConfiguration:
    return TaxConfiguration(
        id="cfg-prop",
        organization_id="org-prop",
        name="Property GST",
        tax_rate=rate,
        is_default=True,
        is_price_inclusive=inclusive,
        is_tax_exempt=exempt,
    )


def _raw_subtotal(items) -> Decimal:
    total = Decimal("0.00")
    for item in items:
        line = item.unit_price * item.quantity + (item.modifiers_price or Decimal("0"))
        total += line.quantize(CENT, rounding=ROUND_HALF_UP)
    return total


def _two_places(value: Decimal) -> bool:
    return value.as_tuple().exponent == -2


calculator = TaxCalculator()


class TestCalculatorProperties:
    @given(items=carts, rate=rates)
    @settings(max_examples=200)
    def test_exclusive_identity(self, items, rate):
        totals = calculator.compute(_configuration(rate), items)

        assert totals.subtotal_amount == _raw_subtotal(items)
        assert totals.total_amount == totals.subtotal_amount + totals.tax_amount
        expected_tax = (totals.subtotal_amount * rate / 100).quantize(CENT, rounding=ROUND_HALF_UP)
        assert totals.tax_amount == expected_tax
        assert all(_two_places(v) for v in
                   (totals.subtotal_amount, totals.tax_amount, totals.total_amount))

    @given(items=carts, rate=rates)
    @settings(max_examples=200)
    def test_inclusive_identity(self, items, rate):
        totals = calculator.compute(_configuration(rate, inclusive=True), items)

        assert totals.total_amount == _raw_subtotal(items)
        assert totals.subtotal_amount + totals.tax_amount == totals.total_amount
        assert Decimal("0") <= totals.tax_amount <= totals.total_amount
        assert all(_two_places(v) for v in
                   (totals.subtotal_amount, totals.tax_amount, totals.total_amount))

    @given(items=carts, rate=rates, inclusive=st.booleans())
    @settings(max_examples=100)
    def test_exemption_zeroes_tax(self, items, rate, inclusive):
        totals = calculator.compute(_configuration(rate, inclusive=inclusive, exempt=True), items)

        assert totals.tax_amount == Decimal("0")
        assert totals.total_amount == totals.subtotal_amount == _raw_subtotal(items)
        assert totals.tax_breakdown.is_tax_exempt is True

    @given(items=carts)
    @settings(max_examples=100)
    def test_absent_configuration(self, items):
        totals = calculator.compute(None, items, ServiceType.DELIVERY)

        assert totals.tax_amount == Decimal("0")
        assert totals.total_amount == totals.subtotal_amount
        assert totals.display_message == ABSENT_CONFIGURATION_MESSAGE
        assert totals.service_type is ServiceType.DELIVERY

    @given(items=carts, low=rates, high=rates)
    @settings(max_examples=100)
    def test_tax_monotonic_in_rate(self, items, low, high):
        if low > high:
            low, high = high, low

        low_tax = calculator.compute(_configuration(low), items).tax_amount
        high_tax = calculator.compute(_configuration(high), items).tax_amount

        assert low_tax <= high_tax

    @given(items=carts, rate=rates)
    @settings(max_examples=50)
    def test_deterministic(self, items, rate):
        configuration = _configuration(rate)

        assert calculator.compute(configuration, items) == calculator.compute(configuration, items)


class TestFingerprintProperties:
    @given(items=carts)
    @settings(max_examples=100)
    def test_same_items_same_key(self, items):
        first = CacheKey.for_items("org-prop", ServiceType.DINE_IN, items)
        second = CacheKey.for_items("org-prop", ServiceType.DINE_IN, list(items))

        assert first == second
        assert hash(first) == hash(second)

    @given(items=carts)
    @settings(max_examples=100)
    def test_trailing_zeros_ignored(self, items):
        padded = [
            OrderItemForTax(
                item.menu_item_id,
                item.quantity,
                item.unit_price.quantize(Decimal("0.0001")),
                item.modifiers_price,
            )
            for item in items
        ]

        assert fingerprint_items(items) == fingerprint_items(padded)

    @given(items=carts, service_type=st.sampled_from(list(ServiceType)))
    @settings(max_examples=50)
    def test_service_type_partitions_keys(self, items, service_type):
        key = CacheKey.for_items("org-prop", service_type, items)
        other = next(s for s in ServiceType if s is not service_type)

        assert key != CacheKey.for_items("org-prop", other, items)
