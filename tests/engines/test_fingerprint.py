"""Tests for item fingerprints and cache keys."""

from decimal import Decimal

from order_tax_engines.fingerprint import CacheKey, compute_input_fingerprint, fingerprint_items
from order_tax_kernel.domain.values import OrderItemForTax, ServiceType


def _item(item_id="dal", quantity=1, price="120.00", modifiers=None):
    return OrderItemForTax(
        item_id, quantity, Decimal(price), Decimal(modifiers) if modifiers else None
    )


class TestFingerprintItems:
    def test_identical_items_identical_fingerprint(self):
        assert fingerprint_items([_item(), _item("roti")]) == fingerprint_items([_item(), _item("roti")])

    def test_order_sensitive(self):
        assert fingerprint_items([_item(), _item("roti")]) != fingerprint_items([_item("roti"), _item()])

    def test_decimal_scale_ignored(self):
        assert fingerprint_items([_item(price="1.5")]) == fingerprint_items([_item(price="1.50")])
        assert fingerprint_items([_item(price="100")]) == fingerprint_items([_item(price="100.00")])

    def test_sub_cent_precision_kept(self):
        assert fingerprint_items([_item(price="1.005")]) != fingerprint_items([_item(price="1.00")])

    def test_every_field_participates(self):
        base = fingerprint_items([_item()])
        assert fingerprint_items([_item("paneer")]) != base
        assert fingerprint_items([_item(quantity=2)]) != base
        assert fingerprint_items([_item(price="121.00")]) != base
        assert fingerprint_items([_item(modifiers="5.00")]) != base

    def test_separators_in_item_id_do_not_collide(self):
        # One line whose id spells out a second line vs. the two real lines
        crafted = [_item('a",1,"1",null],["b', quantity=2, price="3")]
        genuine = [_item("a", quantity=1, price="1"), _item("b", quantity=2, price="3")]
        legacy_style = [_item("a,1,1,null),(b", quantity=2, price="3")]

        assert fingerprint_items(crafted) != fingerprint_items(genuine)
        assert fingerprint_items(legacy_style) != fingerprint_items(genuine)

    def test_large_amounts_fingerprint(self):
        assert fingerprint_items([_item(price="9.99999999999E+11")]) == fingerprint_items(
            [_item(price="999999999999.00")]
        )

    def test_fixed_length_hex(self):
        fp = fingerprint_items([_item()])
        assert len(fp) == 16
        int(fp, 16)


class TestInputFingerprint:
    def test_missing_fields_hash_as_null(self):
        assert compute_input_fingerprint(("items",), {}) == compute_input_fingerprint(
            ("items",), {"items": None}
        )

    def test_dict_key_order_irrelevant(self):
        a = compute_input_fingerprint(("payload",), {"payload": {"a": 1, "b": 2}})
        b = compute_input_fingerprint(("payload",), {"payload": {"b": 2, "a": 1}})
        assert a == b


class TestCacheKey:
    def test_equal_for_equal_inputs(self):
        one = CacheKey.for_items("org-1", ServiceType.DINE_IN, [_item()])
        two = CacheKey.for_items("org-1", "DINE_IN", [_item(price="120")])
        assert one == two
        assert hash(one) == hash(two)

    def test_service_type_participates(self):
        assert CacheKey.for_items("org-1", ServiceType.DINE_IN, [_item()]) != CacheKey.for_items(
            "org-1", ServiceType.TAKEAWAY, [_item()]
        )

    def test_str(self):
        key = CacheKey.for_items("org-1", ServiceType.DELIVERY, [_item()])
        assert str(key).startswith("org-1:DELIVERY:")
