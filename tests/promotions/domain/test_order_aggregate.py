"""Tests for Order aggregate: derived totals, items and applied coupons."""

from datetime import UTC, datetime

import pytest
from promotions.coupon.coupon import Coupon
from promotions.order.order import AppliedCoupon, Order, OrderItem
from promotions.shared.money import Money
from protean.exceptions import InvalidOperationError, ValidationError
from protean.utils import DomainObjects

START = datetime(2025, 1, 1, tzinfo=UTC)
END = datetime(2025, 12, 31, tzinfo=UTC)


def _make_item(price="50.00", quantity=1, currency="USD", **kwargs):
    return OrderItem(
        product_id="prod-1",
        product_name="Widget",
        sku="WID-1",
        quantity=quantity,
        unit_price=Money.create(price, currency),
        **kwargs,
    )


def _make_order(*items, shipping="0", tax="0", currency="USD"):
    return Order.create(
        customer_id="cust-001",
        currency=currency,
        country_code="us",
        shipping_amount=Money.create(shipping, currency),
        tax_amount=Money.create(tax, currency),
        items=list(items),
    )


def _make_coupon(code="SAVE10", **options):
    return Coupon.create_percentage(code, "Save 10%", "0.10", START, END, **options)


def test_element_types():
    assert Order.element_type == DomainObjects.AGGREGATE
    assert OrderItem.element_type == DomainObjects.ENTITY
    assert AppliedCoupon.element_type == DomainObjects.ENTITY


class TestOrderItem:
    def test_total_price(self):
        item = _make_item(price="19.99", quantity=3)
        assert item.total_price == Money.create(59.97)

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValidationError):
            _make_item(quantity=0)

    def test_unit_price_is_required(self):
        with pytest.raises(ValidationError):
            OrderItem(product_name="Widget", quantity=1)

    def test_flags_default_empty(self):
        item = _make_item()
        assert item.flags == {}
        assert item.is_on_sale is False
        assert item.is_gift_card is False


class TestOrderCreation:
    def test_charges_default_to_zero_in_order_currency(self):
        order = Order.create(customer_id="cust-001", currency="eur")
        assert order.currency == "EUR"
        assert order.shipping_amount == Money.zero("EUR")
        assert order.tax_amount == Money.zero("EUR")

    def test_country_code_is_upper_cased(self):
        assert _make_order().country_code == "US"

    def test_charges_are_required_without_factory(self):
        with pytest.raises(ValidationError):
            Order(customer_id="cust-001", currency="USD")

    def test_shipping_in_other_currency_rejected(self):
        with pytest.raises(ValidationError) as exc:
            Order.create(currency="USD", shipping_amount=Money.create(5, "EUR"))
        assert "shipping_amount" in exc.value.messages

    def test_item_in_other_currency_rejected(self):
        with pytest.raises(ValidationError):
            _make_order(_make_item(currency="EUR"))


class TestOrderTotals:
    def test_empty_order(self):
        order = _make_order()
        assert order.subtotal == Money.zero("USD")
        assert order.total == Money.zero("USD")

    def test_subtotal_and_total(self):
        order = _make_order(_make_item("50.00", 2), _make_item("25.00"), shipping="10", tax="8.50")
        assert order.subtotal == Money.create(125)
        assert order.total == Money.create(143.50)

    def test_total_reflects_applied_coupons(self):
        order = _make_order(_make_item("100.00"))
        order.apply_coupon(_make_coupon(), Money.create(10))

        assert order.total_discount == Money.create(10)
        assert order.total == Money.create(90)

    def test_total_clamps_at_zero(self):
        order = _make_order(_make_item("10.00"))
        order.apply_coupon(_make_coupon(), Money.create(25))
        assert order.total == Money.zero("USD")

    def test_totals_are_recomputed_after_item_changes(self):
        item = _make_item("40.00")
        order = _make_order(item)
        order.add_item(_make_item("60.00"))
        assert order.subtotal == Money.create(100)

        order.remove_item(item.id)
        assert order.subtotal == Money.create(60)


class TestOrderItems:
    def test_add_item_in_other_currency_rejected(self):
        order = _make_order()
        with pytest.raises(InvalidOperationError):
            order.add_item(_make_item(currency="EUR"))

    def test_remove_unknown_item_rejected(self):
        order = _make_order(_make_item())
        with pytest.raises(ValidationError) as exc:
            order.remove_item("missing")
        assert "item_id" in exc.value.messages

    def test_items_keep_insertion_order(self):
        first, second, third = _make_item("1.00"), _make_item("2.00"), _make_item("3.00")
        order = _make_order(first, second)
        order.add_item(third)

        assert [i.id for i in order.items] == [first.id, second.id, third.id]


class TestOrderCoupons:
    def test_apply_coupon_records_discount(self):
        order = _make_order(_make_item("100.00"))
        coupon = _make_coupon(is_combinable=True)
        applied_at = datetime(2025, 6, 1, tzinfo=UTC)

        applied = order.apply_coupon(coupon, Money.create(10), applied_at=applied_at)

        assert applied.coupon_id == coupon.id
        assert applied.coupon_code == "SAVE10"
        assert applied.coupon_name == "Save 10%"
        assert applied.is_combinable is True
        assert applied.discount_amount == Money.create(10)
        assert applied.applied_at == applied_at
        assert order.has_coupon(coupon.id)

    def test_apply_coupon_in_other_currency_rejected(self):
        order = _make_order(_make_item("100.00"))
        with pytest.raises(InvalidOperationError):
            order.apply_coupon(_make_coupon(), Money.create(10, "EUR"))

    def test_find_applied_coupon(self):
        order = _make_order(_make_item("100.00"))
        coupon = _make_coupon()
        order.apply_coupon(coupon, Money.create(10))

        assert order.find_applied_coupon(coupon.id).coupon_code == "SAVE10"
        assert order.find_applied_coupon("unknown") is None

    def test_remove_coupon(self):
        order = _make_order(_make_item("100.00"))
        coupon = _make_coupon()
        order.apply_coupon(coupon, Money.create(10))

        removed = order.remove_coupon(coupon.id)

        assert removed.coupon_id == coupon.id
        assert len(order.applied_coupons) == 0
        assert order.total == Money.create(100)

    def test_remove_missing_coupon_returns_none(self):
        assert _make_order().remove_coupon("missing") is None

    def test_clear_coupons(self):
        order = _make_order(_make_item("100.00"))
        order.apply_coupon(_make_coupon("ONE", is_combinable=True), Money.create(5))
        order.apply_coupon(_make_coupon("TWO", is_combinable=True), Money.create(5))

        order.clear_coupons()

        assert len(order.applied_coupons) == 0
        assert order.total_discount == Money.zero("USD")

    def test_restore_coupons_keeps_original_order(self):
        order = _make_order(_make_item("100.00"))
        order.apply_coupon(_make_coupon("ONE", is_combinable=True), Money.create(5))
        order.apply_coupon(_make_coupon("TWO", is_combinable=True), Money.create(7))
        snapshot = list(order.applied_coupons)

        order.clear_coupons()
        order.restore_coupons(snapshot)

        assert [ac.coupon_code for ac in order.applied_coupons] == ["ONE", "TWO"]
        assert order.total_discount == Money.create(12)
