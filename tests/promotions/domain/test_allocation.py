"""Tests for proportional discount allocation across order lines."""

from decimal import Decimal

import pytest
from promotions.evaluation.allocation import allocate_discount
from promotions.order.order import OrderItem
from promotions.shared.money import Money
from protean.exceptions import InvalidOperationError


def _make_item(price, quantity=1, currency="USD"):
    return OrderItem(
        product_name=f"Item {price}",
        quantity=quantity,
        unit_price=Money.create(price, currency),
    )


class TestAllocateDiscount:
    def test_proportional_split(self):
        items = [_make_item("20.00"), _make_item("80.00")]

        lines = allocate_discount(items, Money.create(10))

        assert [line.discount_amount for line in lines] == [Money.create(2), Money.create(8)]

    def test_equal_items_share_equally(self):
        items = [_make_item("50.00"), _make_item("50.00")]

        lines = allocate_discount(items, Money.create(10))

        assert [line.discount_amount.decimal_amount for line in lines] == [Decimal("5.00"), Decimal("5.00")]

    def test_last_item_takes_rounding_remainder(self):
        items = [_make_item("10.00"), _make_item("10.00"), _make_item("10.00")]

        lines = allocate_discount(items, Money.create(10))

        assert [line.discount_amount.decimal_amount for line in lines] == [
            Decimal("3.33"),
            Decimal("3.33"),
            Decimal("3.34"),
        ]

    def test_shares_sum_to_total(self):
        items = [_make_item("13.37"), _make_item("7.01", quantity=3), _make_item("99.99")]
        total = Money.create("17.77")

        lines = allocate_discount(items, total)

        assert Money.sum((line.discount_amount for line in lines), "USD") == total

    def test_quantity_counts_towards_weight(self):
        items = [_make_item("10.00", quantity=3), _make_item("10.00")]

        lines = allocate_discount(items, Money.create(8))

        assert lines[0].discount_amount == Money.create(6)
        assert lines[1].discount_amount == Money.create(2)

    def test_line_prices(self):
        item = _make_item("25.00", quantity=2)

        (line,) = allocate_discount([item], Money.create(5))

        assert line.item.id == item.id
        assert line.original_price == Money.create(50)
        assert line.final_price == Money.create(45)

    def test_each_item_appears_once_in_order(self):
        items = [_make_item("30.00"), _make_item("20.00"), _make_item("10.00")]

        lines = allocate_discount(items, Money.create(6))

        assert [line.item.id for line in lines] == [item.id for item in items]

    def test_zero_priced_items_cannot_absorb_a_discount(self):
        items = [_make_item("0"), _make_item("0")]

        with pytest.raises(InvalidOperationError):
            allocate_discount(items, Money.create(5))

    def test_discount_larger_than_lines_rejected(self):
        with pytest.raises(InvalidOperationError):
            allocate_discount([_make_item("10.00")], Money.create(25))

    def test_rounding_never_pushes_a_share_negative(self):
        items = [_make_item("1.00") for _ in range(9)] + [_make_item("0.01")]
        total = Money.create("0.05")

        lines = allocate_discount(items, total)

        assert all(not line.discount_amount.is_negative for line in lines)
        assert all(not line.final_price.is_negative for line in lines)
        assert Money.sum((line.discount_amount for line in lines), "USD") == total

    def test_overflow_on_last_line_moves_to_earlier_lines(self):
        # 0.08 x 0.3 rounds down to 0.02 three times, leaving 0.02 for a 0.01 line
        items = [_make_item("0.03") for _ in range(3)] + [_make_item("0.01")]

        lines = allocate_discount(items, Money.create("0.08"))

        assert [line.discount_amount.decimal_amount for line in lines] == [
            Decimal("0.02"),
            Decimal("0.02"),
            Decimal("0.03"),
            Decimal("0.01"),
        ]
        assert all(not line.final_price.is_negative for line in lines)

    def test_full_discount_zeroes_every_line(self):
        items = [_make_item("3.33"), _make_item("3.33"), _make_item("3.34")]

        lines = allocate_discount(items, Money.create(10))

        assert all(line.final_price.is_zero for line in lines)

    def test_yen_allocation_uses_whole_units(self):
        items = [_make_item(1000, currency="JPY") for _ in range(3)]
        total = Money.create(100, "JPY")

        lines = allocate_discount(items, total)

        assert [line.discount_amount.decimal_amount for line in lines] == [Decimal(33), Decimal(33), Decimal(34)]

    def test_no_items(self):
        assert allocate_discount([], Money.create(10)) == []

    def test_zero_discount(self):
        assert allocate_discount([_make_item("10.00")], Money.zero("USD")) == []
