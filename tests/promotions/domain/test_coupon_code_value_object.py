"""Tests for CouponCode value object."""

import pytest
from promotions.exceptions import InvalidCouponCodeError
from promotions.shared.coupon_code import CouponCode, normalize_code
from protean.exceptions import ValidationError
from protean.utils import DomainObjects


def test_coupon_code_element_type():
    assert CouponCode.element_type == DomainObjects.VALUE_OBJECT


class TestCouponCode:
    def test_trims_and_upper_cases(self):
        assert CouponCode.create("  save10 ").value == "SAVE10"

    def test_accepts_hyphens_and_underscores(self):
        assert CouponCode.create("spring_sale-2025").value == "SPRING_SALE-2025"

    def test_normalization_is_idempotent(self):
        once = CouponCode.create(" Summer-25 ")
        assert CouponCode.create(once.value).value == once.value

    def test_str(self):
        assert str(CouponCode.create("save10")) == "SAVE10"

    def test_boundary_lengths(self):
        assert CouponCode.create("abc").value == "ABC"
        assert CouponCode.create("a" * 50).value == "A" * 50


class TestInvalidCouponCode:
    @pytest.mark.parametrize(
        "raw",
        ["", "   ", "AB", "A" * 51, "SAVE 10", "SAVE\t10", "SAVE!", "10%OFF"],
    )
    def test_rejected(self, raw):
        with pytest.raises(InvalidCouponCodeError):
            CouponCode.create(raw)

    def test_none_rejected(self):
        with pytest.raises(InvalidCouponCodeError):
            normalize_code(None)

    def test_error_carries_code_and_message(self):
        with pytest.raises(InvalidCouponCodeError) as exc:
            normalize_code("AB")
        assert exc.value.coupon_code == "AB"
        assert "at least 3" in str(exc.value)
        assert "coupon_code" in exc.value.messages

    def test_error_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            CouponCode.create("SAVE!")

    @pytest.mark.parametrize("raw", ["save10", " SAVE10", "AB", "SAVE!"])
    def test_direct_construction_requires_canonical_code(self, raw):
        with pytest.raises(ValidationError) as exc:
            CouponCode(value=raw)
        assert "value" in exc.value.messages
