"""Coupon aggregate: a named discount rule with eligibility constraints and a validity window.

A coupon is read-only to the evaluator. Administrative changes (pause,
resume, reschedule) go through the methods below and are persisted by the
coupon repository.
"""

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, List, String, Text, ValueObject

from promotions.domain import promotions
from promotions.exceptions import InvalidCouponCodeError
from promotions.shared.coupon_code import normalize_code
from promotions.shared.money import Money, to_decimal


class CouponType(Enum):
    PERCENTAGE = "Percentage"
    FIXED_AMOUNT = "FixedAmount"
    FREE_SHIPPING = "FreeShipping"
    # Reserved: accepted on the aggregate, not yet supported by the calculator
    BUY_X_GET_Y = "BuyXGetY"
    SPEND_X_SAVE_Y = "SpendXSaveY"
    GIFT_WITH_PURCHASE = "GiftWithPurchase"


class DiscountScope(Enum):
    """Which monetary components of an order a discount is computed against."""

    MERCHANDISE_ONLY = "MerchandiseOnly"
    ORDER_TOTAL = "OrderTotal"
    SHIPPING_ONLY = "ShippingOnly"
    TAXES_ONLY = "TaxesOnly"
    MERCHANDISE_AND_SHIPPING = "MerchandiseAndShipping"
    SPECIFIC_ITEMS = "SpecificItems"


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _enum_value(value):
    return value.value if isinstance(value, Enum) else value


@promotions.aggregate
class Coupon:
    """A promotion's rules and constraints.

    ``value`` holds the percentage as a fraction (0.10 for 10%) for
    percentage coupons and the amount off for fixed-amount coupons. It is
    ignored for free-shipping coupons.
    """

    code: String(required=True, max_length=50)
    name: String(max_length=255, default="")
    description: Text()
    type: String(required=True, choices=CouponType)
    value: Float(default=0.0)
    currency: String(max_length=3, default="USD")
    start_date: DateTime(required=True)
    end_date: DateTime(required=True)
    is_active: Boolean(default=True)

    # Usage limits
    global_usage_limit: Integer(min_value=0)
    per_customer_usage_limit: Integer(min_value=0)

    # Thresholds
    minimum_order_amount: ValueObject(Money)
    maximum_discount_amount: ValueObject(Money)

    is_combinable: Boolean(default=False)
    scope: String(choices=DiscountScope, default=DiscountScope.MERCHANDISE_ONLY.value)

    # Item targeting
    included_categories: List(content_type=String, default=list)
    exclude_sale_items: Boolean(default=False)
    exclude_gift_cards: Boolean(default=False)

    # Customer and market restrictions
    require_first_order: Boolean(default=False)
    allowed_customer_groups: List(content_type=String, default=list)
    allowed_countries: List(content_type=String, default=list)
    allowed_currencies: List(content_type=String, default=list)

    created_at: DateTime()
    modified_at: DateTime()

    @invariant.post
    def code_must_be_canonical(self):
        try:
            canonical = normalize_code(self.code)
        except InvalidCouponCodeError as exc:
            raise ValidationError({"code": [exc.message]}) from None

        if canonical != self.code:
            raise ValidationError({"code": ["Coupon code must be trimmed and upper-cased"]})

    @invariant.post
    def value_must_match_coupon_type(self):
        value = self.discount_value

        if value < 0:
            raise ValidationError({"value": ["Discount value cannot be negative"]})

        if self.type == CouponType.PERCENTAGE.value and not (0 <= value <= 1):
            raise ValidationError({"value": ["Percentage must be between 0 and 1"]})

        if self.type == CouponType.FIXED_AMOUNT.value and value <= 0:
            raise ValidationError({"value": ["Amount must be greater than zero"]})

    @invariant.post
    def start_date_must_precede_end_date(self):
        if self.start_date and self.end_date and as_utc(self.start_date) >= as_utc(self.end_date):
            raise ValidationError({"start_date": ["Start date must be before end date"]})

    # -------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, code, name, coupon_type, value, start_date, end_date, currency="USD", **options):
        """Normalize the code, currency and market codes, then build the coupon."""
        if not isinstance(currency, str) or not currency.strip():
            raise ValidationError({"currency": ["Currency code cannot be empty"]})

        try:
            code = normalize_code(code)
        except InvalidCouponCodeError as exc:
            raise ValidationError({"code": [exc.message]}) from None

        for field in ("allowed_countries", "allowed_currencies"):
            if options.get(field):
                options[field] = [entry.strip().upper() for entry in options[field]]

        if options.get("scope") is not None:
            options["scope"] = _enum_value(options["scope"])

        now = datetime.now(UTC)
        return cls(
            code=code,
            name=name,
            type=_enum_value(coupon_type),
            value=float(to_decimal(value)),
            currency=currency.strip().upper(),
            start_date=as_utc(start_date),
            end_date=as_utc(end_date),
            created_at=now,
            modified_at=now,
            **options,
        )

    @classmethod
    def create_percentage(cls, code, name, percentage, start_date, end_date, **options):
        """Create a percentage coupon; ``percentage`` is a fraction between 0 and 1."""
        return cls.create(code, name, CouponType.PERCENTAGE, percentage, start_date, end_date, **options)

    @classmethod
    def create_fixed_amount(cls, code, name, amount, currency, start_date, end_date, **options):
        return cls.create(code, name, CouponType.FIXED_AMOUNT, amount, start_date, end_date, currency, **options)

    @classmethod
    def create_free_shipping(cls, code, name, start_date, end_date, **options):
        return cls.create(code, name, CouponType.FREE_SHIPPING, 0, start_date, end_date, **options)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def coupon_type(self) -> CouponType:
        return CouponType(self.type)

    @property
    def discount_scope(self) -> DiscountScope:
        return DiscountScope(self.scope)

    @property
    def discount_value(self) -> Decimal:
        return to_decimal(self.value or 0.0)

    @property
    def fixed_amount(self) -> Money | None:
        if self.coupon_type != CouponType.FIXED_AMOUNT:
            return None
        return Money.create(self.discount_value, self.currency)

    @property
    def percentage(self) -> Decimal | None:
        if self.coupon_type != CouponType.PERCENTAGE:
            return None
        return self.discount_value

    def is_valid_at(self, current_time: datetime) -> bool:
        """True when the coupon is active and ``current_time`` falls inside its window."""
        current_time = as_utc(current_time)
        return bool(self.is_active) and as_utc(self.start_date) <= current_time <= as_utc(self.end_date)

    # -------------------------------------------------------------------
    # Administration
    # -------------------------------------------------------------------
    def pause(self):
        self.is_active = False
        self.modified_at = datetime.now(UTC)

    def resume(self):
        self.is_active = True
        self.modified_at = datetime.now(UTC)

    def reschedule(self, start_date: datetime, end_date: datetime):
        """Move the validity window."""
        start_date, end_date = as_utc(start_date), as_utc(end_date)
        if start_date >= end_date:
            raise ValidationError({"start_date": ["Start date must be before end date"]})

        with atomic_change(self):
            self.start_date = start_date
            self.end_date = end_date
            self.modified_at = datetime.now(UTC)
