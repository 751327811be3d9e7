"""Order aggregate: in-memory cart state that coupons are evaluated against.

Totals are derived on every read from the items and applied coupons; nothing
is cached, so the order always reconciles with the coupons applied to it.
The Order is owned by a single caller at a time.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import InvalidOperationError, ValidationError
from protean.fields import Boolean, DateTime, Dict, HasMany, Identifier, Integer, String, ValueObject

from promotions.domain import promotions
from promotions.shared.money import Money


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@promotions.entity(part_of="Order")
class OrderItem:
    """A line item in an order, representing a product and quantity.

    Merchandising flags (sale, gift card, MAP protection) drive coupon
    eligibility; ``flags`` carries any custom markers.
    """

    product_id: Identifier()
    product_name: String(max_length=255, default="")
    sku: String(max_length=50, default="")
    quantity: Integer(required=True, min_value=1)
    unit_price: ValueObject(Money, required=True)
    category: String(max_length=100, default="")
    brand: String(max_length=100, default="")
    is_on_sale: Boolean(default=False)
    is_gift_card: Boolean(default=False)
    is_map_protected: Boolean(default=False)
    flags: Dict(default=dict)

    @property
    def total_price(self) -> Money:
        return self.unit_price * self.quantity


@promotions.entity(part_of="Order")
class AppliedCoupon:
    """A coupon applied to an order, with the discount it granted.

    The coupon's code, name and combinability are captured when it is
    applied; the full rules are looked up by ``coupon_id`` when needed.
    """

    coupon_id: Identifier(required=True)
    coupon_code: String(required=True, max_length=50)
    coupon_name: String(max_length=255, default="")
    is_combinable: Boolean(default=False)
    discount_amount: ValueObject(Money, required=True)
    applied_at: DateTime()


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@promotions.aggregate
class Order:
    customer_id: Identifier()
    currency: String(max_length=3, default="USD")
    country_code: String(max_length=2, default="")
    shipping_amount: ValueObject(Money, required=True)
    tax_amount: ValueObject(Money, required=True)
    items: HasMany(OrderItem)
    applied_coupons: HasMany(AppliedCoupon)
    created_at: DateTime()

    @invariant.post
    def amounts_must_use_order_currency(self):
        for field in ("shipping_amount", "tax_amount"):
            amount = getattr(self, field)
            if amount is not None and amount.currency != self.currency:
                raise ValidationError({field: [f"Must be expressed in {self.currency}"]})
        for item in self.items:
            if item.unit_price.currency != self.currency:
                raise ValidationError({"items": [f"Item prices must be expressed in {self.currency}"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        customer_id=None,
        currency="USD",
        country_code="",
        shipping_amount=None,
        tax_amount=None,
        items=None,
    ):
        """Build an order; missing shipping and tax default to zero in the order currency."""
        currency = str(currency or "USD").strip().upper()
        return cls(
            customer_id=customer_id,
            currency=currency,
            country_code=(country_code or "").strip().upper(),
            shipping_amount=shipping_amount if shipping_amount is not None else Money.zero(currency),
            tax_amount=tax_amount if tax_amount is not None else Money.zero(currency),
            items=items or [],
            created_at=datetime.now(UTC),
        )

    # -------------------------------------------------------------------
    # Derived totals
    # -------------------------------------------------------------------
    @property
    def subtotal(self) -> Money:
        """Sum of item totals before any discount."""
        return Money.sum((item.total_price for item in self.items), self.currency)

    @property
    def total_discount(self) -> Money:
        return Money.sum((applied.discount_amount for applied in self.applied_coupons), self.currency)

    @property
    def total(self) -> Money:
        """Final amount due; clamped at zero when discounts exceed the charges."""
        gross = self.subtotal + self.shipping_amount + self.tax_amount
        return Money.max(gross - self.total_discount, Money.zero(self.currency))

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, item: OrderItem):
        if item is None:
            raise ValidationError({"item": ["Item is required"]})
        if item.unit_price.currency != self.currency:
            raise InvalidOperationError(f"Cannot add a {item.unit_price.currency} item to a {self.currency} order")
        self.add_items(item)

    def remove_item(self, item_id):
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ValidationError({"item_id": ["Item not found in order"]})
        self.remove_items(item)

    # -------------------------------------------------------------------
    # Coupon management
    # -------------------------------------------------------------------
    def find_applied_coupon(self, coupon_id) -> AppliedCoupon | None:
        return next((ac for ac in self.applied_coupons if str(ac.coupon_id) == str(coupon_id)), None)

    def has_coupon(self, coupon_id) -> bool:
        return self.find_applied_coupon(coupon_id) is not None

    def apply_coupon(self, coupon, discount_amount: Money, applied_at: datetime | None = None) -> AppliedCoupon:
        """Record ``coupon`` as applied with the given discount."""
        if coupon is None:
            raise ValidationError({"coupon": ["Coupon is required"]})
        if discount_amount.currency != self.currency:
            raise InvalidOperationError(
                f"Discount in {discount_amount.currency} cannot be applied to a {self.currency} order"
            )

        applied = AppliedCoupon(
            coupon_id=str(coupon.id),
            coupon_code=coupon.code,
            coupon_name=coupon.name or "",
            is_combinable=bool(coupon.is_combinable),
            discount_amount=discount_amount,
            applied_at=applied_at or datetime.now(UTC),
        )
        self.add_applied_coupons(applied)
        return applied

    def remove_coupon(self, coupon_id) -> AppliedCoupon | None:
        """Remove the applied coupon with ``coupon_id``; returns it, or None if absent."""
        applied = self.find_applied_coupon(coupon_id)
        if applied is not None:
            self.remove_applied_coupons(applied)
        return applied

    def clear_coupons(self):
        for applied in list(self.applied_coupons):
            self.remove_applied_coupons(applied)

    def restore_coupons(self, applied_coupons):
        """Put the applied-coupon list back to ``applied_coupons``, in that order."""
        self.clear_coupons()
        for applied in applied_coupons:
            self.add_applied_coupons(applied)
