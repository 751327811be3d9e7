"""Discount calculator: eligible items, scope base, type dispatch and cap.

The set of discount kinds is closed: ``calculate_discount_amount`` matches
on every supported ``CouponType`` and treats anything else as a programming
error.
"""

from dataclasses import dataclass, field

from protean.exceptions import IncorrectUsageError

from promotions.coupon.coupon import Coupon, CouponType, DiscountScope
from promotions.evaluation.allocation import allocate_discount
from promotions.evaluation.results import LineDiscount
from promotions.order.order import Order, OrderItem
from promotions.shared.money import Money

# Scopes whose discount lands on merchandise and is therefore spread over lines
_LINE_ALLOCATED_SCOPES = frozenset(
    {
        DiscountScope.MERCHANDISE_ONLY,
        DiscountScope.SPECIFIC_ITEMS,
        DiscountScope.ORDER_TOTAL,
        DiscountScope.MERCHANDISE_AND_SHIPPING,
    }
)


@dataclass
class DiscountCalculation:
    discount_amount: Money
    eligible_items: list[OrderItem] = field(default_factory=list)
    line_discounts: list[LineDiscount] = field(default_factory=list)

    @property
    def has_eligible_items(self) -> bool:
        return bool(self.eligible_items)


def is_item_eligible(coupon: Coupon, item: OrderItem) -> bool:
    """Apply the coupon's category targeting and sale / gift-card exclusions."""
    if coupon.included_categories:
        included = {category.lower() for category in coupon.included_categories}
        if item.category.lower() not in included:
            return False

    if coupon.exclude_sale_items and item.is_on_sale:
        return False

    if coupon.exclude_gift_cards and item.is_gift_card:
        return False

    return True


def eligible_items(coupon: Coupon, order: Order) -> list[OrderItem]:
    return [item for item in order.items if is_item_eligible(coupon, item)]


def eligible_base_amount(coupon: Coupon, order: Order, items: list[OrderItem]) -> Money:
    """The part of the order the coupon's scope discounts."""
    merchandise = Money.sum((item.total_price for item in items), order.currency)

    match coupon.discount_scope:
        case DiscountScope.MERCHANDISE_ONLY | DiscountScope.SPECIFIC_ITEMS:
            return merchandise
        case DiscountScope.ORDER_TOTAL:
            return merchandise + order.shipping_amount + order.tax_amount
        case DiscountScope.SHIPPING_ONLY:
            return order.shipping_amount
        case DiscountScope.TAXES_ONLY:
            return order.tax_amount
        case DiscountScope.MERCHANDISE_AND_SHIPPING:
            return merchandise + order.shipping_amount
        case _:
            raise IncorrectUsageError(f"Unknown discount scope: {coupon.scope}")


def calculate_discount_amount(coupon: Coupon, order: Order, base: Money) -> Money:
    """Raw discount for ``coupon`` against ``base``, with the coupon's cap applied."""
    match coupon.coupon_type:
        case CouponType.PERCENTAGE:
            discount = base * coupon.discount_value
        case CouponType.FIXED_AMOUNT:
            discount = Money.min(coupon.fixed_amount, base)
        case CouponType.FREE_SHIPPING:
            discount = order.shipping_amount
        case _:
            raise IncorrectUsageError(f"Unsupported coupon type: {coupon.type}")

    if coupon.maximum_discount_amount is not None:
        discount = Money.min(discount, coupon.maximum_discount_amount)

    return discount


def allocates_to_lines(coupon: Coupon) -> bool:
    """Whether the coupon's discount is spread over merchandise lines."""
    return coupon.coupon_type != CouponType.FREE_SHIPPING and coupon.discount_scope in _LINE_ALLOCATED_SCOPES


def line_allocated_amount(discount: Money, items: list[OrderItem], currency: str) -> Money:
    """The part of ``discount`` that falls on merchandise lines.

    Order-total and merchandise-and-shipping discounts can exceed the
    merchandise they are spread over; the rest stays an order-level
    discount on shipping and tax.
    """
    merchandise = Money.sum((item.total_price for item in items), currency)
    return Money.min(discount, merchandise)


def calculate_discount(coupon: Coupon, order: Order) -> DiscountCalculation:
    """Compute the discount ``coupon`` grants on ``order`` and its line allocation.

    An empty eligible set yields a zero calculation with no eligible items;
    the caller reports that as a NoEligibleItems rejection.
    """
    items = eligible_items(coupon, order)
    if not items:
        return DiscountCalculation(discount_amount=Money.zero(order.currency))

    base = eligible_base_amount(coupon, order, items)
    discount = calculate_discount_amount(coupon, order, base)

    lines = []
    if allocates_to_lines(coupon):
        lines = allocate_discount(items, line_allocated_amount(discount, items, order.currency))

    return DiscountCalculation(discount_amount=discount, eligible_items=items, line_discounts=lines)
