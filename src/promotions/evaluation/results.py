"""Outcome types returned by the coupon evaluator.

None of these are persisted; each evaluator call builds them fresh.
"""

from dataclasses import dataclass, field
from enum import Enum

from promotions.coupon.coupon import Coupon
from promotions.order.order import OrderItem
from promotions.shared.money import Money


class CouponRejectionReason(Enum):
    NOT_FOUND = "NotFound"
    EXPIRED = "Expired"
    NOT_YET_ACTIVE = "NotYetActive"
    INACTIVE = "Inactive"
    BELOW_MINIMUM = "BelowMinimum"
    GLOBAL_LIMIT_REACHED = "GlobalLimitReached"
    CUSTOMER_LIMIT_REACHED = "CustomerLimitReached"
    ALREADY_USED = "AlreadyUsed"
    CUSTOMER_NOT_ELIGIBLE = "CustomerNotEligible"
    NO_ELIGIBLE_ITEMS = "NoEligibleItems"
    CANNOT_COMBINE = "CannotCombine"
    INVALID_FORMAT = "InvalidFormat"
    CURRENCY_MISMATCH = "CurrencyMismatch"
    REPLACEMENT_FAILED = "ReplacementFailed"
    GEOGRAPHIC_RESTRICTION = "GeographicRestriction"
    PRODUCT_RESTRICTION = "ProductRestriction"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class Rejection:
    """A single failed business rule: the reason code and the customer-facing message."""

    reason: CouponRejectionReason
    message: str


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Money
    total_discount: Money
    final_total: Money
    currency: str


@dataclass(frozen=True)
class LineDiscount:
    """The share of a discount allocated to one order line."""

    item: OrderItem
    discount_amount: Money
    original_price: Money
    final_price: Money


@dataclass(frozen=True)
class CouponApplicationResult:
    """Outcome of an evaluator operation: success with totals, or a rejection."""

    is_success: bool
    coupon: Coupon | None = None
    discount_amount: Money | None = None
    rejection_reason: CouponRejectionReason | None = None
    message: str = ""
    order_totals: OrderTotals | None = None
    line_discounts: list[LineDiscount] = field(default_factory=list)

    @classmethod
    def success(cls, coupon, discount_amount, order_totals, line_discounts, message=None):
        return cls(
            is_success=True,
            coupon=coupon,
            discount_amount=discount_amount,
            order_totals=order_totals,
            line_discounts=line_discounts,
            message=message or f"Coupon '{coupon.name}' applied successfully! You saved {discount_amount.format()}.",
        )

    @classmethod
    def failure(cls, coupon, rejection_reason, message, currency="USD"):
        return cls(
            is_success=False,
            coupon=coupon,
            discount_amount=Money.zero(currency),
            rejection_reason=rejection_reason,
            message=message,
        )

    @classmethod
    def from_rejection(cls, coupon, rejection: Rejection, currency="USD"):
        return cls.failure(coupon, rejection.reason, rejection.message, currency=currency)


@dataclass(frozen=True)
class DiscountBreakdown:
    """Line-level view over the discounts currently applied to an order."""

    line_discounts: list[LineDiscount] = field(default_factory=list)
    non_discounted_item_count: int = 0
    currency: str = "USD"

    @property
    def total_discount(self) -> Money:
        return Money.sum((line.discount_amount for line in self.line_discounts), self.currency)

    @property
    def discounted_item_count(self) -> int:
        return len(self.line_discounts)

    def discounted_items(self) -> list[OrderItem]:
        return [line.item for line in self.line_discounts]

    def non_discounted_items(self, all_items) -> list[OrderItem]:
        discounted_ids = {line.item.id for line in self.line_discounts}
        return [item for item in all_items if item.id not in discounted_ids]
