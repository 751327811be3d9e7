"""Coupon validation chain.

Each check looks at one rule and returns a ``Rejection`` or None. The chain
runs the checks in a fixed order and stops at the first rejection; failures
are never aggregated. Repository and eligibility-service errors are not
caught here.
"""

from dataclasses import dataclass
from datetime import datetime

from promotions.coupon.coupon import Coupon, CouponType, as_utc
from promotions.coupon.repository.port import CouponRepository
from promotions.customer.eligibility.port import CustomerEligibilityService
from promotions.evaluation.results import CouponRejectionReason, Rejection
from promotions.order.order import Order


@dataclass(frozen=True)
class ValidationContext:
    """Everything a check may look at for one evaluation."""

    coupon: Coupon
    order: Order
    customer_id: str
    now: datetime
    repository: CouponRepository
    eligibility: CustomerEligibilityService


def _reject(reason: CouponRejectionReason, message: str) -> Rejection:
    return Rejection(reason=reason, message=message)


def check_active(ctx: ValidationContext) -> Rejection | None:
    if not ctx.coupon.is_active:
        return _reject(CouponRejectionReason.INACTIVE, "This coupon is currently inactive.")
    return None


def check_schedule(ctx: ValidationContext) -> Rejection | None:
    coupon = ctx.coupon
    if ctx.now < as_utc(coupon.start_date):
        return _reject(
            CouponRejectionReason.NOT_YET_ACTIVE,
            f"This coupon will be active starting {coupon.start_date:%Y-%m-%d %H:%M} UTC.",
        )
    if ctx.now > as_utc(coupon.end_date):
        return _reject(CouponRejectionReason.EXPIRED, "This coupon has expired.")
    return None


def check_currency(ctx: ValidationContext) -> Rejection | None:
    coupon, order = ctx.coupon, ctx.order

    if coupon.coupon_type == CouponType.FIXED_AMOUNT and coupon.currency != order.currency:
        return _reject(
            CouponRejectionReason.CURRENCY_MISMATCH,
            f"This coupon is only valid for {coupon.currency} orders.",
        )

    if coupon.allowed_currencies and order.currency not in coupon.allowed_currencies:
        return _reject(
            CouponRejectionReason.CURRENCY_MISMATCH,
            f"This coupon is only valid for {', '.join(coupon.allowed_currencies)} orders.",
        )

    # Thresholds are compared against order amounts, so they must share a currency
    for threshold in (coupon.minimum_order_amount, coupon.maximum_discount_amount):
        if threshold is not None and threshold.currency != order.currency:
            return _reject(
                CouponRejectionReason.CURRENCY_MISMATCH,
                f"This coupon is only valid for {threshold.currency} orders.",
            )
    return None


def check_minimum_order(ctx: ValidationContext) -> Rejection | None:
    minimum = ctx.coupon.minimum_order_amount
    if minimum is None:
        return None

    subtotal = ctx.order.subtotal
    if subtotal < minimum:
        shortfall = minimum - subtotal
        return _reject(
            CouponRejectionReason.BELOW_MINIMUM,
            f"Order must be at least {minimum.format()} to use this coupon. "
            f"Add {shortfall.format()} more to your cart.",
        )
    return None


def check_global_usage(ctx: ValidationContext) -> Rejection | None:
    limit = ctx.coupon.global_usage_limit
    if limit is None:
        return None

    if ctx.repository.global_usage_count(ctx.coupon.id) >= limit:
        return _reject(CouponRejectionReason.GLOBAL_LIMIT_REACHED, "This coupon has reached its usage limit.")
    return None


def check_customer_usage(ctx: ValidationContext) -> Rejection | None:
    limit = ctx.coupon.per_customer_usage_limit
    if limit is None:
        return None

    if ctx.repository.customer_usage_count(ctx.coupon.id, ctx.customer_id) >= limit:
        return _reject(
            CouponRejectionReason.CUSTOMER_LIMIT_REACHED,
            "You have already used this coupon the maximum number of times.",
        )
    return None


def check_unique_code(ctx: ValidationContext) -> Rejection | None:
    if ctx.repository.is_unique_code_used(ctx.coupon.code):
        return _reject(CouponRejectionReason.ALREADY_USED, "This coupon code has already been used.")
    return None


def check_customer_eligibility(ctx: ValidationContext) -> Rejection | None:
    coupon = ctx.coupon

    if coupon.require_first_order and not ctx.eligibility.is_first_order(ctx.customer_id):
        return _reject(
            CouponRejectionReason.CUSTOMER_NOT_ELIGIBLE,
            "This coupon is only valid on your first order.",
        )

    if coupon.allowed_customer_groups and not ctx.eligibility.is_in_allowed_groups(
        ctx.customer_id, list(coupon.allowed_customer_groups)
    ):
        return _reject(
            CouponRejectionReason.CUSTOMER_NOT_ELIGIBLE,
            "This coupon is not available for your account.",
        )
    return None


def check_geography(ctx: ValidationContext) -> Rejection | None:
    allowed = ctx.coupon.allowed_countries
    if allowed and ctx.order.country_code not in allowed:
        return _reject(
            CouponRejectionReason.CUSTOMER_NOT_ELIGIBLE,
            "This coupon is not available in your country.",
        )
    return None


def check_combinability(ctx: ValidationContext) -> Rejection | None:
    coupon, order = ctx.coupon, ctx.order

    if order.has_coupon(coupon.id):
        return _reject(CouponRejectionReason.CANNOT_COMBINE, "This coupon is already applied to your order.")

    if not order.applied_coupons:
        return None

    if not coupon.is_combinable:
        return _reject(
            CouponRejectionReason.CANNOT_COMBINE,
            "This coupon cannot be combined with other coupons.",
        )

    blocking = next((ac for ac in order.applied_coupons if not ac.is_combinable), None)
    if blocking is not None:
        return _reject(
            CouponRejectionReason.CANNOT_COMBINE,
            f"Coupon '{blocking.coupon_name}' cannot be combined with other coupons.",
        )
    return None


VALIDATION_CHAIN = (
    check_active,
    check_schedule,
    check_currency,
    check_minimum_order,
    check_global_usage,
    check_customer_usage,
    check_unique_code,
    check_customer_eligibility,
    check_geography,
    check_combinability,
)


def run_validation_chain(ctx: ValidationContext, checks=VALIDATION_CHAIN) -> Rejection | None:
    """Return the first rejection produced by ``checks``, or None when all pass."""
    for check in checks:
        rejection = check(ctx)
        if rejection is not None:
            return rejection
    return None
