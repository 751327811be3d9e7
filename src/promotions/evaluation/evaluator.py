"""Coupon evaluator: applies, validates, removes and replaces coupons on an order.

Each operation is a single step over the order's applied-coupon list:

    apply:    normalize code → lookup → validation chain → eligible items →
              discount → allocation → append AppliedCoupon
    validate: same checks as apply, never mutates the order
    remove:   drop an applied coupon
    replace:  remove, then apply the new code; on failure restore the
              order's applied coupons from a snapshot

Business failures come back as ``CouponApplicationResult`` failures. Bad
arguments raise ``ValidationError``; repository and eligibility-service
errors propagate unchanged.
"""

from collections.abc import Callable
from contextlib import contextmanager
from datetime import UTC, datetime

from protean.exceptions import ValidationError

from promotions.coupon.coupon import Coupon
from promotions.coupon.repository import get_coupon_repository
from promotions.coupon.repository.port import CouponRepository
from promotions.customer.eligibility import get_eligibility_service
from promotions.customer.eligibility.port import CustomerEligibilityService
from promotions.domain import logger
from promotions.evaluation.allocation import allocate_discount
from promotions.evaluation.calculator import (
    allocates_to_lines,
    calculate_discount,
    eligible_items,
    line_allocated_amount,
)
from promotions.evaluation.results import (
    CouponApplicationResult,
    CouponRejectionReason,
    DiscountBreakdown,
    LineDiscount,
    OrderTotals,
)
from promotions.evaluation.validation import ValidationContext, run_validation_chain
from promotions.exceptions import InvalidCouponCodeError
from promotions.order.order import Order, OrderItem
from promotions.shared.coupon_code import normalize_code
from promotions.shared.money import Money
from promotions.utils.logging import add_context, clear_context

NOT_FOUND_MESSAGE = "Invalid coupon code. Please check the code and try again."
NOT_ON_ORDER_MESSAGE = "The specified coupon was not found on this order."
NO_ELIGIBLE_ITEMS_MESSAGE = "This coupon doesn't apply to any items in your cart."


def _require_order(order):
    if order is None:
        raise ValidationError({"order": ["Order is required"]})


def _require_text(field: str, value):
    if value is None or not str(value).strip():
        raise ValidationError({field: [f"{field.replace('_', ' ').capitalize()} cannot be null or empty"]})


class CouponEvaluator:
    """Evaluates coupons against orders using the configured collaborators.

    While an operation runs, the order's id is bound to the logging context
    so every log line it produces (including adapter logs) carries it.
    """

    def __init__(
        self,
        repository: CouponRepository | None = None,
        eligibility_service: CustomerEligibilityService | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.repository = repository if repository is not None else get_coupon_repository()
        self.eligibility_service = (
            eligibility_service if eligibility_service is not None else get_eligibility_service()
        )
        self.clock = clock or (lambda: datetime.now(UTC))
        self.log = logger.bind(component="coupon_evaluator")

    # -------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------
    def apply_coupon(self, order: Order, coupon_code: str, customer_id: str) -> CouponApplicationResult:
        """Validate ``coupon_code`` against ``order`` and apply it when it passes."""
        _require_order(order)
        _require_text("coupon_code", coupon_code)
        _require_text("customer_id", customer_id)

        with self._order_context(order):
            return self._apply(order, coupon_code, customer_id)

    def validate_coupon(self, coupon_code: str, order: Order, customer_id: str) -> CouponApplicationResult:
        """Run apply's checks without touching the order; success carries a zero discount."""
        _require_text("coupon_code", coupon_code)
        _require_order(order)
        _require_text("customer_id", customer_id)

        with self._order_context(order):
            coupon, failure = self._lookup(order, coupon_code)
            if failure is not None:
                return failure

            failure = self._validate(coupon, order, customer_id)
            if failure is not None:
                return failure

            if not eligible_items(coupon, order):
                return self._reject(coupon, CouponRejectionReason.NO_ELIGIBLE_ITEMS, NO_ELIGIBLE_ITEMS_MESSAGE, order)

            return CouponApplicationResult.success(
                coupon,
                Money.zero(order.currency),
                self.get_order_totals(order),
                [],
                message=f"Coupon '{coupon.name}' can be applied to this order.",
            )

    def remove_coupon(self, order: Order, coupon_id: str) -> CouponApplicationResult:
        _require_order(order)
        _require_text("coupon_id", coupon_id)

        with self._order_context(order):
            removed = order.remove_coupon(coupon_id)
            if removed is None:
                return CouponApplicationResult.failure(
                    None, CouponRejectionReason.NOT_FOUND, NOT_ON_ORDER_MESSAGE, currency=order.currency
                )

            self.log.info("coupon_removed", coupon_code=removed.coupon_code, discount=str(removed.discount_amount))

            return CouponApplicationResult.success(
                self.repository.find_by_id(removed.coupon_id),
                Money.zero(order.currency),
                self.get_order_totals(order),
                [],
                message=f"Coupon '{removed.coupon_name}' has been removed. Your total has been updated.",
            )

    def replace_coupon(
        self, order: Order, existing_coupon_id: str, new_coupon_code: str, customer_id: str
    ) -> CouponApplicationResult:
        """Swap an applied coupon for ``new_coupon_code``.

        When the new coupon is rejected the order's applied coupons are
        restored exactly as they were before the call.
        """
        _require_order(order)
        _require_text("existing_coupon_id", existing_coupon_id)
        _require_text("new_coupon_code", new_coupon_code)
        _require_text("customer_id", customer_id)

        with self._order_context(order):
            existing = order.find_applied_coupon(existing_coupon_id)
            if existing is None:
                return CouponApplicationResult.failure(
                    None, CouponRejectionReason.NOT_FOUND, NOT_ON_ORDER_MESSAGE, currency=order.currency
                )

            snapshot = list(order.applied_coupons)
            order.remove_coupon(existing_coupon_id)

            result = self._apply(order, new_coupon_code, customer_id)

            if not result.is_success:
                order.restore_coupons(snapshot)

                self.log.info(
                    "coupon_replacement_rolled_back",
                    kept_coupon=existing.coupon_code,
                    rejection_reason=result.rejection_reason.value if result.rejection_reason else None,
                )

                return CouponApplicationResult.failure(
                    result.coupon,
                    result.rejection_reason or CouponRejectionReason.UNKNOWN,
                    f"Failed to apply new coupon: {result.message.rstrip('.')}. Original coupon has been restored.",
                    currency=order.currency,
                )

            self.log.info("coupon_replaced", old_coupon=existing.coupon_code, new_coupon=result.coupon.code)

            return CouponApplicationResult.success(
                result.coupon,
                result.discount_amount,
                result.order_totals,
                result.line_discounts,
                message=(
                    f"Coupon '{existing.coupon_name}' was replaced with '{result.coupon.name}'. "
                    f"New savings: {result.discount_amount.format()}"
                ),
            )

    def get_order_totals(self, order: Order) -> OrderTotals:
        _require_order(order)
        return OrderTotals(
            subtotal=order.subtotal,
            total_discount=order.total_discount,
            final_total=order.total,
            currency=order.currency,
        )

    def get_discount_breakdown(self, order: Order) -> DiscountBreakdown:
        """Line-level view of every applied coupon, merged per order item.

        Each applied coupon's recorded discount is re-allocated across the
        items it is eligible for. Only the merchandise share is placed on
        lines; any part of an order-total discount beyond the merchandise
        stays at order level.
        """
        _require_order(order)

        per_item: dict[str, Money] = {}
        with self._order_context(order):
            for applied in order.applied_coupons:
                coupon = self.repository.find_by_id(applied.coupon_id)
                if coupon is None:
                    self.log.warning("applied_coupon_not_in_repository", coupon_code=applied.coupon_code)
                    continue
                if not allocates_to_lines(coupon):
                    continue

                items = eligible_items(coupon, order)
                amount = line_allocated_amount(applied.discount_amount, items, order.currency)
                for line in allocate_discount(items, amount):
                    key = str(line.item.id)
                    per_item[key] = per_item[key] + line.discount_amount if key in per_item else line.discount_amount

        lines = [
            LineDiscount(
                item=item,
                discount_amount=per_item[str(item.id)],
                original_price=item.total_price,
                final_price=item.total_price - per_item[str(item.id)],
            )
            for item in order.items
            if str(item.id) in per_item
        ]

        return DiscountBreakdown(
            line_discounts=lines,
            non_discounted_item_count=len(order.items) - len(lines),
            currency=order.currency,
        )

    def get_eligible_items(self, order: Order, coupon_code: str) -> list[OrderItem]:
        """Items of ``order`` the coupon with ``coupon_code`` would discount; empty if unknown."""
        _require_order(order)
        _require_text("coupon_code", coupon_code)

        try:
            code = normalize_code(coupon_code)
        except InvalidCouponCodeError:
            return []

        coupon = self.repository.find_by_code(code)
        if coupon is None:
            return []
        return eligible_items(coupon, order)

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    @contextmanager
    def _order_context(self, order: Order):
        add_context(order_id=str(order.id))
        try:
            yield
        finally:
            clear_context("order_id")

    def _now(self) -> datetime:
        now = self.clock()
        return now if now.tzinfo is not None else now.replace(tzinfo=UTC)

    def _apply(self, order: Order, coupon_code: str, customer_id: str) -> CouponApplicationResult:
        coupon, failure = self._lookup(order, coupon_code)
        if failure is not None:
            return failure

        failure = self._validate(coupon, order, customer_id)
        if failure is not None:
            return failure

        calculation = calculate_discount(coupon, order)
        if not calculation.has_eligible_items:
            return self._reject(coupon, CouponRejectionReason.NO_ELIGIBLE_ITEMS, NO_ELIGIBLE_ITEMS_MESSAGE, order)

        order.apply_coupon(coupon, calculation.discount_amount, applied_at=self._now())

        self.log.info(
            "coupon_applied",
            coupon_code=coupon.code,
            discount=str(calculation.discount_amount),
            lines=len(calculation.line_discounts),
        )

        return CouponApplicationResult.success(
            coupon,
            calculation.discount_amount,
            self.get_order_totals(order),
            calculation.line_discounts,
        )

    def _lookup(self, order: Order, coupon_code: str) -> tuple[Coupon | None, CouponApplicationResult | None]:
        # Malformed codes are rejected before the repository is consulted
        try:
            code = normalize_code(coupon_code)
        except InvalidCouponCodeError as exc:
            self.log.info("coupon_rejected", reason=CouponRejectionReason.INVALID_FORMAT.value)
            return None, CouponApplicationResult.failure(
                None,
                CouponRejectionReason.INVALID_FORMAT,
                f"{exc.message}. Please check the code and try again.",
                currency=order.currency,
            )

        coupon = self.repository.find_by_code(code)
        if coupon is None:
            self.log.info("coupon_rejected", coupon_code=code, reason=CouponRejectionReason.NOT_FOUND.value)
            return None, CouponApplicationResult.failure(
                None, CouponRejectionReason.NOT_FOUND, NOT_FOUND_MESSAGE, currency=order.currency
            )
        return coupon, None

    def _validate(self, coupon: Coupon, order: Order, customer_id: str) -> CouponApplicationResult | None:
        ctx = ValidationContext(
            coupon=coupon,
            order=order,
            customer_id=customer_id,
            now=self._now(),
            repository=self.repository,
            eligibility=self.eligibility_service,
        )
        rejection = run_validation_chain(ctx)
        if rejection is None:
            return None
        return self._reject(coupon, rejection.reason, rejection.message, order)

    def _reject(self, coupon: Coupon, reason: CouponRejectionReason, message: str, order: Order):
        self.log.info("coupon_rejected", coupon_code=coupon.code, reason=reason.value)
        return CouponApplicationResult.failure(coupon, reason, message, currency=order.currency)
