"""Coupon-specific exceptions.

Business rejections are never raised: the evaluator returns them as failure
results. Contract violations and broken invariants use Protean's
``ValidationError``, ``InvalidOperationError`` and ``IncorrectUsageError``.
"""

from protean.exceptions import ValidationError


class InvalidCouponCodeError(ValidationError):
    """Raised when a coupon code does not match the accepted format."""

    def __init__(self, coupon_code, message: str):
        super().__init__({"coupon_code": [message]})
        self.coupon_code = coupon_code
        self.message = message

    def __str__(self) -> str:
        return self.message
