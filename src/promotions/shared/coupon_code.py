"""CouponCode value object for customer-entered promotion codes."""

import re

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import String

from promotions.domain import promotions
from promotions.exceptions import InvalidCouponCodeError

_CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

MIN_LENGTH = 3
MAX_LENGTH = 50


def normalize_code(value: str) -> str:
    """Validate ``value`` and return its canonical (trimmed, upper-cased) form."""
    if value is None or not str(value).strip():
        raise InvalidCouponCodeError(value, "Coupon code cannot be null or empty")

    trimmed = str(value).strip()

    if len(trimmed) < MIN_LENGTH:
        raise InvalidCouponCodeError(value, f"Coupon code must be at least {MIN_LENGTH} characters long")

    if len(trimmed) > MAX_LENGTH:
        raise InvalidCouponCodeError(value, f"Coupon code cannot exceed {MAX_LENGTH} characters")

    if any(ch.isspace() for ch in trimmed):
        raise InvalidCouponCodeError(value, "Coupon code cannot contain whitespace characters")

    if not _CODE_PATTERN.match(trimmed):
        raise InvalidCouponCodeError(
            value,
            "Coupon code contains invalid characters. Allowed: letters, digits, '-' and '_'",
        )

    return trimmed.upper()


@promotions.value_object
class CouponCode:
    """Value object for coupon codes.

    Format: letters, digits, hyphens and underscores, 3-50 chars, stored
    upper-cased. E.g., "SAVE10", "SPRING_SALE-2025"
    """

    value: String(required=True, max_length=MAX_LENGTH)

    @invariant.post
    def value_must_be_canonical_code(self):
        try:
            canonical = normalize_code(self.value)
        except InvalidCouponCodeError as exc:
            raise ValidationError({"value": [exc.message]}) from None

        if canonical != self.value:
            raise ValidationError({"value": ["Coupon code must be trimmed and upper-cased"]})

    @classmethod
    def create(cls, value: str) -> "CouponCode":
        """Normalize ``value`` and wrap it; malformed input raises ``InvalidCouponCodeError``."""
        return cls(value=normalize_code(value))

    def __str__(self) -> str:
        return self.value
