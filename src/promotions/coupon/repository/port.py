"""Coupon repository port: abstract interface for coupon storage.

The evaluator programs against this port; storage adapters (in-memory, SQL,
document stores) implement it. Code lookups are case-insensitive and
whitespace-trimmed. Implementations must make ``record_usage`` increment
its counters atomically under concurrent calls.

Errors raised by an adapter (I/O, connectivity) propagate to the caller
unchanged.
"""

from abc import ABC, abstractmethod

from promotions.coupon.coupon import Coupon


class CouponRepository(ABC):
    """Abstract interface for coupon repositories."""

    @abstractmethod
    def find_by_code(self, code: str) -> Coupon | None:
        """Return the coupon with ``code``, or None."""
        ...

    @abstractmethod
    def find_by_id(self, coupon_id: str) -> Coupon | None: ...

    @abstractmethod
    def list_active(self) -> list[Coupon]:
        """Return the coupons that are valid right now."""
        ...

    @abstractmethod
    def global_usage_count(self, coupon_id: str) -> int: ...

    @abstractmethod
    def customer_usage_count(self, coupon_id: str, customer_id: str) -> int: ...

    @abstractmethod
    def record_usage(self, coupon_id: str, customer_id: str, order_id: str) -> None:
        """Count one redemption of the coupon by the customer for an order."""
        ...

    @abstractmethod
    def is_unique_code_used(self, code: str) -> bool:
        """True when ``code`` is a single-use code that has already been redeemed."""
        ...

    @abstractmethod
    def add(self, coupon: Coupon) -> Coupon:
        """Store a new coupon."""
        ...

    @abstractmethod
    def save(self, coupon: Coupon) -> bool:
        """Persist changes to an existing coupon; False when it does not exist."""
        ...
