"""Coupon repository factory.

Provides get_coupon_repository() / set_coupon_repository() to swap
implementations. Defaults to the in-memory repository.
"""

from promotions.coupon.repository.memory_adapter import InMemoryCouponRepository
from promotions.coupon.repository.port import CouponRepository

_current_repository: CouponRepository | None = None


def get_coupon_repository() -> CouponRepository:
    """Return the current coupon repository. Defaults to InMemoryCouponRepository."""
    global _current_repository
    if _current_repository is None:
        _current_repository = InMemoryCouponRepository()
    return _current_repository


def set_coupon_repository(repository: CouponRepository) -> None:
    """Override the active coupon repository (useful for tests)."""
    global _current_repository
    _current_repository = repository


def reset_coupon_repository() -> None:
    """Reset to default repository."""
    global _current_repository
    _current_repository = None


__all__ = [
    "CouponRepository",
    "InMemoryCouponRepository",
    "get_coupon_repository",
    "reset_coupon_repository",
    "set_coupon_repository",
]
