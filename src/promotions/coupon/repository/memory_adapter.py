"""In-memory coupon repository: process-local storage for development and testing.

Counters are guarded by a lock so ``record_usage`` is atomic across threads.
"""

import threading
from collections import defaultdict
from datetime import UTC, datetime

from promotions.coupon.coupon import Coupon
from promotions.coupon.repository.port import CouponRepository


def _normalize(code: str) -> str:
    return code.strip().upper()


class InMemoryCouponRepository(CouponRepository):
    """Dictionary-backed repository."""

    def __init__(self, coupons=None):
        self._lock = threading.Lock()
        self._coupons: dict[str, Coupon] = {}
        self._global_usage: dict[str, int] = defaultdict(int)
        self._customer_usage: dict[tuple[str, str], int] = defaultdict(int)
        self._used_unique_codes: set[str] = set()
        self._redemptions: list[dict] = []
        if coupons:
            self.seed(coupons)

    # -------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------
    def find_by_code(self, code: str) -> Coupon | None:
        if not code or not code.strip():
            return None
        normalized = _normalize(code)
        return next((c for c in self._coupons.values() if c.code == normalized), None)

    def find_by_id(self, coupon_id: str) -> Coupon | None:
        return self._coupons.get(str(coupon_id))

    def list_active(self) -> list[Coupon]:
        now = datetime.now(UTC)
        return [c for c in self._coupons.values() if c.is_valid_at(now)]

    def global_usage_count(self, coupon_id: str) -> int:
        with self._lock:
            return self._global_usage.get(str(coupon_id), 0)

    def customer_usage_count(self, coupon_id: str, customer_id: str) -> int:
        with self._lock:
            return self._customer_usage.get((str(coupon_id), customer_id), 0)

    def record_usage(self, coupon_id: str, customer_id: str, order_id: str) -> None:
        with self._lock:
            self._global_usage[str(coupon_id)] += 1
            self._customer_usage[(str(coupon_id), customer_id)] += 1
            self._redemptions.append(
                {
                    "coupon_id": str(coupon_id),
                    "customer_id": customer_id,
                    "order_id": str(order_id),
                    "redeemed_at": datetime.now(UTC),
                }
            )

    def is_unique_code_used(self, code: str) -> bool:
        if not code or not code.strip():
            return False
        return _normalize(code) in self._used_unique_codes

    # -------------------------------------------------------------------
    # Write side
    # -------------------------------------------------------------------
    def add(self, coupon: Coupon) -> Coupon:
        self._coupons[str(coupon.id)] = coupon
        return coupon

    def save(self, coupon: Coupon) -> bool:
        if str(coupon.id) not in self._coupons:
            return False
        self._coupons[str(coupon.id)] = coupon
        return True

    # -------------------------------------------------------------------
    # Test helpers
    # -------------------------------------------------------------------
    def seed(self, coupons):
        for coupon in coupons:
            self.add(coupon)

    def mark_unique_code_used(self, code: str):
        if code and code.strip():
            self._used_unique_codes.add(_normalize(code))

    @property
    def redemptions(self) -> list[dict]:
        return list(self._redemptions)

    def reset(self):
        with self._lock:
            self._coupons.clear()
            self._global_usage.clear()
            self._customer_usage.clear()
            self._used_unique_codes.clear()
            self._redemptions.clear()
