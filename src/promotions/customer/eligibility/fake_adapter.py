"""Fake eligibility adapter: deterministic customer data for testing and development.

By default every customer is on their first order and belongs to no group.
"""

from promotions.customer.eligibility.port import CustomerEligibilityService


class FakeCustomerEligibility(CustomerEligibilityService):
    """Eligibility service backed by in-process lookup tables."""

    def __init__(self):
        self.first_order_default = True
        self._first_order: dict[str, bool] = {}
        self._groups: dict[str, set[str]] = {}

    def configure(self, customer_id: str, first_order: bool | None = None, groups=None):
        """Set the answers returned for ``customer_id``."""
        if first_order is not None:
            self._first_order[customer_id] = first_order
        if groups is not None:
            self._groups[customer_id] = {g.lower() for g in groups}

    def is_first_order(self, customer_id: str) -> bool:
        return self._first_order.get(customer_id, self.first_order_default)

    def is_in_allowed_groups(self, customer_id: str, allowed_groups: list[str]) -> bool:
        if not allowed_groups:
            return True
        member_of = self._groups.get(customer_id, set())
        return any(group.lower() in member_of for group in allowed_groups)
