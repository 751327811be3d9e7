"""Customer eligibility port: abstract interface for customer-targeting lookups.

Answers whether a customer qualifies for first-order and group-restricted
coupons. Adapters typically call a customer or loyalty service; their errors
propagate to the caller.
"""

from abc import ABC, abstractmethod


class CustomerEligibilityService(ABC):
    """Abstract interface for customer eligibility adapters."""

    @abstractmethod
    def is_first_order(self, customer_id: str) -> bool:
        """True when the customer has not completed an order before."""
        ...

    @abstractmethod
    def is_in_allowed_groups(self, customer_id: str, allowed_groups: list[str]) -> bool:
        """True when the customer belongs to at least one of ``allowed_groups``."""
        ...
