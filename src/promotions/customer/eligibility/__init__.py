"""Customer eligibility adapter: pluggable customer-targeting lookups."""

import os

from promotions.customer.eligibility.port import CustomerEligibilityService

_eligibility_instance: CustomerEligibilityService | None = None


def get_eligibility_service() -> CustomerEligibilityService:
    """Return the configured eligibility adapter (singleton).

    Uses FakeCustomerEligibility by default. Other adapters are installed with
    set_eligibility_service(); ELIGIBILITY_ADAPTER only accepts "fake".
    """
    global _eligibility_instance
    if _eligibility_instance is None:
        adapter = os.environ.get("ELIGIBILITY_ADAPTER", "fake")
        if adapter == "fake":
            from promotions.customer.eligibility.fake_adapter import FakeCustomerEligibility

            _eligibility_instance = FakeCustomerEligibility()
        else:
            raise ValueError(f"Unknown eligibility adapter: {adapter}")
    return _eligibility_instance


def set_eligibility_service(service: CustomerEligibilityService) -> None:
    """Override the active eligibility adapter (useful for tests)."""
    global _eligibility_instance
    _eligibility_instance = service


def reset_eligibility_service():
    """Reset the eligibility singleton (useful for testing)."""
    global _eligibility_instance
    _eligibility_instance = None
