from datetime import UTC, datetime

import pytest
from protean.integrations.pytest import DomainFixture

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)


@pytest.fixture(scope="session")
def promotions_bed():
    from promotions.domain import promotions

    bed = DomainFixture(promotions)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(promotions_bed):
    with promotions_bed.domain_context():
        yield


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def repository():
    from promotions.coupon.repository import set_coupon_repository
    from promotions.coupon.repository.memory_adapter import InMemoryCouponRepository

    repo = InMemoryCouponRepository()
    set_coupon_repository(repo)
    return repo


@pytest.fixture
def eligibility():
    from promotions.customer.eligibility import set_eligibility_service
    from promotions.customer.eligibility.fake_adapter import FakeCustomerEligibility

    service = FakeCustomerEligibility()
    set_eligibility_service(service)
    return service


@pytest.fixture
def evaluator(repository, eligibility):
    from promotions.evaluation.evaluator import CouponEvaluator

    return CouponEvaluator(repository=repository, eligibility_service=eligibility, clock=lambda: NOW)
