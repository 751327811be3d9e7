import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Selects the settings environment before any promotions module is imported,
    so logging is configured for the chosen environment.
    """
    os.environ["PROMOTIONS_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fixture to automatically reset adapters and settings after every test"""
    yield

    from promotions.config import reset_settings
    from promotions.coupon.repository import reset_coupon_repository
    from promotions.customer.eligibility import reset_eligibility_service

    reset_coupon_repository()
    reset_eligibility_service()
    reset_settings()
