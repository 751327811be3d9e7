"""Promotions bounded context: coupon validation, discount calculation and allocation.

Hosts call ``promotions.init()`` once at startup, before any element is
used, so associations between aggregates and their entities are resolved.
"""

from protean.domain import Domain

from promotions.utils.logging import configure_logging, get_logger

configure_logging()

promotions = Domain(name="promotions")

logger = get_logger(__name__)
