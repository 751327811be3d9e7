"""Coupon administration: creating coupons and changing their lifecycle state.

Every function works against the configured coupon repository unless one is
passed explicitly, and raises ``ValidationError`` when the coupon does not
exist or the requested change breaks an invariant.
"""

from datetime import datetime

from protean.exceptions import ValidationError

from promotions.coupon.coupon import Coupon
from promotions.coupon.repository import get_coupon_repository
from promotions.coupon.repository.port import CouponRepository
from promotions.domain import logger

log = logger.bind(component="coupon_management")


def _repository(repository: CouponRepository | None) -> CouponRepository:
    return repository if repository is not None else get_coupon_repository()


def _add(coupon: Coupon, repository: CouponRepository | None) -> Coupon:
    repo = _repository(repository)
    if repo.find_by_code(coupon.code) is not None:
        raise ValidationError({"code": [f"Coupon code {coupon.code} already exists"]})

    repo.add(coupon)
    log.info("coupon_created", coupon_id=coupon.id, coupon_code=coupon.code, coupon_type=coupon.type)
    return coupon


def _load(coupon_id: str, repository: CouponRepository) -> Coupon:
    coupon = repository.find_by_id(coupon_id)
    if coupon is None:
        raise ValidationError({"coupon_id": [f"Coupon {coupon_id} not found"]})
    return coupon


def create_percentage_coupon(
    code: str,
    name: str,
    percentage,
    start_date: datetime,
    end_date: datetime,
    repository: CouponRepository | None = None,
    **options,
) -> Coupon:
    coupon = Coupon.create_percentage(code, name, percentage, start_date, end_date, **options)
    return _add(coupon, repository)


def create_fixed_amount_coupon(
    code: str,
    name: str,
    amount,
    currency: str,
    start_date: datetime,
    end_date: datetime,
    repository: CouponRepository | None = None,
    **options,
) -> Coupon:
    coupon = Coupon.create_fixed_amount(code, name, amount, currency, start_date, end_date, **options)
    return _add(coupon, repository)


def create_free_shipping_coupon(
    code: str,
    name: str,
    start_date: datetime,
    end_date: datetime,
    repository: CouponRepository | None = None,
    **options,
) -> Coupon:
    coupon = Coupon.create_free_shipping(code, name, start_date, end_date, **options)
    return _add(coupon, repository)


def pause_coupon(coupon_id: str, repository: CouponRepository | None = None) -> Coupon:
    """Deactivate a coupon; it is rejected as Inactive until resumed."""
    repo = _repository(repository)
    coupon = _load(coupon_id, repo)
    coupon.pause()
    repo.save(coupon)

    log.info("coupon_paused", coupon_id=coupon.id, coupon_code=coupon.code)
    return coupon


def resume_coupon(coupon_id: str, repository: CouponRepository | None = None) -> Coupon:
    repo = _repository(repository)
    coupon = _load(coupon_id, repo)
    coupon.resume()
    repo.save(coupon)

    log.info("coupon_resumed", coupon_id=coupon.id, coupon_code=coupon.code)
    return coupon


def update_schedule(
    coupon_id: str,
    start_date: datetime,
    end_date: datetime,
    repository: CouponRepository | None = None,
) -> Coupon:
    repo = _repository(repository)
    coupon = _load(coupon_id, repo)
    coupon.reschedule(start_date, end_date)
    repo.save(coupon)

    log.info(
        "coupon_rescheduled",
        coupon_id=coupon.id,
        coupon_code=coupon.code,
        start_date=coupon.start_date.isoformat(),
        end_date=coupon.end_date.isoformat(),
    )
    return coupon
