"""
Coupon engine - eligibility, discount arithmetic, and redemption.

can_apply() and compute_discount() are pure; they never touch the database
and never raise for business-rule failures. redeem() is the only writer of
used_count and performs a single conditional UPDATE so that concurrent
checkouts cannot push a coupon past its usage limit.

Discounts are whole currency units rounded ROUND_HALF_UP (half away from
zero for the non-negative amounts handled here): 10% of 45 is 4.5 -> 5.
"""
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
import logging

from sqlalchemy import update, or_
from sqlalchemy.orm import Session

from .Coupon_model import Coupon

logger = logging.getLogger(__name__)

WHOLE_UNIT = Decimal("1")


class CouponRedemptionError(Exception):
    """Coupon could not be redeemed (limit reached, deactivated, or removed)."""


def _to_decimal(value) -> Decimal:
    return Decimal(str(value or 0))


def can_apply(coupon: Coupon, cart_total: float, now: Optional[datetime] = None) -> bool:
    """
    True iff the coupon is active, inside its validity window, the cart meets
    the minimum order amount, and the usage limit has not been reached.
    """
    if coupon is None or cart_total is None or cart_total < 0:
        return False
    if not coupon.is_valid_at(now):
        return False
    if cart_total < (coupon.min_order_amount or 0):
        return False
    if coupon.is_usage_limit_reached:
        return False
    return True


def compute_discount(coupon: Coupon, cart_total: float) -> float:
    """
    Discount for a cart total; caller has already checked can_apply().
    round(cart_total * percent / 100), capped at max_discount, kept within [0, cart_total].
    """
    total = _to_decimal(cart_total)
    if total <= 0:
        return 0.0

    discount = (total * _to_decimal(coupon.discount_percent) / Decimal(100)).quantize(
        WHOLE_UNIT, rounding=ROUND_HALF_UP
    )

    if coupon.max_discount is not None:
        discount = min(discount, _to_decimal(coupon.max_discount))

    discount = max(Decimal(0), min(discount, total))
    return float(discount)


def redeem(db: Session, coupon: Coupon) -> Coupon:
    """
    Increment used_count by exactly one, re-checking the limit at write time.
    Runs inside the caller's transaction and does not commit.
    Raises CouponRedemptionError when no slot is left.
    """
    result = db.execute(
        update(Coupon)
        .where(
            Coupon.id == coupon.id,
            Coupon.is_active == True,
            or_(Coupon.usage_limit.is_(None), Coupon.used_count < Coupon.usage_limit)
        )
        .values(used_count=Coupon.used_count + 1)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount != 1:
        logger.warning(f"Coupon redemption rejected | Coupon: {coupon.code} | ID: {coupon.id}")
        raise CouponRedemptionError(f"Coupon '{coupon.code}' can no longer be redeemed")

    db.refresh(coupon)
    logger.info(f"Coupon redeemed | Coupon: {coupon.code} | Used: {coupon.used_count}/{coupon.usage_limit or 'unlimited'}")
    return coupon
