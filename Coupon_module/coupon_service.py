"""
Coupon service - admin CRUD, statistics, and user-facing validation.
"""
from datetime import datetime, timedelta
from math import ceil
from typing import Optional, Tuple, Dict, Any
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from Login_module.Utils.datetime_utils import now_ist, to_ist
from .Coupon_model import Coupon, normalize_coupon_code
from . import coupon_engine

logger = logging.getLogger(__name__)

# Columns that cannot be cleared through a partial update
REQUIRED_FIELDS = {"code", "discount_percent", "min_order_amount", "is_active"}


def get_coupon(db: Session, coupon_id: int) -> Optional[Coupon]:
    return db.query(Coupon).filter(Coupon.id == coupon_id).first()


def get_coupon_by_code(db: Session, code: str) -> Optional[Coupon]:
    """
    Lookup by code, case-insensitive (codes are stored normalized).
    """
    normalized_code = normalize_coupon_code(code)
    if not normalized_code:
        return None
    return db.query(Coupon).filter(Coupon.code == normalized_code).first()


def coupon_rejection_reason(coupon: Coupon, cart_total: float, now: Optional[datetime] = None) -> Optional[str]:
    """
    User-facing reason why a coupon cannot be applied, or None if it can.
    Checks run in the same order as coupon_engine.can_apply().
    """
    now = now or now_ist()

    if not coupon.is_active:
        return "Coupon is not active"

    if not coupon.is_started_at(now):
        return f"Coupon is valid from {to_ist(coupon.valid_from).strftime('%d %b %Y')}"

    if coupon.is_expired_at(now):
        return "Coupon has expired"

    if cart_total < (coupon.min_order_amount or 0):
        return f"Minimum order amount of ₹{coupon.min_order_amount:g} required"

    if coupon.is_usage_limit_reached:
        return "Coupon usage limit has been reached"

    if not coupon_engine.can_apply(coupon, cart_total, now):
        return "Coupon cannot be applied to this order"

    return None


def validate_and_calculate_discount(
    db: Session,
    coupon_code: str,
    cart_total: float,
    now: Optional[datetime] = None
) -> Tuple[Optional[Coupon], float, str]:
    """
    Validate coupon code against a cart total and calculate the discount.

    Returns:
        Tuple of (Coupon object or None, discount_amount, error_message)
    """
    if not coupon_code:
        return None, 0.0, ""

    coupon = get_coupon_by_code(db, coupon_code)
    if not coupon:
        logger.info(f"Coupon '{normalize_coupon_code(coupon_code)}' not found")
        return None, 0.0, "Invalid coupon code"

    reason = coupon_rejection_reason(coupon, cart_total, now)
    if reason:
        logger.info(f"Coupon '{coupon.code}' rejected for cart total ₹{cart_total}: {reason}")
        return coupon, 0.0, reason

    discount_amount = coupon_engine.compute_discount(coupon, cart_total)
    return coupon, discount_amount, ""


def _check_validity_window(valid_from: Optional[datetime], valid_until: Optional[datetime]) -> None:
    if valid_from and valid_until and to_ist(valid_from) > to_ist(valid_until):
        raise ValueError("Valid from date cannot be after valid until date")


def create_coupon(db: Session, data: Dict[str, Any]) -> Coupon:
    """
    Create a coupon. Raises ValueError for a duplicate code or an invalid window.
    """
    code = normalize_coupon_code(data.get("code"))
    if not code:
        raise ValueError("Coupon code is required")

    _check_validity_window(data.get("valid_from"), data.get("valid_until"))

    if get_coupon_by_code(db, code):
        raise ValueError("Coupon code already exists")

    coupon = Coupon(
        code=code,
        description=data.get("description") or "",
        discount_percent=data["discount_percent"],
        min_order_amount=data.get("min_order_amount") or 0.0,
        max_discount=data.get("max_discount"),
        valid_from=data.get("valid_from") or now_ist(),
        valid_until=data.get("valid_until"),
        usage_limit=data.get("usage_limit"),
        used_count=0,
        is_active=data.get("is_active", True)
    )
    db.add(coupon)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValueError("Coupon code already exists")
    db.refresh(coupon)

    logger.info(f"Coupon created | Code: {coupon.code} | ID: {coupon.id}")
    return coupon


def list_coupons(
    db: Session,
    is_active: Optional[bool] = None,
    page: int = 1,
    limit: int = 50
) -> Dict[str, Any]:
    """
    Paginated coupon listing, newest first.
    """
    query = db.query(Coupon)
    if is_active is not None:
        query = query.filter(Coupon.is_active == is_active)

    total = query.count()
    coupons = (
        query.order_by(Coupon.created_at.desc(), Coupon.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "coupons": coupons,
        "page": page,
        "total_pages": ceil(total / limit) if limit else 0,
        "total": total
    }


def update_coupon(db: Session, coupon: Coupon, changes: Dict[str, Any]) -> Coupon:
    """
    Apply a partial update. used_count is never writable here.
    """
    changes = {
        key: value for key, value in changes.items()
        if key != "used_count" and not (value is None and key in REQUIRED_FIELDS)
    }

    if "code" in changes:
        new_code = normalize_coupon_code(changes["code"])
        if not new_code:
            raise ValueError("Coupon code is required")
        existing = get_coupon_by_code(db, new_code)
        if existing and existing.id != coupon.id:
            raise ValueError("Coupon code already exists")
        changes["code"] = new_code

    _check_validity_window(
        changes.get("valid_from", coupon.valid_from),
        changes.get("valid_until", coupon.valid_until)
    )

    for key, value in changes.items():
        setattr(coupon, key, value)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValueError("Coupon code already exists")
    db.refresh(coupon)

    logger.info(f"Coupon updated | Code: {coupon.code} | Fields: {sorted(changes)}")
    return coupon


def delete_coupon(db: Session, coupon: Coupon) -> str:
    code = coupon.code
    db.delete(coupon)
    db.commit()
    logger.info(f"Coupon deleted | Code: {code}")
    return code


def coupon_stats(db: Session) -> Dict[str, Any]:
    """
    Aggregate usage statistics plus the number of coupons that expired in the last 7 days.
    """
    total_coupons, total_uses, avg_discount = db.query(
        func.count(Coupon.id),
        func.coalesce(func.sum(Coupon.used_count), 0),
        func.coalesce(func.avg(Coupon.discount_percent), 0.0)
    ).one()

    active_coupons = db.query(func.count(Coupon.id)).filter(Coupon.is_active == True).scalar()

    now = now_ist()
    recently_expired = db.query(func.count(Coupon.id)).filter(
        Coupon.valid_until < now,
        Coupon.valid_until > now - timedelta(days=7)
    ).scalar()

    return {
        "total_coupons": total_coupons or 0,
        "active_coupons": active_coupons or 0,
        "total_uses": int(total_uses or 0),
        "avg_discount": round(float(avg_discount or 0.0), 2),
        "recently_expired": recently_expired or 0
    }
