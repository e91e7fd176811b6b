from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import Optional
import logging

from deps import get_db
from Login_module.Utils.auth_user import get_current_user, get_current_admin
from Login_module.User.user_model import User
from . import coupon_service
from .Coupon_schema import (
    CouponCreate,
    CouponUpdate,
    CouponResponse,
    CouponListResponse,
    CouponStats,
    DeleteCouponResponse,
    ValidateCouponRequest,
    ValidateCouponResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/coupons", tags=["coupons"])


def _get_coupon_or_404(db: Session, coupon_id: int):
    coupon = coupon_service.get_coupon(db, coupon_id)
    if not coupon:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Coupon not found")
    return coupon


@router.post("", response_model=CouponResponse, status_code=status.HTTP_201_CREATED)
def create_coupon(
    request: CouponCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    try:
        coupon = coupon_service.create_coupon(db, request.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return coupon


@router.get("", response_model=CouponListResponse)
def list_coupons(
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    return coupon_service.list_coupons(db, is_active=is_active, page=page, limit=limit)


@router.get("/stats", response_model=CouponStats)
def get_coupon_stats(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    return coupon_service.coupon_stats(db)


@router.post("/validate", response_model=ValidateCouponResponse)
def validate_coupon(
    request: ValidateCouponRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Check a coupon against a cart total (checkout preview).
    Does not redeem the coupon; redemption happens when the order is placed.
    """
    coupon, discount, error_message = coupon_service.validate_and_calculate_discount(
        db, request.code, request.cart_total
    )

    if not coupon:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=ValidateCouponResponse(valid=False, message=error_message).model_dump()
        )

    if error_message:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ValidateCouponResponse(valid=False, message=error_message).model_dump()
        )

    final_amount = round(request.cart_total - discount, 2)
    return ValidateCouponResponse(
        valid=True,
        message=f"Coupon applied! You saved ₹{discount:g}",
        discount=discount,
        discount_percent=coupon.discount_percent,
        final_amount=final_amount,
        coupon_id=coupon.id,
        coupon_code=coupon.code
    )


@router.get("/{coupon_id}", response_model=CouponResponse)
def get_coupon(
    coupon_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    return _get_coupon_or_404(db, coupon_id)


@router.put("/{coupon_id}", response_model=CouponResponse)
def update_coupon(
    coupon_id: int,
    request: CouponUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    coupon = _get_coupon_or_404(db, coupon_id)
    try:
        return coupon_service.update_coupon(db, coupon, request.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{coupon_id}", response_model=DeleteCouponResponse)
def delete_coupon(
    coupon_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    coupon = _get_coupon_or_404(db, coupon_id)
    code = coupon_service.delete_coupon(db, coupon)
    return DeleteCouponResponse(message="Coupon deleted", code=code)
