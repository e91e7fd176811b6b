"""
Order router - checkout, order history and status tracking.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List
import logging

from config import Settings
from deps import get_db, get_settings, get_dispatcher
from Login_module.Utils.auth_user import get_current_user, get_current_admin
from Login_module.User.user_model import User
from Coupon_module.coupon_engine import CouponRedemptionError
from .Order_schema import (
    CreateOrderRequest,
    CreateOrderResponse,
    OrderResponse,
    UpdateOrderStatusRequest
)
from . import Order_crud

router = APIRouter(prefix="/orders", tags=["Orders"])

logger = logging.getLogger(__name__)


def _get_order_or_404(db: Session, order_id: int):
    order = Order_crud.get_order_by_id(db, order_id)
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


@router.post("", response_model=CreateOrderResponse, status_code=status.HTTP_201_CREATED)
def place_order(
    request: CreateOrderRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    dispatcher=Depends(get_dispatcher)
):
    """
    Place an order. A coupon that does not apply is ignored (discount 0);
    a coupon that ran out of uses between check and redeem fails with 409.
    """
    try:
        order, discount = Order_crud.create_order(
            db=db,
            user=current_user,
            lines=[line.model_dump() for line in request.items],
            shipping_address=request.shipping_address.model_dump(),
            payment_method=request.payment_method,
            coupon_code=request.coupon_code,
            settings=settings
        )
    except CouponRedemptionError as e:
        logger.warning(f"Coupon redemption failed at checkout | User ID: {current_user.id} | Error: {e}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    dispatcher.send_order_confirmation(background_tasks, current_user, order)

    return CreateOrderResponse(
        message="Order placed successfully",
        order=OrderResponse.model_validate(order),
        discount_amount=discount
    )


@router.get("/my", response_model=List[OrderResponse])
def my_orders(
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return Order_crud.get_user_orders(db, current_user.id, limit=limit)


@router.get("", response_model=List[OrderResponse])
def all_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    return Order_crud.get_all_orders(db, page=page, limit=limit)


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    order = _get_order_or_404(db, order_id)
    if order.user_id != current_user.id and not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to view this order")
    return order


@router.put("/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(
    order_id: int,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    dispatcher=Depends(get_dispatcher)
):
    order = _get_order_or_404(db, order_id)
    if order.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to cancel this order")

    try:
        order = Order_crud.cancel_order(db, order, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    dispatcher.send_order_status(background_tasks, current_user, order)
    return order


@router.put("/{order_id}/status", response_model=OrderResponse)
def update_status(
    order_id: int,
    request: UpdateOrderStatusRequest,
    background_tasks: BackgroundTasks,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
    dispatcher=Depends(get_dispatcher)
):
    order = _get_order_or_404(db, order_id)

    try:
        order = Order_crud.update_order_status(
            db,
            order,
            request.status,
            changed_by=str(admin.id),
            payment_status=request.payment_status,
            notes=request.notes
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    dispatcher.send_order_status(background_tasks, order.user, order)
    return order
