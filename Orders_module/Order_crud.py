"""
Order CRUD operations.
"""
from dataclasses import dataclass
from typing import Optional, List, Dict, Any, Tuple
import logging
import secrets

from sqlalchemy import update
from sqlalchemy.orm import Session, selectinload

from config import Settings
from Login_module.Utils.datetime_utils import now_ist
from Login_module.User.user_model import User
from Coupon_module.Coupon_model import Coupon
from Coupon_module import coupon_engine
from Coupon_module.coupon_service import get_coupon_by_code
from Medicine_module.Medicine_model import Medicine
from Medicine_module.Medicine_crud import get_active_medicines, deduct_stock
from .Order_model import (
    Order, OrderItem, OrderStatusHistory,
    OrderStatus, PaymentStatus, PaymentMethod
)

logger = logging.getLogger(__name__)

# Statuses an admin may move an order to
ADMIN_SETTABLE_STATUSES = {
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
}


@dataclass
class OrderTotals:
    subtotal: float
    discount: float
    delivery_charge: float
    total_amount: float
    coupon: Optional[Coupon] = None


def assemble_order_totals(
    subtotal: float,
    delivery_charge: float,
    coupon: Optional[Coupon] = None,
    now=None
) -> OrderTotals:
    """
    total = subtotal - discount + delivery_charge.
    discount is 0 when there is no coupon or it does not apply to this subtotal.
    """
    discount = 0.0
    applied_coupon = None
    if coupon is not None and coupon_engine.can_apply(coupon, subtotal, now):
        discount = coupon_engine.compute_discount(coupon, subtotal)
        applied_coupon = coupon

    total_amount = max(0.0, round(subtotal - discount + delivery_charge, 2))
    return OrderTotals(
        subtotal=subtotal,
        discount=discount,
        delivery_charge=delivery_charge,
        total_amount=total_amount,
        coupon=applied_coupon
    )


def generate_order_number() -> str:
    """Generate unique order number"""
    timestamp = now_ist().strftime("%Y%m%d%H%M%S")
    random_part = secrets.token_hex(4).upper()
    return f"ORD{timestamp}{random_part}"


def _record_status(db: Session, order: Order, new_status: OrderStatus, notes: str, changed_by: str) -> None:
    previous_status = order.order_status
    order.order_status = new_status
    db.add(OrderStatusHistory(
        order=order,
        status=new_status,
        previous_status=previous_status,
        notes=notes,
        changed_by=changed_by
    ))


def _restore_stock(db: Session, order: Order) -> None:
    for item in order.items:
        db.execute(
            update(Medicine)
            .where(Medicine.id == item.medicine_id)
            .values(stock=Medicine.stock + item.quantity)
            .execution_options(synchronize_session=False)
        )
        logger.info(f"Restored {item.quantity} unit(s) of medicine {item.medicine_id} | Order: {order.order_number}")


def create_order(
    db: Session,
    user: User,
    lines: List[Dict[str, int]],
    shipping_address: Dict[str, Any],
    payment_method: PaymentMethod,
    coupon_code: Optional[str],
    settings: Settings
) -> Tuple[Order, float]:
    """
    Place an order for the given medicine lines.

    Order row, coupon redemption and stock deduction share one transaction:
    if the coupon can no longer be redeemed (CouponRedemptionError) or stock
    ran out (ValueError), nothing is persisted.

    Returns (order, discount_amount).
    """
    medicines = get_active_medicines(db, [line["medicine_id"] for line in lines])

    for line in lines:
        medicine = medicines.get(line["medicine_id"])
        if not medicine:
            raise ValueError(f"Medicine {line['medicine_id']} not found")
        if medicine.stock < line["quantity"]:
            raise ValueError(
                f"Insufficient stock for {medicine.name}. "
                f"Available: {medicine.stock}, Requested: {line['quantity']}"
            )

    subtotal = round(sum(medicines[line["medicine_id"]].price * line["quantity"] for line in lines), 2)

    coupon = None
    if coupon_code:
        coupon = get_coupon_by_code(db, coupon_code)
        if not coupon:
            logger.info(f"Coupon '{coupon_code}' not found - placing order without discount | User ID: {user.id}")

    totals = assemble_order_totals(subtotal, settings.DELIVERY_CHARGE, coupon)
    if coupon is not None and totals.coupon is None:
        logger.info(f"Coupon '{coupon.code}' not applicable to subtotal ₹{subtotal} | User ID: {user.id}")

    order = Order(
        order_number=generate_order_number(),
        user_id=user.id,
        subtotal=totals.subtotal,
        delivery_charge=totals.delivery_charge,
        discount=totals.discount,
        coupon_id=totals.coupon.id if totals.coupon else None,
        coupon_code=totals.coupon.code if totals.coupon else None,
        total_amount=totals.total_amount,
        payment_method=payment_method,
        payment_status=PaymentStatus.PENDING,
        order_status=OrderStatus.PROCESSING,
        shipping_address=shipping_address
    )
    order.status_history.append(OrderStatusHistory(
        status=OrderStatus.PROCESSING,
        notes="Order placed",
        changed_by=str(user.id)
    ))
    for line in lines:
        medicine = medicines[line["medicine_id"]]
        order.items.append(OrderItem(
            medicine_id=medicine.id,
            medicine_name=medicine.name,
            quantity=line["quantity"],
            unit_price=medicine.price
        ))

    try:
        db.add(order)
        db.flush()  # Get order.id

        if totals.coupon is not None:
            coupon_engine.redeem(db, totals.coupon)

        for line in lines:
            if not deduct_stock(db, line["medicine_id"], line["quantity"]):
                raise ValueError(f"Insufficient stock for {medicines[line['medicine_id']].name}")

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(order)
    logger.info(
        f"Order created | Order: {order.order_number} | User ID: {user.id} | "
        f"Subtotal: ₹{order.subtotal} | Discount: ₹{order.discount} | Coupon: {order.coupon_code} | "
        f"Total: ₹{order.total_amount}"
    )
    return order, totals.discount


def get_order_by_id(db: Session, order_id: int) -> Optional[Order]:
    return (
        db.query(Order)
        .options(selectinload(Order.items), selectinload(Order.status_history))
        .filter(Order.id == order_id)
        .first()
    )


def get_user_orders(db: Session, user_id: int, limit: int = 50) -> List[Order]:
    return (
        db.query(Order)
        .options(selectinload(Order.items), selectinload(Order.status_history))
        .filter(Order.user_id == user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
        .all()
    )


def get_all_orders(db: Session, page: int = 1, limit: int = 50) -> List[Order]:
    return (
        db.query(Order)
        .options(selectinload(Order.items), selectinload(Order.status_history))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )


def cancel_order(db: Session, order: Order, user: User) -> Order:
    """
    Cancel an order on behalf of its owner and restore stock.
    Coupon usage is not released: a redeemed coupon stays spent.
    """
    if not order.can_be_cancelled():
        raise ValueError(
            f'Cannot cancel an order that is already "{order.order_status.value}". '
            f"Only pending or processing orders that are not paid can be cancelled."
        )

    try:
        _restore_stock(db, order)
        _record_status(db, order, OrderStatus.CANCELLED, "Cancelled by customer", str(user.id))
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(order)
    logger.info(f"Order cancelled | Order: {order.order_number} | User ID: {user.id}")
    return order


def update_order_status(
    db: Session,
    order: Order,
    new_status: OrderStatus,
    changed_by: str,
    payment_status: Optional[PaymentStatus] = None,
    notes: Optional[str] = None
) -> Order:
    """
    Admin status update. Moving an order to cancelled restores its stock.
    """
    if new_status not in ADMIN_SETTABLE_STATUSES:
        raise ValueError("Invalid status value")
    if order.order_status == OrderStatus.CANCELLED:
        raise ValueError("Order is already cancelled")

    try:
        if new_status == OrderStatus.CANCELLED:
            _restore_stock(db, order)
        if payment_status is not None:
            order.payment_status = payment_status
        _record_status(db, order, new_status, notes or f"Status changed to {new_status.value}", changed_by)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(order)
    logger.info(f"Order status updated | Order: {order.order_number} | Status: {new_status.value} | By: {changed_by}")
    return order
