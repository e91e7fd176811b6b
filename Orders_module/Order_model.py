"""
Order model - stores order totals, the applied coupon, and status tracking.
The coupon id/code and discount are stored at placement time and never recomputed.
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, Enum, ForeignKey, Text, JSON
from sqlalchemy.orm import relationship
from database import Base
from Login_module.Utils.datetime_utils import now_ist
import enum


class OrderStatus(str, enum.Enum):
    """Order tracking statuses"""
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, enum.Enum):
    COD = "cod"
    RAZORPAY = "razorpay"
    CARD = "card"
    UPI = "upi"


# Orders in these states can still be cancelled by the customer
CANCELLABLE_STATUSES = {OrderStatus.PENDING, OrderStatus.PROCESSING}


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(50), unique=True, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Order totals: total_amount = subtotal - discount + delivery_charge
    subtotal = Column(Float, nullable=False)
    delivery_charge = Column(Float, nullable=False, default=0.0)
    discount = Column(Float, nullable=False, default=0.0)
    coupon_id = Column(Integer, ForeignKey("coupons.id", ondelete="SET NULL"), nullable=True, index=True)
    coupon_code = Column(String(50), nullable=True, index=True)  # Applied coupon code (None if no coupon)
    total_amount = Column(Float, nullable=False)

    payment_method = Column(Enum(PaymentMethod), nullable=False, default=PaymentMethod.COD)
    payment_status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING, index=True)
    order_status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.PROCESSING, index=True)

    # Shipping address as it was when the order was placed
    shipping_address = Column(JSON, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=now_ist, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=now_ist)

    # Relationships
    user = relationship("User")
    coupon = relationship("Coupon")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    status_history = relationship(
        "OrderStatusHistory",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusHistory.id"
    )

    def can_be_cancelled(self) -> bool:
        return self.order_status in CANCELLABLE_STATUSES and self.payment_status != PaymentStatus.PAID


class OrderItem(Base):
    """
    One medicine line of an order, with name and price captured at order time.
    """
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    medicine_id = Column(Integer, ForeignKey("medicines.id", ondelete="RESTRICT"), nullable=False)
    medicine_name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)

    order = relationship("Order", back_populates="items")


class OrderStatusHistory(Base):
    """
    Order status history - tracks all status changes for an order.
    """
    __tablename__ = "order_status_history"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(Enum(OrderStatus), nullable=False, index=True)
    previous_status = Column(Enum(OrderStatus), nullable=True)  # NULL for initial status
    notes = Column(Text, nullable=False)
    changed_by = Column(String(100), nullable=False)  # user_id or "system"
    created_at = Column(DateTime(timezone=True), default=now_ist, nullable=False)

    order = relationship("Order", back_populates="status_history")
