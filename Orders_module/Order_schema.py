"""
Order schemas for request/response models.
"""
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional, List
from datetime import datetime

from Login_module.Utils.datetime_utils import to_ist
from .Order_model import OrderStatus, PaymentStatus, PaymentMethod


class OrderLine(BaseModel):
    medicine_id: int = Field(..., gt=0)
    quantity: int = Field(..., ge=1, le=100)


class ShippingAddress(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: Optional[str] = ""
    postal_code: str = Field(..., min_length=1)
    country: str = "India"


class CreateOrderRequest(BaseModel):
    items: List[OrderLine] = Field(..., min_length=1)
    shipping_address: ShippingAddress
    payment_method: PaymentMethod = PaymentMethod.COD
    coupon_code: Optional[str] = Field(None, max_length=50)

    @field_validator("items")
    @classmethod
    def unique_medicines(cls, v):
        ids = [line.medicine_id for line in v]
        if len(ids) != len(set(ids)):
            raise ValueError("Each medicine may appear only once per order")
        return v


class UpdateOrderStatusRequest(BaseModel):
    status: OrderStatus
    payment_status: Optional[PaymentStatus] = None
    notes: Optional[str] = Field(None, description="Notes about the status change")


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    medicine_id: int
    medicine_name: str
    quantity: int
    unit_price: float


class StatusHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: OrderStatus
    previous_status: Optional[OrderStatus] = None
    notes: str
    changed_by: str
    created_at: Optional[datetime] = None

    @field_validator("created_at")
    @classmethod
    def convert_to_ist(cls, v):
        return to_ist(v)


class OrderResponse(BaseModel):
    """Order response model"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    user_id: int
    subtotal: float
    discount: float
    coupon_code: Optional[str] = None
    delivery_charge: float
    total_amount: float
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    order_status: OrderStatus
    shipping_address: ShippingAddress
    items: List[OrderItemResponse]
    status_history: List[StatusHistoryResponse] = []
    created_at: Optional[datetime] = None

    @field_validator("created_at")
    @classmethod
    def convert_to_ist(cls, v):
        return to_ist(v)


class CreateOrderResponse(BaseModel):
    status: str = "success"
    message: str
    order: OrderResponse
    discount_amount: float
