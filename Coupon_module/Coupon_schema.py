from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime

from Login_module.Utils.datetime_utils import to_ist
from .Coupon_model import normalize_coupon_code


class CouponCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50, examples=["HEALTH10"])
    description: Optional[str] = Field(None, max_length=500)
    discount_percent: float = Field(..., gt=0, le=100)
    min_order_amount: float = Field(0.0, ge=0)
    max_discount: Optional[float] = Field(None, gt=0)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    usage_limit: Optional[int] = Field(None, gt=0)
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v):
        code = normalize_coupon_code(v)
        if not code:
            raise ValueError("Coupon code is required")
        return code

    @field_validator("valid_from", "valid_until")
    @classmethod
    def convert_to_ist(cls, v):
        return to_ist(v)

    @model_validator(mode="after")
    def check_window(self):
        if self.valid_from and self.valid_until and self.valid_from > self.valid_until:
            raise ValueError("Valid from date cannot be after valid until date")
        return self


class CouponUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=500)
    discount_percent: Optional[float] = Field(None, gt=0, le=100)
    min_order_amount: Optional[float] = Field(None, ge=0)
    max_discount: Optional[float] = Field(None, gt=0)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    usage_limit: Optional[int] = Field(None, gt=0)
    is_active: Optional[bool] = None

    @field_validator("valid_from", "valid_until")
    @classmethod
    def convert_to_ist(cls, v):
        return to_ist(v)


class CouponResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    description: Optional[str] = None
    discount_percent: float
    min_order_amount: float
    max_discount: Optional[float] = None
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    usage_limit: Optional[int] = None
    used_count: int
    is_active: bool
    is_expired: bool
    is_valid: bool
    is_usage_limit_reached: bool
    remaining_uses: Optional[int] = None
    created_at: Optional[datetime] = None

    @field_validator("valid_from", "valid_until", "created_at")
    @classmethod
    def convert_to_ist(cls, v):
        return to_ist(v)


class CouponListResponse(BaseModel):
    coupons: List[CouponResponse]
    page: int
    total_pages: int
    total: int


class CouponStats(BaseModel):
    total_coupons: int
    active_coupons: int
    total_uses: int
    avg_discount: float
    recently_expired: int


class DeleteCouponResponse(BaseModel):
    message: str
    code: str


class ValidateCouponRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    cart_total: float = Field(..., ge=0)


class ValidateCouponResponse(BaseModel):
    valid: bool
    message: str
    discount: float = 0.0
    discount_percent: Optional[float] = None
    final_amount: Optional[float] = None
    coupon_id: Optional[int] = None
    coupon_code: Optional[str] = None
