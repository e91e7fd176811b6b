"""
Coupon model for percentage discount coupons.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, CheckConstraint, Index
from sqlalchemy.orm import validates

from database import Base
from Login_module.Utils.datetime_utils import now_ist, to_ist


def normalize_coupon_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


class Coupon(Base):
    """
    Coupon table.
    used_count is only ever changed through coupon_engine.redeem().
    """
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, index=True)  # Stored uppercase, trimmed
    description = Column(String(500), nullable=True, default="")

    discount_percent = Column(Float, nullable=False)  # 0-100
    min_order_amount = Column(Float, nullable=False, default=0.0)
    max_discount = Column(Float, nullable=True)  # Cap on absolute discount (None = no cap)

    # Validity period (None = unbounded on that side)
    valid_from = Column(DateTime(timezone=True), nullable=True)
    valid_until = Column(DateTime(timezone=True), nullable=True, index=True)

    # Usage limits
    usage_limit = Column(Integer, nullable=True)  # None = unlimited
    used_count = Column(Integer, nullable=False, default=0)

    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=now_ist, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=now_ist)

    __table_args__ = (
        CheckConstraint("discount_percent >= 0 AND discount_percent <= 100", name="ck_coupons_discount_percent"),
        CheckConstraint("min_order_amount >= 0", name="ck_coupons_min_order_amount"),
        CheckConstraint("used_count >= 0", name="ck_coupons_used_count"),
        Index("ix_coupons_active_window", "is_active", "valid_from", "valid_until"),
    )

    @validates("code")
    def _normalize_code(self, key, value):
        return normalize_coupon_code(value)

    def is_expired_at(self, now: Optional[datetime] = None) -> bool:
        now = now or now_ist()
        return self.valid_until is not None and to_ist(self.valid_until) < now

    def is_started_at(self, now: Optional[datetime] = None) -> bool:
        now = now or now_ist()
        return self.valid_from is None or to_ist(self.valid_from) <= now

    def is_valid_at(self, now: Optional[datetime] = None) -> bool:
        """Active and inside [valid_from, valid_until], both bounds inclusive."""
        now = now or now_ist()
        return bool(self.is_active) and self.is_started_at(now) and not self.is_expired_at(now)

    @property
    def is_expired(self) -> bool:
        return self.is_expired_at()

    @property
    def is_valid(self) -> bool:
        return self.is_valid_at()

    @property
    def is_usage_limit_reached(self) -> bool:
        return self.usage_limit is not None and (self.used_count or 0) >= self.usage_limit

    @property
    def remaining_uses(self) -> Optional[int]:
        if self.usage_limit is None:
            return None
        return max(0, self.usage_limit - (self.used_count or 0))
