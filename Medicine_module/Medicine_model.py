from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, CheckConstraint
from database import Base
from Login_module.Utils.datetime_utils import now_ist


class Medicine(Base):
    """
    Medicine as seen by checkout: price and stock.
    Catalog details (images, descriptions, categories) live outside this service.
    """
    __tablename__ = "medicines"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False, index=True)
    price = Column(Float, nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    requires_prescription = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime(timezone=True), default=now_ist)
    updated_at = Column(DateTime(timezone=True), onupdate=now_ist)

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_medicines_price"),
        CheckConstraint("stock >= 0", name="ck_medicines_stock"),
    )
