# backend/booking_core/models/discount.py
"""
Discount models: booking coupons and business-scoped deals.

Coupons apply a flat percentage to a booking's package total. Deals carry a
scope (whole order, one service, or one sub-service) and are applied to job
cards by deal code.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from ..core.enums import DealScope
from ..core.ulid_helper import generate_ulid
from ..database import Base


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    coupon_code = Column(String(50), nullable=False, unique=True, index=True)
    discount = Column(Integer, nullable=False)  # percent
    discount_enabled = Column(Boolean, nullable=False, default=True)
    valid_until = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("discount >= 0 AND discount <= 100", name="ck_coupons_discount_range"),
    )

    def __repr__(self) -> str:
        return f"<Coupon {self.coupon_code} {self.discount}%>"


class Deal(Base):
    __tablename__ = "deals"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    business_id = Column(String(26), nullable=False, index=True)
    deal_code = Column(String(50), nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    scope = Column(String(20), nullable=False, default=DealScope.ALL.value)
    # Service or sub-service id the deal targets; unused for scope "all"
    target_id = Column(String(64), nullable=True)
    percentage = Column(Integer, nullable=False)
    enabled = Column(Boolean, nullable=False, default=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)

    __table_args__ = (
        UniqueConstraint("business_id", "deal_code", name="uq_deals_business_code"),
        CheckConstraint("percentage >= 0 AND percentage <= 100", name="ck_deals_percentage_range"),
    )

    def __repr__(self) -> str:
        return f"<Deal {self.deal_code} {self.scope} {self.percentage}%>"
