# backend/booking_core/repositories/discount_repository.py
"""
Coupon and deal lookups.

Only enabled, unexpired entries are ever returned; callers treat "not found"
as "no discount".
"""

from datetime import date
import logging
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..models.discount import Coupon, Deal
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class CouponRepository(BaseRepository[Coupon]):
    def __init__(self, db: Session):
        super().__init__(db, Coupon)

    def find_active(self, id_or_code: str, today: date) -> Optional[Coupon]:
        return (
            self.db.query(Coupon)
            .filter(
                or_(Coupon.id == id_or_code, Coupon.coupon_code == id_or_code),
                Coupon.discount_enabled.is_(True),
                or_(Coupon.valid_until.is_(None), Coupon.valid_until >= today),
            )
            .first()
        )


class DealRepository(BaseRepository[Deal]):
    def __init__(self, db: Session):
        super().__init__(db, Deal)

    def find_active(self, business_id: str, deal_code: str, today: date) -> Optional[Deal]:
        return (
            self.db.query(Deal)
            .filter(
                Deal.business_id == business_id,
                Deal.deal_code == deal_code,
                Deal.enabled.is_(True),
                or_(Deal.start_date.is_(None), Deal.start_date <= today),
                or_(Deal.end_date.is_(None), Deal.end_date >= today),
            )
            .first()
        )
