# backend/booking_core/repositories/payment_repository.py
"""
Payment and finance ledger repositories.

FinanceRecordRepository looks records up by idempotency key (the payment id)
with an equality match.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models.payment import FinanceRecord, Payment
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class PaymentRepository(BaseRepository[Payment]):
    def __init__(self, db: Session):
        super().__init__(db, Payment)


class FinanceRecordRepository(BaseRepository[FinanceRecord]):
    def __init__(self, db: Session):
        super().__init__(db, FinanceRecord)

    def get_by_idempotency_key(self, key: str) -> Optional[FinanceRecord]:
        return self.find_one_by(idempotency_key=key)
