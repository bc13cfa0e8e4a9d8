"""Capacity ledger data access (display read-model)."""

import logging
from typing import List

from sqlalchemy import case
from sqlalchemy.orm import Session

from ..models.availability import DailyAvailabilitySlot
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class AvailabilityLedgerRepository(BaseRepository[DailyAvailabilitySlot]):
    def __init__(self, db: Session):
        super().__init__(db, DailyAvailabilitySlot)

    def adjust_booked(self, slot_date: str, slot_id: str, delta: int) -> int:
        """
        Apply ``delta`` to the booked count of one (date, slot) row, never below zero.

        Returns the number of rows touched; 0 when the calendar has no such row.
        """
        new_value = DailyAvailabilitySlot.booked + delta
        return (
            self.db.query(DailyAvailabilitySlot)
            .filter(
                DailyAvailabilitySlot.slot_date == slot_date,
                DailyAvailabilitySlot.slot_id == slot_id,
            )
            .update(
                {DailyAvailabilitySlot.booked: case((new_value < 0, 0), else_=new_value)},
                synchronize_session="fetch",
            )
        )

    def list_for_range(self, from_date: str, to_date: str) -> List[DailyAvailabilitySlot]:
        return (
            self.db.query(DailyAvailabilitySlot)
            .filter(
                DailyAvailabilitySlot.slot_date >= from_date,
                DailyAvailabilitySlot.slot_date <= to_date,
            )
            .order_by(DailyAvailabilitySlot.slot_date, DailyAvailabilitySlot.slot_id)
            .all()
        )
