# backend/booking_core/models/availability.py
"""
Capacity ledger rows for the availability calendar.

booked is a display counter only. It is adjusted as bookings change and is
never consulted to decide whether a slot can be reserved.
"""

from sqlalchemy import CheckConstraint, Column, Integer, String, UniqueConstraint

from ..core.ulid_helper import generate_ulid
from ..database import Base


class DailyAvailabilitySlot(Base):
    __tablename__ = "daily_availability_slots"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    slot_date = Column(String(10), nullable=False, index=True)  # ISO YYYY-MM-DD
    slot_id = Column(String(64), nullable=False)
    label = Column(String(50), nullable=True)
    capacity = Column(Integer, nullable=False, default=1)
    booked = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("slot_date", "slot_id", name="uq_daily_availability_slot"),
        CheckConstraint("booked >= 0", name="ck_daily_availability_booked_nonnegative"),
    )

    def __repr__(self) -> str:
        return f"<DailyAvailabilitySlot {self.slot_date} {self.slot_id} booked={self.booked}>"
