# backend/booking_core/models/slot_claim.py
"""
Storage-level mutual exclusion for booked slots.

Each session of an active booking owns exactly one claim row. The unique
constraint over (session_date, slot_id, provider_id) makes the database reject
the second of two concurrent reservations regardless of how stale the
availability snapshot each of them read was.
"""

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..core.ulid_helper import generate_ulid
from ..database import Base

SLOT_CLAIM_CONSTRAINT = "uq_session_slot_claims_slot"


class SessionSlotClaim(Base):
    __tablename__ = "session_slot_claims"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    booking_id = Column(
        String(26), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    session_date = Column(String(10), nullable=False)
    slot_id = Column(String(64), nullable=False)
    provider_id = Column(String(26), ForeignKey("providers.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    booking = relationship("Booking", back_populates="claims")

    __table_args__ = (
        UniqueConstraint("session_date", "slot_id", "provider_id", name=SLOT_CLAIM_CONSTRAINT),
    )

    @property
    def slot_key(self) -> tuple:
        return (self.session_date, self.slot_id, self.provider_id)

    def __repr__(self) -> str:
        return f"<SessionSlotClaim {self.session_date} {self.slot_id} provider={self.provider_id}>"
