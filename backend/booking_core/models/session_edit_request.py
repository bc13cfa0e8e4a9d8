# backend/booking_core/models/session_edit_request.py
"""
Customer-initiated proposals to move sessions of an existing booking.

At most one pending request may exist per booking. The service checks this
before inserting and the partial unique index enforces it under concurrency.
"""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, String, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..core.enums import RequestStatus
from ..core.ulid_helper import generate_ulid
from ..database import Base

ONE_PENDING_INDEX = "uq_session_edit_requests_one_pending"


class SessionEditRequest(Base):
    __tablename__ = "session_edit_requests"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    request_code = Column(String(20), nullable=False, unique=True)
    booking_id = Column(
        String(26), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    patient_id = Column(String(26), ForeignKey("patients.id"), nullable=False)
    # [{"session_id": "...", "new_date": "YYYY-MM-DD", "new_slot_id": "..."}]
    sessions = Column(JSON, nullable=False, default=list)
    status = Column(String(20), nullable=False, default=RequestStatus.PENDING.value, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    booking = relationship("Booking")

    __table_args__ = (
        Index(
            ONE_PENDING_INDEX,
            "booking_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    def __repr__(self) -> str:
        return f"<SessionEditRequest {self.request_code} booking={self.booking_id} {self.status}>"
