"""Customer-submitted booking requests awaiting an admin-created booking."""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..core.enums import RequestStatus
from ..core.ulid_helper import generate_ulid
from ..database import Base


class BookingRequest(Base):
    __tablename__ = "booking_requests"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    request_code = Column(String(20), nullable=False, unique=True, index=True)
    package_id = Column(String(26), ForeignKey("packages.id"), nullable=False)
    patient_id = Column(String(26), ForeignKey("patients.id"), nullable=False, index=True)
    therapy_id = Column(String(26), ForeignKey("service_types.id"), nullable=False)
    # [{"date": "YYYY-MM-DD", "slot_id": "...", "time": "..."}]
    requested_sessions = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=RequestStatus.PENDING.value, index=True)
    booking_id = Column(String(26), ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    package = relationship("Package")
    patient = relationship("Patient")
    therapy = relationship("ServiceType")

    def __repr__(self) -> str:
        return f"<BookingRequest {self.request_code} {self.status}>"
