# backend/booking_core/models/booking.py
"""
Booking model and its embedded session rows.

A booking owns an ordered list of sessions, each one concrete occurrence
identified by (session_date, slot_id, provider_id). While a booking is active
every session is mirrored by a SessionSlotClaim row; the claim table carries the
uniqueness guarantee, sessions carry presentation data and check-in state.
"""

from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..core.enums import BookingStatus, PaymentStatus
from ..core.ulid_helper import generate_ulid
from ..database import Base


class Booking(Base):
    """
    Reservation record tying a patient, package and provider to a set of sessions.

    appointment_id is minted once, at creation, in the same transaction as the payment.
    """

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)
    appointment_id = Column(String(20), nullable=False, unique=True, index=True)

    package_id = Column(String(26), ForeignKey("packages.id"), nullable=False)
    patient_id = Column(String(26), ForeignKey("patients.id"), nullable=False, index=True)
    provider_id = Column(String(26), ForeignKey("providers.id"), nullable=False, index=True)
    therapy_id = Column(String(26), ForeignKey("service_types.id"), nullable=False)
    payment_id = Column(String(26), ForeignKey("payments.id"), nullable=True)
    booking_request_id = Column(String(26), nullable=True)

    status = Column(String(20), nullable=False, default=BookingStatus.SCHEDULED.value, index=True)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    notes = Column(Text, nullable=True)
    remark = Column(Text, nullable=True)

    # Discount reference
    coupon_id = Column(String(26), ForeignKey("coupons.id"), nullable=True)
    coupon_applied_at = Column(DateTime(timezone=True), nullable=True)

    # Channel / attribution
    channel = Column(String(50), nullable=True)
    referred_by = Column(String(200), nullable=True)

    # Follow-up
    follow_up_date = Column(Date, nullable=True)
    follow_up_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    sessions = relationship(
        "BookingSession",
        back_populates="booking",
        order_by="BookingSession.position",
        cascade="all, delete-orphan",
    )
    claims = relationship(
        "SessionSlotClaim",
        back_populates="booking",
        cascade="all, delete-orphan",
    )
    package = relationship("Package")
    patient = relationship("Patient")
    provider = relationship("Provider")
    therapy = relationship("ServiceType")
    payment = relationship("Payment", foreign_keys=[payment_id])
    coupon = relationship("Coupon")

    __table_args__ = (Index("ix_bookings_provider_status", "provider_id", "status"),)

    def __repr__(self) -> str:
        return f"<Booking {self.appointment_id} status={self.status} sessions={len(self.sessions)}>"

    @property
    def holds_slots(self) -> bool:
        return BookingStatus(self.status).holds_slots

    def find_session(self, session_id: str) -> Optional["BookingSession"]:
        return next((s for s in self.sessions if s.id == session_id), None)


class BookingSession(Base):
    """One concrete occurrence inside a booking."""

    __tablename__ = "booking_sessions"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    booking_id = Column(
        String(26), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = Column(Integer, nullable=False, default=0)

    session_date = Column(String(10), nullable=False)  # ISO YYYY-MM-DD
    time_label = Column(String(50), nullable=False, default="")
    slot_id = Column(String(64), nullable=False)
    provider_id = Column(String(26), ForeignKey("providers.id"), nullable=False)
    service_type_id = Column(String(26), ForeignKey("service_types.id"), nullable=True)

    is_checked_in = Column(Boolean, nullable=False, default=False)
    checked_in_at = Column(DateTime(timezone=True), nullable=True)

    booking = relationship("Booking", back_populates="sessions")
    provider = relationship("Provider")
    service_type = relationship("ServiceType")

    @property
    def slot_key(self) -> tuple:
        return (self.session_date, self.slot_id, self.provider_id)

    def __repr__(self) -> str:
        return f"<BookingSession {self.session_date} {self.slot_id} provider={self.provider_id}>"
