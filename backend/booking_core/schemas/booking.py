# backend/booking_core/schemas/booking.py
"""
Booking schemas.

Reference ids and session fields on requests are optional at the schema level
so that missing values are reported by the booking service as a 400 with the
names of the missing fields, rather than as a generic request validation error.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator

from ..core.enums import BookingStatus
from ._strict_base import StrictModel, StrictRequestModel


class SessionRequest(StrictRequestModel):
    """One requested occurrence. ``id`` is accepted as a legacy alias for ``slot_id``."""

    date: Optional[str] = Field(None, description="Session date, YYYY-MM-DD")
    slot_id: Optional[str] = Field(None, description="Slot identifier within the day")
    id: Optional[str] = Field(None, description="Legacy slot identifier")
    time: Optional[str] = Field(None, max_length=50, description="Time-of-day label")
    provider_id: Optional[str] = Field(None, description="Overrides the booking-level provider")
    service_type_id: Optional[str] = Field(
        None, description="Overrides the booking-level therapy/service type"
    )

    @field_validator("date", "slot_id", "id", "provider_id", "service_type_id", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value


class BookingCreate(StrictRequestModel):
    package_id: Optional[str] = None
    patient_id: Optional[str] = None
    therapy_id: Optional[str] = None
    provider_id: Optional[str] = None
    sessions: List[SessionRequest] = Field(default_factory=list)

    coupon: Optional[str] = Field(None, description="Coupon id or code")
    status: Optional[BookingStatus] = None
    notes: Optional[str] = Field(None, max_length=2000)
    remark: Optional[str] = Field(None, max_length=2000)
    channel: Optional[str] = Field(None, max_length=50)
    referred_by: Optional[str] = Field(None, max_length=200)
    follow_up_date: Optional[date] = None
    follow_up_notes: Optional[str] = Field(None, max_length=2000)
    booking_request_id: Optional[str] = Field(
        None, description="Booking request fulfilled by this booking"
    )


class BookingUpdate(StrictRequestModel):
    """
    Partial booking update. ``sessions`` replaces the session list wholesale when given.

    ``coupon`` set to an empty string removes the coupon; omitted leaves it unchanged.
    """

    package_id: Optional[str] = None
    patient_id: Optional[str] = None
    therapy_id: Optional[str] = None
    provider_id: Optional[str] = None
    sessions: Optional[List[SessionRequest]] = None

    coupon: Optional[str] = None
    status: Optional[BookingStatus] = None
    notes: Optional[str] = Field(None, max_length=2000)
    remark: Optional[str] = Field(None, max_length=2000)
    channel: Optional[str] = Field(None, max_length=50)
    referred_by: Optional[str] = Field(None, max_length=200)
    follow_up_date: Optional[date] = None
    follow_up_notes: Optional[str] = Field(None, max_length=2000)


class CheckInRequest(StrictRequestModel):
    booking_id: Optional[str] = None
    session_id: Optional[str] = None


class SlotConflict(StrictModel):
    date: str
    slot_id: str
    provider_id: str


class SessionResponse(StrictModel):
    id: str
    position: int
    session_date: str
    time_label: str
    slot_id: str
    provider_id: str
    service_type_id: Optional[str] = None
    is_checked_in: bool
    checked_in_at: Optional[datetime] = None


class PaymentResponse(StrictModel):
    id: str
    payment_code: str
    total_amount: Decimal
    amount: Decimal
    status: str
    method: str
    paid_at: Optional[datetime] = None


class BookingResponse(StrictModel):
    id: str
    appointment_id: str
    status: str
    payment_status: str
    package_id: str
    patient_id: str
    provider_id: str
    therapy_id: str
    payment_id: Optional[str] = None
    coupon_id: Optional[str] = None
    coupon_applied_at: Optional[datetime] = None
    booking_request_id: Optional[str] = None
    notes: Optional[str] = None
    remark: Optional[str] = None
    channel: Optional[str] = None
    referred_by: Optional[str] = None
    follow_up_date: Optional[date] = None
    follow_up_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    sessions: List[SessionResponse] = Field(default_factory=list)
    payment: Optional[PaymentResponse] = None


class BookingDeleteResponse(StrictModel):
    success: bool = True
    booking_id: str
    released_ledger_rows: int


class CheckInResponse(StrictModel):
    success: bool = True
    already_checked_in: bool
    booking: BookingResponse


class CollectPaymentResponse(StrictModel):
    success: bool = True
    already_paid: bool
    payment: PaymentResponse
    finance_record_id: str
