# backend/booking_core/schemas/booking_request.py
"""Schemas for booking requests submitted ahead of an admin-created booking."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ._strict_base import StrictModel, StrictRequestModel


class RequestedSession(StrictRequestModel):
    date: Optional[str] = None
    slot_id: Optional[str] = None
    time: Optional[str] = Field(None, max_length=50)


class BookingRequestCreate(StrictRequestModel):
    package_id: Optional[str] = None
    patient_id: Optional[str] = None
    therapy_id: Optional[str] = None
    sessions: List[RequestedSession] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=2000)


class BookingRequestResponse(StrictModel):
    id: str
    request_code: str
    package_id: str
    patient_id: str
    therapy_id: str
    requested_sessions: List[dict]
    notes: Optional[str] = None
    status: str
    booking_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
