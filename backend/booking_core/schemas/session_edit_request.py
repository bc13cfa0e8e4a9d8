# backend/booking_core/schemas/session_edit_request.py
"""Schemas for customer-initiated session move requests."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ..core.enums import RequestStatus
from ._strict_base import StrictModel, StrictRequestModel


class SessionChange(StrictRequestModel):
    """Move one existing session to a new date/slot."""

    session_id: Optional[str] = None
    new_date: Optional[str] = Field(None, description="YYYY-MM-DD")
    new_slot_id: Optional[str] = None


class SessionEditRequestCreate(StrictRequestModel):
    booking_id: Optional[str] = None
    patient_id: Optional[str] = None
    sessions: List[SessionChange] = Field(default_factory=list)


class SessionEditRequestUpdate(StrictRequestModel):
    sessions: Optional[List[SessionChange]] = None
    status: Optional[RequestStatus] = None


class SessionEditRequestResponse(StrictModel):
    id: str
    request_code: str
    booking_id: str
    patient_id: str
    sessions: List[dict]
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
