# backend/booking_core/schemas/__init__.py
"""Pydantic request/response schemas for the booking API."""

from .booking import (
    BookingCreate,
    BookingResponse,
    BookingUpdate,
    CheckInRequest,
    SessionRequest,
    SlotConflict,
)
from .booking_request import BookingRequestCreate, BookingRequestResponse
from .job_card import JobCardCreate, JobCardResponse, PricePreviewRequest
from .session_edit_request import SessionEditRequestCreate, SessionEditRequestUpdate

__all__ = [
    "BookingCreate",
    "BookingRequestCreate",
    "BookingRequestResponse",
    "BookingResponse",
    "BookingUpdate",
    "CheckInRequest",
    "JobCardCreate",
    "JobCardResponse",
    "PricePreviewRequest",
    "SessionEditRequestCreate",
    "SessionEditRequestUpdate",
    "SessionRequest",
    "SlotConflict",
]
