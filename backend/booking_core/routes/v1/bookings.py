# backend/booking_core/routes/v1/bookings.py
"""
Booking routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to BookingService and PaymentService.

Endpoints:
    POST /check-in - Check in one session (idempotent)
    GET / - List bookings filtered by patient, provider or session date
    POST / - Create a booking with its sessions
    GET /{booking_id} - Full booking details
    PUT /{booking_id} - Update booking fields and/or replace its sessions
    DELETE /{booking_id} - Delete a booking and release its capacity
    POST /{booking_id}/collect-payment - Mark the booking's payment paid
"""

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ...api.dependencies import get_booking_service, get_payment_service
from ...api.domain_errors import handle_domain_exception
from ...core.enums import BookingStatus
from ...core.exceptions import DomainException
from ...schemas.booking import (
    BookingCreate,
    BookingDeleteResponse,
    BookingResponse,
    BookingUpdate,
    CheckInRequest,
    CheckInResponse,
    CollectPaymentResponse,
    PaymentResponse,
)
from ...services.booking_service import BookingService
from ...services.payment_service import PaymentService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])


# ============================================================================
# SECTION 1: Static routes (no path parameters)
# ============================================================================


@router.post("/check-in", response_model=CheckInResponse)
async def check_in_session(
    payload: CheckInRequest,
    booking_service: BookingService = Depends(get_booking_service),
) -> CheckInResponse:
    """Mark one session of a booking as checked in. Repeated calls succeed."""
    try:
        booking, already = await asyncio.to_thread(
            booking_service.check_in, payload.booking_id, payload.session_id
        )
        return CheckInResponse(
            already_checked_in=already, booking=BookingResponse.model_validate(booking)
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("", response_model=List[BookingResponse])
async def list_bookings(
    patient_id: Optional[str] = Query(None),
    provider_id: Optional[str] = Query(None),
    session_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    booking_service: BookingService = Depends(get_booking_service),
) -> List[BookingResponse]:
    try:
        bookings = await asyncio.to_thread(
            booking_service.list_bookings,
            patient_id=patient_id,
            provider_id=provider_id,
            session_date=session_date,
            status=status_filter.value if status_filter else None,
            skip=skip,
            limit=limit,
        )
        return [BookingResponse.model_validate(b) for b in bookings]
    except DomainException as e:
        handle_domain_exception(e)


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """
    Create a booking.

    Either every requested session is reserved or none is. Slot conflicts return
    409 with the full list of conflicting (date, slot_id, provider_id).
    """
    try:
        booking = await asyncio.to_thread(booking_service.create_booking, payload)
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


# ============================================================================
# SECTION 2: Dynamic routes (with path parameters)
# ============================================================================


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.get_booking, booking_id)
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.put("/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: str,
    payload: BookingUpdate,
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Update a booking; only newly added sessions are checked for conflicts."""
    try:
        booking = await asyncio.to_thread(booking_service.update_booking, booking_id, payload)
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/{booking_id}", response_model=BookingDeleteResponse)
async def delete_booking(
    booking_id: str,
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingDeleteResponse:
    try:
        released = await asyncio.to_thread(booking_service.delete_booking, booking_id)
        return BookingDeleteResponse(booking_id=booking_id, released_ledger_rows=released)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/collect-payment", response_model=CollectPaymentResponse)
async def collect_payment(
    booking_id: str,
    payment_service: PaymentService = Depends(get_payment_service),
) -> CollectPaymentResponse:
    try:
        payment, record, already_paid = await asyncio.to_thread(
            payment_service.collect_payment, booking_id
        )
        return CollectPaymentResponse(
            already_paid=already_paid,
            payment=PaymentResponse.model_validate(payment),
            finance_record_id=record.id,
        )
    except DomainException as e:
        handle_domain_exception(e)
