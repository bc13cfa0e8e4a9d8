# backend/booking_core/routes/v1/booking_requests.py
"""
Booking request routes - API v1

Requests are approved by creating a booking that references them
(POST /bookings with booking_request_id); rejection happens here.
"""

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ...api.dependencies import get_booking_request_service
from ...api.domain_errors import handle_domain_exception
from ...core.enums import RequestStatus
from ...core.exceptions import DomainException
from ...schemas.booking_request import BookingRequestCreate, BookingRequestResponse
from ...services.booking_request_service import BookingRequestService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["booking-requests-v1"])


@router.post("", response_model=BookingRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_booking_request(
    payload: BookingRequestCreate,
    service: BookingRequestService = Depends(get_booking_request_service),
) -> BookingRequestResponse:
    try:
        request = await asyncio.to_thread(service.create_request, payload)
        return BookingRequestResponse.model_validate(request)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("", response_model=List[BookingRequestResponse])
async def list_booking_requests(
    status_filter: Optional[RequestStatus] = Query(None, alias="status"),
    patient_id: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    service: BookingRequestService = Depends(get_booking_request_service),
) -> List[BookingRequestResponse]:
    requests = await asyncio.to_thread(
        service.list_requests,
        status=status_filter.value if status_filter else None,
        patient_id=patient_id,
        skip=skip,
        limit=limit,
    )
    return [BookingRequestResponse.model_validate(r) for r in requests]


@router.get("/{request_id}", response_model=BookingRequestResponse)
async def get_booking_request(
    request_id: str,
    service: BookingRequestService = Depends(get_booking_request_service),
) -> BookingRequestResponse:
    try:
        request = await asyncio.to_thread(service.get_request, request_id)
        return BookingRequestResponse.model_validate(request)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{request_id}/reject", response_model=BookingRequestResponse)
async def reject_booking_request(
    request_id: str,
    service: BookingRequestService = Depends(get_booking_request_service),
) -> BookingRequestResponse:
    try:
        request = await asyncio.to_thread(service.reject_request, request_id)
        return BookingRequestResponse.model_validate(request)
    except DomainException as e:
        handle_domain_exception(e)
