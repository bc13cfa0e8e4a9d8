# backend/booking_core/routes/v1/session_edit_requests.py
"""
Session edit request routes - API v1

Endpoints:
    POST / - Propose moving sessions of a booking
    GET / - List requests, optionally by booking and status
    PUT /{request_id} - Replace proposed sessions and/or approve/reject
    DELETE /{request_id} - Delete a request
"""

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ...api.dependencies import get_session_edit_request_service
from ...api.domain_errors import handle_domain_exception
from ...core.enums import RequestStatus
from ...core.exceptions import DomainException
from ...schemas.session_edit_request import (
    SessionEditRequestCreate,
    SessionEditRequestResponse,
    SessionEditRequestUpdate,
)
from ...services.session_edit_request_service import SessionEditRequestService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["session-edit-requests-v1"])


@router.post("", response_model=SessionEditRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_session_edit_request(
    payload: SessionEditRequestCreate,
    service: SessionEditRequestService = Depends(get_session_edit_request_service),
) -> SessionEditRequestResponse:
    try:
        request = await asyncio.to_thread(service.create_request, payload)
        return SessionEditRequestResponse.model_validate(request)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("", response_model=List[SessionEditRequestResponse])
async def list_session_edit_requests(
    booking_id: Optional[str] = Query(None),
    status_filter: Optional[RequestStatus] = Query(None, alias="status"),
    service: SessionEditRequestService = Depends(get_session_edit_request_service),
) -> List[SessionEditRequestResponse]:
    requests = await asyncio.to_thread(
        service.list_requests,
        booking_id=booking_id,
        status=status_filter.value if status_filter else None,
    )
    return [SessionEditRequestResponse.model_validate(r) for r in requests]


@router.put("/{request_id}", response_model=SessionEditRequestResponse)
async def update_session_edit_request(
    request_id: str,
    payload: SessionEditRequestUpdate,
    service: SessionEditRequestService = Depends(get_session_edit_request_service),
) -> SessionEditRequestResponse:
    try:
        request = await asyncio.to_thread(service.update_request, request_id, payload)
        return SessionEditRequestResponse.model_validate(request)
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/{request_id}")
async def delete_session_edit_request(
    request_id: str,
    service: SessionEditRequestService = Depends(get_session_edit_request_service),
) -> dict:
    try:
        await asyncio.to_thread(service.delete_request, request_id)
        return {"success": True, "request_id": request_id}
    except DomainException as e:
        handle_domain_exception(e)
