# backend/booking_core/routes/v1/availability.py
"""Availability summary route - API v1 (capacity display only)."""

import asyncio
import logging

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import get_availability_service
from ...api.domain_errors import handle_domain_exception
from ...core.exceptions import DomainException
from ...schemas.availability import AvailabilitySummary
from ...services.availability_service import AvailabilityService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["availability-v1"])


@router.get("/summary", response_model=AvailabilitySummary)
async def availability_summary(
    provider_id: str = Query(...),
    from_date: str = Query(..., description="YYYY-MM-DD"),
    to_date: str = Query(..., description="YYYY-MM-DD"),
    service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilitySummary:
    try:
        return await asyncio.to_thread(service.summary, provider_id, from_date, to_date)
    except DomainException as e:
        handle_domain_exception(e)
