# backend/booking_core/routes/v1/jobs.py
"""
Job card routes - API v1

Endpoints:
    POST /price-preview - Price services with an optional deal, without saving
    POST / - Create a job card with its discount breakdown
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, status

from ...api.dependencies import get_job_card_service
from ...api.domain_errors import handle_domain_exception
from ...core.exceptions import DomainException
from ...schemas.job_card import (
    JobCardCreate,
    JobCardResponse,
    PricePreviewRequest,
    PricePreviewResponse,
)
from ...services.job_card_service import JobCardService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["jobs-v1"])


@router.post("/price-preview", response_model=PricePreviewResponse)
async def price_preview(
    payload: PricePreviewRequest,
    service: JobCardService = Depends(get_job_card_service),
) -> PricePreviewResponse:
    try:
        order = await asyncio.to_thread(service.preview, payload)
        return PricePreviewResponse(
            services=[s.to_dict() for s in order.services],
            deal_applied=order.deal_applied,
            subtotal=order.subtotal,
            total_discount=order.total_discount,
            total_payable_amount=order.total_payable_amount,
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.post("", response_model=JobCardResponse, status_code=status.HTTP_201_CREATED)
async def create_job_card(
    payload: JobCardCreate,
    service: JobCardService = Depends(get_job_card_service),
) -> JobCardResponse:
    try:
        job_card = await asyncio.to_thread(service.create_job_card, payload)
        return JobCardResponse.model_validate(job_card)
    except DomainException as e:
        handle_domain_exception(e)
