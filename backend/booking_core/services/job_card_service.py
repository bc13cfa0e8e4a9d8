# backend/booking_core/services/job_card_service.py
"""
Job Card Service

Prices a job card's services with an optional business deal and persists the
per-line discount breakdown alongside the payable total.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.enums import JobPaymentStatus
from ..models.job_card import JobCard
from ..repositories.base_repository import BaseRepository
from ..repositories.factory import RepositoryFactory
from ..schemas.job_card import JobCardCreate, PricePreviewRequest
from .base import BaseService
from .discount_service import DiscountService, PricedOrder

logger = logging.getLogger(__name__)


class JobCardService(BaseService):
    def __init__(
        self,
        db: Session,
        discount_service: Optional[DiscountService] = None,
        repository: Optional[BaseRepository[JobCard]] = None,
    ):
        super().__init__(db)
        self.discount_service = discount_service or DiscountService(db)
        self.repository = repository or RepositoryFactory.create_base_repository(db, JobCard)

    @BaseService.measure_operation("preview_job_card_price")
    def preview(self, data: PricePreviewRequest) -> PricedOrder:
        services = [service.model_dump() for service in data.services]
        return self.discount_service.price_with_deal(data.business_id, services, data.deal_code)

    @BaseService.measure_operation("create_job_card")
    def create_job_card(self, data: JobCardCreate) -> JobCard:
        services = [service.model_dump() for service in data.services]
        order = self.discount_service.price_with_deal(data.business_id, services, data.deal_code)

        with self.transaction():
            job_card = self.repository.create(
                business_id=data.business_id,
                customer_id=data.customer_id,
                vehicle_id=data.vehicle_id,
                odometer_reading=data.odometer_reading,
                issue_description=data.issue_description,
                service_type=data.service_type.value,
                priority_level=data.priority_level.value,
                services=[service.to_dict() for service in order.services],
                deal_applied=order.deal_applied,
                total_payable_amount=order.total_payable_amount,
                payment_status=JobPaymentStatus.PENDING.value,
                additional_notes=data.additional_notes,
                technical_remarks=data.technical_remarks,
            )

        self.log_operation(
            "create_job_card",
            job_card_id=job_card.id,
            deal_code=(order.deal_applied or {}).get("deal_code"),
            total=str(order.total_payable_amount),
        )
        return job_card
