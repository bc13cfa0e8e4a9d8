# backend/booking_core/schemas/job_card.py
"""
Job card schemas.

Prices are accepted as decimals and echoed back as strings so that the
discount breakdown round-trips without float drift.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import Field

from ..core.enums import JobPaymentStatus, JobPriority, JobServiceType
from ._strict_base import StrictModel, StrictRequestModel


class SubServiceLine(StrictRequestModel):
    id: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0)


class ServiceLine(StrictRequestModel):
    id: str = Field(..., min_length=1)
    sub_services: List[SubServiceLine] = Field(default_factory=list)


class JobCardCreate(StrictRequestModel):
    business_id: str = Field(..., min_length=1)
    customer_id: str = Field(..., min_length=1)
    vehicle_id: str = Field(..., min_length=1)
    odometer_reading: Optional[int] = Field(None, ge=0)
    issue_description: Optional[str] = None
    service_type: JobServiceType = JobServiceType.REPAIR
    priority_level: JobPriority = JobPriority.NORMAL
    services: List[ServiceLine] = Field(default_factory=list)
    deal_code: Optional[str] = None
    additional_notes: Optional[str] = None
    technical_remarks: Optional[str] = None


class PricePreviewRequest(StrictRequestModel):
    business_id: str = Field(..., min_length=1)
    services: List[ServiceLine] = Field(default_factory=list)
    deal_code: Optional[str] = None


class PricePreviewResponse(StrictModel):
    services: List[Dict[str, Any]]
    deal_applied: Optional[Dict[str, Any]] = None
    subtotal: Decimal
    total_discount: Decimal
    total_payable_amount: Decimal


class JobCardResponse(StrictModel):
    id: str
    business_id: str
    customer_id: str
    vehicle_id: str
    odometer_reading: Optional[int] = None
    issue_description: Optional[str] = None
    service_type: str
    priority_level: str
    services: List[Dict[str, Any]]
    deal_applied: Optional[Dict[str, Any]] = None
    total_payable_amount: Decimal
    payment_status: JobPaymentStatus
    additional_notes: Optional[str] = None
    technical_remarks: Optional[str] = None
    created_at: Optional[datetime] = None
