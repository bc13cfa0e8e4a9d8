# backend/booking_core/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

Each request gets service instances bound to its own database session.
"""

import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.availability_service import AvailabilityService
from ...services.booking_request_service import BookingRequestService
from ...services.booking_service import BookingService
from ...services.discount_service import DiscountService
from ...services.job_card_service import JobCardService
from ...services.payment_service import PaymentService
from ...services.session_edit_request_service import SessionEditRequestService
from .database import get_db

logger = logging.getLogger(__name__)


def get_discount_service(db: Session = Depends(get_db)) -> DiscountService:
    return DiscountService(db)


def get_booking_service(
    db: Session = Depends(get_db),
    discount_service: DiscountService = Depends(get_discount_service),
) -> BookingService:
    """
    Get booking service instance.

    Uses the claim-backed availability oracle; the Redis slot lock follows settings.
    """
    return BookingService(db, discount_service=discount_service)


def get_payment_service(db: Session = Depends(get_db)) -> PaymentService:
    return PaymentService(db)


def get_session_edit_request_service(
    db: Session = Depends(get_db),
) -> SessionEditRequestService:
    return SessionEditRequestService(db)


def get_booking_request_service(db: Session = Depends(get_db)) -> BookingRequestService:
    return BookingRequestService(db)


def get_job_card_service(
    db: Session = Depends(get_db),
    discount_service: DiscountService = Depends(get_discount_service),
) -> JobCardService:
    return JobCardService(db, discount_service=discount_service)


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db)
