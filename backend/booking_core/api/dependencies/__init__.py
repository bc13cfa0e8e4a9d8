# backend/booking_core/api/dependencies/__init__.py
"""
Central export point for all dependencies.
"""

from .database import get_db
from .services import (
    get_availability_service,
    get_booking_request_service,
    get_booking_service,
    get_discount_service,
    get_job_card_service,
    get_payment_service,
    get_session_edit_request_service,
)

__all__ = [
    # Database
    "get_db",
    # Services
    "get_availability_service",
    "get_booking_service",
    "get_booking_request_service",
    "get_discount_service",
    "get_job_card_service",
    "get_payment_service",
    "get_session_edit_request_service",
]
