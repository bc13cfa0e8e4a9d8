# backend/booking_core/repositories/__init__.py
"""
Repository layer for data access, separating business logic from queries.

Usage:
    from booking_core.repositories import RepositoryFactory

    # In a service:
    bookings = RepositoryFactory.create_booking_repository(db)
    booking = bookings.get_by_id(booking_id)
"""

from .availability_ledger_repository import AvailabilityLedgerRepository
from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .catalog_repository import CatalogRepository
from .counter_repository import CounterRepository
from .discount_repository import CouponRepository, DealRepository
from .factory import RepositoryFactory
from .payment_repository import FinanceRecordRepository, PaymentRepository
from .request_repository import BookingRequestRepository, SessionEditRequestRepository
from .slot_claim_repository import SlotClaimRepository

__all__ = [
    "AvailabilityLedgerRepository",
    "BaseRepository",
    "BookingRepository",
    "BookingRequestRepository",
    "CatalogRepository",
    "CounterRepository",
    "CouponRepository",
    "DealRepository",
    "FinanceRecordRepository",
    "PaymentRepository",
    "RepositoryFactory",
    "SessionEditRequestRepository",
    "SlotClaimRepository",
]
