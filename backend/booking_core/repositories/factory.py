# backend/booking_core/repositories/factory.py
"""
Repository Factory for the booking engine.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from sqlalchemy.orm import Session

from .availability_ledger_repository import AvailabilityLedgerRepository
from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .catalog_repository import CatalogRepository
from .counter_repository import CounterRepository
from .discount_repository import CouponRepository, DealRepository
from .payment_repository import FinanceRecordRepository, PaymentRepository
from .request_repository import BookingRequestRepository, SessionEditRequestRepository
from .slot_claim_repository import SlotClaimRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_base_repository(db: Session, model) -> BaseRepository:
        """Create a generic base repository for any model."""
        return BaseRepository(db, model)

    @staticmethod
    def create_booking_repository(db: Session) -> BookingRepository:
        return BookingRepository(db)

    @staticmethod
    def create_slot_claim_repository(db: Session) -> SlotClaimRepository:
        return SlotClaimRepository(db)

    @staticmethod
    def create_counter_repository(db: Session) -> CounterRepository:
        return CounterRepository(db)

    @staticmethod
    def create_availability_ledger_repository(db: Session) -> AvailabilityLedgerRepository:
        return AvailabilityLedgerRepository(db)

    @staticmethod
    def create_payment_repository(db: Session) -> PaymentRepository:
        return PaymentRepository(db)

    @staticmethod
    def create_finance_record_repository(db: Session) -> FinanceRecordRepository:
        return FinanceRecordRepository(db)

    @staticmethod
    def create_booking_request_repository(db: Session) -> BookingRequestRepository:
        return BookingRequestRepository(db)

    @staticmethod
    def create_session_edit_request_repository(db: Session) -> SessionEditRequestRepository:
        return SessionEditRequestRepository(db)

    @staticmethod
    def create_catalog_repository(db: Session) -> CatalogRepository:
        return CatalogRepository(db)

    @staticmethod
    def create_coupon_repository(db: Session) -> CouponRepository:
        return CouponRepository(db)

    @staticmethod
    def create_deal_repository(db: Session) -> DealRepository:
        return DealRepository(db)
