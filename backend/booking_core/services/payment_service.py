# backend/booking_core/services/payment_service.py
"""
Payment collection for bookings.

Marking a payment paid and writing its finance ledger entry happen in one
transaction. The finance entry is keyed by the payment id, so repeating the
collection never produces a second income record.
"""

from datetime import datetime, timezone
import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from ..core.enums import FinanceEntryType, PaymentStatus
from ..core.exceptions import NotFoundException, ValidationException
from ..models.payment import FinanceRecord, Payment
from ..repositories.booking_repository import BookingRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.payment_repository import FinanceRecordRepository, PaymentRepository
from .base import BaseService

logger = logging.getLogger(__name__)


class PaymentService(BaseService):
    def __init__(
        self,
        db: Session,
        booking_repository: Optional[BookingRepository] = None,
        payment_repository: Optional[PaymentRepository] = None,
        finance_repository: Optional[FinanceRecordRepository] = None,
    ):
        super().__init__(db)
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )
        self.payment_repository = (
            payment_repository or RepositoryFactory.create_payment_repository(db)
        )
        self.finance_repository = (
            finance_repository or RepositoryFactory.create_finance_record_repository(db)
        )

    @BaseService.measure_operation("collect_payment")
    def collect_payment(self, booking_id: str) -> Tuple[Payment, FinanceRecord, bool]:
        """
        Mark the booking's payment paid and record the income entry.

        Returns (payment, finance_record, already_paid).
        """
        booking = self.booking_repository.get_by_id(booking_id, load_relationships=False)
        if booking is None:
            raise NotFoundException("Booking not found", details={"booking_id": booking_id})
        if not booking.payment_id:
            raise ValidationException(
                "Booking has no payment to collect",
                code="NO_PAYMENT",
                details={"booking_id": booking_id},
            )
        payment = self.payment_repository.get_by_id(booking.payment_id)
        if payment is None:
            raise NotFoundException(
                "Payment not found", details={"payment_id": booking.payment_id}
            )

        already_paid = payment.status == PaymentStatus.PAID.value
        with self.transaction():
            now = datetime.now(timezone.utc)
            if not already_paid:
                payment.status = PaymentStatus.PAID.value
                payment.paid_at = now
            booking.payment_status = PaymentStatus.PAID.value

            record = self.finance_repository.get_by_idempotency_key(payment.id)
            if record is None:
                record = self.finance_repository.create(
                    idempotency_key=payment.id,
                    booking_id=booking.id,
                    description=f"Payment for Booking #{booking.appointment_id}",
                    amount=payment.amount,
                    entry_type=FinanceEntryType.INCOME.value,
                    credit_debit_status="credited",
                    recorded_at=now,
                )
            else:
                self.logger.info(
                    "Finance record already exists for payment",
                    extra={"payment_id": payment.id, "finance_record_id": record.id},
                )

        self.log_operation(
            "collect_payment",
            booking_id=booking_id,
            payment_id=payment.id,
            already_paid=already_paid,
        )
        return payment, record, already_paid
