# backend/booking_core/models/payment.py
"""
Payment and finance ledger models.

A Payment is created in "pending" status together with its booking and is
moved to "paid" by the collect-payment flow, which also writes exactly one
FinanceRecord keyed by the payment id.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from ..core.enums import FinanceEntryType, PaymentStatus
from ..core.ulid_helper import generate_ulid
from ..database import Base


class Payment(Base):
    """Payment stub created alongside a booking."""

    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    payment_code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)
    appointment_id: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, index=True)
    patient_id: Mapped[Optional[str]] = mapped_column(
        String(26), ForeignKey("patients.id"), nullable=True
    )

    # total_amount is the package total; amount is what is owed after any coupon
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentStatus.PENDING.value
    )
    method: Mapped[str] = mapped_column(String(32), nullable=False, default="cash")
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    def __repr__(self) -> str:
        return f"<Payment {self.payment_code} {self.status} amount={self.amount}>"


class FinanceRecord(Base):
    """Income/expense ledger entry. idempotency_key is the originating payment id."""

    __tablename__ = "finance_records"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    idempotency_key: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    booking_id: Mapped[Optional[str]] = mapped_column(String(26), nullable=True, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    entry_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=FinanceEntryType.INCOME.value
    )
    credit_debit_status: Mapped[str] = mapped_column(String(20), nullable=False, default="credited")
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<FinanceRecord {self.idempotency_key} {self.entry_type} {self.amount}>"
