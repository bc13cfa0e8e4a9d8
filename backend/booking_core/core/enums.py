# backend/booking_core/core/enums.py
"""Shared enumerations for bookings, payments and request workflows."""

from enum import Enum
from typing import Optional


class BookingStatus(str, Enum):
    """Booking lifecycle statuses. Every status except CANCELLED holds its slots."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def holds_slots(self) -> bool:
        return self is not BookingStatus.CANCELLED


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


class RequestStatus(str, Enum):
    """Disposition of booking requests and session edit requests."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not RequestStatus.PENDING


class FinanceEntryType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class DealScope(str, Enum):
    """Which part of a priced order a deal discounts."""

    ALL = "all"
    SERVICES = "services"
    SUBSERVICES = "subservices"

    @classmethod
    def parse(cls, value: Optional[str]) -> "DealScope":
        # Legacy catalog naming
        aliases = {"categories": cls.SERVICES, "subcategories": cls.SUBSERVICES}
        normalized = (value or "").strip().lower()
        if normalized in aliases:
            return aliases[normalized]
        return cls(normalized)


class JobServiceType(str, Enum):
    REPAIR = "Repair"
    MAINTENANCE = "Maintenance"
    INSPECTION = "Inspection"


class JobPriority(str, Enum):
    NORMAL = "Normal"
    URGENT = "Urgent"


class JobPaymentStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"
    CANCELLED = "Cancelled"


class CounterName(str, Enum):
    """Named monotonic sequences."""

    APPOINTMENT = "appointment"
    PAYMENT = "payment"
    REQUEST = "request"
    PATIENT = "patient"
    SESSION_EDIT_REQUEST = "session-edit-request"
