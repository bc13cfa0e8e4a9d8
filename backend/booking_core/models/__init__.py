"""
Database models for the booking engine.

- Reference catalog (providers, packages, patients, service types)
- Bookings, their sessions and slot claims
- Payments and finance records
- Counters and the capacity ledger
- Booking requests and session edit requests
- Coupons, deals and job cards
"""

from .availability import DailyAvailabilitySlot
from .booking import Booking, BookingSession
from .booking_request import BookingRequest
from .catalog import Package, Patient, Provider, ServiceType
from .counter import Counter
from .discount import Coupon, Deal
from .job_card import JobCard
from .payment import FinanceRecord, Payment
from .session_edit_request import SessionEditRequest
from .slot_claim import SessionSlotClaim

__all__ = [
    "Booking",
    "BookingRequest",
    "BookingSession",
    "Counter",
    "Coupon",
    "DailyAvailabilitySlot",
    "Deal",
    "FinanceRecord",
    "JobCard",
    "Package",
    "Patient",
    "Payment",
    "Provider",
    "ServiceType",
    "SessionEditRequest",
    "SessionSlotClaim",
]
