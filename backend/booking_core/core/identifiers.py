# backend/booking_core/core/identifiers.py
"""Human-readable identifier formats minted from named counters."""

from datetime import date
from typing import Callable, Dict, Optional

from .enums import CounterName


def format_appointment_id(seq: int) -> str:
    return f"APT{seq:06d}"


def format_payment_id(seq: int, today: Optional[date] = None) -> str:
    year = (today or date.today()).year
    return f"INV-{year}-{seq:05d}"


def format_request_id(seq: int) -> str:
    return f"REQ-{seq:05d}"


def format_session_edit_request_id(seq: int) -> str:
    return f"SER{seq:05d}"


def format_patient_id(seq: int) -> str:
    return f"PAT{seq:05d}"


FORMATTERS: Dict[CounterName, Callable[[int], str]] = {
    CounterName.APPOINTMENT: format_appointment_id,
    CounterName.PAYMENT: format_payment_id,
    CounterName.REQUEST: format_request_id,
    CounterName.SESSION_EDIT_REQUEST: format_session_edit_request_id,
    CounterName.PATIENT: format_patient_id,
}


def format_identifier(counter: CounterName, seq: int) -> str:
    return FORMATTERS[counter](seq)
