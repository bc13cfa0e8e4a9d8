# backend/booking_core/schemas/availability.py
"""Availability summary schemas: oracle snapshot plus capacity ledger rows."""

from typing import Dict, List

from pydantic import Field

from ._strict_base import StrictModel


class SlotCapacity(StrictModel):
    slot_date: str
    slot_id: str
    label: str = ""
    capacity: int
    booked: int
    remaining: int


class AvailabilitySummary(StrictModel):
    provider_id: str
    ref_code: str
    from_date: str
    to_date: str
    booked_slots: Dict[str, List[str]] = Field(
        default_factory=dict, description="ISO date -> slot ids already held for the provider"
    )
    slots: List[SlotCapacity] = Field(default_factory=list)
