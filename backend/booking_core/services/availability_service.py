# backend/booking_core/services/availability_service.py
"""
Availability summary for capacity display.

Combines the oracle's booked-slot snapshot for one provider with the capacity
ledger rows over the same date range. Nothing here is consulted when reserving.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundException, ValidationException
from ..repositories.availability_ledger_repository import AvailabilityLedgerRepository
from ..repositories.catalog_repository import CatalogRepository
from ..repositories.factory import RepositoryFactory
from ..schemas.availability import AvailabilitySummary, SlotCapacity
from .availability_oracle import (
    AvailabilityOracle,
    BookingAvailabilityOracle,
    booked_slots_for,
    normalize_day_key,
)
from .base import BaseService

logger = logging.getLogger(__name__)


class AvailabilityService(BaseService):
    def __init__(
        self,
        db: Session,
        availability_oracle: Optional[AvailabilityOracle] = None,
        ledger_repository: Optional[AvailabilityLedgerRepository] = None,
        catalog_repository: Optional[CatalogRepository] = None,
    ):
        super().__init__(db)
        self.catalog_repository = (
            catalog_repository or RepositoryFactory.create_catalog_repository(db)
        )
        self.ledger_repository = (
            ledger_repository or RepositoryFactory.create_availability_ledger_repository(db)
        )
        self.availability_oracle = availability_oracle or BookingAvailabilityOracle(
            db, catalog_repository=self.catalog_repository
        )

    @BaseService.measure_operation("availability_summary")
    def summary(self, provider_id: str, from_date: str, to_date: str) -> AvailabilitySummary:
        start = normalize_day_key(from_date)
        end = normalize_day_key(to_date)
        if start is None or end is None or start > end:
            raise ValidationException(
                "from_date and to_date must be dates with from_date <= to_date",
                details={"from_date": from_date, "to_date": to_date},
            )

        provider = self.catalog_repository.get_provider(provider_id)
        if provider is None:
            raise NotFoundException("Provider not found", details={"provider_id": provider_id})
        ref_code = provider.ref_code or provider.id

        snapshot = self.availability_oracle.query(provider_id, start, end)
        booked = booked_slots_for(snapshot, ref_code)

        slots = [
            SlotCapacity(
                slot_date=row.slot_date,
                slot_id=row.slot_id,
                label=row.label or "",
                capacity=row.capacity,
                booked=row.booked,
                remaining=max(row.capacity - row.booked, 0),
            )
            for row in self.ledger_repository.list_for_range(start, end)
        ]
        return AvailabilitySummary(
            provider_id=provider_id,
            ref_code=ref_code,
            from_date=start,
            to_date=end,
            booked_slots={day: sorted(ids) for day, ids in sorted(booked.items()) if ids},
            slots=slots,
        )
