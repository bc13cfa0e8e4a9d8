# backend/booking_core/services/availability_oracle.py
"""
AvailabilityOracle: per-day snapshot of slots already claimed per provider.

The engine depends only on the AvailabilityOracle protocol. The default
implementation derives the snapshot from the slot claims of active bookings;
deployments backed by an external calendar can inject their own.

Snapshot shape::

    {"2024-06-10": {"booked_slots": {"<provider ref code>": ["S1", "S2"]}}}
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
import logging
import re
from typing import Dict, List, Mapping, Optional, Protocol, Set

from sqlalchemy.orm import Session

from ..repositories.catalog_repository import CatalogRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.slot_claim_repository import SlotClaimRepository

logger = logging.getLogger(__name__)

DaySnapshot = Dict[str, Dict[str, List[str]]]
Snapshot = Dict[str, DaySnapshot]

_ISO_DAY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_LEGACY_DAY = re.compile(r"^\d{2}-\d{2}-\d{4}$")


class AvailabilityOracle(Protocol):
    """Read-only snapshot service consulted before a reservation is written."""

    def query(self, provider_id: str, from_date: str, to_date: str) -> Mapping[str, Mapping]:
        """Return per-day booked slot ids keyed by provider reference code."""
        ...


def normalize_day_key(key: str) -> Optional[str]:
    """Return an ISO date for ``YYYY-MM-DD`` or legacy ``DD-MM-YYYY`` keys, else None."""
    candidate = (key or "").strip()
    try:
        if _ISO_DAY.fullmatch(candidate):
            return datetime.strptime(candidate, "%Y-%m-%d").date().isoformat()
        if _LEGACY_DAY.fullmatch(candidate):
            return datetime.strptime(candidate, "%d-%m-%Y").date().isoformat()
    except ValueError:
        return None
    return None


def booked_slots_for(snapshot: Mapping[str, Mapping], ref_code: str) -> Dict[str, Set[str]]:
    """
    Flatten one oracle response into {iso_date: {slot_id, ...}} for a provider.

    Days with unrecognised keys are skipped with a warning rather than failing
    the whole reservation.
    """
    result: Dict[str, Set[str]] = defaultdict(set)
    for raw_day, day in (snapshot or {}).items():
        iso_day = normalize_day_key(raw_day)
        if iso_day is None:
            logger.warning("Ignoring availability day with unknown key", extra={"day": raw_day})
            continue
        booked = (day or {}).get("booked_slots") or (day or {}).get("bookedSlots") or {}
        result[iso_day].update(str(slot) for slot in booked.get(ref_code, []) or [])
    return dict(result)


class BookingAvailabilityOracle:
    """Snapshot derived from the slot claims held by active bookings."""

    def __init__(
        self,
        db: Session,
        claim_repository: Optional[SlotClaimRepository] = None,
        catalog_repository: Optional[CatalogRepository] = None,
    ):
        self.db = db
        self.claim_repository = claim_repository or RepositoryFactory.create_slot_claim_repository(
            db
        )
        self.catalog_repository = (
            catalog_repository or RepositoryFactory.create_catalog_repository(db)
        )

    def query(self, provider_id: str, from_date: str, to_date: str) -> Snapshot:
        provider = self.catalog_repository.get_provider(provider_id)
        ref_code = provider.ref_code if provider and provider.ref_code else provider_id

        snapshot: Snapshot = {}
        for claim in self.claim_repository.list_for_provider(provider_id, from_date, to_date):
            day = snapshot.setdefault(claim.session_date, {"booked_slots": {ref_code: []}})
            day["booked_slots"][ref_code].append(claim.slot_id)
        logger.debug(
            "Availability snapshot built",
            extra={"provider_id": provider_id, "days": len(snapshot)},
        )
        return snapshot
