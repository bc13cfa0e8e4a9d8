# backend/booking_core/repositories/slot_claim_repository.py
"""
Repository for slot claims, the storage-level mutual exclusion records.

Integrity errors raised while syncing claims are deliberately NOT wrapped:
the booking service translates them into slot conflicts.
"""

import logging
from typing import Iterable, List, Optional, Set, Tuple

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ..models.booking import Booking
from ..models.slot_claim import SessionSlotClaim
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

SlotKey = Tuple[str, str, str]


class SlotClaimRepository(BaseRepository[SessionSlotClaim]):
    def __init__(self, db: Session):
        super().__init__(db, SessionSlotClaim)

    def sync_claims(
        self, booking: Booking, keys: Set[SlotKey]
    ) -> Tuple[Set[SlotKey], Set[SlotKey]]:
        """
        Make the booking hold exactly ``keys``.

        Returns (claimed, released). Flushes so a duplicate claim surfaces here
        as an IntegrityError.
        """
        current = {claim.slot_key: claim for claim in booking.claims}
        released = set(current) - keys
        claimed = keys - set(current)
        for key in released:
            booking.claims.remove(current[key])
        for session_date, slot_id, provider_id in sorted(claimed):
            booking.claims.append(
                SessionSlotClaim(
                    session_date=session_date, slot_id=slot_id, provider_id=provider_id
                )
            )
        self.db.flush()
        return claimed, released

    def find_holders(
        self, keys: Iterable[SlotKey], exclude_booking_id: Optional[str] = None
    ) -> List[SessionSlotClaim]:
        """Claims on any of ``keys`` held by bookings other than ``exclude_booking_id``."""
        keys = list(keys)
        if not keys:
            return []
        query = self.db.query(SessionSlotClaim).filter(
            or_(
                *[
                    and_(
                        SessionSlotClaim.session_date == session_date,
                        SessionSlotClaim.slot_id == slot_id,
                        SessionSlotClaim.provider_id == provider_id,
                    )
                    for session_date, slot_id, provider_id in keys
                ]
            )
        )
        if exclude_booking_id:
            query = query.filter(SessionSlotClaim.booking_id != exclude_booking_id)
        return query.all()

    def keys_held_by(self, booking_id: str) -> Set[SlotKey]:
        return {claim.slot_key for claim in self.find_by(booking_id=booking_id)}

    def list_for_provider(
        self, provider_id: str, from_date: str, to_date: str
    ) -> List[SessionSlotClaim]:
        """Claims for one provider with from_date <= date <= to_date (ISO strings sort by date)."""
        return (
            self.db.query(SessionSlotClaim)
            .filter(
                SessionSlotClaim.provider_id == provider_id,
                SessionSlotClaim.session_date >= from_date,
                SessionSlotClaim.session_date <= to_date,
            )
            .order_by(SessionSlotClaim.session_date, SessionSlotClaim.slot_id)
            .all()
        )
