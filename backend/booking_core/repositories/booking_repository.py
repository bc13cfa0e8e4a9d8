# backend/booking_core/repositories/booking_repository.py
"""
Booking Repository for the booking engine.

Handles:
- Booking lookups with sessions and references eager loaded
- Filtered booking listings (patient, provider, session date)
- Session row replacement that preserves ids and check-in state
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, selectinload

from ..core.exceptions import RepositoryException
from ..models.booking import Booking, BookingSession
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    """Repository for booking data access."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(
            selectinload(Booking.sessions).selectinload(BookingSession.provider),
            selectinload(Booking.sessions).selectinload(BookingSession.service_type),
            selectinload(Booking.package),
            selectinload(Booking.patient),
            selectinload(Booking.provider),
            selectinload(Booking.therapy),
            selectinload(Booking.payment),
            selectinload(Booking.coupon),
        )

    def list_bookings(
        self,
        *,
        patient_id: Optional[str] = None,
        provider_id: Optional[str] = None,
        session_date: Optional[str] = None,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[Booking]:
        """
        List bookings newest first.

        provider_id and session_date match against session rows, so a booking is
        returned when any of its sessions is with that provider or on that date.
        """
        try:
            query = self._apply_eager_loading(self.db.query(Booking))
            if patient_id:
                query = query.filter(Booking.patient_id == patient_id)
            if status:
                query = query.filter(Booking.status == status)
            if provider_id or session_date:
                session_filter = []
                if provider_id:
                    session_filter.append(BookingSession.provider_id == provider_id)
                if session_date:
                    session_filter.append(BookingSession.session_date == session_date)
                query = query.filter(Booking.sessions.any(*session_filter))
            return (
                query.order_by(Booking.created_at.desc(), Booking.id.desc())
                .offset(skip)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing bookings: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}")

    def replace_sessions(self, booking: Booking, sessions: Sequence[Dict[str, Any]]) -> None:
        """
        Replace the booking's session list wholesale.

        Rows whose (date, slot, provider) key survives are reused, keeping their
        ids and check-in state; the rest are dropped via delete-orphan.
        """
        existing = {s.slot_key: s for s in booking.sessions}
        replacement: List[BookingSession] = []
        for position, data in enumerate(sessions):
            key = (data["session_date"], data["slot_id"], data["provider_id"])
            row = existing.pop(key, None)
            if row is None:
                row = BookingSession(**data)
            else:
                row.time_label = data.get("time_label", row.time_label)
                row.service_type_id = data.get("service_type_id", row.service_type_id)
            row.position = position
            replacement.append(row)
        booking.sessions = replacement
        self.db.flush()
