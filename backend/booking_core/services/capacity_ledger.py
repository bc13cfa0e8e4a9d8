# backend/booking_core/services/capacity_ledger.py
"""
CapacityLedgerAdjuster: +1/-1 adjustments to the per-slot booked counters.

The ledger is a display read-model. It never decides whether a slot may be
reserved; slot claims do. Malformed sessions are filtered out up front so a
single bad row never fails the batch.
"""

import logging
import re
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.availability_ledger_repository import AvailabilityLedgerRepository
from ..repositories.factory import RepositoryFactory
from .session_diff import SessionDiff, session_field

logger = logging.getLogger(__name__)

_ISO_DAY = re.compile(r"^\d{4}-\d{2}-\d{2}$")

LedgerEntry = Tuple[str, str]


class CapacityLedgerAdjuster:
    def __init__(self, db: Session, repository: Optional[AvailabilityLedgerRepository] = None):
        self.db = db
        self.repository = repository or RepositoryFactory.create_availability_ledger_repository(db)

    @staticmethod
    def valid_entries(sessions: Iterable[object]) -> List[LedgerEntry]:
        """(date, slot_id) for every session with a well-formed date and a non-empty slot id."""
        entries: List[LedgerEntry] = []
        for session in sessions:
            if isinstance(session, tuple):
                session_date, slot_id = session[0], session[1]
            else:
                session_date = session_field(session, "session_date") or session_field(
                    session, "date"
                )
                slot_id = session_field(session, "slot_id")
            if not isinstance(slot_id, str) or not slot_id.strip():
                continue
            if not isinstance(session_date, str) or not _ISO_DAY.fullmatch(session_date):
                continue
            entries.append((session_date, slot_id))
        return entries

    def apply(self, sessions: Iterable[object], delta: int) -> int:
        """
        Apply ``delta`` once per valid session. Returns the number of ledger rows touched.

        Calendar rows that do not exist are left alone.
        """
        sessions = list(sessions)
        entries = self.valid_entries(sessions)
        if not entries:
            if delta < 0:
                logger.warning(
                    "No valid sessions to release from the capacity ledger",
                    extra={"session_count": len(sessions)},
                )
            return 0

        touched = 0
        for session_date, slot_id in entries:
            rows = self.repository.adjust_booked(session_date, slot_id, delta)
            if rows == 0:
                logger.debug(
                    "No capacity ledger row for slot",
                    extra={"date": session_date, "slot_id": slot_id},
                )
            touched += rows
        prometheus_metrics.record_ledger_adjustment(
            "increment" if delta > 0 else "decrement", touched
        )
        return touched

    def increment(self, sessions: Iterable[object]) -> int:
        return self.apply(sessions, +1)

    def decrement(self, sessions: Iterable[object]) -> int:
        return self.apply(sessions, -1)

    def apply_diff(self, diff: SessionDiff) -> Tuple[int, int]:
        """Release removed keys and count added keys; returns (decremented, incremented)."""
        if diff.is_noop:
            return 0, 0
        decremented = self.decrement(diff.removed_sorted()) if diff.removed else 0
        incremented = self.increment(diff.added_sorted()) if diff.added else 0
        return decremented, incremented
