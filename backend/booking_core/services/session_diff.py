# backend/booking_core/services/session_diff.py
"""
SessionDiffReconciler: compare a booking's previous and requested session sets.

Sessions are compared by their (date, slot_id, provider_id) key. Only the
added keys need conflict checking and only added/removed keys move the
capacity ledger.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Set, Tuple

SlotKey = Tuple[str, str, str]


def session_field(session: object, name: str) -> object:
    if isinstance(session, dict):
        return session.get(name)
    return getattr(session, name, None)


@dataclass(frozen=True)
class SessionDiff:
    added: Set[SlotKey] = field(default_factory=set)
    removed: Set[SlotKey] = field(default_factory=set)
    retained: Set[SlotKey] = field(default_factory=set)

    @property
    def is_noop(self) -> bool:
        return not self.added and not self.removed

    def added_sorted(self) -> List[SlotKey]:
        return sorted(self.added)

    def removed_sorted(self) -> List[SlotKey]:
        return sorted(self.removed)


class SessionDiffReconciler:
    @staticmethod
    def keys(sessions: Iterable[object]) -> Set[SlotKey]:
        """
        Build the key set for sessions given as dicts or objects.

        Accepts ``session_date``/``date`` and ``provider_id`` attributes or keys.
        """
        result: Set[SlotKey] = set()
        for session in sessions:
            if isinstance(session, tuple):
                result.add(session)
                continue
            session_date = session_field(session, "session_date") or session_field(session, "date")
            slot_id = session_field(session, "slot_id")
            result.add((session_date, slot_id, session_field(session, "provider_id")))
        return result

    def diff(self, previous: Iterable[object], requested: Iterable[object]) -> SessionDiff:
        prev_keys = self.keys(previous)
        next_keys = self.keys(requested)
        return SessionDiff(
            added=next_keys - prev_keys,
            removed=prev_keys - next_keys,
            retained=prev_keys & next_keys,
        )
