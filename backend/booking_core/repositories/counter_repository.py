# backend/booking_core/repositories/counter_repository.py
"""
Counter repository: atomic increment-and-read of named sequences.

Runs inside the caller's transaction, so a rolled back booking also rolls
back the counter advance.
"""

import logging

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from ..database.session_utils import supports_upsert
from ..models.counter import Counter
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class CounterRepository(BaseRepository[Counter]):
    def __init__(self, db: Session):
        super().__init__(db, Counter)

    def increment(self, name: str) -> int:
        """Advance ``name`` by one and return the new value (first call returns 1)."""
        if supports_upsert(self.db):
            return self._increment_upsert(name)
        return self._increment_locked(name)

    def current(self, name: str) -> int:
        seq = self.db.execute(select(Counter.seq).where(Counter.name == name)).scalar()
        return int(seq or 0)

    def _increment_upsert(self, name: str) -> int:
        insert = pg_insert if self.dialect_name == "postgresql" else sqlite_insert
        stmt = (
            insert(Counter)
            .values(name=name, seq=1)
            .on_conflict_do_update(index_elements=[Counter.name], set_={"seq": Counter.seq + 1})
            .returning(Counter.seq)
        )
        return int(self.db.execute(stmt).scalar_one())

    def _increment_locked(self, name: str) -> int:
        counter = self.db.execute(
            select(Counter).where(Counter.name == name).with_for_update()
        ).scalar_one_or_none()
        if counter is None:
            counter = Counter(name=name, seq=0)
            self.db.add(counter)
        counter.seq += 1
        self.db.flush()
        return counter.seq
