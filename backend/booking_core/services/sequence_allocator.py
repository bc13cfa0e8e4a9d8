# backend/booking_core/services/sequence_allocator.py
"""
SequenceAllocator: named monotonic counters for human-readable identifiers.

next() must be called inside the caller's transaction; the counter advance
commits or rolls back together with the writes that use it.
"""

import logging
from typing import Optional, Union

from sqlalchemy.orm import Session

from ..core.enums import CounterName
from ..core.exceptions import ValidationException
from ..core.identifiers import format_identifier
from ..repositories.counter_repository import CounterRepository
from ..repositories.factory import RepositoryFactory

logger = logging.getLogger(__name__)


class SequenceAllocator:
    def __init__(self, db: Session, repository: Optional[CounterRepository] = None):
        self.db = db
        self.repository = repository or RepositoryFactory.create_counter_repository(db)

    @staticmethod
    def _resolve(counter: Union[CounterName, str]) -> CounterName:
        try:
            return CounterName(counter)
        except ValueError:
            raise ValidationException(
                f"Unknown counter: {counter}",
                code="UNKNOWN_COUNTER",
                details={"counter": str(counter)},
            )

    def next(self, counter: Union[CounterName, str]) -> int:
        name = self._resolve(counter)
        value = self.repository.increment(name.value)
        logger.debug("Allocated %s=%s", name.value, value)
        return value

    def next_identifier(self, counter: Union[CounterName, str]) -> str:
        """Allocate the next value and render it in the counter's display format."""
        name = self._resolve(counter)
        return format_identifier(name, self.next(name))
