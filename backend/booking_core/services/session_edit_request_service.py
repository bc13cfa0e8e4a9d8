# backend/booking_core/services/session_edit_request_service.py
"""
Session Edit Request Service

Customers propose moving sessions of an existing booking; staff approve or
reject the proposal. Only one pending proposal may exist per booking, and a
decided proposal is immutable.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.enums import CounterName, RequestStatus
from ..core.exceptions import (
    NotFoundException,
    RepositoryException,
    StateException,
    TransactionException,
    ValidationException,
)
from ..models.session_edit_request import ONE_PENDING_INDEX, SessionEditRequest
from ..repositories.booking_repository import BookingRepository
from ..repositories.catalog_repository import CatalogRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.request_repository import SessionEditRequestRepository
from ..schemas.session_edit_request import (
    SessionChange,
    SessionEditRequestCreate,
    SessionEditRequestUpdate,
)
from .availability_oracle import normalize_day_key
from .base import BaseService
from .sequence_allocator import SequenceAllocator

logger = logging.getLogger(__name__)

PENDING_EXISTS_MESSAGE = "A pending session edit request already exists for this booking"


class SessionEditRequestService(BaseService):
    def __init__(
        self,
        db: Session,
        repository: Optional[SessionEditRequestRepository] = None,
        booking_repository: Optional[BookingRepository] = None,
        sequence_allocator: Optional[SequenceAllocator] = None,
        catalog_repository: Optional[CatalogRepository] = None,
    ):
        super().__init__(db)
        self.repository = (
            repository or RepositoryFactory.create_session_edit_request_repository(db)
        )
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )
        self.sequence_allocator = sequence_allocator or SequenceAllocator(db)
        self.catalog_repository = (
            catalog_repository or RepositoryFactory.create_catalog_repository(db)
        )

    @staticmethod
    def _validate_changes(changes: Sequence[SessionChange]) -> List[Dict[str, Any]]:
        invalid = []
        normalized = []
        for index, change in enumerate(changes):
            new_date = normalize_day_key(change.new_date) if change.new_date else None
            if not change.session_id or not new_date or not change.new_slot_id:
                invalid.append(index)
                continue
            normalized.append(
                {
                    "session_id": change.session_id,
                    "new_date": new_date,
                    "new_slot_id": change.new_slot_id,
                }
            )
        if invalid:
            raise ValidationException(
                "Each session change needs session_id, new_date and new_slot_id",
                code="INVALID_SESSIONS",
                details={"invalid_sessions": invalid},
            )
        return normalized

    @staticmethod
    def _is_pending_index_violation(exc: IntegrityError) -> bool:
        orig = getattr(exc, "orig", None)
        diag = getattr(orig, "diag", None)
        constraint = getattr(diag, "constraint_name", None)
        if constraint:
            return constraint == ONE_PENDING_INDEX
        # SQLite names the indexed column rather than the index
        text = str(orig or exc)
        return ONE_PENDING_INDEX in text or "session_edit_requests.booking_id" in text

    def _get_request(self, request_id: str) -> SessionEditRequest:
        request = self.repository.get_by_id(request_id, load_relationships=False)
        if request is None:
            raise NotFoundException(
                "Session edit request not found", details={"request_id": request_id}
            )
        return request

    @BaseService.measure_operation("create_session_edit_request")
    def create_request(self, data: SessionEditRequestCreate) -> SessionEditRequest:
        missing = [name for name in ("booking_id", "patient_id") if not getattr(data, name)]
        if not data.sessions:
            missing.append("sessions")
        if missing:
            raise ValidationException(
                "Missing required fields",
                code="MISSING_FIELDS",
                details={"missing_fields": missing},
            )
        sessions = self._validate_changes(data.sessions)

        booking = self.booking_repository.get_by_id(data.booking_id, load_relationships=False)
        if booking is None:
            raise NotFoundException("Booking not found", details={"booking_id": data.booking_id})
        if self.catalog_repository.get_patient(data.patient_id) is None:
            raise ValidationException("Invalid patient", details={"patient_id": data.patient_id})

        if self.repository.find_pending_for_booking(booking.id) is not None:
            raise StateException(
                PENDING_EXISTS_MESSAGE,
                code="PENDING_REQUEST_EXISTS",
                details={"booking_id": booking.id},
            )

        try:
            with self.transaction():
                request = self.repository.create(
                    request_code=self.sequence_allocator.next_identifier(
                        CounterName.SESSION_EDIT_REQUEST
                    ),
                    booking_id=booking.id,
                    patient_id=data.patient_id,
                    sessions=sessions,
                    status=RequestStatus.PENDING.value,
                )
        except (TransactionException, RepositoryException) as exc:
            # Lost the race against another pending request for the same booking
            cause = exc.__cause__
            if isinstance(cause, IntegrityError) and self._is_pending_index_violation(cause):
                raise StateException(
                    PENDING_EXISTS_MESSAGE,
                    code="PENDING_REQUEST_EXISTS",
                    details={"booking_id": booking.id},
                ) from exc
            raise

        self.log_operation(
            "create_session_edit_request", request_id=request.id, booking_id=booking.id
        )
        return request

    @BaseService.measure_operation("list_session_edit_requests")
    def list_requests(
        self, *, booking_id: Optional[str] = None, status: Optional[str] = None
    ) -> List[SessionEditRequest]:
        return self.repository.list_requests(booking_id=booking_id, status=status)

    @BaseService.measure_operation("update_session_edit_request")
    def update_request(
        self, request_id: str, data: SessionEditRequestUpdate
    ) -> SessionEditRequest:
        """
        Replace the proposed sessions and/or decide the request.

        Only pending requests can change; pending may move to approved or rejected.
        """
        request = self._get_request(request_id)
        current = RequestStatus(request.status)
        if current.is_terminal:
            raise StateException(
                f"Session edit request already {current.value}",
                code="REQUEST_CLOSED",
                details={"request_id": request_id, "status": current.value},
            )

        sessions = None
        if data.sessions is not None:
            if not data.sessions:
                raise ValidationException(
                    "Missing required fields",
                    code="MISSING_FIELDS",
                    details={"missing_fields": ["sessions"]},
                )
            sessions = self._validate_changes(data.sessions)

        with self.transaction():
            if sessions is not None:
                request.sessions = sessions
            if data.status is not None:
                request.status = data.status.value

        self.log_operation(
            "update_session_edit_request", request_id=request_id, status=request.status
        )
        return request

    @BaseService.measure_operation("delete_session_edit_request")
    def delete_request(self, request_id: str) -> None:
        request = self._get_request(request_id)
        with self.transaction():
            self.repository.delete_entity(request)
        self.log_operation("delete_session_edit_request", request_id=request_id)
