# backend/booking_core/services/booking_request_service.py
"""
Booking Request Service

A booking request is a customer's ask for a package and a set of sessions.
Staff fulfil it by creating a booking that references the request (which
approves it in the booking's transaction) or reject it here.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.enums import CounterName, RequestStatus
from ..core.exceptions import NotFoundException, StateException, ValidationException
from ..models.booking_request import BookingRequest
from ..repositories.catalog_repository import CatalogRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.request_repository import BookingRequestRepository
from ..schemas.booking_request import BookingRequestCreate
from .availability_oracle import normalize_day_key
from .base import BaseService
from .sequence_allocator import SequenceAllocator

logger = logging.getLogger(__name__)


class BookingRequestService(BaseService):
    def __init__(
        self,
        db: Session,
        repository: Optional[BookingRequestRepository] = None,
        catalog_repository: Optional[CatalogRepository] = None,
        sequence_allocator: Optional[SequenceAllocator] = None,
    ):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_booking_request_repository(db)
        self.catalog_repository = (
            catalog_repository or RepositoryFactory.create_catalog_repository(db)
        )
        self.sequence_allocator = sequence_allocator or SequenceAllocator(db)

    @BaseService.measure_operation("create_booking_request")
    def create_request(self, data: BookingRequestCreate) -> BookingRequest:
        missing = [
            name for name in ("package_id", "patient_id", "therapy_id") if not getattr(data, name)
        ]
        if not data.sessions:
            missing.append("sessions")
        if missing:
            raise ValidationException(
                "Missing required fields",
                code="MISSING_FIELDS",
                details={"missing_fields": missing},
            )

        sessions = []
        invalid = []
        for index, session in enumerate(data.sessions):
            iso_day = normalize_day_key(session.date) if session.date else None
            if not iso_day or not session.slot_id:
                invalid.append(index)
                continue
            sessions.append({"date": iso_day, "slot_id": session.slot_id, "time": session.time})
        if invalid:
            raise ValidationException(
                "Invalid session data: all sessions must have date and slot_id.",
                code="INVALID_SESSIONS",
                details={"invalid_sessions": invalid},
            )

        if self.catalog_repository.get_package(data.package_id) is None:
            raise ValidationException("Invalid package", details={"package_id": data.package_id})
        if self.catalog_repository.get_patient(data.patient_id) is None:
            raise ValidationException("Invalid patient", details={"patient_id": data.patient_id})
        if self.catalog_repository.get_service_type(data.therapy_id) is None:
            raise ValidationException("Invalid therapy", details={"therapy_id": data.therapy_id})

        with self.transaction():
            request = self.repository.create(
                request_code=self.sequence_allocator.next_identifier(CounterName.REQUEST),
                package_id=data.package_id,
                patient_id=data.patient_id,
                therapy_id=data.therapy_id,
                requested_sessions=sessions,
                notes=data.notes,
                status=RequestStatus.PENDING.value,
            )

        self.log_operation(
            "create_booking_request", request_id=request.id, request_code=request.request_code
        )
        return request

    @BaseService.measure_operation("get_booking_request")
    def get_request(self, request_id: str) -> BookingRequest:
        request = self.repository.get_by_id(request_id, load_relationships=False)
        if request is None:
            raise NotFoundException("Booking request not found", details={"request_id": request_id})
        return request

    @BaseService.measure_operation("list_booking_requests")
    def list_requests(
        self,
        *,
        status: Optional[str] = None,
        patient_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[BookingRequest]:
        return self.repository.list_requests(
            status=status, patient_id=patient_id, skip=skip, limit=limit
        )

    @BaseService.measure_operation("reject_booking_request")
    def reject_request(self, request_id: str) -> BookingRequest:
        request = self.get_request(request_id)
        if RequestStatus(request.status).is_terminal:
            raise StateException(
                f"Booking request already {request.status}",
                code="BOOKING_REQUEST_CLOSED",
                details={"request_id": request_id, "status": request.status},
            )
        with self.transaction():
            request.status = RequestStatus.REJECTED.value
        self.log_operation("reject_booking_request", request_id=request_id)
        return request
