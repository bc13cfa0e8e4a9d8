# backend/booking_core/repositories/request_repository.py
"""
Repositories for booking requests and session edit requests.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.enums import RequestStatus
from ..models.booking_request import BookingRequest
from ..models.session_edit_request import SessionEditRequest
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRequestRepository(BaseRepository[BookingRequest]):
    def __init__(self, db: Session):
        super().__init__(db, BookingRequest)

    def list_requests(
        self,
        *,
        status: Optional[str] = None,
        patient_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[BookingRequest]:
        query = self.db.query(BookingRequest)
        if status:
            query = query.filter(BookingRequest.status == status)
        if patient_id:
            query = query.filter(BookingRequest.patient_id == patient_id)
        return query.order_by(BookingRequest.created_at.desc()).offset(skip).limit(limit).all()


class SessionEditRequestRepository(BaseRepository[SessionEditRequest]):
    def __init__(self, db: Session):
        super().__init__(db, SessionEditRequest)

    def find_pending_for_booking(self, booking_id: str) -> Optional[SessionEditRequest]:
        return self.find_one_by(booking_id=booking_id, status=RequestStatus.PENDING.value)

    def list_requests(
        self,
        *,
        booking_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[SessionEditRequest]:
        query = self.db.query(SessionEditRequest)
        if booking_id:
            query = query.filter(SessionEditRequest.booking_id == booking_id)
        if status:
            query = query.filter(SessionEditRequest.status == status)
        return query.order_by(SessionEditRequest.created_at.desc()).all()
