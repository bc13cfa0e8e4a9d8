# backend/booking_core/services/booking_service.py
"""
Booking Service: the reservation and slot-conflict engine.

Turns a requested set of (date, slot, provider) sessions into a durable,
non-overlapping booking and keeps it consistent across edits, cancellations
and deletion.

Flow for create/update:
1. Validate and normalize the requested sessions.
2. Resolve every provider's reference code (400 when one cannot be resolved).
3. Acquire per-slot locks for the sessions being added (optional, Redis).
4. Query the AvailabilityOracle once per provider over the requested date span
   and reject the whole request with the full conflict list on any hit.
5. In one transaction: mint identifiers, write payment and booking, sync the
   booking's slot claims (unique per slot at the storage layer), approve any
   fulfilled booking request and adjust the capacity ledger.

The oracle snapshot is read outside the write transaction. Two requests that
both read a clear snapshot are still serialized by the slot-claim unique
constraint; the loser gets the same 409 shape as a snapshot conflict.
"""

from collections import defaultdict
from datetime import datetime, timezone
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import BookingStatus, CounterName, PaymentStatus, RequestStatus
from ..core.exceptions import (
    BookingConflictException,
    NotFoundException,
    ServiceException,
    StateException,
    TransactionException,
    ValidationException,
)
from ..core.slot_lock import slot_locks
from ..models.booking import Booking, BookingSession
from ..models.catalog import Package
from ..models.slot_claim import SLOT_CLAIM_CONSTRAINT, SessionSlotClaim
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.booking_repository import BookingRepository
from ..repositories.catalog_repository import CatalogRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.payment_repository import PaymentRepository
from ..repositories.request_repository import BookingRequestRepository
from ..repositories.slot_claim_repository import SlotClaimRepository
from ..schemas.booking import BookingCreate, BookingUpdate, SessionRequest
from .availability_oracle import (
    AvailabilityOracle,
    BookingAvailabilityOracle,
    booked_slots_for,
    normalize_day_key,
)
from .base import BaseService
from .capacity_ledger import CapacityLedgerAdjuster
from .discount_service import DiscountService, to_money
from .sequence_allocator import SequenceAllocator
from .session_diff import SessionDiffReconciler, SlotKey

logger = logging.getLogger(__name__)

SLOT_CONFLICT_MESSAGE = "Selected provider/time slot already booked for one or more session dates."
RETAINED_SLOT_LOST_MESSAGE = "Some retained sessions are no longer held by this booking."
AVAILABILITY_FAILURE_MESSAGE = "Failed to check slot availability for one or more providers."

REQUIRED_BOOKING_FIELDS = ("package_id", "patient_id", "therapy_id", "provider_id")

NormalizedSession = Dict[str, Any]


def _conflict(key: SlotKey) -> Dict[str, str]:
    session_date, slot_id, provider_id = key
    return {"date": session_date, "slot_id": slot_id, "provider_id": provider_id}


def _session_key(session: NormalizedSession) -> SlotKey:
    return (session["session_date"], session["slot_id"], session["provider_id"])


class BookingService(BaseService):
    """
    Booking reservation engine.

    Collaborators are injected once; the defaults build them from the session.
    """

    def __init__(
        self,
        db: Session,
        availability_oracle: Optional[AvailabilityOracle] = None,
        sequence_allocator: Optional[SequenceAllocator] = None,
        capacity_ledger: Optional[CapacityLedgerAdjuster] = None,
        discount_service: Optional[DiscountService] = None,
        repository: Optional[BookingRepository] = None,
        claim_repository: Optional[SlotClaimRepository] = None,
        catalog_repository: Optional[CatalogRepository] = None,
        payment_repository: Optional[PaymentRepository] = None,
        booking_request_repository: Optional[BookingRequestRepository] = None,
    ):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_booking_repository(db)
        self.claim_repository = claim_repository or RepositoryFactory.create_slot_claim_repository(
            db
        )
        self.catalog_repository = (
            catalog_repository or RepositoryFactory.create_catalog_repository(db)
        )
        self.payment_repository = (
            payment_repository or RepositoryFactory.create_payment_repository(db)
        )
        self.booking_request_repository = (
            booking_request_repository
            or RepositoryFactory.create_booking_request_repository(db)
        )
        self.availability_oracle = availability_oracle or BookingAvailabilityOracle(
            db, claim_repository=self.claim_repository, catalog_repository=self.catalog_repository
        )
        self.sequence_allocator = sequence_allocator or SequenceAllocator(db)
        self.capacity_ledger = capacity_ledger or CapacityLedgerAdjuster(db)
        self.discount_service = discount_service or DiscountService(db)
        self.diff_reconciler = SessionDiffReconciler()

        self.slot_lock_enabled = settings.slot_lock_enabled
        self.retained_session_policy = settings.retained_session_policy
        self.ledger_tracks_creates = settings.capacity_ledger_track_creates

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @BaseService.measure_operation("get_booking")
    def get_booking(self, booking_id: str) -> Booking:
        booking = self.repository.get_by_id(booking_id)
        if not booking:
            raise NotFoundException("Booking not found", details={"booking_id": booking_id})
        return booking

    @BaseService.measure_operation("list_bookings")
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
        if session_date is not None:
            iso_day = normalize_day_key(session_date)
            if iso_day is None:
                raise ValidationException(
                    "session_date must be a YYYY-MM-DD date",
                    details={"session_date": session_date},
                )
            session_date = iso_day
        return self.repository.list_bookings(
            patient_id=patient_id,
            provider_id=provider_id,
            session_date=session_date,
            status=status,
            skip=skip,
            limit=limit,
        )

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @BaseService.measure_operation("create_booking")
    def create_booking(self, data: BookingCreate) -> Booking:
        """
        Reserve every requested session or none of them.

        Raises:
            ValidationException: missing fields, malformed sessions, unknown references
            BookingConflictException: one or more sessions are already held
            StateException: the fulfilled booking request is already closed
            TransactionException: storage failure; nothing was written
        """
        missing = [name for name in REQUIRED_BOOKING_FIELDS if not getattr(data, name)]
        if not data.sessions:
            missing.append("sessions")
        if missing:
            raise ValidationException(
                "Missing required fields",
                code="MISSING_FIELDS",
                details={"missing_fields": missing},
            )

        sessions = self._normalize_sessions(data.sessions, data.provider_id, data.therapy_id)
        ref_codes = self._resolve_provider_refs({s["provider_id"] for s in sessions})
        package = self._resolve_references(data.package_id, data.patient_id, data.therapy_id)
        self._check_service_types(sessions)

        status = data.status or BookingStatus.SCHEDULED
        keys = {_session_key(s) for s in sessions} if status.holds_slots else set()

        with slot_locks(keys, enabled=self.slot_lock_enabled):
            conflicts = self._detect_conflicts(
                [s for s in sessions if _session_key(s) in keys], ref_codes
            )
            if conflicts:
                self._reject(conflicts, "create_booking", "snapshot")

            try:
                with self.transaction():
                    booking = self._create_booking_record(data, package, sessions, status, keys)
            except TransactionException as exc:
                self._raise_if_slot_taken(exc, keys, None, "create_booking")
                raise

        self.log_operation(
            "create_booking",
            booking_id=booking.id,
            appointment_id=booking.appointment_id,
            session_count=len(sessions),
        )
        return self.get_booking(booking.id)

    def _create_booking_record(
        self,
        data: BookingCreate,
        package: Package,
        sessions: Sequence[NormalizedSession],
        status: BookingStatus,
        keys: Set[SlotKey],
    ) -> Booking:
        """Transactional part of create. Caller owns the transaction."""
        appointment_id = self.sequence_allocator.next_identifier(CounterName.APPOINTMENT)
        payment_code = self.sequence_allocator.next_identifier(CounterName.PAYMENT)

        coupon = self.discount_service.resolve_coupon(data.coupon)
        total = to_money(package.total_cost)
        payment = self.payment_repository.create(
            payment_code=payment_code,
            appointment_id=appointment_id,
            patient_id=data.patient_id,
            total_amount=total,
            amount=DiscountService.apply_coupon(total, coupon),
            status=PaymentStatus.PENDING.value,
            method=settings.default_payment_method,
        )

        booking = Booking(
            appointment_id=appointment_id,
            package_id=data.package_id,
            patient_id=data.patient_id,
            provider_id=data.provider_id,
            therapy_id=data.therapy_id,
            payment_id=payment.id,
            status=status.value,
            payment_status=PaymentStatus.PENDING.value,
            notes=data.notes,
            remark=data.remark,
            channel=data.channel,
            referred_by=data.referred_by,
            follow_up_date=data.follow_up_date,
            follow_up_notes=data.follow_up_notes,
            booking_request_id=data.booking_request_id,
            coupon_id=coupon.id if coupon else None,
            coupon_applied_at=datetime.now(timezone.utc) if coupon else None,
        )
        booking.sessions = [
            BookingSession(position=position, **session)
            for position, session in enumerate(sessions)
        ]
        self.db.add(booking)
        self.claim_repository.sync_claims(booking, keys)

        if data.booking_request_id:
            self._approve_booking_request(data.booking_request_id, booking)

        if self.ledger_tracks_creates and keys:
            self.capacity_ledger.increment(sorted(keys))
        return booking

    def _approve_booking_request(self, request_id: str, booking: Booking) -> None:
        request = self.booking_request_repository.get_by_id(request_id, load_relationships=False)
        if request is None:
            self.logger.warning(
                "Booking request to approve was not found",
                extra={"booking_request_id": request_id, "booking_id": booking.id},
            )
            return
        if RequestStatus(request.status).is_terminal:
            raise StateException(
                f"Booking request already {request.status}",
                code="BOOKING_REQUEST_CLOSED",
                details={"booking_request_id": request_id, "status": request.status},
            )
        request.status = RequestStatus.APPROVED.value
        request.booking_id = booking.id
        self.db.flush()

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    @BaseService.measure_operation("update_booking")
    def update_booking(self, booking_id: str, data: BookingUpdate) -> Booking:
        """
        Replace a booking's fields and sessions, validating only the added sessions.

        Sessions the booking already holds are exempt from the conflict check even
        though the availability snapshot reports them as booked (by this booking).
        """
        booking = self.get_booking(booking_id)

        provider_id = data.provider_id or booking.provider_id
        therapy_id = data.therapy_id or booking.therapy_id
        if data.sessions is not None:
            if not data.sessions:
                raise ValidationException(
                    "Missing required fields",
                    code="MISSING_FIELDS",
                    details={"missing_fields": ["sessions"]},
                )
            sessions = self._normalize_sessions(data.sessions, provider_id, therapy_id)
        else:
            sessions = [self._session_as_dict(s) for s in booking.sessions]

        ref_codes = self._resolve_provider_refs({s["provider_id"] for s in sessions})
        package = self._resolve_references(
            data.package_id or booking.package_id,
            data.patient_id or booking.patient_id,
            therapy_id,
        )
        self._check_service_types(sessions)

        new_status = data.status or BookingStatus(booking.status)
        previous_keys = (
            {s.slot_key for s in booking.sessions} if booking.holds_slots else set()
        )
        requested_keys = (
            {_session_key(s) for s in sessions} if new_status.holds_slots else set()
        )
        diff = self.diff_reconciler.diff(previous_keys, requested_keys)

        with slot_locks(diff.added, enabled=self.slot_lock_enabled):
            added_sessions = [s for s in sessions if _session_key(s) in diff.added]
            conflicts = self._detect_conflicts(added_sessions, ref_codes)
            if self.retained_session_policy == "reject" and diff.retained:
                held = self.claim_repository.keys_held_by(booking.id)
                conflicts.extend(_conflict(key) for key in sorted(diff.retained - held))
            if conflicts:
                self._reject(conflicts, "update_booking", "snapshot")

            try:
                with self.transaction():
                    self._apply_booking_fields(booking, data, package, new_status)
                    self.repository.replace_sessions(booking, sessions)
                    self.claim_repository.sync_claims(booking, requested_keys)
                    self.capacity_ledger.apply_diff(diff)
            except TransactionException as exc:
                self._raise_if_slot_taken(exc, diff.added, booking_id, "update_booking")
                raise

        self.log_operation(
            "update_booking",
            booking_id=booking_id,
            added=len(diff.added),
            removed=len(diff.removed),
            retained=len(diff.retained),
        )
        return self.get_booking(booking_id)

    def _apply_booking_fields(
        self,
        booking: Booking,
        data: BookingUpdate,
        package: Package,
        status: BookingStatus,
    ) -> None:
        for field_name in (
            "package_id",
            "patient_id",
            "therapy_id",
            "provider_id",
            "notes",
            "remark",
            "channel",
            "referred_by",
            "follow_up_date",
            "follow_up_notes",
        ):
            value = getattr(data, field_name)
            if value is not None:
                setattr(booking, field_name, value)
        booking.status = status.value

        coupon = booking.coupon
        coupon_changed = data.coupon is not None
        if coupon_changed:
            # "" removes the coupon
            coupon = self.discount_service.resolve_coupon(data.coupon)
            booking.coupon = coupon
            booking.coupon_applied_at = datetime.now(timezone.utc) if coupon else None

        payment = booking.payment
        if payment is not None and payment.status == PaymentStatus.PENDING.value:
            if coupon_changed or data.package_id:
                total = to_money(package.total_cost)
                payment.total_amount = total
                payment.amount = DiscountService.apply_coupon(total, coupon)

    # ------------------------------------------------------------------
    # Delete / check-in
    # ------------------------------------------------------------------

    @BaseService.measure_operation("delete_booking")
    def delete_booking(self, booking_id: str) -> int:
        """
        Release the booking's capacity and delete it.

        Returns the number of capacity ledger rows decremented. A booking with no
        valid sessions (or an already cancelled one) deletes without ledger changes.
        """
        booking = self.get_booking(booking_id)
        held_sessions = list(booking.sessions) if booking.holds_slots else []

        with self.transaction():
            released = self.capacity_ledger.decrement(held_sessions)
            self.repository.delete_entity(booking)

        self.log_operation("delete_booking", booking_id=booking_id, released=released)
        return released

    @BaseService.measure_operation("check_in")
    def check_in(
        self, booking_id: Optional[str], session_id: Optional[str]
    ) -> Tuple[Booking, bool]:
        """
        Mark one session checked in. Idempotent.

        Returns (booking, already_checked_in).
        """
        missing = [
            name for name, value in (("booking_id", booking_id), ("session_id", session_id))
            if not value
        ]
        if missing:
            raise ValidationException(
                "booking_id and session_id are required",
                code="MISSING_FIELDS",
                details={"missing_fields": missing},
            )

        booking = self.get_booking(booking_id)
        session = booking.find_session(session_id)
        if session is None:
            raise NotFoundException(
                "Session not found in booking",
                details={"booking_id": booking_id, "session_id": session_id},
            )
        if session.is_checked_in:
            return booking, True

        with self.transaction():
            session.is_checked_in = True
            session.checked_in_at = datetime.now(timezone.utc)

        self.log_operation("check_in", booking_id=booking_id, session_id=session_id)
        return booking, False

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _session_as_dict(session: BookingSession) -> NormalizedSession:
        return {
            "session_date": session.session_date,
            "time_label": session.time_label or "",
            "slot_id": session.slot_id,
            "provider_id": session.provider_id,
            "service_type_id": session.service_type_id,
        }

    def _normalize_sessions(
        self,
        sessions: Sequence[SessionRequest],
        default_provider_id: Optional[str],
        default_service_type_id: Optional[str],
    ) -> List[NormalizedSession]:
        """
        Resolve per-session defaults and reject malformed or duplicated sessions.

        Every session needs a date, a slot id (``slot_id`` or legacy ``id``) and a
        provider (its own or the booking-level one).
        """
        normalized: List[NormalizedSession] = []
        invalid: List[int] = []
        for index, session in enumerate(sessions):
            iso_day = normalize_day_key(session.date) if session.date else None
            slot_id = session.slot_id or session.id
            provider_id = session.provider_id or default_provider_id
            if not iso_day or not slot_id or not provider_id:
                invalid.append(index)
                continue
            normalized.append(
                {
                    "session_date": iso_day,
                    "time_label": session.time or "",
                    "slot_id": slot_id,
                    "provider_id": provider_id,
                    "service_type_id": session.service_type_id or default_service_type_id,
                }
            )

        if invalid:
            raise ValidationException(
                "Invalid session data: all sessions must have date, slot_id and provider.",
                code="INVALID_SESSIONS",
                details={"invalid_sessions": invalid},
            )

        seen: Set[SlotKey] = set()
        duplicates = []
        for session in normalized:
            key = _session_key(session)
            if key in seen:
                duplicates.append(_conflict(key))
            seen.add(key)
        if duplicates:
            raise ValidationException(
                "The same slot was requested more than once",
                code="DUPLICATE_SESSIONS",
                details={"duplicates": duplicates},
            )
        return normalized

    def _resolve_provider_refs(self, provider_ids: Iterable[str]) -> Dict[str, str]:
        """Map provider id to its external reference code; 400 if any is unknown."""
        provider_ids = set(provider_ids)
        providers = self.catalog_repository.get_providers(provider_ids)
        unresolved = sorted(
            pid for pid in provider_ids if pid not in providers or not providers[pid].ref_code
        )
        if unresolved:
            raise ValidationException(
                "One or more providers referenced in sessions do not exist.",
                code="UNKNOWN_PROVIDER",
                details={"provider_ids": unresolved},
            )
        return {pid: providers[pid].ref_code for pid in provider_ids}

    def _check_service_types(self, sessions: Sequence[NormalizedSession]) -> None:
        """Per-session service type overrides must exist in the catalog."""
        requested = {s["service_type_id"] for s in sessions if s["service_type_id"]}
        known = self.catalog_repository.get_service_types(requested)
        unknown = sorted(requested - known.keys())
        if unknown:
            raise ValidationException(
                "One or more service types referenced in sessions do not exist.",
                code="UNKNOWN_SERVICE_TYPE",
                details={"service_type_ids": unknown},
            )

    def _resolve_references(
        self, package_id: str, patient_id: str, therapy_id: str
    ) -> Package:
        package = self.catalog_repository.get_package(package_id)
        if package is None:
            raise ValidationException("Invalid package", details={"package_id": package_id})
        if self.catalog_repository.get_patient(patient_id) is None:
            raise ValidationException("Invalid patient", details={"patient_id": patient_id})
        if self.catalog_repository.get_service_type(therapy_id) is None:
            raise ValidationException("Invalid therapy", details={"therapy_id": therapy_id})
        return package

    def _detect_conflicts(
        self, sessions: Sequence[NormalizedSession], ref_codes: Dict[str, str]
    ) -> List[Dict[str, str]]:
        """
        Check sessions against the oracle snapshot, one query per provider.

        Returns every conflicting (date, slot_id, provider_id), in request order.
        """
        if not sessions:
            return []

        dates_by_provider: Dict[str, List[str]] = defaultdict(list)
        for session in sessions:
            dates_by_provider[session["provider_id"]].append(session["session_date"])

        booked_by_provider: Dict[str, Dict[str, Set[str]]] = {}
        for provider_id, dates in dates_by_provider.items():
            try:
                snapshot = self.availability_oracle.query(provider_id, min(dates), max(dates))
            except Exception as exc:
                self.logger.error(
                    "Availability oracle query failed",
                    extra={"provider_id": provider_id, "error": str(exc)},
                )
                raise ServiceException(
                    AVAILABILITY_FAILURE_MESSAGE,
                    code="AVAILABILITY_UNAVAILABLE",
                    details={"provider_id": provider_id},
                ) from exc
            booked_by_provider[provider_id] = booked_slots_for(snapshot, ref_codes[provider_id])

        conflicts = []
        for session in sessions:
            booked = booked_by_provider[session["provider_id"]].get(session["session_date"], set())
            if session["slot_id"] in booked:
                conflicts.append(_conflict(_session_key(session)))
        return conflicts

    def _reject(self, conflicts: List[Dict[str, str]], operation: str, source: str) -> None:
        prometheus_metrics.record_booking_conflict(operation, source)
        self.logger.info(
            "Slot conflicts detected",
            extra={"operation": operation, "source": source, "conflicts": conflicts},
        )
        raise BookingConflictException(conflicts, message=SLOT_CONFLICT_MESSAGE)

    @staticmethod
    def _is_slot_claim_violation(exc: IntegrityError) -> bool:
        orig = getattr(exc, "orig", None)
        diag = getattr(orig, "diag", None)
        constraint = getattr(diag, "constraint_name", None)
        if constraint:
            return constraint == SLOT_CLAIM_CONSTRAINT
        text = str(orig or exc)
        return SLOT_CLAIM_CONSTRAINT in text or SessionSlotClaim.__tablename__ in text

    def _raise_if_slot_taken(
        self,
        exc: TransactionException,
        keys: Iterable[SlotKey],
        booking_id: Optional[str],
        operation: str,
    ) -> None:
        """Translate a slot-claim integrity error into the 409 conflict shape."""
        cause = exc.__cause__
        if not isinstance(cause, IntegrityError) or not self._is_slot_claim_violation(cause):
            return
        keys = sorted(keys)
        holders = self.claim_repository.find_holders(keys, exclude_booking_id=booking_id)
        taken = sorted({claim.slot_key for claim in holders}) or keys
        self._reject([_conflict(key) for key in taken], operation, "storage")
