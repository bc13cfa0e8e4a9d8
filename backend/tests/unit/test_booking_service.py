"""BookingService: reservation, conflict detection and session reconciliation."""

from datetime import date
from decimal import Decimal
from unittest.mock import Mock

import pytest

from booking_core.core.enums import BookingStatus, RequestStatus
from booking_core.core.exceptions import (
    BookingConflictException,
    NotFoundException,
    ServiceException,
    StateException,
    TransactionException,
    ValidationException,
)
from booking_core.models import Booking, BookingRequest, Payment, SessionSlotClaim
from booking_core.repositories.counter_repository import CounterRepository
from booking_core.services.booking_service import BookingService
from tests._utils.booking_helpers import (
    DAY_1,
    DAY_2,
    DAY_3,
    booking_payload,
    ledger_booked,
    session_entry,
    update_payload,
)


class EmptyOracle:
    """Oracle that never reports anything booked, leaving exclusion to storage."""

    def query(self, provider_id, from_date, to_date):
        return {}


def _conflict(day, slot_id, provider_id="prov-a"):
    return {"date": day, "slot_id": slot_id, "provider_id": provider_id}


class TestCreateBooking:
    def test_creates_booking_payment_claims_and_ledger(self, db, booking_service):
        booking = booking_service.create_booking(
            booking_payload([session_entry(DAY_1, "S1"), session_entry(DAY_2, "S1")])
        )

        assert booking.appointment_id == "APT000001"
        assert booking.status == BookingStatus.SCHEDULED.value
        assert [s.slot_key for s in booking.sessions] == [
            (DAY_1, "S1", "prov-a"),
            (DAY_2, "S1", "prov-a"),
        ]
        assert all(s.service_type_id == "svc-physio" for s in booking.sessions)

        payment = booking.payment
        assert payment.payment_code == f"INV-{date.today().year}-00001"
        assert payment.status == "pending"
        assert payment.total_amount == Decimal("1000.00")
        assert payment.amount == Decimal("1000.00")
        assert payment.appointment_id == booking.appointment_id

        claims = db.query(SessionSlotClaim).filter_by(booking_id=booking.id).all()
        assert {c.slot_key for c in claims} == {(DAY_1, "S1", "prov-a"), (DAY_2, "S1", "prov-a")}
        assert ledger_booked(db, DAY_1, "S1") == 1
        assert ledger_booked(db, DAY_2, "S1") == 1
        assert ledger_booked(db, DAY_1, "S2") == 0

    def test_appointment_ids_are_sequential(self, booking_service):
        first = booking_service.create_booking(booking_payload([session_entry(DAY_1, "S1")]))
        second = booking_service.create_booking(booking_payload([session_entry(DAY_1, "S2")]))

        assert first.appointment_id == "APT000001"
        assert second.appointment_id == "APT000002"
        assert second.payment.payment_code.endswith("-00002")

    def test_conflict_reports_exact_tuple_and_writes_nothing(self, db, booking_service):
        booking_service.create_booking(booking_payload([session_entry(DAY_1, "S1")]))

        with pytest.raises(BookingConflictException) as exc_info:
            booking_service.create_booking(
                booking_payload(
                    [
                        session_entry(DAY_1, "S1"),
                        session_entry(DAY_2, "S1"),
                        session_entry(DAY_1, "S2"),
                    ]
                )
            )

        assert exc_info.value.conflicts == [_conflict(DAY_1, "S1")]
        assert exc_info.value.details == {"conflicts": [_conflict(DAY_1, "S1")]}
        assert db.query(Booking).count() == 1
        assert db.query(Payment).count() == 1
        assert CounterRepository(db).current("appointment") == 1
        assert ledger_booked(db, DAY_2, "S1") == 0

    def test_conflict_lists_every_colliding_session_in_request_order(self, booking_service):
        booking_service.create_booking(
            booking_payload([session_entry(DAY_1, "S1"), session_entry(DAY_3, "S2")])
        )

        with pytest.raises(BookingConflictException) as exc_info:
            booking_service.create_booking(
                booking_payload(
                    [
                        session_entry(DAY_3, "S2"),
                        session_entry(DAY_2, "S1"),
                        session_entry(DAY_1, "S1"),
                    ]
                )
            )

        assert exc_info.value.conflicts == [_conflict(DAY_3, "S2"), _conflict(DAY_1, "S1")]

    def test_same_slot_with_another_provider_is_not_a_conflict(self, db, booking_service):
        booking_service.create_booking(booking_payload([session_entry(DAY_1, "S1")]))
        other = booking_service.create_booking(
            booking_payload([session_entry(DAY_1, "S1")], provider_id="prov-b")
        )

        assert other.sessions[0].slot_key == (DAY_1, "S1", "prov-b")
        assert db.query(SessionSlotClaim).count() == 2

    def test_session_level_provider_overrides_booking_provider(self, booking_service):
        booking = booking_service.create_booking(
            booking_payload(
                [session_entry(DAY_1, "S1"), session_entry(DAY_1, "S1", provider_id="prov-b")]
            )
        )

        assert {s.provider_id for s in booking.sessions} == {"prov-a", "prov-b"}

    def test_missing_fields_are_listed(self, db, booking_service):
        payload = booking_payload([], package_id=None, therapy_id=None)

        with pytest.raises(ValidationException) as exc_info:
            booking_service.create_booking(payload)

        assert exc_info.value.code == "MISSING_FIELDS"
        assert exc_info.value.details["missing_fields"] == ["package_id", "therapy_id", "sessions"]
        assert db.query(Booking).count() == 0

    def test_session_without_slot_is_rejected(self, booking_service):
        with pytest.raises(ValidationException) as exc_info:
            booking_service.create_booking(
                booking_payload([session_entry(DAY_1, "S1"), {"date": DAY_2}])
            )

        assert exc_info.value.code == "INVALID_SESSIONS"
        assert exc_info.value.details == {"invalid_sessions": [1]}

    def test_malformed_date_is_rejected(self, booking_service):
        with pytest.raises(ValidationException) as exc_info:
            booking_service.create_booking(booking_payload([session_entry("2030/01/07", "S1")]))

        assert exc_info.value.code == "INVALID_SESSIONS"

    def test_duplicate_sessions_are_rejected(self, booking_service):
        with pytest.raises(ValidationException) as exc_info:
            booking_service.create_booking(
                booking_payload([session_entry(DAY_1, "S1"), session_entry(DAY_1, "S1")])
            )

        assert exc_info.value.code == "DUPLICATE_SESSIONS"

    def test_legacy_slot_alias_and_day_format_are_normalized(self, booking_service):
        booking = booking_service.create_booking(
            booking_payload([{"date": "07-01-2030", "id": "S2", "time": "11:00 AM"}])
        )

        session = booking.sessions[0]
        assert session.slot_key == (DAY_1, "S2", "prov-a")
        assert session.time_label == "11:00 AM"

    def test_provider_without_ref_code_is_rejected(self, db, booking_service):
        with pytest.raises(ValidationException) as exc_info:
            booking_service.create_booking(
                booking_payload([session_entry(DAY_1, "S1", provider_id="prov-x")])
            )

        assert exc_info.value.code == "UNKNOWN_PROVIDER"
        assert exc_info.value.message == (
            "One or more providers referenced in sessions do not exist."
        )
        assert exc_info.value.details["provider_ids"] == ["prov-x"]
        assert db.query(Booking).count() == 0

    def test_unknown_package_is_rejected(self, booking_service):
        with pytest.raises(ValidationException) as exc_info:
            booking_service.create_booking(
                booking_payload([session_entry(DAY_1, "S1")], package_id="pkg-missing")
            )

        assert exc_info.value.message == "Invalid package"

    def test_cancelled_booking_holds_no_slots(self, db, booking_service):
        booking = booking_service.create_booking(
            booking_payload([session_entry(DAY_1, "S1")], status="cancelled")
        )

        assert booking.status == "cancelled"
        assert db.query(SessionSlotClaim).count() == 0
        assert ledger_booked(db, DAY_1, "S1") == 0

    def test_ledger_untouched_on_create_when_tracking_disabled(self, db, booking_service):
        booking_service.ledger_tracks_creates = False

        booking_service.create_booking(booking_payload([session_entry(DAY_1, "S1")]))

        assert ledger_booked(db, DAY_1, "S1") == 0
        assert db.query(SessionSlotClaim).count() == 1

    def test_unknown_session_service_type_is_rejected(self, db, booking_service):
        with pytest.raises(ValidationException) as exc_info:
            booking_service.create_booking(
                booking_payload(
                    [
                        session_entry(DAY_1, "S1", service_type_id="svc-nope"),
                        session_entry(DAY_2, "S1", service_type_id="svc-physio"),
                    ]
                )
            )

        assert exc_info.value.code == "UNKNOWN_SERVICE_TYPE"
        assert exc_info.value.details == {"service_type_ids": ["svc-nope"]}
        assert db.query(Booking).count() == 0
        assert db.query(SessionSlotClaim).count() == 0


class TestAvailabilityOracleUsage:
    def test_one_query_per_provider_over_its_date_span(self, db, catalog):
        oracle = Mock()
        oracle.query.return_value = {}
        service = BookingService(db, availability_oracle=oracle)

        service.create_booking(
            booking_payload(
                [
                    session_entry(DAY_3, "S1"),
                    session_entry(DAY_1, "S1"),
                    session_entry(DAY_2, "S2", provider_id="prov-b"),
                ]
            )
        )

        calls = sorted(call.args for call in oracle.query.call_args_list)
        assert calls == [("prov-a", DAY_1, DAY_3), ("prov-b", DAY_2, DAY_2)]

    def test_legacy_day_keys_and_camel_case_map_are_honoured(self, db, catalog):
        oracle = Mock()
        oracle.query.return_value = {"07-01-2030": {"bookedSlots": {"DR-RAO": ["S1"]}}}
        service = BookingService(db, availability_oracle=oracle)

        with pytest.raises(BookingConflictException) as exc_info:
            service.create_booking(
                booking_payload([session_entry(DAY_1, "S1"), session_entry(DAY_1, "S2")])
            )

        assert exc_info.value.conflicts == [_conflict(DAY_1, "S1")]

    def test_slots_booked_for_other_ref_codes_do_not_conflict(self, db, catalog):
        oracle = Mock()
        oracle.query.return_value = {DAY_1: {"booked_slots": {"DR-IYER": ["S1"]}}}
        service = BookingService(db, availability_oracle=oracle)

        booking = service.create_booking(booking_payload([session_entry(DAY_1, "S1")]))

        assert booking.id

    def test_oracle_failure_aborts_before_any_write(self, db, catalog):
        oracle = Mock()
        oracle.query.side_effect = RuntimeError("calendar unreachable")
        service = BookingService(db, availability_oracle=oracle)

        with pytest.raises(ServiceException) as exc_info:
            service.create_booking(booking_payload([session_entry(DAY_1, "S1")]))

        assert exc_info.value.code == "AVAILABILITY_UNAVAILABLE"
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert db.query(Booking).count() == 0
        assert db.query(Payment).count() == 0
        assert CounterRepository(db).current("appointment") == 0


class TestStorageLevelExclusion:
    def test_stale_snapshot_loses_to_slot_claim(self, db, booking_service):
        winner = booking_service.create_booking(booking_payload([session_entry(DAY_1, "S1")]))
        stale = BookingService(db, availability_oracle=EmptyOracle())

        with pytest.raises(BookingConflictException) as exc_info:
            stale.create_booking(
                booking_payload([session_entry(DAY_2, "S2"), session_entry(DAY_1, "S1")])
            )

        assert exc_info.value.conflicts == [_conflict(DAY_1, "S1")]
        assert isinstance(exc_info.value.__cause__, TransactionException)
        # The whole unit of work rolled back, counters included
        assert db.query(Booking).all() == [winner]
        assert db.query(Payment).count() == 1
        assert CounterRepository(db).current("appointment") == 1
        assert CounterRepository(db).current("payment") == 1
        assert ledger_booked(db, DAY_2, "S2") == 0

    def test_stale_update_loses_to_slot_claim(self, db, booking_service):
        booking_service.create_booking(booking_payload([session_entry(DAY_2, "S1")]))
        mine = booking_service.create_booking(booking_payload([session_entry(DAY_1, "S1")]))
        stale = BookingService(db, availability_oracle=EmptyOracle())

        with pytest.raises(BookingConflictException) as exc_info:
            stale.update_booking(
                mine.id,
                update_payload([session_entry(DAY_1, "S1"), session_entry(DAY_2, "S1")]),
            )

        assert exc_info.value.conflicts == [_conflict(DAY_2, "S1")]
        db.expire_all()
        reloaded = db.get(Booking, mine.id)
        assert [s.slot_key for s in reloaded.sessions] == [(DAY_1, "S1", "prov-a")]


class TestCoupons:
    def test_coupon_by_code_discounts_owed_amount(self, booking_service):
        booking = booking_service.create_booking(
            booking_payload([session_entry(DAY_1, "S1")], coupon="SAVE10")
        )

        assert booking.coupon_id == "cpn-1"
        assert booking.coupon_applied_at is not None
        assert booking.payment.total_amount == Decimal("1000.00")
        assert booking.payment.amount == Decimal("900.00")

    @pytest.mark.parametrize("code", ["OLD50", "OFF20", "NOPE"])
    def test_unusable_coupon_degrades_to_no_discount(self, booking_service, code):
        booking = booking_service.create_booking(
            booking_payload([session_entry(DAY_1, "S1")], coupon=code)
        )

        assert booking.coupon_id is None
        assert booking.payment.amount == Decimal("1000.00")

    def test_update_can_add_and_remove_coupon(self, booking_service):
        booking = booking_service.create_booking(booking_payload([session_entry(DAY_1, "S1")]))

        updated = booking_service.update_booking(booking.id, update_payload(coupon="cpn-1"))
        assert updated.coupon_id == "cpn-1"
        assert updated.payment.amount == Decimal("900.00")

        removed = booking_service.update_booking(booking.id, update_payload(coupon=""))
        assert removed.coupon_id is None
        assert removed.payment.amount == Decimal("1000.00")


class TestBookingRequestApproval:
    def _request(self, db, status=RequestStatus.PENDING.value):
        request = BookingRequest(
            id="req-1",
            request_code="REQ-00001",
            package_id="pkg-1",
            patient_id="pat-1",
            therapy_id="svc-physio",
            requested_sessions=[{"date": DAY_1, "slot_id": "S1"}],
            status=status,
        )
        db.add(request)
        db.commit()
        return request

    def test_booking_approves_and_links_request(self, db, booking_service):
        request = self._request(db)

        booking = booking_service.create_booking(
            booking_payload([session_entry(DAY_1, "S1")], booking_request_id="req-1")
        )

        db.refresh(request)
        assert request.status == RequestStatus.APPROVED.value
        assert request.booking_id == booking.id
        assert booking.booking_request_id == "req-1"

    def test_missing_request_is_ignored(self, booking_service):
        booking = booking_service.create_booking(
            booking_payload([session_entry(DAY_1, "S1")], booking_request_id="req-missing")
        )

        assert booking.booking_request_id == "req-missing"

    def test_closed_request_rolls_back_booking(self, db, booking_service):
        self._request(db, status=RequestStatus.REJECTED.value)

        with pytest.raises(StateException):
            booking_service.create_booking(
                booking_payload([session_entry(DAY_1, "S1")], booking_request_id="req-1")
            )

        assert db.query(Booking).count() == 0
        assert db.query(SessionSlotClaim).count() == 0
        assert CounterRepository(db).current("appointment") == 0


class TestUpdateBooking:
    def test_only_added_sessions_are_validated(self, db, booking_service):
        booking = booking_service.create_booking(
            booking_payload([session_entry(DAY_1, "S1"), session_entry(DAY_2, "S1")])
        )
        kept_session_id = booking.sessions[0].id

        updated = booking_service.update_booking(
            booking.id,
            update_payload([session_entry(DAY_1, "S1"), session_entry(DAY_3, "S1")]),
        )

        assert [s.slot_key for s in updated.sessions] == [
            (DAY_1, "S1", "prov-a"),
            (DAY_3, "S1", "prov-a"),
        ]
        assert updated.sessions[0].id == kept_session_id
        assert ledger_booked(db, DAY_1, "S1") == 1
        assert ledger_booked(db, DAY_2, "S1") == 0
        assert ledger_booked(db, DAY_3, "S1") == 1
        claims = db.query(SessionSlotClaim).filter_by(booking_id=booking.id).all()
        assert {c.slot_key for c in claims} == {(DAY_1, "S1", "prov-a"), (DAY_3, "S1", "prov-a")}

    def test_added_session_conflict_leaves_booking_unchanged(self, db, booking_service):
        booking_service.create_booking(booking_payload([session_entry(DAY_2, "S2")]))
        mine = booking_service.create_booking(booking_payload([session_entry(DAY_1, "S1")]))

        with pytest.raises(BookingConflictException) as exc_info:
            booking_service.update_booking(
                mine.id,
                update_payload([session_entry(DAY_1, "S1"), session_entry(DAY_2, "S2")]),
            )

        assert exc_info.value.conflicts == [_conflict(DAY_2, "S2")]
        db.expire_all()
        reloaded = db.get(Booking, mine.id)
        assert [s.slot_key for s in reloaded.sessions] == [(DAY_1, "S1", "prov-a")]

    def test_field_only_update_keeps_sessions(self, booking_service):
        booking = booking_service.create_booking(booking_payload([session_entry(DAY_1, "S1")]))

        updated = booking_service.update_booking(
            booking.id, update_payload(notes="Bring reports", remark="VIP")
        )

        assert updated.notes == "Bring reports"
        assert updated.remark == "VIP"
        assert [s.slot_key for s in updated.sessions] == [(DAY_1, "S1", "prov-a")]

    def test_checked_in_state_survives_resubmission(self, booking_service):
        booking = booking_service.create_booking(
            booking_payload([session_entry(DAY_1, "S1"), session_entry(DAY_2, "S1")])
        )
        booking_service.check_in(booking.id, booking.sessions[0].id)

        updated = booking_service.update_booking(
            booking.id,
            update_payload([session_entry(DAY_1, "S1"), session_entry(DAY_2, "S2")]),
        )

        assert updated.sessions[0].is_checked_in is True

    def test_cancel_releases_slots_and_reactivation_revalidates(self, db, booking_service):
        booking = booking_service.create_booking(booking_payload([session_entry(DAY_1, "S1")]))

        cancelled = booking_service.update_booking(booking.id, update_payload(status="cancelled"))
        assert cancelled.status == "cancelled"
        assert db.query(SessionSlotClaim).count() == 0
        assert ledger_booked(db, DAY_1, "S1") == 0

        booking_service.create_booking(booking_payload([session_entry(DAY_1, "S1")]))

        with pytest.raises(BookingConflictException) as exc_info:
            booking_service.update_booking(booking.id, update_payload(status="scheduled"))
        assert exc_info.value.conflicts == [_conflict(DAY_1, "S1")]

    def test_retained_session_lost_out_of_band_is_reported_under_reject_policy(
        self, db, booking_service
    ):
        booking = booking_service.create_booking(
            booking_payload([session_entry(DAY_1, "S1"), session_entry(DAY_2, "S1")])
        )
        db.query(SessionSlotClaim).filter_by(session_date=DAY_1).delete()
        db.commit()
        booking_service.retained_session_policy = "reject"

        with pytest.raises(BookingConflictException) as exc_info:
            booking_service.update_booking(
                booking.id,
                update_payload([session_entry(DAY_1, "S1"), session_entry(DAY_2, "S1")]),
            )

        assert exc_info.value.conflicts == [_conflict(DAY_1, "S1")]

    def test_update_missing_booking_is_not_found(self, booking_service):
        with pytest.raises(NotFoundException):
            booking_service.update_booking("missing", update_payload(notes="x"))

    def test_empty_session_list_is_rejected(self, booking_service):
        booking = booking_service.create_booking(booking_payload([session_entry(DAY_1, "S1")]))

        with pytest.raises(ValidationException) as exc_info:
            booking_service.update_booking(booking.id, update_payload([]))

        assert exc_info.value.details == {"missing_fields": ["sessions"]}

    def test_unknown_session_service_type_is_rejected(self, db, booking_service):
        booking = booking_service.create_booking(booking_payload([session_entry(DAY_1, "S1")]))

        with pytest.raises(ValidationException) as exc_info:
            booking_service.update_booking(
                booking.id,
                update_payload([session_entry(DAY_2, "S1", service_type_id="svc-nope")]),
            )

        assert exc_info.value.code == "UNKNOWN_SERVICE_TYPE"
        assert exc_info.value.details == {"service_type_ids": ["svc-nope"]}
        db.expire_all()
        reloaded = db.get(Booking, booking.id)
        assert [s.slot_key for s in reloaded.sessions] == [(DAY_1, "S1", "prov-a")]


class TestDeleteBooking:
    def test_delete_releases_ledger_and_claims(self, db, booking_service):
        booking = booking_service.create_booking(
            booking_payload([session_entry(DAY_1, "S1"), session_entry(DAY_2, "S2")])
        )

        released = booking_service.delete_booking(booking.id)

        assert released == 2
        assert db.query(Booking).count() == 0
        assert db.query(SessionSlotClaim).count() == 0
        assert ledger_booked(db, DAY_1, "S1") == 0
        assert ledger_booked(db, DAY_2, "S2") == 0
        # The slot is free again
        booking_service.create_booking(booking_payload([session_entry(DAY_1, "S1")]))

    def test_delete_cancelled_booking_leaves_ledger_alone(self, db, booking_service):
        booking_service.create_booking(booking_payload([session_entry(DAY_1, "S1")]))
        cancelled = booking_service.create_booking(
            booking_payload([session_entry(DAY_1, "S1")], status="cancelled")
        )

        released = booking_service.delete_booking(cancelled.id)

        assert released == 0
        assert ledger_booked(db, DAY_1, "S1") == 1

    def test_delete_missing_booking_is_not_found(self, booking_service):
        with pytest.raises(NotFoundException):
            booking_service.delete_booking("missing")


class TestCheckIn:
    def test_check_in_is_idempotent(self, booking_service):
        booking = booking_service.create_booking(booking_payload([session_entry(DAY_1, "S1")]))
        session_id = booking.sessions[0].id

        first, already_first = booking_service.check_in(booking.id, session_id)
        checked_in_at = first.sessions[0].checked_in_at
        second, already_second = booking_service.check_in(booking.id, session_id)

        assert already_first is False
        assert already_second is True
        assert second.sessions[0].is_checked_in is True
        assert second.sessions[0].checked_in_at == checked_in_at

    def test_check_in_requires_both_ids(self, booking_service):
        with pytest.raises(ValidationException) as exc_info:
            booking_service.check_in("bk-1", None)

        assert exc_info.value.details == {"missing_fields": ["session_id"]}

    def test_check_in_unknown_session_is_not_found(self, booking_service):
        booking = booking_service.create_booking(booking_payload([session_entry(DAY_1, "S1")]))

        with pytest.raises(NotFoundException):
            booking_service.check_in(booking.id, "no-such-session")


class TestReads:
    def test_list_filters_by_provider_and_session_date(self, booking_service):
        a = booking_service.create_booking(booking_payload([session_entry(DAY_1, "S1")]))
        b = booking_service.create_booking(
            booking_payload([session_entry(DAY_2, "S1")], provider_id="prov-b")
        )

        assert [x.id for x in booking_service.list_bookings(provider_id="prov-b")] == [b.id]
        assert [x.id for x in booking_service.list_bookings(session_date=DAY_1)] == [a.id]
        assert {x.id for x in booking_service.list_bookings(patient_id="pat-1")} == {a.id, b.id}

    def test_list_rejects_malformed_session_date(self, booking_service):
        with pytest.raises(ValidationException):
            booking_service.list_bookings(session_date="January")

    def test_get_missing_booking_is_not_found(self, booking_service):
        with pytest.raises(NotFoundException):
            booking_service.get_booking("missing")
