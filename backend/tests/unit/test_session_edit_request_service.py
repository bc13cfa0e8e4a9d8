"""Session edit requests: one pending per booking, decided requests are frozen."""

import pytest

from booking_core.core.enums import RequestStatus
from booking_core.core.exceptions import (
    NotFoundException,
    RepositoryException,
    StateException,
    ValidationException,
)
from booking_core.schemas.session_edit_request import (
    SessionEditRequestCreate,
    SessionEditRequestUpdate,
)
from booking_core.services.session_edit_request_service import SessionEditRequestService
from tests._utils.booking_helpers import DAY_1, DAY_2, booking_payload, session_entry


@pytest.fixture
def service(db):
    return SessionEditRequestService(db)


@pytest.fixture
def booking(booking_service):
    return booking_service.create_booking(booking_payload([session_entry(DAY_1, "S1")]))


def _create(booking, new_date=DAY_2, new_slot_id="S2"):
    return SessionEditRequestCreate(
        booking_id=booking.id,
        patient_id="pat-1",
        sessions=[
            {
                "session_id": booking.sessions[0].id,
                "new_date": new_date,
                "new_slot_id": new_slot_id,
            }
        ],
    )


def test_create_assigns_code_and_normalizes_dates(service, booking):
    request = service.create_request(_create(booking, new_date="08-01-2030"))

    assert request.request_code == "SER00001"
    assert request.status == RequestStatus.PENDING.value
    assert request.sessions == [
        {"session_id": booking.sessions[0].id, "new_date": DAY_2, "new_slot_id": "S2"}
    ]


def test_only_one_pending_request_per_booking(service, booking):
    service.create_request(_create(booking))

    with pytest.raises(StateException) as exc_info:
        service.create_request(_create(booking, new_slot_id="S1"))

    assert exc_info.value.code == "PENDING_REQUEST_EXISTS"


def test_new_request_allowed_once_previous_is_decided(service, booking):
    first = service.create_request(_create(booking))
    service.update_request(first.id, SessionEditRequestUpdate(status=RequestStatus.REJECTED))

    second = service.create_request(_create(booking))

    assert second.request_code == "SER00002"


def test_create_validates_input(service, booking):
    with pytest.raises(ValidationException) as missing:
        service.create_request(SessionEditRequestCreate(booking_id=booking.id))
    assert missing.value.details["missing_fields"] == ["patient_id", "sessions"]

    with pytest.raises(ValidationException) as invalid:
        service.create_request(_create(booking, new_date="2030-13-01"))
    assert invalid.value.code == "INVALID_SESSIONS"
    assert invalid.value.details["invalid_sessions"] == [0]


def test_create_for_unknown_booking_is_not_found(service, catalog):
    payload = SessionEditRequestCreate(
        booking_id="missing",
        patient_id="pat-1",
        sessions=[{"session_id": "s", "new_date": DAY_2, "new_slot_id": "S1"}],
    )

    with pytest.raises(NotFoundException):
        service.create_request(payload)


def test_pending_request_can_be_revised_then_approved(service, booking):
    request = service.create_request(_create(booking))

    revised = service.update_request(
        request.id,
        SessionEditRequestUpdate(
            sessions=[
                {"session_id": booking.sessions[0].id, "new_date": DAY_2, "new_slot_id": "S1"}
            ]
        ),
    )
    assert revised.sessions[0]["new_slot_id"] == "S1"
    assert revised.status == RequestStatus.PENDING.value

    approved = service.update_request(
        request.id, SessionEditRequestUpdate(status=RequestStatus.APPROVED)
    )
    assert approved.status == RequestStatus.APPROVED.value


def test_decided_request_is_immutable(service, booking):
    request = service.create_request(_create(booking))
    service.update_request(request.id, SessionEditRequestUpdate(status=RequestStatus.APPROVED))

    with pytest.raises(StateException) as exc_info:
        service.update_request(request.id, SessionEditRequestUpdate(status=RequestStatus.PENDING))

    assert exc_info.value.code == "REQUEST_CLOSED"


def test_empty_session_list_is_rejected(service, booking):
    request = service.create_request(_create(booking))

    with pytest.raises(ValidationException) as exc_info:
        service.update_request(request.id, SessionEditRequestUpdate(sessions=[]))

    assert exc_info.value.code == "MISSING_FIELDS"


def test_list_and_delete(service, booking):
    request = service.create_request(_create(booking))

    assert [r.id for r in service.list_requests(booking_id=booking.id)] == [request.id]
    assert service.list_requests(status="approved") == []

    service.delete_request(request.id)

    assert service.list_requests() == []
    with pytest.raises(NotFoundException):
        service.delete_request(request.id)


def test_unknown_patient_is_a_validation_error(service, booking):
    payload = _create(booking)
    payload.patient_id = "pat-ghost"

    with pytest.raises(ValidationException) as exc_info:
        service.create_request(payload)

    assert str(exc_info.value) == "Invalid patient"
    assert service.list_requests() == []


def test_concurrent_pending_insert_maps_to_state_error(service, booking, monkeypatch):
    service.create_request(_create(booking))
    # Simulate the second writer passing the pre-check before the first committed
    monkeypatch.setattr(service.repository, "find_pending_for_booking", lambda booking_id: None)

    with pytest.raises(StateException) as exc_info:
        service.create_request(_create(booking, new_slot_id="S1"))

    assert exc_info.value.code == "PENDING_REQUEST_EXISTS"


def test_other_integrity_errors_are_not_reported_as_pending(service, booking, monkeypatch):
    monkeypatch.setattr(service.catalog_repository, "get_patient", lambda patient_id: object())
    payload = _create(booking)
    payload.patient_id = "pat-ghost"

    with pytest.raises(RepositoryException):
        service.create_request(payload)

    assert service.list_requests() == []
