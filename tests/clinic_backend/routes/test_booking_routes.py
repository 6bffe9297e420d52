from datetime import datetime, timedelta

from fastapi.testclient import TestClient

from clinic_backend.auth import jwt_handler
from clinic_backend.database import get_db
from clinic_backend.main import app
from clinic_backend.services import slot_store


def _auth(user) -> dict:
    return {'Authorization': f'Bearer {jwt_handler.issue_user_token(user)}'}


def test_book_slot_returns_created_booking(client, patient, make_slot, future_start) -> None:
    slot = make_slot(future_start)

    response = client.post('/api/book', json={'slotId': slot.id}, headers=_auth(patient))

    assert response.status_code == 201
    body = response.json()
    assert body['slotId'] == slot.id
    assert body['userId'] == patient.id
    assert body['slot'] == {
        'id': slot.id,
        'startAt': future_start.isoformat(),
        'endAt': (future_start + timedelta(minutes=30)).isoformat(),
    }
    assert body['user'] == {'id': patient.id, 'name': 'Pat Patient', 'email': 'patient@example.com'}
    assert datetime.fromisoformat(body['createdAt']) <= datetime.now()


def test_book_slot_accepts_numeric_string_id(client, patient, make_slot, future_start) -> None:
    slot = make_slot(future_start)

    response = client.post('/api/book', json={'slotId': str(slot.id)}, headers=_auth(patient))

    assert response.status_code == 201


def test_book_slot_requires_token(client, make_slot, future_start) -> None:
    slot = make_slot(future_start)

    response = client.post('/api/book', json={'slotId': slot.id})

    assert response.status_code == 401
    assert response.json()['error']['code'] == 'UNAUTHORIZED'


def test_book_slot_rejects_garbage_token(client, make_slot, future_start) -> None:
    slot = make_slot(future_start)

    response = client.post('/api/book', json={'slotId': slot.id}, headers={'Authorization': 'Bearer nope'})

    assert response.status_code == 401
    assert response.json() == {'error': {'code': 'UNAUTHORIZED', 'message': 'Invalid token.'}}


def test_book_slot_requires_slot_id(client, patient) -> None:
    response = client.post('/api/book', json={}, headers=_auth(patient))

    assert response.status_code == 400
    assert response.json()['error']['code'] == 'VALIDATION_ERROR'
    assert 'slotId' in response.json()['error']['message']


def test_book_slot_unknown_slot(client, patient) -> None:
    response = client.post('/api/book', json={'slotId': 4242}, headers=_auth(patient))

    assert response.status_code == 404
    assert response.json() == {'error': {'code': 'SLOT_NOT_FOUND', 'message': 'Slot not found.'}}


def test_book_slot_past_slot(client, patient, make_slot) -> None:
    slot = make_slot(datetime.now().replace(microsecond=0) - timedelta(hours=1))

    response = client.post('/api/book', json={'slotId': slot.id}, headers=_auth(patient))

    assert response.status_code == 400
    assert response.json()['error']['code'] == 'SLOT_EXPIRED'


def test_second_booking_gets_conflict(client, patient, make_user, make_slot, future_start) -> None:
    other = make_user('other@example.com')
    slot = make_slot(future_start)

    first = client.post('/api/book', json={'slotId': slot.id}, headers=_auth(patient))
    second = client.post('/api/book', json={'slotId': slot.id}, headers=_auth(other))

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json() == {'error': {'code': 'SLOT_TAKEN', 'message': 'This slot is already booked.'}}


def test_booking_shows_up_in_both_listings(client, patient, admin, make_user, make_slot, future_start) -> None:
    other = make_user('other@example.com')
    mine = make_slot(future_start)
    theirs = make_slot(future_start + timedelta(hours=1))

    created = client.post('/api/book', json={'slotId': mine.id}, headers=_auth(patient)).json()
    client.post('/api/book', json={'slotId': theirs.id}, headers=_auth(other))

    my_bookings = client.get('/api/my-bookings', headers=_auth(patient))
    all_bookings = client.get('/api/all-bookings', headers=_auth(admin))

    assert my_bookings.status_code == 200
    assert my_bookings.json() == [created]
    assert all_bookings.status_code == 200
    assert all_bookings.json()[0] == created
    assert [booking['user']['email'] for booking in all_bookings.json()] == [
        'patient@example.com',
        'other@example.com',
    ]


def test_patient_cannot_list_all_bookings(client, patient) -> None:
    response = client.get('/api/all-bookings', headers=_auth(patient))

    assert response.status_code == 403
    assert response.json() == {'error': {'code': 'FORBIDDEN', 'message': 'Insufficient permissions.'}}


def test_admin_cannot_list_my_bookings(client, admin) -> None:
    response = client.get('/api/my-bookings', headers=_auth(admin))

    assert response.status_code == 403


def test_token_for_deleted_user_is_forbidden(client, db, patient) -> None:
    headers = _auth(patient)
    db.delete(patient)
    db.commit()

    response = client.get('/api/my-bookings', headers=headers)

    assert response.status_code == 403
    assert response.json()['error']['code'] == 'FORBIDDEN'


def test_unknown_route_returns_not_found_envelope(client) -> None:
    response = client.get('/api/nothing-here')

    assert response.status_code == 404
    assert response.json() == {'error': {'code': 'NOT_FOUND', 'message': 'Route not found.'}}


def test_unhandled_error_returns_internal_error(session_factory, monkeypatch) -> None:
    def explode(*args, **kwargs):
        raise RuntimeError('boom')

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    monkeypatch.setattr(slot_store, 'list_slots', explode)
    app.dependency_overrides[get_db] = override_get_db
    try:
        response = TestClient(app, raise_server_exceptions=False).get('/api/slots')
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {'error': {'code': 'INTERNAL_ERROR', 'message': 'Something went wrong.'}}


def test_book_slot_with_oversized_id_is_not_found(client, patient) -> None:
    response = client.post('/api/book', json={'slotId': 2**70}, headers=_auth(patient))

    assert response.status_code == 404
    assert response.json()['error']['code'] == 'SLOT_NOT_FOUND'
