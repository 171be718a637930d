from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from conftest import NOW, add_booking, utc
from portal.auth import jwt_handler
from portal.main import app
from portal.models.booking import Booking
from portal.models.service import Service
from portal.routes import portal_routes, public_routes
from portal.routes.common import get_clock, get_db


def _parse(value: str) -> datetime:
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


@pytest.fixture
def client(db, seed, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(portal_routes, 'ensure_database_ready', lambda: None)
    monkeypatch.setattr(public_routes, 'ensure_database_ready', lambda: None)

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: NOW
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(seed) -> dict:
    token, _ = jwt_handler.create_portal_token(seed.client.id, seed.team.id)
    return {'Authorization': f'Bearer {token}'}


def test_portal_login_issues_token_for_portal_code(client, seed) -> None:
    response = client.post('/auth/portal', json={'portal_code': ' abcd2345 '})

    assert response.status_code == 200
    body = response.json()
    assert body['token_type'] == 'bearer'
    assert body['client']['email'] == 'alex@example.com'

    me = client.get('/auth/me', headers={'Authorization': f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()['client_id'] == seed.client.id
    assert me.json()['team_id'] == seed.team.id


def test_portal_login_rejects_unknown_code(client) -> None:
    response = client.post('/auth/portal', json={'portal_code': 'NOPE2222'})

    assert response.status_code == 401
    assert response.json()['detail'] == 'Invalid portal code.'


def test_portal_routes_require_token(client) -> None:
    response = client.get('/portal/bookings')

    assert response.status_code in (401, 403)


def test_portal_routes_reject_bad_token(client) -> None:
    response = client.get('/portal/bookings', headers={'Authorization': 'Bearer not-a-token'})

    assert response.status_code == 401
    assert response.json()['detail'] == 'Invalid token'


def test_portal_services_lists_team_catalog(client, auth_headers) -> None:
    response = client.get('/portal/services', headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body['team']['name'] == 'Clean Co'
    assert [service['name'] for service in body['services']] == ['Deep Clean']
    assert body['services'][0]['price'] == 120.0


def test_portal_slots_returns_ordered_slots(client, seed, auth_headers) -> None:
    response = client.get(
        '/portal/slots',
        params={'service_id': seed.service.id, 'date': '2026-01-05', 'offset_minutes': 0},
        headers=auth_headers,
    )

    assert response.status_code == 200
    slots = response.json()['slots']
    assert _parse(slots[0]['start_time']) == utc(2026, 1, 5, 10, 30)
    assert _parse(slots[0]['end_time']) == utc(2026, 1, 5, 11, 30)
    starts = [_parse(slot['start_time']) for slot in slots]
    assert starts == sorted(starts)


def test_portal_slots_requires_offset(client, seed, auth_headers) -> None:
    response = client.get(
        '/portal/slots',
        params={'service_id': seed.service.id, 'date': '2026-01-05'},
        headers=auth_headers,
    )

    assert response.status_code == 422


def test_portal_slots_unknown_service_is_not_found(client, auth_headers) -> None:
    response = client.get(
        '/portal/slots',
        params={'service_id': 9999, 'date': '2026-01-05', 'offset_minutes': 0},
        headers=auth_headers,
    )

    assert response.status_code == 404


def test_portal_slots_closed_or_past_day_is_empty(client, seed, auth_headers) -> None:
    response = client.get(
        '/portal/slots',
        params={'service_id': seed.service.id, 'date': '2026-01-01', 'offset_minutes': 0},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert response.json() == {'slots': []}


def test_portal_create_booking_then_conflict(client, seed, auth_headers) -> None:
    payload = {
        'service_id': seed.service.id,
        'start_time': '2026-01-06T10:00:00Z',
        'end_time': '2026-01-06T11:00:00Z',
        'notes': '  Gate code 1234  ',
    }

    created = client.post('/portal/bookings', json=payload, headers=auth_headers)
    assert created.status_code == 201
    assert created.json()['status'] == 'pending'
    assert created.json()['notes'] == 'Gate code 1234'
    assert _parse(created.json()['start_time']) == utc(2026, 1, 6, 10, 0)

    conflict = client.post('/portal/bookings', json=payload, headers=auth_headers)
    assert conflict.status_code == 409
    assert conflict.json()['detail'] == 'This time slot is no longer available.'


def test_portal_create_booking_enforces_lead_time(client, seed, auth_headers) -> None:
    response = client.post(
        '/portal/bookings',
        json={'service_id': seed.service.id, 'start_time': '2026-01-05T09:00:00Z', 'end_time': '2026-01-05T10:00:00Z'},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()['detail'] == 'Bookings must be made at least 2 hours in advance.'


def test_portal_cancel_booking_flow(client, db, seed, auth_headers) -> None:
    booking = add_booking(db, seed, utc(2026, 1, 6, 10, 0), utc(2026, 1, 6, 11, 0))

    listed = client.get('/portal/bookings', headers=auth_headers)
    assert [item['id'] for item in listed.json()] == [booking.id]

    cancelled = client.post(f'/portal/bookings/{booking.id}/cancel', headers=auth_headers)
    assert cancelled.status_code == 200
    assert cancelled.json() == {'success': True, 'message': 'Booking cancelled successfully'}

    again = client.post(f'/portal/bookings/{booking.id}/cancel', headers=auth_headers)
    assert again.status_code == 400
    assert again.json()['detail'] == 'Cannot cancel a booking with status: cancelled'


def test_portal_cancel_unknown_booking(client, auth_headers) -> None:
    response = client.post('/portal/bookings/9999/cancel', headers=auth_headers)

    assert response.status_code == 404
    assert response.json()['detail'] == 'Booking not found.'


def test_portal_storage_failure_is_service_unavailable(client, auth_headers, monkeypatch: pytest.MonkeyPatch) -> None:
    def broken(*args, **kwargs):
        raise OperationalError('SELECT 1', {}, Exception('connection refused'))

    monkeypatch.setattr(portal_routes, 'list_client_bookings', broken)

    response = client.get('/portal/bookings', headers=auth_headers)

    assert response.status_code == 503


def test_public_catalog_and_unknown_team(client, seed) -> None:
    assert client.get(f'/public/teams/{seed.team.id}/services').status_code == 200
    assert client.get('/public/teams/9999/services').status_code == 404


def test_public_slots_apply_combined_duration(client, seed) -> None:
    single = client.get(
        f'/public/teams/{seed.team.id}/slots',
        params={'service_id': seed.service.id, 'date': '2026-01-05', 'offset_minutes': 0},
    )
    doubled = client.get(
        f'/public/teams/{seed.team.id}/slots',
        params=[('service_id', seed.service.id), ('service_id', seed.service.id), ('date', '2026-01-05'), ('offset_minutes', 0)],
    )

    assert single.status_code == 200
    assert doubled.status_code == 200
    # Daytime slots stay well clear of midnight, so the cut-off keeps all of them.
    assert doubled.json() == single.json()


def test_public_guest_booking_creates_client(client, seed) -> None:
    response = client.post(
        f'/public/teams/{seed.team.id}/bookings',
        json={
            'client_info': {'name': 'Jordan Lee', 'email': 'jordan@example.com', 'phone': '514-555-0142'},
            'service_id': seed.service.id,
            'start_time': '2026-01-07T13:00:00Z',
            'end_time': '2026-01-07T14:00:00Z',
            'services': [{'service_id': seed.service.id, 'quantity': 2}],
            'location_address': ' 99 Rue Saint-Denis ',
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body['success'] is True
    assert body['client_id'] != seed.client.id


def test_public_booking_rejects_selection_not_led_by_booked_service(client, db, seed) -> None:
    windows = Service(team_id=seed.team.id, name='Windows', duration_minutes=30, price=40)
    db.add(windows)
    db.commit()

    response = client.post(
        f'/public/teams/{seed.team.id}/bookings',
        json={
            'client_info': {'name': 'Jordan Lee', 'email': 'jordan@example.com', 'phone': '514-555-0142'},
            'service_id': seed.service.id,
            'start_time': '2026-01-07T13:00:00Z',
            'end_time': '2026-01-07T14:00:00Z',
            'services': [{'service_id': windows.id, 'quantity': 1}, {'service_id': seed.service.id, 'quantity': 1}],
        },
    )

    assert response.status_code == 400
    assert response.json()['detail'] == 'The booked service must be the first selected service.'
    assert db.query(Booking).count() == 0


def test_public_booking_requires_client_information(client, seed) -> None:
    response = client.post(
        f'/public/teams/{seed.team.id}/bookings',
        json={
            'service_id': seed.service.id,
            'start_time': '2026-01-07T13:00:00Z',
            'end_time': '2026-01-07T14:00:00Z',
        },
    )

    assert response.status_code == 400
    assert response.json()['detail'] == 'Client information is required.'


def test_public_client_lookup(client, seed) -> None:
    found = client.post('/public/clients/lookup', json={'phone': '514 555 0100', 'team_id': seed.team.id})
    missing = client.post('/public/clients/lookup', json={'phone': '438 555 0000', 'team_id': seed.team.id})
    invalid = client.post('/public/clients/lookup', json={'phone': '12', 'team_id': seed.team.id})

    assert found.status_code == 200
    assert found.json()['client']['id'] == seed.client.id
    assert missing.status_code == 404
    assert invalid.status_code == 400


def test_public_client_lookup_requires_team(client, seed) -> None:
    response = client.post('/public/clients/lookup', json={'phone': '514 555 0100'})

    assert response.status_code == 422


def test_public_client_lookup_does_not_cross_teams(client, seed) -> None:
    other_team = client.post('/public/clients/lookup', json={'phone': '514 555 0100', 'team_id': seed.team.id + 1})

    assert other_team.status_code == 404
