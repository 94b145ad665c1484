"""
Tests for the box-office booking writer and booking administration,
including the optimistic-lock retry path.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from comedy_club.models.booking_settings import BookingSettings
from comedy_club.schemas.booking import BookingCreate
from comedy_club.services import booking_service
from comedy_club.services.booking_service import create_booking
from comedy_club.core.exceptions import BookingUnavailable

from conftest import customer


async def _box_office(client, admin_headers, event_id, **overrides):
    return await client.post(
        "/api/v1/bookings/",
        json=customer(event_id, **overrides),
        headers=admin_headers,
    )


@pytest.mark.asyncio
async def test_box_office_booking_confirmed(client: AsyncClient, admin_headers, test_event, notifier):
    """Direct booking is confirmed, priced server-side, and notified."""
    response = await _box_office(client, admin_headers, test_event.id, seats=3)

    assert response.status_code == 201
    data = response.json()
    assert data["event_id"] == test_event.id
    assert data["seats"] == 3
    assert data["total_amount"] == 6000
    assert data["status"] == "confirmed"
    assert data["payment_status"] == "box_office"

    assert len(notifier.sent) == 1
    recipient, confirmation, html = notifier.sent[0]
    assert recipient == "camille@example.com"
    assert confirmation.seats == 3
    assert confirmation.event_title == "Friday Night Stand-Up"
    assert str(data["id"]) in html


@pytest.mark.asyncio
async def test_box_office_requires_admin_key(client: AsyncClient, test_event):
    response = await client.post("/api/v1/bookings/", json=customer(test_event.id))
    assert response.status_code == 401

    response = await client.post(
        "/api/v1/bookings/",
        json=customer(test_event.id),
        headers={"X-Admin-Key": "wrong"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_box_office_sold_out(client: AsyncClient, admin_headers, small_event):
    """Booking beyond capacity returns 409."""
    assert (await _box_office(client, admin_headers, small_event.id, seats=2)).status_code == 201

    response = await _box_office(client, admin_headers, small_event.id, seats=1)
    assert response.status_code == 409
    assert "Remaining: 0" in response.json()["detail"]


@pytest.mark.asyncio
async def test_box_office_per_booking_limit(client: AsyncClient, admin_headers, small_event):
    response = await _box_office(client, admin_headers, small_event.id, seats=3)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_box_office_invalid_draft(client: AsyncClient, admin_headers, test_event):
    """Schema rejects bad email, phone, and seat counts."""
    for overrides in ({"user_email": "nope"}, {"user_phone": "12-34"}, {"seats": 0}, {"seats": 11}):
        response = await _box_office(client, admin_headers, test_event.id, **overrides)
        assert response.status_code == 422, overrides


@pytest.mark.asyncio
async def test_box_office_unknown_event(client: AsyncClient, admin_headers):
    response = await _box_office(client, admin_headers, 9999)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_notification_failure_keeps_booking(client: AsyncClient, admin_headers, test_event, notifier):
    notifier.fail = True

    response = await _box_office(client, admin_headers, test_event.id)
    assert response.status_code == 201

    booking_id = response.json()["id"]
    response = await client.get(f"/api/v1/bookings/{booking_id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"


@pytest.mark.asyncio
async def test_get_booking_includes_event(client: AsyncClient, admin_headers, test_event):
    created = (await _box_office(client, admin_headers, test_event.id)).json()

    response = await client.get(f"/api/v1/bookings/{created['id']}", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["event"]["title"] == "Friday Night Stand-Up"
    assert data["event"]["start_time"] == "20:30:00"


@pytest.mark.asyncio
async def test_get_booking_not_found(client: AsyncClient, admin_headers):
    response = await client.get("/api/v1/bookings/9999", headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_user_bookings_newest_first(client: AsyncClient, admin_headers, test_event):
    first = (await _box_office(client, admin_headers, test_event.id, seats=1)).json()
    second = (await _box_office(client, admin_headers, test_event.id, seats=2)).json()
    await _box_office(client, admin_headers, test_event.id, user_email="other@example.com")

    response = await client.get(
        "/api/v1/bookings/",
        params={"email": "camille@example.com"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    ids = [b["id"] for b in response.json()]
    assert ids == [second["id"], first["id"]]


@pytest.mark.asyncio
async def test_cancel_booking_frees_seats(client: AsyncClient, admin_headers, small_event):
    booking = (await _box_office(client, admin_headers, small_event.id, seats=2)).json()

    response = await client.delete(f"/api/v1/bookings/{booking['id']}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    availability = await client.get(
        f"/api/v1/events/{small_event.id}/availability", params={"seats": 2}
    )
    assert availability.json()["available"] is True
    assert availability.json()["remaining_seats"] == 2


@pytest.mark.asyncio
async def test_cancel_booking_twice(client: AsyncClient, admin_headers, small_event):
    """Cancelling twice has the same effect as once."""
    booking = (await _box_office(client, admin_headers, small_event.id, seats=1)).json()

    first = await client.delete(f"/api/v1/bookings/{booking['id']}", headers=admin_headers)
    second = await client.delete(f"/api/v1/bookings/{booking['id']}", headers=admin_headers)
    assert first.status_code == second.status_code == 200
    assert second.json()["status"] == "cancelled"

    availability = await client.get(
        f"/api/v1/events/{small_event.id}/availability", params={"seats": 1}
    )
    assert availability.json()["remaining_seats"] == 2


@pytest.mark.asyncio
async def test_update_contact_details(client: AsyncClient, admin_headers, test_event):
    booking = (await _box_office(client, admin_headers, test_event.id)).json()

    response = await client.patch(
        f"/api/v1/bookings/{booking['id']}",
        json={"user_name": "Camille Dupont", "user_phone": "0698765432"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["user_name"] == "Camille Dupont"
    assert data["user_phone"] == "0698765432"
    assert data["status"] == "confirmed"


@pytest.mark.asyncio
async def test_update_seats_reprices(client: AsyncClient, admin_headers, test_event):
    booking = (await _box_office(client, admin_headers, test_event.id, seats=1)).json()

    response = await client.patch(
        f"/api/v1/bookings/{booking['id']}",
        json={"seats": 4},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["seats"] == 4
    assert response.json()["total_amount"] == 8000


@pytest.mark.asyncio
async def test_update_seats_beyond_capacity(client: AsyncClient, admin_headers, small_event):
    first = (await _box_office(client, admin_headers, small_event.id, seats=1)).json()
    await _box_office(client, admin_headers, small_event.id, seats=1, user_email="b@example.com")

    response = await client.patch(
        f"/api/v1/bookings/{first['id']}",
        json={"seats": 2},
        headers=admin_headers,
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_update_seats_respects_per_booking_limit(client: AsyncClient, admin_headers, test_event):
    """Growing a booking is capped by seats_per_booking, not just by capacity."""
    response = await client.put(
        f"/api/v1/events/{test_event.id}/booking-settings",
        json={"seats_per_booking": 2},
        headers=admin_headers,
    )
    assert response.status_code == 200
    booking = (await _box_office(client, admin_headers, test_event.id, seats=2)).json()

    response = await client.patch(
        f"/api/v1/bookings/{booking['id']}",
        json={"seats": 4},
        headers=admin_headers,
    )
    assert response.status_code == 409

    response = await client.get(f"/api/v1/bookings/{booking['id']}", headers=admin_headers)
    assert response.json()["seats"] == 2
    assert response.json()["total_amount"] == 4000

    # Shrinking is always allowed
    response = await client.patch(
        f"/api/v1/bookings/{booking['id']}",
        json={"seats": 1},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["seats"] == 1


@pytest.mark.asyncio
async def test_status_transitions(client: AsyncClient, admin_headers, test_event):
    booking = (await _box_office(client, admin_headers, test_event.id)).json()
    url = f"/api/v1/bookings/{booking['id']}"

    response = await client.patch(url, json={"status": "pending"}, headers=admin_headers)
    assert response.status_code == 422

    response = await client.patch(url, json={"status": "cancelled"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    response = await client.patch(url, json={"status": "confirmed"}, headers=admin_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_update_unknown_status_rejected(client: AsyncClient, admin_headers, test_event):
    booking = (await _box_office(client, admin_headers, test_event.id)).json()
    response = await client.patch(
        f"/api/v1/bookings/{booking['id']}",
        json={"status": "refunded"},
        headers=admin_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_version_conflict_is_retried(db_session, small_event, notifier, monkeypatch):
    """A writer that loses the settings-row race re-reads and retries."""
    event_id = small_event.id
    real_check = booking_service.check_availability
    calls = []

    async def stale_once(db, event_id, seats):
        result = await real_check(db, event_id, seats)
        calls.append(result.settings_version)
        if len(calls) == 1:
            result.settings_version -= 1
        return result

    monkeypatch.setattr(booking_service, "check_availability", stale_once)

    booking = await create_booking(
        db_session,
        BookingCreate(**customer(event_id, seats=2)),
        notifier,
    )
    assert booking.status == "confirmed"
    assert len(calls) == 2

    result = await db_session.execute(
        select(BookingSettings.version).where(BookingSettings.event_id == event_id)
    )
    assert result.scalar_one() == 2


@pytest.mark.asyncio
async def test_persistent_conflict_gives_up(db_session, small_event, notifier, monkeypatch):
    event_id = small_event.id
    real_check = booking_service.check_availability

    async def always_stale(db, event_id, seats):
        result = await real_check(db, event_id, seats)
        result.settings_version -= 1
        return result

    monkeypatch.setattr(booking_service, "check_availability", always_stale)

    with pytest.raises(BookingUnavailable, match="high demand"):
        await create_booking(db_session, BookingCreate(**customer(event_id)), notifier)
    assert notifier.sent == []
