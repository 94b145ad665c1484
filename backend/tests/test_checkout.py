"""
Tests for the public checkout: server-side pricing, payment initiation,
and the pending reservation it leaves behind.
"""

import httpx
import pytest
from httpx import AsyncClient
from sqlalchemy import select, func

from comedy_club.models.booking import Booking
from comedy_club.services.draft_codec import decode_draft

from conftest import customer


async def _booking_count(db_session) -> int:
    result = await db_session.execute(select(func.count()).select_from(Booking))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_checkout_reserves_and_redirects(client: AsyncClient, db_session, test_event, gateway):
    response = await client.post(
        "/api/v1/bookings/checkout",
        json=customer(test_event.id, seats=2, amount="40.00"),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["url"] == "https://pay.test/session/abc"
    assert data["amount"] == "40.00"
    assert len(data["reference"]) == 32

    call = gateway.calls[0]
    assert call["amount"] == "40.00"
    assert call["booking_data"]["version"] == 1
    assert call["booking_data"]["draft"]["reference"] == data["reference"]
    assert call["booking_data"]["draft"]["total_amount"] == 4000
    assert call["return_url"].startswith("http://test/api/v1/payments/return?bookingData=")

    booking = (await db_session.execute(
        select(Booking).where(Booking.id == data["booking_id"])
    )).scalar_one()
    assert booking.status == "pending"
    assert booking.payment_status == "awaiting_payment"
    assert booking.payment_id is None
    assert booking.reference == data["reference"]
    assert booking.total_amount == 4000


@pytest.mark.asyncio
async def test_return_url_carries_the_draft(client: AsyncClient, test_event, gateway):
    await client.post("/api/v1/bookings/checkout", json=customer(test_event.id))

    return_url = httpx.URL(gateway.calls[0]["return_url"])
    draft = decode_draft(return_url.params["bookingData"])
    assert draft.event_id == test_event.id
    assert draft.user_email == "camille@example.com"
    assert draft.total_amount == 2000


@pytest.mark.asyncio
async def test_checkout_holds_seats(client: AsyncClient, small_event):
    response = await client.post("/api/v1/bookings/checkout", json=customer(small_event.id, seats=2))
    assert response.status_code == 201

    availability = await client.get(
        f"/api/v1/events/{small_event.id}/availability", params={"seats": 1}
    )
    assert availability.json()["available"] is False
    assert availability.json()["remaining_seats"] == 0


@pytest.mark.asyncio
async def test_checkout_rejects_tampered_amount(client: AsyncClient, db_session, test_event, gateway):
    """The client's total must match the stored price."""
    response = await client.post(
        "/api/v1/bookings/checkout",
        json=customer(test_event.id, seats=2, amount="0.01"),
    )

    assert response.status_code == 422
    assert "40.00" in response.json()["detail"]
    assert gateway.calls == []
    assert await _booking_count(db_session) == 0


@pytest.mark.asyncio
async def test_checkout_rejects_garbage_amount(client: AsyncClient, test_event, gateway):
    response = await client.post(
        "/api/v1/bookings/checkout",
        json=customer(test_event.id, amount="twenty"),
    )
    assert response.status_code == 422
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_session_without_url_leaves_no_booking(client: AsyncClient, db_session, test_event, gateway):
    """A processor answer without a URL fails and writes nothing."""
    gateway.response = {"url": None}

    response = await client.post(
        "/api/v1/bookings/checkout",
        json=customer(test_event.id, amount="20.00"),
    )

    assert response.status_code == 502
    assert len(gateway.calls) == 1
    assert gateway.calls[0]["amount"] == "20.00"
    assert await _booking_count(db_session) == 0


@pytest.mark.asyncio
async def test_processor_unreachable(client: AsyncClient, db_session, test_event, gateway):
    gateway.error = httpx.ConnectError("connection refused")

    response = await client.post("/api/v1/bookings/checkout", json=customer(test_event.id))

    assert response.status_code == 502
    assert "connection refused" not in response.json()["detail"]
    assert await _booking_count(db_session) == 0


@pytest.mark.asyncio
async def test_checkout_sold_out(client: AsyncClient, small_event, gateway):
    assert (await client.post(
        "/api/v1/bookings/checkout", json=customer(small_event.id, seats=2)
    )).status_code == 201

    response = await client.post("/api/v1/bookings/checkout", json=customer(small_event.id))
    assert response.status_code == 409
    assert len(gateway.calls) == 1


@pytest.mark.asyncio
async def test_checkout_unknown_event(client: AsyncClient, gateway):
    response = await client.post("/api/v1/bookings/checkout", json=customer(9999))
    assert response.status_code == 404
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_checkout_needs_no_admin_key(client: AsyncClient, test_event):
    response = await client.post("/api/v1/bookings/checkout", json=customer(test_event.id))
    assert response.status_code == 201
