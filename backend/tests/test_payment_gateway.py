"""
Tests for the HTTP payment gateway and payment initiation, using
httpx.MockTransport in place of the processor.
"""

import json

import httpx
import pytest

from comedy_club.core.exceptions import PaymentInitiationFailed
from comedy_club.infrastructure.payment_gateway import HttpPaymentGateway
from comedy_club.schemas.booking import BookingDraft
from comedy_club.services.payment_service import build_return_url, initiate_payment

ENDPOINT = "http://payments.test/api/create-payment-intent"


@pytest.fixture
def draft() -> BookingDraft:
    return BookingDraft(
        event_id=3,
        user_name="Camille Martin",
        user_email="camille@example.com",
        user_phone="+33612345678",
        seats=2,
        total_amount=4200,
        reference="0123456789abcdef",
    )


def _gateway(handler) -> HttpPaymentGateway:
    return HttpPaymentGateway(ENDPOINT, timeout=1.0, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_posts_amount_draft_and_return_url(draft):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"url": "https://checkout.test/s/1"})

    url = await initiate_payment(_gateway(handler), "42.00", draft, build_return_url(draft))

    assert url == "https://checkout.test/s/1"
    assert seen["method"] == "POST"
    assert seen["url"] == ENDPOINT
    assert seen["body"]["amount"] == "42.00"
    assert seen["body"]["bookingData"]["draft"]["reference"] == draft.reference
    assert "bookingData=" in seen["body"]["returnUrl"]


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{}, {"url": None}, {"url": ""}, ["not", "a", "dict"]])
async def test_missing_url_fails(draft, payload):
    gateway = _gateway(lambda request: httpx.Response(200, json=payload))

    with pytest.raises(PaymentInitiationFailed):
        await initiate_payment(gateway, "42.00", draft, build_return_url(draft))


@pytest.mark.asyncio
async def test_remote_error_fails(draft):
    gateway = _gateway(lambda request: httpx.Response(500, json={"error": "boom"}))

    with pytest.raises(PaymentInitiationFailed) as exc_info:
        await initiate_payment(gateway, "42.00", draft, build_return_url(draft))
    assert "boom" not in exc_info.value.message


@pytest.mark.asyncio
async def test_network_error_fails(draft):
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(PaymentInitiationFailed):
        await initiate_payment(_gateway(handler), "42.00", draft, build_return_url(draft))


@pytest.mark.asyncio
async def test_non_json_response_fails(draft):
    gateway = _gateway(lambda request: httpx.Response(200, text="<html>oops</html>"))

    with pytest.raises(PaymentInitiationFailed):
        await initiate_payment(gateway, "42.00", draft, build_return_url(draft))


def test_return_url_points_back_at_the_service(draft):
    url = httpx.URL(build_return_url(draft))
    assert url.path == "/api/v1/payments/return"
    assert url.host == "test"
