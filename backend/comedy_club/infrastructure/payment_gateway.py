"""
HTTP client for the hosted payment-session endpoint.

Request:  POST PAYMENT_SESSION_URL {"amount": "42.00", "bookingData": {...}, "returnUrl": "..."}
Response: {"url": "https://checkout.processor.example/..."}
"""

from typing import Optional

import httpx

from comedy_club.services.interfaces.payment_gateway import PaymentGateway
from comedy_club.core.config import get_settings
from comedy_club.core.logging import get_logger

logger = get_logger(__name__)


class HttpPaymentGateway(PaymentGateway):

    def __init__(
        self,
        endpoint: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint = endpoint
        self.timeout = timeout
        self._transport = transport

    async def create_session(self, amount: str, booking_data: dict, return_url: str) -> dict:
        payload = {"amount": amount, "bookingData": booking_data, "returnUrl": return_url}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(self.endpoint, json=payload)
            response.raise_for_status()
            logger.debug("payment_session_response", status_code=response.status_code)
            return response.json()


def get_http_payment_gateway() -> HttpPaymentGateway:
    settings = get_settings()
    return HttpPaymentGateway(
        endpoint=settings.PAYMENT_SESSION_URL,
        timeout=settings.PAYMENT_TIMEOUT_SECONDS,
    )
