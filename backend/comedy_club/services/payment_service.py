"""
Checkout: turn a customer's request into a payment session.

Order of operations:

  1. Load the event and price the request server-side
  2. Pre-check availability (cheap, no lock)
  3. Ask the processor for a session URL
  4. Reserve a pending booking under the oversell guard

Asking the processor before reserving means a processor failure leaves no
row behind. A reservation that fails after the session was created leaves a
session nobody will pay, which the processor expires on its own.
"""

import time
from uuid import uuid4

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from comedy_club.schemas.booking import BookingDraft, CheckoutRequest, CheckoutResponse
from comedy_club.services.availability_service import check_availability
from comedy_club.services.booking_service import reserve_booking
from comedy_club.services.draft_codec import draft_envelope, encode_draft
from comedy_club.services.event_service import get_event
from comedy_club.services.interfaces.payment_gateway import PaymentGateway
from comedy_club.services.pricing import compute_total, format_amount, parse_amount
from comedy_club.core.config import get_settings
from comedy_club.core.exceptions import (
    BookingUnavailable,
    BookingValidationError,
    PaymentInitiationFailed,
    StorageError,
)
from comedy_club.core.metrics import booking_latency, record_payment_initiation
from comedy_club.core.logging import get_logger

logger = get_logger(__name__)


def build_return_url(draft: BookingDraft) -> str:
    base = get_settings().PUBLIC_BASE_URL.rstrip("/")
    return f"{base}/api/v1/payments/return?bookingData={encode_draft(draft)}"


async def initiate_payment(
    gateway: PaymentGateway,
    amount: str,
    draft: BookingDraft,
    return_url: str,
) -> str:
    """
    Create a hosted payment session and return the URL to redirect to.

    The draft travels with the session so the processor can hand it back.
    """
    try:
        session = await gateway.create_session(amount, draft_envelope(draft), return_url)
    except (httpx.HTTPError, ValueError) as e:
        record_payment_initiation(False)
        logger.error(
            "payment_initiation_failed",
            event_id=draft.event_id,
            amount=amount,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise PaymentInitiationFailed("Payment could not be started, please try again") from e

    url = session.get("url") if isinstance(session, dict) else None
    if not url:
        record_payment_initiation(False)
        logger.error("payment_session_without_url", event_id=draft.event_id, amount=amount)
        raise PaymentInitiationFailed("Payment could not be started, please try again")

    record_payment_initiation(True)
    logger.info("payment_session_created", event_id=draft.event_id, amount=amount)
    return url


async def start_checkout(
    db: AsyncSession,
    gateway: PaymentGateway,
    request: CheckoutRequest,
) -> CheckoutResponse:
    start_time = time.perf_counter()

    event = await get_event(db, request.event_id)
    total = compute_total(event.price, request.seats)
    if request.amount is not None and parse_amount(request.amount) != total:
        logger.warning(
            "checkout_amount_mismatch",
            event_id=request.event_id,
            submitted=request.amount,
            expected=format_amount(total),
        )
        raise BookingValidationError(
            f"Amount {request.amount} does not match the price {format_amount(total)}"
        )

    draft = BookingDraft(
        event_id=request.event_id,
        user_name=request.user_name,
        user_email=request.user_email,
        user_phone=request.user_phone,
        seats=request.seats,
        total_amount=total,
        reference=uuid4().hex,
    )

    availability = await check_availability(db, draft.event_id, draft.seats)
    if availability.error:
        raise StorageError("Could not verify seat availability, please try again")
    if not availability.available:
        raise BookingUnavailable(
            f"Seats not available. Requested: {draft.seats}, Remaining: {availability.remaining_seats}"
        )

    amount = format_amount(total)
    url = await initiate_payment(gateway, amount, draft, build_return_url(draft))
    booking = await reserve_booking(db, draft)

    booking_latency.observe(time.perf_counter() - start_time)
    logger.info(
        "checkout_started",
        booking_id=booking.id,
        event_id=booking.event_id,
        seats=booking.seats,
        amount=amount,
    )
    return CheckoutResponse(url=url, reference=draft.reference, booking_id=booking.id, amount=amount)
