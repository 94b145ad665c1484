"""
Booking endpoints.

The public entry point is checkout; everything else is the box office and
booking administration, behind the admin key.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from comedy_club.db.session import get_db
from comedy_club.api.dependencies import get_notifier, get_payment_gateway
from comedy_club.schemas.booking import (
    BookingCreate,
    BookingUpdate,
    BookingResponse,
    BookingDetailResponse,
    BookingCancelResponse,
    CheckoutRequest,
    CheckoutResponse,
)
from comedy_club.services.booking_service import (
    create_booking,
    get_booking,
    update_booking,
    cancel_booking,
    get_user_bookings,
)
from comedy_club.services.payment_service import start_checkout
from comedy_club.services.interfaces import Notifier, PaymentGateway
from comedy_club.core.security import require_admin
from comedy_club.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/checkout", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
async def checkout_endpoint(
    request: CheckoutRequest,
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Start paying for seats.

    Holds the seats as a pending booking and returns the processor URL to
    redirect the customer to. The hold becomes confirmed or cancelled when
    the customer comes back through /payments/return.
    """
    return await start_checkout(db, gateway, request)


@router.post(
    "/",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_booking_endpoint(
    booking_data: BookingCreate,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Box-office booking, confirmed immediately.

    Uses optimistic locking on the event's booking settings; a booking that
    keeps losing the race returns 409 after BOOKING_MAX_RETRY_ATTEMPTS.
    """
    return await create_booking(db, booking_data, notifier)


@router.get(
    "/",
    response_model=list[BookingDetailResponse],
    dependencies=[Depends(require_admin)],
)
async def list_user_bookings(
    email: str = Query(..., min_length=3, description="Customer email address"),
    db: AsyncSession = Depends(get_db),
):
    return await get_user_bookings(db, email)


@router.get(
    "/{booking_id}",
    response_model=BookingDetailResponse,
    dependencies=[Depends(require_admin)],
)
async def get_booking_endpoint(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
):
    return await get_booking(db, booking_id)


@router.patch(
    "/{booking_id}",
    response_model=BookingDetailResponse,
    dependencies=[Depends(require_admin)],
)
async def update_booking_endpoint(
    booking_id: int,
    changes: BookingUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await update_booking(db, booking_id, changes)


@router.delete(
    "/{booking_id}",
    response_model=BookingCancelResponse,
    dependencies=[Depends(require_admin)],
)
async def cancel_booking_endpoint(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Cancel a booking; its seats count as free again straight away."""
    booking = await cancel_booking(db, booking_id)
    return BookingCancelResponse(
        message="Booking cancelled successfully",
        booking_id=booking.id,
        status=booking.status,
    )
