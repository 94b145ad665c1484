"""
Seat availability for an event.

Capacity is never stored as a running counter: remaining seats are
max_seats minus the seats held by pending and confirmed bookings, so a
cancellation frees its seats simply by no longer being counted.

This function never raises for storage problems. A failed lookup reports
available=False with an error message, and callers gate on `available`
alone.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from comedy_club.models.booking import Booking, ACTIVE_STATUSES
from comedy_club.services.booking_settings_service import provision_settings
from comedy_club.core.metrics import record_availability
from comedy_club.core.logging import get_logger

logger = get_logger(__name__)

AVAILABILITY_ERROR = "availability check failed"


@dataclass
class AvailabilityResult:
    available: bool
    max_seats: Optional[int] = None
    remaining_seats: Optional[int] = None
    seats_per_booking: Optional[int] = None
    error: Optional[str] = None
    # Settings version the decision was based on (optimistic lock token)
    settings_version: Optional[int] = None
    settings_id: Optional[int] = None


async def booked_seats(db: AsyncSession, event_id: int) -> int:
    result = await db.execute(
        select(func.coalesce(func.sum(Booking.seats), 0)).where(
            Booking.event_id == event_id,
            Booking.status.in_(ACTIVE_STATUSES),
        )
    )
    return int(result.scalar_one())


async def check_availability(
    db: AsyncSession,
    event_id: int,
    requested_seats: int,
) -> AvailabilityResult:
    try:
        settings_row, provisioned = await provision_settings(db, event_id)
        booked = await booked_seats(db, event_id)
    except SQLAlchemyError as e:
        logger.error("availability_check_failed", event_id=event_id, error=str(e))
        await db.rollback()
        record_availability(False, error=True)
        return AvailabilityResult(available=False, error=AVAILABILITY_ERROR)

    remaining = settings_row.max_seats - booked
    if provisioned:
        # First access: open up to the default cap
        available = requested_seats <= remaining
    else:
        available = (
            requested_seats <= remaining
            and requested_seats <= settings_row.seats_per_booking
        )

    logger.debug(
        "availability_checked",
        event_id=event_id,
        requested=requested_seats,
        booked=booked,
        remaining=remaining,
        available=available,
        provisioned=provisioned,
    )
    record_availability(available)
    return AvailabilityResult(
        available=available,
        max_seats=settings_row.max_seats,
        remaining_seats=remaining,
        seats_per_booking=settings_row.seats_per_booking,
        settings_version=settings_row.version,
        settings_id=settings_row.id,
    )
