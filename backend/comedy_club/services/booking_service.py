"""
Booking writer with an oversell guard.

CONCURRENCY STRATEGY: Optimistic Locking on booking_settings
=============================================================

Problem:
  Remaining capacity is an aggregate (max_seats - SUM(seats) of active
  bookings). Two checkouts for the last seats can both read the aggregate,
  both see enough room, and both insert. Result: Oversell.

Solution:
  Every seat-consuming write claims the event's settings row first.

  1. Check availability, remembering the settings row's `version`
  2. UPDATE booking_settings SET version = version + 1
     WHERE id = :settings_id AND version = :seen_version
  3. If rows_affected == 0, another writer got there first -> roll back,
     re-read the aggregate, retry
  4. Insert (or grow) the booking in the same transaction

  On PostgreSQL the second writer's UPDATE waits on the first writer's row
  lock, then finds the version moved and matches nothing. So the aggregate it
  acts on always includes every committed competitor.

Cancelling never touches the settings row. Cancelled bookings drop out of
the aggregate on their own.
"""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from comedy_club.models.booking import Booking, BookingStatus, ACTIVE_STATUSES, can_transition
from comedy_club.models.booking_settings import BookingSettings
from comedy_club.schemas.booking import BookingCreate, BookingDraft, BookingUpdate
from comedy_club.services.availability_service import check_availability
from comedy_club.services.booking_settings_service import ensure_settings
from comedy_club.services.event_service import get_event
from comedy_club.services.notification_service import notify_booking_confirmed
from comedy_club.services.interfaces.notifier import Notifier
from comedy_club.services.pricing import compute_total
from comedy_club.core.config import get_settings
from comedy_club.core.exceptions import (
    BookingUnavailable,
    BookingValidationError,
    NotFoundError,
    StorageError,
)
from comedy_club.core.metrics import record_booking_attempt, booking_retries
from comedy_club.core.logging import get_logger

logger = get_logger(__name__)


async def _claim_capacity(db: AsyncSession, event_id: int, seats: int, attempt: int) -> bool:
    """
    Check availability and take the settings row's version.

    Returns False on a version conflict (caller retries); raises when the
    seats are not available.
    """
    availability = await check_availability(db, event_id, seats)
    if availability.error:
        record_booking_attempt("error")
        raise StorageError("Could not verify seat availability, please try again")
    if not availability.available:
        record_booking_attempt("unavailable")
        logger.warning(
            "booking_failed_no_seats",
            event_id=event_id,
            requested=seats,
            remaining=availability.remaining_seats,
            per_booking=availability.seats_per_booking,
        )
        raise BookingUnavailable(
            f"Seats not available. Requested: {seats}, Remaining: {availability.remaining_seats}"
        )

    claim = await db.execute(
        update(BookingSettings)
        .where(
            BookingSettings.id == availability.settings_id,
            BookingSettings.version == availability.settings_version,
        )
        .values(version=BookingSettings.version + 1)
        .execution_options(synchronize_session=False)
    )
    if claim.rowcount == 0:
        booking_retries.inc()
        logger.info("booking_retry", event_id=event_id, attempt=attempt, reason="version_conflict")
        await db.rollback()
        return False
    return True


async def _write_with_capacity(db: AsyncSession, event_id: int, seats: int, write):
    """Run `write()` once capacity for `seats` has been claimed."""
    max_attempts = get_settings().BOOKING_MAX_RETRY_ATTEMPTS
    try:
        for attempt in range(1, max_attempts + 1):
            if await _claim_capacity(db, event_id, seats, attempt):
                return await write()
    except SQLAlchemyError as e:
        logger.error("booking_write_failed", event_id=event_id, error=str(e))
        await db.rollback()
        record_booking_attempt("error")
        raise StorageError("Could not save the booking, please try again") from e

    record_booking_attempt("unavailable")
    raise BookingUnavailable("Booking failed due to high demand. Please try again.")


async def _insert_booking(db: AsyncSession, values: dict) -> Booking:
    booking = Booking(**values)
    db.add(booking)
    await db.flush()
    await db.refresh(booking)
    return booking


async def reserve_booking(db: AsyncSession, draft: BookingDraft) -> Booking:
    """
    Hold seats for a draft awaiting payment.

    The row is pending and keyed by the draft's reference; the reconciler
    confirms or cancels it when the customer returns from the processor.
    """

    async def write() -> Booking:
        return await _insert_booking(db, {
            "event_id": draft.event_id,
            "user_name": draft.user_name,
            "user_email": draft.user_email,
            "user_phone": draft.user_phone,
            "seats": draft.seats,
            "total_amount": draft.total_amount,
            "status": BookingStatus.PENDING.value,
            "payment_status": "awaiting_payment",
            "reference": draft.reference,
        })

    booking = await _write_with_capacity(db, draft.event_id, draft.seats, write)
    record_booking_attempt("reserved")
    logger.info(
        "booking_reserved",
        booking_id=booking.id,
        event_id=booking.event_id,
        seats=booking.seats,
        reference=booking.reference,
    )
    return booking


async def create_booking(
    db: AsyncSession,
    booking_data: BookingCreate,
    notifier: Notifier,
) -> Booking:
    """Box-office booking: confirmed immediately, no online payment."""
    event = await get_event(db, booking_data.event_id)
    # A retry rolls the session back and expires `event`; keep plain values
    event_id = event.id
    total = compute_total(event.price, booking_data.seats)

    async def write() -> Booking:
        return await _insert_booking(db, {
            "event_id": event_id,
            "user_name": booking_data.user_name,
            "user_email": booking_data.user_email,
            "user_phone": booking_data.user_phone,
            "seats": booking_data.seats,
            "total_amount": total,
            "status": BookingStatus.CONFIRMED.value,
            "payment_status": "box_office",
        })

    booking = await _write_with_capacity(db, event_id, booking_data.seats, write)
    record_booking_attempt("confirmed")
    logger.info(
        "booking_created",
        booking_id=booking.id,
        event_id=event_id,
        seats=booking.seats,
        channel="box_office",
    )
    await notify_booking_confirmed(notifier, booking, await get_event(db, event_id))
    return booking


async def _load_booking(db: AsyncSession, booking_id: int) -> Booking:
    result = await db.execute(
        select(Booking)
        .options(selectinload(Booking.event))
        .where(Booking.id == booking_id)
        .execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if not booking:
        raise NotFoundError(f"Booking {booking_id} not found")
    return booking


async def get_booking(db: AsyncSession, booking_id: int) -> Booking:
    """Booking with its event (title, date, time) loaded."""
    return await _load_booking(db, booking_id)


async def update_booking(
    db: AsyncSession,
    booking_id: int,
    changes: BookingUpdate,
) -> Booking:
    """
    Apply a partial update.

    Status changes follow pending -> confirmed|cancelled, confirmed ->
    cancelled. Growing the seat count of an active booking claims the extra
    seats under the same guard as a new booking.
    """
    booking = await _load_booking(db, booking_id)
    values = changes.model_dump(exclude_unset=True, exclude_none=True)

    target_status = values.get("status")
    if target_status and not can_transition(booking.status, target_status):
        raise BookingValidationError(
            f"Cannot change booking status from {booking.status} to {target_status}"
        )

    new_seats = values.get("seats")
    active = (target_status or booking.status) in ACTIVE_STATUSES
    if new_seats is not None:
        event = booking.event
        values["total_amount"] = compute_total(event.price, new_seats)

    if not values:
        return booking

    async def write() -> Booking:
        await db.execute(
            update(Booking)
            .where(Booking.id == booking_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return await _load_booking(db, booking_id)

    if new_seats is not None and active and new_seats > booking.seats:
        settings_row = await ensure_settings(db, booking.event_id)
        if new_seats > settings_row.seats_per_booking:
            record_booking_attempt("unavailable")
            raise BookingUnavailable(
                f"At most {settings_row.seats_per_booking} seats per booking. Requested: {new_seats}"
            )
        extra = new_seats - booking.seats
        updated = await _write_with_capacity(db, booking.event_id, extra, write)
    else:
        try:
            updated = await write()
        except SQLAlchemyError as e:
            logger.error("booking_update_failed", booking_id=booking_id, error=str(e))
            await db.rollback()
            raise StorageError("Could not update the booking, please try again") from e

    logger.info("booking_updated", booking_id=booking_id, fields=sorted(values))
    return updated


async def cancel_booking(db: AsyncSession, booking_id: int) -> Booking:
    """
    Cancel a booking. Cancelling twice is the same as cancelling once.
    Seats are freed implicitly: the availability aggregate skips cancelled rows.
    """
    booking = await _load_booking(db, booking_id)
    if booking.status == BookingStatus.CANCELLED.value:
        logger.info("booking_already_cancelled", booking_id=booking_id)
        return booking

    await db.execute(
        update(Booking)
        .where(Booking.id == booking_id)
        .values(status=BookingStatus.CANCELLED.value)
        .execution_options(synchronize_session=False)
    )
    booking = await _load_booking(db, booking_id)

    logger.info(
        "booking_cancelled",
        booking_id=booking.id,
        event_id=booking.event_id,
        seats_released=booking.seats,
    )
    return booking


async def get_user_bookings(db: AsyncSession, user_email: str) -> list[Booking]:
    """All bookings made with an email address, newest first."""
    result = await db.execute(
        select(Booking)
        .options(selectinload(Booking.event))
        .where(Booking.user_email == user_email)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    return list(result.scalars().all())


async def find_booking_by_reference(db: AsyncSession, reference: str) -> Optional[Booking]:
    result = await db.execute(
        select(Booking)
        .where(Booking.reference == reference)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()
