"""
Payment outcome reconciliation.

The processor sends the customer back with {status, session, bookingData}.
The outcome is recorded whether the payment succeeded or not; what changes is
the booking status it lands on:

  success -> confirmed
  anything else -> cancelled (seats go back to the pool)

Delivering the same outcome twice is harmless:

  - Drafts with a reference match the pending row written at checkout. The
    update only applies while payment_id IS NULL, so the second delivery
    matches nothing and returns the already-recorded row.
  - Drafts without a reference (older clients) are inserted with
    ON CONFLICT DO NOTHING on (event_id, payment_id).

Reconciliation never touches booking_settings.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from comedy_club.models.booking import Booking, BookingStatus
from comedy_club.schemas.booking import BookingDraft
from comedy_club.services.booking_service import find_booking_by_reference
from comedy_club.services.draft_codec import DraftDecodeError, decode_draft
from comedy_club.services.event_service import get_event
from comedy_club.services.interfaces.notifier import Notifier
from comedy_club.services.notification_service import notify_booking_confirmed
from comedy_club.db.statements import insert_ignoring_conflict
from comedy_club.core.config import get_settings
from comedy_club.core.exceptions import NotFoundError, ReconciliationFailed
from comedy_club.core.metrics import record_reconciliation
from comedy_club.core.logging import get_logger

logger = get_logger(__name__)

EXPIRED_NOTICE = (
    "Your reservation expired before the payment completed. "
    "Please contact the club so we can sort out your payment."
)


@dataclass
class ReconciliationResult:
    booking: Booking
    outcome: str  # confirmed, failed, duplicate, expired
    notice: Optional[str] = None


def is_success_status(status: str) -> bool:
    allowed = {s.lower() for s in get_settings().PAYMENT_SUCCESS_STATUSES}
    return status.strip().lower() in allowed


async def _find_by_payment(db: AsyncSession, event_id: int, payment_id: str) -> Optional[Booking]:
    result = await db.execute(
        select(Booking)
        .where(Booking.event_id == event_id, Booking.payment_id == payment_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _settle_reserved(
    db: AsyncSession,
    draft: BookingDraft,
    status: str,
    session: str,
    target_status: str,
) -> tuple[Optional[Booking], str]:
    """Move the pending row carrying the draft's reference to its final status."""
    result = await db.execute(
        update(Booking)
        .where(
            Booking.reference == draft.reference,
            Booking.status == BookingStatus.PENDING.value,
            Booking.payment_id.is_(None),
        )
        .values(status=target_status, payment_status=status, payment_id=session)
        .execution_options(synchronize_session=False)
    )
    booking = await find_booking_by_reference(db, draft.reference)
    if result.rowcount:
        outcome = "confirmed" if target_status == BookingStatus.CONFIRMED.value else "failed"
        return booking, outcome
    if booking is None:
        return None, "missing"
    if booking.payment_id is not None:
        return booking, "duplicate"

    # Settled some other way first (reaped, or changed by an admin): keep the
    # outcome, leave the status alone
    settled_status = booking.status
    await db.execute(
        update(Booking)
        .where(Booking.id == booking.id, Booking.payment_id.is_(None))
        .values(payment_status=status, payment_id=session)
        .execution_options(synchronize_session=False)
    )
    booking = await find_booking_by_reference(db, draft.reference)
    if settled_status == BookingStatus.CANCELLED.value:
        return booking, "expired"
    return booking, "duplicate"


async def _record_unreserved(
    db: AsyncSession,
    draft: BookingDraft,
    status: str,
    session: str,
    target_status: str,
) -> tuple[Booking, str]:
    """Insert the outcome for a draft that has no pending row."""
    inserted = await insert_ignoring_conflict(
        db,
        Booking,
        {
            "event_id": draft.event_id,
            "user_name": draft.user_name,
            "user_email": draft.user_email,
            "user_phone": draft.user_phone,
            "seats": draft.seats,
            "total_amount": draft.total_amount,
            "status": target_status,
            "payment_status": status,
            "payment_id": session,
            "reference": draft.reference,
        },
        conflict_columns=["event_id", "payment_id"],
    )
    booking = await _find_by_payment(db, draft.event_id, session)
    if not inserted:
        return booking, "duplicate"
    outcome = "confirmed" if target_status == BookingStatus.CONFIRMED.value else "failed"
    return booking, outcome


async def reconcile_payment(
    db: AsyncSession,
    status: Optional[str],
    session: Optional[str],
    booking_data: Optional[str],
    notifier: Notifier,
) -> ReconciliationResult:
    if not status or not session:
        record_reconciliation("error")
        raise ReconciliationFailed("The payment result is incomplete")

    try:
        draft = decode_draft(booking_data or "")
    except DraftDecodeError as e:
        record_reconciliation("error")
        logger.error("reconciliation_decode_failed", session=session, error=str(e))
        raise ReconciliationFailed("We could not read your booking details") from e

    target_status = (
        BookingStatus.CONFIRMED.value if is_success_status(status) else BookingStatus.CANCELLED.value
    )

    try:
        booking, outcome = (None, "missing")
        if draft.reference:
            booking, outcome = await _settle_reserved(db, draft, status, session, target_status)
        if booking is None:
            # Event must exist for an unreserved outcome to be recorded
            await get_event(db, draft.event_id)
            booking, outcome = await _record_unreserved(db, draft, status, session, target_status)
        await db.flush()
    except NotFoundError as e:
        record_reconciliation("error")
        logger.error("reconciliation_unknown_event", event_id=draft.event_id, session=session)
        raise ReconciliationFailed("The show for this booking no longer exists") from e
    except SQLAlchemyError as e:
        await db.rollback()
        record_reconciliation("error")
        logger.error("reconciliation_failed", event_id=draft.event_id, session=session, error=str(e))
        raise ReconciliationFailed("Your payment result could not be saved") from e

    record_reconciliation(outcome)
    if outcome == "duplicate":
        logger.info("reconciliation_duplicate", booking_id=booking.id, session=session)
        return ReconciliationResult(booking=booking, outcome=outcome)

    logger.info(
        "payment_reconciled",
        booking_id=booking.id,
        event_id=booking.event_id,
        payment_status=status,
        booking_status=booking.status,
        outcome=outcome,
    )
    if outcome == "expired":
        logger.warning("reconciliation_after_expiry", booking_id=booking.id, session=session)
        return ReconciliationResult(booking=booking, outcome=outcome, notice=EXPIRED_NOTICE)

    if outcome == "confirmed":
        await notify_booking_confirmed(notifier, booking, await get_event(db, booking.event_id))
    return ReconciliationResult(booking=booking, outcome=outcome)
