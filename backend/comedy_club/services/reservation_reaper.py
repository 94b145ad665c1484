"""
Background worker that cancels pending reservations nobody paid for.

A checkout holds its seats as a pending booking. If the customer never comes
back from the processor, the row would hold those seats forever; once it is
older than the event's booking_deadline it is cancelled with
payment_status="expired".
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from comedy_club.models.booking import Booking, BookingStatus
from comedy_club.models.booking_settings import BookingSettings
from comedy_club.services.booking_settings_service import parse_deadline
from comedy_club.db.session import AsyncSessionLocal
from comedy_club.core.config import get_settings
from comedy_club.core.metrics import reservations_expired
from comedy_club.core.logging import get_logger

logger = get_logger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def expire_stale_reservations(db: AsyncSession, now: Optional[datetime] = None) -> int:
    """Cancel pending, unpaid bookings older than their deadline. Returns the count."""
    now = _as_utc(now or datetime.now(timezone.utc))
    default_deadline = get_settings().DEFAULT_BOOKING_DEADLINE

    result = await db.execute(
        select(Booking.id, Booking.event_id, Booking.created_at, BookingSettings.booking_deadline)
        .outerjoin(BookingSettings, BookingSettings.event_id == Booking.event_id)
        .where(
            Booking.status == BookingStatus.PENDING.value,
            Booking.payment_id.is_(None),
        )
    )

    expired = 0
    for booking_id, event_id, created_at, deadline_text in result.all():
        try:
            deadline = parse_deadline(deadline_text or default_deadline)
        except ValueError:
            logger.warning("reaper_bad_deadline", event_id=event_id, deadline=deadline_text)
            deadline = parse_deadline(default_deadline)

        if _as_utc(created_at) + deadline > now:
            continue

        outcome = await db.execute(
            update(Booking)
            .where(
                Booking.id == booking_id,
                Booking.status == BookingStatus.PENDING.value,
                Booking.payment_id.is_(None),
            )
            .values(status=BookingStatus.CANCELLED.value, payment_status="expired")
            .execution_options(synchronize_session=False)
        )
        if outcome.rowcount:
            expired += 1
            logger.info("reservation_expired", booking_id=booking_id, event_id=event_id)

    if expired:
        reservations_expired.inc(expired)
    return expired


class ReservationReaper:
    """Runs expire_stale_reservations on an interval until stopped."""

    def __init__(self, interval_seconds: Optional[int] = None):
        self.interval_seconds = interval_seconds or get_settings().RESERVATION_REAPER_INTERVAL_SECONDS
        self.running = False
        self.task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        if self.running:
            logger.warning("reservation_reaper_already_running")
            return
        self.running = True
        self.task = asyncio.create_task(self._run())
        logger.info("reservation_reaper_started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        if not self.running:
            return
        self.running = False
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
        logger.info("reservation_reaper_stopped")

    async def sweep(self) -> int:
        async with AsyncSessionLocal() as db:
            try:
                expired = await expire_stale_reservations(db)
                await db.commit()
                return expired
            except Exception:
                await db.rollback()
                raise

    async def _run(self) -> None:
        while self.running:
            try:
                expired = await self.sweep()
                if expired:
                    logger.info("reservation_sweep_finished", expired=expired)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("reservation_sweep_failed", error=str(e), error_type=type(e).__name__)
            await asyncio.sleep(self.interval_seconds)
