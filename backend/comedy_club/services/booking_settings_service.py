"""
Per-event capacity configuration, provisioned lazily.

The first time anything asks about an event's capacity a settings row with
the configured defaults is created. Two requests racing on that first access
both attempt the insert; the unique constraint on event_id lets exactly one
win and both then read the same row.
"""

import re
from datetime import timedelta

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from comedy_club.models.booking_settings import BookingSettings
from comedy_club.schemas.booking_settings import BookingSettingsUpdate
from comedy_club.db.statements import insert_ignoring_conflict
from comedy_club.core.config import get_settings
from comedy_club.core.exceptions import InvalidRequestError
from comedy_club.core.logging import get_logger

logger = get_logger(__name__)

_INTERVAL_PART = re.compile(r"(\d+)\s*(second|sec|minute|min|hour|hr|day|week)s?\b", re.IGNORECASE)
_CLOCK = re.compile(r"^(\d+):([0-5]\d)(?::([0-5]\d))?$")
_UNIT_SECONDS = {
    "second": 1, "sec": 1,
    "minute": 60, "min": 60,
    "hour": 3600, "hr": 3600,
    "day": 86400,
    "week": 604800,
}


def parse_deadline(text: str) -> timedelta:
    """
    Parse interval text such as "1 hour", "30 minutes", "1 day 2 hours" or
    "01:30:00". Raises ValueError for anything else.
    """
    value = (text or "").strip()
    clock = _CLOCK.match(value)
    if clock:
        hours, minutes, seconds = clock.groups()
        return timedelta(hours=int(hours), minutes=int(minutes), seconds=int(seconds or 0))

    parts = _INTERVAL_PART.findall(value)
    if not parts or _INTERVAL_PART.sub("", value).strip():
        raise ValueError(f"Unrecognised booking deadline: {text!r}")
    total = sum(int(amount) * _UNIT_SECONDS[unit.lower()] for amount, unit in parts)
    if total <= 0:
        raise ValueError(f"Booking deadline must be positive: {text!r}")
    return timedelta(seconds=total)


async def _find_settings(db: AsyncSession, event_id: int):
    result = await db.execute(
        select(BookingSettings)
        .where(BookingSettings.event_id == event_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def provision_settings(db: AsyncSession, event_id: int) -> tuple[BookingSettings, bool]:
    """
    Return the event's settings row and whether it was missing on lookup.

    A missing row is created with the configured defaults.
    """
    settings_row = await _find_settings(db, event_id)
    if settings_row:
        return settings_row, False

    config = get_settings()
    inserted = await insert_ignoring_conflict(
        db,
        BookingSettings,
        {
            "event_id": event_id,
            "max_seats": config.DEFAULT_MAX_SEATS,
            "seats_per_booking": config.DEFAULT_SEATS_PER_BOOKING,
            "booking_deadline": config.DEFAULT_BOOKING_DEADLINE,
            "version": 1,
        },
        conflict_columns=["event_id"],
    )
    settings_row = await _find_settings(db, event_id)
    if inserted:
        logger.info(
            "booking_settings_provisioned",
            event_id=event_id,
            max_seats=settings_row.max_seats,
            seats_per_booking=settings_row.seats_per_booking,
        )
    else:
        logger.info("booking_settings_provision_conflict", event_id=event_id)
    return settings_row, True


async def ensure_settings(db: AsyncSession, event_id: int) -> BookingSettings:
    """Return the event's settings row, creating it with defaults if missing."""
    settings_row, _ = await provision_settings(db, event_id)
    return settings_row


async def update_settings(
    db: AsyncSession,
    event_id: int,
    changes: BookingSettingsUpdate,
) -> BookingSettings:
    settings_row = await ensure_settings(db, event_id)
    values = changes.model_dump(exclude_unset=True, exclude_none=True)

    max_seats = values.get("max_seats", settings_row.max_seats)
    per_booking = values.get("seats_per_booking", settings_row.seats_per_booking)
    if per_booking > max_seats:
        raise InvalidRequestError("seats_per_booking cannot exceed max_seats")
    if "booking_deadline" in values:
        try:
            parse_deadline(values["booking_deadline"])
        except ValueError as exc:
            raise InvalidRequestError(str(exc))

    if not values:
        return settings_row

    # Bumping the version makes in-flight reservations re-evaluate capacity
    await db.execute(
        update(BookingSettings)
        .where(BookingSettings.id == settings_row.id)
        .values(**values, version=BookingSettings.version + 1)
        .execution_options(synchronize_session=False)
    )
    await db.flush()
    await db.refresh(settings_row)

    logger.info("booking_settings_updated", event_id=event_id, **values)
    return settings_row
