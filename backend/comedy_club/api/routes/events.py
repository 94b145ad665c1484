"""
Programme endpoints, seat availability, and per-event booking settings.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from comedy_club.db.session import get_db
from comedy_club.schemas.event import EventCreate, EventResponse, EventListResponse
from comedy_club.schemas.booking_settings import (
    AvailabilityResponse,
    BookingSettingsResponse,
    BookingSettingsUpdate,
)
from comedy_club.services.event_service import create_event, get_event, list_events
from comedy_club.services.availability_service import check_availability
from comedy_club.services.booking_settings_service import ensure_settings, update_settings
from comedy_club.services.cache_service import (
    get_cached_programme,
    set_cached_programme,
    invalidate_programme_cache,
)
from comedy_club.core.security import require_admin
from comedy_club.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


@router.post(
    "/",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_event_endpoint(
    event_data: EventCreate,
    db: AsyncSession = Depends(get_db),
):
    """Add a show to the programme. Admin only."""
    event = await create_event(db, event_data)
    await invalidate_programme_cache()
    return event


@router.get("/", response_model=EventListResponse)
async def list_events_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    upcoming_only: bool = Query(True),
    db: AsyncSession = Depends(get_db),
):
    """
    The programme, soonest show first.
    Pages are cached in Redis for REDIS_CACHE_TTL seconds and dropped when a
    show is added.
    """
    cached = await get_cached_programme(page, page_size, upcoming_only)
    if cached:
        logger.info("programme_cache_hit", page=page)
        return cached.model_copy(update={"cached": True})

    events, total = await list_events(db, page, page_size, upcoming_only)
    listing = EventListResponse(
        events=[EventResponse.model_validate(e) for e in events],
        total=total,
        page=page,
        page_size=page_size,
    )

    await set_cached_programme(page, page_size, upcoming_only, listing)
    return listing


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(
    event_id: int,
    db: AsyncSession = Depends(get_db),
):
    return await get_event(db, event_id)


@router.get("/{event_id}/availability", response_model=AvailabilityResponse)
async def availability_endpoint(
    event_id: int,
    seats: int = Query(1, ge=1, description="Number of seats wanted"),
    db: AsyncSession = Depends(get_db),
):
    """
    Can `seats` seats be booked right now? Always computed from the
    database, never cached.
    """
    await get_event(db, event_id)
    result = await check_availability(db, event_id, seats)
    return AvailabilityResponse(
        event_id=event_id,
        requested_seats=seats,
        available=result.available,
        max_seats=result.max_seats,
        remaining_seats=result.remaining_seats,
        error=result.error,
    )


@router.get(
    "/{event_id}/booking-settings",
    response_model=BookingSettingsResponse,
    dependencies=[Depends(require_admin)],
)
async def get_booking_settings_endpoint(
    event_id: int,
    db: AsyncSession = Depends(get_db),
):
    await get_event(db, event_id)
    return await ensure_settings(db, event_id)


@router.put(
    "/{event_id}/booking-settings",
    response_model=BookingSettingsResponse,
    dependencies=[Depends(require_admin)],
)
async def update_booking_settings_endpoint(
    event_id: int,
    changes: BookingSettingsUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Change capacity, per-booking limit or booking deadline. Admin only."""
    await get_event(db, event_id)
    return await update_settings(db, event_id, changes)
