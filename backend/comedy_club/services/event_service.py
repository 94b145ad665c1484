"""
Event service: the programme read side plus admin creation.
"""

from datetime import date
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from comedy_club.models.event import Event
from comedy_club.schemas.event import EventCreate
from comedy_club.core.exceptions import InvalidRequestError, NotFoundError
from comedy_club.core.logging import get_logger

logger = get_logger(__name__)


async def create_event(db: AsyncSession, event_data: EventCreate) -> Event:
    if event_data.start_date < date.today():
        raise InvalidRequestError("Event date must not be in the past")

    event = Event(**event_data.model_dump())
    db.add(event)
    await db.flush()
    await db.refresh(event)

    logger.info("event_created", event_id=event.id, title=event.title, price=event.price)
    return event


async def get_event(db: AsyncSession, event_id: int) -> Event:
    result = await db.execute(
        select(Event).where(Event.id == event_id).execution_options(populate_existing=True)
    )
    event = result.scalar_one_or_none()

    if not event:
        raise NotFoundError(f"Event {event_id} not found")
    return event


async def list_events(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    upcoming_only: bool = True,
) -> tuple[list[Event], int]:
    """
    Programme listing, soonest show first.
    Uses the ix_events_start index for both the filter and the ordering.
    """
    query = select(Event)

    if upcoming_only:
        query = query.where(Event.start_date >= date.today())

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    events_query = (
        query
        .order_by(Event.start_date.asc(), Event.start_time.asc(), Event.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(events_query)
    events = list(result.scalars().all())

    return events, total
