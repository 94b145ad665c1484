"""
Event (a show on the programme).

Managed by the admin event manager; the booking core only reads it. `price`
is in minor currency units (cents) so totals never touch floating point.
"""

from sqlalchemy import Column, Integer, String, Date, Time, Index, CheckConstraint

from comedy_club.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(String(2000), nullable=True)
    start_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_date = Column(Date, nullable=False)
    end_time = Column(Time, nullable=False)
    price = Column(Integer, nullable=False)
    image_url = Column(String(1024), nullable=True)

    __table_args__ = (
        CheckConstraint("price >= 0", name="check_event_price_non_negative"),
        # Programme listing: upcoming shows in start order
        Index("ix_events_start", "start_date", "start_time"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, start={self.start_date} {self.start_time})>"
