"""
Per-event capacity configuration.

Key design decisions:
- Unique event_id: at most one settings row per event, so concurrent lazy
  provisioning resolves at the storage layer
- `version` is bumped by every seat-consuming write; a writer whose
  conditional UPDATE matches no row lost the race and retries
- booking_deadline is interval text ("1 hour") bounding how long an unpaid
  pending booking may hold seats
"""

from sqlalchemy import Column, Integer, String, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from comedy_club.db.base import Base, TimestampMixin


class BookingSettings(Base, TimestampMixin):
    __tablename__ = "booking_settings"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(
        Integer,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    max_seats = Column(Integer, nullable=False)
    seats_per_booking = Column(Integer, nullable=False)
    booking_deadline = Column(String(50), nullable=False)

    version = Column(Integer, nullable=False, default=1)

    event = relationship("Event")

    __table_args__ = (
        CheckConstraint("max_seats > 0", name="check_settings_max_seats_positive"),
        CheckConstraint("seats_per_booking > 0", name="check_settings_per_booking_positive"),
        CheckConstraint("seats_per_booking <= max_seats", name="check_settings_per_booking_lte_max"),
    )

    def __repr__(self) -> str:
        return (
            f"<BookingSettings(event={self.event_id}, max={self.max_seats}, "
            f"per_booking={self.seats_per_booking}, v={self.version})>"
        )
