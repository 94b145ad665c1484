"""
Booking: a customer's reservation of N seats for an event.

Key design decisions:
- Seats held by a booking are derived, never stored on the event: capacity is
  recomputed from bookings with status pending/confirmed
- `reference` is the idempotency token carried through the payment redirect
- Unique (event_id, payment_id) makes recording the same payment outcome
  twice a no-op
- Status changes instead of deletes; cancelled rows stay for history
"""

import enum

from sqlalchemy import Column, Integer, String, ForeignKey, Index, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship

from comedy_club.db.base import Base, TimestampMixin


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


# Statuses that hold seats against the event's capacity
ACTIVE_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)

ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.CANCELLED},
    BookingStatus.CANCELLED: set(),
}


def can_transition(current: str, target: str) -> bool:
    if current == target:
        return True
    return BookingStatus(target) in ALLOWED_TRANSITIONS[BookingStatus(current)]


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    user_name = Column(String(255), nullable=False)
    user_email = Column(String(255), nullable=False, index=True)
    user_phone = Column(String(32), nullable=False)
    seats = Column(Integer, nullable=False)
    total_amount = Column(Integer, nullable=False, default=0)  # minor units
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)
    payment_status = Column(String(50), nullable=True)
    payment_id = Column(String(255), nullable=True)
    reference = Column(String(64), nullable=True, unique=True)

    event = relationship("Event")

    __table_args__ = (
        UniqueConstraint("event_id", "payment_id", name="uq_booking_event_payment"),
        CheckConstraint("seats > 0", name="check_booking_seats_positive"),
        CheckConstraint("total_amount >= 0", name="check_booking_amount_non_negative"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled')",
            name="check_booking_status",
        ),
        # Capacity aggregate: SUM(seats) WHERE event_id = ? AND status IN (...)
        Index("ix_bookings_event_status", "event_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, event={self.event_id}, seats={self.seats}, status={self.status})>"
