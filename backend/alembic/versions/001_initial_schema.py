"""Initial schema: events, booking_settings, bookings with indexes and constraints.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Events table (the programme)
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.String(2000), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("image_url", sa.String(1024), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("price >= 0", name="check_event_price_non_negative"),
    )
    op.create_index("ix_events_id", "events", ["id"])
    # Programme listing filters on start_date and orders by start date/time
    op.create_index("ix_events_start", "events", ["start_date", "start_time"])

    # Booking settings: one row per event, provisioned lazily
    op.create_table(
        "booking_settings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "event_id",
            sa.Integer(),
            sa.ForeignKey("events.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("max_seats", sa.Integer(), nullable=False),
        sa.Column("seats_per_booking", sa.Integer(), nullable=False),
        sa.Column("booking_deadline", sa.String(50), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.CheckConstraint("max_seats > 0", name="check_settings_max_seats_positive"),
        sa.CheckConstraint("seats_per_booking > 0", name="check_settings_per_booking_positive"),
        sa.CheckConstraint("seats_per_booking <= max_seats", name="check_settings_per_booking_lte_max"),
    )
    op.create_index("ix_booking_settings_id", "booking_settings", ["id"])
    # UNIQUE event_id: two first-time lookups racing to provision settings
    # both INSERT ... ON CONFLICT DO NOTHING; exactly one row survives.
    op.create_index("ix_booking_settings_event_id", "booking_settings", ["event_id"], unique=True)

    # Bookings table
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("user_name", sa.String(255), nullable=False),
        sa.Column("user_email", sa.String(255), nullable=False),
        sa.Column("user_phone", sa.String(32), nullable=False),
        sa.Column("seats", sa.Integer(), nullable=False),
        sa.Column("total_amount", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("payment_status", sa.String(50), nullable=True),
        sa.Column("payment_id", sa.String(255), nullable=True),
        sa.Column("reference", sa.String(64), nullable=True),
        *_timestamps(),
        # Same processor session recorded twice is a no-op
        sa.UniqueConstraint("event_id", "payment_id", name="uq_booking_event_payment"),
        sa.UniqueConstraint("reference", name="uq_booking_reference"),
        sa.CheckConstraint("seats > 0", name="check_booking_seats_positive"),
        sa.CheckConstraint("total_amount >= 0", name="check_booking_amount_non_negative"),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled')",
            name="check_booking_status",
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_event_id", "bookings", ["event_id"])
    op.create_index("ix_bookings_user_email", "bookings", ["user_email"])
    # Capacity aggregate: SUM(seats) WHERE event_id = ? AND status IN ('pending', 'confirmed')
    op.create_index("ix_bookings_event_status", "bookings", ["event_id", "status"])


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("booking_settings")
    op.drop_table("events")
