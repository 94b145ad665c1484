"""
Tests for confirmation rendering and delivery.
"""

import pytest

from comedy_club.services.interfaces import BookingConfirmation
from comedy_club.services.notification_service import LoggingNotifier, render_confirmation


@pytest.fixture
def confirmation() -> BookingConfirmation:
    return BookingConfirmation(
        user_name="Camille Martin",
        event_title="Friday Night Stand-Up",
        event_date="20 November 2026",
        event_time="20:30",
        seats=2,
        booking_reference="a1b2c3d4",
    )


def test_render_contains_every_field(confirmation):
    html = render_confirmation(confirmation)

    for value in ("Camille Martin", "Friday Night Stand-Up", "20 November 2026", "20:30", "a1b2c3d4"):
        assert value in html
    assert "<strong>Seats:</strong> 2" in html
    assert "Pressing Comedy Club" in html


def test_render_escapes_user_input(confirmation):
    hostile = BookingConfirmation(
        user_name="<script>alert(1)</script>",
        event_title=confirmation.event_title,
        event_date=confirmation.event_date,
        event_time=confirmation.event_time,
        seats=1,
        booking_reference="ref",
    )
    html = render_confirmation(hostile)
    assert "<script>" not in html
    assert "&lt;script&gt;" in html


@pytest.mark.asyncio
async def test_logging_notifier_sends_nothing(confirmation):
    await LoggingNotifier().send_booking_confirmation("camille@example.com", confirmation, "<p>hi</p>")
