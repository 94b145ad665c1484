"""
Booking confirmation documents.

Rendering is ours; delivery belongs to whichever Notifier is injected. A
failed notification is logged and never rolls back the booking it describes.
"""

from jinja2 import Environment, DictLoader, select_autoescape

from comedy_club.models.booking import Booking
from comedy_club.models.event import Event
from comedy_club.services.interfaces.notifier import BookingConfirmation, Notifier
from comedy_club.core.config import get_settings
from comedy_club.core.logging import get_logger

logger = get_logger(__name__)

TEMPLATES = {
    "booking_confirmation.html": """<!DOCTYPE html>
<html>
  <head><meta charset="utf-8"><title>Booking confirmation - {{ club_name }}</title></head>
  <body style="background-color:#ffffff;font-family:-apple-system,'Segoe UI',Roboto,sans-serif">
    <div style="margin:0 auto;padding:20px 0 48px;max-width:580px">
      <h1 style="color:#FF9F1C;text-align:center">Booking confirmation</h1>
      <p>Hello {{ c.user_name }},</p>
      <p>Your booking for the following show is confirmed:</p>
      <div style="background-color:#f9fafb;border-radius:8px;padding:24px">
        <p><strong>Show:</strong> {{ c.event_title }}</p>
        <p><strong>Date:</strong> {{ c.event_date }}</p>
        <p><strong>Time:</strong> {{ c.event_time }}</p>
        <p><strong>Seats:</strong> {{ c.seats }}</p>
        <p><strong>Reference:</strong> {{ c.booking_reference }}</p>
      </div>
      <p>Please arrive at least 15 minutes before the show starts.</p>
      <p>If you cannot make it, let us know as early as possible on {{ club_phone }}.</p>
      <p style="color:#666;text-align:center;border-top:1px solid #eaeaea;padding-top:24px">
        See you soon at {{ club_name }}!<br>{{ club_address }}
      </p>
    </div>
  </body>
</html>
""",
}

_env = Environment(
    loader=DictLoader(TEMPLATES),
    autoescape=select_autoescape(["html", "xml"]),
)


def build_confirmation(booking: Booking, event: Event) -> BookingConfirmation:
    return BookingConfirmation(
        user_name=booking.user_name,
        event_title=event.title,
        event_date=event.start_date.strftime("%d %B %Y"),
        event_time=event.start_time.strftime("%H:%M"),
        seats=booking.seats,
        booking_reference=str(booking.reference or booking.id),
    )


def render_confirmation(confirmation: BookingConfirmation) -> str:
    settings = get_settings()
    return _env.get_template("booking_confirmation.html").render(
        c=confirmation,
        club_name=settings.CLUB_NAME,
        club_phone=settings.CLUB_PHONE,
        club_address=settings.CLUB_ADDRESS,
    )


class LoggingNotifier(Notifier):
    """Records that a confirmation was produced; sends nothing."""

    async def send_booking_confirmation(self, recipient, confirmation, html) -> None:
        logger.info(
            "booking_confirmation_rendered",
            recipient=recipient,
            booking_reference=confirmation.booking_reference,
            size=len(html),
        )


async def notify_booking_confirmed(notifier: Notifier, booking: Booking, event: Event) -> None:
    confirmation = build_confirmation(booking, event)
    html = render_confirmation(confirmation)
    try:
        await notifier.send_booking_confirmation(booking.user_email, confirmation, html)
    except Exception as e:
        logger.error(
            "booking_confirmation_failed",
            booking_id=booking.id,
            recipient=booking.user_email,
            error=str(e),
        )
