"""
Notification collaborator interface.
Delivery transport (SMTP, transactional mail API) lives behind it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class BookingConfirmation:
    user_name: str
    event_title: str
    event_date: str
    event_time: str
    seats: int
    booking_reference: str


class Notifier(ABC):

    @abstractmethod
    async def send_booking_confirmation(
        self,
        recipient: str,
        confirmation: BookingConfirmation,
        html: str,
    ) -> None:
        """
        Deliver a rendered confirmation.

        Args:
            recipient: Customer email address
            confirmation: Structured content of the message
            html: Rendered document
        """
        pass
