"""
Payment collaborator interface.

The processor hosts checkout itself: we ask it for a session and receive the
URL to send the customer to. When checkout ends it redirects the customer to
our return URL with `status` and `session` appended.
"""

from abc import ABC, abstractmethod


class PaymentGateway(ABC):

    @abstractmethod
    async def create_session(self, amount: str, booking_data: dict, return_url: str) -> dict:
        """
        Request a hosted checkout session.

        Args:
            amount: Total in major units as a decimal string ("42.00")
            booking_data: Versioned draft envelope, echoed back on return
            return_url: Where the processor sends the customer afterwards

        Returns:
            The processor's JSON response; a usable one contains "url"
        """
        pass
