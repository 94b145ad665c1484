from comedy_club.models.event import Event
from comedy_club.models.booking_settings import BookingSettings
from comedy_club.models.booking import Booking, BookingStatus

__all__ = ["Event", "BookingSettings", "Booking", "BookingStatus"]
