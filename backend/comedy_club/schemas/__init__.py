from comedy_club.schemas.event import EventCreate, EventResponse, EventListResponse, EventSummary
from comedy_club.schemas.booking import (
    BookingDraft,
    BookingCreate,
    BookingUpdate,
    BookingResponse,
    BookingDetailResponse,
    BookingCancelResponse,
    CheckoutRequest,
    CheckoutResponse,
    PaymentReturnResponse,
)
from comedy_club.schemas.booking_settings import (
    AvailabilityResponse,
    BookingSettingsResponse,
    BookingSettingsUpdate,
)

__all__ = [
    "EventCreate", "EventResponse", "EventListResponse", "EventSummary",
    "BookingDraft", "BookingCreate", "BookingUpdate", "BookingResponse",
    "BookingDetailResponse", "BookingCancelResponse",
    "CheckoutRequest", "CheckoutResponse", "PaymentReturnResponse",
    "AvailabilityResponse", "BookingSettingsResponse", "BookingSettingsUpdate",
]
