"""
Pydantic schemas for per-event capacity configuration.
"""

from typing import Optional
from pydantic import BaseModel, Field


class BookingSettingsResponse(BaseModel):
    event_id: int
    max_seats: int
    seats_per_booking: int
    booking_deadline: str

    model_config = {"from_attributes": True}


class BookingSettingsUpdate(BaseModel):
    max_seats: Optional[int] = Field(None, ge=1, le=100000)
    seats_per_booking: Optional[int] = Field(None, ge=1, le=1000)
    booking_deadline: Optional[str] = Field(None, min_length=1, max_length=50)


class AvailabilityResponse(BaseModel):
    event_id: int
    requested_seats: int
    available: bool
    max_seats: Optional[int] = None
    remaining_seats: Optional[int] = None
    error: Optional[str] = None
