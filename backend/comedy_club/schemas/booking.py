"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from comedy_club.schemas.event import EventSummary

PHONE_PATTERN = r"^\+?[0-9]{10,}$"


class BookingDraft(BaseModel):
    """
    A booking that is not yet authoritative.

    This is what travels through the payment redirect and comes back to the
    reconciler, so it is validated again on the way back in.
    """

    event_id: int = Field(..., gt=0)
    user_name: str = Field(..., min_length=2, max_length=255)
    user_email: EmailStr
    user_phone: str = Field(..., pattern=PHONE_PATTERN, max_length=32)
    seats: int = Field(..., ge=1, le=10)
    total_amount: int = Field(0, ge=0, description="Total in cents")
    reference: Optional[str] = Field(None, min_length=8, max_length=64)


class CheckoutRequest(BaseModel):
    event_id: int = Field(..., gt=0)
    user_name: str = Field(..., min_length=2, max_length=255)
    user_email: EmailStr
    user_phone: str = Field(..., pattern=PHONE_PATTERN, max_length=32)
    seats: int = Field(default=1, ge=1, le=10)
    amount: Optional[str] = Field(
        None,
        description="Total the customer was shown, e.g. '42.00'; must match the server price",
    )


class CheckoutResponse(BaseModel):
    url: str
    reference: str
    booking_id: int
    amount: str


class BookingCreate(BaseModel):
    """Box-office booking, written as confirmed without an online payment."""

    event_id: int = Field(..., gt=0)
    user_name: str = Field(..., min_length=2, max_length=255)
    user_email: EmailStr
    user_phone: str = Field(..., pattern=PHONE_PATTERN, max_length=32)
    seats: int = Field(default=1, ge=1, le=10)


class BookingUpdate(BaseModel):
    user_name: Optional[str] = Field(None, min_length=2, max_length=255)
    user_email: Optional[EmailStr] = None
    user_phone: Optional[str] = Field(None, pattern=PHONE_PATTERN, max_length=32)
    seats: Optional[int] = Field(None, ge=1, le=10)
    status: Optional[str] = Field(None, pattern=r"^(pending|confirmed|cancelled)$")
    payment_status: Optional[str] = Field(None, max_length=50)


class BookingResponse(BaseModel):
    id: int
    event_id: int
    user_name: str
    user_email: str
    user_phone: str
    seats: int
    total_amount: int
    status: str
    payment_status: Optional[str]
    payment_id: Optional[str]
    reference: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingDetailResponse(BookingResponse):
    event: EventSummary


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: int
    status: str


class PaymentReturnResponse(BaseModel):
    recorded: bool
    payment_status: Optional[str] = None
    booking: Optional[BookingResponse] = None
    notice: Optional[str] = None
