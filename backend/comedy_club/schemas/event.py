"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import date, datetime, time
from typing import Optional
from pydantic import BaseModel, Field, model_validator


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    start_date: date
    start_time: time
    end_date: date
    end_time: time
    price: int = Field(..., ge=0, le=1_000_000, description="Unit price in cents")
    image_url: Optional[str] = Field(None, max_length=1024)

    @model_validator(mode="after")
    def check_end_after_start(self) -> "EventCreate":
        if (self.end_date, self.end_time) < (self.start_date, self.start_time):
            raise ValueError("Event must end after it starts")
        return self


class EventResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    start_date: date
    start_time: time
    end_date: date
    end_time: time
    price: int
    image_url: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class EventSummary(BaseModel):
    title: str
    start_date: date
    start_time: time

    model_config = {"from_attributes": True}


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False
