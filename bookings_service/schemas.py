from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from booking_engine.models import BookingStatus
from booking_engine.schemas import BookingChanges, BookingRequest


class BookingCreate(BookingRequest):
    """
    Schema for creating a new booking.

    Validation (required fields, email, 12-hour times, start before end)
    is inherited from the engine's BookingRequest.
    """
    pass


class BookingUpdate(BookingChanges):
    """
    Schema for partially updating an existing booking.

    All fields are optional; only provided values will be applied.
    """
    pass


class BookingRead(BaseModel):
    """
    Schema returned when reading booking information.
    """
    id: int
    room_id: int
    name: str
    email: str
    phone: str
    date: date
    start_time: str
    end_time: str
    purpose: str
    status: BookingStatus
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SlotRead(BaseModel):
    date: date
    start_time: str
    end_time: str
    available: bool
    conflicting_booking_id: Optional[int] = None


class AvailabilityRead(BaseModel):
    """
    Bookable slots of one room on one day.
    """
    room_id: int
    date: date
    slots: List[SlotRead]


class ConflictCheckRead(BaseModel):
    room_id: int
    date: date
    start_time: str
    end_time: str
    available: bool
    conflicting_booking_id: Optional[int] = None
