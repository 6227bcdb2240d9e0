from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, ConfigDict, field_validator


class RoomBase(BaseModel):
    """
    Base schema for room information.

    Shared fields used when creating and reading rooms.
    """
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    capacity: int = Field(..., ge=1)
    location: str = Field(..., min_length=1)
    amenities: List[str] = Field(default_factory=list)
    photo: str = ""

    @field_validator("name", "location")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v


class RoomCreate(RoomBase):
    """
    Schema for creating a new room.

    Inherits all fields from RoomBase.
    """
    pass


class RoomUpdate(BaseModel):
    """
    Schema for partial updates to a room.

    All fields are optional and only provided values will be updated.
    """
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    capacity: Optional[int] = Field(default=None, ge=1)
    location: Optional[str] = Field(default=None, min_length=1)
    amenities: Optional[List[str]] = None
    photo: Optional[str] = None


class RoomRead(RoomBase):
    """
    Schema returned when reading room data.

    Extends RoomBase with identifiers and the active flag.
    """
    id: int
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SlotRead(BaseModel):
    date: date
    start_time: str
    end_time: str
    available: bool
    conflicting_booking_id: Optional[int] = None


class RoomAvailability(BaseModel):
    """
    Availability of one room on one day, as shown on the room detail page.
    """
    room: RoomRead
    date: date
    slots: List[SlotRead]
