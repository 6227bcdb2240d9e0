import datetime
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationError, ValidationInfo, field_validator

from .errors import BookingValidationError
from .models import BookingStatus
from .timerange import TimeRange, format_clock, parse_clock, parse_end_clock

_REQUIRED_MESSAGES = {
    "name": "Please add a name",
    "phone": "Please add a phone number",
    "purpose": "Please add a purpose for booking",
}


def _require_text(value: Optional[str], field: str) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError(_REQUIRED_MESSAGES[field])
    return value


def _canonical_clock(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    return format_clock(parse_clock(value))


class BookingRequest(BaseModel):
    """
    Parsed and validated booking request.

    Times are 12-hour labels ('2:00 PM'); they are normalized to their
    canonical form so that stored labels always round-trip.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    room_id: int = Field(..., ge=1)
    name: str
    email: EmailStr
    phone: str
    date: datetime.date
    start_time: str
    end_time: str
    purpose: str

    @field_validator("name", "phone", "purpose")
    @classmethod
    def not_blank(cls, v: str, info: ValidationInfo) -> str:
        return _require_text(v, info.field_name)

    @field_validator("start_time")
    @classmethod
    def check_start(cls, v: str) -> str:
        return _canonical_clock(v)

    @field_validator("end_time")
    @classmethod
    def check_end(cls, v: str, info: ValidationInfo) -> str:
        v = _canonical_clock(v)
        start = info.data.get("start_time")
        if start is not None and parse_end_clock(v) <= parse_clock(start):
            raise ValueError("end_time must be after start_time")
        return v

    @property
    def time_range(self) -> TimeRange:
        return TimeRange.parse(self.start_time, self.end_time)


class BookingChanges(BaseModel):
    """
    Partial update of an existing booking.

    All fields are optional; only provided values are applied. The final
    start/end order is checked once merged with the stored booking.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    room_id: Optional[int] = Field(default=None, ge=1)
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    date: Optional[datetime.date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    purpose: Optional[str] = None
    status: Optional[BookingStatus] = None

    @field_validator("name", "phone", "purpose")
    @classmethod
    def not_blank(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        return _require_text(v, info.field_name)

    @field_validator("start_time", "end_time")
    @classmethod
    def check_clock(cls, v: Optional[str]) -> Optional[str]:
        return _canonical_clock(v)

    @property
    def reschedules(self) -> bool:
        return any(
            value is not None
            for value in (self.room_id, self.date, self.start_time, self.end_time)
        )


def _parse(model, data):
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise BookingValidationError.from_pydantic(exc.errors()) from exc


def parse_booking_request(data: Union[BookingRequest, Mapping[str, Any]]) -> BookingRequest:
    """
    Validate a raw payload into a ``BookingRequest``.

    Raises
    ------
    BookingValidationError
        Listing every missing or malformed field.
    """
    return _parse(BookingRequest, data)


def parse_booking_changes(data: Union[BookingChanges, Mapping[str, Any]]) -> BookingChanges:
    return _parse(BookingChanges, data)


def changes_to_values(changes: BookingChanges) -> Dict[str, Any]:
    """Return only the fields that were explicitly provided."""
    return changes.model_dump(exclude_none=True)
