from dataclasses import dataclass
from typing import Any, Dict, Hashable, Iterable, List, Optional


class BookingError(Exception):
    """
    Base class for every failure raised by the booking engine.

    Attributes
    ----------
    status_code : int
        HTTP status a service should answer with for this error.
    """
    status_code = 500

    @property
    def detail(self) -> Any:
        return str(self)


class InvalidTimeFormat(BookingError, ValueError):
    """Raised when a clock label such as '2:00 PM' cannot be parsed."""
    status_code = 400

    def __init__(self, text: Any):
        self.text = text
        super().__init__(f"Invalid time format: {text!r} (expected e.g. '2:00 PM')")


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


class BookingValidationError(BookingError):
    """
    Raised when a booking request is missing fields or has malformed ones.

    Every violated field is reported, not only the first one.
    """
    status_code = 400

    def __init__(self, errors: Iterable[FieldError]):
        self.errors: List[FieldError] = list(errors)
        fields = ", ".join(e.field for e in self.errors)
        super().__init__(f"Invalid booking request: {fields}")

    @property
    def detail(self) -> List[Dict[str, str]]:
        return [{"field": e.field, "message": e.message} for e in self.errors]

    @classmethod
    def from_pydantic(cls, errors: Iterable[Dict[str, Any]]) -> "BookingValidationError":
        """
        Build the error from pydantic-style error dicts (``loc``/``msg``).

        Works for both ``pydantic.ValidationError.errors()`` and FastAPI's
        ``RequestValidationError.errors()`` whose locations start with 'body'.
        """
        return cls(field_errors(errors))


def field_errors(errors: Iterable[Dict[str, Any]]) -> List[FieldError]:
    result: List[FieldError] = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        message = str(err.get("msg", "Invalid value"))
        # pydantic prefixes messages raised from validators
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        result.append(FieldError(field=".".join(loc) or "__root__", message=message))
    return result


class RoomNotFound(BookingError):
    status_code = 404

    def __init__(self, room_id: Any):
        self.room_id = room_id
        super().__init__("Room not found")


class BookingNotFound(BookingError):
    status_code = 404

    def __init__(self, booking_id: Any):
        self.booking_id = booking_id
        super().__init__("Booking not found")


class SlotConflict(BookingError):
    """Raised when the requested time overlaps a non-cancelled booking."""
    status_code = 409

    def __init__(self, conflicting_booking_id: Optional[Any]):
        self.conflicting_booking_id = conflicting_booking_id
        super().__init__("Room is already booked for this time range")

    @property
    def detail(self) -> Dict[str, Any]:
        return {
            "message": str(self),
            "conflicting_booking_id": self.conflicting_booking_id,
        }


class Busy(BookingError):
    """Raised when the per-(room, date) lock could not be acquired in time."""
    status_code = 503

    def __init__(self, key: Hashable):
        self.key = key
        super().__init__("Bookings for this room and date are busy, please retry")


class StorageError(BookingError):
    """Opaque failure of the underlying persistence layer."""
    status_code = 500

    def __init__(self, message: str = "Storage failure"):
        super().__init__(message)

    @property
    def detail(self) -> str:
        return "Internal server error"
