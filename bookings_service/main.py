import os
from datetime import date
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, status, Request, APIRouter
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import func
from sqlalchemy.orm import Session

from booking_engine import creation
from booking_engine.conflicts import blocking_bookings, find_conflict
from booking_engine.errors import BookingError, BookingValidationError, Busy, FieldError, SlotConflict
from booking_engine.models import BookingStatus
from booking_engine.slots import generate_slots
from booking_engine.timerange import TimeRange, parse_clock
from common.cache import AVAILABILITY_PREFIX, delete_prefix
from common.logging_config import configure_logging

from . import models, schemas
from .database import Base, engine, get_db
from .rate_limiter import booking_rate_limiter
from .repository import SqlBookingRepository, locks_for
from .rooms_client import room_directory

# Create tables
Base.metadata.create_all(bind=engine)

SERVICE_NAME = "bookings"
logger = configure_logging(SERVICE_NAME)

app = FastAPI(title="Bookings Service", version="1.0.0")
router_v1 = APIRouter(prefix="/api/v1")

BUSINESS_DAY_START = os.getenv("BUSINESS_DAY_START", "8:00 AM")
BUSINESS_DAY_END = os.getenv("BUSINESS_DAY_END", "8:00 PM")
SLOT_MINUTES = int(os.getenv("SLOT_MINUTES", "60"))
BOOKING_LOCK_TIMEOUT = float(os.getenv("BOOKING_LOCK_TIMEOUT", "5"))


def error_response(request: Request, status_code: int, detail, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "service": SERVICE_NAME,
            "path": request.url.path,
            "method": request.method,
            "status_code": status_code,
            "detail": detail,
        },
        headers=headers,
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return error_response(request, exc.status_code, exc.detail)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    detail = BookingValidationError.from_pydantic(exc.errors()).detail
    return error_response(request, status.HTTP_400_BAD_REQUEST, detail)


@app.exception_handler(BookingError)
async def booking_exception_handler(request: Request, exc: BookingError):
    headers = None
    if isinstance(exc, SlotConflict):
        logger.warning("Booking conflict on %s: %s", request.url.path, exc.conflicting_booking_id)
    elif isinstance(exc, Busy):
        logger.warning("Lock timeout for %s", exc.key)
        headers = {"Retry-After": "1"}
    elif exc.status_code >= 500:
        logger.error("Booking failure on %s %s: %s", request.method, request.url.path, exc)
    return error_response(request, exc.status_code, exc.detail, headers=headers)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(request, 500, "Internal server error")


@app.get("/")
def root():
    """
    Health-check endpoint for the Bookings service.

    Returns
    -------
    dict
        A small JSON payload indicating that the service is running.
    """
    return {"service": "bookings", "status": "running"}


def get_repository(db: Session = Depends(get_db)) -> SqlBookingRepository:
    return SqlBookingRepository(db)


def get_room_directory():
    """Room lookup used by availability, creation and rescheduling; overridden in tests."""
    return room_directory


def get_locks(db: Session = Depends(get_db)):
    return locks_for(db)


def parse_range(start_time: str, end_time: str) -> TimeRange:
    try:
        return TimeRange.parse(start_time, end_time)
    except BookingError:
        raise
    except ValueError as exc:
        raise BookingValidationError([FieldError("end_time", str(exc))])


# ---------- Room availability ----------


@router_v1.get("/bookings/availability", response_model=schemas.AvailabilityRead)
def room_slots(
    room_id: int = Query(..., ge=1),
    day: date = Query(..., alias="date"),
    repo: SqlBookingRepository = Depends(get_repository),
    rooms=Depends(get_room_directory),
):
    """
    List the bookable slots of a room for one business day.

    Slots span BUSINESS_DAY_START to BUSINESS_DAY_END in steps of
    SLOT_MINUTES; each is flagged unavailable when it overlaps a
    non-cancelled booking.

    Parameters
    ----------
    room_id : int
        Room to inspect.
    day : date
        Calendar day (query parameter ``date``).

    Returns
    -------
    AvailabilityRead
        Room id, date and the ordered slots.

    Raises
    ------
    BookingError
        404 if the room does not exist or is inactive.
    """
    creation.ensure_room_active(rooms, room_id)
    existing = repo.find_active_bookings(room_id, day)
    slots = generate_slots(day, SLOT_MINUTES, BUSINESS_DAY_START, BUSINESS_DAY_END, existing)
    return {
        "room_id": room_id,
        "date": day,
        "slots": [slot.as_dict() for slot in slots],
    }


@router_v1.get("/bookings/availability/check", response_model=schemas.ConflictCheckRead)
def check_availability(
    room_id: int = Query(..., ge=1),
    day: date = Query(..., alias="date"),
    start_time: str = Query(...),
    end_time: str = Query(...),
    repo: SqlBookingRepository = Depends(get_repository),
    rooms=Depends(get_room_directory),
):
    """
    Check whether a room is free for a given range on a given day.

    Raises
    ------
    BookingError
        400 if the times are malformed or end is not after start.
        404 if the room does not exist or is inactive.
    """
    candidate = parse_range(start_time, end_time)
    creation.ensure_room_active(rooms, room_id)
    existing = blocking_bookings(repo.find_active_bookings(room_id, day))
    conflict = find_conflict(candidate, existing)
    return {
        "room_id": room_id,
        "date": day,
        "start_time": candidate.start_label,
        "end_time": candidate.end_label,
        "available": conflict is None,
        "conflicting_booking_id": None if conflict is None else conflict.id,
    }


# ---------- Create booking ----------


@router_v1.post(
    "/bookings",
    response_model=schemas.BookingRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(booking_rate_limiter)],
)
def create_booking(
    booking_in: schemas.BookingCreate,
    repo: SqlBookingRepository = Depends(get_repository),
    rooms=Depends(get_room_directory),
    locks=Depends(get_locks),
):
    """
    Create a new booking.

    Behavior
    --------
    - Validates every field (reported together on failure).
    - Rejects rooms that do not exist or are inactive.
    - Rejects ranges overlapping a non-cancelled booking of the same
      room and date; back-to-back bookings are allowed.
    - Check and insert are serialized per (room, date).

    Returns
    -------
    BookingRead
        The newly created, Confirmed booking.

    Raises
    ------
    BookingError
        400 validation, 404 room not found, 409 conflict, 503 busy.
    """
    booking = creation.create_booking(
        booking_in, repo, rooms, locks=locks, timeout=BOOKING_LOCK_TIMEOUT
    )
    delete_prefix(AVAILABILITY_PREFIX)
    logger.info(
        "Booking %s created for room %s on %s %s-%s",
        booking.id, booking.room_id, booking.date, booking.start_time, booking.end_time,
    )
    return booking


# ---------- List bookings ----------


def newest_first(bookings):
    # clock labels do not sort as strings ("9:00 AM" > "10:00 AM")
    return sorted(
        bookings,
        key=lambda b: (b.date, parse_clock(b.start_time), b.id),
        reverse=True,
    )


@router_v1.get("/bookings", response_model=List[schemas.BookingRead])
def list_bookings(
    room_id: Optional[int] = Query(default=None, ge=1),
    day: Optional[date] = Query(default=None, alias="date"),
    booking_status: Optional[BookingStatus] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
):
    """
    List bookings with optional filters, latest first.

    Parameters
    ----------
    room_id : Optional[int]
        Only bookings of this room.
    day : Optional[date]
        Only bookings on this date (query parameter ``date``).
    booking_status : Optional[BookingStatus]
        Only bookings with this status (query parameter ``status``).
    """
    q = db.query(models.Booking)

    if room_id is not None:
        q = q.filter(models.Booking.room_id == room_id)
    if day is not None:
        q = q.filter(models.Booking.date == day)
    if booking_status is not None:
        q = q.filter(models.Booking.status == booking_status)

    return newest_first(q.all())


@router_v1.get("/bookings/user/{email}", response_model=List[schemas.BookingRead])
def list_user_bookings(email: str, db: Session = Depends(get_db)):
    """
    List the bookings made with a given email address, latest first.
    """
    bookings = (
        db.query(models.Booking)
        .filter(func.lower(models.Booking.email) == email.strip().lower())
        .all()
    )
    return newest_first(bookings)


@router_v1.get("/bookings/{booking_id}", response_model=schemas.BookingRead)
def get_booking(booking_id: int, repo: SqlBookingRepository = Depends(get_repository)):
    return creation.get_booking(booking_id, repo)


# ---------- Update / cancel / delete ----------


@router_v1.put(
    "/bookings/{booking_id}",
    response_model=schemas.BookingRead,
    dependencies=[Depends(booking_rate_limiter)],
)
def update_booking(
    booking_id: int,
    update_data: schemas.BookingUpdate,
    repo: SqlBookingRepository = Depends(get_repository),
    rooms=Depends(get_room_directory),
    locks=Depends(get_locks),
):
    """
    Update an existing booking.

    Behavior
    --------
    - Applies only the fields provided in BookingUpdate.
    - Moving the booking (room, date, times) or reactivating a cancelled
      one re-runs the room lookup and the conflict check, ignoring the
      booking itself.

    Raises
    ------
    BookingError
        400 validation, 404 booking/room not found, 409 conflict, 503 busy.
    """
    booking = creation.reschedule_booking(
        booking_id, update_data, repo, rooms, locks=locks, timeout=BOOKING_LOCK_TIMEOUT
    )
    delete_prefix(AVAILABILITY_PREFIX)
    return booking


@router_v1.post(
    "/bookings/{booking_id}/cancel",
    response_model=schemas.BookingRead,
    dependencies=[Depends(booking_rate_limiter)],
)
def cancel_booking(booking_id: int, repo: SqlBookingRepository = Depends(get_repository)):
    """
    Cancel a booking.

    The record is kept with status Cancelled and stops blocking its slot.
    """
    booking = creation.cancel_booking(booking_id, repo)
    delete_prefix(AVAILABILITY_PREFIX)
    logger.info("Booking %s cancelled", booking.id)
    return booking


@router_v1.delete(
    "/bookings/{booking_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(booking_rate_limiter)],
)
def delete_booking(booking_id: int, repo: SqlBookingRepository = Depends(get_repository)):
    """
    Permanently delete a booking.
    """
    creation.delete_booking(booking_id, repo)
    delete_prefix(AVAILABILITY_PREFIX)
    logger.info("Booking %s deleted", booking_id)
    return


app.include_router(router_v1)
