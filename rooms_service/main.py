import os
from datetime import date
from typing import List, Optional

import httpx
from fastapi import Depends, FastAPI, HTTPException, Query, status, Request, APIRouter
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from booking_engine.errors import field_errors
from common.cache import (
    ROOMS_ALL_KEY,
    availability_key,
    delete_keys,
    get_cached_json,
    room_key,
    set_cached_json,
)
from common.circuit_breaker import CircuitBreaker
from common.logging_config import configure_logging

from . import models, schemas
from .database import Base, engine, get_db

Base.metadata.create_all(bind=engine)

SERVICE_NAME = "rooms"
logger = configure_logging(SERVICE_NAME)

app = FastAPI(title="Rooms Service", version="1.0.0")
router_v1 = APIRouter(prefix="/api/v1")

BOOKINGS_SERVICE_URL = os.getenv(
    "BOOKINGS_SERVICE_URL",
    "http://bookings_service:8002",  # Docker internal URL
)

bookings_circuit_breaker = CircuitBreaker(
    name="bookings_service",
    max_failures=3,
    reset_timeout_seconds=30,
)


def error_response(request: Request, status_code: int, detail) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "service": SERVICE_NAME,
            "path": request.url.path,
            "method": request.method,
            "status_code": status_code,
            "detail": detail,
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return error_response(request, exc.status_code, exc.detail)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    detail = [{"field": e.field, "message": e.message} for e in field_errors(exc.errors())]
    return error_response(request, status.HTTP_400_BAD_REQUEST, detail)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(request, 500, "Internal server error")


@app.get("/")
def root():
    """
    Health-check endpoint for the Rooms service.

    Returns
    -------
    dict
        A small JSON payload indicating that the service is running.
    """
    return {"service": "rooms", "status": "running"}


def get_active_room(db: Session, room_id: int) -> models.Room:
    room = db.query(models.Room).filter(models.Room.id == room_id).first()
    if not room or not room.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return room


def ensure_unique_name(db: Session, name: str, room_id: Optional[int] = None) -> None:
    existing = db.query(models.Room).filter(models.Room.name == name).first()
    if existing and existing.id != room_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Room with this name already exists",
        )


def invalidate_room(room_id: int) -> None:
    delete_keys(ROOMS_ALL_KEY, room_key(room_id))


# ---------- Create room ----------


@router_v1.post("/rooms", response_model=schemas.RoomRead, status_code=status.HTTP_201_CREATED)
def create_room(room_in: schemas.RoomCreate, db: Session = Depends(get_db)):
    """
    Create a new room.

    Behavior
    --------
    - Ensures that the room name is unique.
    - Stores capacity, amenities, location, description and photo.

    Parameters
    ----------
    room_in : RoomCreate
        New room details.
    db : Session
        Database session.

    Returns
    -------
    RoomRead
        The created room.

    Raises
    ------
    HTTPException
        If a room with the same name already exists.
    """
    ensure_unique_name(db, room_in.name)

    room = models.Room(
        name=room_in.name,
        description=room_in.description,
        capacity=room_in.capacity,
        location=room_in.location,
        amenities=room_in.amenities,
        photo=room_in.photo,
    )
    db.add(room)
    db.commit()
    db.refresh(room)
    delete_keys(ROOMS_ALL_KEY)
    logger.info("Room %s created (%s)", room.id, room.name)
    return room


# ---------- List / search rooms ----------


@router_v1.get("/rooms", response_model=List[schemas.RoomRead])
def list_rooms(
    capacity: Optional[int] = Query(default=None, ge=1),
    location: Optional[str] = None,
    amenities: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """
    Retrieve active rooms with optional filters.

    Behavior
    --------
    - Only returns rooms that are active.
    - Supports filtering by:
      * minimum capacity
      * location substring (case-insensitive)
      * amenities, comma-separated; a room matches if it has any of them.

    Parameters
    ----------
    capacity : Optional[int]
        Minimum room capacity.
    location : Optional[str]
        Substring to match in the location field.
    amenities : Optional[str]
        Comma-separated amenity tags, e.g. 'projector,wifi'.
    db : Session
        Database session.

    Returns
    -------
    List[RoomRead]
        List of rooms matching the filters.
    """
    wanted = set(models.split_amenities(amenities))
    cacheable = capacity is None and not location and not wanted

    if cacheable:
        cached = get_cached_json(ROOMS_ALL_KEY)
        if cached is not None:
            return cached

    query = db.query(models.Room).filter(models.Room.is_active.is_(True))

    if capacity is not None:
        query = query.filter(models.Room.capacity >= capacity)

    if location:
        query = query.filter(models.Room.location.ilike(f"%{location}%"))

    rooms = query.order_by(models.Room.id).all()

    # amenity tags live in one column, match them exactly in Python
    if wanted:
        rooms = [r for r in rooms if wanted.intersection(r.amenities)]

    if cacheable:
        data = [schemas.RoomRead.model_validate(r).model_dump(mode="json") for r in rooms]
        set_cached_json(ROOMS_ALL_KEY, data, ttl_seconds=60)
        return data

    return rooms


@router_v1.get("/rooms/{room_id}", response_model=schemas.RoomRead)
def get_room(room_id: int, db: Session = Depends(get_db)):
    """
    Retrieve a single room by its ID.

    Raises
    ------
    HTTPException
        If the room does not exist or is inactive.
    """
    cached = get_cached_json(room_key(room_id))
    if cached is not None:
        return cached
    room = get_active_room(db, room_id)
    data = schemas.RoomRead.model_validate(room).model_dump(mode="json")
    set_cached_json(room_key(room_id), data, ttl_seconds=300)
    return room


# ---------- Update / delete rooms ----------


@router_v1.put("/rooms/{room_id}", response_model=schemas.RoomRead)
def update_room(
    room_id: int,
    update_data: schemas.RoomUpdate,
    db: Session = Depends(get_db),
):
    """
    Update an existing room.

    Behavior
    --------
    - Applies only the provided fields.
    - Ensures that the new name (if changed) remains unique.

    Raises
    ------
    HTTPException
        If the room is not found or the new name conflicts with another room.
    """
    room = get_active_room(db, room_id)

    if update_data.name is not None and update_data.name != room.name:
        ensure_unique_name(db, update_data.name, room_id=room.id)
        room.name = update_data.name

    if update_data.description is not None:
        room.description = update_data.description
    if update_data.capacity is not None:
        room.capacity = update_data.capacity
    if update_data.location is not None:
        room.location = update_data.location
    if update_data.amenities is not None:
        room.amenities = update_data.amenities
    if update_data.photo is not None:
        room.photo = update_data.photo

    db.add(room)
    db.commit()
    db.refresh(room)
    invalidate_room(room.id)
    return room


@router_v1.delete("/rooms/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_room(room_id: int, db: Session = Depends(get_db)):
    """
    Remove a room from the booking domain by marking it inactive.

    Existing bookings of the room are kept untouched as history; new
    bookings are refused because the room lookup rejects inactive rooms.

    Raises
    ------
    HTTPException
        If the room is not found or already inactive.
    """
    room = get_active_room(db, room_id)

    room.is_active = False
    db.add(room)
    db.commit()
    invalidate_room(room.id)
    logger.info("Room %s deactivated", room.id)
    return


# ---------- Room availability ----------


def fetch_slots(room_id: int, day: date) -> list:
    """
    Ask the Bookings service for the day's slots of a room.

    Raises
    ------
    HTTPException
        503 when the circuit is open, 502 when the call fails.
    """
    if not bookings_circuit_breaker.allow_request():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Bookings service temporarily unavailable (circuit open)",
        )

    try:
        resp = httpx.get(
            f"{BOOKINGS_SERVICE_URL}/api/v1/bookings/availability",
            params={"room_id": room_id, "date": day.isoformat()},
            timeout=5.0,
        )
    except httpx.RequestError as exc:
        bookings_circuit_breaker.record_failure()
        logger.warning("Bookings service unreachable: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to contact bookings service for availability",
        )

    if resp.status_code != 200:
        bookings_circuit_breaker.record_failure()
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Bookings service returned an error when checking availability",
        )

    bookings_circuit_breaker.record_success()
    return resp.json()["slots"]


@router_v1.get("/rooms/{room_id}/availability", response_model=schemas.RoomAvailability)
def room_availability(
    room_id: int,
    day: date = Query(..., alias="date"),
    db: Session = Depends(get_db),
):
    """
    Report the bookable slots of a room for one day.

    Behavior
    --------
    - If the room is missing or inactive -> HTTP 404.
    - Slots and their availability come from the Bookings service
      `/bookings/availability`; the answer is cached briefly and dropped
      on every booking write.
    """
    room = get_active_room(db, room_id)

    key = availability_key(room.id, day.isoformat())
    slots = get_cached_json(key)
    if slots is None:
        slots = fetch_slots(room.id, day)
        set_cached_json(key, slots, ttl_seconds=30)

    return {
        "room": schemas.RoomRead.model_validate(room),
        "date": day,
        "slots": slots,
    }


app.include_router(router_v1)
