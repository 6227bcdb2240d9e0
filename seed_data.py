"""
Seed the room booking database with sample rooms and bookings.

Usage::

    DATABASE_URL=... python seed_data.py [--reset]

Bookings go through the booking engine so the seeded data honours the
no-overlap rule.
"""
import argparse
import logging
from datetime import date, timedelta

from booking_engine.creation import create_booking
from booking_engine.errors import SlotConflict
from booking_engine.memory import InMemoryRoomDirectory
from booking_engine.models import RoomRecord
from bookings_service import models as booking_models
from bookings_service.database import Base as BookingsBase, SessionLocal as BookingsSession, engine as bookings_engine
from bookings_service.repository import SqlBookingRepository, locks_for
from common.logging_config import configure_logging
from rooms_service import models as room_models
from rooms_service.database import Base as RoomsBase, SessionLocal as RoomsSession, engine as rooms_engine

logger = logging.getLogger("seed_data")

ROOMS = [
    {
        "name": "Conference Room A",
        "description": "Large conference room with modern amenities",
        "capacity": 20,
        "location": "Floor 1",
        "amenities": ["projector", "whiteboard", "videoConference", "wifi"],
    },
    {
        "name": "Meeting Room B",
        "description": "Medium-sized meeting room ideal for team discussions",
        "capacity": 10,
        "location": "Floor 2",
        "amenities": ["whiteboard", "wifi"],
    },
    {
        "name": "Boardroom",
        "description": "Executive boardroom with premium facilities",
        "capacity": 15,
        "location": "Floor 3",
        "amenities": ["projector", "videoConference", "wifi"],
    },
    {
        "name": "Huddle Space",
        "description": "Small room for quick meetings and discussions",
        "capacity": 5,
        "location": "East Wing",
        "amenities": ["whiteboard", "wifi"],
    },
    {
        "name": "Training Room",
        "description": "Large room equipped for training sessions and workshops",
        "capacity": 30,
        "location": "West Wing",
        "amenities": ["projector", "whiteboard", "wifi"],
    },
    {
        "name": "Creative Space",
        "description": "Open area designed for brainstorming and creative work",
        "capacity": 12,
        "location": "Floor 2",
        "amenities": ["whiteboard", "wifi"],
    },
]

# (room index, day offset, start, end, requester, purpose)
BOOKINGS = [
    (0, 1, "9:00 AM", "11:00 AM", "John Smith", "Quarterly planning"),
    (0, 1, "11:00 AM", "12:00 PM", "Sarah Johnson", "Client call"),
    (1, 2, "2:00 PM", "3:00 PM", "Michael Brown", "Team sync"),
    (2, 3, "10:00 AM", "12:00 PM", "Emily Davis", "Board meeting"),
    (4, 5, "1:00 PM", "5:00 PM", "David Wilson", "New hire training"),
]


def seed_rooms(reset: bool):
    if reset:
        RoomsBase.metadata.drop_all(bind=rooms_engine)
    RoomsBase.metadata.create_all(bind=rooms_engine)

    db = RoomsSession()
    try:
        records = []
        for data in ROOMS:
            room = db.query(room_models.Room).filter(room_models.Room.name == data["name"]).first()
            if room is None:
                room = room_models.Room(**data)
                db.add(room)
                db.commit()
                db.refresh(room)
                logger.info("Created room %s (%s)", room.id, room.name)
            records.append(
                RoomRecord(
                    id=room.id,
                    name=room.name,
                    capacity=room.capacity,
                    location=room.location,
                    amenities=frozenset(room.amenities),
                    is_active=room.is_active,
                )
            )
        return records
    finally:
        db.close()


def seed_bookings(rooms, reset: bool, start_day: date):
    if reset:
        BookingsBase.metadata.drop_all(bind=bookings_engine)
    BookingsBase.metadata.create_all(bind=bookings_engine)

    directory = InMemoryRoomDirectory(rooms)
    db = BookingsSession()
    try:
        repo = SqlBookingRepository(db)
        for room_index, offset, start, end, name, purpose in BOOKINGS:
            body = {
                "room_id": rooms[room_index].id,
                "name": name,
                "email": name.lower().replace(" ", ".") + "@example.com",
                "phone": "555-0100",
                "date": (start_day + timedelta(days=offset)).isoformat(),
                "start_time": start,
                "end_time": end,
                "purpose": purpose,
            }
            try:
                booking = create_booking(body, repo, directory, locks=locks_for(db))
            except SlotConflict:
                logger.info("Skipping %s %s-%s, already booked", body["date"], start, end)
                continue
            logger.info("Created booking %s", booking.id)
        return db.query(booking_models.Booking).count()
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Seed sample rooms and bookings.")
    parser.add_argument("--reset", action="store_true", help="drop and recreate tables first")
    args = parser.parse_args()

    configure_logging("seed_data")
    rooms = seed_rooms(args.reset)
    total = seed_bookings(rooms, args.reset, date.today())
    logger.info("Seeded %d rooms, %d bookings in total", len(rooms), total)


if __name__ == "__main__":
    main()
