import cProfile
from datetime import date, timedelta

from booking_engine.creation import create_booking
from booking_engine.errors import SlotConflict
from booking_engine.locking import KeyedLocks
from booking_engine.memory import InMemoryBookingRepository, InMemoryRoomDirectory
from booking_engine.models import RoomRecord
from booking_engine.slots import generate_slots

ROOMS = [RoomRecord(id=i, name=f"Room {i}", capacity=10) for i in range(1, 11)]
HOURS = ["8:00 AM", "9:00 AM", "10:00 AM", "11:00 AM", "12:00 PM", "1:00 PM",
         "2:00 PM", "3:00 PM", "4:00 PM", "5:00 PM", "6:00 PM", "7:00 PM", "8:00 PM"]


def scenario_bookings(repo, rooms, locks, days=30):
    """
    Fill every room hour by hour for a month, with one colliding
    request per slot to exercise the conflict path.
    """
    start_day = date(2024, 6, 1)
    conflicts = 0
    for offset in range(days):
        day = (start_day + timedelta(days=offset)).isoformat()
        for room in ROOMS:
            for start, end in zip(HOURS, HOURS[1:]):
                body = {
                    "room_id": room.id,
                    "name": "Load Test",
                    "email": "load@example.com",
                    "phone": "555-0100",
                    "date": day,
                    "start_time": start,
                    "end_time": end,
                    "purpose": "Profiling",
                }
                create_booking(body, repo, rooms, locks=locks)
                try:
                    create_booking(body, repo, rooms, locks=locks)
                except SlotConflict:
                    conflicts += 1
    return conflicts


def scenario_slots(repo, days=30):
    start_day = date(2024, 6, 1)
    for offset in range(days):
        day = start_day + timedelta(days=offset)
        for room in ROOMS:
            existing = repo.find_active_bookings(room.id, day)
            list(generate_slots(day, 30, "8:00 AM", "8:00 PM", existing))


def main():
    repo = InMemoryBookingRepository()
    rooms = InMemoryRoomDirectory(ROOMS)
    scenario_bookings(repo, rooms, KeyedLocks())
    scenario_slots(repo)


if __name__ == "__main__":
    # run cProfile and sort by cumulative time
    cProfile.run("main()", sort="cumtime")
