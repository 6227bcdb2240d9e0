from datetime import datetime, timezone
from typing import List

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from .database import Base


def split_amenities(raw) -> List[str]:
    """Turn the stored comma-separated amenities into a clean list."""
    if not raw:
        return []
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


def join_amenities(tags) -> str:
    seen = []
    for tag in tags or []:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return ",".join(seen)


class Room(Base):
    """
    SQLAlchemy model representing a bookable room.

    Attributes
    ----------
    id : int
        Primary key.
    name : str
        Human-readable, unique room name (e.g. 'Conference Room A').
    description : str
        Optional free-text description.
    capacity : int
        Maximum number of people the room can hold.
    location : str
        Physical location description (floor, wing, etc.).
    amenities_raw : str
        Comma-separated amenity tags (e.g. 'projector,wifi').
    photo : str
        Optional photo URL.
    is_active : bool
        Logical-removal flag; inactive rooms cannot be booked or listed.
    created_at : datetime
        Timestamp recording when the room was created.
    """
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False, index=True)
    description = Column(String(500), nullable=True)
    capacity = Column(Integer, nullable=False)
    location = Column(String(255), nullable=False)
    amenities_raw = Column("amenities", String(500), nullable=False, default="")
    photo = Column(String(500), nullable=False, default="")
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    @property
    def amenities(self) -> List[str]:
        return split_amenities(self.amenities_raw)

    @amenities.setter
    def amenities(self, tags) -> None:
        self.amenities_raw = join_amenities(tags)
