from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Enum, Index, Integer, String, Text

from booking_engine.models import BookingStatus

from .database import Base


class Booking(Base):
    """
    SQLAlchemy model representing a room booking.

    Attributes
    ----------
    id : int
        Primary key.
    room_id : int
        Identifier of the booked room (owned by the Rooms service).
    name, email, phone : str
        Contact details of the requester.
    date : date
        Calendar day of the booking.
    start_time, end_time : str
        Canonical 12-hour labels ('2:00 PM') bounding the half-open range.
    purpose : str
        Reason for the booking.
    status : BookingStatus
        Confirmed, Pending or Cancelled.
    created_at : datetime
        Timestamp when the booking was created.
    """
    __tablename__ = "bookings"
    __table_args__ = (Index("ix_bookings_room_date", "room_id", "date"),)

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, nullable=False)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(50), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(String(8), nullable=False)
    end_time = Column(String(8), nullable=False)
    purpose = Column(Text, nullable=False)
    status = Column(Enum(BookingStatus), nullable=False, default=BookingStatus.CONFIRMED)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
