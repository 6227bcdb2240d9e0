import logging
from contextlib import contextmanager
from datetime import date
from typing import Any, Dict, Hashable, Iterator, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from booking_engine.errors import Busy, StorageError
from booking_engine.locking import LockChain, booking_locks
from booking_engine.models import BookingStatus
from booking_engine.schemas import BookingRequest

from . import models

logger = logging.getLogger(__name__)


class SqlBookingRepository:
    """
    ``BookingRepository`` backed by the bookings table.

    Every SQLAlchemy failure rolls the session back and surfaces as an
    opaque ``StorageError``.
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _storage(self, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Storage failure while trying to %s: %s", action, exc)
            raise StorageError(f"Could not {action}") from exc

    def find_active_bookings(self, room_id: int, booking_date: date) -> List[models.Booking]:
        with self._storage("read bookings"):
            return (
                self.db.query(models.Booking)
                .filter(models.Booking.room_id == room_id)
                .filter(models.Booking.date == booking_date)
                .filter(models.Booking.status != BookingStatus.CANCELLED)
                .all()
            )

    def insert(self, request: BookingRequest, status: BookingStatus) -> models.Booking:
        booking = models.Booking(status=status, **request.model_dump())
        with self._storage("insert booking"):
            self.db.add(booking)
            self.db.commit()
            self.db.refresh(booking)
        return booking

    def get(self, booking_id: int) -> Optional[models.Booking]:
        with self._storage("read booking"):
            return self.db.query(models.Booking).filter(models.Booking.id == booking_id).first()

    def update(self, booking: models.Booking, values: Dict[str, Any]) -> models.Booking:
        with self._storage("update booking"):
            for field, value in values.items():
                setattr(booking, field, value)
            self.db.add(booking)
            self.db.commit()
            self.db.refresh(booking)
        return booking

    def delete(self, booking: models.Booking) -> None:
        with self._storage("delete booking"):
            self.db.delete(booking)
            self.db.commit()


class AdvisoryLocks:
    """
    PostgreSQL transaction-scoped advisory lock per (room, date).

    Serializes writers running in other worker processes. The lock is
    released when the transaction ends: on commit of the insert/update, or
    on the rollback issued here when the guarded block fails.
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def hold(self, key: Hashable, timeout: Optional[float] = None) -> Iterator[None]:
        room_id, booking_date = key
        try:
            if timeout is not None:
                self.db.execute(
                    text("SELECT set_config('lock_timeout', :value, true)"),
                    {"value": f"{int(timeout * 1000)}ms"},
                )
            self.db.execute(
                text("SELECT pg_advisory_xact_lock(:room_id, :day)"),
                {"room_id": room_id, "day": booking_date.toordinal()},
            )
        except OperationalError as exc:
            self.db.rollback()
            raise Busy(key) from exc

        try:
            yield
        except BaseException:
            self.db.rollback()
            raise


def locks_for(db: Session):
    """Lock provider for a request: process locks, plus advisory locks on PostgreSQL."""
    if db.get_bind().dialect.name == "postgresql":
        return LockChain(booking_locks, AdvisoryLocks(db))
    return booking_locks
