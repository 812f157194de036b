"""Booking store - database operations for cargo bookings"""

from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from felka.models.cargo_booking import CargoBooking, SCHEDULED


class BookingRepository:
    """Repository for cargo booking database operations"""

    @staticmethod
    def get(db: Session, booking_id: str) -> Optional[CargoBooking]:
        return db.get(CargoBooking, booking_id)

    @staticmethod
    def list_bookings(db: Session, status: str = "", date_str: str = "") -> list[CargoBooking]:
        query = db.query(CargoBooking)
        if status:
            query = query.filter(CargoBooking.status == status)
        if date_str:
            query = query.filter(CargoBooking.date_str == date_str)
        return query.order_by(CargoBooking.date_str.asc(), CargoBooking.time_slot.asc(), CargoBooking.created_at.asc()).all()

    @staticmethod
    def list_for_client(db: Session, client_id: str) -> list[CargoBooking]:
        return (
            db.query(CargoBooking)
            .filter(CargoBooking.client_id == client_id)
            .order_by(CargoBooking.created_at.desc())
            .all()
        )

    @staticmethod
    def add(db: Session, booking: CargoBooking) -> CargoBooking:
        db.add(booking)
        db.flush()
        return booking

    @staticmethod
    def transition(db: Session, booking_id: str, new_status: str, now: datetime, **fields) -> bool:
        """Move a scheduled booking to ``new_status``.

        Returns False when the booking is no longer scheduled; the status check
        and the write are one statement.
        """
        values = dict(fields, status=new_status, updated_at=now)
        result = db.execute(
            update(CargoBooking)
            .where(CargoBooking.id == booking_id, CargoBooking.status == SCHEDULED)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
