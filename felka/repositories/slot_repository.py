"""Slot store - database operations for schedule slots"""

from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from felka.models.schedule_slot import ScheduleSlot


class SlotRepository:
    """Repository for schedule slot database operations"""

    @staticmethod
    def get(db: Session, slot_id: str) -> Optional[ScheduleSlot]:
        return db.get(ScheduleSlot, slot_id)

    @staticmethod
    def get_by_schedule(db: Session, date_str: str, time_slot: str) -> Optional[ScheduleSlot]:
        return (
            db.query(ScheduleSlot)
            .filter(ScheduleSlot.date_str == date_str, ScheduleSlot.time_slot == time_slot)
            .first()
        )

    @staticmethod
    def list_for_date(db: Session, date_str: str) -> list[ScheduleSlot]:
        return (
            db.query(ScheduleSlot)
            .filter(ScheduleSlot.date_str == date_str)
            .order_by(ScheduleSlot.time_slot.asc())
            .all()
        )

    @staticmethod
    def list_all(db: Session) -> list[ScheduleSlot]:
        return db.query(ScheduleSlot).order_by(ScheduleSlot.date_str.asc(), ScheduleSlot.time_slot.asc()).all()

    @staticmethod
    def list_by_ids(db: Session, slot_ids: list[str]) -> list[ScheduleSlot]:
        if not slot_ids:
            return []
        return (
            db.query(ScheduleSlot)
            .filter(ScheduleSlot.id.in_(slot_ids))
            .order_by(ScheduleSlot.date_str.asc(), ScheduleSlot.time_slot.asc())
            .all()
        )

    @staticmethod
    def existing_schedule_keys(db: Session, date_strs: list[str]) -> set[tuple[str, str]]:
        """(date, time) pairs already present for the given dates."""
        rows = (
            db.query(ScheduleSlot.date_str, ScheduleSlot.time_slot)
            .filter(ScheduleSlot.date_str.in_(date_strs))
            .all()
        )
        return {(r.date_str, r.time_slot) for r in rows}

    @staticmethod
    def add(db: Session, slot: ScheduleSlot) -> ScheduleSlot:
        db.add(slot)
        db.flush()
        return slot

    @staticmethod
    def set_availability(db: Session, slot_ids: list[str], available: bool) -> int:
        if not slot_ids:
            return 0
        result = db.execute(
            update(ScheduleSlot)
            .where(ScheduleSlot.id.in_(slot_ids))
            .values(is_available=available)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    def reserve_unit(db: Session, slot_id: str) -> bool:
        """Take one unit of capacity if the slot is still bookable.

        The capacity check and the increment are one UPDATE statement, so two
        concurrent reservations can never oversell the slot.
        """
        result = db.execute(
            update(ScheduleSlot)
            .where(
                ScheduleSlot.id == slot_id,
                ScheduleSlot.is_available == True,  # noqa: E712
                ScheduleSlot.current_bookings < ScheduleSlot.max_capacity,
            )
            .values(current_bookings=ScheduleSlot.current_bookings + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def release_unit(db: Session, slot_id: str) -> bool:
        """Give one unit of capacity back, never going below zero."""
        result = db.execute(
            update(ScheduleSlot)
            .where(ScheduleSlot.id == slot_id, ScheduleSlot.current_bookings > 0)
            .values(current_bookings=ScheduleSlot.current_bookings - 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
