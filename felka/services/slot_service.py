"""
Cargo slot administration: single slots, week generation and block/unblock.

Week generation creates one slot per (day, hour label) for 7 consecutive days
starting at the given date. Hour labels and default capacity come from
settings (SLOT_HOURS, DEFAULT_SLOT_CAPACITY). Pairs that already exist are
skipped, so generating the same week twice creates nothing the second time.
"""
from datetime import date, timedelta
import logging
import re
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from felka.core.config import settings
from felka.core.errors import DuplicateSlot, ValidationError
from felka.models.schedule_slot import ScheduleSlot
from felka.repositories.slot_repository import SlotRepository
from felka.schemas.scheduling import SlotIn
from felka.services.audit_service import log_audit

logger = logging.getLogger(__name__)

DAYS_PER_WEEK = 7
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def parse_date(value: str, field: str = "date") -> date:
    try:
        return date.fromisoformat((value or "").strip())
    except ValueError:
        raise ValidationError(f"{field} must be YYYY-MM-DD")


def validate_time_slot(value: str) -> str:
    value = (value or "").strip()
    if not _TIME_RE.match(value):
        raise ValidationError("timeSlot must be HH:MM")
    return value


def get_slots(db: Session, date_str: str) -> list[ScheduleSlot]:
    return SlotRepository.list_for_date(db, parse_date(date_str).isoformat())


def get_all_slots(db: Session) -> list[ScheduleSlot]:
    return SlotRepository.list_all(db)


def create_slot(db: Session, body: SlotIn, actor_id: str) -> ScheduleSlot:
    date_str = parse_date(body.date).isoformat()
    time_slot = validate_time_slot(body.timeSlot)
    capacity = body.maxCapacity or settings.DEFAULT_SLOT_CAPACITY
    if capacity < 1:
        raise ValidationError("maxCapacity must be >= 1")

    slot = ScheduleSlot(
        id=str(uuid.uuid4()),
        date_str=date_str,
        time_slot=time_slot,
        service_type=body.serviceType or settings.DEFAULT_SERVICE_TYPE,
        is_available=body.isAvailable,
        max_capacity=capacity,
        current_bookings=0,
    )
    try:
        SlotRepository.add(db, slot)
        log_audit(db, actor_id, "schedule_slot.create", "schedule_slot", slot.id, {"date": date_str, "timeSlot": time_slot, "maxCapacity": capacity})
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateSlot(f"A slot already exists for {date_str} {time_slot}")
    db.refresh(slot)
    logger.info("slot %s created for %s %s (capacity %s)", slot.id, date_str, time_slot, capacity)
    return slot


def create_week_slots(db: Session, start_date: str, service_type: str, actor_id: str) -> list[ScheduleSlot]:
    """Create the slots of 7 days starting at start_date; returns only the new ones."""
    start = parse_date(start_date, "startDate")
    hours = [validate_time_slot(h) for h in settings.slot_hours]
    if not hours:
        raise ValidationError("No slot hours configured")
    service_type = (service_type or "").strip() or settings.DEFAULT_SERVICE_TYPE

    days = [(start + timedelta(days=i)).isoformat() for i in range(DAYS_PER_WEEK)]
    existing = SlotRepository.existing_schedule_keys(db, days)

    created: list[ScheduleSlot] = []
    skipped = 0
    try:
        for date_str in days:
            for hour in hours:
                if (date_str, hour) in existing:
                    skipped += 1
                    continue
                created.append(SlotRepository.add(db, ScheduleSlot(
                    id=str(uuid.uuid4()),
                    date_str=date_str,
                    time_slot=hour,
                    service_type=service_type,
                    is_available=True,
                    max_capacity=settings.DEFAULT_SLOT_CAPACITY,
                    current_bookings=0,
                )))
        log_audit(db, actor_id, "schedule_slot.create_week", "schedule_week", start.isoformat(), {"serviceType": service_type, "created": len(created), "skipped": skipped})
        db.commit()
    except IntegrityError:
        # another request generated the same week concurrently
        db.rollback()
        raise DuplicateSlot(f"Slots for the week of {start.isoformat()} were created concurrently, retry")
    logger.info("week of %s: %d slots created, %d already existed", start.isoformat(), len(created), skipped)
    return created


def _set_availability(db: Session, slot_ids: list[str], available: bool, actor_id: str) -> list[ScheduleSlot]:
    ids = list(dict.fromkeys(i for i in slot_ids if i))
    SlotRepository.set_availability(db, ids, available)
    changed = SlotRepository.list_by_ids(db, ids)
    action = "schedule_slot.unblock" if available else "schedule_slot.block"
    for s in changed:
        log_audit(db, actor_id, action, "schedule_slot", s.id, {})
    db.commit()
    for s in changed:
        db.refresh(s)
    if len(changed) < len(ids):
        logger.info("%s: %d of %d slot ids not found", action, len(ids) - len(changed), len(ids))
    return changed


def block_slots(db: Session, slot_ids: list[str], actor_id: str) -> list[ScheduleSlot]:
    """Mark the given slots unavailable; unknown ids are ignored."""
    return _set_availability(db, slot_ids, False, actor_id)


def unblock_slots(db: Session, slot_ids: list[str], actor_id: str) -> list[ScheduleSlot]:
    return _set_availability(db, slot_ids, True, actor_id)
