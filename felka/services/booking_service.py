"""
Cargo booking lifecycle.

This is the only place that changes a booking's status or a slot's
occupancy, and it always changes both in the same transaction:

    scheduled --(requester cancel, >= window before start)--> cancelled
    scheduled --(manager complete)--> completed   (capacity stays consumed)
    scheduled --(manager cancel)-->   cancelled   (capacity is released)

Reserving capacity and moving a booking out of ``scheduled`` are conditional
UPDATEs (see SlotRepository.reserve_unit and BookingRepository.transition),
so concurrent requests cannot oversell a slot or release a unit twice.
"""
from datetime import datetime, timezone
import logging
import uuid

from sqlalchemy.orm import Session

from felka.core.config import settings
from felka.core.errors import (
    BookingNotActive,
    CancellationWindowClosed,
    NotFoundError,
    PolicyViolation,
    SlotNotBookable,
    ValidationError,
)
from felka.models.cargo_booking import CargoBooking, SCHEDULED, COMPLETED, CANCELLED
from felka.models.schedule_slot import ScheduleSlot
from felka.repositories.booking_repository import BookingRepository
from felka.repositories.slot_repository import SlotRepository
from felka.schemas.scheduling import BookingCreate
from felka.services.audit_service import log_audit
from felka.services.availability_policy import is_cancellable
from felka.services.email_service import queue_email
from felka.services.external_person_service import get_person

logger = logging.getLogger(__name__)

MANAGER_ACTIONS = ("complete", "cancel")


def _clean(value: str | None) -> str:
    return (value or "").strip()


def get_booking(db: Session, booking_id: str) -> CargoBooking:
    b = BookingRepository.get(db, booking_id)
    if not b:
        raise NotFoundError("Booking not found")
    return b


def list_bookings(db: Session, status: str = "", date_str: str = "") -> list[CargoBooking]:
    return BookingRepository.list_bookings(db, status=status, date_str=date_str)


def list_client_bookings(db: Session, client_id: str) -> list[CargoBooking]:
    if not _clean(client_id):
        raise ValidationError("clientId is required")
    return BookingRepository.list_for_client(db, client_id)


def resolve_slot(db: Session, body: BookingCreate) -> ScheduleSlot:
    if _clean(body.slotId):
        slot = SlotRepository.get(db, body.slotId.strip())
    elif _clean(body.date) and _clean(body.timeSlot):
        slot = SlotRepository.get_by_schedule(db, body.date.strip(), body.timeSlot.strip())
    else:
        raise ValidationError("slotId or date and timeSlot are required")
    if not slot:
        raise NotFoundError("Slot not found")
    return slot


def create_booking(db: Session, body: BookingCreate, client_id: str, actor_id: str) -> CargoBooking:
    contact = {
        "company_name": _clean(body.companyName),
        "contact_person": _clean(body.contactPerson),
        "contact_email": _clean(body.contactEmail).lower(),
        "contact_phone": _clean(body.contactPhone),
    }

    # booking on behalf of a registered client fills the blanks from the registry
    if _clean(body.externalPersonId):
        person = get_person(db, body.externalPersonId.strip())
        if person.status == "blocked":
            raise PolicyViolation("External person is blocked")
        contact["company_name"] = contact["company_name"] or person.company_name or person.external_company
        contact["contact_person"] = contact["contact_person"] or person.full_name
        contact["contact_email"] = contact["contact_email"] or person.email
        contact["contact_phone"] = contact["contact_phone"] or person.phone

    missing = [name for name, key in (("companyName", "company_name"), ("contactPerson", "contact_person"), ("contactEmail", "contact_email")) if not contact[key]]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    slot = resolve_slot(db, body)

    # Transactional capacity check + reservation to prevent oversell
    if not SlotRepository.reserve_unit(db, slot.id):
        db.rollback()
        logger.info("booking rejected: slot %s (%s %s) is not bookable", slot.id, slot.date_str, slot.time_slot)
        raise SlotNotBookable("Slot is not available for booking")

    booking = CargoBooking(
        id=str(uuid.uuid4()),
        slot_id=slot.id,
        date_str=slot.date_str,
        time_slot=slot.time_slot,
        client_id=_clean(client_id) or "guest",
        external_person_id=_clean(body.externalPersonId) or None,
        manager=_clean(body.manager),
        notes=_clean(body.notes) or None,
        status=SCHEDULED,
        **contact,
    )
    BookingRepository.add(db, booking)
    log_audit(db, actor_id, "cargo_booking.create", "cargo_booking", booking.id, {"slotId": slot.id, "date": slot.date_str, "timeSlot": slot.time_slot, "companyName": booking.company_name})
    db.commit()
    db.refresh(booking)
    logger.info("booking %s created for slot %s (%s %s)", booking.id, slot.id, booking.date_str, booking.time_slot)

    queue_email(
        db,
        booking.contact_email,
        f"FELKA - cargo booking confirmed for {booking.date_str} {booking.time_slot}",
        f"Hello {booking.contact_person},\n\n"
        f"Your cargo booking for {booking.company_name} is confirmed.\n"
        f"Date: {booking.date_str}\nTime: {booking.time_slot}\nBooking: {booking.id}\n\n"
        f"Cancellations are accepted up to {settings.CANCELLATION_WINDOW_HOURS} hours before the slot starts.",
        booking.id,
    )
    return booking


def cancel_booking(db: Session, booking_id: str, reason: str, actor_id: str, now: datetime | None = None) -> CargoBooking:
    """Requester cancellation, subject to the cancellation window."""
    booking = get_booking(db, booking_id)
    reason = _clean(reason)
    if not reason:
        raise ValidationError("A cancellation reason is required")
    if booking.status != SCHEDULED:
        raise BookingNotActive(f"Booking is already {booking.status}")
    if not is_cancellable(booking, now):
        raise CancellationWindowClosed(
            f"Bookings can only be cancelled up to {settings.CANCELLATION_WINDOW_HOURS} hours before the slot starts"
        )

    stamp = datetime.now(timezone.utc)
    if not BookingRepository.transition(db, booking.id, CANCELLED, stamp, cancellation_reason=reason, cancelled_by="requester", cancelled_at=stamp):
        db.rollback()
        raise BookingNotActive("Booking is no longer scheduled")
    SlotRepository.release_unit(db, booking.slot_id)
    log_audit(db, actor_id, "cargo_booking.cancel", "cargo_booking", booking.id, {"reason": reason, "by": "requester"})
    db.commit()
    db.refresh(booking)
    logger.info("booking %s cancelled by requester", booking.id)

    queue_email(
        db,
        booking.contact_email,
        f"FELKA - cargo booking cancelled ({booking.date_str} {booking.time_slot})",
        f"Hello {booking.contact_person},\n\nYour cargo booking {booking.id} was cancelled.\nReason: {reason}",
        booking.id,
    )
    return booking


def manager_action(db: Session, booking_id: str, action: str, notes: str, actor_id: str) -> CargoBooking:
    """Complete or cancel a booking as a manager; only cancel gives capacity back."""
    action = _clean(action).lower()
    if action not in MANAGER_ACTIONS:
        raise ValidationError("action must be 'complete' or 'cancel'")
    booking = get_booking(db, booking_id)
    if booking.status != SCHEDULED:
        raise BookingNotActive(f"Booking is already {booking.status}")

    stamp = datetime.now(timezone.utc)
    notes = _clean(notes) or None
    if action == "complete":
        ok = BookingRepository.transition(db, booking.id, COMPLETED, stamp, manager_notes=notes, completed_at=stamp)
    else:
        ok = BookingRepository.transition(db, booking.id, CANCELLED, stamp, manager_notes=notes, cancelled_by="manager", cancelled_at=stamp)
    if not ok:
        db.rollback()
        raise BookingNotActive("Booking is no longer scheduled")
    if action == "cancel":
        SlotRepository.release_unit(db, booking.slot_id)
    log_audit(db, actor_id, f"cargo_booking.manager_{action}", "cargo_booking", booking.id, {"notes": notes})
    db.commit()
    db.refresh(booking)
    logger.info("booking %s %s by manager %s", booking.id, booking.status, actor_id)

    if action == "cancel":
        queue_email(
            db,
            booking.contact_email,
            f"FELKA - cargo booking cancelled ({booking.date_str} {booking.time_slot})",
            f"Hello {booking.contact_person},\n\nYour cargo booking {booking.id} was cancelled by FELKA."
            + (f"\nNotes: {notes}" if notes else ""),
            booking.id,
        )
    return booking
