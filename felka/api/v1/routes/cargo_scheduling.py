from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from felka.db.session import get_db
from felka.api.deps import MANAGER_ROLES, get_optional_user, require_roles
from felka.api.errors import service_errors
from felka.models.cargo_booking import CargoBooking, SCHEDULED
from felka.models.schedule_slot import ScheduleSlot
from felka.models.user import User
from felka.schemas.scheduling import (
    AuditEntryOut,
    BlockSlotsOut,
    BookingCreate,
    BookingDetailOut,
    BookingOut,
    CancelIn,
    CancelOut,
    CreateWeekIn,
    CreateWeekOut,
    ManagerActionIn,
    SlotIdsIn,
    SlotIn,
    SlotOut,
    UnblockSlotsOut,
)
from felka.services import booking_service, slot_service
from felka.services.audit_service import list_audit
from felka.services.availability_policy import is_bookable, is_cancellable

router = APIRouter(prefix="/cargo-scheduling", tags=["cargo-scheduling"])


def _slot_out(s: ScheduleSlot) -> SlotOut:
    return SlotOut(
        id=s.id,
        date=s.date_str,
        timeSlot=s.time_slot,
        serviceType=s.service_type,
        isAvailable=s.is_available,
        maxCapacity=s.max_capacity,
        currentBookings=s.current_bookings,
        bookable=is_bookable(s),
    )


def _booking_fields(b: CargoBooking) -> dict:
    return {
        "id": b.id,
        "slotId": b.slot_id,
        "date": b.date_str,
        "timeSlot": b.time_slot,
        "clientId": b.client_id,
        "externalPersonId": b.external_person_id,
        "companyName": b.company_name,
        "contactPerson": b.contact_person,
        "contactEmail": b.contact_email,
        "contactPhone": b.contact_phone or "",
        "manager": b.manager or "",
        "status": b.status,
        "notes": b.notes,
        "managerNotes": b.manager_notes,
        "cancellationReason": b.cancellation_reason,
        "cancelledBy": b.cancelled_by,
        "createdAt": b.created_at.isoformat(),
        "cancelledAt": b.cancelled_at.isoformat() if b.cancelled_at else None,
        "completedAt": b.completed_at.isoformat() if b.completed_at else None,
        # lets the UI disable the action; the server still enforces it on cancel
        "cancellable": b.status == SCHEDULED and is_cancellable(b),
    }


def _booking_out(b: CargoBooking) -> BookingOut:
    return BookingOut(**_booking_fields(b))


def _actor_id(user: User | None, fallback: str = "") -> str:
    return user.id if user else (fallback or "guest")


# -------------------------
# SLOTS
# -------------------------
@router.get("/slots", response_model=list[SlotOut])
def list_slots(date: str = "", all_: bool = Query(False, alias="all"), db: Session = Depends(get_db)):
    """Slots for one date, or every slot with all=true."""
    with service_errors(db):
        if all_:
            slots = slot_service.get_all_slots(db)
        elif date:
            slots = slot_service.get_slots(db, date)
        else:
            raise HTTPException(status_code=400, detail="Provide date or all=true")
    return [_slot_out(s) for s in slots]


@router.post("/slots", response_model=SlotOut, status_code=201)
def create_slot(body: SlotIn, db: Session = Depends(get_db), user: User = Depends(require_roles(*MANAGER_ROLES))):
    with service_errors(db):
        slot = slot_service.create_slot(db, body, user.id)
    return _slot_out(slot)


@router.post("/create-week", response_model=CreateWeekOut, status_code=201)
def create_week(body: CreateWeekIn, db: Session = Depends(get_db), user: User = Depends(require_roles(*MANAGER_ROLES))):
    with service_errors(db):
        slots = slot_service.create_week_slots(db, body.startDate, body.serviceType, user.id)
    return CreateWeekOut(slotsCreated=len(slots), slots=[_slot_out(s) for s in slots])


@router.post("/block-slots", response_model=BlockSlotsOut)
def block_slots(body: SlotIdsIn, db: Session = Depends(get_db), user: User = Depends(require_roles(*MANAGER_ROLES))):
    with service_errors(db):
        blocked = slot_service.block_slots(db, body.slotIds, user.id)
    return BlockSlotsOut(slotsBlocked=len(blocked), blockedSlots=[_slot_out(s) for s in blocked])


@router.post("/unblock-slots", response_model=UnblockSlotsOut)
def unblock_slots(body: SlotIdsIn, db: Session = Depends(get_db), user: User = Depends(require_roles(*MANAGER_ROLES))):
    with service_errors(db):
        unblocked = slot_service.unblock_slots(db, body.slotIds, user.id)
    return UnblockSlotsOut(slotsUnblocked=len(unblocked), unblockedSlots=[_slot_out(s) for s in unblocked])


# -------------------------
# BOOKINGS
# -------------------------
@router.post("/book", response_model=BookingOut, status_code=201)
def book(body: BookingCreate, db: Session = Depends(get_db), user: User | None = Depends(get_optional_user)):
    # managers book on behalf of the client they name; everyone else books for themselves
    if user and (user.role not in MANAGER_ROLES or not body.clientId):
        client_id = user.id
    else:
        client_id = body.clientId or "guest"
    with service_errors(db):
        booking = booking_service.create_booking(db, body, client_id, _actor_id(user, client_id))
    return _booking_out(booking)


@router.get("/my-bookings", response_model=list[BookingOut])
def my_bookings(clientId: str = "", db: Session = Depends(get_db), user: User | None = Depends(get_optional_user)):
    client_id = clientId or (user.id if user else "")
    with service_errors(db):
        bookings = booking_service.list_client_bookings(db, client_id)
    return [_booking_out(b) for b in bookings]


@router.get("/all-bookings", response_model=list[BookingOut])
def all_bookings(
    status: str = "",
    date: str = "",
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*MANAGER_ROLES)),
):
    with service_errors(db):
        bookings = booking_service.list_bookings(db, status=status, date_str=date)
    return [_booking_out(b) for b in bookings]


@router.get("/bookings/{booking_id}", response_model=BookingDetailOut)
def booking_detail(booking_id: str, db: Session = Depends(get_db)):
    with service_errors(db):
        b = booking_service.get_booking(db, booking_id)
        audit = list_audit(db, "cargo_booking", b.id)
    return BookingDetailOut(
        **_booking_fields(b),
        audit=[AuditEntryOut(at=a.created_at.isoformat(), action=a.action, actor=a.actor_user_id, details=a.details_json) for a in audit],
    )


@router.delete("/cancel/{booking_id}", response_model=CancelOut)
def cancel(booking_id: str, body: CancelIn | None = None, db: Session = Depends(get_db), user: User | None = Depends(get_optional_user)):
    with service_errors(db):
        booking = booking_service.cancel_booking(db, booking_id, body.reason if body else "", _actor_id(user))
    return CancelOut(message="Booking cancelled", booking=_booking_out(booking))


@router.patch("/manager-action/{booking_id}", response_model=BookingOut)
def manager_action(
    booking_id: str,
    body: ManagerActionIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*MANAGER_ROLES)),
):
    with service_errors(db):
        booking = booking_service.manager_action(db, booking_id, body.action, body.notes, user.id)
    return _booking_out(booking)
