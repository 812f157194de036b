import threading
import time
from datetime import timedelta

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from felka.core.errors import (
    BookingNotActive,
    CancellationWindowClosed,
    NotFoundError,
    PolicyViolation,
    SlotNotBookable,
    ValidationError,
)
from felka.db.base import Base
from felka.db.session import make_engine, make_session_factory
from felka.models.audit_log import AuditLog
from felka.models.cargo_booking import CANCELLED, COMPLETED, SCHEDULED, CargoBooking
from felka.models.email_log import EmailLog
from felka.models.schedule_slot import ScheduleSlot
from felka.repositories.slot_repository import SlotRepository
from felka.schemas.external_person import ExternalPersonIn
from felka.schemas.scheduling import BookingCreate, SlotIn
from felka.services import booking_service, external_person_service, slot_service
from felka.services.availability_policy import is_bookable, slot_start

from conftest import FUTURE_MONDAY


def _slot(db, capacity=5, time_slot="10:00", date_str=FUTURE_MONDAY):
    return slot_service.create_slot(db, SlotIn(date=date_str, timeSlot=time_slot, maxCapacity=capacity), "admin")


def _book(db, slot, **overrides):
    fields = {
        "slotId": slot.id,
        "companyName": "Acme Logistica",
        "contactPerson": "Maria Souza",
        "contactEmail": "maria@acme.test",
    }
    fields.update(overrides)
    return booking_service.create_booking(db, BookingCreate(**fields), "client-1", "client-1")


def test_create_booking_reserves_one_unit(db):
    slot = _slot(db)
    booking = _book(db, slot)

    db.refresh(slot)
    assert booking.status == SCHEDULED
    assert booking.slot_id == slot.id
    assert (booking.date_str, booking.time_slot) == (FUTURE_MONDAY, "10:00")
    assert slot.current_bookings == 1
    assert db.query(AuditLog).filter_by(entity_id=booking.id, action="cargo_booking.create").count() == 1
    email = db.query(EmailLog).filter_by(related_booking_id=booking.id).one()
    assert email.status == "logged"
    assert email.to_email == "maria@acme.test"


def test_create_booking_by_date_and_time(db):
    slot = _slot(db, time_slot="13:00")
    booking = _book(db, slot, slotId=None, date=FUTURE_MONDAY, timeSlot="13:00")
    assert booking.slot_id == slot.id


def test_create_booking_requires_contact_fields(db):
    slot = _slot(db)
    with pytest.raises(ValidationError) as exc:
        _book(db, slot, contactEmail="  ")
    assert "contactEmail" in exc.value.message
    db.refresh(slot)
    assert slot.current_bookings == 0


def test_create_booking_requires_a_slot_reference(db):
    with pytest.raises(ValidationError):
        _book(db, _slot(db), slotId=None)


def test_create_booking_unknown_slot(db):
    with pytest.raises(NotFoundError):
        _book(db, _slot(db), slotId="missing")


def test_blocked_slot_is_not_bookable(db):
    slot = _slot(db)
    slot_service.block_slots(db, [slot.id], "admin")
    with pytest.raises(SlotNotBookable):
        _book(db, slot)


def test_manager_complete_keeps_occupancy(db):
    slot = _slot(db)
    booking = _book(db, slot)

    done = booking_service.manager_action(db, booking.id, "complete", "loaded ok", "manager-1")

    db.refresh(slot)
    assert done.status == COMPLETED
    assert done.completed_at is not None
    assert done.manager_notes == "loaded ok"
    assert slot.current_bookings == 1


def test_manager_cancel_releases_one_unit(db):
    slot = _slot(db)
    _book(db, slot)
    booking = _book(db, slot, contactEmail="joao@acme.test")

    cancelled = booking_service.manager_action(db, booking.id, "cancel", "", "manager-1")

    db.refresh(slot)
    assert cancelled.status == CANCELLED
    assert cancelled.cancelled_by == "manager"
    assert slot.current_bookings == 1


def test_manager_action_rejects_unknown_action(db):
    booking = _book(db, _slot(db))
    with pytest.raises(ValidationError):
        booking_service.manager_action(db, booking.id, "archive", "", "manager-1")


def test_manager_action_on_terminal_booking(db):
    booking = _book(db, _slot(db))
    booking_service.manager_action(db, booking.id, "complete", "", "manager-1")
    with pytest.raises(BookingNotActive):
        booking_service.manager_action(db, booking.id, "cancel", "", "manager-1")


def test_manager_cancel_ignores_cancellation_window(db):
    slot = _slot(db, date_str="2020-01-06")
    booking = _book(db, slot)
    cancelled = booking_service.manager_action(db, booking.id, "cancel", "no truck", "manager-1")
    assert cancelled.status == CANCELLED


def test_second_cancel_does_not_decrement_again(db):
    slot = _slot(db)
    _book(db, slot)
    booking = _book(db, slot, contactEmail="joao@acme.test")

    booking_service.cancel_booking(db, booking.id, "plans changed", "client-1")
    with pytest.raises(BookingNotActive) as exc:
        booking_service.cancel_booking(db, booking.id, "again", "client-1")

    assert exc.value.status_code == 409
    db.refresh(slot)
    assert slot.current_bookings == 1


def test_cancel_requires_reason(db):
    booking = _book(db, _slot(db))
    with pytest.raises(ValidationError):
        booking_service.cancel_booking(db, booking.id, "   ", "client-1")


def test_cancel_unknown_booking(db):
    with pytest.raises(NotFoundError):
        booking_service.cancel_booking(db, "missing", "test", "client-1")


def test_cancel_inside_window_is_rejected(db):
    slot = _slot(db)
    booking = _book(db, slot)
    now = slot_start(booking.date_str, booking.time_slot) - timedelta(hours=2, minutes=59, seconds=59)

    with pytest.raises(CancellationWindowClosed) as exc:
        booking_service.cancel_booking(db, booking.id, "late", "client-1", now=now)

    assert exc.value.status_code == 403
    db.refresh(slot)
    assert slot.current_bookings == 1
    assert booking_service.get_booking(db, booking.id).status == SCHEDULED


def test_cancel_at_window_boundary(db):
    slot = _slot(db)
    booking = _book(db, slot)
    now = slot_start(booking.date_str, booking.time_slot) - timedelta(hours=3)

    cancelled = booking_service.cancel_booking(db, booking.id, "test", "client-1", now=now)

    assert cancelled.status == CANCELLED
    assert cancelled.cancelled_by == "requester"
    assert cancelled.cancellation_reason == "test"


def test_capacity_one_end_to_end(db):
    slot = _slot(db, capacity=1)
    first = _book(db, slot)
    db.refresh(slot)
    assert first.status == SCHEDULED
    assert slot.current_bookings == 1

    with pytest.raises(SlotNotBookable):
        _book(db, slot, contactEmail="other@acme.test")

    now = slot_start(slot.date_str, slot.time_slot) - timedelta(hours=5)
    cancelled = booking_service.cancel_booking(db, first.id, "test", "client-1", now=now)
    db.refresh(slot)
    assert cancelled.status == CANCELLED
    assert slot.current_bookings == 0
    assert is_bookable(slot)

    assert _book(db, slot, contactEmail="other@acme.test").status == SCHEDULED


def test_list_client_bookings(db):
    slot = _slot(db)
    _book(db, slot)
    assert len(booking_service.list_client_bookings(db, "client-1")) == 1
    assert booking_service.list_client_bookings(db, "someone-else") == []
    with pytest.raises(ValidationError):
        booking_service.list_client_bookings(db, "")


def test_list_bookings_filters(db):
    slot = _slot(db)
    a = _book(db, slot)
    _book(db, slot, contactEmail="b@acme.test")
    booking_service.manager_action(db, a.id, "complete", "", "manager-1")

    assert len(booking_service.list_bookings(db)) == 2
    assert [b.id for b in booking_service.list_bookings(db, status=COMPLETED)] == [a.id]
    assert booking_service.list_bookings(db, date_str="2031-01-01") == []


def test_booking_for_external_person_uses_registry_contact(db):
    person = external_person_service.create_person(db, ExternalPersonIn(
        fullName="Carlos Lima", email="carlos@cliente.test", companyName="Cliente SA", phone="11 4000-0000",
    ), "admin")
    booking = _book(db, _slot(db), companyName="", contactPerson="", contactEmail="", externalPersonId=person.id)

    assert booking.company_name == "Cliente SA"
    assert booking.contact_person == "Carlos Lima"
    assert booking.contact_email == "carlos@cliente.test"
    assert booking.external_person_id == person.id


def test_blocked_external_person_cannot_book(db):
    person = external_person_service.create_person(db, ExternalPersonIn(
        fullName="Carlos Lima", email="carlos@cliente.test", companyName="Cliente SA",
    ), "admin")
    external_person_service.set_status(db, person.id, "blocked", "admin")
    slot = _slot(db)

    with pytest.raises(PolicyViolation):
        _book(db, slot, externalPersonId=person.id)
    db.refresh(slot)
    assert slot.current_bookings == 0


def test_concurrent_bookings_never_oversell(tmp_path, monkeypatch):
    engine = make_engine(f"sqlite+pysqlite:///{tmp_path / 'race.db'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    # notifications are not under test here; keep the writes to slot + booking
    monkeypatch.setattr(booking_service, "queue_email", lambda *args, **kwargs: "")

    capacity = 3
    setup = factory()
    slot_id = slot_service.create_slot(setup, SlotIn(date=FUTURE_MONDAY, timeSlot="10:00", maxCapacity=capacity), "admin").id
    setup.close()

    attempts = 10
    barrier = threading.Barrier(attempts)
    results = []
    lock = threading.Lock()

    def worker(n):
        barrier.wait()
        body = BookingCreate(slotId=slot_id, companyName="Acme", contactPerson=f"Driver {n}", contactEmail=f"d{n}@acme.test")
        while True:
            session = factory()
            try:
                booking_service.create_booking(session, body, f"client-{n}", f"client-{n}")
                outcome = "booked"
            except SlotNotBookable:
                outcome = "rejected"
            except OperationalError:
                # sqlite lock contention, nothing was committed
                session.rollback()
                continue
            finally:
                session.close()
            with lock:
                results.append(outcome)
            return

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(attempts)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    check = factory()
    slot = check.get(ScheduleSlot, slot_id)
    assert results.count("booked") == capacity
    assert results.count("rejected") == attempts - capacity
    assert slot.current_bookings == capacity
    check.close()
    engine.dispose()


def test_release_is_floored_at_zero(db):
    slot = _slot(db)
    by_manager = _book(db, slot)
    by_requester = _book(db, slot, contactEmail="joao@acme.test")
    # occupancy already back at zero, e.g. after a manual correction
    db.execute(update(ScheduleSlot).where(ScheduleSlot.id == slot.id).values(current_bookings=0))
    db.commit()

    assert booking_service.manager_action(db, by_manager.id, "cancel", "", "manager-1").status == CANCELLED
    db.refresh(slot)
    assert slot.current_bookings == 0

    assert booking_service.cancel_booking(db, by_requester.id, "plans changed", "client-1").status == CANCELLED
    db.refresh(slot)
    assert slot.current_bookings == 0


def _memory_session_factory():
    # the default DATABASE_URL: one shared in-memory connection
    engine = make_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    return engine, make_session_factory(engine)


def test_rejected_booking_does_not_undo_another_sessions_reservation():
    engine, factory = _memory_session_factory()
    setup = factory()
    slot_id = _slot(setup, capacity=1).id
    blocked_id = slot_service.create_slot(
        setup, SlotIn(date=FUTURE_MONDAY, timeSlot="11:00", isAvailable=False), "admin"
    ).id
    setup.close()

    reserved = threading.Event()
    outcomes = []

    def holder():
        session = factory()
        try:
            outcomes.append(("reserved", SlotRepository.reserve_unit(session, slot_id)))
            reserved.set()
            # let the other request reach the database while this transaction is open
            time.sleep(0.3)
            session.commit()
        finally:
            session.close()

    def rejected():
        reserved.wait(5)
        session = factory()
        try:
            booking_service.create_booking(session, BookingCreate(
                slotId=blocked_id, companyName="Acme", contactPerson="Ana", contactEmail="ana@acme.test",
            ), "client-2", "client-2")
            outcomes.append(("booked", True))
        except SlotNotBookable:
            outcomes.append(("booked", False))
        finally:
            session.close()

    threads = [threading.Thread(target=holder), threading.Thread(target=rejected)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(10)

    assert sorted(outcomes) == [("booked", False), ("reserved", True)]
    check = factory()
    try:
        assert check.get(ScheduleSlot, slot_id).current_bookings == 1
        with pytest.raises(SlotNotBookable):
            _book(check, check.get(ScheduleSlot, slot_id))
    finally:
        check.close()
        engine.dispose()


def test_concurrent_bookings_on_default_memory_database():
    engine, factory = _memory_session_factory()
    setup = factory()
    capacity = 3
    slot_id = _slot(setup, capacity=capacity).id
    blocked_id = slot_service.create_slot(
        setup, SlotIn(date=FUTURE_MONDAY, timeSlot="11:00", isAvailable=False), "admin"
    ).id
    setup.close()

    attempts = 12
    barrier = threading.Barrier(attempts)
    results = []
    errors = []
    lock = threading.Lock()

    def worker(n):
        # odd workers aim at the blocked slot, so rejections and rollbacks interleave with reservations
        target = blocked_id if n % 2 else slot_id
        body = BookingCreate(slotId=target, companyName="Acme", contactPerson=f"Driver {n}", contactEmail=f"d{n}@acme.test")
        barrier.wait()
        session = factory()
        try:
            booking_service.create_booking(session, body, f"client-{n}", f"client-{n}")
            outcome = "booked"
        except SlotNotBookable:
            outcome = "rejected"
        except Exception as e:
            with lock:
                errors.append(e)
            return
        finally:
            session.close()
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(attempts)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(30)

    assert errors == []
    assert results.count("booked") == capacity
    check = factory()
    try:
        assert check.get(ScheduleSlot, slot_id).current_bookings == capacity
        active = check.query(CargoBooking).filter_by(slot_id=slot_id, status=SCHEDULED).count()
        assert active == capacity
        assert check.query(CargoBooking).filter_by(slot_id=blocked_id).count() == 0
    finally:
        check.close()
        engine.dispose()
