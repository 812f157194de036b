from datetime import date, timedelta
import logging

from sqlalchemy.orm import Session
from sqlalchemy.exc import OperationalError, ProgrammingError

from felka.core.errors import DuplicateSlot
from felka.db.session import SessionLocal
from felka.services.email_service import process_pending_emails
from felka.services.slot_service import create_week_slots

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"


def next_monday(today: date | None = None) -> date:
    today = today or date.today()
    return today + timedelta(days=7 - today.weekday())


def ensure_next_week_slots(today: date | None = None, db: Session | None = None) -> dict:
    """Generate the slots of the coming Monday-Sunday week; existing ones are kept."""
    own_session = db is None
    if own_session:
        db = SessionLocal()
    try:
        start = next_monday(today)
        try:
            created = create_week_slots(db, start.isoformat(), "", SYSTEM_ACTOR)
        except (ProgrammingError, OperationalError):
            # DB not migrated yet; don't crash the worker.
            db.rollback()
            return {"skipped": True, "reason": "missing_tables"}
        except DuplicateSlot:
            # an admin generated the same week at the same moment
            return {"weekOf": start.isoformat(), "slotsCreated": 0}
        return {"weekOf": start.isoformat(), "slotsCreated": len(created)}
    finally:
        if own_session:
            db.close()


def process_email_queue(limit: int = 50, db: Session | None = None) -> dict:
    """Retry notification e-mails that are still queued or failed."""
    own_session = db is None
    if own_session:
        db = SessionLocal()
    try:
        try:
            result = process_pending_emails(db, limit=limit)
        except (ProgrammingError, OperationalError):
            db.rollback()
            return {"skipped": True, "reason": "missing_tables"}
        if result.get("processed"):
            logger.info("email queue: %s", result)
        return result
    finally:
        if own_session:
            db.close()
