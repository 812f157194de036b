import logging
import uuid
from datetime import date, timedelta

from sqlalchemy.orm import Session
from sqlalchemy.exc import OperationalError, ProgrammingError

from felka.db.session import SessionLocal
from felka.core.security import hash_password
from felka.models.user import User
from felka.models.schedule_slot import ScheduleSlot
from felka.services.slot_service import create_week_slots

logger = logging.getLogger(__name__)


def ensure_user(db: Session, email: str, password: str, role: str, name: str, company: str = ""):
    u = db.query(User).filter(User.email == email).first()
    if u:
        return u
    u = User(
        id=str(uuid.uuid4()),
        email=email,
        full_name=name,
        role=role,
        company_name=company,
        password_hash=hash_password(password),
        is_active=True,
    )
    db.add(u)
    db.commit()
    return u


def run(db=None):
    own_session = db is None
    if own_session:
        db = SessionLocal()
    try:
        # If migrations haven't been applied yet, seeding must not crash the API.
        try:
            db.query(User.id).first()
        except (ProgrammingError, OperationalError):
            db.rollback()
            logger.warning("users table not found yet, skipping seed (run alembic upgrade head)")
            return

        admin = ensure_user(db, "admin@felka.com.br", "admin12345", "admin", "Administrador")
        ensure_user(db, "gestor@felka.com.br", "gestor12345", "manager", "Gestor de Carreamento")
        ensure_user(db, "cliente@felka.com.br", "cliente12345", "client", "Cliente Demo", company="Cliente Demo Ltda")

        # slots for the current week (Monday) and the next one
        if not db.query(ScheduleSlot.id).first():
            monday = date.today() - timedelta(days=date.today().weekday())
            for start in (monday, monday + timedelta(days=7)):
                created = create_week_slots(db, start.isoformat(), "", admin.id)
                logger.info("seeded %d slots for week of %s", len(created), start.isoformat())
    finally:
        if own_session:
            db.close()
