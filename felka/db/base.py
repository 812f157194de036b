# Import all models so Base.metadata knows every table (create_all, Alembic)
from felka.db.session import Base  # noqa: F401
from felka.models.user import User  # noqa: F401
from felka.models.schedule_slot import ScheduleSlot  # noqa: F401
from felka.models.cargo_booking import CargoBooking  # noqa: F401
from felka.models.external_person import ExternalPerson  # noqa: F401
from felka.models.audit_log import AuditLog  # noqa: F401
from felka.models.email_log import EmailLog  # noqa: F401
