from sqlalchemy import String, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from felka.db.session import Base

SCHEDULED = "scheduled"
COMPLETED = "completed"
CANCELLED = "cancelled"
TERMINAL_STATUSES = (COMPLETED, CANCELLED)

class CargoBooking(Base):
    __tablename__ = "cargo_bookings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    slot_id: Mapped[str] = mapped_column(String(36), index=True)
    # copy of the slot schedule, kept for listings
    date_str: Mapped[str] = mapped_column(String(10), index=True)
    time_slot: Mapped[str] = mapped_column(String(5))

    client_id: Mapped[str] = mapped_column(String(36), index=True, default="guest")
    external_person_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    company_name: Mapped[str] = mapped_column(String(200))
    contact_person: Mapped[str] = mapped_column(String(200))
    contact_email: Mapped[str] = mapped_column(String(320))
    contact_phone: Mapped[str] = mapped_column(String(40), default="")
    manager: Mapped[str] = mapped_column(String(200), default="")

    status: Mapped[str] = mapped_column(String(20), default=SCHEDULED, index=True)  # scheduled, completed, cancelled
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    manager_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_by: Mapped[str | None] = mapped_column(String(20), nullable=True)  # requester, manager

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
