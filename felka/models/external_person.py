from sqlalchemy import String, Integer, DateTime, Boolean, Text
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from felka.db.session import Base

class ExternalPerson(Base):
    __tablename__ = "external_persons"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    full_name: Mapped[str] = mapped_column(String(200))
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True)
    phone: Mapped[str] = mapped_column(String(40), default="")
    document: Mapped[str] = mapped_column(String(20), default="", index=True)  # CPF, digits only
    company_name: Mapped[str] = mapped_column(String(200), default="")
    external_company: Mapped[str] = mapped_column(String(200), default="")
    position: Mapped[str] = mapped_column(String(120), default="")
    person_type: Mapped[str] = mapped_column(String(20), index=True)  # client, contractor, provider
    status: Mapped[str] = mapped_column(String(20), default="active")  # active, inactive, blocked
    has_system_access: Mapped[bool] = mapped_column(Boolean, default=False)
    # comma-separated module ids, e.g. cargo-scheduling,access-control
    allowed_modules: Mapped[str] = mapped_column(Text, default="")
    access_level: Mapped[str] = mapped_column(String(20), default="basic")
    visit_count: Mapped[int] = mapped_column(Integer, default=0)
    last_visit_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
