from sqlalchemy import String, Integer, Boolean, DateTime, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from felka.db.session import Base

class ScheduleSlot(Base):
    __tablename__ = "schedule_slots"
    __table_args__ = (
        UniqueConstraint("date_str", "time_slot", name="uq_schedule_slot_date_time"),
        CheckConstraint("current_bookings >= 0 AND current_bookings <= max_capacity", name="ck_schedule_slot_occupancy"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    date_str: Mapped[str] = mapped_column(String(10), index=True)  # YYYY-MM-DD
    time_slot: Mapped[str] = mapped_column(String(5))  # HH:MM
    service_type: Mapped[str] = mapped_column(String(30), default="loading")
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)
    max_capacity: Mapped[int] = mapped_column(Integer, default=5)
    current_bookings: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
