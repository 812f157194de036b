"""
Availability rules for cargo slots and bookings.

Pure predicates: nothing here touches the database. Slot times are local
times in the configured business timezone (settings.TIMEZONE); ``now`` is an
aware datetime, naive values are taken as business-local time.
"""
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from felka.core.config import settings
from felka.core.errors import ValidationError


def business_tz() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def slot_start(date_str: str, time_slot: str) -> datetime:
    """Aware start datetime of a (date, HH:MM) slot."""
    try:
        naive = datetime.strptime(f"{date_str} {time_slot}", "%Y-%m-%d %H:%M")
    except (ValueError, TypeError):
        raise ValidationError(f"Invalid slot schedule: {date_str} {time_slot}")
    return naive.replace(tzinfo=business_tz())


def is_bookable(slot) -> bool:
    return bool(slot.is_available) and slot.current_bookings < slot.max_capacity


def time_until_start(booking, now: datetime | None = None) -> timedelta:
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=business_tz())
    return slot_start(booking.date_str, booking.time_slot) - now


def is_cancellable(booking, now: datetime | None = None, window_hours: int | None = None) -> bool:
    """True while the slot starts at least ``window_hours`` from now (inclusive)."""
    if window_hours is None:
        window_hours = settings.CANCELLATION_WINDOW_HOURS
    return time_until_start(booking, now) >= timedelta(hours=window_hours)
