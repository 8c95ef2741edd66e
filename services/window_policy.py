from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from flask import current_app

# Minimum lead time before a reservation for it to remain cancellable
CANCEL_WINDOW = timedelta(hours=3)

DEFAULT_TIMEZONE = "UTC"


def current_time(tz_name: str = None) -> datetime:
    """Wall-clock time in the stations' timezone, naive like the stored slot times."""
    if tz_name is None:
        tz_name = current_app.config.get("TIMEZONE", DEFAULT_TIMEZONE)
    return datetime.now(ZoneInfo(tz_name)).replace(tzinfo=None)


def can_cancel(reservation_time: datetime, now: datetime) -> bool:
    return reservation_time - now >= CANCEL_WINDOW


def can_reopen(reservation_time: datetime, now: datetime) -> bool:
    return reservation_time > now


def hours_until(reservation_time: datetime, now: datetime) -> float:
    """Signed hours left until the reservation (negative once it has passed)."""
    return (reservation_time - now).total_seconds() / 3600
