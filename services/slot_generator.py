"""
Slot generation per station and day.

Produces a fixed partition of the station's business day:

  business day = station.operating_hours when it reads "HH:MM-HH:MM",
                 otherwise SLOT_DAY_START..SLOT_DAY_END from config
  slot length  = SLOT_DURATION_MINUTES

A trailing remainder shorter than one slot is dropped, so slots of a
station-day never overlap and never run past the end of the day.
"""
from datetime import date, datetime, time, timedelta

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from models import db
from models.booking import Booking
from models.slot import Slot
from models.station import Station
from services.booking_status import BookingStatus
from services.errors import (
    AlreadyInitialized,
    HasActiveBookings,
    NotFound,
    StationInactive,
    ValidationError,
)
from services.window_policy import current_time

DEFAULT_DAY_START = "06:00"
DEFAULT_DAY_END = "22:00"
DEFAULT_DURATION_MINUTES = 60

DEINIT_CANCEL_REASON = "Slots deinitialized"

CANCELABLE_STATUSES = [BookingStatus.PENDING.value, BookingStatus.APPROVED.value]


def time_str_to_minutes(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight; "24:00" is allowed as end of day."""
    try:
        hours, minutes = value.strip().split(":")
        hours, minutes = int(hours), int(minutes)
    except (AttributeError, ValueError):
        raise ValidationError(f"Invalid time '{value}'. Use HH:MM")
    if not (0 <= minutes < 60) or not (0 <= hours <= 24) or (hours == 24 and minutes):
        raise ValidationError(f"Invalid time '{value}'. Use HH:MM")
    return hours * 60 + minutes


def parse_operating_hours(value):
    """Return (start_minutes, end_minutes) for "HH:MM-HH:MM", or None if it does not parse."""
    if not value or "-" not in value:
        return None
    parts = value.split("-")
    if len(parts) != 2 or ":" not in parts[0] or ":" not in parts[1]:
        return None
    try:
        start, end = time_str_to_minutes(parts[0]), time_str_to_minutes(parts[1])
    except ValidationError:
        return None
    if end <= start:
        return None
    return start, end


def parse_date(value) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat((value or "").strip())
    except ValueError:
        raise ValidationError("Invalid date. Use YYYY-MM-DD")


def _business_window(station: Station):
    hours = parse_operating_hours(station.operating_hours)
    if hours:
        return hours
    start = time_str_to_minutes(current_app.config.get("SLOT_DAY_START", DEFAULT_DAY_START))
    end = time_str_to_minutes(current_app.config.get("SLOT_DAY_END", DEFAULT_DAY_END))
    if end <= start:
        raise ValidationError("SLOT_DAY_END must be after SLOT_DAY_START")
    return start, end


def plan_day(day: date, start_minutes: int, end_minutes: int, duration_minutes: int):
    """Yield (start, end) datetimes partitioning [start, end) into equal slots."""
    if duration_minutes <= 0:
        raise ValidationError("Slot duration must be positive")
    midnight = datetime.combine(day, time.min)
    cursor = start_minutes
    while cursor + duration_minutes <= end_minutes:
        yield (
            midnight + timedelta(minutes=cursor),
            midnight + timedelta(minutes=cursor + duration_minutes),
        )
        cursor += duration_minutes


def _get_station(station_id: int) -> Station:
    station = db.session.get(Station, station_id)
    if station is None:
        raise NotFound("Station not found")
    return station


def _slots_query(station_id: int, day: date):
    return Slot.query.filter(Slot.station_id == station_id, Slot.slot_date == day)


def initialize(station_id: int, day) -> list:
    """Generate and persist the day's slots for a station; fails if any already exist."""
    day = parse_date(day)
    station = _get_station(station_id)
    if not station.is_active:
        raise StationInactive("Cannot initialize slots for an inactive station")

    if _slots_query(station_id, day).first() is not None:
        raise AlreadyInitialized(stationId=station_id, date=day.isoformat())

    start, end = _business_window(station)
    duration = int(current_app.config.get("SLOT_DURATION_MINUTES", DEFAULT_DURATION_MINUTES))

    slots = [
        Slot(station_id=station_id, slot_date=day, start_time=st, end_time=et, is_booked=False)
        for st, et in plan_day(day, start, end, duration)
    ]
    if not slots:
        raise ValidationError(
            f"Business day is shorter than one {duration} minute slot",
            stationId=station_id,
            date=day.isoformat(),
        )

    db.session.add_all(slots)
    try:
        db.session.commit()
    except IntegrityError:
        # a concurrent initializer got there first
        db.session.rollback()
        raise AlreadyInitialized(stationId=station_id, date=day.isoformat())
    except Exception:
        db.session.rollback()
        raise
    return slots


class SlotListing:
    """Restartable, lazily-evaluated view of one station-day's slots ordered by start time."""

    def __init__(self, station_id: int, day: date, only_available: bool = False, batch_size: int = 100):
        self.station_id = station_id
        self.day = day
        self.only_available = only_available
        self.batch_size = batch_size

    def _query(self):
        q = _slots_query(self.station_id, self.day)
        if self.only_available:
            q = q.filter(Slot.is_booked.is_(False))
        return q.order_by(Slot.start_time.asc())

    def __iter__(self):
        # each iteration runs a fresh query
        return iter(self._query().yield_per(self.batch_size))

    def count(self) -> int:
        return self._query().count()


def list_slots(station_id: int, day, only_available: bool = False) -> SlotListing:
    day = parse_date(day)
    _get_station(station_id)
    return SlotListing(station_id, day, only_available=only_available)


def _remove_slots(slot_ids: list, force: bool) -> int:
    """Delete slots by id inside the current transaction, honouring the booked/force rule."""
    if not slot_ids:
        return 0

    booked = [
        s.id for s in Slot.query.filter(Slot.id.in_(slot_ids), Slot.is_booked.is_(True)).all()
    ]
    if booked and not force:
        raise HasActiveBookings(slotIds=booked)

    now = current_time()
    if booked:
        # only bookings that could still be canceled are; Confirmed/Completed keep their status
        db.session.execute(
            update(Booking)
            .where(Booking.slot_id.in_(booked), Booking.status.in_(CANCELABLE_STATUSES))
            .values(
                status=BookingStatus.CANCELED.value,
                canceled_at=now,
                cancel_reason=DEINIT_CANCEL_REASON,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )

    # bookings outlive their slot record; keep station and reservation_time as history
    db.session.execute(
        update(Booking)
        .where(Booking.slot_id.in_(slot_ids))
        .values(slot_id=None, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    removed = (
        Slot.query
        .filter(Slot.id.in_(slot_ids))
        .delete(synchronize_session=False)
    )
    return removed


def deinitialize(station_id: int, day, force: bool = False) -> int:
    """Remove a station-day's slots. Booked slots block removal unless force=True."""
    day = parse_date(day)
    _get_station(station_id)

    slot_ids = [s.id for s in _slots_query(station_id, day).all()]
    try:
        removed = _remove_slots(slot_ids, force)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    db.session.expire_all()
    return removed


def delete_slot(slot_id: int, force: bool = False) -> int:
    if db.session.get(Slot, slot_id) is None:
        raise NotFound("Slot not found")

    try:
        removed = _remove_slots([slot_id], force)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    db.session.expire_all()
    return removed
