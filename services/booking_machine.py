"""
Booking lifecycle.

    Pending --approve--> Approved --confirm--> Confirmed --complete--> Completed
       |                    |
       +------cancel--------+--> Canceled --reopen--> Pending

Every operation takes the acting AuthContext and the server clock reading
explicitly, commits, and returns the booking as stored.
"""
from collections import namedtuple
from datetime import datetime

from flask import current_app

from models import db
from models.booking import Booking
from models.slot import Slot
from models.station import Station
from models.user import User
from services import conflict_guard
from services.booking_status import BookingStatus
from services.errors import (
    CancellationWindowClosed,
    Forbidden,
    InvalidTransition,
    NotFound,
    ReopenWindowClosed,
    SlotUnavailable,
    StationInactive,
    ValidationError,
)
from services.window_policy import can_cancel, can_reopen, current_time
from utils.roles import BACKOFFICE, STATION_OPERATOR

# roles=None means "the booking's owner or Backoffice"
Transition = namedtuple("Transition", ["sources", "target", "roles"])

TRANSITIONS = {
    "approve": Transition(frozenset({BookingStatus.PENDING}), BookingStatus.APPROVED, (BACKOFFICE,)),
    "confirm": Transition(frozenset({BookingStatus.APPROVED}), BookingStatus.CONFIRMED, (STATION_OPERATOR,)),
    "complete": Transition(frozenset({BookingStatus.CONFIRMED}), BookingStatus.COMPLETED, (STATION_OPERATOR,)),
    "cancel": Transition(
        frozenset({BookingStatus.PENDING, BookingStatus.APPROVED}), BookingStatus.CANCELED, None
    ),
    "reopen": Transition(frozenset({BookingStatus.CANCELED}), BookingStatus.PENDING, None),
}

# roles that may see every booking, not just their own
STAFF_ROLES = (BACKOFFICE, STATION_OPERATOR)


def _now(now):
    return now or current_time()


def status_of(booking: Booking) -> BookingStatus:
    return BookingStatus(booking.status)


def _visible(actor, booking: Booking) -> bool:
    return actor.has_any(*STAFF_ROLES) or actor.owns(booking.user_id)


def get_booking(booking_id: int, actor) -> Booking:
    booking = db.session.get(Booking, booking_id)
    if booking is None or not _visible(actor, booking):
        raise NotFound("Booking not found")
    return booking


def list_bookings(actor, user_id: int = None, status=None, limit: int = None) -> list:
    q = Booking.query
    if not actor.has_any(*STAFF_ROLES):
        q = q.filter(Booking.user_id == actor.user_id)
    elif user_id is not None:
        q = q.filter(Booking.user_id == user_id)

    if status:
        parsed = BookingStatus.parse(status)
        if parsed is None:
            raise ValidationError(f"Unknown status '{status}'")
        q = q.filter(Booking.status == parsed.value)

    if limit is None:
        limit = current_app.config.get("MAX_LIST_RESULTS", 500)
    return q.order_by(Booking.created_at.desc()).limit(limit).all()


def create_booking(actor, station_id: int, slot_id: int, user_id: int = None, now: datetime = None) -> Booking:
    """Claim the slot and create its Pending booking in one transaction."""
    now = _now(now)

    owner_id = actor.user_id
    if user_id is not None and user_id != actor.user_id:
        if not actor.is_backoffice:
            raise Forbidden("Cannot book on behalf of another user")
        owner = db.session.get(User, user_id)
        if owner is None or not owner.is_active:
            raise NotFound("User not found")
        owner_id = owner.id

    station = db.session.get(Station, station_id)
    if station is None:
        raise NotFound("Station not found")
    if not station.is_active:
        raise StationInactive("Station is not accepting bookings")

    slot = db.session.get(Slot, slot_id)
    if slot is None:
        raise NotFound("Slot not found")
    if slot.station_id != station.id:
        raise ValidationError("Slot does not belong to station")
    if slot.start_time <= now:
        raise ValidationError("Cannot book past/started slots")

    booking = Booking(
        user_id=owner_id,
        station_id=station.id,
        slot_id=slot.id,
        reservation_time=slot.start_time,
        status=BookingStatus.PENDING.value,
        created_at=now,
        updated_at=now,
    )
    return conflict_guard.claim(slot.id, booking)


def _authorize(actor, booking: Booking, transition: Transition) -> None:
    if transition.roles is None:
        if not (actor.is_backoffice or actor.owns(booking.user_id)):
            raise Forbidden("Only the booking owner or Backoffice can do this")
    elif not actor.has_any(*transition.roles):
        raise Forbidden()


def _apply(operation: str, booking_id: int, actor, now: datetime, reason: str = None) -> Booking:
    transition = TRANSITIONS[operation]
    booking = get_booking(booking_id, actor)
    _authorize(actor, booking, transition)

    current = status_of(booking)
    if current not in transition.sources:
        raise InvalidTransition(current, transition.target)

    try:
        if operation == "cancel":
            if not can_cancel(booking.reservation_time, now):
                raise CancellationWindowClosed()
            if booking.slot_id is not None:
                conflict_guard.release(booking.slot_id)
            booking.canceled_at = now
            booking.cancel_reason = reason
        elif operation == "reopen":
            if not can_reopen(booking.reservation_time, now):
                raise ReopenWindowClosed()
            if booking.slot_id is None:
                raise SlotUnavailable("Slot was removed; make a new booking")
            conflict_guard.claim_slot(booking.slot_id)
            booking.canceled_at = None
            booking.cancel_reason = None

        booking.status = transition.target.value
        booking.updated_at = now
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return booking


def approve(booking_id: int, actor, now: datetime = None) -> Booking:
    return _apply("approve", booking_id, actor, _now(now))


def confirm(booking_id: int, actor, now: datetime = None) -> Booking:
    return _apply("confirm", booking_id, actor, _now(now))


def complete(booking_id: int, actor, now: datetime = None) -> Booking:
    return _apply("complete", booking_id, actor, _now(now))


def cancel(booking_id: int, actor, now: datetime = None, reason: str = None) -> Booking:
    return _apply("cancel", booking_id, actor, _now(now), reason=reason)


def reopen(booking_id: int, actor, now: datetime = None) -> Booking:
    return _apply("reopen", booking_id, actor, _now(now))


def operation_for(current: BookingStatus, target: BookingStatus):
    """Name of the single transition leading from current to target, or None."""
    for name, transition in TRANSITIONS.items():
        if current in transition.sources and transition.target is target:
            return name
    return None


def update_status(booking_id: int, target, actor, now: datetime = None, reason: str = None) -> Booking:
    wanted = BookingStatus.parse(target)
    if wanted is None:
        raise ValidationError(f"Unknown status '{target}'")

    booking = get_booking(booking_id, actor)
    current = status_of(booking)
    operation = operation_for(current, wanted)
    if operation is None:
        raise InvalidTransition(current, wanted)
    return _apply(operation, booking_id, actor, _now(now), reason=reason)
