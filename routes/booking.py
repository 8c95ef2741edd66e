from flask import Blueprint, request, jsonify, g

from services import booking_machine
from services.booking_status import BookingStatus
from services.errors import SlotAlreadyBooked
from utils.auth_context import login_required
from utils.audit import log_event
from utils.serializers import booking_to_dict

booking_bp = Blueprint("booking", __name__, url_prefix="/booking")

# older clients send the four booleans instead of a status
LEGACY_FLAGS = ("approved", "confirmed", "completed", "canceled")


def _int_field(data: dict, name: str):
    value = data.get(name, data.get(name[:1].upper() + name[1:]))
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


# ---------- create (DOUBLE-BOOKING SAFE) ----------
@booking_bp.post("/create")
@login_required
def create_booking():
    data = request.get_json(silent=True) or {}
    station_id = _int_field(data, "stationId")
    slot_id = _int_field(data, "slotId")
    user_id = _int_field(data, "userId")
    if station_id is None or slot_id is None:
        return jsonify(error="stationId and slotId are required"), 400

    try:
        booking = booking_machine.create_booking(g.auth, station_id, slot_id, user_id=user_id)
    except SlotAlreadyBooked:
        # routine outcome: another user won the race
        log_event("BOOKING_FAIL_ALREADY_BOOKED", user_id=g.auth.user_id, entity="slot", entity_id=slot_id)
        raise

    log_event(
        "BOOKING_CREATE",
        user_id=g.auth.user_id,
        entity="booking",
        entity_id=booking.id,
        metadata={"slot_id": slot_id, "station_id": station_id, "owner_id": booking.user_id},
    )
    return jsonify(booking_to_dict(booking)), 201


def _transition(operation: str, booking_id: int, **kwargs):
    booking = getattr(booking_machine, operation)(booking_id, g.auth, **kwargs)
    log_event(
        f"BOOKING_{operation.upper()}",
        user_id=g.auth.user_id,
        entity="booking",
        entity_id=booking.id,
        metadata=kwargs or None,
    )
    return jsonify(booking_to_dict(booking)), 200


@booking_bp.post("/approve/<int:booking_id>")
@login_required
def approve_booking(booking_id: int):
    return _transition("approve", booking_id)


@booking_bp.post("/confirm/<int:booking_id>")
@login_required
def confirm_booking(booking_id: int):
    return _transition("confirm", booking_id)


@booking_bp.post("/complete/<int:booking_id>")
@login_required
def complete_booking(booking_id: int):
    return _transition("complete", booking_id)


@booking_bp.post("/cancel/<int:booking_id>")
@login_required
def cancel_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    reason = (data.get("reason") or "").strip()[:120] or None
    return _transition("cancel", booking_id, reason=reason)


@booking_bp.post("/reopen/<int:booking_id>")
@login_required
def reopen_booking(booking_id: int):
    return _transition("reopen", booking_id)


@booking_bp.put("/update/<int:booking_id>")
@login_required
def update_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    target = data.get("status") or data.get("Status")
    if not target:
        flags = {name: data[name] for name in LEGACY_FLAGS if name in data}
        if not flags:
            return jsonify(error="status is required"), 400
        if not all(isinstance(v, bool) for v in flags.values()):
            return jsonify(error="Status flags must be booleans"), 400
        target = BookingStatus.from_flags(**flags).value

    reason = (data.get("reason") or "").strip()[:120] or None
    booking = booking_machine.update_status(booking_id, target, g.auth, reason=reason)

    log_event(
        "BOOKING_UPDATE",
        user_id=g.auth.user_id,
        entity="booking",
        entity_id=booking.id,
        metadata={"status": booking.status},
    )
    return jsonify(booking_to_dict(booking)), 200


@booking_bp.get("/all")
@login_required
def list_bookings():
    user_id = request.args.get("userId", type=int)
    status = request.args.get("status")

    rows = booking_machine.list_bookings(g.auth, user_id=user_id, status=status)
    return jsonify([booking_to_dict(b) for b in rows]), 200


@booking_bp.get("/<int:booking_id>")
@login_required
def get_booking(booking_id: int):
    booking = booking_machine.get_booking(booking_id, g.auth)
    return jsonify(booking_to_dict(booking)), 200
