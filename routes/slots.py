from flask import Blueprint, request, jsonify, g

from security.rbac import require_roles
from services import slot_generator
from utils.auth_context import login_required
from utils.audit import log_event
from utils.roles import BACKOFFICE, STATION_OPERATOR
from utils.serializers import slot_to_dict

slot_bp = Blueprint("slot", __name__, url_prefix="/chargingslot")


def _flag(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() == "true"


@slot_bp.post("/init/<int:station_id>/<date_str>")
@require_roles(BACKOFFICE, STATION_OPERATOR)
def init_slots(station_id: int, date_str: str):
    slots = slot_generator.initialize(station_id, date_str)

    log_event(
        "SLOTS_INIT",
        user_id=g.auth.user_id,
        entity="station",
        entity_id=station_id,
        metadata={"date": date_str, "count": len(slots)},
    )
    return jsonify(
        stationId=station_id,
        date=date_str,
        count=len(slots),
        slots=[slot_to_dict(s) for s in slots],
    ), 201


@slot_bp.delete("/deinit/<int:station_id>/<date_str>")
@require_roles(BACKOFFICE, STATION_OPERATOR)
def deinit_slots(station_id: int, date_str: str):
    force = _flag("force")
    removed = slot_generator.deinitialize(station_id, date_str, force=force)

    log_event(
        "SLOTS_DEINIT",
        user_id=g.auth.user_id,
        entity="station",
        entity_id=station_id,
        metadata={"date": date_str, "removed": removed, "force": force},
    )
    return jsonify(stationId=station_id, date=date_str, removed=removed), 200


@slot_bp.get("/all/<int:station_id>/<date_str>")
@login_required
def list_slots(station_id: int, date_str: str):
    listing = slot_generator.list_slots(station_id, date_str, only_available=_flag("available"))
    return jsonify([slot_to_dict(s) for s in listing]), 200


@slot_bp.delete("/<int:slot_id>")
@require_roles(BACKOFFICE, STATION_OPERATOR)
def delete_slot(slot_id: int):
    force = _flag("force")
    removed = slot_generator.delete_slot(slot_id, force=force)

    log_event("SLOT_DELETE", user_id=g.auth.user_id, entity="slot", entity_id=slot_id, metadata={"force": force})
    return jsonify(message="Slot deleted", removed=removed), 200
