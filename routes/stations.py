from flask import Blueprint, request, jsonify, g, current_app
from sqlalchemy.exc import IntegrityError

from models import db
from models.station import Station
from security.rbac import require_roles
from services import station_lifecycle
from services.slot_generator import parse_operating_hours
from utils.auth_context import login_required
from utils.audit import log_event
from utils.roles import BACKOFFICE, STATION_OPERATOR
from utils.serializers import station_to_dict

station_bp = Blueprint("station", __name__, url_prefix="/chargingstation")

CHARGER_TYPES = {"AC", "DC"}


def _normalize(text: str) -> str:
    return (text or "").strip().lower()


def _field(data: dict, name: str):
    # the web client historically sent PascalCase keys
    if name in data:
        return data[name]
    return data.get(name[:1].upper() + name[1:])


def _str_list(value):
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        return None
    return [str(v).strip() for v in value if str(v).strip()]


def _apply_fields(station: Station, data: dict, partial: bool):
    """Validate and copy payload fields onto the station; returns an error message or None."""
    if not partial or _field(data, "name") is not None:
        name = (_field(data, "name") or "").strip()
        if not name:
            return "name is required"
        station.name = name
        station.name_normalized = _normalize(name)

    if not partial or _field(data, "address") is not None:
        address = (_field(data, "address") or "").strip()
        if not address:
            return "address is required"
        station.address = address
        station.address_normalized = _normalize(address)

    geo = _field(data, "geoLocation")
    if geo is not None:
        if not isinstance(geo, dict):
            return "geoLocation must be an object"
        lat = _field(geo, "latitude")
        lon = _field(geo, "longitude")
        try:
            lat = float(lat) if lat is not None else None
            lon = float(lon) if lon is not None else None
        except (TypeError, ValueError):
            return "Invalid coordinates"
        if lat is not None and not -90 <= lat <= 90:
            return "latitude out of range"
        if lon is not None and not -180 <= lon <= 180:
            return "longitude out of range"
        station.latitude, station.longitude = lat, lon

    charger_type = _field(data, "type")
    if charger_type is not None:
        charger_type = str(charger_type).strip().upper()
        if charger_type not in CHARGER_TYPES:
            return "type must be AC or DC"
        station.charger_type = charger_type

    connectors = _field(data, "numberOfConnectors")
    if connectors is not None:
        try:
            connectors = int(connectors)
        except (TypeError, ValueError):
            return "numberOfConnectors must be an integer"
        if connectors < 1:
            return "numberOfConnectors must be at least 1"
        station.number_of_connectors = connectors

    for key, attr in (("connectorTypes", "connector_types"), ("amenities", "amenities")):
        value = _field(data, key)
        if value is not None or not partial:
            items = _str_list(value)
            if items is None:
                return f"{key} must be a list"
            setattr(station, attr, items)

    for key, attr in (("active", "is_active"), ("isPublic", "is_public")):
        value = _field(data, key)
        if value is not None:
            if not isinstance(value, bool):
                return f"{key} must be a boolean"
            setattr(station, attr, value)

    hours = _field(data, "operatingHours")
    if hours is not None:
        hours = str(hours).strip() or None
        if hours and "-" in hours and ":" in hours and parse_operating_hours(hours) is None:
            return "operatingHours must look like HH:MM-HH:MM"
        station.operating_hours = hours

    for key, attr, limit in (("phoneNumber", "phone_number", 30), ("email", "email", 255)):
        value = _field(data, key)
        if value is not None:
            value = str(value).strip()
            if len(value) > limit:
                return f"Invalid {key}"
            setattr(station, attr, value or None)

    return None


@station_bp.post("/create")
@require_roles(BACKOFFICE)
def create_station():
    data = request.get_json(silent=True) or {}

    station = Station()
    error = _apply_fields(station, data, partial=False)
    if error:
        return jsonify(error=error), 400

    duplicate = (
        Station.query
        .filter(
            Station.name_normalized == station.name_normalized,
            Station.address_normalized == station.address_normalized,
        )
        .first()
    )
    if duplicate:
        return jsonify(error="Station already exists"), 409

    db.session.add(station)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Station already exists"), 409

    log_event("STATION_CREATE", user_id=g.auth.user_id, entity="station", entity_id=station.id)
    return jsonify(station_to_dict(station)), 201


@station_bp.get("/all")
@login_required
def list_stations():
    q = Station.query
    if not g.auth.has_any(BACKOFFICE, STATION_OPERATOR):
        q = q.filter(Station.is_public.is_(True))

    active = request.args.get("active")
    if active is not None:
        q = q.filter(Station.is_active.is_(active.strip().lower() == "true"))

    name_query = (request.args.get("name") or "").strip()
    if name_query:
        q = q.filter(Station.name.ilike(f"%{name_query}%"))

    rows = q.order_by(Station.created_at.desc()).limit(current_app.config["MAX_LIST_RESULTS"]).all()
    return jsonify([station_to_dict(s) for s in rows]), 200


@station_bp.get("/<int:station_id>")
@login_required
def get_station(station_id: int):
    station = station_lifecycle.get_station(station_id)
    if not station.is_public and not g.auth.has_any(BACKOFFICE, STATION_OPERATOR):
        return jsonify(error="Station not found"), 404
    return jsonify(station_to_dict(station)), 200


@station_bp.patch("/partial/<int:station_id>")
@require_roles(BACKOFFICE, STATION_OPERATOR)
def update_station(station_id: int):
    data = request.get_json(silent=True) or {}
    station = station_lifecycle.get_station(station_id)

    error = _apply_fields(station, data, partial=True)
    if error:
        db.session.rollback()
        return jsonify(error=error), 400

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Station already exists"), 409

    log_event(
        "STATION_UPDATE",
        user_id=g.auth.user_id,
        entity="station",
        entity_id=station.id,
        metadata={"fields": sorted(data.keys())},
    )
    return jsonify(station_to_dict(station)), 200


@station_bp.post("/activate/<int:station_id>")
@require_roles(BACKOFFICE, STATION_OPERATOR)
def activate_station(station_id: int):
    station = station_lifecycle.activate(station_id)
    log_event("STATION_ACTIVATE", user_id=g.auth.user_id, entity="station", entity_id=station_id)
    return jsonify(station_to_dict(station)), 200


@station_bp.post("/deactivate/<int:station_id>")
@require_roles(BACKOFFICE, STATION_OPERATOR)
def deactivate_station(station_id: int):
    station = station_lifecycle.deactivate(station_id)
    log_event("STATION_DEACTIVATE", user_id=g.auth.user_id, entity="station", entity_id=station_id)
    return jsonify(station_to_dict(station)), 200


@station_bp.get("/dependencies/<int:station_id>")
@require_roles(BACKOFFICE)
def station_dependencies(station_id: int):
    return jsonify(station_lifecycle.dependency_preview(station_id)), 200


@station_bp.delete("/delete/<int:station_id>")
@require_roles(BACKOFFICE)
def delete_station(station_id: int):
    confirm = (request.args.get("confirm") or "").strip().lower() == "true"

    deleted = station_lifecycle.delete(station_id, confirm=confirm)

    log_event(
        "STATION_DELETE",
        user_id=g.auth.user_id,
        entity="station",
        entity_id=station_id,
        metadata={"confirmed": confirm, **deleted},
    )
    return jsonify(message="Station deleted", deleted=deleted), 200
