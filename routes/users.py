from flask import Blueprint, jsonify, g, request, current_app

from models import db
from models.user import User, Role
from security.rbac import require_roles
from utils.audit import log_event
from utils.roles import BACKOFFICE, normalize_role
from utils.serializers import user_to_dict

users_bp = Blueprint("users", __name__, url_prefix="/user")


@users_bp.get("/all")
@require_roles(BACKOFFICE)
def list_users():
    users = User.query.order_by(User.created_at.desc()).limit(current_app.config["MAX_LIST_RESULTS"]).all()
    return jsonify([user_to_dict(u) for u in users]), 200


@users_bp.get("/role/<role>")
@require_roles(BACKOFFICE)
def list_users_by_role(role: str):
    role_name = normalize_role(role)
    if role_name is None:
        return jsonify(error="Unknown role"), 400

    users = (
        User.query
        .join(User.roles)
        .filter(Role.name == role_name)
        .order_by(User.created_at.desc())
        .limit(current_app.config["MAX_LIST_RESULTS"])
        .all()
    )
    return jsonify([user_to_dict(u) for u in users]), 200


@users_bp.get("/<int:user_id>")
@require_roles(BACKOFFICE)
def get_user(user_id: int):
    user = User.query.get(user_id)
    if not user:
        return jsonify(error="User not found"), 404
    return jsonify(user_to_dict(user)), 200


@users_bp.put("/<int:user_id>")
@require_roles(BACKOFFICE)
def update_user(user_id: int):
    data = request.get_json(silent=True) or {}

    user = User.query.get(user_id)
    if not user:
        return jsonify(error="User not found"), 404

    for key, attr, limit in (("fullName", "full_name", 120), ("phoneNumber", "phone_number", 30), ("nic", "nic", 20)):
        value = data.get(key)
        if value is None:
            continue
        if not isinstance(value, str) or len(value.strip()) > limit:
            return jsonify(error=f"Invalid {key}"), 400
        setattr(user, attr, value.strip() or None)

    if "role" in data:
        role_name = normalize_role(data.get("role"))
        if role_name is None:
            return jsonify(error="Unknown role"), 400

        if user.id == g.auth.user_id and role_name != BACKOFFICE:
            return jsonify(error="Cannot remove your own Backoffice role"), 403

        if role_name != BACKOFFICE and any(r.name == BACKOFFICE for r in user.roles):
            backoffice_count = User.query.join(User.roles).filter(Role.name == BACKOFFICE).count()
            if backoffice_count <= 1:
                return jsonify(error="Cannot remove the last Backoffice user"), 403

        role = Role.query.filter_by(name=role_name).first()
        if not role:
            role = Role(name=role_name)
            db.session.add(role)
            db.session.flush()
        user.roles = [role]

    db.session.commit()

    log_event(
        "USER_UPDATE",
        user_id=g.auth.user_id,
        entity="user",
        entity_id=user.id,
        metadata={"fields": sorted(data.keys())},
    )
    return jsonify(user_to_dict(user)), 200
