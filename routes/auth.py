from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.user import User, Role
from security.password import hash_password, verify_password
from security.rbac import require_roles
from security.session import (
    bearer_token_from_request,
    create_session,
    revoke_all_sessions,
    revoke_session,
)
from utils.audit import log_event
from utils.auth_context import login_required
from utils.roles import BACKOFFICE, EV_OWNER, SELF_SERVICE_ROLES, normalize_role, primary_role
from utils.serializers import user_to_dict


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _is_valid_username(username: str) -> bool:
    return isinstance(username, str) and 3 <= len(username) <= 80 and " " not in username


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    username = (data.get("username") or "").strip().lower()
    # older clients send the plain password as passwordHash
    password = data.get("password") or data.get("passwordHash") or ""
    nic = (data.get("nic") or "").strip() or None
    role_name = normalize_role(data.get("role") or EV_OWNER)

    if not _is_valid_username(username):
        return jsonify(error="Invalid username"), 400
    min_len = current_app.config.get("PASSWORD_MIN_LEN", 8)
    if not isinstance(password, str) or len(password) < min_len:
        return jsonify(error=f"Password must be at least {min_len} characters"), 400
    if role_name is None:
        return jsonify(error="Unknown role"), 400
    if nic and len(nic) > 20:
        return jsonify(error="Invalid nic"), 400

    if User.query.filter_by(username=username).first():
        log_event("REGISTER_FAIL_USERNAME_EXISTS", metadata={"username": username})
        return jsonify(error="Username already registered"), 409

    user = User(
        username=username,
        password_hash=hash_password(password),
        nic=nic,
        # staff accounts wait for Backoffice activation
        is_active=role_name in SELF_SERVICE_ROLES,
    )
    db.session.add(user)
    db.session.flush()

    role = Role.query.filter_by(name=role_name).first()
    if role:
        user.roles.append(role)

    db.session.commit()
    log_event("REGISTER_SUCCESS", user_id=user.id, metadata={"role": role_name})

    return jsonify(userId=user.id, username=user.username, role=role_name, active=user.is_active), 201


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    username = (data.get("username") or "").strip().lower()
    password = data.get("password") or ""

    user = User.query.filter_by(username=username).first()
    if not user or not verify_password(password, user.password_hash):
        log_event("LOGIN_FAIL", user_id=user.id if user else None, metadata={"username": username})
        return jsonify(error="Invalid credentials"), 401

    if not user.is_active:
        log_event("LOGIN_INACTIVE", user_id=user.id)
        return jsonify(error="Account is not active"), 403

    role = primary_role(user.roles)
    if role is None:
        return jsonify(error="Account has no role"), 403

    # Rotate: revoke any existing sessions for this user
    revoked_count = revoke_all_sessions(user.id)
    token, expires_at = create_session(user, role)

    log_event("LOGIN_SUCCESS", user_id=user.id, metadata={"revoked_sessions": revoked_count})
    return jsonify(
        token=token,
        userId=user.id,
        username=user.username,
        role=role,
        expiresAt=expires_at.isoformat(),
    ), 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(
        userId=g.auth.user_id,
        username=g.auth.username,
        role=g.auth.role,
        roles=sorted(g.auth.roles),
    ), 200


@auth_bp.post("/logout")
@login_required
def logout():
    revoke_session(bearer_token_from_request())
    log_event("LOGOUT", user_id=g.auth.user_id)
    return jsonify(message="Logged out"), 200


def _set_user_active(user_id: int, active: bool):
    user = User.query.get(user_id)
    if not user:
        return jsonify(error="User not found"), 404

    if not active and user.id == g.auth.user_id:
        return jsonify(error="Cannot deactivate yourself"), 403

    if user.is_active != active:
        user.is_active = active
        db.session.commit()
        if not active:
            revoke_all_sessions(user.id)

    log_event(
        "USER_ACTIVATE" if active else "USER_DEACTIVATE",
        user_id=g.auth.user_id,
        entity="user",
        entity_id=user.id,
    )
    return jsonify(user_to_dict(user)), 200


@auth_bp.post("/activate/<int:user_id>")
@require_roles(BACKOFFICE)
def activate_user(user_id: int):
    return _set_user_active(user_id, True)


@auth_bp.post("/deactivate/<int:user_id>")
@require_roles(BACKOFFICE)
def deactivate_user(user_id: int):
    return _set_user_active(user_id, False)
