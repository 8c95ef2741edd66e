import json

from flask import Blueprint, jsonify, request, current_app
from models.audit_log import AuditLog
from security.rbac import require_roles
from utils.roles import BACKOFFICE

audit_bp = Blueprint("audit", __name__)


@audit_bp.get("/audit-logs")
@require_roles(BACKOFFICE)
def list_audit_logs():
    limit = request.args.get("limit", type=int) or 200
    limit = max(1, min(limit, current_app.config["MAX_LIST_RESULTS"]))

    action = (request.args.get("action") or "").strip().upper()
    user_id = request.args.get("userId", type=int)
    entity = (request.args.get("entity") or "").strip().lower()

    q = AuditLog.query
    if action:
        q = q.filter(AuditLog.action == action)
    if user_id is not None:
        q = q.filter(AuditLog.user_id == user_id)
    if entity:
        q = q.filter(AuditLog.entity == entity)

    rows = q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit).all()
    return jsonify([
        {
            "id": r.id,
            "timestamp": r.timestamp.isoformat(),
            "userId": r.user_id,
            "action": r.action,
            "entity": r.entity,
            "entityId": r.entity_id,
            "ip": r.ip,
            "userAgent": r.user_agent,
            "metadata": json.loads(r.metadata_json) if r.metadata_json else None,
        }
        for r in rows
    ]), 200
