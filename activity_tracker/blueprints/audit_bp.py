"""
Activity Tracker
Audit blueprint.

Endpoints:
    GET  /audit-logs               — list / filter the organization's audit logs (ADMIN/PMO)
    GET  /audit-logs/<int:log_id>  — single audit entry
"""

from flask import Blueprint, jsonify, request

from activity_tracker.blueprints import paginate_query
from activity_tracker.core.exceptions import NotFoundError
from activity_tracker.middleware.permission_required import require_permission
from activity_tracker.middleware.tenant_context import require_organization
from activity_tracker.models.audit import AuditLog

audit_bp = Blueprint("audit_bp", __name__, url_prefix="/audit-logs")


# ── List / filter ────────────────────────────────────────────────────────────

@audit_bp.route("", methods=["GET"])
@require_permission("audit.view")
def list_audit_logs():
    """
    Return paginated audit logs of the caller's organization, newest first.

    Query params:
        entity_type  — filter by entity type
        entity_id    — filter by entity PK
        action       — filter by action string (prefix match)
        actor_id     — filter by acting user
        page         — page number (default 1)
        per_page     — items per page (default 50, max 200)
    """
    user = require_organization()
    q = AuditLog.query.filter(AuditLog.organization_id == user.organization_id)

    # ── Filters ──────────────────────────────────────────────────────────
    entity_type = request.args.get("entity_type")
    if entity_type:
        q = q.filter(AuditLog.entity_type == entity_type)

    entity_id = request.args.get("entity_id")
    if entity_id:
        q = q.filter(AuditLog.entity_id == entity_id)

    action = request.args.get("action")
    if action:
        q = q.filter(AuditLog.action.startswith(action))

    actor_id = request.args.get("actor_id", type=int)
    if actor_id is not None:
        q = q.filter(AuditLog.actor_user_id == actor_id)

    q = q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())
    items, meta = paginate_query(q)

    return jsonify({"audit_logs": [log.to_dict() for log in items], **meta})


# ── Single entry ─────────────────────────────────────────────────────────────

@audit_bp.route("/<int:log_id>", methods=["GET"])
@require_permission("audit.view")
def get_audit_log(log_id):
    user = require_organization()
    log = AuditLog.query.filter_by(id=log_id, organization_id=user.organization_id).first()
    if not log:
        raise NotFoundError("Audit log", log_id, user.organization_id)
    return jsonify(log.to_dict())
