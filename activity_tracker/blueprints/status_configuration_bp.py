"""
Status Configuration Blueprint — per-organization status registry.

Endpoints:
    GET    /status-configuration                       — all statuses (ADMIN/PMO/PM), ?type=
    GET    /status-configuration/active                — active statuses, ?type=
    GET    /status-configuration/mapping               — {type: {name: {displayName, color}}}
    GET    /status-configuration/usage-stats           — counts per status (ADMIN/PMO), ?type=
    GET    /status-configuration/<id>                  — single status
    POST   /status-configuration                       — create (ADMIN)
    PUT    /status-configuration/<id>                  — update (ADMIN)
    DELETE /status-configuration/<id>                  — delete non-default (ADMIN)
    PATCH  /status-configuration/<id>/toggle-active    — flip isActive (ADMIN)
    PUT    /status-configuration/reorder/<type>        — reorder (ADMIN)
    POST   /status-configuration/bulk-update           — several updates at once (ADMIN)
    POST   /status-configuration/initialize-defaults   — seed missing defaults (ADMIN)
    POST   /status-configuration/validate-transition   — check a status move
"""

from flask import Blueprint, jsonify, request

from activity_tracker.core.exceptions import ValidationError
from activity_tracker.middleware.permission_required import require_permission
from activity_tracker.middleware.tenant_context import require_organization
from activity_tracker.services import status_configuration_service as svc
from activity_tracker.utils.helpers import db_commit_or_raise, json_body, parse_int, require_fields

status_configuration_bp = Blueprint(
    "status_configuration_bp", __name__, url_prefix="/status-configuration",
)


# ── Read ─────────────────────────────────────────────────────────────────────

@status_configuration_bp.route("", methods=["GET"])
@require_permission("status_config.view_all")
def list_statuses():
    user = require_organization()
    statuses = svc.list_statuses(user.organization_id, request.args.get("type"))
    return jsonify([s.to_dict() for s in statuses])


@status_configuration_bp.route("/active", methods=["GET"])
def list_active():
    user = require_organization()
    statuses = svc.list_statuses(user.organization_id, request.args.get("type"), active_only=True)
    return jsonify([s.to_dict() for s in statuses])


@status_configuration_bp.route("/mapping", methods=["GET"])
def mapping():
    user = require_organization()
    return jsonify(svc.status_mapping(user.organization_id))


@status_configuration_bp.route("/usage-stats", methods=["GET"])
@require_permission("status_config.usage_stats")
def usage_stats():
    user = require_organization()
    return jsonify(svc.usage_stats(user.organization_id, request.args.get("type")))


@status_configuration_bp.route("/<int:status_id>", methods=["GET"])
def get_status(status_id):
    user = require_organization()
    return jsonify(svc.get_status(user.organization_id, status_id).to_dict())


# ── Write ────────────────────────────────────────────────────────────────────

@status_configuration_bp.route("", methods=["POST"])
@require_permission("status_config.manage")
def create_status():
    """
    Body: { "type": "activity|task|approval", "name": "blocked", "displayName": "Blocked",
            "color": "#EF4444", "description": "...",
            "workflowRules": { "allowedTransitions": [..], "requiredRole": [..] } }
    """
    user = require_organization()
    data = json_body()
    sc = svc.create_status(user.organization_id, data, actor_id=user.id)
    db_commit_or_raise("Status configuration", "name", data.get("name"))
    return jsonify(sc.to_dict()), 201


@status_configuration_bp.route("/<int:status_id>", methods=["PUT"])
@require_permission("status_config.manage")
def update_status(status_id):
    user = require_organization()
    data = json_body()
    sc = svc.update_status(user.organization_id, status_id, data, actor_id=user.id)
    db_commit_or_raise("Status configuration", "name", data.get("name"))
    return jsonify(sc.to_dict())


@status_configuration_bp.route("/<int:status_id>", methods=["DELETE"])
@require_permission("status_config.manage")
def delete_status(status_id):
    user = require_organization()
    svc.delete_status(user.organization_id, status_id, actor_id=user.id)
    db_commit_or_raise("Status configuration", "id", status_id)
    return jsonify({"message": "Status configuration deleted"})


@status_configuration_bp.route("/<int:status_id>/toggle-active", methods=["PATCH"])
@require_permission("status_config.manage")
def toggle_active(status_id):
    user = require_organization()
    sc = svc.toggle_active(user.organization_id, status_id, actor_id=user.id)
    db_commit_or_raise("Status configuration", "id", status_id)
    return jsonify(sc.to_dict())


@status_configuration_bp.route("/reorder/<status_type>", methods=["PUT"])
@require_permission("status_config.manage")
def reorder(status_type):
    """Body: { "statusIds": [3, 1, 2] }"""
    user = require_organization()
    data = json_body()
    statuses = svc.reorder(user.organization_id, status_type, data.get("statusIds"), actor_id=user.id)
    db_commit_or_raise("Status configuration", "order")
    return jsonify({
        "message": "Status order updated successfully",
        "statuses": [s.to_dict() for s in statuses],
    })


@status_configuration_bp.route("/bulk-update", methods=["POST"])
@require_permission("status_config.manage")
def bulk_update():
    """Body: { "updates": [ { "id": 3, "data": { "color": "#000000" } }, ... ] }

    All updates commit together; the first failure aborts the batch.
    """
    user = require_organization()
    data = json_body()
    updates = data.get("updates")
    if not isinstance(updates, list) or not updates:
        raise ValidationError("updates must be a non-empty list", details={"updates": "required"})

    results = []
    for item in updates:
        if not isinstance(item, dict):
            raise ValidationError("each update must be an object", details={"updates": "invalid"})
        status_id = parse_int(item.get("id"), "id")
        if status_id is None:
            raise ValidationError("id is required for each update", details={"id": "required"})
        changes = item.get("data") or {}
        if not isinstance(changes, dict):
            raise ValidationError("data must be an object", details={"data": "invalid"})
        results.append(svc.update_status(user.organization_id, status_id, changes, actor_id=user.id))
    db_commit_or_raise("Status configuration", "name")
    return jsonify({"message": "Bulk update completed", "results": [s.to_dict() for s in results]})


@status_configuration_bp.route("/initialize-defaults", methods=["POST"])
@require_permission("status_config.manage")
def initialize_defaults():
    user = require_organization()
    created = svc.initialize_defaults(user.organization_id, actor_id=user.id)
    db_commit_or_raise("Status configuration", "name")
    return jsonify({"message": "Default status configurations initialized", "created": created})


# ── Validation ───────────────────────────────────────────────────────────────

@status_configuration_bp.route("/validate-transition", methods=["POST"])
def validate_transition():
    """Body: { "type": "task", "fromStatus": "to_do", "toStatus": "done" }"""
    user = require_organization()
    data = json_body()
    require_fields(data, "type", "fromStatus", "toStatus")
    result = svc.validate_transition(
        user.organization_id, data["type"], data["fromStatus"], data["toStatus"], user.role,
    )
    return jsonify(result)
