"""
Activities Blueprint — activity CRUD and the approval workflow.

Endpoints:
    POST   /activities                   — create (draft)
    GET    /activities                   — list (MEMBER: own or assigned)
    GET    /activities/<id>              — detail
    PATCH  /activities/<id>              — update fields / status
    DELETE /activities/<id>              — delete (ADMIN, or creator while draft)
    POST   /activities/<id>/submit       — draft → submitted
    POST   /activities/<id>/approve      — submitted → approved
    POST   /activities/<id>/reject       — submitted → rejected (comment required)
    POST   /activities/<id>/close        — approved → closed
    GET    /activities/<id>/approvals    — decision history
    GET    /approvals/pending            — submitted activities awaiting a decision
"""

from flask import Blueprint, jsonify, request

from activity_tracker.middleware.permission_required import require_permission
from activity_tracker.middleware.tenant_context import require_organization
from activity_tracker.services import activity_lifecycle, activity_service
from activity_tracker.utils.helpers import json_body, parse_int

activities_bp = Blueprint("activities_bp", __name__, url_prefix="/activities")
approvals_bp = Blueprint("approvals_bp", __name__, url_prefix="/approvals")


# ═══════════════════════════════════════════════════════════════
# CRUD
# ═══════════════════════════════════════════════════════════════
@activities_bp.route("", methods=["POST"])
def create_activity():
    """
    Body: { "title": "...", "description": "...", "projectId": 1,
            "priority": "low|medium|high", "status": "to_do",
            "assigneeIds": [..], "tags": [..], "startDate": "...", "endDate": "..." }
    """
    user = require_organization()
    data = json_body()
    activity = activity_service.create_activity(user, data)
    return jsonify(activity.to_dict()), 201


@activities_bp.route("", methods=["GET"])
def list_activities():
    """Query params: status, approvalState, projectId, assigneeId, priority"""
    user = require_organization()
    activities = activity_service.list_activities(user, request.args)
    return jsonify([a.to_dict() for a in activities])


@activities_bp.route("/<int:activity_id>", methods=["GET"])
def get_activity(activity_id):
    user = require_organization()
    return jsonify(activity_service.get_activity(user, activity_id).to_dict())


@activities_bp.route("/<int:activity_id>", methods=["PATCH"])
def update_activity(activity_id):
    user = require_organization()
    data = json_body()
    activity = activity_service.update_activity(user, activity_id, data)
    return jsonify(activity.to_dict())


@activities_bp.route("/<int:activity_id>", methods=["DELETE"])
def delete_activity(activity_id):
    user = require_organization()
    activity_service.delete_activity(user, activity_id)
    return jsonify({"message": "Activity deleted"})


# ═══════════════════════════════════════════════════════════════
# Approval transitions
# ═══════════════════════════════════════════════════════════════
def _transition(activity_id, action):
    user = require_organization()
    data = json_body()
    activity = activity_lifecycle.transition_activity(
        user, activity_id, action, comment=data.get("comment"),
    )
    return jsonify(activity.to_dict())


@activities_bp.route("/<int:activity_id>/submit", methods=["POST"])
def submit_activity(activity_id):
    return _transition(activity_id, "submit")


@activities_bp.route("/<int:activity_id>/approve", methods=["POST"])
def approve_activity(activity_id):
    """Body (optional): { "comment": "..." }"""
    return _transition(activity_id, "approve")


@activities_bp.route("/<int:activity_id>/reject", methods=["POST"])
def reject_activity(activity_id):
    """Body: { "comment": "..." } — required"""
    return _transition(activity_id, "reject")


@activities_bp.route("/<int:activity_id>/close", methods=["POST"])
def close_activity(activity_id):
    return _transition(activity_id, "close")


@activities_bp.route("/<int:activity_id>/approvals", methods=["GET"])
def approval_history(activity_id):
    user = require_organization()
    history = activity_lifecycle.list_approval_history(user, activity_id)
    return jsonify([h.to_dict() for h in history])


# ═══════════════════════════════════════════════════════════════
# GET /approvals/pending
# ═══════════════════════════════════════════════════════════════
@approvals_bp.route("/pending", methods=["GET"])
@require_permission("approvals.view_pending")
def pending_approvals():
    """Query params: projectId — restrict to one project"""
    user = require_organization()
    project_id = parse_int(request.args.get("projectId"), "projectId")
    activities = activity_lifecycle.list_pending_approvals(user, project_id)
    return jsonify([a.to_dict() for a in activities])
