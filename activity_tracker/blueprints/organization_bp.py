"""
Organization Blueprint — the caller's own organization.

Endpoints:
    GET  /organization              — organization profile
    PUT  /organization              — update profile / settings (ADMIN)
    GET  /organization/users        — active users of the organization
    GET  /organization/users/count  — number of active users
"""

from flask import Blueprint, jsonify

from activity_tracker.middleware.permission_required import require_permission
from activity_tracker.middleware.tenant_context import require_organization
from activity_tracker.services import organization_service
from activity_tracker.utils.helpers import json_body

organization_bp = Blueprint("organization_bp", __name__, url_prefix="/organization")


@organization_bp.route("", methods=["GET"])
def get_organization():
    user = require_organization()
    org = organization_service.get_organization(user.organization_id)
    return jsonify(org.to_dict())


@organization_bp.route("", methods=["PUT"])
@require_permission("organization.update")
def update_organization():
    user = require_organization()
    data = json_body()
    org = organization_service.update_organization(user.organization_id, data, actor_id=user.id)
    return jsonify(org.to_dict())


@organization_bp.route("/users", methods=["GET"])
def list_users():
    user = require_organization()
    users = organization_service.list_organization_users(user.organization_id)
    return jsonify([u.to_summary() for u in users])


@organization_bp.route("/users/count", methods=["GET"])
def count_users():
    user = require_organization()
    return jsonify({"count": organization_service.count_organization_users(user.organization_id)})
