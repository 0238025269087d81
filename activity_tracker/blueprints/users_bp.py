"""
Users Blueprint — user administration inside the caller's organization.

Endpoints:
    GET    /users                     — list active users (ADMIN/PMO/PM)
    POST   /users                     — create a user (ADMIN/PM)
    GET    /users/<id>                — user detail (self or ADMIN/PMO/PM)
    PATCH  /users/<id>/role           — change role (ADMIN)
    DELETE /users/<id>                — deactivate (ADMIN)
    GET    /users/<id>/preferences    — read preferences (self or ADMIN/PMO/PM)
    PATCH  /users/me/preferences      — merge own preferences
"""

from flask import Blueprint, g, jsonify, request

from activity_tracker.middleware.permission_required import require_permission
from activity_tracker.middleware.tenant_context import require_organization
from activity_tracker.services import user_service
from activity_tracker.utils.helpers import json_body

users_bp = Blueprint("users_bp", __name__, url_prefix="/users")


# ── List / create ────────────────────────────────────────────────────────────

@users_bp.route("", methods=["GET"])
@require_permission("users.list")
def list_users():
    """Query params: role — filter by role"""
    user = require_organization()
    users = user_service.list_users(user.organization_id, request.args.get("role"))
    return jsonify([u.to_dict() for u in users])


@users_bp.route("", methods=["POST"])
@require_permission("users.create")
def create_user():
    """
    Body: { "email": "...", "name": "...", "role": "MEMBER", "password": "..." }

    When no password is given one is generated and returned once.
    """
    actor = require_organization()
    data = json_body()
    user, generated = user_service.create_user(actor, data)
    body = {"user": user.to_dict()}
    if generated:
        body["generatedPassword"] = generated
    return jsonify(body), 201


# ── Preferences ──────────────────────────────────────────────────────────────

@users_bp.route("/me/preferences", methods=["PATCH"])
def update_my_preferences():
    merged = user_service.update_preferences(g.current_user, json_body())
    return jsonify({"preferences": merged})


@users_bp.route("/<int:user_id>/preferences", methods=["GET"])
def get_preferences(user_id):
    actor = require_organization()
    user = user_service.get_user(actor, user_id)
    return jsonify({"preferences": user.preferences or {}})


# ── Single user ──────────────────────────────────────────────────────────────

@users_bp.route("/<int:user_id>", methods=["GET"])
def get_user(user_id):
    actor = require_organization()
    return jsonify(user_service.get_user(actor, user_id).to_dict())


@users_bp.route("/<int:user_id>/role", methods=["PATCH"])
@require_permission("users.change_role")
def change_role(user_id):
    """Body: { "role": "PMO" }"""
    actor = require_organization()
    data = json_body()
    user = user_service.change_role(actor, user_id, data.get("role"))
    return jsonify(user.to_dict())


@users_bp.route("/<int:user_id>", methods=["DELETE"])
@require_permission("users.deactivate")
def deactivate_user(user_id):
    actor = require_organization()
    user = user_service.deactivate_user(actor, user_id)
    return jsonify({"message": "User deactivated", "user": user.to_dict()})
