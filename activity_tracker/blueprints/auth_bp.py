"""
Auth Blueprint — registration, login and organization bootstrap.

Endpoints:
  POST /auth/register             — Create an account (no organization yet)
  POST /auth/login                — Email + password → access token
  GET  /auth/profile              — Current user, organization and permissions
  POST /auth/create-organization  — Create an organization and bind its ADMIN
  POST /auth/change-password      — Change own password
  POST /auth/logout               — Stateless acknowledgement
"""

import logging

from flask import Blueprint, g, jsonify

from activity_tracker.models import db
from activity_tracker.models.auth import Organization
from activity_tracker.services import auth_service
from activity_tracker.services.jwt_service import token_response
from activity_tracker.services.permission import get_role_actions
from activity_tracker.utils.helpers import json_body

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth_bp", __name__, url_prefix="/auth")


# ═══════════════════════════════════════════════════════════════
# POST /auth/register
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/register", methods=["POST"])
def register():
    """
    Body: { "email": "...", "password": "...", "name": "...", "role": "MEMBER" }
    """
    data = json_body()
    user = auth_service.register(data)
    return jsonify({
        "message": "User registered successfully",
        "userId": user.id,
        "user": user.to_dict(),
    }), 201


# ═══════════════════════════════════════════════════════════════
# POST /auth/login
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Authenticate with email + password, return an access token.

    Body: { "email": "...", "password": "..." }
    """
    data = json_body()
    user = auth_service.authenticate(data.get("email", ""), data.get("password", ""))
    logger.info("User %s logged in", user.id)
    return jsonify({**token_response(user), "user": user.to_dict()}), 200


# ═══════════════════════════════════════════════════════════════
# GET /auth/profile
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/profile", methods=["GET"])
def profile():
    user = g.current_user
    org = db.session.get(Organization, user.organization_id) if user.organization_id else None
    return jsonify({
        "user": user.to_dict(include_preferences=True),
        "organization": org.to_dict() if org else None,
        "permissions": sorted(get_role_actions(user.role)),
    }), 200


# ═══════════════════════════════════════════════════════════════
# POST /auth/create-organization
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/create-organization", methods=["POST"])
def create_organization():
    """
    Create an organization.

    With a bearer token the caller becomes its ADMIN; without one the body
    must also carry adminEmail, adminName and adminPassword.

    Body: { "name": "...", "description": "...", "settings": {...},
            "adminEmail": "...", "adminName": "...", "adminPassword": "..." }
    """
    data = json_body()
    org, admin = auth_service.create_organization(data, g.current_user)
    return jsonify({
        "message": "Organization created successfully",
        "organization": org.to_dict(),
        "user": admin.to_dict(),
        **token_response(admin),
    }), 201


# ═══════════════════════════════════════════════════════════════
# POST /auth/change-password
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/change-password", methods=["POST"])
def change_password():
    """Body: { "currentPassword": "...", "newPassword": "..." }"""
    data = json_body()
    auth_service.change_password(
        g.current_user, data.get("currentPassword", ""), data.get("newPassword", ""),
    )
    return jsonify({"message": "Password changed successfully"}), 200


# ═══════════════════════════════════════════════════════════════
# POST /auth/logout
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/logout", methods=["POST"])
def logout():
    """Tokens are stateless; the client discards its copy."""
    logger.info("User %s logged out", g.current_user.id)
    return jsonify({"message": "Logged out"}), 200
