"""
Tenant Context Middleware — resolves the authenticated user and organization.

When a JWT-authenticated request arrives:
  1. g.jwt_user_id is already set by jwt_auth middleware
  2. This middleware loads the user and rejects missing/deactivated accounts
  3. Sets g.current_user and g.organization_id from the DATABASE, not the token,
     so role changes and organization binding take effect immediately
  4. Every downstream query filters by g.organization_id

Chain order:
  jwt_auth.py  →  tenant_context.py  →  route handler
"""

import logging

from flask import g, jsonify

from activity_tracker.core.exceptions import NotFoundError
from activity_tracker.models import db
from activity_tracker.models.auth import User

logger = logging.getLogger(__name__)


def init_tenant_context(app):
    """Register tenant context middleware as a before_request hook."""

    @app.before_request
    def _tenant_context():
        g.current_user = None
        g.organization_id = None

        user_id = getattr(g, "jwt_user_id", None)
        if user_id is None:
            return None

        user = db.session.get(User, user_id)
        if user is None or not user.is_active:
            logger.warning("Token for missing or deactivated user %s", user_id)
            return jsonify({"error": "User not found or inactive"}), 401

        claimed_org = getattr(g, "jwt_organization_id", None)
        if claimed_org is not None and claimed_org != user.organization_id:
            logger.info(
                "User %s token organization %s differs from stored %s; using stored value",
                user.id, claimed_org, user.organization_id,
            )

        g.current_user = user
        g.organization_id = user.organization_id
        return None


def require_organization() -> User:
    """The authenticated user, who must already belong to an organization."""
    user = g.current_user
    if user is None or user.organization_id is None:
        raise NotFoundError("Organization")
    return user
