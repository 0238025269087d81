"""
JWT Auth Middleware — Parses JWT from Authorization header, sets g.jwt_*.

Every matched route requires a bearer token unless it is listed in
PUBLIC_PATHS (no auth) or OPTIONAL_AUTH_PATHS (token used when present).

Failures:
  no / non-Bearer header      →  401 "Access token required"
  expired token               →  401 "Token expired"
  bad signature / malformed   →  403 "Invalid token"

Chain order:
  timing.py  →  jwt_auth.py  →  tenant_context.py  →  route handler
"""

import logging

import jwt as pyjwt
from flask import g, jsonify, request

from activity_tracker.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
PUBLIC_PATHS = frozenset({
    "/auth/login",
    "/auth/register",
    "/health",
    "/db-test",
})

# Paths that accept a token but do not require one
OPTIONAL_AUTH_PATHS = frozenset({
    "/auth/create-organization",
})


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    token = auth_header[7:].strip()  # Strip "Bearer "
    return token or None


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        # Clear JWT context
        g.jwt_claims = None
        g.jwt_user_id = None
        g.jwt_organization_id = None
        g.jwt_role = None

        # CORS preflight and unmatched routes (404/405 handlers answer those)
        if request.method == "OPTIONS" or request.url_rule is None:
            return None

        path = request.path.rstrip("/") or "/"
        if path in PUBLIC_PATHS:
            return None

        token = _bearer_token()
        if token is None:
            if path in OPTIONAL_AUTH_PATHS:
                return None
            return jsonify({"error": "Access token required"}), 401

        try:
            payload = decode_access_token(token)
        except pyjwt.ExpiredSignatureError:
            return jsonify({"error": "Token expired"}), 401
        except pyjwt.InvalidTokenError as exc:
            logger.warning("Rejected token on %s %s: %s", request.method, path, exc)
            return jsonify({"error": "Invalid token"}), 403

        g.jwt_claims = payload
        g.jwt_user_id = payload["userId"]
        g.jwt_organization_id = payload.get("organizationId")
        g.jwt_role = payload.get("role")
        return None
