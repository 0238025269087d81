"""
JWT Service — access token generation and verification.

Lifetime:  JWT_EXPIRES_IN (default 24h)
Algorithm: HS256

Token payload:
{
    "sub": "<user_id>",
    "userId": <user_id>,
    "email": "...",
    "role": "ADMIN" | "PMO" | "PROJECT_MANAGER" | "MEMBER",
    "organizationId": <organization_id> | null,
    "iat": <issued_at>,
    "exp": <expires_at>
}

There is no refresh token or server-side session: a token stays valid
until it expires. Role and organization are re-read from the database on
every request, so a stale claim never grants more than the stored user has.
"""

from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app


# ─── Defaults ────────────────────────────────────────────────
DEFAULT_EXPIRES = 86400  # 24 hours
ALGORITHM = "HS256"


def _get_secret():
    """Get the JWT signing secret from app config."""
    return current_app.config.get("JWT_SECRET") or current_app.config["SECRET_KEY"]


def _get_expires():
    return int(current_app.config.get("JWT_EXPIRES_IN", DEFAULT_EXPIRES))


# ═══════════════════════════════════════════════════════════════
# Token Generation
# ═══════════════════════════════════════════════════════════════
def generate_access_token(user) -> str:
    """Sign a token for ``user`` carrying its identity, role and organization."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "userId": user.id,
        "email": user.email,
        "role": user.role,
        "organizationId": user.organization_id,
        "iat": now,
        "exp": now + timedelta(seconds=_get_expires()),
    }
    return jwt.encode(payload, _get_secret(), algorithm=ALGORITHM)


def token_response(user) -> dict:
    """Login/bootstrap response body fragment."""
    return {
        "token": generate_access_token(user),
        "tokenType": "Bearer",
        "expiresIn": _get_expires(),
    }


# ═══════════════════════════════════════════════════════════════
# Token Verification
# ═══════════════════════════════════════════════════════════════
def decode_access_token(token: str) -> dict:
    """
    Decode and verify a token.

    Returns the payload dict on success.
    Raises jwt.ExpiredSignatureError / jwt.InvalidTokenError on failure.
    """
    payload = jwt.decode(
        token,
        _get_secret(),
        algorithms=[ALGORITHM],
        options={"require": ["exp", "sub"]},
    )
    if not isinstance(payload.get("userId"), int):
        raise jwt.InvalidTokenError("userId claim missing or malformed")
    return payload
