"""
Password hashing with bcrypt.

The cost factor comes from ``BCRYPT_ROUNDS`` in app config (10 by default)
so hashes stay interchangeable with accounts created by earlier backends.
"""

import re
import secrets
import string

import bcrypt
from flask import current_app, has_app_context

DEFAULT_ROUNDS = 10

_SPECIAL = r"[!@#$%^&*(),.?\":{}|<>_\-+=\[\]\\/;'`~]"


def _rounds() -> int:
    if has_app_context():
        return int(current_app.config.get("BCRYPT_ROUNDS", DEFAULT_ROUNDS))
    return DEFAULT_ROUNDS


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password with bcrypt."""
    salt = bcrypt.gensalt(rounds=_rounds())
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str | None) -> bool:
    """Verify a plain-text password against its bcrypt hash."""
    if not password_hash or not plain_password:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            password_hash.encode("utf-8"),
        )
    except ValueError:
        # Not a bcrypt hash
        return False


def password_strength_errors(password: str) -> list[str]:
    """Return the list of unmet strength rules (empty when the password is acceptable)."""
    errors = []
    if len(password) < 8:
        errors.append("Password must be at least 8 characters long")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        errors.append("Password must contain at least one number")
    if not re.search(_SPECIAL, password):
        errors.append("Password must contain at least one special character")
    return errors


def generate_password(length: int = 12) -> str:
    """Random password that satisfies ``password_strength_errors``."""
    alphabet = string.ascii_letters + string.digits + "!@#$%^&*"
    while True:
        candidate = "".join(secrets.choice(alphabet) for _ in range(length))
        if not password_strength_errors(candidate):
            return candidate
