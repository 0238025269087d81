"""
Auth Service — registration, login, organization bootstrap, password change.
"""

import logging
from datetime import datetime, timezone

from email_validator import EmailNotValidError, validate_email

from activity_tracker.core.exceptions import (
    AuthenticationError,
    ConflictError,
    PermissionDenied,
    ValidationError,
)
from activity_tracker.models import db
from activity_tracker.models.auth import (
    DEFAULT_ORGANIZATION_SETTINGS,
    ROLE_ADMIN,
    ROLE_MEMBER,
    ROLES,
    Organization,
    User,
)
from activity_tracker.services import status_configuration_service
from activity_tracker.utils.crypto import hash_password, password_strength_errors, verify_password
from activity_tracker.utils.helpers import db_commit_or_raise, optional_text, require_fields

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


# ═══════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════
def normalize_email(email: str) -> str:
    """Validate syntax and return the lower-cased normalized address."""
    try:
        valid = validate_email(optional_text(email, "email") or "", check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email: {e}", details={"email": "invalid"})
    return valid.normalized.lower()


def validate_role(role: str | None, default: str = ROLE_MEMBER) -> str:
    role = role or default
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}", details={"role": "invalid"})
    return role


def get_user_by_email(email: str) -> User | None:
    return User.query.filter_by(email=email.lower()).first()


def build_user(email, password, name, role=ROLE_MEMBER, organization_id=None) -> User:
    """Validate, hash and add a user to the session (flushed, not committed)."""
    email = normalize_email(email)
    name = optional_text(name, "name") or ""
    if not name:
        raise ValidationError("name is required", details={"name": "required"})
    if not isinstance(password, str) or len(password) < 6:
        raise ValidationError("Password must be at least 6 characters", details={"password": "too short"})
    if get_user_by_email(email):
        raise ConflictError("User", "email", email)

    user = User(
        email=email,
        password_hash=hash_password(password),
        name=name,
        role=validate_role(role),
        organization_id=organization_id,
        is_active=True,
        preferences={},
    )
    db.session.add(user)
    db.session.flush()
    return user


# ═══════════════════════════════════════════════════════════════
# Register / login
# ═══════════════════════════════════════════════════════════════
def register(data: dict) -> User:
    """Create a user without an organization. 409 on duplicate email."""
    require_fields(data, "email", "password", "name")
    user = build_user(data["email"], data["password"], data["name"], data.get("role"))
    db_commit_or_raise("User", "email", user.email)
    logger.info("User %s registered (role=%s)", user.id, user.role)
    return user


def authenticate(email: str, password: str) -> User:
    """
    Verify credentials.

    Unknown email and wrong password raise the same AuthenticationError so
    callers cannot tell which addresses are registered.
    """
    if not email or not password:
        raise ValidationError("Email and password are required", details={"email": "required", "password": "required"})
    if not isinstance(email, str) or not isinstance(password, str):
        raise ValidationError("Email and password must be strings", details={"email": "invalid", "password": "invalid"})

    user = get_user_by_email(email.strip())
    if not user or not verify_password(password, user.password_hash):
        logger.info("Failed login attempt")
        raise AuthenticationError(INVALID_CREDENTIALS)
    if not user.is_active:
        raise PermissionDenied(user.id, "login", "account is deactivated")

    user.last_login_at = datetime.now(timezone.utc)
    db.session.commit()
    return user


# ═══════════════════════════════════════════════════════════════
# Organization bootstrap
# ═══════════════════════════════════════════════════════════════
def create_organization(data: dict, current_user: User | None = None) -> tuple[Organization, User]:
    """
    Create an organization and bind its first ADMIN.

    - Authenticated caller: the caller becomes the ADMIN (409 if already in an org).
    - Anonymous caller: adminEmail/adminName/adminPassword create the ADMIN.

    Organization, admin binding and default statuses commit together.
    """
    require_fields(data, "name")
    name = data["name"].strip()

    if current_user is not None:
        if current_user.organization_id is not None:
            raise ConflictError("Organization membership", "user", current_user.email)
        admin = current_user
    else:
        require_fields(data, "adminEmail", "adminName", "adminPassword")
        admin = build_user(data["adminEmail"], data["adminPassword"], data["adminName"], ROLE_ADMIN)

    settings = dict(DEFAULT_ORGANIZATION_SETTINGS)
    extra = data.get("settings") or {}
    if not isinstance(extra, dict):
        raise ValidationError("settings must be an object", details={"settings": "invalid"})
    settings.update(extra)

    org = Organization(
        name=name,
        description=optional_text(data.get("description"), "description"),
        industry=optional_text(data.get("industry"), "industry"),
        timezone=optional_text(data.get("timezone"), "timezone") or "UTC",
        logo_url=optional_text(data.get("logoUrl"), "logoUrl"),
        created_by=admin.id,
        settings=settings,
    )
    db.session.add(org)
    db.session.flush()

    admin.organization_id = org.id
    admin.role = ROLE_ADMIN
    status_configuration_service.initialize_defaults(org.id, actor_id=admin.id)

    db_commit_or_raise("User", "email", admin.email)
    logger.info("Organization %s created by user %s", org.id, admin.id)
    return org, admin


# ═══════════════════════════════════════════════════════════════
# Password change
# ═══════════════════════════════════════════════════════════════
def change_password(user: User, current_password: str, new_password: str) -> None:
    if not current_password or not new_password:
        raise ValidationError(
            "currentPassword and newPassword are required",
            details={"currentPassword": "required", "newPassword": "required"},
        )
    if not isinstance(current_password, str) or not isinstance(new_password, str):
        raise ValidationError(
            "currentPassword and newPassword must be strings",
            details={"currentPassword": "invalid", "newPassword": "invalid"},
        )
    if not verify_password(current_password, user.password_hash):
        raise AuthenticationError("Current password is incorrect")
    if current_password == new_password:
        raise ValidationError(
            "New password must be different from the current password",
            details={"newPassword": "unchanged"},
        )
    errors = password_strength_errors(new_password)
    if errors:
        raise ValidationError(errors[0], details={"newPassword": errors})

    user.password_hash = hash_password(new_password)
    db.session.commit()
    logger.info("User %s changed password", user.id)
