"""
User Service — organization user administration and preferences.
"""

import logging

from flask import current_app

from activity_tracker.core.exceptions import NotFoundError, ValidationError
from activity_tracker.models import db
from activity_tracker.models.audit import write_audit
from activity_tracker.models.auth import ROLE_ADMIN, User
from activity_tracker.services.auth_service import build_user, validate_role
from activity_tracker.services.permission import check_permission
from activity_tracker.utils.crypto import generate_password
from activity_tracker.utils.helpers import db_commit_or_raise, require_fields

logger = logging.getLogger(__name__)


def get_org_user(organization_id, user_id) -> User:
    """User of the given organization or NotFoundError (also for other tenants)."""
    user = User.query.filter_by(id=user_id, organization_id=organization_id).first()
    if not user:
        raise NotFoundError("User", user_id, organization_id)
    return user


def list_users(organization_id, role=None):
    q = User.query.filter_by(organization_id=organization_id, is_active=True)
    if role:
        q = q.filter_by(role=validate_role(role))
    return q.order_by(User.name, User.id).all()


def create_user(actor: User, data: dict) -> tuple[User, str | None]:
    """
    Create a user inside the actor's organization.

    Returns (user, generated_password); generated_password is None when the
    caller supplied one. Only ADMIN may create ADMIN users.
    """
    require_fields(data, "email", "name")
    role = validate_role(data.get("role"))
    if role == ROLE_ADMIN and actor.role != ROLE_ADMIN:
        raise ValidationError("Only administrators can create ADMIN users", details={"role": "forbidden"})

    generated = None
    password = data.get("password")
    if not password:
        generated = generate_password(current_app.config.get("DEFAULT_USER_PASSWORD_LENGTH", 12))
        password = generated

    user = build_user(data["email"], password, data["name"], role, actor.organization_id)
    write_audit(
        entity_type="user", entity_id=user.id, action="create",
        organization_id=actor.organization_id, actor_user_id=actor.id,
        diff={"email": user.email, "role": role},
    )
    db_commit_or_raise("User", "email", user.email)
    logger.info("User %s created in organization %s by %s", user.id, actor.organization_id, actor.id)
    return user, generated


def get_user(actor: User, user_id) -> User:
    user = get_org_user(actor.organization_id, user_id)
    check_permission(actor, "users.view", owner_id=user.id)
    return user


def change_role(actor: User, user_id, role) -> User:
    if not role:
        raise ValidationError("role is required", details={"role": "required"})
    role = validate_role(role)
    user = get_org_user(actor.organization_id, user_id)
    if user.id == actor.id:
        raise ValidationError("You cannot change your own role", details={"role": "self"})
    old = user.role
    if old != role:
        user.role = role
        write_audit(
            entity_type="user", entity_id=user.id, action="user.role_change",
            organization_id=actor.organization_id, actor_user_id=actor.id,
            diff={"role": {"old": old, "new": role}},
        )
    db.session.commit()
    return user


def deactivate_user(actor: User, user_id) -> User:
    user = get_org_user(actor.organization_id, user_id)
    if user.id == actor.id:
        raise ValidationError("You cannot deactivate your own account", details={"id": "self"})
    if user.is_active:
        user.is_active = False
        write_audit(
            entity_type="user", entity_id=user.id, action="user.deactivate",
            organization_id=actor.organization_id, actor_user_id=actor.id,
        )
    db.session.commit()
    logger.info("User %s deactivated by %s", user.id, actor.id)
    return user


def update_preferences(user: User, prefs: dict) -> dict:
    if not isinstance(prefs, dict):
        raise ValidationError("preferences must be an object", details={"preferences": "invalid"})
    merged = dict(user.preferences or {})
    merged.update(prefs)
    user.preferences = merged
    db.session.commit()
    return merged
