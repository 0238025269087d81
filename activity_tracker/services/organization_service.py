"""
Organization Service — the caller's own tenant.

Every function takes the organization id resolved from the authenticated
user; nothing here accepts an organization id from the request body.
"""

from activity_tracker.core.exceptions import NotFoundError, ValidationError
from activity_tracker.models import db
from activity_tracker.models.audit import write_audit
from activity_tracker.models.auth import Organization, User
from activity_tracker.utils.helpers import optional_text, require_fields

_UPDATABLE = {
    "name": "name",
    "description": "description",
    "industry": "industry",
    "timezone": "timezone",
    "logoUrl": "logo_url",
}


def get_organization(organization_id) -> Organization:
    org = db.session.get(Organization, organization_id) if organization_id else None
    if not org:
        raise NotFoundError("Organization", organization_id)
    return org


def update_organization(organization_id, data: dict, actor_id=None) -> Organization:
    """Update profile fields; ``settings`` is merged key by key."""
    org = get_organization(organization_id)
    require_fields(data, "name")

    diff = {}
    for field, attr in _UPDATABLE.items():
        if field not in data:
            continue
        value = optional_text(data[field], field)
        if getattr(org, attr) != value:
            diff[field] = {"old": getattr(org, attr), "new": value}
            setattr(org, attr, value)

    settings = data.get("settings")
    if settings is not None:
        if not isinstance(settings, dict):
            raise ValidationError("settings must be an object", details={"settings": "invalid"})
        merged = dict(org.settings or {})
        merged.update(settings)
        diff["settings"] = {"old": org.settings, "new": merged}
        org.settings = merged

    if diff:
        write_audit(
            entity_type="organization", entity_id=org.id, action="update",
            organization_id=org.id, actor_user_id=actor_id, diff=diff,
        )
    db.session.commit()
    return org


def list_organization_users(organization_id, *, include_inactive=False):
    q = User.query.filter_by(organization_id=organization_id)
    if not include_inactive:
        q = q.filter_by(is_active=True)
    return q.order_by(User.created_at, User.id).all()


def count_organization_users(organization_id, *, include_inactive=False) -> int:
    q = User.query.filter_by(organization_id=organization_id)
    if not include_inactive:
        q = q.filter_by(is_active=True)
    return q.count()
