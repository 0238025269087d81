"""
Status Configuration Service — organization-scoped status registry.

Operations:
  list / active / mapping       read paths used by every dashboard
  create / update / delete      admin catalog maintenance (defaults cannot be deleted)
  toggle_active / reorder
  initialize_defaults           idempotent seeding (also run on organization creation)
  validate_transition           enforces workflowRules.allowedTransitions / requiredRole
  usage_stats

Services flush; callers (blueprints via services) commit.
"""

import logging
import re

from sqlalchemy import func

from activity_tracker.core.exceptions import ConflictError, NotFoundError, ValidationError
from activity_tracker.models import db
from activity_tracker.models.activity import Activity
from activity_tracker.models.audit import write_audit
from activity_tracker.models.auth import ROLES
from activity_tracker.models.status_configuration import (
    DEFAULT_COLOR,
    DEFAULT_STATUSES,
    STATUS_TYPES,
    StatusConfiguration,
)
from activity_tracker.models.task import Task
from activity_tracker.utils.helpers import optional_text

logger = logging.getLogger(__name__)

_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")
_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9_\-]{0,49}$")

_UPDATABLE = {
    "displayName": "display_name",
    "color": "color",
    "order": "sort_order",
    "description": "description",
    "isActive": "is_active",
    "workflowRules": "workflow_rules",
}


# ═══════════════════════════════════════════════════════════════
# Validation helpers
# ═══════════════════════════════════════════════════════════════
def _validate_type(status_type):
    if status_type not in STATUS_TYPES:
        raise ValidationError(
            f"type must be one of: {', '.join(STATUS_TYPES)}",
            details={"type": "invalid"},
        )
    return status_type


def _validate_color(color):
    if not isinstance(color, str) or not _COLOR_RE.match(color):
        raise ValidationError("color must be a hex value like #3B82F6", details={"color": "invalid"})
    return color.upper()


def _validate_workflow_rules(rules):
    if rules is None:
        return None
    if not isinstance(rules, dict):
        raise ValidationError("workflowRules must be an object", details={"workflowRules": "invalid"})
    allowed = rules.get("allowedTransitions")
    if allowed is not None and not (
        isinstance(allowed, list) and all(isinstance(a, str) for a in allowed)
    ):
        raise ValidationError(
            "workflowRules.allowedTransitions must be a list of status names",
            details={"workflowRules.allowedTransitions": "invalid"},
        )
    required = rules.get("requiredRole")
    if isinstance(required, str):
        required = [required]
    if required is not None:
        if not isinstance(required, list) or any(r not in ROLES for r in required):
            raise ValidationError(
                f"workflowRules.requiredRole must contain only: {', '.join(ROLES)}",
                details={"workflowRules.requiredRole": "invalid"},
            )
    auto = rules.get("autoTransitions")
    if auto is not None and not isinstance(auto, list):
        raise ValidationError(
            "workflowRules.autoTransitions must be a list",
            details={"workflowRules.autoTransitions": "invalid"},
        )
    cleaned = dict(rules)
    if required is not None:
        cleaned["requiredRole"] = required
    return cleaned


def _validate_order(order):
    if isinstance(order, bool) or not isinstance(order, int) or order < 0:
        raise ValidationError("order must be a non-negative integer", details={"order": "invalid"})
    return order


def _validate_is_active(value):
    if not isinstance(value, bool):
        raise ValidationError("isActive must be a boolean", details={"isActive": "invalid"})
    return value


def _get(organization_id, status_id) -> StatusConfiguration:
    sc = StatusConfiguration.get_for_org(organization_id, status_id)
    if not sc:
        raise NotFoundError("Status configuration", status_id, organization_id)
    return sc


def _find_by_name(organization_id, status_type, name):
    return StatusConfiguration.query_for_org(organization_id).filter_by(
        type=status_type, name=name,
    ).first()


# ═══════════════════════════════════════════════════════════════
# Read paths
# ═══════════════════════════════════════════════════════════════
def list_statuses(organization_id, status_type=None, *, active_only=False):
    q = StatusConfiguration.query_for_org(organization_id)
    if status_type:
        q = q.filter_by(type=_validate_type(status_type))
    if active_only:
        q = q.filter_by(is_active=True)
    return q.order_by(StatusConfiguration.type, StatusConfiguration.sort_order, StatusConfiguration.id).all()


def get_status(organization_id, status_id):
    return _get(organization_id, status_id)


def ensure_active_status(organization_id, status_type, name) -> None:
    """ValidationError unless ``name`` is an active status of ``status_type``."""
    if not isinstance(name, str):
        raise ValidationError(f"{status_type} status must be a string", details={"status": "invalid"})
    exists = StatusConfiguration.query_for_org(organization_id).filter_by(
        type=status_type, name=name, is_active=True,
    ).first()
    if not exists:
        raise ValidationError(
            f"Unknown or inactive {status_type} status '{name}'", details={"status": name},
        )


def status_mapping(organization_id) -> dict:
    """``{type: {name: {displayName, color}}}`` for ACTIVE entries only."""
    mapping = {t: {} for t in STATUS_TYPES}
    for sc in list_statuses(organization_id, active_only=True):
        mapping[sc.type][sc.name] = {"displayName": sc.display_name, "color": sc.color}
    return mapping


# ═══════════════════════════════════════════════════════════════
# Catalog maintenance
# ═══════════════════════════════════════════════════════════════
def create_status(organization_id, data: dict, actor_id=None) -> StatusConfiguration:
    status_type = _validate_type(data.get("type"))
    name = optional_text(data.get("name"), "name")
    if not name:
        raise ValidationError("name is required", details={"name": "required"})
    if not _NAME_RE.match(name):
        raise ValidationError(
            "name must be a lowercase code (letters, digits, '_' or '-')",
            details={"name": "invalid"},
        )
    display_name = optional_text(data.get("displayName"), "displayName") or name.replace("_", " ").title()
    color = _validate_color(data.get("color") or DEFAULT_COLOR)

    if _find_by_name(organization_id, status_type, name):
        raise ConflictError("Status configuration", "name", f"{status_type}:{name}")

    order = data.get("order")
    if order is None:
        max_order = (
            db.session.query(func.max(StatusConfiguration.sort_order))
            .filter_by(organization_id=organization_id, type=status_type)
            .scalar()
        )
        order = (max_order or 0) + 1
    else:
        order = _validate_order(order)

    sc = StatusConfiguration(
        organization_id=organization_id,
        type=status_type,
        name=name,
        display_name=display_name,
        color=color,
        sort_order=order,
        description=optional_text(data.get("description"), "description"),
        is_default=False,
        is_active=_validate_is_active(data.get("isActive", True)),
        workflow_rules=_validate_workflow_rules(data.get("workflowRules")),
    )
    db.session.add(sc)
    db.session.flush()
    write_audit(
        entity_type="status_configuration", entity_id=sc.id, action="create",
        organization_id=organization_id, actor_user_id=actor_id,
        diff={"type": status_type, "name": name},
    )
    logger.info("Status %s:%s created for organization %s", status_type, name, organization_id)
    return sc


def update_status(organization_id, status_id, data: dict, actor_id=None) -> StatusConfiguration:
    sc = _get(organization_id, status_id)
    diff = {}

    if "name" in data and data["name"] != sc.name:
        if sc.is_default:
            raise ValidationError("Default statuses cannot be renamed", details={"name": "default"})
        new_name = optional_text(data.get("name"), "name") or ""
        if not _NAME_RE.match(new_name):
            raise ValidationError("name must be a lowercase code", details={"name": "invalid"})
        if _find_by_name(organization_id, sc.type, new_name):
            raise ConflictError("Status configuration", "name", f"{sc.type}:{new_name}")
        diff["name"] = {"old": sc.name, "new": new_name}
        sc.name = new_name

    for field, attr in _UPDATABLE.items():
        if field not in data:
            continue
        value = data[field]
        if field == "color":
            value = _validate_color(value)
        elif field == "displayName":
            value = optional_text(value, "displayName")
            if not value:
                raise ValidationError("displayName cannot be empty", details={"displayName": "required"})
        elif field == "order":
            value = _validate_order(value)
        elif field == "isActive":
            value = _validate_is_active(value)
        elif field == "description":
            value = optional_text(value, "description")
        elif field == "workflowRules":
            value = _validate_workflow_rules(value)
        old = getattr(sc, attr)
        if old != value:
            diff[field] = {"old": old, "new": value}
            setattr(sc, attr, value)

    if diff:
        write_audit(
            entity_type="status_configuration", entity_id=sc.id, action="update",
            organization_id=organization_id, actor_user_id=actor_id, diff=diff,
        )
    db.session.flush()
    return sc


def delete_status(organization_id, status_id, actor_id=None) -> None:
    sc = _get(organization_id, status_id)
    if sc.is_default:
        raise ValidationError(
            "Default status configurations cannot be deleted; deactivate them instead",
            details={"isDefault": True},
        )
    write_audit(
        entity_type="status_configuration", entity_id=sc.id, action="delete",
        organization_id=organization_id, actor_user_id=actor_id,
        diff={"type": sc.type, "name": sc.name},
    )
    db.session.delete(sc)
    db.session.flush()


def toggle_active(organization_id, status_id, actor_id=None) -> StatusConfiguration:
    sc = _get(organization_id, status_id)
    return update_status(organization_id, sc.id, {"isActive": not sc.is_active}, actor_id)


def reorder(organization_id, status_type, status_ids, actor_id=None) -> list[StatusConfiguration]:
    """Assign order 1..n following ``status_ids``; ids of another type/org are rejected."""
    _validate_type(status_type)
    if not isinstance(status_ids, list) or not status_ids:
        raise ValidationError("statusIds must be a non-empty list", details={"statusIds": "required"})
    if any(isinstance(sid, bool) or not isinstance(sid, int) for sid in status_ids):
        raise ValidationError("statusIds must be integers", details={"statusIds": "invalid"})
    if len(set(status_ids)) != len(status_ids):
        raise ValidationError("statusIds must not contain duplicates", details={"statusIds": "invalid"})

    by_id = {sc.id: sc for sc in list_statuses(organization_id, status_type)}
    unknown = [sid for sid in status_ids if sid not in by_id]
    if unknown:
        raise ValidationError(
            f"Unknown {status_type} status ids: {unknown}", details={"statusIds": unknown},
        )
    for index, sid in enumerate(status_ids, start=1):
        by_id[sid].sort_order = index
    write_audit(
        entity_type="status_configuration", entity_id=status_type,
        action="status_configuration.reorder", organization_id=organization_id,
        actor_user_id=actor_id, diff={"order": status_ids},
    )
    db.session.flush()
    return list_statuses(organization_id, status_type)


def initialize_defaults(organization_id, actor_id=None) -> int:
    """Seed missing default statuses. Returns the number of rows created."""
    existing = {
        (sc.type, sc.name) for sc in StatusConfiguration.query_for_org(organization_id).all()
    }
    created = 0
    for status_type, entries in DEFAULT_STATUSES.items():
        for index, entry in enumerate(entries, start=1):
            if (status_type, entry["name"]) in existing:
                continue
            db.session.add(StatusConfiguration(
                organization_id=organization_id,
                type=status_type,
                name=entry["name"],
                display_name=entry["displayName"],
                color=entry["color"],
                sort_order=index,
                is_default=True,
                is_active=True,
            ))
            created += 1
    if created:
        db.session.flush()
        write_audit(
            entity_type="status_configuration", entity_id=organization_id,
            action="status_configuration.initialize_defaults",
            organization_id=organization_id, actor_user_id=actor_id, diff={"created": created},
        )
        logger.info("Seeded %d default statuses for organization %s", created, organization_id)
    return created


# ═══════════════════════════════════════════════════════════════
# Transition validation
# ═══════════════════════════════════════════════════════════════
def validate_transition(organization_id, status_type, from_status, to_status, role=None) -> dict:
    """
    Validate a status move against the registry.

    Returns:
        {"isValid": bool, "reason": str|None}

    A move is valid when both statuses exist and are active, the source's
    ``allowedTransitions`` (when non-empty) lists the target, and the
    target's ``requiredRole`` (when non-empty) contains ``role``.
    """
    _validate_type(status_type)
    if not isinstance(from_status, str) or not isinstance(to_status, str):
        return {"isValid": False, "reason": "fromStatus and toStatus must be strings"}
    if from_status == to_status:
        return {"isValid": True, "reason": None}

    lookup = {
        sc.name: sc for sc in StatusConfiguration.query_for_org(organization_id)
        .filter(StatusConfiguration.type == status_type,
                StatusConfiguration.name.in_([from_status, to_status]),
                StatusConfiguration.is_active.is_(True))
        .all()
    }
    source, target = lookup.get(from_status), lookup.get(to_status)
    if source is None:
        return {"isValid": False, "reason": f"Unknown or inactive {status_type} status '{from_status}'"}
    if target is None:
        return {"isValid": False, "reason": f"Unknown or inactive {status_type} status '{to_status}'"}

    allowed = source.allowed_transitions
    if allowed and to_status not in allowed:
        return {"isValid": False, "reason": f"'{from_status}' cannot move to '{to_status}'"}

    required = target.required_roles
    if required and role not in required:
        return {"isValid": False, "reason": f"Moving to '{to_status}' requires role {', '.join(required)}"}

    return {"isValid": True, "reason": None}


def ensure_transition(organization_id, status_type, from_status, to_status, role) -> None:
    """Raise ValidationError when ``validate_transition`` rejects the move."""
    result = validate_transition(organization_id, status_type, from_status, to_status, role)
    if not result["isValid"]:
        raise ValidationError(result["reason"], details={"status": to_status})


# ═══════════════════════════════════════════════════════════════
# Usage statistics
# ═══════════════════════════════════════════════════════════════
def usage_stats(organization_id, status_type=None) -> dict:
    statuses = list_statuses(organization_id, status_type)
    stats = {
        "totalStatuses": len(statuses),
        "activeStatuses": sum(1 for s in statuses if s.is_active),
        "inactiveStatuses": sum(1 for s in statuses if not s.is_active),
        "byType": {},
        "usage": {},
    }
    for s in statuses:
        stats["byType"][s.type] = stats["byType"].get(s.type, 0) + 1

    counters = {
        "activity": (Activity, Activity.status),
        "task": (Task, Task.status),
        "approval": (Activity, Activity.approval_state),
    }
    for t, (model, column) in counters.items():
        if status_type and t != status_type:
            continue
        rows = (
            db.session.query(column, func.count(model.id))
            .filter(model.organization_id == organization_id)
            .group_by(column)
            .all()
        )
        stats["usage"][t] = {name: count for name, count in rows}
    return stats
