"""
Activity Service — CRUD and role-scoped listing.

Approval state is never written here; see activity_lifecycle for the
submit/approve/reject/close transitions.
"""

import logging
import secrets
import time

from activity_tracker.core.exceptions import NotFoundError, ValidationError
from activity_tracker.models import db
from activity_tracker.models.activity import (
    ACTIVITY_PRIORITIES,
    APPROVAL_STATES,
    DEFAULT_ACTIVITY_STATUS,
    Activity,
    activity_assignees,
)
from activity_tracker.models.audit import write_audit
from activity_tracker.models.auth import User
from activity_tracker.services import status_configuration_service as status_registry
from activity_tracker.services.permission import check_permission, has_permission
from activity_tracker.services.project_service import get_project, get_visible_project
from activity_tracker.services.user_service import get_org_user
from activity_tracker.utils.helpers import optional_text, parse_date, parse_int, require_fields

logger = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def generate_ticket_number() -> str:
    """``ACT-<base36 ms timestamp>-<random>``, upper-case."""
    n = int(time.time() * 1000)
    digits = ""
    while n:
        n, r = divmod(n, 36)
        digits = _BASE36[r] + digits
    return f"ACT-{digits}-{secrets.token_hex(3)}".upper()


# ═══════════════════════════════════════════════════════════════
# Field helpers
# ═══════════════════════════════════════════════════════════════
def _validate_priority(priority):
    if priority not in ACTIVITY_PRIORITIES:
        raise ValidationError(
            f"priority must be one of: {', '.join(ACTIVITY_PRIORITIES)}", details={"priority": "invalid"},
        )
    return priority


def _validate_tags(tags):
    if tags is None:
        return []
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise ValidationError("tags must be a list of strings", details={"tags": "invalid"})
    return [t.strip() for t in tags if t.strip()]


def _resolve_assignees(organization_id, assignee_ids):
    if assignee_ids is None:
        return None
    if not isinstance(assignee_ids, list):
        raise ValidationError("assigneeIds must be a list", details={"assigneeIds": "invalid"})
    users = []
    for uid in dict.fromkeys(assignee_ids):
        user = get_org_user(organization_id, parse_int(uid, "assigneeIds"))
        if not user.is_active:
            raise ValidationError(f"User {uid} is deactivated", details={"assigneeIds": uid})
        users.append(user)
    return users


def _check_dates(activity):
    if activity.start_date and activity.end_date and activity.end_date < activity.start_date:
        raise ValidationError("endDate cannot be before startDate", details={"endDate": "before startDate"})


def is_visible(user: User, activity: Activity) -> bool:
    if has_permission(user, "activity.view_all"):
        return True
    return activity.created_by_id == user.id or activity.is_assigned(user.id)


def get_activity(user: User, activity_id) -> Activity:
    """Org-scoped lookup; activities the caller may not see are reported as missing."""
    activity = Activity.get_for_org(user.organization_id, activity_id)
    if not activity or not is_visible(user, activity):
        raise NotFoundError("Activity", activity_id, user.organization_id)
    return activity


# ═══════════════════════════════════════════════════════════════
# Create / list
# ═══════════════════════════════════════════════════════════════
def build_activity(user: User, data: dict, *, task_id=None) -> Activity:
    """Validate and add an activity to the session (flushed, not committed)."""
    require_fields(data, "title")
    org_id = user.organization_id

    project_id = parse_int(data.get("projectId"), "projectId")
    if project_id is not None:
        # Activities spawned from a task inherit the task's already-checked project
        if task_id is not None or has_permission(user, "activity.create_any_project"):
            get_project(org_id, project_id)
        else:
            get_visible_project(user, project_id)

    status = data.get("status") or DEFAULT_ACTIVITY_STATUS
    status_registry.ensure_active_status(org_id, "activity", status)

    assignees = _resolve_assignees(org_id, data.get("assigneeIds"))
    if not assignees:
        assignees = [user]

    activity = Activity(
        organization_id=org_id,
        ticket_number=generate_ticket_number(),
        title=data["title"].strip(),
        description=optional_text(data.get("description"), "description"),
        status=status,
        priority=_validate_priority(data.get("priority") or "medium"),
        tags=_validate_tags(data.get("tags")),
        start_date=parse_date(data.get("startDate"), "startDate"),
        end_date=parse_date(data.get("endDate"), "endDate"),
        project_id=project_id,
        task_id=task_id,
        created_by_id=user.id,
        updated_by_id=user.id,
    )
    _check_dates(activity)
    activity.assignees = assignees
    db.session.add(activity)
    db.session.flush()
    write_audit(
        entity_type="activity", entity_id=activity.id, action="create",
        organization_id=org_id, actor_user_id=user.id,
        diff={"title": activity.title, "ticketNumber": activity.ticket_number},
    )
    return activity


def create_activity(user: User, data: dict) -> Activity:
    activity = build_activity(user, data)
    db.session.commit()
    logger.info("Activity %s created by user %s", activity.ticket_number, user.id)
    return activity


def visible_activities(user: User):
    """Organization activities; MEMBER users only see their own or assigned ones."""
    q = Activity.query_for_org(user.organization_id)
    if not has_permission(user, "activity.view_all"):
        own = Activity.created_by_id == user.id
        assigned = Activity.id.in_(
            db.select(activity_assignees.c.activity_id).where(activity_assignees.c.user_id == user.id)
        )
        q = q.filter(db.or_(own, assigned))
    return q


def list_activities(user: User, filters: dict):
    q = visible_activities(user)

    if filters.get("status"):
        q = q.filter(Activity.status == filters["status"])
    approval_state = filters.get("approvalState")
    if approval_state:
        if approval_state not in APPROVAL_STATES:
            raise ValidationError(
                f"approvalState must be one of: {', '.join(APPROVAL_STATES)}",
                details={"approvalState": "invalid"},
            )
        q = q.filter(Activity.approval_state == approval_state)
    project_id = parse_int(filters.get("projectId"), "projectId")
    if project_id is not None:
        q = q.filter(Activity.project_id == project_id)
    assignee_id = parse_int(filters.get("assigneeId"), "assigneeId")
    if assignee_id is not None:
        q = q.filter(Activity.id.in_(
            db.select(activity_assignees.c.activity_id).where(activity_assignees.c.user_id == assignee_id)
        ))
    if filters.get("priority"):
        q = q.filter(Activity.priority == filters["priority"])

    return q.order_by(Activity.created_at.desc(), Activity.id.desc()).all()


# ═══════════════════════════════════════════════════════════════
# Update / delete
# ═══════════════════════════════════════════════════════════════
def update_activity(user: User, activity_id, data: dict) -> Activity:
    activity = get_activity(user, activity_id)
    check_permission(
        user, "activity.update", owner_id=activity.created_by_id, state=activity.approval_state,
    )
    if "approvalState" in data:
        raise ValidationError(
            "approvalState changes go through submit/approve/reject/close",
            details={"approvalState": "read-only"},
        )

    org_id = user.organization_id
    diff = {}

    def _set(field, attr, value):
        old = getattr(activity, attr)
        if old != value:
            diff[field] = {"old": old, "new": value}
            setattr(activity, attr, value)

    if "title" in data:
        title = optional_text(data.get("title"), "title")
        if not title:
            raise ValidationError("title cannot be empty", details={"title": "required"})
        _set("title", "title", title)
    if "description" in data:
        _set("description", "description", optional_text(data.get("description"), "description"))
    if "priority" in data:
        _set("priority", "priority", _validate_priority(data.get("priority")))
    if "tags" in data:
        _set("tags", "tags", _validate_tags(data.get("tags")))
    if "startDate" in data:
        _set("startDate", "start_date", parse_date(data.get("startDate"), "startDate"))
    if "endDate" in data:
        _set("endDate", "end_date", parse_date(data.get("endDate"), "endDate"))
    if "projectId" in data:
        project_id = parse_int(data.get("projectId"), "projectId")
        if project_id is not None:
            if has_permission(user, "activity.create_any_project"):
                get_project(org_id, project_id)
            else:
                get_visible_project(user, project_id)
        _set("projectId", "project_id", project_id)
    if "status" in data and data["status"] != activity.status:
        status_registry.ensure_transition(org_id, "activity", activity.status, data["status"], user.role)
        _set("status", "status", data["status"])
    if "assigneeIds" in data:
        assignees = _resolve_assignees(org_id, data.get("assigneeIds")) or []
        old_ids = sorted(u.id for u in activity.assignees)
        new_ids = sorted(u.id for u in assignees)
        if old_ids != new_ids:
            diff["assigneeIds"] = {"old": old_ids, "new": new_ids}
            activity.assignees = assignees

    _check_dates(activity)
    if diff:
        activity.updated_by_id = user.id
        write_audit(
            entity_type="activity", entity_id=activity.id, action="update",
            organization_id=org_id, actor_user_id=user.id, diff=diff,
        )
    db.session.commit()
    return activity


def delete_activity(user: User, activity_id) -> None:
    activity = get_activity(user, activity_id)
    check_permission(
        user, "activity.delete", owner_id=activity.created_by_id, state=activity.approval_state,
    )
    write_audit(
        entity_type="activity", entity_id=activity.id, action="delete",
        organization_id=user.organization_id, actor_user_id=user.id,
        diff={"ticketNumber": activity.ticket_number, "approvalState": activity.approval_state},
    )
    db.session.delete(activity)
    db.session.commit()
    logger.info("Activity %s deleted by user %s", activity_id, user.id)
