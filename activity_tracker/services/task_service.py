"""
Task Service — PM assignment, member self-assignment, start and status moves.

Starting a task (or self-creating one) spawns a draft Activity linked via
``activities.task_id`` so the work can go through approval.
"""

import logging

from activity_tracker.core.exceptions import NotFoundError, TransitionError, ValidationError
from activity_tracker.models import db
from activity_tracker.models.activity import Activity
from activity_tracker.models.audit import AuditLog, write_audit
from activity_tracker.models.auth import User
from activity_tracker.models.task import (
    DEFAULT_TASK_STATUS,
    TASK_PRIORITIES,
    TASK_TO_ACTIVITY_PRIORITY,
    Task,
)
from activity_tracker.services import activity_service
from activity_tracker.services import status_configuration_service as status_registry
from activity_tracker.services.permission import check_permission, has_permission
from activity_tracker.services.project_service import get_project, get_visible_project
from activity_tracker.services.user_service import get_org_user
from activity_tracker.utils.helpers import optional_text, parse_date, parse_int, require_fields

logger = logging.getLogger(__name__)

IN_PROGRESS = "in_progress"


def _validate_priority(priority):
    priority = priority or "Medium"
    if priority not in TASK_PRIORITIES:
        raise ValidationError(
            f"priority must be one of: {', '.join(TASK_PRIORITIES)}", details={"priority": "invalid"},
        )
    return priority


def get_task(user: User, task_id) -> Task:
    """Org-scoped lookup; MEMBER users only see tasks assigned to or created by them."""
    task = Task.get_for_org(user.organization_id, task_id)
    if task is None or not (
        has_permission(user, "tasks.view_all") or user.id in (task.assignee_id, task.created_by_id)
    ):
        raise NotFoundError("Task", task_id, user.organization_id)
    return task


def linked_activity_id(task: Task):
    return db.session.query(Activity.id).filter_by(task_id=task.id).order_by(Activity.id).limit(1).scalar()


def _spawn_activity(user: User, task: Task) -> Activity:
    return activity_service.build_activity(
        user,
        {
            "title": task.title,
            "description": task.description,
            "priority": TASK_TO_ACTIVITY_PRIORITY.get(task.priority, "medium"),
            "projectId": task.project_id,
            "status": IN_PROGRESS,
            "endDate": task.due_date,
            "assigneeIds": [task.assignee_id] if task.assignee_id else None,
        },
        task_id=task.id,
    )


def _build_task(user: User, project_id, data: dict, *, assignee: User, status: str) -> Task:
    require_fields(data, "title")
    status_registry.ensure_active_status(user.organization_id, "task", status)
    task = Task(
        organization_id=user.organization_id,
        project_id=project_id,
        title=data["title"].strip(),
        description=optional_text(data.get("description"), "description"),
        priority=_validate_priority(data.get("priority")),
        due_date=parse_date(data.get("dueDate"), "dueDate"),
        assignee_id=assignee.id,
        created_by_id=user.id,
        status=status,
    )
    db.session.add(task)
    db.session.flush()
    write_audit(
        entity_type="task", entity_id=task.id, action="create",
        organization_id=user.organization_id, actor_user_id=user.id,
        diff={"title": task.title, "assigneeId": assignee.id},
    )
    return task


# ═══════════════════════════════════════════════════════════════
# Creation
# ═══════════════════════════════════════════════════════════════
def assign_task(user: User, project_id, data: dict) -> Task:
    """PM/Admin creates a task for a member of the organization."""
    check_permission(user, "tasks.assign")
    project = get_project(user.organization_id, project_id)
    assignee_id = parse_int(data.get("assigneeId"), "assigneeId")
    if assignee_id is None:
        raise ValidationError("assigneeId is required", details={"assigneeId": "required"})
    assignee = get_org_user(user.organization_id, assignee_id)
    if not assignee.is_active:
        raise ValidationError("Cannot assign a task to a deactivated user", details={"assigneeId": "inactive"})

    task = _build_task(user, project.id, data, assignee=assignee, status=DEFAULT_TASK_STATUS)
    db.session.commit()
    logger.info("Task %s assigned to user %s by %s", task.id, assignee.id, user.id)
    return task


def self_create_task(user: User, project_id, data: dict) -> tuple[Task, Activity]:
    """Member creates a task for themselves; it starts immediately with a linked activity."""
    project = get_visible_project(user, project_id)
    task = _build_task(user, project.id, data, assignee=user, status=IN_PROGRESS)
    activity = _spawn_activity(user, task)
    db.session.commit()
    logger.info("User %s self-created task %s (activity %s)", user.id, task.id, activity.ticket_number)
    return task, activity


# ═══════════════════════════════════════════════════════════════
# Listing
# ═══════════════════════════════════════════════════════════════
def list_all_tasks(user: User, filters: dict):
    check_permission(user, "tasks.view_all")
    q = Task.query_for_org(user.organization_id)
    if filters.get("status"):
        q = q.filter(Task.status == filters["status"])
    assignee_id = parse_int(filters.get("assigneeId"), "assigneeId")
    if assignee_id is not None:
        q = q.filter(Task.assignee_id == assignee_id)
    project_id = parse_int(filters.get("projectId"), "projectId")
    if project_id is not None:
        q = q.filter(Task.project_id == project_id)
    return q.order_by(Task.created_at.desc(), Task.id.desc()).all()


def list_my_tasks(user: User, filters: dict):
    q = Task.query_for_org(user.organization_id).filter(Task.assignee_id == user.id)
    if filters.get("status"):
        q = q.filter(Task.status == filters["status"])
    project_id = parse_int(filters.get("projectId"), "projectId")
    if project_id is not None:
        q = q.filter(Task.project_id == project_id)
    return q.order_by(Task.due_date.is_(None), Task.due_date, Task.id).all()


# ═══════════════════════════════════════════════════════════════
# Status moves
# ═══════════════════════════════════════════════════════════════
def start_task(user: User, task_id) -> tuple[Task, Activity]:
    """Assignee moves to_do → in_progress; creates the activity that tracks the work."""
    task = get_task(user, task_id)
    check_permission(user, "tasks.start", owner_id=task.assignee_id)
    if task.status != DEFAULT_TASK_STATUS:
        raise TransitionError(f"task {task.id}", "start", task.status, "only to_do tasks can be started")

    task.status = IN_PROGRESS
    activity = _spawn_activity(user, task)
    write_audit(
        entity_type="task", entity_id=task.id, action="task.start",
        organization_id=user.organization_id, actor_user_id=user.id,
        diff={"status": {"old": DEFAULT_TASK_STATUS, "new": IN_PROGRESS}, "activityId": activity.id},
    )
    db.session.commit()
    return task, activity


def update_task_status(user: User, task_id, status) -> Task:
    if not status:
        raise ValidationError("status is required", details={"status": "required"})
    task = get_task(user, task_id)
    check_permission(user, "tasks.update_status", owner_id=task.assignee_id)
    if status == task.status:
        return task
    status_registry.ensure_transition(user.organization_id, "task", task.status, status, user.role)

    old = task.status
    task.status = status
    write_audit(
        entity_type="task", entity_id=task.id, action="task.status_change",
        organization_id=user.organization_id, actor_user_id=user.id,
        diff={"status": {"old": old, "new": status}},
    )
    db.session.commit()
    return task


# ═══════════════════════════════════════════════════════════════
# History
# ═══════════════════════════════════════════════════════════════
def task_history(user: User, task_id) -> list[dict]:
    """Audit entries of a visible task, newest first, with the acting user."""
    task = get_task(user, task_id)
    rows = (
        db.session.query(AuditLog, User)
        .outerjoin(User, User.id == AuditLog.actor_user_id)
        .filter(
            AuditLog.organization_id == user.organization_id,
            AuditLog.entity_type == "task",
            AuditLog.entity_id == str(task.id),
        )
        .order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())
        .all()
    )
    return [
        {
            "id": log.id,
            "changeType": log.action,
            "changes": log.diff or {},
            "actor": {"id": actor.id, "name": actor.name, "email": actor.email} if actor else None,
            "createdAt": log.timestamp.isoformat() if log.timestamp else None,
        }
        for log, actor in rows
    ]
