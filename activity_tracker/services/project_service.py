"""
Project Service — organization-scoped projects and their membership.

MEMBER users only see projects they belong to; managers see every
project of their organization.
"""

import logging

from activity_tracker.core.exceptions import ConflictError, NotFoundError, ValidationError
from activity_tracker.models import db
from activity_tracker.models.audit import write_audit
from activity_tracker.models.auth import User
from activity_tracker.models.project import PROJECT_STATUSES, Project, project_members
from activity_tracker.services.permission import has_permission
from activity_tracker.services.user_service import get_org_user
from activity_tracker.utils.helpers import db_commit_or_raise, optional_text, require_fields

logger = logging.getLogger(__name__)


def get_project(organization_id, project_id) -> Project:
    project = Project.get_for_org(organization_id, project_id)
    if not project:
        raise NotFoundError("Project", project_id, organization_id)
    return project


def get_visible_project(user: User, project_id) -> Project:
    """Project lookup that hides non-member projects from MEMBER users."""
    project = get_project(user.organization_id, project_id)
    if not has_permission(user, "projects.view_all") and not project.has_member(user.id):
        raise NotFoundError("Project", project_id, user.organization_id)
    return project


def list_projects(user: User, status=None):
    q = Project.query_for_org(user.organization_id)
    if not has_permission(user, "projects.view_all"):
        q = q.join(project_members, project_members.c.project_id == Project.id).filter(
            project_members.c.user_id == user.id
        )
    if status:
        q = q.filter(Project.status == status)
    return q.order_by(Project.name).all()


def create_project(user: User, data: dict) -> Project:
    require_fields(data, "name")
    name = data["name"].strip()
    status = data.get("status") or "active"
    if status not in PROJECT_STATUSES:
        raise ValidationError(
            f"status must be one of: {', '.join(PROJECT_STATUSES)}", details={"status": "invalid"},
        )
    if Project.query_for_org(user.organization_id).filter_by(name=name).first():
        raise ConflictError("Project", "name", name)

    project = Project(
        organization_id=user.organization_id,
        name=name,
        description=optional_text(data.get("description"), "description"),
        status=status,
        created_by_id=user.id,
    )
    member_ids = data.get("memberIds") or []
    if not isinstance(member_ids, list):
        raise ValidationError("memberIds must be a list", details={"memberIds": "invalid"})
    project.members.append(user)
    for member_id in member_ids:
        member = get_org_user(user.organization_id, member_id)
        if member not in project.members:
            project.members.append(member)
    db.session.add(project)
    db.session.flush()
    write_audit(
        entity_type="project", entity_id=project.id, action="create",
        organization_id=user.organization_id, actor_user_id=user.id, diff={"name": name},
    )
    db_commit_or_raise("Project", "name", name)
    logger.info("Project %s created in organization %s", project.id, user.organization_id)
    return project


def add_member(user: User, project_id, member_id) -> Project:
    if member_id is None:
        raise ValidationError("userId is required", details={"userId": "required"})
    project = get_project(user.organization_id, project_id)
    member = get_org_user(user.organization_id, member_id)
    if not member.is_active:
        raise ValidationError("Cannot add a deactivated user", details={"userId": "inactive"})
    if not project.has_member(member.id):
        project.members.append(member)
        write_audit(
            entity_type="project", entity_id=project.id, action="project.member_add",
            organization_id=user.organization_id, actor_user_id=user.id, diff={"userId": member.id},
        )
    db.session.commit()
    return project


def remove_member(user: User, project_id, member_id) -> Project:
    project = get_project(user.organization_id, project_id)
    member = next((m for m in project.members if m.id == member_id), None)
    if member is None:
        raise NotFoundError("Project member", member_id, user.organization_id)
    project.members.remove(member)
    write_audit(
        entity_type="project", entity_id=project.id, action="project.member_remove",
        organization_id=user.organization_id, actor_user_id=user.id, diff={"userId": member_id},
    )
    db.session.commit()
    return project
