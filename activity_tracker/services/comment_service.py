"""
Comment Service — discussion on activities and tasks.

Anyone who can see the activity or task can read and post. Visibility is
inherited from ``activity_service.get_activity`` / ``task_service.get_task``,
so comments on hidden or foreign resources answer 404 like the resource
itself.

Activity comments:
    author edits; author, ADMIN and PROJECT_MANAGER delete.
Task comments:
    append-only; each post is recorded in the task history.
"""

import logging

from activity_tracker.core.exceptions import NotFoundError, ValidationError
from activity_tracker.models import db
from activity_tracker.models.audit import write_audit
from activity_tracker.models.auth import User
from activity_tracker.models.comment import Comment, TaskComment
from activity_tracker.services.activity_service import get_activity
from activity_tracker.services.permission import check_permission
from activity_tracker.services.task_service import get_task
from activity_tracker.services.user_service import get_org_user
from activity_tracker.utils.helpers import optional_text, parse_int

logger = logging.getLogger(__name__)


def _body(data: dict) -> str:
    body = optional_text(data.get("body"), "body")
    if not body:
        raise ValidationError("Comment body is required", details={"body": "required"})
    return body


# ═══════════════════════════════════════════════════════════════
# Activity comments
# ═══════════════════════════════════════════════════════════════
def get_comment(user: User, comment_id) -> Comment:
    """Org-scoped lookup; the parent activity must be visible to ``user``."""
    comment = Comment.get_for_org(user.organization_id, comment_id)
    if comment is None:
        raise NotFoundError("Comment", comment_id, user.organization_id)
    get_activity(user, comment.activity_id)
    return comment


def create_comment(user: User, data: dict) -> Comment:
    activity_id = parse_int(data.get("activityId"), "activityId")
    if activity_id is None:
        raise ValidationError("activityId is required", details={"activityId": "required"})
    body = _body(data)
    activity = get_activity(user, activity_id)

    comment = Comment(
        organization_id=user.organization_id,
        activity_id=activity.id,
        body=body,
        created_by_id=user.id,
    )
    db.session.add(comment)
    db.session.flush()
    write_audit(
        entity_type="comment", entity_id=comment.id, action="create",
        organization_id=user.organization_id, actor_user_id=user.id,
        diff={"activityId": activity.id, "body": body},
    )
    db.session.commit()
    logger.info("Comment %s added to activity %s by user %s", comment.id, activity.id, user.id)
    return comment


def list_activity_comments(user: User, activity_id):
    activity = get_activity(user, activity_id)
    return (
        Comment.query_for_org(user.organization_id)
        .filter_by(activity_id=activity.id)
        .order_by(Comment.created_at, Comment.id)
        .all()
    )


def update_comment(user: User, comment_id, data: dict) -> Comment:
    comment = get_comment(user, comment_id)
    check_permission(user, "comments.update", owner_id=comment.created_by_id)
    body = _body(data)
    if body != comment.body:
        write_audit(
            entity_type="comment", entity_id=comment.id, action="update",
            organization_id=user.organization_id, actor_user_id=user.id,
            diff={"body": {"old": comment.body, "new": body}},
        )
        comment.body = body
    db.session.commit()
    return comment


def delete_comment(user: User, comment_id) -> None:
    comment = get_comment(user, comment_id)
    check_permission(user, "comments.delete", owner_id=comment.created_by_id)
    write_audit(
        entity_type="comment", entity_id=comment.id, action="delete",
        organization_id=user.organization_id, actor_user_id=user.id,
        diff={"activityId": comment.activity_id},
    )
    db.session.delete(comment)
    db.session.commit()


# ═══════════════════════════════════════════════════════════════
# Task comments
# ═══════════════════════════════════════════════════════════════
def list_task_comments(user: User, task_id):
    """Newest first."""
    task = get_task(user, task_id)
    return (
        TaskComment.query_for_org(user.organization_id)
        .filter_by(task_id=task.id)
        .order_by(TaskComment.created_at.desc(), TaskComment.id.desc())
        .all()
    )


def _mentions(organization_id, mentions):
    if mentions is None:
        return []
    if not isinstance(mentions, list):
        raise ValidationError("mentions must be a list of user ids", details={"mentions": "invalid"})
    ids = [parse_int(m, "mentions") for m in mentions]
    return [get_org_user(organization_id, uid).id for uid in dict.fromkeys(ids) if uid is not None]


def create_task_comment(user: User, task_id, data: dict) -> TaskComment:
    body = _body(data)
    task = get_task(user, task_id)
    comment = TaskComment(
        organization_id=user.organization_id,
        task_id=task.id,
        author_id=user.id,
        body=body,
        mentions=_mentions(user.organization_id, data.get("mentions")),
    )
    db.session.add(comment)
    db.session.flush()
    write_audit(
        entity_type="task", entity_id=task.id, action="task.comment",
        organization_id=user.organization_id, actor_user_id=user.id,
        diff={"commentId": comment.id, "description": f"{user.name} added a comment"},
    )
    db.session.commit()
    return comment
