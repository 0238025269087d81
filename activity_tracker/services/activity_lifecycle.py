"""
Activity Approval Lifecycle Service

Manages approval_state transitions with:
  - Transition validation (APPROVAL_TRANSITIONS)
  - Role / ownership checks through the central policy table
  - Atomic conditional UPDATE ... WHERE approval_state = <observed state>,
    bumping ``version``; a concurrent winner turns the loser into a 409
  - Decision history (ActivityApproval) and audit trail

4 valid transitions:
  submit (draft → submitted), approve / reject (submitted → approved / rejected),
  close (approved → closed)

Usage:
    from activity_tracker.services.activity_lifecycle import transition_activity

    activity = transition_activity(user, activity_id=7, action="reject", comment="needs more detail")
"""

import logging
from datetime import datetime, timezone

from activity_tracker.core.exceptions import TransitionError, ValidationError
from activity_tracker.models import db
from activity_tracker.models.activity import (
    APPROVAL_SUBMITTED,
    APPROVAL_TRANSITIONS,
    Activity,
    ActivityApproval,
)
from activity_tracker.models.audit import write_audit
from activity_tracker.models.auth import User
from activity_tracker.services.activity_service import get_activity
from activity_tracker.services.permission import check_permission
from activity_tracker.utils.helpers import optional_text

logger = logging.getLogger(__name__)


def validate_transition(activity: Activity, action: str) -> dict:
    """
    Validate whether an action is valid for the current approval state.

    Returns:
        {"valid": bool, "from": str, "to": str|None, "reason": str|None}
    """
    rule = APPROVAL_TRANSITIONS.get(action)
    if not rule:
        return {"valid": False, "from": activity.approval_state, "to": None,
                "reason": f"Unknown action: {action}"}

    if activity.approval_state not in rule["from"]:
        return {"valid": False, "from": activity.approval_state, "to": rule["to"],
                "reason": f"Cannot '{action}' from state '{activity.approval_state}'"}

    return {"valid": True, "from": activity.approval_state, "to": rule["to"], "reason": None}


def transition_activity(user: User, activity_id, action: str, *, comment: str | None = None) -> Activity:
    """
    Execute an approval transition.

    Args:
        user: Acting user (role and ownership are checked).
        activity_id: PK of the activity in the user's organization.
        action: One of APPROVAL_TRANSITIONS.
        comment: Mandatory for 'reject'; optional otherwise.

    Raises:
        NotFoundError, PermissionDenied, TransitionError, ValidationError
    """
    if action not in APPROVAL_TRANSITIONS:
        raise ValidationError(f"Unknown approval action: {action}", details={"action": action})

    activity = get_activity(user, activity_id)

    # 1. Permission check
    check_permission(
        user, f"activity.{action}", owner_id=activity.created_by_id, state=activity.approval_state,
    )

    # 2. Validate transition
    validation = validate_transition(activity, action)
    if not validation["valid"]:
        raise TransitionError(activity.ticket_number, action, activity.approval_state, validation["reason"])

    comment = optional_text(comment, "comment") or None
    if action == "reject" and not comment:
        raise ValidationError("A comment is required to reject an activity", details={"comment": "required"})

    # 3. Atomic conditional update
    now = datetime.now(timezone.utc)
    values = {
        "approval_state": validation["to"],
        "version": Activity.version + 1,
        "updated_by_id": user.id,
        "updated_at": now,
    }
    if action == "approve":
        values.update(approved_by_id=user.id, approved_at=now, approval_comment=comment)
    elif action == "reject":
        values.update(approval_comment=comment)
    elif action == "submit":
        values.update(approved_by_id=None, approved_at=None)

    result = db.session.execute(
        db.update(Activity)
        .where(
            Activity.id == activity.id,
            Activity.organization_id == user.organization_id,
            Activity.approval_state == validation["from"],
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.session.rollback()
        current = db.session.get(Activity, activity_id)
        logger.warning(
            "Concurrent approval change on activity %s: expected %s, found %s",
            activity_id, validation["from"], current.approval_state if current else None,
        )
        raise TransitionError(
            activity.ticket_number, action, current.approval_state if current else None,
            "the activity was changed by another request",
        )

    # 4. History + audit
    db.session.add(ActivityApproval(
        activity_id=activity.id,
        action=action,
        from_state=validation["from"],
        to_state=validation["to"],
        actor_id=user.id,
        comment=comment,
    ))
    write_audit(
        entity_type="activity", entity_id=activity.id, action=f"activity.{action}",
        organization_id=user.organization_id, actor_user_id=user.id,
        diff={"approval_state": {"old": validation["from"], "new": validation["to"]}, "comment": comment},
    )
    db.session.commit()
    db.session.refresh(activity)

    logger.info(
        "Activity %s %s: %s -> %s by user %s",
        activity.ticket_number, action, validation["from"], validation["to"], user.id,
    )
    return activity


def list_approval_history(user: User, activity_id):
    activity = get_activity(user, activity_id)
    return activity.approvals.all()


def list_pending_approvals(user: User, project_id=None):
    """Submitted activities of the caller's organization, oldest first."""
    check_permission(user, "approvals.view_pending")
    q = Activity.query_for_org(user.organization_id).filter_by(approval_state=APPROVAL_SUBMITTED)
    if project_id is not None:
        q = q.filter_by(project_id=project_id)
    return q.order_by(Activity.updated_at, Activity.id).all()
