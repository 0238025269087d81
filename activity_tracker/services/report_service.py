"""
Report Service — organization dashboards and the activity CSV export.

Reports:
    activity_status_report      counts by status / approval state, completion, overdue
    member_performance_report   per-creator totals, approval rate, completion time
    approval_aging_report       waiting time of submitted activities, per-manager backlog
    export_activities_csv       flat activity listing for spreadsheets

Percentages are 0-100 rounded to two decimals; durations are days
(completion) or hours (approval waiting).
"""

import csv
import io
from datetime import datetime, time, timedelta, timezone

from activity_tracker.models import db
from activity_tracker.models.activity import (
    APPROVAL_APPROVED,
    APPROVAL_CLOSED,
    APPROVAL_STATES,
    APPROVAL_SUBMITTED,
    Activity,
    ActivityApproval,
)
from activity_tracker.models.auth import ROLE_PROJECT_MANAGER, User
from activity_tracker.models.project import Project, project_members
from activity_tracker.services.activity_service import visible_activities
from activity_tracker.utils.helpers import parse_date, parse_int

COMPLETED_STATUSES = ("done", "completed", "closed")

AGING_BUCKETS = (
    ("lessThan24h", 24),
    ("between24h48h", 48),
    ("between48h72h", 72),
    ("moreThan72h", None),
)

CSV_COLUMNS = [
    "Ticket Number", "Title", "Description", "Status", "Approval State", "Priority",
    "Project", "Created By", "Assignees", "Approved By", "Start Date", "End Date",
    "Created At", "Updated At", "Tags",
]


def _utc_naive(value):
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _now():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _percent(part, whole):
    return round(part / whole * 100, 2) if whole else 0


def _is_completed(activity):
    return activity.status in COMPLETED_STATUSES


def _filter_created(q, filters):
    """Apply inclusive ``startDate`` / ``endDate`` bounds on creation time."""
    start = parse_date(filters.get("startDate"), "startDate")
    end = parse_date(filters.get("endDate"), "endDate")
    if start:
        q = q.filter(Activity.created_at >= datetime.combine(start, time.min))
    if end:
        q = q.filter(Activity.created_at < datetime.combine(end + timedelta(days=1), time.min))
    return q


def _count_by(values):
    counts = {}
    for v in values:
        counts[v] = counts.get(v, 0) + 1
    return counts


# ═══════════════════════════════════════════════════════════════
# Activity status
# ═══════════════════════════════════════════════════════════════
def activity_status_report(organization_id, filters: dict) -> dict:
    """Query params: startDate, endDate, projectId"""
    q = _filter_created(Activity.query_for_org(organization_id), filters)
    project_id = parse_int(filters.get("projectId"), "projectId")
    if project_id is not None:
        q = q.filter(Activity.project_id == project_id)
    activities = q.all()

    by_approval = {state: 0 for state in APPROVAL_STATES}
    by_approval.update(_count_by(a.approval_state for a in activities))
    completed = sum(1 for a in activities if _is_completed(a))
    today = _now().date()

    return {
        "totalActivities": len(activities),
        "byStatus": _count_by(a.status for a in activities),
        "byApprovalState": by_approval,
        "completionRate": _percent(completed, len(activities)),
        "overdueActivities": sum(
            1 for a in activities if a.end_date and a.end_date < today and not _is_completed(a)
        ),
    }


# ═══════════════════════════════════════════════════════════════
# Member performance
# ═══════════════════════════════════════════════════════════════
def member_performance_report(organization_id, filters: dict) -> list[dict]:
    """One row per active user with at least one created activity, busiest first."""
    users = User.query.filter_by(organization_id=organization_id, is_active=True).all()
    activities = _filter_created(Activity.query_for_org(organization_id), filters).all()

    by_creator = {}
    for a in activities:
        by_creator.setdefault(a.created_by_id, []).append(a)

    rows = []
    for user in users:
        own = by_creator.get(user.id)
        if not own:
            continue
        completed = [a for a in own if _is_completed(a)]
        approved = sum(1 for a in own if a.approval_state in (APPROVAL_APPROVED, APPROVAL_CLOSED))
        durations = [
            (_utc_naive(a.updated_at) - datetime.combine(a.start_date, time.min)).total_seconds() / 86400
            for a in completed if a.start_date and a.updated_at
        ]
        rows.append({
            "userId": user.id,
            "userName": user.name,
            "totalActivities": len(own),
            "completedActivities": len(completed),
            "approvalSuccessRate": _percent(approved, len(own)),
            "averageCompletionTime": round(sum(durations) / len(durations), 2) if durations else 0,
            "activitiesByStatus": _count_by(a.status for a in own),
        })
    rows.sort(key=lambda r: r["totalActivities"], reverse=True)
    return rows


# ═══════════════════════════════════════════════════════════════
# Approval aging
# ═══════════════════════════════════════════════════════════════
def _submitted_at(activity_ids):
    """Latest submit time per activity from the approval history."""
    if not activity_ids:
        return {}
    rows = (
        db.session.query(ActivityApproval.activity_id, db.func.max(ActivityApproval.created_at))
        .filter(ActivityApproval.activity_id.in_(activity_ids), ActivityApproval.action == "submit")
        .group_by(ActivityApproval.activity_id)
        .all()
    )
    return {activity_id: ts for activity_id, ts in rows}


def _bucket(hours):
    for name, limit in AGING_BUCKETS:
        if limit is None or hours < limit:
            return name


def approval_aging_report(organization_id) -> dict:
    pending = (
        Activity.query_for_org(organization_id)
        .filter(Activity.approval_state == APPROVAL_SUBMITTED)
        .all()
    )
    submitted = _submitted_at([a.id for a in pending])
    now = _now()

    buckets = {name: 0 for name, _ in AGING_BUCKETS}
    waiting = {}
    for a in pending:
        since = _utc_naive(submitted.get(a.id) or a.updated_at or a.created_at)
        hours = max((now - since).total_seconds() / 3600, 0)
        waiting[a.id] = hours
        buckets[_bucket(hours)] += 1

    # Project managers on the project of each pending activity
    managers = {}
    project_ids = {a.project_id for a in pending if a.project_id}
    if project_ids:
        rows = (
            db.session.query(project_members.c.project_id, User)
            .join(User, User.id == project_members.c.user_id)
            .filter(
                project_members.c.project_id.in_(project_ids),
                User.role == ROLE_PROJECT_MANAGER,
                User.is_active.is_(True),
            )
            .all()
        )
        for project_id, manager in rows:
            managers.setdefault(project_id, []).append(manager)

    backlog = {}
    for a in pending:
        for manager in managers.get(a.project_id, []):
            entry = backlog.setdefault(manager.id, {"manager": manager, "hours": []})
            entry["hours"].append(waiting[a.id])

    bottlenecks = [
        {
            "managerId": entry["manager"].id,
            "managerName": entry["manager"].name,
            "pendingCount": len(entry["hours"]),
            "averageTime": round(sum(entry["hours"]) / len(entry["hours"]), 2),
        }
        for entry in backlog.values()
    ]
    bottlenecks.sort(key=lambda b: b["pendingCount"], reverse=True)

    return {
        "pendingApprovals": len(pending),
        "averageApprovalTime": round(sum(waiting.values()) / len(waiting), 2) if waiting else 0,
        "approvalsByTimeRange": buckets,
        "bottleneckManagers": bottlenecks,
    }


# ═══════════════════════════════════════════════════════════════
# CSV export
# ═══════════════════════════════════════════════════════════════
def export_activities_csv(user: User, filters: dict) -> str:
    """Activities visible to ``user`` as CSV text.

    Query params: status, approvalState, startDate, endDate
    """
    q = _filter_created(visible_activities(user), filters)
    if filters.get("status"):
        q = q.filter(Activity.status == filters["status"])
    if filters.get("approvalState"):
        q = q.filter(Activity.approval_state == filters["approvalState"])
    activities = q.order_by(Activity.created_at, Activity.id).all()

    names = {
        u.id: u.name for u in User.query.filter_by(organization_id=user.organization_id).all()
    }
    projects = {
        p.id: p.name for p in Project.query_for_org(user.organization_id).all()
    }

    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(CSV_COLUMNS)
    for a in activities:
        writer.writerow([
            a.ticket_number,
            a.title,
            (a.description or "").replace("\n", " "),
            a.status,
            a.approval_state,
            a.priority,
            projects.get(a.project_id, ""),
            names.get(a.created_by_id, ""),
            "; ".join(u.name for u in a.assignees),
            names.get(a.approved_by_id, ""),
            a.start_date.isoformat() if a.start_date else "",
            a.end_date.isoformat() if a.end_date else "",
            a.created_at.isoformat() if a.created_at else "",
            a.updated_at.isoformat() if a.updated_at else "",
            "; ".join(a.tags or []),
        ])
    return buf.getvalue()
