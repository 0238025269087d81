"""
Tasks Blueprint — task listings and status moves.

Endpoints:
    GET   /tasks               — all organization tasks (ADMIN/PMO/PM)
    GET   /tasks/my            — tasks assigned to the caller
    PATCH /tasks/<id>/start    — assignee starts a to_do task
    PATCH /tasks/<id>/status   — registry-validated status change
    GET   /tasks/<id>/comments — task discussion, newest first
    POST  /tasks/<id>/comments — add a comment (recorded in the history)
    GET   /tasks/<id>/history  — audit trail of the task, newest first
"""

from flask import Blueprint, jsonify, request

from activity_tracker.middleware.permission_required import require_permission
from activity_tracker.middleware.tenant_context import require_organization
from activity_tracker.services import comment_service, task_service
from activity_tracker.utils.helpers import json_body

tasks_bp = Blueprint("tasks_bp", __name__, url_prefix="/tasks")


def _serialize(task):
    return task.to_dict(activity_id=task_service.linked_activity_id(task))


@tasks_bp.route("", methods=["GET"])
@require_permission("tasks.view_all")
def list_tasks():
    """Query params: status, assigneeId, projectId"""
    user = require_organization()
    tasks = task_service.list_all_tasks(user, request.args)
    return jsonify([_serialize(t) for t in tasks])


@tasks_bp.route("/my", methods=["GET"])
def list_my_tasks():
    """Query params: status, projectId"""
    user = require_organization()
    tasks = task_service.list_my_tasks(user, request.args)
    return jsonify([_serialize(t) for t in tasks])


@tasks_bp.route("/<int:task_id>/start", methods=["PATCH"])
def start_task(task_id):
    user = require_organization()
    task, activity = task_service.start_task(user, task_id)
    return jsonify({"task": task.to_dict(activity_id=activity.id), "activity": activity.to_dict()})


@tasks_bp.route("/<int:task_id>/status", methods=["PATCH"])
def update_status(task_id):
    """Body: { "status": "stuck" }"""
    user = require_organization()
    data = json_body()
    task = task_service.update_task_status(user, task_id, data.get("status"))
    return jsonify(_serialize(task))


# ── Comments / history ───────────────────────────────────────────────────────

@tasks_bp.route("/<int:task_id>/comments", methods=["GET"])
def list_comments(task_id):
    user = require_organization()
    comments = comment_service.list_task_comments(user, task_id)
    return jsonify([c.to_dict() for c in comments])


@tasks_bp.route("/<int:task_id>/comments", methods=["POST"])
def create_comment(task_id):
    """Body: { "body": "...", "mentions": [userId, ...] }"""
    user = require_organization()
    comment = comment_service.create_task_comment(user, task_id, json_body())
    return jsonify(comment.to_dict()), 201


@tasks_bp.route("/<int:task_id>/history", methods=["GET"])
def task_history(task_id):
    user = require_organization()
    return jsonify(task_service.task_history(user, task_id))
