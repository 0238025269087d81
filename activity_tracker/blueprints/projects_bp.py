"""
Projects Blueprint — organization projects, membership and task intake.

Endpoints:
    GET    /projects                          — list (MEMBER: own projects only)
    POST   /projects                          — create (ADMIN/PM)
    GET    /projects/<id>                     — detail with members
    GET    /projects/<id>/members             — member summaries
    POST   /projects/<id>/members             — add member (ADMIN/PM)
    DELETE /projects/<id>/members/<user_id>   — remove member (ADMIN/PM)
    POST   /projects/<id>/tasks               — assign a task (ADMIN/PM)
    POST   /projects/<id>/tasks/self          — self-assign a task (starts immediately)
"""

from flask import Blueprint, jsonify, request

from activity_tracker.middleware.permission_required import require_permission
from activity_tracker.middleware.tenant_context import require_organization
from activity_tracker.services import project_service, task_service
from activity_tracker.utils.helpers import json_body, parse_int

projects_bp = Blueprint("projects_bp", __name__, url_prefix="/projects")


# ═══════════════════════════════════════════════════════════════
# Projects
# ═══════════════════════════════════════════════════════════════
@projects_bp.route("", methods=["GET"])
def list_projects():
    """Query params: status — filter by project status"""
    user = require_organization()
    projects = project_service.list_projects(user, request.args.get("status"))
    return jsonify([p.to_dict() for p in projects])


@projects_bp.route("", methods=["POST"])
@require_permission("projects.create")
def create_project():
    """Body: { "name": "...", "description": "...", "status": "active", "memberIds": [..] }"""
    user = require_organization()
    data = json_body()
    project = project_service.create_project(user, data)
    return jsonify(project.to_dict(include_members=True)), 201


@projects_bp.route("/<int:project_id>", methods=["GET"])
def get_project(project_id):
    user = require_organization()
    project = project_service.get_visible_project(user, project_id)
    return jsonify(project.to_dict(include_members=True))


# ═══════════════════════════════════════════════════════════════
# Membership
# ═══════════════════════════════════════════════════════════════
@projects_bp.route("/<int:project_id>/members", methods=["GET"])
def list_members(project_id):
    user = require_organization()
    project = project_service.get_visible_project(user, project_id)
    return jsonify([m.to_summary() for m in project.members])


@projects_bp.route("/<int:project_id>/members", methods=["POST"])
@require_permission("projects.manage_members")
def add_member(project_id):
    """Body: { "userId": 7 }"""
    user = require_organization()
    data = json_body()
    member_id = parse_int(data.get("userId"), "userId")
    project = project_service.add_member(user, project_id, member_id)
    return jsonify(project.to_dict(include_members=True)), 201


@projects_bp.route("/<int:project_id>/members/<int:member_id>", methods=["DELETE"])
@require_permission("projects.manage_members")
def remove_member(project_id, member_id):
    user = require_organization()
    project = project_service.remove_member(user, project_id, member_id)
    return jsonify(project.to_dict(include_members=True))


# ═══════════════════════════════════════════════════════════════
# Task intake
# ═══════════════════════════════════════════════════════════════
@projects_bp.route("/<int:project_id>/tasks", methods=["POST"])
@require_permission("tasks.assign")
def assign_task(project_id):
    """
    Body: { "title": "...", "assigneeId": 7, "priority": "High",
            "dueDate": "2025-01-31", "description": "..." }
    """
    user = require_organization()
    data = json_body()
    task = task_service.assign_task(user, project_id, data)
    return jsonify(task.to_dict()), 201


@projects_bp.route("/<int:project_id>/tasks/self", methods=["POST"])
def self_create_task(project_id):
    """The caller's own task, created in_progress with a linked draft activity."""
    user = require_organization()
    data = json_body()
    task, activity = task_service.self_create_task(user, project_id, data)
    return jsonify({"task": task.to_dict(activity_id=activity.id), "activity": activity.to_dict()}), 201
