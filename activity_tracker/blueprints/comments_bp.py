"""
Comments Blueprint — discussion threads on activities.

Endpoints:
    POST   /comments                         — add a comment to a visible activity
    GET    /comments/activity/<activity_id>  — comments of an activity, oldest first
    PATCH  /comments/<id>                    — edit (author only)
    DELETE /comments/<id>                    — delete (author, ADMIN, PROJECT_MANAGER)
"""

from flask import Blueprint, jsonify

from activity_tracker.middleware.tenant_context import require_organization
from activity_tracker.services import comment_service
from activity_tracker.utils.helpers import json_body

comments_bp = Blueprint("comments_bp", __name__, url_prefix="/comments")


@comments_bp.route("", methods=["POST"])
def create_comment():
    """Body: { "activityId": 1, "body": "..." }"""
    user = require_organization()
    comment = comment_service.create_comment(user, json_body())
    return jsonify(comment.to_dict()), 201


@comments_bp.route("/activity/<int:activity_id>", methods=["GET"])
def list_activity_comments(activity_id):
    user = require_organization()
    comments = comment_service.list_activity_comments(user, activity_id)
    return jsonify([c.to_dict() for c in comments])


@comments_bp.route("/<int:comment_id>", methods=["PATCH"])
def update_comment(comment_id):
    """Body: { "body": "..." }"""
    user = require_organization()
    comment = comment_service.update_comment(user, comment_id, json_body())
    return jsonify(comment.to_dict())


@comments_bp.route("/<int:comment_id>", methods=["DELETE"])
def delete_comment(comment_id):
    user = require_organization()
    comment_service.delete_comment(user, comment_id)
    return jsonify({"message": "Comment deleted"})
