"""
Reports Blueprint — dashboards and exports.

Endpoints:
    GET /reports/activity-status        — status / approval breakdown (ADMIN/PMO/PM)
    GET /reports/member-performance     — per-member totals (ADMIN/PMO/PM)
    GET /reports/approval-aging         — waiting submitted activities (ADMIN/PMO/PM)
    GET /reports/export/activities/csv  — CSV download of the activities visible to the caller
"""

import logging
from datetime import datetime, timezone

from flask import Blueprint, Response, jsonify, request

from activity_tracker.middleware.permission_required import require_permission
from activity_tracker.middleware.tenant_context import require_organization
from activity_tracker.services import report_service

logger = logging.getLogger(__name__)

reports_bp = Blueprint("reports_bp", __name__, url_prefix="/reports")


@reports_bp.route("/activity-status", methods=["GET"])
@require_permission("reports.view")
def activity_status():
    """Query params: startDate, endDate, projectId"""
    user = require_organization()
    return jsonify(report_service.activity_status_report(user.organization_id, request.args))


@reports_bp.route("/member-performance", methods=["GET"])
@require_permission("reports.view")
def member_performance():
    """Query params: startDate, endDate"""
    user = require_organization()
    return jsonify(report_service.member_performance_report(user.organization_id, request.args))


@reports_bp.route("/approval-aging", methods=["GET"])
@require_permission("reports.view")
def approval_aging():
    user = require_organization()
    return jsonify(report_service.approval_aging_report(user.organization_id))


@reports_bp.route("/export/activities/csv", methods=["GET"])
def export_activities_csv():
    """
    Query params: status, approvalState, startDate, endDate

    Returns:
        text/csv attachment ``activities-export-YYYY-MM-DD.csv``
    """
    user = require_organization()
    content = report_service.export_activities_csv(user, request.args)
    filename = f"activities-export-{datetime.now(timezone.utc).date().isoformat()}.csv"
    logger.info("Activity CSV export by user %s", user.id)
    return Response(
        content,
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
