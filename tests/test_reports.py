"""
Report tests.

Tests cover:
  - activity-status breakdown, completion rate, overdue count, filters
  - member-performance rows and ordering
  - approval-aging buckets and per-manager backlog
  - CSV export: headers, rows, visibility, filters
  - Role gating (ADMIN / PMO / PROJECT_MANAGER)
"""

import csv
import io
from datetime import datetime, timedelta, timezone

import pytest

from activity_tracker.models import db
from activity_tracker.models.activity import ActivityApproval


def _create(client, headers, **fields):
    res = client.post("/activities", headers=headers, json=fields)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def _submit(client, headers, activity_id):
    assert client.post(f"/activities/{activity_id}/submit", headers=headers).status_code == 200


@pytest.fixture()
def seeded(client, acme, member, project):
    """Three member activities (one done, one overdue, one submitted) and one admin activity."""
    done = _create(client, member["headers"], title="Done item", projectId=project["id"], startDate="2025-01-01")
    client.patch(f"/activities/{done['id']}", headers=acme["headers"], json={"status": "done"})
    overdue = _create(client, member["headers"], title="Late, item", projectId=project["id"],
                      startDate="2020-01-01", endDate="2020-01-31", tags=["ops", "urgent"])
    pending = _create(client, member["headers"], title="Pending item", projectId=project["id"])
    _submit(client, member["headers"], pending["id"])
    admin_own = _create(client, acme["headers"], title="Admin item")
    return {"done": done, "overdue": overdue, "pending": pending, "admin": admin_own}


# ═══════════════════════════════════════════════════════════════
# Activity status
# ═══════════════════════════════════════════════════════════════

class TestActivityStatus:
    def test_breakdown(self, client, acme, seeded):
        res = client.get("/reports/activity-status", headers=acme["headers"])
        assert res.status_code == 200
        report = res.get_json()
        assert report["totalActivities"] == 4
        assert report["byStatus"] == {"done": 1, "to_do": 3}
        assert report["byApprovalState"] == {
            "draft": 3, "submitted": 1, "approved": 0, "rejected": 0, "closed": 0,
        }
        assert report["completionRate"] == 25.0
        assert report["overdueActivities"] == 1

    def test_project_filter(self, client, acme, project, seeded):
        report = client.get(f"/reports/activity-status?projectId={project['id']}", headers=acme["headers"]).get_json()
        assert report["totalActivities"] == 3

    def test_date_filter(self, client, acme, seeded):
        tomorrow = (datetime.now(timezone.utc) + timedelta(days=1)).date().isoformat()
        report = client.get(f"/reports/activity-status?startDate={tomorrow}", headers=acme["headers"]).get_json()
        assert report["totalActivities"] == 0
        assert report["completionRate"] == 0

    def test_invalid_date(self, client, acme):
        assert client.get("/reports/activity-status?startDate=yesterday", headers=acme["headers"]).status_code == 400

    def test_other_organization_sees_nothing(self, client, globex, seeded):
        report = client.get("/reports/activity-status", headers=globex["headers"]).get_json()
        assert report["totalActivities"] == 0


# ═══════════════════════════════════════════════════════════════
# Member performance
# ═══════════════════════════════════════════════════════════════

def test_member_performance(client, acme, member, seeded):
    rows = client.get("/reports/member-performance", headers=acme["headers"]).get_json()
    assert [r["userId"] for r in rows] == [member["user"]["id"], acme["user"]["id"]]
    top = rows[0]
    assert top["totalActivities"] == 3
    assert top["completedActivities"] == 1
    assert top["approvalSuccessRate"] == 0
    assert top["activitiesByStatus"] == {"done": 1, "to_do": 2}
    assert top["averageCompletionTime"] > 0


# ═══════════════════════════════════════════════════════════════
# Approval aging
# ═══════════════════════════════════════════════════════════════

class TestApprovalAging:
    def test_buckets_and_managers(self, client, acme, pm, project, seeded):
        client.post(f"/projects/{project['id']}/members", headers=acme["headers"], json={"userId": pm["user"]["id"]})

        # Age the submission by two days
        row = ActivityApproval.query.filter_by(activity_id=seeded["pending"]["id"], action="submit").one()
        row.created_at = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(hours=50)
        db.session.commit()

        report = client.get("/reports/approval-aging", headers=pm["headers"]).get_json()
        assert report["pendingApprovals"] == 1
        assert report["approvalsByTimeRange"] == {
            "lessThan24h": 0, "between24h48h": 0, "between48h72h": 1, "moreThan72h": 0,
        }
        assert 49 < report["averageApprovalTime"] < 51
        assert [m["managerId"] for m in report["bottleneckManagers"]] == [pm["user"]["id"]]
        assert report["bottleneckManagers"][0]["pendingCount"] == 1

    def test_empty(self, client, acme):
        report = client.get("/reports/approval-aging", headers=acme["headers"]).get_json()
        assert report == {
            "pendingApprovals": 0,
            "averageApprovalTime": 0,
            "approvalsByTimeRange": {
                "lessThan24h": 0, "between24h48h": 0, "between48h72h": 0, "moreThan72h": 0,
            },
            "bottleneckManagers": [],
        }


# ═══════════════════════════════════════════════════════════════
# CSV export
# ═══════════════════════════════════════════════════════════════

def _rows(res):
    return list(csv.reader(io.StringIO(res.get_data(as_text=True))))


class TestCsvExport:
    def test_admin_export(self, client, acme, seeded):
        res = client.get("/reports/export/activities/csv", headers=acme["headers"])
        assert res.status_code == 200
        assert res.mimetype == "text/csv"
        assert res.headers["Content-Disposition"].startswith('attachment; filename="activities-export-')
        rows = _rows(res)
        assert rows[0][:3] == ["Ticket Number", "Title", "Description"]
        assert len(rows) == 5
        late = next(r for r in rows[1:] if r[1] == "Late, item")
        assert late[6] == "Website Relaunch"
        assert late[14] == "ops; urgent"

    def test_member_exports_only_visible(self, client, member, seeded):
        rows = _rows(client.get("/reports/export/activities/csv", headers=member["headers"]))
        assert {r[1] for r in rows[1:]} == {"Done item", "Late, item", "Pending item"}

    def test_approval_state_filter(self, client, acme, seeded):
        rows = _rows(client.get("/reports/export/activities/csv?approvalState=submitted", headers=acme["headers"]))
        assert [r[1] for r in rows[1:]] == ["Pending item"]


# ═══════════════════════════════════════════════════════════════
# Access
# ═══════════════════════════════════════════════════════════════

@pytest.mark.parametrize("path", [
    "/reports/activity-status", "/reports/member-performance", "/reports/approval-aging",
])
def test_member_forbidden(client, member, pmo, path):
    assert client.get(path, headers=member["headers"]).status_code == 403
    assert client.get(path, headers=pmo["headers"]).status_code == 200


def test_requires_authentication(client):
    assert client.get("/reports/activity-status").status_code == 401
