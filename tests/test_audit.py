"""
Audit log API tests.
"""

import pytest


@pytest.fixture()
def activities(client, member):
    ids = []
    for i in range(3):
        res = client.post("/activities", headers=member["headers"], json={"title": f"Activity {i}"})
        ids.append(res.get_json()["id"])
    return ids


class TestAuditList:
    def test_newest_first(self, client, acme, activities):
        body = client.get("/audit-logs?entity_type=activity", headers=acme["headers"]).get_json()
        assert body["total"] == 3
        assert [int(log["entityId"]) for log in body["audit_logs"]] == list(reversed(activities))
        assert all(log["action"] == "create" for log in body["audit_logs"])

    def test_pagination(self, client, acme, activities):
        body = client.get("/audit-logs?entity_type=activity&per_page=2&page=2", headers=acme["headers"]).get_json()
        assert body["page"] == 2
        assert body["per_page"] == 2
        assert body["pages"] == 2
        assert len(body["audit_logs"]) == 1

    def test_per_page_is_capped(self, client, acme):
        body = client.get("/audit-logs?per_page=5000", headers=acme["headers"]).get_json()
        assert body["per_page"] == 200

    def test_filters(self, client, acme, member, activities):
        body = client.get(
            f"/audit-logs?entity_type=activity&entity_id={activities[0]}", headers=acme["headers"],
        ).get_json()
        assert body["total"] == 1

        body = client.get(f"/audit-logs?actor_id={member['user']['id']}", headers=acme["headers"]).get_json()
        assert body["total"] == 3

    def test_action_prefix(self, client, acme, member, activities):
        client.post(f"/activities/{activities[0]}/submit", headers=member["headers"])
        body = client.get("/audit-logs?action=activity.", headers=acme["headers"]).get_json()
        assert body["total"] >= 1
        assert all(log["action"].startswith("activity.") for log in body["audit_logs"])

    def test_single_entry(self, client, acme, activities):
        first = client.get("/audit-logs", headers=acme["headers"]).get_json()["audit_logs"][0]
        res = client.get(f"/audit-logs/{first['id']}", headers=acme["headers"])
        assert res.get_json() == first

    def test_foreign_entry_is_404(self, client, acme, globex):
        foreign = client.get("/audit-logs", headers=globex["headers"]).get_json()["audit_logs"][0]
        assert client.get(f"/audit-logs/{foreign['id']}", headers=acme["headers"]).status_code == 404


class TestAuditAccess:
    def test_pmo_allowed(self, client, pmo):
        assert client.get("/audit-logs", headers=pmo["headers"]).status_code == 200

    @pytest.mark.parametrize("role", ["MEMBER", "PROJECT_MANAGER"])
    def test_others_forbidden(self, client, acme, make_user, role):
        user = make_user(acme, role)
        assert client.get("/audit-logs", headers=user["headers"]).status_code == 403
