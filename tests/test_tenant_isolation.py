"""
Tenant isolation tests.

Every list/count endpoint is scoped to the caller's organization, and ids
that belong to another organization answer 404 (never 403) so callers
cannot discover them.
"""

import pytest


@pytest.fixture()
def acme_activity(client, acme, project):
    res = client.post("/activities", headers=acme["headers"], json={
        "title": "Acme only", "projectId": project["id"],
    })
    assert res.status_code == 201
    return res.get_json()


class TestListsAreScoped:
    def test_organization_users(self, client, acme, globex, member):
        users = client.get("/organization/users", headers=globex["headers"]).get_json()
        assert [u["email"] for u in users] == ["admin@globex.com"]
        assert client.get("/organization/users/count", headers=globex["headers"]).get_json() == {"count": 1}

    def test_users(self, client, acme, globex, member):
        users = client.get("/users", headers=globex["headers"]).get_json()
        assert {u["email"] for u in users} == {"admin@globex.com"}

    def test_projects(self, client, globex, project):
        assert client.get("/projects", headers=globex["headers"]).get_json() == []

    def test_activities(self, client, globex, acme_activity):
        assert client.get("/activities", headers=globex["headers"]).get_json() == []

    def test_pending_approvals(self, client, acme, globex, acme_activity):
        client.post(f"/activities/{acme_activity['id']}/submit", headers=acme["headers"])
        assert client.get("/approvals/pending", headers=globex["headers"]).get_json() == []

    def test_status_configuration(self, client, acme, globex):
        acme_ids = {s["id"] for s in client.get("/status-configuration", headers=acme["headers"]).get_json()}
        globex_rows = client.get("/status-configuration", headers=globex["headers"]).get_json()
        assert globex_rows
        assert not acme_ids & {s["id"] for s in globex_rows}
        assert all(s["organizationId"] == globex["organization"]["id"] for s in globex_rows)

    def test_tasks(self, client, acme, globex, project, member):
        client.post(f"/projects/{project['id']}/tasks", headers=acme["headers"], json={
            "title": "Acme task", "assigneeId": member["user"]["id"],
        })
        assert client.get("/tasks", headers=globex["headers"]).get_json() == []

    def test_audit_logs(self, client, acme, globex, acme_activity):
        logs = client.get("/audit-logs", headers=globex["headers"]).get_json()["audit_logs"]
        assert all(log["organizationId"] == globex["organization"]["id"] for log in logs)
        assert not any(log["entityType"] == "activity" for log in logs)


class TestCrossTenantIdsAreNotFound:
    def test_activity(self, client, globex, acme_activity):
        aid = acme_activity["id"]
        assert client.get(f"/activities/{aid}", headers=globex["headers"]).status_code == 404
        assert client.patch(f"/activities/{aid}", headers=globex["headers"],
                            json={"title": "x"}).status_code == 404
        assert client.delete(f"/activities/{aid}", headers=globex["headers"]).status_code == 404
        assert client.post(f"/activities/{aid}/submit", headers=globex["headers"]).status_code == 404

    def test_project(self, client, globex, project):
        assert client.get(f"/projects/{project['id']}", headers=globex["headers"]).status_code == 404
        res = client.post(f"/projects/{project['id']}/tasks", headers=globex["headers"], json={
            "title": "x", "assigneeId": 1,
        })
        assert res.status_code == 404

    def test_user(self, client, globex, member):
        uid = member["user"]["id"]
        assert client.get(f"/users/{uid}", headers=globex["headers"]).status_code == 404
        assert client.patch(f"/users/{uid}/role", headers=globex["headers"],
                            json={"role": "PMO"}).status_code == 404
        assert client.delete(f"/users/{uid}", headers=globex["headers"]).status_code == 404

    def test_status_configuration(self, client, acme, globex):
        acme_status = client.get("/status-configuration", headers=acme["headers"]).get_json()[0]
        res = client.put(f"/status-configuration/{acme_status['id']}", headers=globex["headers"],
                         json={"color": "#000000"})
        assert res.status_code == 404

    def test_cannot_add_foreign_user_to_project(self, client, acme, globex):
        res = client.post("/projects", headers=acme["headers"], json={
            "name": "Mixed", "memberIds": [globex["user"]["id"]],
        })
        assert res.status_code == 404
