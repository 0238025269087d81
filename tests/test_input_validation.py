"""
Request body shape tests.

Tests cover:
  - Non-object JSON bodies (list, string, number) → 400, never 500
  - Non-string values in text fields → 400 ERR_VALIDATION_INVALID
  - Rejected input leaves the stored record unchanged
"""

import pytest

from tests.conftest import ADMIN_PASSWORD


@pytest.fixture()
def submitted(client, member, project):
    res = client.post("/activities", headers=member["headers"], json={
        "title": "Quarterly report", "projectId": project["id"],
    })
    activity = res.get_json()
    assert client.post(f"/activities/{activity['id']}/submit", headers=member["headers"]).status_code == 200
    return activity


def _assert_invalid(res, field):
    assert res.status_code == 400, res.get_json()
    body = res.get_json()
    assert body["code"] == "ERR_VALIDATION_INVALID"
    assert body["details"][field] == "invalid"


# ═══════════════════════════════════════════════════════════════
# Non-object bodies
# ═══════════════════════════════════════════════════════════════

class TestNonObjectBody:
    @pytest.mark.parametrize("payload", [["admin@acme.com", ADMIN_PASSWORD], "admin@acme.com", 42])
    def test_login(self, client, acme, payload):
        _assert_invalid(client.post("/auth/login", json=payload), "body")

    def test_register(self, client):
        _assert_invalid(client.post("/auth/register", json=[{"email": "a@b.com"}]), "body")

    def test_create_activity(self, client, member):
        _assert_invalid(client.post("/activities", headers=member["headers"], json=["title"]), "body")

    def test_create_project(self, client, acme):
        _assert_invalid(client.post("/projects", headers=acme["headers"], json="Website"), "body")

    def test_update_organization(self, client, acme):
        _assert_invalid(client.put("/organization", headers=acme["headers"], json=[1, 2]), "body")

    def test_status_configuration_create(self, client, acme):
        _assert_invalid(client.post("/status-configuration", headers=acme["headers"], json=[]), "body")

    def test_preferences(self, client, member):
        _assert_invalid(client.patch("/users/me/preferences", headers=member["headers"], json=["dark"]), "body")

    def test_reject(self, client, acme, submitted):
        res = client.post(f"/activities/{submitted['id']}/reject", headers=acme["headers"], json=["no"])
        _assert_invalid(res, "body")


# ═══════════════════════════════════════════════════════════════
# Non-string text fields
# ═══════════════════════════════════════════════════════════════

class TestNonStringFields:
    def test_login_email_number(self, client, acme):
        res = client.post("/auth/login", json={"email": 12345, "password": ADMIN_PASSWORD})
        _assert_invalid(res, "email")

    def test_login_password_list(self, client, acme):
        res = client.post("/auth/login", json={"email": "admin@acme.com", "password": ["x"]})
        _assert_invalid(res, "password")

    def test_register_email_object(self, client):
        res = client.post("/auth/register", json={"email": {"a": 1}, "password": "secret1", "name": "A"})
        _assert_invalid(res, "email")

    def test_activity_title_number(self, client, member):
        res = client.post("/activities", headers=member["headers"], json={"title": 123})
        _assert_invalid(res, "title")

    def test_activity_description_number(self, client, member):
        res = client.post("/activities", headers=member["headers"], json={"title": "x", "description": 5})
        _assert_invalid(res, "description")

    def test_activity_update_title_number(self, client, member):
        activity = client.post("/activities", headers=member["headers"], json={"title": "Draft"}).get_json()
        res = client.patch(f"/activities/{activity['id']}", headers=member["headers"], json={"title": 7})
        _assert_invalid(res, "title")
        assert client.get(f"/activities/{activity['id']}", headers=member["headers"]).get_json()["title"] == "Draft"

    def test_reject_comment_number(self, client, acme, submitted):
        res = client.post(f"/activities/{submitted['id']}/reject", headers=acme["headers"], json={"comment": 5})
        _assert_invalid(res, "comment")
        stored = client.get(f"/activities/{submitted['id']}", headers=acme["headers"]).get_json()
        assert stored["approvalState"] == "submitted"

    def test_create_organization_name_number(self, client):
        res = client.post("/auth/create-organization", json={
            "name": 99, "adminEmail": "boss@initech.com", "adminName": "Boss", "adminPassword": ADMIN_PASSWORD,
        })
        _assert_invalid(res, "name")

    def test_create_organization_authenticated_name_number(self, client):
        client.post("/auth/register", json={"email": "solo@initech.com", "password": "secret1", "name": "Solo"})
        token = client.post("/auth/login", json={"email": "solo@initech.com", "password": "secret1"}).get_json()["token"]
        res = client.post("/auth/create-organization", headers={"Authorization": f"Bearer {token}"}, json={"name": 1})
        _assert_invalid(res, "name")

    def test_create_organization_settings_list(self, client):
        res = client.post("/auth/create-organization", json={
            "name": "Initech", "adminEmail": "boss@initech.com", "adminName": "Boss",
            "adminPassword": ADMIN_PASSWORD, "settings": ["x"],
        })
        _assert_invalid(res, "settings")

    def test_update_organization_name_number(self, client, acme):
        _assert_invalid(client.put("/organization", headers=acme["headers"], json={"name": 1}), "name")
        assert client.get("/organization", headers=acme["headers"]).get_json()["name"] == "Acme"

    def test_project_name_number(self, client, acme):
        _assert_invalid(client.post("/projects", headers=acme["headers"], json={"name": 1}), "name")

    def test_project_member_ids_not_list(self, client, acme):
        res = client.post("/projects", headers=acme["headers"], json={"name": "P", "memberIds": 3})
        _assert_invalid(res, "memberIds")

    def test_task_title_number(self, client, acme, member, project):
        res = client.post(f"/projects/{project['id']}/tasks", headers=acme["headers"], json={
            "title": 1, "assigneeId": member["user"]["id"],
        })
        _assert_invalid(res, "title")

    def test_task_status_list(self, client, acme, member, project):
        task = client.post(f"/projects/{project['id']}/tasks", headers=acme["headers"], json={
            "title": "Migrate DNS", "assigneeId": member["user"]["id"],
        }).get_json()
        res = client.patch(f"/tasks/{task['id']}/status", headers=member["headers"], json={"status": ["done"]})
        assert res.status_code == 400

    def test_validate_transition_numbers(self, client, acme):
        res = client.post("/status-configuration/validate-transition", headers=acme["headers"], json={
            "type": "task", "fromStatus": 1, "toStatus": 2,
        })
        assert res.status_code == 400
        assert set(res.get_json()["details"]) == {"fromStatus", "toStatus"}

    def test_change_password_number(self, client, member):
        res = client.post("/auth/change-password", headers=member["headers"], json={
            "currentPassword": 1234567, "newPassword": "Another#2025",
        })
        assert res.status_code == 400
