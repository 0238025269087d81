"""
User administration tests.

Tests cover:
  - POST /users with and without a password
  - Role rules: only ADMIN creates ADMIN, no self role change / deactivation
  - Listing, detail visibility and preferences merge
"""

from tests.conftest import login


class TestCreateUser:
    def test_generated_password_allows_login(self, client, acme):
        res = client.post("/users", headers=acme["headers"], json={
            "email": "new@acme.com", "name": "New Hire",
        })
        assert res.status_code == 201
        body = res.get_json()
        assert body["user"]["role"] == "MEMBER"
        assert body["user"]["organizationId"] == acme["organization"]["id"]
        assert len(body["generatedPassword"]) == 12
        assert login(client, "new@acme.com", body["generatedPassword"])["user"]["id"] == body["user"]["id"]

    def test_supplied_password_is_not_echoed(self, client, acme):
        res = client.post("/users", headers=acme["headers"], json={
            "email": "new@acme.com", "name": "New Hire", "password": "Secret#123",
        })
        assert "generatedPassword" not in res.get_json()

    def test_duplicate_email(self, client, acme, member):
        res = client.post("/users", headers=acme["headers"], json={
            "email": "member@acme.com", "name": "Again",
        })
        assert res.status_code == 409

    def test_pm_cannot_create_admin(self, client, pm):
        res = client.post("/users", headers=pm["headers"], json={
            "email": "boss@acme.com", "name": "Boss", "role": "ADMIN",
        })
        assert res.status_code == 400

    def test_pm_can_create_member(self, client, pm):
        res = client.post("/users", headers=pm["headers"], json={"email": "m2@acme.com", "name": "M2"})
        assert res.status_code == 201

    def test_member_cannot_create(self, client, member):
        res = client.post("/users", headers=member["headers"], json={"email": "x@acme.com", "name": "X"})
        assert res.status_code == 403


class TestListAndDetail:
    def test_list_filters_by_role(self, client, acme, member, pm):
        rows = client.get("/users?role=PROJECT_MANAGER", headers=acme["headers"]).get_json()
        assert [u["id"] for u in rows] == [pm["user"]["id"]]

    def test_deactivated_users_are_not_listed(self, client, acme, member):
        client.delete(f"/users/{member['user']['id']}", headers=acme["headers"])
        emails = {u["email"] for u in client.get("/users", headers=acme["headers"]).get_json()}
        assert "member@acme.com" not in emails

    def test_member_reads_self_but_not_others(self, client, member, pm):
        assert client.get(f"/users/{member['user']['id']}", headers=member["headers"]).status_code == 200
        assert client.get(f"/users/{pm['user']['id']}", headers=member["headers"]).status_code == 403

    def test_member_cannot_list(self, client, member):
        assert client.get("/users", headers=member["headers"]).status_code == 403


class TestRoleAndDeactivation:
    def test_change_role(self, client, acme, member):
        res = client.patch(f"/users/{member['user']['id']}/role", headers=acme["headers"], json={"role": "PMO"})
        assert res.status_code == 200
        assert res.get_json()["role"] == "PMO"

    def test_cannot_change_own_role(self, client, acme):
        res = client.patch(f"/users/{acme['user']['id']}/role", headers=acme["headers"], json={"role": "MEMBER"})
        assert res.status_code == 400

    def test_unknown_role(self, client, acme, member):
        res = client.patch(f"/users/{member['user']['id']}/role", headers=acme["headers"], json={"role": "KING"})
        assert res.status_code == 400

    def test_only_admin_changes_roles(self, client, pm, member):
        res = client.patch(f"/users/{member['user']['id']}/role", headers=pm["headers"], json={"role": "PMO"})
        assert res.status_code == 403

    def test_deactivate(self, client, acme, member):
        res = client.delete(f"/users/{member['user']['id']}", headers=acme["headers"])
        assert res.status_code == 200
        assert res.get_json()["user"]["isActive"] is False
        res = client.post("/auth/login", json={"email": "member@acme.com", "password": "Member#2024"})
        assert res.status_code == 403

    def test_cannot_deactivate_self(self, client, acme):
        res = client.delete(f"/users/{acme['user']['id']}", headers=acme["headers"])
        assert res.status_code == 400


class TestPreferences:
    def test_merge(self, client, member):
        client.patch("/users/me/preferences", headers=member["headers"], json={"theme": "dark"})
        res = client.patch("/users/me/preferences", headers=member["headers"], json={"language": "tr"})
        assert res.get_json()["preferences"] == {"theme": "dark", "language": "tr"}

        res = client.get(f"/users/{member['user']['id']}/preferences", headers=member["headers"])
        assert res.get_json()["preferences"] == {"theme": "dark", "language": "tr"}

    def test_must_be_object(self, client, member):
        res = client.patch("/users/me/preferences", headers=member["headers"], json=["dark"])
        assert res.status_code == 400

    def test_profile_includes_preferences(self, client, member):
        client.patch("/users/me/preferences", headers=member["headers"], json={"theme": "dark"})
        profile = client.get("/auth/profile", headers=member["headers"]).get_json()
        assert profile["user"]["preferences"] == {"theme": "dark"}
