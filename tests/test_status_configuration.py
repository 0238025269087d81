"""
Status configuration registry tests.

Tests cover:
  - Listing (all / active / by type) and the name → display mapping
  - Create / update / delete / toggle / reorder / bulk-update
  - Default statuses: cannot be deleted or renamed, can be deactivated
  - initialize-defaults idempotency
  - validate-transition with workflow rules
  - usage statistics
"""

import pytest


def _statuses(client, headers, status_type=None, path="/status-configuration"):
    url = f"{path}?type={status_type}" if status_type else path
    return client.get(url, headers=headers).get_json()


def _by_name(client, headers, status_type, name):
    return next(s for s in _statuses(client, headers, status_type) if s["name"] == name)


@pytest.fixture()
def blocked(client, acme):
    res = client.post("/status-configuration", headers=acme["headers"], json={
        "type": "task", "name": "blocked", "displayName": "Blocked", "color": "#ef4444",
    })
    assert res.status_code == 201, res.get_json()
    return res.get_json()


# ═══════════════════════════════════════════════════════════════
# Read paths
# ═══════════════════════════════════════════════════════════════

class TestRead:
    def test_list_by_type_is_ordered(self, client, acme):
        rows = _statuses(client, acme["headers"], "task")
        assert [r["name"] for r in rows] == ["to_do", "in_progress", "stuck", "done"]
        assert [r["order"] for r in rows] == [1, 2, 3, 4]
        assert rows[1]["displayName"] == "Working on it"

    def test_invalid_type(self, client, acme):
        res = client.get("/status-configuration?type=bogus", headers=acme["headers"])
        assert res.status_code == 400

    def test_member_cannot_list_all_but_can_list_active(self, client, member):
        assert client.get("/status-configuration", headers=member["headers"]).status_code == 403
        rows = _statuses(client, member["headers"], "approval", path="/status-configuration/active")
        assert [r["name"] for r in rows] == ["draft", "submitted", "approved", "rejected", "closed"]

    def test_mapping(self, client, member):
        mapping = client.get("/status-configuration/mapping", headers=member["headers"]).get_json()
        assert set(mapping) == {"activity", "task", "approval"}
        assert mapping["task"]["in_progress"]["displayName"] == "Working on it"
        assert mapping["activity"]["done"]["color"].startswith("#")

    def test_get_single(self, client, acme, blocked):
        res = client.get(f"/status-configuration/{blocked['id']}", headers=acme["headers"])
        assert res.get_json()["name"] == "blocked"


# ═══════════════════════════════════════════════════════════════
# Catalog maintenance
# ═══════════════════════════════════════════════════════════════

class TestCreateUpdate:
    def test_create_appends_and_normalizes_color(self, blocked):
        assert blocked["order"] == 5
        assert blocked["color"] == "#EF4444"
        assert blocked["isDefault"] is False
        assert blocked["isActive"] is True

    def test_duplicate_name_conflict(self, client, acme, blocked):
        res = client.post("/status-configuration", headers=acme["headers"], json={
            "type": "task", "name": "blocked",
        })
        assert res.status_code == 409

    def test_same_name_allowed_for_other_type(self, client, acme, blocked):
        res = client.post("/status-configuration", headers=acme["headers"], json={
            "type": "activity", "name": "blocked",
        })
        assert res.status_code == 201

    @pytest.mark.parametrize("payload", [
        {"type": "task"},
        {"type": "nope", "name": "x"},
        {"type": "task", "name": "Has Spaces"},
        {"type": "task", "name": "ok", "color": "red"},
        {"type": "task", "name": "ok", "workflowRules": {"requiredRole": ["KING"]}},
        {"type": "task", "name": "ok", "order": True},
        {"type": "task", "name": "ok", "order": -1},
        {"type": "task", "name": "ok", "isActive": "false"},
        {"type": "task", "name": "ok", "description": 3},
    ])
    def test_create_validation(self, client, acme, payload):
        res = client.post("/status-configuration", headers=acme["headers"], json=payload)
        assert res.status_code == 400

    def test_only_admin_manages(self, client, pm):
        res = client.post("/status-configuration", headers=pm["headers"], json={"type": "task", "name": "x"})
        assert res.status_code == 403

    def test_update(self, client, acme, blocked):
        res = client.put(f"/status-configuration/{blocked['id']}", headers=acme["headers"], json={
            "displayName": "Blocked by dependency", "color": "#111111",
        })
        assert res.status_code == 200
        assert res.get_json()["displayName"] == "Blocked by dependency"

    @pytest.mark.parametrize("payload", [{"order": True}, {"order": "2"}, {"isActive": "false"}, {"isActive": 0}])
    def test_update_rejects_wrong_types(self, client, acme, blocked, payload):
        res = client.put(f"/status-configuration/{blocked['id']}", headers=acme["headers"], json=payload)
        assert res.status_code == 400
        stored = client.get(f"/status-configuration/{blocked['id']}", headers=acme["headers"]).get_json()
        assert stored["isActive"] is True
        assert stored["order"] == blocked["order"]

    def test_default_cannot_be_renamed(self, client, acme):
        todo = _by_name(client, acme["headers"], "task", "to_do")
        res = client.put(f"/status-configuration/{todo['id']}", headers=acme["headers"], json={"name": "todo"})
        assert res.status_code == 400


class TestDeleteAndToggle:
    def test_default_cannot_be_deleted(self, client, acme):
        done = _by_name(client, acme["headers"], "activity", "done")
        res = client.delete(f"/status-configuration/{done['id']}", headers=acme["headers"])
        assert res.status_code == 400
        assert "deactivate" in res.get_json()["error"]

    def test_default_can_be_deactivated(self, client, acme):
        done = _by_name(client, acme["headers"], "activity", "done")
        res = client.patch(f"/status-configuration/{done['id']}/toggle-active", headers=acme["headers"])
        assert res.status_code == 200
        assert res.get_json()["isActive"] is False

        active = _statuses(client, acme["headers"], "activity", path="/status-configuration/active")
        assert "done" not in {s["name"] for s in active}
        mapping = client.get("/status-configuration/mapping", headers=acme["headers"]).get_json()
        assert "done" not in mapping["activity"]

        res = client.patch(f"/status-configuration/{done['id']}/toggle-active", headers=acme["headers"])
        assert res.get_json()["isActive"] is True

    def test_custom_status_can_be_deleted(self, client, acme, blocked):
        res = client.delete(f"/status-configuration/{blocked['id']}", headers=acme["headers"])
        assert res.status_code == 200
        assert "blocked" not in {s["name"] for s in _statuses(client, acme["headers"], "task")}


class TestReorderAndBulk:
    def test_reorder(self, client, acme):
        rows = _statuses(client, acme["headers"], "task")
        ids = [r["id"] for r in reversed(rows)]
        res = client.put("/status-configuration/reorder/task", headers=acme["headers"], json={"statusIds": ids})
        assert res.status_code == 200
        assert [s["id"] for s in res.get_json()["statuses"]] == ids
        assert [s["order"] for s in res.get_json()["statuses"]] == [1, 2, 3, 4]

    def test_reorder_rejects_ids_of_other_type(self, client, acme):
        activity_id = _statuses(client, acme["headers"], "activity")[0]["id"]
        res = client.put("/status-configuration/reorder/task", headers=acme["headers"],
                         json={"statusIds": [activity_id]})
        assert res.status_code == 400

    def test_bulk_update(self, client, acme):
        rows = _statuses(client, acme["headers"], "task")[:2]
        res = client.post("/status-configuration/bulk-update", headers=acme["headers"], json={
            "updates": [{"id": r["id"], "data": {"color": "#000000"}} for r in rows],
        })
        assert res.status_code == 200
        assert {r["color"] for r in res.get_json()["results"]} == {"#000000"}

    def test_bulk_update_requires_list(self, client, acme):
        res = client.post("/status-configuration/bulk-update", headers=acme["headers"], json={"updates": []})
        assert res.status_code == 400


def test_initialize_defaults_is_idempotent(client, acme):
    res = client.post("/status-configuration/initialize-defaults", headers=acme["headers"])
    assert res.status_code == 200
    assert res.get_json()["created"] == 0
    assert len(_statuses(client, acme["headers"])) == 13


# ═══════════════════════════════════════════════════════════════
# Transition validation
# ═══════════════════════════════════════════════════════════════

class TestValidateTransition:
    def _validate(self, client, headers, from_status, to_status, status_type="task"):
        res = client.post("/status-configuration/validate-transition", headers=headers, json={
            "type": status_type, "fromStatus": from_status, "toStatus": to_status,
        })
        assert res.status_code == 200
        return res.get_json()

    def test_unrestricted_move_is_valid(self, client, member):
        assert self._validate(client, member["headers"], "to_do", "done")["isValid"] is True

    def test_unknown_status_is_invalid(self, client, member):
        result = self._validate(client, member["headers"], "to_do", "nowhere")
        assert result["isValid"] is False
        assert "nowhere" in result["reason"]

    def test_allowed_transitions_enforced(self, client, acme, member):
        todo = _by_name(client, acme["headers"], "task", "to_do")
        client.put(f"/status-configuration/{todo['id']}", headers=acme["headers"], json={
            "workflowRules": {"allowedTransitions": ["in_progress"]},
        })
        assert self._validate(client, member["headers"], "to_do", "in_progress")["isValid"] is True
        assert self._validate(client, member["headers"], "to_do", "done")["isValid"] is False

    def test_required_role_enforced(self, client, acme, member, pm):
        done = _by_name(client, acme["headers"], "task", "done")
        client.put(f"/status-configuration/{done['id']}", headers=acme["headers"], json={
            "workflowRules": {"requiredRole": ["PROJECT_MANAGER", "ADMIN"]},
        })
        assert self._validate(client, member["headers"], "stuck", "done")["isValid"] is False
        assert self._validate(client, pm["headers"], "stuck", "done")["isValid"] is True

    def test_inactive_target_is_invalid(self, client, acme, member):
        stuck = _by_name(client, acme["headers"], "task", "stuck")
        client.patch(f"/status-configuration/{stuck['id']}/toggle-active", headers=acme["headers"])
        assert self._validate(client, member["headers"], "to_do", "stuck")["isValid"] is False

    def test_missing_fields(self, client, member):
        res = client.post("/status-configuration/validate-transition", headers=member["headers"],
                          json={"type": "task"})
        assert res.status_code == 400


# ═══════════════════════════════════════════════════════════════
# Usage statistics
# ═══════════════════════════════════════════════════════════════

class TestUsageStats:
    def test_counts(self, client, acme, member):
        client.post("/activities", headers=member["headers"], json={"title": "a"})
        client.post("/activities", headers=member["headers"], json={"title": "b", "status": "in_progress"})
        stats = client.get("/status-configuration/usage-stats", headers=acme["headers"]).get_json()
        assert stats["totalStatuses"] == 13
        assert stats["activeStatuses"] == 13
        assert stats["byType"] == {"activity": 4, "task": 4, "approval": 5}
        assert stats["usage"]["activity"] == {"to_do": 1, "in_progress": 1}
        assert stats["usage"]["approval"] == {"draft": 2}

    def test_filtered_by_type(self, client, acme):
        stats = client.get("/status-configuration/usage-stats?type=task", headers=acme["headers"]).get_json()
        assert stats["totalStatuses"] == 4
        assert set(stats["usage"]) == {"task"}

    def test_pmo_allowed_member_forbidden(self, client, pmo, member):
        assert client.get("/status-configuration/usage-stats", headers=pmo["headers"]).status_code == 200
        assert client.get("/status-configuration/usage-stats", headers=member["headers"]).status_code == 403


class TestFailedBatchLeavesNoTrace:
    def test_bulk_update_second_item_invalid(self, client, acme):
        first, second = _statuses(client, acme["headers"], "task")[:2]
        res = client.post("/status-configuration/bulk-update", headers=acme["headers"], json={
            "updates": [
                {"id": first["id"], "data": {"color": "#000000"}},
                {"id": second["id"], "data": {"color": "not-a-color"}},
            ],
        })
        assert res.status_code == 400

        # A later successful write must not carry the aborted change along
        client.put(f"/status-configuration/{second['id']}", headers=acme["headers"], json={"color": "#222222"})
        assert _by_name(client, acme["headers"], "task", first["name"])["color"] == first["color"]

    def test_bulk_update_unknown_id_rolls_back(self, client, acme):
        first = _statuses(client, acme["headers"], "task")[0]
        res = client.post("/status-configuration/bulk-update", headers=acme["headers"], json={
            "updates": [
                {"id": first["id"], "data": {"displayName": "Renamed"}},
                {"id": 999999, "data": {"color": "#000000"}},
            ],
        })
        assert res.status_code == 404
        assert _by_name(client, acme["headers"], "task", first["name"])["displayName"] == first["displayName"]

    def test_reorder_rejects_boolean_ids(self, client, acme):
        res = client.put("/status-configuration/reorder/task", headers=acme["headers"], json={"statusIds": [True]})
        assert res.status_code == 400
