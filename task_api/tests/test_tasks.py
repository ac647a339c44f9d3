"""Tests for the task endpoints: CRUD, scoping, filters, pagination, stats."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

FUTURE = (datetime.now(timezone.utc) + timedelta(days=30)).isoformat()
PAST = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()


def _task(**overrides) -> dict:
    body = {"title": "Write tests", "description": "Cover the task API"}
    body.update(overrides)
    return body


def _create(client: TestClient, headers: dict, **overrides) -> dict:
    response = client.post("/api/tasks", json=_task(**overrides), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["task"]


class TestAuthRequired:
    @pytest.mark.parametrize("method,path", [
        ("GET", "/api/tasks"),
        ("POST", "/api/tasks"),
        ("GET", "/api/tasks/stats/summary"),
        ("GET", "/api/tasks/abc"),
        ("PUT", "/api/tasks/abc"),
        ("DELETE", "/api/tasks/abc"),
    ])
    def test_missing_token(self, client: TestClient, method, path):
        response = client.request(method, path)
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_unknown_token(self, client: TestClient):
        response = client.get("/api/tasks", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert response.json()["message"] == "Token is not valid"


class TestCreateTask:
    def test_create_returns_task_with_defaults(self, client: TestClient, alice):
        response = client.post("/api/tasks", json=_task(), headers=alice)
        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        task = data["task"]
        assert task["title"] == "Write tests"
        assert task["status"] == "pending"
        assert task["priority"] == "medium"
        assert task["isUrgent"] is False
        assert task["tags"] == []
        assert task["efficiencyScore"] == 0
        assert "id" in task and "userId" in task
        assert "createdAt" in task and "updatedAt" in task

    def test_server_computes_score_and_owner(self, client: TestClient, alice):
        me = client.get("/api/auth/me", headers=alice).json()["user"]
        task = _create(
            client, alice,
            estimatedHours=10, actualHours=5,
            efficiencyScore=9999, userId="someone-else",
        )
        assert task["efficiencyScore"] == 200
        assert task["userId"] == me["id"]

    def test_title_too_long(self, client: TestClient, alice):
        response = client.post("/api/tasks", json=_task(title="x" * 101), headers=alice)
        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["message"] == "Validation failed"
        assert [e["field"] for e in data["errors"]] == ["title"]

    def test_due_date_in_past(self, client: TestClient, alice):
        response = client.post("/api/tasks", json=_task(dueDate=PAST), headers=alice)
        assert response.status_code == 400
        assert [e["field"] for e in response.json()["errors"]] == ["dueDate"]

    def test_due_date_in_future(self, client: TestClient, alice):
        task = _create(client, alice, dueDate=FUTURE, tags=["qa"])
        assert task["dueDate"] is not None
        assert task["tags"] == ["qa"]

    def test_all_errors_listed(self, client: TestClient, alice):
        response = client.post(
            "/api/tasks",
            json={"title": "", "description": "", "priority": "whenever"},
            headers=alice,
        )
        assert response.status_code == 400
        assert [e["field"] for e in response.json()["errors"]] == [
            "title", "description", "priority",
        ]

    def test_malformed_json(self, client: TestClient, alice):
        response = client.post(
            "/api/tasks",
            content=b"{not json",
            headers={**alice, "Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["success"] is False
        assert [e["field"] for e in response.json()["errors"]] == ["body"]

    def test_oversized_hours_are_a_validation_error(self, client: TestClient, alice):
        huge = "1" + "0" * 400
        response = client.post(
            "/api/tasks",
            content=f'{{"title": "t", "description": "d", "estimatedHours": {huge}}}',
            headers={**alice, "Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert [e["field"] for e in response.json()["errors"]] == ["estimatedHours"]


class TestGetUpdateDelete:
    def test_get_own_task(self, client: TestClient, alice):
        task = _create(client, alice)
        response = client.get(f"/api/tasks/{task['id']}", headers=alice)
        assert response.status_code == 200
        assert response.json()["task"]["id"] == task["id"]

    def test_update_recomputes_score(self, client: TestClient, alice):
        task = _create(client, alice, estimatedHours=6)
        response = client.put(
            f"/api/tasks/{task['id']}",
            json=_task(title="Write more tests", estimatedHours=6, actualHours=3,
                       status="completed"),
            headers=alice,
        )
        assert response.status_code == 200
        updated = response.json()["task"]
        assert updated["title"] == "Write more tests"
        assert updated["status"] == "completed"
        assert updated["efficiencyScore"] == 200
        assert updated["createdAt"] == task["createdAt"]

    def test_update_validates_like_create(self, client: TestClient, alice):
        task = _create(client, alice)
        response = client.put(
            f"/api/tasks/{task['id']}", json={"title": "only title"}, headers=alice,
        )
        assert response.status_code == 400
        assert [e["field"] for e in response.json()["errors"]] == ["description"]

    def test_delete(self, client: TestClient, alice):
        task = _create(client, alice)
        response = client.delete(f"/api/tasks/{task['id']}", headers=alice)
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Task deleted successfully"}
        assert client.get(f"/api/tasks/{task['id']}", headers=alice).status_code == 404

    def test_foreign_task_is_indistinguishable_from_missing(
        self, client: TestClient, alice, bob
    ):
        task = _create(client, alice)
        for method, kwargs in [("GET", {}), ("PUT", {"json": _task()}), ("DELETE", {})]:
            foreign = client.request(method, f"/api/tasks/{task['id']}", headers=bob, **kwargs)
            missing = client.request(method, "/api/tasks/no-such-id", headers=bob, **kwargs)
            assert foreign.status_code == missing.status_code == 404
            assert foreign.json() == missing.json() == {
                "success": False, "message": "Task not found",
            }
        assert client.get(f"/api/tasks/{task['id']}", headers=alice).status_code == 200


class TestListTasks:
    def test_only_own_tasks(self, client: TestClient, alice, bob):
        _create(client, alice, title="alice task")
        _create(client, bob, title="bob task")
        data = client.get("/api/tasks", headers=alice).json()
        assert [t["title"] for t in data["tasks"]] == ["alice task"]

    def test_pagination(self, client: TestClient, alice):
        for i in range(17):
            _create(client, alice, title=f"task {i:02d}")
        response = client.get(
            "/api/tasks", params={"page": 3, "limit": 8, "sort": "title", "order": "asc"},
            headers=alice,
        )
        assert response.status_code == 200
        data = response.json()
        assert [t["title"] for t in data["tasks"]] == ["task 16"]
        assert data["pagination"] == {
            "current": 3, "pages": 3, "total": 17, "hasNext": False, "hasPrev": True,
        }

    def test_lenient_paging_params(self, client: TestClient, alice):
        _create(client, alice)
        data = client.get("/api/tasks?page=abc&limit=0", headers=alice).json()
        assert data["pagination"]["current"] == 1
        assert data["pagination"]["pages"] == 1

    def test_filters(self, client: TestClient, alice):
        _create(client, alice, title="Ship release", status="in-progress", isUrgent=True)
        _create(client, alice, title="Plan sprint", priority="high")
        _create(client, alice, title="Tidy desk", description="Before the RELEASE party")

        def titles(**params):
            data = client.get("/api/tasks", params=params, headers=alice).json()
            return sorted(t["title"] for t in data["tasks"])

        assert titles(status="in-progress") == ["Ship release"]
        assert titles(priority="high") == ["Plan sprint"]
        assert titles(isUrgent="true") == ["Ship release"]
        assert titles(isUrgent="false") == ["Plan sprint", "Tidy desk"]
        assert titles(search="Release") == ["Ship release", "Tidy desk"]
        assert titles(status="", search="") == ["Plan sprint", "Ship release", "Tidy desk"]

    def test_huge_page_is_an_empty_page(self, client: TestClient, alice):
        _create(client, alice)
        response = client.get("/api/tasks?page=" + "9" * 30, headers=alice)
        assert response.status_code == 200
        data = response.json()
        assert data["tasks"] == []
        assert data["pagination"]["total"] == 1
        assert data["pagination"]["hasNext"] is False

    def test_invalid_filter_value(self, client: TestClient, alice):
        response = client.get("/api/tasks?status=archived", headers=alice)
        assert response.status_code == 400
        assert [e["field"] for e in response.json()["errors"]] == ["status"]


class TestStats:
    def test_summary(self, client: TestClient, alice, bob):
        _create(client, alice, estimatedHours=4, actualHours=2, isUrgent=True)
        _create(client, alice, estimatedHours=1, status="completed")
        _create(client, bob, isUrgent=True)

        response = client.get("/api/tasks/stats/summary", headers=alice)
        assert response.status_code == 200
        stats = response.json()["stats"]
        assert stats["totalCount"] == 2
        assert stats["urgentCount"] == 1
        rows = {row["status"]: row for row in stats["byStatus"]}
        assert rows["pending"] == {
            "status": "pending", "count": 1,
            "totalEstimatedHours": 4.0, "totalActualHours": 2.0,
        }
        assert rows["completed"]["count"] == 1
