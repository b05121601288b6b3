from datetime import datetime, timedelta, timezone

import jwt

from tracker_api.sessions import SessionIssuer

from conftest import TEST_SECRET


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


def create_task(client, token, title="Test Task", status=None):
    payload = {"title": title}
    if status is not None:
        payload["status"] = status
    res = client.post("/api/tasks", json=payload, headers=auth_header(token))
    assert res.status_code == 201, res.text
    return res.json()


def assert_task_shape(task: dict):
    for key in ["id", "userId", "title", "status", "createdAt", "updatedAt"]:
        assert key in task
    assert isinstance(task["id"], str)
    assert task["status"] in ("pending", "in-progress", "completed")
    # Timestamps are ISO8601 strings
    datetime.fromisoformat(task["createdAt"])
    datetime.fromisoformat(task["updatedAt"])


class TestAuthorizationGate:
    def test_missing_token_is_unauthenticated(self, client):
        res = client.get("/api/tasks")
        assert res.status_code == 401
        assert res.json()["error"] == "Unauthenticated"
        assert res.json()["message"] == "Access token required"

    def test_non_bearer_scheme_is_unauthenticated(self, client, register):
        _, token = register()
        res = client.get("/api/tasks", headers={"Authorization": f"Basic {token}"})
        assert res.status_code == 401
        assert res.json()["error"] == "Unauthenticated"

    def test_garbage_token_is_forbidden(self, client):
        res = client.get("/api/tasks", headers=auth_header("not-a-jwt"))
        assert res.status_code == 403
        assert res.json() == {"error": "Forbidden", "message": "Invalid token"}

    def test_token_signed_with_other_secret_is_forbidden(self, client, register):
        user, _ = register()
        forged = SessionIssuer("some-other-secret-that-is-also-long-enough").issue(user["id"], user["email"])
        res = client.get("/api/tasks/stats", headers=auth_header(forged))
        assert res.status_code == 403

    def test_tampered_payload_is_forbidden(self, client, register):
        _, token = register()
        header, payload, signature = token.split(".")
        tampered = ".".join([header, payload[:-2] + ("AA" if payload[-2:] != "AA" else "BB"), signature])
        res = client.get("/api/tasks", headers=auth_header(tampered))
        assert res.status_code == 403

    def test_expired_token_reports_expiry(self, client, register):
        user, _ = register()
        past = SessionIssuer(TEST_SECRET, clock=lambda: datetime.now(timezone.utc) - timedelta(hours=25))
        expired = past.issue(user["id"], user["email"])
        res = client.get("/api/tasks", headers=auth_header(expired))
        assert res.status_code == 401
        assert res.json() == {"error": "TokenExpired", "message": "Token expired"}

    def test_token_without_user_claim_is_forbidden(self, client):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"email": "x@y.z", "iat": int(now.timestamp()), "exp": int((now + timedelta(hours=1)).timestamp())},
            TEST_SECRET,
            algorithm="HS256",
        )
        res = client.get("/api/tasks", headers=auth_header(token))
        assert res.status_code == 403


class TestTasksCRUD:
    def test_register_create_complete_stats_scenario(self, client):
        res = client.post("/api/register", json={"name": "A", "email": "a@x.com", "password": "secret1"})
        assert res.status_code == 201
        token = res.json()["token"]

        res_create = client.post("/api/tasks", json={"title": "plan sprint"}, headers=auth_header(token))
        assert res_create.status_code == 201
        task = res_create.json()
        assert_task_shape(task)
        assert task["status"] == "pending"
        assert task["title"] == "plan sprint"

        res_put = client.put(f"/api/tasks/{task['id']}", json={"status": "completed"}, headers=auth_header(token))
        assert res_put.status_code == 200
        updated = res_put.json()
        assert updated["status"] == "completed"
        assert updated["title"] == "plan sprint"
        assert datetime.fromisoformat(updated["updatedAt"]) > datetime.fromisoformat(task["updatedAt"])
        assert updated["createdAt"] == task["createdAt"]

        res_stats = client.get("/api/tasks/stats", headers=auth_header(token))
        assert res_stats.status_code == 200
        assert res_stats.json() == {"total": 1, "pending": 0, "inProgress": 0, "completed": 1}

    def test_create_trims_title(self, client, register):
        user, token = register()
        task = create_task(client, token, title="  abc  ")
        assert task["title"] == "abc"
        assert task["userId"] == user["id"]

    def test_create_with_explicit_status(self, client, register):
        _, token = register()
        task = create_task(client, token, title="Doing", status="in-progress")
        assert task["status"] == "in-progress"

    def test_create_rejects_blank_title(self, client, register):
        _, token = register()
        for payload in ({"title": ""}, {"title": "   "}, {}):
            res = client.post("/api/tasks", json=payload, headers=auth_header(token))
            assert res.status_code == 400
            assert res.json() == {"error": "InvalidInput", "message": "Task title is required"}

    def test_create_rejects_unknown_status(self, client, register):
        _, token = register()
        res = client.post("/api/tasks", json={"title": "x", "status": "done"}, headers=auth_header(token))
        assert res.status_code == 400
        assert res.json()["message"] == "Status must be pending, in-progress, or completed"

    def test_create_rejects_wrong_body_shape(self, client, register):
        _, token = register()
        res = client.post("/api/tasks", json={"title": ["not", "a", "string"]}, headers=auth_header(token))
        assert res.status_code == 400
        body = res.json()
        assert body["error"] == "InvalidInput"
        assert body["message"] == "Request validation failed"
        assert isinstance(body["detail"], list)

    def test_partial_update_title_keeps_status(self, client, register):
        _, token = register()
        task = create_task(client, token, title="Old", status="in-progress")
        res = client.put(f"/api/tasks/{task['id']}", json={"title": "  New  "}, headers=auth_header(token))
        assert res.status_code == 200
        assert res.json()["title"] == "New"
        assert res.json()["status"] == "in-progress"

    def test_update_rejects_unknown_status(self, client, register):
        _, token = register()
        task = create_task(client, token)
        res = client.put(f"/api/tasks/{task['id']}", json={"status": "archived"}, headers=auth_header(token))
        assert res.status_code == 400
        assert res.json()["error"] == "InvalidInput"

    def test_update_missing_task_is_not_found(self, client, register):
        _, token = register()
        res = client.put("/api/tasks/does-not-exist", json={"status": "completed"}, headers=auth_header(token))
        assert res.status_code == 404
        assert res.json() == {"error": "NotFound", "message": "Task not found"}

    def test_update_other_users_task_is_not_found(self, client, register):
        _, owner_token = register()
        _, other_token = register(name="Bob", email="bob@example.com")
        task = create_task(client, owner_token, title="Mine")

        res = client.put(f"/api/tasks/{task['id']}", json={"title": "Hijacked"}, headers=auth_header(other_token))
        assert res.status_code == 404
        assert res.json()["message"] == "Task not found"

        mine = client.get("/api/tasks", headers=auth_header(owner_token)).json()
        assert mine[0]["title"] == "Mine"

    def test_delete_task(self, client, register):
        _, token = register()
        task = create_task(client, token, title="ToDelete")

        res_del = client.delete(f"/api/tasks/{task['id']}", headers=auth_header(token))
        assert res_del.status_code == 200
        assert res_del.json() == {"message": "Task deleted successfully", "taskId": task["id"]}

        listed = client.get("/api/tasks", headers=auth_header(token)).json()
        assert task["id"] not in [t["id"] for t in listed]

        # Deleting again should be 404
        res_del_again = client.delete(f"/api/tasks/{task['id']}", headers=auth_header(token))
        assert res_del_again.status_code == 404

    def test_delete_other_users_task_is_not_found(self, client, register):
        _, owner_token = register()
        _, other_token = register(name="Bob", email="bob@example.com")
        task = create_task(client, owner_token)

        res = client.delete(f"/api/tasks/{task['id']}", headers=auth_header(other_token))
        assert res.status_code == 404
        assert len(client.get("/api/tasks", headers=auth_header(owner_token)).json()) == 1


class TestListFilteringSorting:
    def seed(self, client, token):
        statuses = ["pending", "in-progress", "completed", "pending", "completed"]
        return [create_task(client, token, title=f"Task {i}", status=s) for i, s in enumerate(statuses)]

    def test_list_only_returns_callers_tasks(self, client, register):
        alice, alice_token = register()
        _, bob_token = register(name="Bob", email="bob@example.com")
        self.seed(client, alice_token)
        create_task(client, bob_token, title="Bob's")

        res = client.get("/api/tasks", headers=auth_header(alice_token))
        assert res.status_code == 200
        items = res.json()
        assert len(items) == 5
        assert all(t["userId"] == alice["id"] for t in items)

    def test_default_order_is_newest_first(self, client, register):
        _, token = register()
        created = self.seed(client, token)
        items = client.get("/api/tasks", headers=auth_header(token)).json()
        assert [t["id"] for t in items] == [t["id"] for t in reversed(created)]

    def test_filter_by_status(self, client, register):
        _, token = register()
        self.seed(client, token)

        res = client.get("/api/tasks?status=completed", headers=auth_header(token))
        assert res.status_code == 200
        assert [t["title"] for t in res.json()] == ["Task 4", "Task 2"]

        res_all = client.get("/api/tasks?status=all", headers=auth_header(token))
        assert len(res_all.json()) == 5

    def test_unknown_status_filter_matches_nothing(self, client, register):
        _, token = register()
        self.seed(client, token)
        res = client.get("/api/tasks?status=archived", headers=auth_header(token))
        assert res.status_code == 200
        assert res.json() == []

    def test_sort_by_updated_at(self, client, register):
        _, token = register()
        created = self.seed(client, token)
        # Touch the oldest task so it becomes the most recently updated
        client.put(f"/api/tasks/{created[0]['id']}", json={"status": "completed"}, headers=auth_header(token))

        items = client.get("/api/tasks?sort=updatedAt", headers=auth_header(token)).json()
        assert items[0]["id"] == created[0]["id"]
        updated_ts = [datetime.fromisoformat(t["updatedAt"]) for t in items]
        assert updated_ts == sorted(updated_ts, reverse=True)

        by_created = client.get("/api/tasks?sort=createdAt", headers=auth_header(token)).json()
        assert by_created[-1]["id"] == created[0]["id"]

    def test_sort_rejects_non_timestamp_field(self, client, register):
        _, token = register()
        res = client.get("/api/tasks?sort=title", headers=auth_header(token))
        assert res.status_code == 400
        assert res.json()["message"] == "sort must be 'createdAt' or 'updatedAt'"


class TestStats:
    def test_stats_count_per_status(self, client, register):
        _, token = register()
        for status in ["pending", "pending", "in-progress", "completed"]:
            create_task(client, token, status=status)
        res = client.get("/api/tasks/stats", headers=auth_header(token))
        assert res.json() == {"total": 4, "pending": 2, "inProgress": 1, "completed": 1}

    def test_stats_are_owner_scoped(self, client, register):
        _, alice_token = register()
        _, bob_token = register(name="Bob", email="bob@example.com")
        create_task(client, alice_token)
        res = client.get("/api/tasks/stats", headers=auth_header(bob_token))
        assert res.json() == {"total": 0, "pending": 0, "inProgress": 0, "completed": 0}
