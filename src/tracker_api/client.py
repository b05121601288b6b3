"""
HTTP client for the task tracker API.

Holds the session token and a local copy of the caller's task list, patching
that copy from each mutation's response instead of re-fetching. A 401 from
the server drops the held token, so the caller has to log in again.

Example:
    with httpx.Client(base_url="http://localhost:5000") as http:
        client = TaskTrackerClient(http)
        client.login("ada@example.com", "secret1")
        client.create_task("Plan sprint")
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx


class ApiClientError(Exception):
    """An error response from the API."""

    def __init__(self, status_code: int, code: str, message: str) -> None:
        self.status_code = status_code
        self.code = code
        self.message = message
        super().__init__(f"{status_code} {code}: {message}")


# PUBLIC_INTERFACE
class TaskTrackerClient:
    """Session-aware wrapper over the /api endpoints."""

    def __init__(self, http: httpx.Client, token: Optional[str] = None) -> None:
        self._http = http
        self.token = token
        self.user: Optional[Dict[str, Any]] = None
        self.tasks: List[Dict[str, Any]] = []

    @property
    def authenticated(self) -> bool:
        return self.token is not None

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        response = self._http.request(method, f"/api{path}", headers=headers, **kwargs)

        if response.status_code == 401:
            self.token = None
        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = {}
            raise ApiClientError(
                response.status_code,
                str(body.get("error", "HTTPError")),
                str(body.get("message", response.reason_phrase)),
            )
        return response.json()

    def _start_session(self, body: Dict[str, Any]) -> Dict[str, Any]:
        self.token = body["token"]
        self.user = body["user"]
        self.tasks = []
        return body["user"]

    # auth

    def register(self, name: str, email: str, password: str) -> Dict[str, Any]:
        body = self._request("POST", "/register", json={"name": name, "email": email, "password": password})
        return self._start_session(body)

    def login(self, email: str, password: str) -> Dict[str, Any]:
        body = self._request("POST", "/login", json={"email": email, "password": password})
        return self._start_session(body)

    def logout(self) -> None:
        self.token = None
        self.user = None
        self.tasks = []

    def profile(self) -> Dict[str, Any]:
        user = self._request("GET", "/profile")["user"]
        self.user = user
        return user

    def health(self) -> Dict[str, Any]:
        return self._request("GET", "/health")

    # tasks

    def refresh_tasks(self, status: Optional[str] = None, sort: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {k: v for k, v in {"status": status, "sort": sort}.items() if v is not None}
        self.tasks = self._request("GET", "/tasks", params=params)
        return self.tasks

    def create_task(self, title: str, status: str = "pending") -> Dict[str, Any]:
        task = self._request("POST", "/tasks", json={"title": title, "status": status})
        self.tasks.insert(0, task)
        return task

    def update_task(self, task_id: str, **changes: Any) -> Dict[str, Any]:
        task = self._request("PUT", f"/tasks/{task_id}", json=changes)
        self.tasks = [task if t["id"] == task_id else t for t in self.tasks]
        return task

    def delete_task(self, task_id: str) -> None:
        self._request("DELETE", f"/tasks/{task_id}")
        self.tasks = [t for t in self.tasks if t["id"] != task_id]

    def stats(self) -> Dict[str, Any]:
        return self._request("GET", "/tasks/stats")
