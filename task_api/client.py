# task_api/client.py
"""HTTP client and per-user view state for the task API.

:class:`TaskAPIClient` wraps the wire contract with httpx.
:class:`TaskStore` keeps the task list, filters, pagination and stats for
exactly one signed-in user. Binding a different identity resets that state
in one step, so nothing cached for one user is ever shown to another.
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 8

_FILTER_KEYS = ("status", "priority", "isUrgent", "search", "sort", "order")


class ClientError(Exception):
    """Non-2xx response from the task API."""

    def __init__(self, status_code: int, message: str, errors: Optional[list] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.errors = errors or []


class TaskAPIClient:
    """Thin synchronous client for the task API.

    Parameters
    ----------
    base_url : str
        Root URL of the service, e.g. ``http://localhost:5000``.
    http : httpx.Client, optional
        Pre-built client to send requests with. ``base_url`` is ignored
        when given.
    """

    def __init__(self, base_url: str = "", http: Optional[httpx.Client] = None,
                 timeout: float = 10.0) -> None:
        self._http = http or httpx.Client(base_url=base_url, timeout=timeout)
        self.token: Optional[str] = None

    def close(self) -> None:
        self._http.close()

    # -- transport -----------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs: Any) -> dict:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        response = self._http.request(method, path, headers=headers, **kwargs)
        try:
            data = response.json()
        except ValueError:
            data = {}
        if response.is_error:
            raise ClientError(
                response.status_code,
                data.get("message") or f"Request failed with status {response.status_code}",
                data.get("errors"),
            )
        return data

    # -- auth ----------------------------------------------------------------

    def register(self, username: str, email: str, password: str) -> dict:
        data = self._request("POST", "/api/auth/register", json={
            "username": username, "email": email, "password": password,
        })
        self.token = data["token"]
        return data["user"]

    def login(self, email: str, password: str) -> dict:
        data = self._request("POST", "/api/auth/login", json={
            "email": email, "password": password,
        })
        self.token = data["token"]
        return data["user"]

    def me(self) -> dict:
        return self._request("GET", "/api/auth/me")["user"]

    def logout(self) -> None:
        try:
            if self.token:
                self._request("POST", "/api/auth/logout")
        finally:
            self.token = None

    # -- tasks ---------------------------------------------------------------

    def list_tasks(self, page: int = 1, limit: int = DEFAULT_PAGE_SIZE,
                   **filters: Any) -> dict:
        """Return ``{"tasks": [...], "pagination": {...}}`` for one page."""
        params: dict[str, Any] = {"page": page, "limit": limit}
        for key, value in filters.items():
            if value is None or value == "":
                continue
            params[key] = str(value).lower() if isinstance(value, bool) else value
        data = self._request("GET", "/api/tasks", params=params)
        return {"tasks": data["tasks"], "pagination": data["pagination"]}

    def get_task(self, task_id: str) -> dict:
        return self._request("GET", f"/api/tasks/{task_id}")["task"]

    def create_task(self, fields: dict) -> dict:
        return self._request("POST", "/api/tasks", json=fields)["task"]

    def update_task(self, task_id: str, fields: dict) -> dict:
        return self._request("PUT", f"/api/tasks/{task_id}", json=fields)["task"]

    def delete_task(self, task_id: str) -> None:
        self._request("DELETE", f"/api/tasks/{task_id}")

    def stats(self) -> dict:
        return self._request("GET", "/api/tasks/stats/summary")["stats"]


def summarize_stats(stats: dict) -> dict:
    """Dashboard figures derived from a stats payload.

    Adds hour totals across all statuses, the overall efficiency
    (estimated / actual x 100, or 0 when no hours are logged) and each
    status's percentage share of the task count.
    """
    by_status = stats.get("byStatus") or []
    total_count = stats.get("totalCount", 0)
    total_estimated = sum(row.get("totalEstimatedHours") or 0 for row in by_status)
    total_actual = sum(row.get("totalActualHours") or 0 for row in by_status)
    overall = (total_estimated / total_actual) * 100 if total_actual > 0 else 0.0
    return {
        "totalCount": total_count,
        "urgentCount": stats.get("urgentCount", 0),
        "totalEstimatedHours": total_estimated,
        "totalActualHours": total_actual,
        "overallEfficiency": overall,
        "byStatus": [
            {
                **row,
                "share": (row["count"] / total_count) * 100 if total_count > 0 else 0.0,
            }
            for row in by_status
        ],
    }


def _empty_state(user: Optional[dict] = None) -> dict:
    return {
        "user": user,
        "tasks": [],
        "filters": {key: None for key in _FILTER_KEYS},
        "pagination": {
            "current": 1, "pages": 0, "total": 0, "hasNext": False, "hasPrev": False,
        },
        "stats": None,
        "summary": None,
    }


class TaskStore:
    """View state for the signed-in user's tasks.

    State is replaced wholesale rather than mutated in place, and
    :meth:`snapshot` hands out deep copies.
    """

    def __init__(self, api: TaskAPIClient, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self.api = api
        self.page_size = page_size
        self._state: dict = _empty_state()
        self._lock = threading.Lock()

    # -- reads ---------------------------------------------------------------

    def snapshot(self) -> dict:
        with self._lock:
            return copy.deepcopy(self._state)

    @property
    def user_id(self) -> Optional[str]:
        user = self._state["user"]
        return user["id"] if user else None

    # -- identity ------------------------------------------------------------

    def bind(self, user: Optional[dict]) -> None:
        """Scope the store to *user*; a different identity starts from empty state."""
        new_id = user["id"] if user else None
        with self._lock:
            if new_id != self.user_id:
                logger.debug("Task store identity changed, clearing cached state")
                self._state = _empty_state(user)
            else:
                self._state = {**self._state, "user": user}

    def login(self, email: str, password: str) -> dict:
        self.bind(None)
        user = self.api.login(email, password)
        self.bind(user)
        return user

    def register(self, username: str, email: str, password: str) -> dict:
        self.bind(None)
        user = self.api.register(username, email, password)
        self.bind(user)
        return user

    def logout(self) -> None:
        try:
            self.api.logout()
        finally:
            self.bind(None)

    # -- task list -----------------------------------------------------------

    def _require_user(self) -> str:
        user_id = self.user_id
        if user_id is None:
            raise ClientError(401, "Not signed in")
        return user_id

    def refresh(self, page: Optional[int] = None) -> list[dict]:
        """Reload one page of tasks with the current filters."""
        user_id = self._require_user()
        page = page or self._state["pagination"]["current"]
        result = self.api.list_tasks(
            page=page, limit=self.page_size, **self._state["filters"]
        )
        with self._lock:
            # Drop results that arrive after the identity changed.
            if self.user_id != user_id:
                return []
            self._state = {
                **self._state,
                "tasks": result["tasks"],
                "pagination": result["pagination"],
            }
        return result["tasks"]

    def set_filters(self, **filters: Any) -> list[dict]:
        """Replace the given filters and reload from page 1."""
        unknown = set(filters) - set(_FILTER_KEYS)
        if unknown:
            raise ValueError(f"Unknown filters: {', '.join(sorted(unknown))}")
        with self._lock:
            self._state = {
                **self._state,
                "filters": {**self._state["filters"], **filters},
            }
        return self.refresh(page=1)

    def go_to_page(self, page: int) -> list[dict]:
        return self.refresh(page=page)

    # -- writes --------------------------------------------------------------

    def _after_write(self, page: int) -> None:
        self.refresh(page=page)
        if self._state["stats"] is not None:
            self.load_stats()

    def create_task(self, fields: dict) -> dict:
        self._require_user()
        task = self.api.create_task(fields)
        self._after_write(page=1)
        return task

    def update_task(self, task_id: str, fields: dict) -> dict:
        self._require_user()
        task = self.api.update_task(task_id, fields)
        self._after_write(page=self._state["pagination"]["current"])
        return task

    def delete_task(self, task_id: str) -> None:
        self._require_user()
        self.api.delete_task(task_id)
        page = self._state["pagination"]["current"]
        # Step back when the last row of the last page was removed.
        if page > 1 and len(self._state["tasks"]) == 1:
            page -= 1
        self._after_write(page=page)

    def load_stats(self) -> dict:
        user_id = self._require_user()
        stats = self.api.stats()
        with self._lock:
            if self.user_id == user_id:
                self._state = {**self._state, "stats": stats, "summary": summarize_stats(stats)}
        return stats
