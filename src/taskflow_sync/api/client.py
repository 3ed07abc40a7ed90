# src/taskflow_sync/api/client.py

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.ports import JsonDict
from .errors import ApiError, AuthenticationError, NotFoundError

logger = logging.getLogger(__name__)


def _friendly_error(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"HTTP {response.status_code}"


class TaskFlowClient:
    """
    Async client for the TaskFlow REST API ({api_url}/taskflow).

    Every response is the server envelope {success, data, count, message};
    methods return the unwrapped part callers need. Errors are raised as
    ApiError subclasses; transport failures from httpx are wrapped too.

    Implements the TaskApi and NotificationApi ports.
    """

    def __init__(
            self,
            base_url: str,
            *,
            token: str | None = None,
            timeout: float = 10.0,
            transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token = token
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Content-Type": "application/json"},
            timeout=httpx.Timeout(timeout, connect=min(5.0, timeout)),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings) -> TaskFlowClient:
        return cls(
            settings.taskflow_base_url,
            token=getattr(settings, "api_token", None),
            timeout=float(getattr(settings, "http_timeout_seconds", 10.0)),
        )

    @property
    def authenticated(self) -> bool:
        return bool(self._token)

    def set_token(self, token: str | None) -> None:
        self._token = token or None

    async def aclose(self) -> None:
        await self._http.aclose()

    # ---- low-level ----

    async def _request(self, method: str, path: str, *, params: dict[str, Any] | None = None, json: Any = None) -> Any:
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else None
        try:
            response = await self._http.request(method, path, params=params, json=json, headers=headers)
        except httpx.HTTPError as e:
            raise ApiError(f"{method} {path} failed: {e.__class__.__name__}") from e

        if response.status_code == 401:
            # Same as the web client: a rejected token is dropped, the user must log in again.
            self._token = None
            raise AuthenticationError(_friendly_error(response), status=401)
        if response.status_code == 404:
            raise NotFoundError(_friendly_error(response), status=404)
        if response.is_error:
            raise ApiError(_friendly_error(response), status=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"{method} {path}: response is not JSON", status=response.status_code) from e

    @staticmethod
    def _data(body: Any) -> Any:
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    # ---- tasks ----

    async def get_task(self, task_id: str) -> JsonDict:
        data = self._data(await self._request("GET", f"/tasks/{task_id}"))
        return data if isinstance(data, dict) else {}

    async def list_tasks(self, *, team: str | None = None) -> list[JsonDict]:
        params = {"team": team} if team else None
        data = self._data(await self._request("GET", "/tasks", params=params))
        return [t for t in data if isinstance(t, dict)] if isinstance(data, list) else []

    async def start_timer(self, task_id: str) -> JsonDict:
        data = self._data(await self._request("POST", f"/tasks/{task_id}/timer/start"))
        return data if isinstance(data, dict) else {}

    async def stop_timer(self, task_id: str) -> JsonDict:
        data = self._data(await self._request("POST", f"/tasks/{task_id}/timer/stop"))
        return data if isinstance(data, dict) else {}

    async def log_time(self, task_id: str, *, hours: int, minutes: int, description: str = "") -> JsonDict:
        body = {"hours": hours, "minutes": minutes, "description": description}
        data = self._data(await self._request("POST", f"/tasks/{task_id}/timer/log", json=body))
        return data if isinstance(data, dict) else {}

    async def delete_time_entry(self, task_id: str, entry_index: int) -> JsonDict:
        data = self._data(await self._request("DELETE", f"/tasks/{task_id}/timer/entries/{int(entry_index)}"))
        return data if isinstance(data, dict) else {}

    async def reset_time_tracking(self, task_id: str) -> JsonDict:
        data = self._data(await self._request("DELETE", f"/tasks/{task_id}/timer/reset"))
        return data if isinstance(data, dict) else {}

    # ---- notifications ----

    async def list_notifications(self, *, limit: int) -> list[JsonDict]:
        data = self._data(await self._request("GET", "/notifications", params={"limit": int(limit)}))
        return [n for n in data if isinstance(n, dict)] if isinstance(data, list) else []

    async def unread_count(self) -> int:
        body = await self._request("GET", "/notifications/unread/count")
        try:
            return max(0, int((body or {}).get("count") or 0))
        except (AttributeError, TypeError, ValueError):
            logger.warning("Unexpected unread count payload: %r", body)
            return 0

    async def mark_notification_read(self, notification_id: str) -> None:
        await self._request("PUT", f"/notifications/{notification_id}/read")

    async def mark_all_notifications_read(self) -> None:
        await self._request("PUT", "/notifications/read-all")

    async def delete_notification(self, notification_id: str) -> None:
        await self._request("DELETE", f"/notifications/{notification_id}")

    async def delete_all_notifications(self) -> None:
        await self._request("DELETE", "/notifications")
