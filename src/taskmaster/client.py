from __future__ import annotations

from typing import Any, List, Optional
from urllib.parse import quote

import httpx
import pydantic
import structlog

from .errors import ApiError
from .schemas import TaskOut
from .settings import DEFAULT_API_URL, ClientSettings, get_client_settings

log = structlog.get_logger(__name__)


def _error_message(response: httpx.Response) -> str:
    """Prefer the service's "message" field; fall back to the HTTP reason phrase."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return response.reason_phrase or f"HTTP {response.status_code}"


# PUBLIC_INTERFACE
class TaskApiClient:
    """
    Synchronous client for the task API.

    Every failure surfaces as ApiError: transport problems (refused
    connection, timeout) with status_code None, non-success responses with
    the returned status. Nothing is retried.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        """
        Args:
            base_url: Service root, e.g. http://localhost:5000
            timeout: Per-request timeout in seconds; None waits indefinitely
            http_client: Pre-configured httpx client (its base_url is used as-is)
        """
        self._owns_http = http_client is None
        self._http = http_client or httpx.Client(
            base_url=(base_url or DEFAULT_API_URL).rstrip("/"),
            timeout=timeout,
        )

    @classmethod
    def from_settings(cls, settings: Optional[ClientSettings] = None) -> "TaskApiClient":
        settings = settings or get_client_settings()
        return cls(base_url=settings.api_url, timeout=settings.timeout)

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            log.warning("api_unreachable", method=method, path=path, error=str(e))
            raise ApiError(f"Could not reach task service: {e}") from e
        if not response.is_success:
            message = _error_message(response)
            log.warning("api_request_failed", method=method, path=path, status_code=response.status_code)
            raise ApiError(message, status_code=response.status_code)
        return response

    def probe(self) -> bool:
        """Return True if the service root answers with a success status."""
        try:
            self._request("GET", "/")
        except ApiError:
            return False
        return True

    def list_tasks(self) -> List[TaskOut]:
        """Fetch every task in creation order."""
        response = self._request("GET", "/api/tasks")
        try:
            return [TaskOut.model_validate(item) for item in response.json()]
        except (ValueError, TypeError, pydantic.ValidationError) as e:
            raise ApiError("Malformed task list in response", status_code=response.status_code) from e

    def create_task(self, text: str) -> TaskOut:
        """Create a task and return it as confirmed by the service."""
        response = self._request("POST", "/api/tasks", json={"text": text})
        try:
            return TaskOut.model_validate(response.json())
        except (ValueError, TypeError, pydantic.ValidationError) as e:
            raise ApiError("Malformed task in response", status_code=response.status_code) from e

    def delete_task(self, task_id: str) -> None:
        """Delete a task by id; succeeds when the task is already gone."""
        self._request("DELETE", f"/api/tasks/{quote(task_id, safe='')}")

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "TaskApiClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
