"""REST client for the tracker backend's task endpoints."""

from __future__ import annotations

from typing import Any, Optional, Union

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PayloadError

from ..config import get_api_config
from ..constants import DEFAULT_API_BASE_URL, DEFAULT_HTTP_TIMEOUT_SECONDS
from ..errors import NetworkError, NotFoundError, TaskWorkflowError, UnauthorizedError, ValidationError
from ..model import Task, TaskStatus


class MoveTaskRequest(BaseModel):
    """Body of ``PUT /tasks/{id}/move``."""

    status: TaskStatus
    position: Optional[float] = None


class ApiEnvelope(BaseModel):
    """Standard backend response wrapper."""

    success: bool = True
    message: Optional[str] = None
    data: Any = None


class TaskListPayload(BaseModel):
    tasks: list[dict[str, Any]] = Field(default_factory=list)


class TaskPayload(BaseModel):
    """A task as the backend returns it; only identity and status are required."""

    model_config = ConfigDict(extra="allow")

    id: Union[str, int]
    status: TaskStatus


def _parse_task(data: Any, task_id: Optional[str] = None) -> Task:
    try:
        TaskPayload.model_validate(data)
    except PayloadError as exc:
        raise ValidationError(f"Malformed task in response: {exc.error_count()} error(s)", task_id=task_id) from exc
    return Task.from_dict(data)


def _error_for(response: httpx.Response, task_id: Optional[str], target: Optional[TaskStatus]) -> TaskWorkflowError:
    try:
        message = ApiEnvelope.model_validate(response.json()).message or ""
    except (ValueError, PayloadError):
        message = response.text[:200]
    code = response.status_code
    if code in (401, 403):
        return UnauthorizedError(message, target_status=target, task_id=task_id, http_status=code)
    if code == 404:
        return NotFoundError(message, task_id=task_id, http_status=code)
    if code in (400, 409, 422):
        return ValidationError(message, task_id=task_id, http_status=code)
    return NetworkError(message or f"HTTP {code}", task_id=task_id, http_status=code)


class HttpTaskService:
    """Talk to the backend over HTTP.

    Args:
        base_url: API root, e.g. ``http://localhost:5000/api``.
        token: Optional bearer token for the signed-in user.
        timeout: Request timeout in seconds; expiry surfaces as
            :class:`~task_workflow.errors.NetworkError`.
        client: Pre-built ``httpx.AsyncClient`` (tests pass one with a mock
            transport).  When given, its base URL and headers are used as-is.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        token: Optional[str] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout)

    @classmethod
    def from_config(cls, config: dict[str, Any], token: Optional[str] = None) -> "HttpTaskService":
        """Build a service from the `api` block (`base_url`, `timeout`) of *config*."""
        api = get_api_config(config)
        timeout = api.get("timeout")
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            timeout = DEFAULT_HTTP_TIMEOUT_SECONDS
        return cls(base_url=str(api.get("base_url") or DEFAULT_API_BASE_URL), token=token, timeout=float(timeout))

    async def __aenter__(self) -> "HttpTaskService":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        *,
        task_id: Optional[str] = None,
        target: Optional[TaskStatus] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> Any:
        try:
            response = await self._client.request(method, url, json=json)
        except httpx.TimeoutException as exc:
            raise NetworkError(f"Request timed out: {method} {url}", task_id=task_id) from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"{exc.__class__.__name__}: {exc}", task_id=task_id) from exc

        if response.is_error:
            error = _error_for(response, task_id, target)
            logger.warning("{} {} failed with {}: {}", method, url, response.status_code, error.detail)
            raise error

        try:
            envelope = ApiEnvelope.model_validate(response.json())
        except (ValueError, PayloadError) as exc:
            raise ValidationError(f"Malformed response from {method} {url}", task_id=task_id) from exc
        return envelope.data

    async def update_status(self, task_id: str, new_status: TaskStatus) -> Task:
        body = MoveTaskRequest(status=new_status).model_dump(mode="json", exclude_none=True)
        data = await self._request("PUT", f"/tasks/{task_id}/move", task_id=task_id, target=new_status, json=body)
        return _parse_task(data, task_id)

    async def list_tasks(self, project_id: str) -> list[Task]:
        data = await self._request("GET", f"/tasks/project/{project_id}")
        # Older endpoints wrap the list as {"tasks": [...]}
        if isinstance(data, dict):
            try:
                data = TaskListPayload.model_validate(data).tasks
            except PayloadError as exc:
                raise ValidationError(f"Malformed task list for {project_id}") from exc
        if not isinstance(data, list):
            raise ValidationError(f"Task list for {project_id} is not a list")
        return [_parse_task(item) for item in data]
