"""Failures raised by the workflow engine and its remote collaborators.

Every error carries a ``user_message`` that the UI layer can show as-is.
Unauthorized moves share one message whether the client-side policy or the
server rejected them.
"""

from __future__ import annotations

from typing import Any, Optional


PERMISSION_DENIED_MESSAGE = "You don't have permission to move this task to {status}"


class TaskWorkflowError(Exception):
    """Base class for workflow failures surfaced to the UI."""

    default_message = "Something went wrong while updating the task"

    def __init__(
        self,
        detail: str = "",
        *,
        task_id: Optional[str] = None,
        http_status: Optional[int] = None,
    ) -> None:
        super().__init__(detail or self.default_message)
        self.detail = detail or self.default_message
        self.task_id = task_id
        self.http_status = http_status

    @property
    def user_message(self) -> str:
        return self.detail


class NotFoundError(TaskWorkflowError):
    default_message = "Task not found"


class UnauthorizedError(TaskWorkflowError):
    default_message = "Permission denied to move this task"

    def __init__(
        self,
        detail: str = "",
        *,
        target_status: Any = None,
        task_id: Optional[str] = None,
        http_status: Optional[int] = None,
    ) -> None:
        super().__init__(detail, task_id=task_id, http_status=http_status)
        self.target_status = target_status

    @property
    def user_message(self) -> str:
        return permission_denied_message(self.target_status)


class ValidationError(TaskWorkflowError):
    default_message = "Invalid task state"


class NetworkError(TaskWorkflowError):
    default_message = "Could not reach the task service"


def permission_denied_message(status: Any) -> str:
    label = getattr(status, "value", status) or "that column"
    return PERMISSION_DENIED_MESSAGE.format(status=label)
