"""Human-readable notifications for board events.

This module turns committed status changes, denied drops and failed moves
into toast-style messages and hands them to a sink (the UI layer, a test
recorder, or the log).  Delivery is fire-and-forget: a failing sink is logged
and never breaks the workflow.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from loguru import logger

from .constants import COLUMN_TITLES
from .errors import TaskWorkflowError, permission_denied_message
from .model import Role, Task, TaskStatus
from .policy import is_approval


KIND_MOVED = "moved"
KIND_SUBMITTED = "submitted_for_review"
KIND_APPROVED = "approved"
KIND_DENIED = "denied"
KIND_FAILED = "failed"


@dataclass(frozen=True)
class Notification:
    kind: str
    title: str
    message: str
    task_id: Optional[str] = None
    level: str = "success"


Sink = Callable[[Notification], Any]


def _log_sink(note: Notification) -> None:
    if note.level == "error":
        logger.warning("[{}] {}: {}", note.kind, note.title, note.message)
    else:
        logger.info("[{}] {}: {}", note.kind, note.title, note.message)


def status_change_notification(
    task: Task,
    from_status: TaskStatus,
    to_status: TaskStatus,
    role: Role,
) -> Notification:
    """Build the message for a committed move.

    An assignee handing work in and a manager approving it get different
    wording; every other move gets a plain "moved" message.
    """
    if role == Role.MANAGER and is_approval(from_status, to_status):
        return Notification(
            kind=KIND_APPROVED,
            title="Task approved",
            message="Task approved and marked as completed!",
            task_id=task.id,
        )
    if role == Role.USER and to_status == TaskStatus.DONE:
        return Notification(
            kind=KIND_SUBMITTED,
            title="Task moved to Done",
            message="Task moved to Done! Your manager will review and approve when complete.",
            task_id=task.id,
        )
    column = COLUMN_TITLES[to_status.value]
    return Notification(
        kind=KIND_MOVED,
        title=f"Task moved to {column}",
        message=f"{task.title or task.id} moved to {column}",
        task_id=task.id,
    )


class NotificationManager:
    """Dispatch board notifications to a sink."""

    def __init__(self, sink: Optional[Sink] = None, enabled: bool = True):
        """Initialize notification manager.

        Args:
            sink: Callable receiving each :class:`Notification`; defaults to
                the log.
            enabled: Whether notifications are delivered at all.
        """
        self.enabled = enabled
        self._sink: Sink = sink or _log_sink

    def notify_status_changed(
        self,
        task: Task,
        from_status: TaskStatus,
        to_status: TaskStatus,
        role: Role,
    ) -> None:
        self._send(status_change_notification(task, from_status, to_status, role))

    def notify_permission_denied(self, task_id: str, to_status: TaskStatus) -> None:
        """Client-side and server-side rejections share this message."""
        self._send(
            Notification(
                kind=KIND_DENIED,
                title="Permission denied",
                message=permission_denied_message(to_status),
                task_id=task_id,
                level="error",
            )
        )

    def notify_failure(self, error: TaskWorkflowError, task_id: Optional[str] = None) -> None:
        self._send(
            Notification(
                kind=KIND_FAILED,
                title="Task update failed",
                message=error.user_message,
                task_id=task_id or error.task_id,
                level="error",
            )
        )

    def _send(self, note: Notification) -> None:
        if not self.enabled:
            return
        try:
            self._sink(note)
            logger.debug("Notification sent: {}", note.title)
        except Exception as e:
            logger.warning("Failed to send notification: {}", e)


def create_notification_manager(config: dict, sink: Optional[Sink] = None) -> NotificationManager:
    """Create notification manager from config.

    Args:
        config: Configuration dict.
        sink: Optional delivery callable.

    Returns:
        NotificationManager, disabled when ``notifications.enabled`` is false.
    """
    notifications_config = config.get("notifications", {}) or {}
    enabled = bool(notifications_config.get("enabled", True))
    return NotificationManager(sink=sink, enabled=enabled)
