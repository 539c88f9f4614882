"""Contract for the authoritative remote task service."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..model import Task, TaskStatus


@runtime_checkable
class RemoteTaskService(Protocol):
    """Authoritative store behind the board.

    Implementations re-validate every transition against the same role rules
    as :mod:`task_workflow.policy` and raise
    :class:`~task_workflow.errors.UnauthorizedError`,
    :class:`~task_workflow.errors.NotFoundError`,
    :class:`~task_workflow.errors.ValidationError` or
    :class:`~task_workflow.errors.NetworkError`.
    """

    async def update_status(self, task_id: str, new_status: TaskStatus) -> Task:
        ...

    async def list_tasks(self, project_id: str) -> list[Task]:
        ...
