"""In-process task service with the backend's move semantics."""

from __future__ import annotations

import asyncio
from typing import Iterable, Optional

from loguru import logger

from ..errors import NotFoundError, ValidationError
from ..model import Actor, Task, TaskStatus
from ..policy import check_transition


def apply_server_move(tasks: dict[str, Task], actor: Actor, task_id: str, new_status: TaskStatus) -> Task:
    """Validate and apply a move the way the backend does.

    Mutates *tasks* in place and returns an independent copy of the updated
    task.  The server owns ``updated_at``, ``completed_at`` and the appended
    position.
    """
    try:
        target = TaskStatus(new_status)
    except ValueError:
        raise ValidationError(f"Unknown status {new_status!r}", task_id=task_id, http_status=400) from None

    task = tasks.get(task_id)
    if task is None:
        raise NotFoundError(f"Task {task_id} not found", task_id=task_id, http_status=404)
    if task.status == target:
        return task.snapshot()
    if task.is_terminal:
        raise ValidationError(f"Task {task_id} is already completed", task_id=task_id, http_status=400)

    check_transition(actor, task, target)

    positions = [t.position for t in tasks.values() if t.status == target and t.id != task_id]
    task.position = max(positions, default=-1) + 1
    task.transition(target)
    return task.snapshot()


class InMemoryTaskService:
    """Authoritative task service held in memory.

    Parameters
    ----------
    actor:
        The authenticated caller every move is validated against.
    tasks:
        Initial board content.
    delay:
        Seconds to suspend before answering, to model network latency.
    """

    def __init__(self, actor: Actor, tasks: Optional[Iterable[Task]] = None, delay: float = 0.0) -> None:
        self.actor = actor
        self.delay = delay
        self._tasks: dict[str, Task] = {t.id: t.snapshot() for t in (tasks or [])}

    def get(self, task_id: str) -> Optional[Task]:
        task = self._tasks.get(task_id)
        return task.snapshot() if task else None

    def add(self, task: Task) -> Task:
        if task.id in self._tasks:
            raise ValueError(f"Task {task.id} already exists")
        self._tasks[task.id] = task.snapshot()
        return task

    async def update_status(self, task_id: str, new_status: TaskStatus) -> Task:
        await asyncio.sleep(self.delay)
        updated = apply_server_move(self._tasks, self.actor, task_id, new_status)
        logger.debug("Server moved {} to {}", task_id, updated.status.value)
        return updated

    async def list_tasks(self, project_id: str) -> list[Task]:
        await asyncio.sleep(self.delay)
        return [t.snapshot() for t in self._tasks.values() if t.project_id == project_id]
