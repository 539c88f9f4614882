"""Board projector: derive the four status columns from the task store.

The projection is a pure read view: it filters by role, sorts by position,
and never mutates a task.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Callable, Iterable, Optional

from .constants import COLUMN_TITLES
from .model import PIPELINE, Actor, Role, Task, TaskStatus, parse_timestamp

if TYPE_CHECKING:
    from .store import StoreEvent, TaskStore


Columns = dict[TaskStatus, list[Task]]


def _sort_key(task: Task) -> tuple[float, datetime]:
    return (task.position, parse_timestamp(task.created_at))


def _visible(task: Task, role: Role, current_user_id: Optional[str]) -> bool:
    if role == Role.USER:
        return task.assignee_id is not None and task.assignee_id == current_user_id
    return True


def project_columns(
    tasks: Iterable[Task],
    role: Role,
    current_user_id: Optional[str],
) -> Columns:
    """Bucket *tasks* into pipeline-ordered columns as *role* sees them.

    Users only see tasks assigned to them; managers, moderators and admins
    see every task of the project.  Each bucket is sorted ascending by
    ``position`` with ties broken by ``created_at``.
    """
    columns: Columns = {status: [] for status in PIPELINE}
    for task in tasks:
        if _visible(task, role, current_user_id):
            columns[task.status].append(task)
    for bucket in columns.values():
        bucket.sort(key=_sort_key)
    return columns


def array_move(items: list, from_index: int, to_index: int) -> list:
    """Return a copy of *items* with one element moved (remove, then reinsert)."""
    moved = list(items)
    moved.insert(to_index, moved.pop(from_index))
    return moved


def column_title(status: TaskStatus) -> str:
    return COLUMN_TITLES[status.value]


def column_counts(columns: Columns) -> dict[TaskStatus, int]:
    return {status: len(bucket) for status, bucket in columns.items()}


def awaiting_approval(tasks: Iterable[Task]) -> list[Task]:
    """Tasks sitting in ``DONE`` that a manager still has to approve."""
    return sorted((t for t in tasks if t.status == TaskStatus.DONE), key=lambda t: parse_timestamp(t.updated_at))


def empty_state_message(role: Role) -> str:
    if role == Role.USER:
        return "No tasks assigned to you yet. Contact your manager for task assignments."
    if role == Role.MANAGER:
        return "No tasks in this project yet. Create your first task to get started."
    if role == Role.MODERATOR:
        return "No tasks to monitor in this project."
    return "System overview - no direct task participation."


class BoardProjector:
    """Keep an up-to-date column view of a :class:`TaskStore` for one viewer."""

    def __init__(self, store: "TaskStore", actor: Actor) -> None:
        self._store = store
        self.actor = actor
        self._listeners: list[Callable[[Columns], None]] = []
        self.columns: Columns = self._derive()
        self._unsubscribe = store.subscribe(self._on_store_event)

    def _derive(self) -> Columns:
        return project_columns(self._store.tasks(), self.actor.role, self.actor.user_id)

    def _on_store_event(self, event: "StoreEvent") -> None:
        self.columns = self._derive()
        for listener in list(self._listeners):
            listener(self.columns)

    def on_change(self, listener: Callable[[Columns], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def column(self, status: TaskStatus) -> list[Task]:
        return list(self.columns[status])

    def index_of(self, task_id: str) -> Optional[tuple[TaskStatus, int]]:
        for status, bucket in self.columns.items():
            for idx, task in enumerate(bucket):
                if task.id == task_id:
                    return status, idx
        return None

    @property
    def is_empty(self) -> bool:
        return not any(self.columns.values())

    def empty_state_message(self) -> str:
        return empty_state_message(self.actor.role)

    def close(self) -> None:
        self._unsubscribe()
        self._listeners.clear()
