"""YAML-file-backed task service.

Stores a board in a single YAML file (``tasks.yaml``) inside the project's
``.taskflow/`` directory.  Every call acquires an exclusive file lock, so
separate CLI invocations see each other's moves.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator

from loguru import logger

from ..constants import TASKS_FILE, TASKS_LOCK_FILE
from ..errors import ValidationError
from ..io_utils import FileLock, _atomic_write_yaml, _load_data_with_error
from ..model import Actor, Task, TaskStatus
from .memory import apply_server_move


def _load_raw(path: Path) -> list[dict[str, Any]]:
    """Load the raw task list from *path*, returning ``[]`` if missing."""
    data, err = _load_data_with_error(path, {})
    if err:
        raise ValidationError(f"Cannot read task file: {err}")
    tasks = data.get("tasks", [])
    return list(tasks) if isinstance(tasks, list) else []


class FileTaskService:
    """Authoritative task service persisted to YAML.

    Parameters
    ----------
    state_dir:
        Path to the ``.taskflow/`` directory for the project.
    actor:
        The caller every move is validated against.
    """

    def __init__(self, state_dir: Path, actor: Actor) -> None:
        self.actor = actor
        self._store_path = state_dir / TASKS_FILE
        self._lock = FileLock(state_dir / TASKS_LOCK_FILE)

    @property
    def path(self) -> Path:
        return self._store_path

    @contextmanager
    def _transaction(self) -> Iterator[dict[str, Task]]:
        """Acquire the lock, load tasks, yield them by id, and save on exit."""
        with self._lock:
            tasks = {t.id: t for t in (Task.from_dict(d) for d in _load_raw(self._store_path))}
            yield tasks
            _atomic_write_yaml(
                self._store_path,
                {"version": 1, "tasks": [t.to_dict() for t in tasks.values()]},
            )

    def seed(self, tasks: Iterable[Task]) -> None:
        """Add *tasks* to the file, replacing any with the same id."""
        with self._transaction() as current:
            for task in tasks:
                current[task.id] = task

    def read_snapshot(self) -> list[Task]:
        with self._lock:
            return [Task.from_dict(d) for d in _load_raw(self._store_path)]

    async def update_status(self, task_id: str, new_status: TaskStatus) -> Task:
        with self._transaction() as tasks:
            updated = apply_server_move(tasks, self.actor, task_id, new_status)
        logger.debug("Persisted {} as {} in {}", task_id, updated.status.value, self._store_path)
        return updated

    async def list_tasks(self, project_id: str) -> list[Task]:
        return [t for t in self.read_snapshot() if t.project_id == project_id]
