"""Optimistic task store.

The store is the single in-memory owner of a board's tasks.  Every mutation
goes through one method per operation so the no-op guard and the
snapshot/rollback bookkeeping cannot be bypassed:

* :meth:`TaskStore.apply_status_change` applies the new status locally,
  notifies subscribers, then confirms with the remote service and rolls back
  on failure;
* :meth:`TaskStore.apply_reorder` is a local-only reorder within a column;
* :meth:`TaskStore.refetch` replaces the whole board from the remote service.

Subscribers receive a :class:`StoreEvent` after each change.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from loguru import logger

from .errors import NotFoundError, TaskWorkflowError, UnauthorizedError, ValidationError
from .model import Actor, Task, TaskStatus
from .notifications import NotificationManager
from .projector import array_move, project_columns
from .remote.base import RemoteTaskService


# Store event kinds
APPLIED = "applied"
CONFIRMED = "confirmed"
ROLLED_BACK = "rolled_back"
REORDERED = "reordered"
REFETCHED = "refetched"


@dataclass(frozen=True)
class StoreEvent:
    kind: str
    task_id: Optional[str] = None
    status: Optional[TaskStatus] = None
    error: Optional[BaseException] = None


Listener = Callable[[StoreEvent], None]


@dataclass
class OptimisticEdit:
    """A local status change waiting for the remote service.

    ``previous_snapshot`` is the last confirmed state and is what a failure
    restores.  A second change on the same task while one is in flight
    overwrites ``applied_snapshot`` and bumps ``generation``.
    """

    task_id: str
    previous_snapshot: Task
    applied_snapshot: Task
    remote_call_in_flight: bool = True
    generation: int = 1


class TaskStore:
    """In-memory board state with optimistic status changes.

    Parameters
    ----------
    remote:
        Authoritative task service.
    actor:
        The signed-in viewer; used for column projection and messages.
    notifier:
        Receives one notification per committed status change.
    """

    def __init__(
        self,
        remote: RemoteTaskService,
        actor: Actor,
        notifier: Optional[NotificationManager] = None,
        tasks: Optional[Iterable[Task]] = None,
        project_id: Optional[str] = None,
    ) -> None:
        self._remote = remote
        self.actor = actor
        self.notifier = notifier or NotificationManager()
        self.project_id = project_id
        self._tasks: dict[str, Task] = {}
        self._edits: dict[str, OptimisticEdit] = {}
        self._listeners: list[Listener] = []
        if tasks is not None:
            self._tasks = {t.id: t for t in tasks}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def tasks(self) -> list[Task]:
        return list(self._tasks.values())

    def get(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    def require(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found", task_id=task_id)
        return task

    def pending_edit(self, task_id: str) -> Optional[OptimisticEdit]:
        return self._edits.get(task_id)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener* for store events; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _publish(self, event: StoreEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Store listener failed on {} for {}", event.kind, event.task_id)

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    def _append_position(self, status: TaskStatus, exclude: str) -> float:
        positions = [t.position for t in self._tasks.values() if t.status == status and t.id != exclude]
        return max(positions, default=-1) + 1

    def apply_status_change(self, task_id: str, new_status: TaskStatus | str) -> "asyncio.Future[Task]":
        """Move a task to *new_status* optimistically.

        The local change and the subscriber notification happen before this
        method returns; the returned future resolves with the server's task,
        or raises the remote failure after the previous state was restored.
        Must be called from within a running event loop.
        """
        loop = asyncio.get_running_loop()
        try:
            target = TaskStatus(new_status)
        except ValueError:
            raise ValidationError(f"Unknown status {new_status!r}", task_id=task_id) from None

        task = self.require(task_id)
        if task.status == target:
            unchanged: asyncio.Future[Task] = loop.create_future()
            unchanged.set_result(task)
            return unchanged
        if task.is_terminal:
            raise ValidationError(f"Task {task_id} is completed and cannot move", task_id=task_id)

        from_status = task.status
        applied = task.snapshot()
        applied.status = target
        applied.position = self._append_position(target, exclude=task_id)

        edit = self._edits.get(task_id)
        if edit is None:
            edit = OptimisticEdit(task_id=task_id, previous_snapshot=task.snapshot(), applied_snapshot=applied)
            self._edits[task_id] = edit
        else:
            # Last intent wins; the confirmed baseline stays.
            edit.applied_snapshot = applied
            edit.generation += 1
            edit.remote_call_in_flight = True
        generation = edit.generation

        self._tasks[task_id] = applied
        logger.debug("Optimistic move {}: {} -> {}", task_id, from_status.value, target.value)
        self._publish(StoreEvent(APPLIED, task_id, target))

        future = loop.create_task(self._commit(task_id, from_status, target, generation))
        future.add_done_callback(_mark_retrieved)
        return future

    def approve(self, task_id: str) -> "asyncio.Future[Task]":
        """Manager approval: move a ``DONE`` task to ``COMPLETED``."""
        task = self.require(task_id)
        if task.status != TaskStatus.DONE:
            raise ValidationError("Task must be in DONE status to be approved", task_id=task_id)
        return self.apply_status_change(task_id, TaskStatus.COMPLETED)

    async def _commit(
        self,
        task_id: str,
        from_status: TaskStatus,
        target: TaskStatus,
        generation: int,
    ) -> Task:
        try:
            confirmed = await self._remote.update_status(task_id, target)
        except Exception as exc:
            self._rollback(task_id, generation, target, exc)
            raise

        edit = self._edits.get(task_id)
        if edit is not None and edit.generation != generation:
            # A newer move is still in flight; it owns the visible state.
            edit.previous_snapshot = confirmed.snapshot()
        else:
            self._edits.pop(task_id, None)
            self._tasks[task_id] = confirmed
            self._publish(StoreEvent(CONFIRMED, task_id, confirmed.status))
        logger.info("Task {} moved {} -> {}", task_id, from_status.value, target.value)
        self.notifier.notify_status_changed(confirmed, from_status, target, self.actor.role)
        return confirmed

    def _rollback(self, task_id: str, generation: int, target: TaskStatus, exc: Exception) -> None:
        edit = self._edits.get(task_id)
        if edit is not None and edit.generation == generation:
            del self._edits[task_id]
            if task_id in self._tasks:
                self._tasks[task_id] = edit.previous_snapshot
            logger.warning("Rolled back {} after failed move to {}: {}", task_id, target.value, exc)
            self._publish(StoreEvent(ROLLED_BACK, task_id, edit.previous_snapshot.status, exc))
        else:
            logger.warning("Superseded move of {} to {} failed: {}", task_id, target.value, exc)

        if isinstance(exc, UnauthorizedError):
            self.notifier.notify_permission_denied(task_id, target)
        elif isinstance(exc, TaskWorkflowError):
            self.notifier.notify_failure(exc, task_id)
        else:
            self.notifier.notify_failure(TaskWorkflowError(str(exc), task_id=task_id), task_id)

    # ------------------------------------------------------------------
    # Reorder (local only)
    # ------------------------------------------------------------------

    def apply_reorder(self, task_id: str, column_status: TaskStatus | str, new_index: int) -> None:
        """Move a task to *new_index* within its column as this viewer sees it.

        Positions of the projected column are renumbered from zero.  Nothing
        is sent to the remote service, so the order does not survive a
        refetch.
        """
        task = self.require(task_id)
        status = TaskStatus(column_status)
        if task.status != status:
            raise ValidationError(
                f"Task {task_id} is in {task.status.value}, not {status.value}", task_id=task_id
            )
        if task.is_terminal:
            raise ValidationError(f"Task {task_id} is completed and cannot be reordered", task_id=task_id)

        column = project_columns(self._tasks.values(), self.actor.role, self.actor.user_id)[status]
        ids = [t.id for t in column]
        if task_id not in ids:
            raise NotFoundError(f"Task {task_id} is not on this board", task_id=task_id)
        if not 0 <= new_index < len(ids):
            raise ValidationError(f"Index {new_index} out of range for {status.value}", task_id=task_id)

        old_index = ids.index(task_id)
        if old_index == new_index:
            return
        for position, moved in enumerate(array_move(column, old_index, new_index)):
            moved.position = position
        logger.info("Reordered {} in {}: {} -> {}", task_id, status.value, old_index, new_index)
        self._publish(StoreEvent(REORDERED, task_id, status))

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self, tasks: Iterable[Task], project_id: Optional[str] = None) -> None:
        """Replace the board with *tasks* (already authoritative)."""
        self._tasks = {t.id: t for t in tasks}
        # In-flight calls still resolve, but there is nothing left to restore.
        self._edits.clear()
        if project_id is not None:
            self.project_id = project_id
        self._publish(StoreEvent(REFETCHED))

    async def refetch(self, project_id: Optional[str] = None) -> None:
        project_id = project_id or self.project_id
        if not project_id:
            raise ValidationError("A project id is required to refetch tasks")
        tasks = await self._remote.list_tasks(project_id)
        logger.debug("Refetched {} tasks for project {}", len(tasks), project_id)
        self.load(tasks, project_id=project_id)


def _mark_retrieved(future: "asyncio.Future[Task]") -> None:
    # Failures are already surfaced through events and notifications; awaiting
    # callers still receive the exception.
    if not future.cancelled():
        future.exception()
