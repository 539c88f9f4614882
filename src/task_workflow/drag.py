"""Drag session: one pointer-down to pointer-up gesture on the board.

The session owns the active gesture, asks the pointer resolver for the
candidate target on every move, and on release turns the top collision into
an intent:

* column other than the task's own → status change;
* card in the same column → local reorder;
* card in another column → status change to that column (appended);
* nothing under the pointer → cancelled.

Status changes are checked against the transition policy first and then
handed to the task store without waiting for the remote call.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

from loguru import logger

from .config import get_resolver_config
from .errors import TaskWorkflowError
from .geometry import Point, Rect
from .model import Actor, Task, TaskStatus
from .policy import can_move
from .projector import project_columns
from .resolver import Collision, DropTarget, PointerResolver
from .store import TaskStore


class DragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    RESOLVING = "resolving"


# Drop outcome reasons
CANCELLED = "cancelled"
NO_OP = "no_op"
DENIED = "denied"
DISPATCHED = "dispatched"
REORDERED = "reordered"
FAILED = "failed"


@dataclass
class DragGesture:
    active_task_id: str
    pointer: Point
    candidate_target_id: Optional[str] = None


@dataclass(frozen=True)
class StatusChangeIntent:
    task_id: str
    from_status: TaskStatus
    to_status: TaskStatus


@dataclass(frozen=True)
class ReorderIntent:
    task_id: str
    status: TaskStatus
    from_index: int
    to_index: int


Intent = Union[StatusChangeIntent, ReorderIntent]


@dataclass(frozen=True)
class DropOutcome:
    """What a release produced.

    ``future`` is the store's pending status change, for callers that want
    to observe it; the session itself never awaits it.
    """

    reason: str
    intent: Optional[Intent] = None
    future: Optional["asyncio.Future[Task]"] = None
    error: Optional[TaskWorkflowError] = None

    @property
    def denied(self) -> bool:
        return self.reason == DENIED


class DragSession:
    """Turn pointer gestures into store intents.

    Parameters
    ----------
    store:
        The task store intents are handed to.
    resolver:
        Collision resolver; defaults to the standard tiers.

    The person dragging is always the store's viewer, so policy checks and
    reorder indices use the same column projection as the store.
    """

    def __init__(
        self,
        store: TaskStore,
        resolver: Optional[PointerResolver] = None,
    ) -> None:
        self.store = store
        self.resolver = resolver or PointerResolver()
        self.state = DragState.IDLE
        self.gesture: Optional[DragGesture] = None
        self._targets: dict[str, DropTarget] = {}
        self._candidate_listeners: list[Callable[[Optional[Collision]], None]] = []

    @classmethod
    def from_config(cls, store: TaskStore, config: dict) -> "DragSession":
        """Build a session whose resolver uses the `resolver` block of *config*."""
        return cls(store, resolver=PointerResolver.from_config(get_resolver_config(config)))

    @property
    def actor(self) -> Actor:
        return self.store.actor

    # ------------------------------------------------------------------
    # Target registration
    # ------------------------------------------------------------------

    def register_column(self, status: TaskStatus, rect: Rect) -> None:
        target = DropTarget.column(status, rect)
        self._targets[target.id] = target

    def register_task(self, task: Task, rect: Rect) -> None:
        """Register a card as both draggable and drop target.

        Completed cards are not registered at all, so they can never be
        picked up.
        """
        if task.is_terminal:
            return
        self._targets[task.id] = DropTarget.task(task.id, rect)

    def unregister(self, target_id: str) -> None:
        self._targets.pop(target_id, None)

    def clear_targets(self) -> None:
        self._targets.clear()

    @property
    def targets(self) -> list[DropTarget]:
        return list(self._targets.values())

    def on_candidate(self, listener: Callable[[Optional[Collision]], None]) -> None:
        """Call *listener* whenever the highlighted candidate is recomputed."""
        self._candidate_listeners.append(listener)

    # ------------------------------------------------------------------
    # State helpers
    # ------------------------------------------------------------------

    def _set_state(self, state: DragState) -> None:
        logger.debug("Drag session {} -> {}", self.state.value, state.value)
        self.state = state

    def _reset(self) -> None:
        self.gesture = None
        self._set_state(DragState.IDLE)

    def _update_candidate(self) -> Optional[Collision]:
        if self.gesture is None:
            return None
        top = self.resolver.top(self.gesture.pointer, self.targets)
        self.gesture.candidate_target_id = top.id if top else None
        for listener in list(self._candidate_listeners):
            listener(top)
        return top

    # ------------------------------------------------------------------
    # Gesture
    # ------------------------------------------------------------------

    def pick_up(self, task_id: str, pointer: Point) -> bool:
        """Start dragging *task_id*; returns False when pickup is refused."""
        if self.state != DragState.IDLE:
            logger.debug("Pickup of {} ignored; session is {}", task_id, self.state.value)
            return False
        task = self.store.get(task_id)
        if task_id not in self._targets or task is None or task.is_terminal:
            logger.debug("Pickup of {} refused", task_id)
            return False
        self.gesture = DragGesture(active_task_id=task_id, pointer=pointer)
        self._set_state(DragState.DRAGGING)
        self._update_candidate()
        return True

    def move(self, pointer: Point) -> Optional[Collision]:
        if self.state != DragState.DRAGGING or self.gesture is None:
            return None
        self.gesture.pointer = pointer
        return self._update_candidate()

    def cancel(self) -> None:
        if self.state != DragState.IDLE:
            self._reset()

    def release(self, pointer: Optional[Point] = None) -> DropOutcome:
        """End the gesture and dispatch whatever intent the drop means."""
        if self.state != DragState.DRAGGING or self.gesture is None:
            return DropOutcome(CANCELLED)
        if pointer is not None:
            self.gesture.pointer = pointer
        gesture = self.gesture
        self._set_state(DragState.RESOLVING)
        try:
            return self._resolve_drop(gesture)
        finally:
            self._reset()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _resolve_drop(self, gesture: DragGesture) -> DropOutcome:
        top = self.resolver.top(gesture.pointer, self.targets)
        task = self.store.get(gesture.active_task_id)
        if top is None or task is None:
            logger.debug("No valid drop target for {}", gesture.active_task_id)
            return DropOutcome(CANCELLED)

        if top.is_column:
            target_status = TaskStatus(top.id)
            if target_status == task.status:
                return DropOutcome(NO_OP)
            return self._dispatch_status_change(task, target_status)

        over = self.store.get(top.id)
        if over is None:
            return DropOutcome(CANCELLED)
        if over.id == task.id:
            return DropOutcome(NO_OP)
        if over.status == task.status:
            return self._dispatch_reorder(task, over)
        return self._dispatch_status_change(task, over.status)

    def _dispatch_status_change(self, task: Task, target: TaskStatus) -> DropOutcome:
        intent = StatusChangeIntent(task.id, task.status, target)
        if not can_move(self.actor, task, target):
            logger.warning(
                "{} {} may not move {} from {} to {}",
                self.actor.role.value, self.actor.user_id, task.id, task.status.value, target.value,
            )
            self.store.notifier.notify_permission_denied(task.id, target)
            return DropOutcome(DENIED, intent)
        try:
            future = self.store.apply_status_change(task.id, target)
        except TaskWorkflowError as exc:
            self.store.notifier.notify_failure(exc, task.id)
            return DropOutcome(FAILED, intent, error=exc)
        return DropOutcome(DISPATCHED, intent, future=future)

    def _dispatch_reorder(self, task: Task, over: Task) -> DropOutcome:
        column = project_columns(self.store.tasks(), self.actor.role, self.actor.user_id)[task.status]
        ids = [t.id for t in column]
        if task.id not in ids or over.id not in ids:
            return DropOutcome(CANCELLED)
        old_index, new_index = ids.index(task.id), ids.index(over.id)
        if old_index == new_index:
            return DropOutcome(NO_OP)
        intent = ReorderIntent(task.id, task.status, old_index, new_index)
        try:
            self.store.apply_reorder(task.id, task.status, new_index)
        except TaskWorkflowError as exc:
            self.store.notifier.notify_failure(exc, task.id)
            return DropOutcome(FAILED, intent, error=exc)
        return DropOutcome(REORDERED, intent)
