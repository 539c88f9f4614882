"""Provide the public `task_workflow` package exports."""

from __future__ import annotations

from .drag import DragSession, DragState, DropOutcome, ReorderIntent, StatusChangeIntent
from .errors import NetworkError, NotFoundError, TaskWorkflowError, UnauthorizedError, ValidationError
from .model import Actor, Role, Task, TaskPriority, TaskStatus
from .policy import can_transition
from .projector import BoardProjector, project_columns
from .resolver import DropTarget, PointerResolver
from .store import TaskStore

__all__ = [
    "Actor",
    "BoardProjector",
    "DragSession",
    "DragState",
    "DropOutcome",
    "DropTarget",
    "NetworkError",
    "NotFoundError",
    "PointerResolver",
    "ReorderIntent",
    "Role",
    "StatusChangeIntent",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "TaskStore",
    "TaskWorkflowError",
    "UnauthorizedError",
    "ValidationError",
    "can_transition",
    "project_columns",
]
