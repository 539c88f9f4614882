"""Task model for the workflow engine.

This module defines the board task, its status pipeline and priorities, and
the roles that determine who may move a task.  Tasks stay fully serializable
to YAML / JSON so the same record travels between the local store, the file
service and the REST collaborator.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class TaskStatus(str, Enum):
    """Board-level status, one Kanban column each."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    COMPLETED = "COMPLETED"

    @property
    def is_terminal(self) -> bool:
        return self is TaskStatus.COMPLETED


# Column order on the board.
PIPELINE: tuple[TaskStatus, ...] = (
    TaskStatus.PENDING,
    TaskStatus.IN_PROGRESS,
    TaskStatus.DONE,
    TaskStatus.COMPLETED,
)


class TaskPriority(str, Enum):
    """Priority level."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    @property
    def sort_key(self) -> int:
        return {"HIGH": 0, "MEDIUM": 1, "LOW": 2}[self.value]


class Role(str, Enum):
    """Account role of the person looking at the board."""

    USER = "USER"
    MANAGER = "MANAGER"
    MODERATOR = "MODERATOR"
    ADMIN = "ADMIN"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def parse_timestamp(value: Optional[str]) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` or offset form) to an aware datetime.

    Naive values are taken as UTC; unparseable ones sort first.
    """
    if not value:
        return _EPOCH
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _generate_id() -> str:
    """Short human-friendly task ID: ``task-<8hex>``."""
    return f"task-{uuid.uuid4().hex[:8]}"


# Wire payloads from the REST backend use camelCase keys.
_WIRE_ALIASES = {
    "assigneeId": "assignee_id",
    "projectId": "project_id",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "completedAt": "completed_at",
}


@dataclass(frozen=True)
class Actor:
    """The signed-in viewer: who is dragging, and with which role."""

    user_id: str
    role: Role

    def owns(self, task: "Task") -> bool:
        return task.assignee_id is not None and task.assignee_id == self.user_id


# ---------------------------------------------------------------------------
# Task dataclass
# ---------------------------------------------------------------------------

@dataclass
class Task:
    """A card on the project board.

    ``position`` orders a task inside its status column only; it is not
    unique across the board.  A ``COMPLETED`` task is terminal: neither its
    status nor its position changes again.
    """

    id: str = field(default_factory=_generate_id)
    title: str = ""
    description: str = ""

    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM

    assignee_id: Optional[str] = None
    project_id: Optional[str] = None
    position: float = 0

    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)
    completed_at: Optional[str] = None

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict for YAML/JSON persistence."""
        data: dict[str, Any] = {}
        for k, v in asdict(self).items():
            if isinstance(v, Enum):
                data[k] = v.value
            else:
                data[k] = v
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        """Deserialize from a plain dict, accepting camelCase wire keys."""
        d = {_WIRE_ALIASES.get(k, k): v for k, v in data.items()}

        def _enum(enum_cls: type[Enum], key: str, default: Enum) -> Enum:
            raw = d.pop(key, None)
            if raw is None:
                return default
            if isinstance(raw, enum_cls):
                return raw
            try:
                return enum_cls(str(raw).upper())
            except (ValueError, KeyError):
                return default

        status = _enum(TaskStatus, "status", TaskStatus.PENDING)
        priority = _enum(TaskPriority, "priority", TaskPriority.MEDIUM)
        assignee = d.pop("assignee_id", None)
        project = d.pop("project_id", None)

        return cls(
            id=str(d.pop("id", None) or _generate_id()),
            title=str(d.pop("title", "") or ""),
            description=str(d.pop("description", "") or ""),
            status=status,  # type: ignore[arg-type]
            priority=priority,  # type: ignore[arg-type]
            assignee_id=str(assignee) if assignee is not None else None,
            project_id=str(project) if project is not None else None,
            position=d.pop("position", 0) or 0,
            created_at=str(d.pop("created_at", None) or now_iso()),
            updated_at=str(d.pop("updated_at", None) or now_iso()),
            completed_at=d.pop("completed_at", None),
        )

    def snapshot(self) -> "Task":
        """Independent copy used for optimistic edits and rollback."""
        return copy.deepcopy(self)

    # ------------------------------------------------------------------
    # Status helpers
    # ------------------------------------------------------------------

    def touch(self) -> None:
        """Bump ``updated_at`` to now."""
        self.updated_at = now_iso()

    def transition(self, new_status: TaskStatus) -> None:
        """Move to *new_status* with timestamp bookkeeping."""
        self.status = new_status
        if new_status == TaskStatus.COMPLETED:
            self.completed_at = now_iso()
        self.touch()

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal
