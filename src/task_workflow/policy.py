"""Role-gated transition policy for the status pipeline.

Every permission check on a task move goes through :func:`can_transition`.
The server re-validates with the same rules, so this is a UX guard and not a
trust boundary.
"""

from __future__ import annotations

from .errors import UnauthorizedError
from .model import Actor, Role, Task, TaskStatus


# ---------------------------------------------------------------------------
# Pipeline edges
# ---------------------------------------------------------------------------

_PIPELINE_EDGES: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.DONE}),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.PENDING, TaskStatus.DONE}),
    TaskStatus.DONE: frozenset({TaskStatus.PENDING, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED}),
    TaskStatus.COMPLETED: frozenset(),  # terminal
}

# Assignees work the board without the approval gate.
_USER_EDGES: dict[TaskStatus, frozenset[TaskStatus]] = {
    status: targets - {TaskStatus.COMPLETED} for status, targets in _PIPELINE_EDGES.items()
}

APPROVAL_EDGE = (TaskStatus.DONE, TaskStatus.COMPLETED)


def is_approval(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    return (from_status, to_status) == APPROVAL_EDGE


def can_transition(
    role: Role,
    is_assignee: bool,
    from_status: TaskStatus,
    to_status: TaskStatus,
) -> bool:
    """Return whether *role* may move a task from *from_status* to *to_status*.

    Same-status moves are always legal and mean "do nothing"; callers must
    short-circuit them before issuing any remote mutation.
    """
    if from_status == to_status:
        return True
    if role == Role.USER:
        return is_assignee and to_status in _USER_EDGES[from_status]
    if role == Role.MANAGER:
        return to_status in _PIPELINE_EDGES[from_status]
    # Moderators monitor and admins oversee; neither moves tasks.
    return False


def allowed_targets(role: Role, is_assignee: bool, from_status: TaskStatus) -> set[TaskStatus]:
    """Statuses a drag may legally end in, including staying put."""
    return {s for s in TaskStatus if can_transition(role, is_assignee, from_status, s)}


def can_move(actor: Actor, task: Task, to_status: TaskStatus) -> bool:
    return can_transition(actor.role, actor.owns(task), task.status, to_status)


def check_transition(actor: Actor, task: Task, to_status: TaskStatus) -> None:
    """Raise :class:`UnauthorizedError` when *actor* may not make the move."""
    if not can_move(actor, task, to_status):
        raise UnauthorizedError(
            f"{actor.role.value} {actor.user_id} may not move {task.id} "
            f"from {task.status.value} to {to_status.value}",
            target_status=to_status,
            task_id=task.id,
        )
