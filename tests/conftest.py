from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from task_workflow.model import Actor, Role, Task, TaskStatus
from task_workflow.notifications import Notification, NotificationManager
from task_workflow.remote.memory import InMemoryTaskService


class RecordingService(InMemoryTaskService):
    """In-memory service that records calls and can fail or hold them."""

    def __init__(self, actor: Actor, tasks=None) -> None:
        super().__init__(actor, tasks)
        self.calls: list[tuple[str, TaskStatus]] = []
        self.fail_with: Optional[Exception] = None
        self.fail_on: dict[TaskStatus, Exception] = {}
        self.gate: Optional[asyncio.Event] = None

    async def update_status(self, task_id: str, new_status: TaskStatus) -> Task:
        self.calls.append((task_id, new_status))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        if new_status in self.fail_on:
            raise self.fail_on[new_status]
        return await super().update_status(task_id, new_status)


class RecordingSink:
    def __init__(self) -> None:
        self.notes: list[Notification] = []

    def __call__(self, note: Notification) -> None:
        self.notes.append(note)

    def kinds(self) -> list[str]:
        return [n.kind for n in self.notes]


def make_task(
    task_id: str,
    status: TaskStatus = TaskStatus.PENDING,
    assignee_id: Optional[str] = "u1",
    position: float = 0,
    created_at: str = "2025-09-15T00:00:00+00:00",
    project_id: str = "proj1",
) -> Task:
    return Task(
        id=task_id,
        title=f"Task {task_id}",
        status=status,
        assignee_id=assignee_id,
        project_id=project_id,
        position=position,
        created_at=created_at,
        updated_at=created_at,
    )


@pytest.fixture
def user() -> Actor:
    return Actor(user_id="u1", role=Role.USER)


@pytest.fixture
def manager() -> Actor:
    return Actor(user_id="m1", role=Role.MANAGER)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def notifier(sink: RecordingSink) -> NotificationManager:
    return NotificationManager(sink=sink)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"
