from __future__ import annotations

from task_workflow.model import PIPELINE, Actor, Role, TaskStatus
from task_workflow.projector import (
    BoardProjector,
    array_move,
    awaiting_approval,
    column_counts,
    column_title,
    empty_state_message,
    project_columns,
)
from task_workflow.store import TaskStore

from conftest import RecordingService, make_task


def _tasks():
    return [
        make_task("mine-late", TaskStatus.PENDING, assignee_id="u1", position=2),
        make_task("mine-early", TaskStatus.PENDING, assignee_id="u1", position=1),
        make_task("theirs", TaskStatus.PENDING, assignee_id="u2", position=0),
        make_task("unassigned", TaskStatus.IN_PROGRESS, assignee_id=None),
        make_task("review", TaskStatus.DONE, assignee_id="u2"),
        make_task("closed", TaskStatus.COMPLETED, assignee_id="u1"),
    ]


class TestProjectColumns:
    def test_always_four_columns_in_pipeline_order(self) -> None:
        columns = project_columns([], Role.MANAGER, "m1")
        assert list(columns) == list(PIPELINE)
        assert all(bucket == [] for bucket in columns.values())

    def test_user_sees_only_assigned_tasks(self) -> None:
        columns = project_columns(_tasks(), Role.USER, "u1")
        assert [t.id for t in columns[TaskStatus.PENDING]] == ["mine-early", "mine-late"]
        assert columns[TaskStatus.IN_PROGRESS] == []
        assert columns[TaskStatus.DONE] == []
        assert [t.id for t in columns[TaskStatus.COMPLETED]] == ["closed"]

    def test_user_without_id_sees_nothing(self) -> None:
        columns = project_columns(_tasks(), Role.USER, None)
        assert not any(columns.values())

    def test_manager_sees_everything_sorted(self) -> None:
        columns = project_columns(_tasks(), Role.MANAGER, "m1")
        assert [t.id for t in columns[TaskStatus.PENDING]] == ["theirs", "mine-early", "mine-late"]
        assert column_counts(columns) == {
            TaskStatus.PENDING: 3,
            TaskStatus.IN_PROGRESS: 1,
            TaskStatus.DONE: 1,
            TaskStatus.COMPLETED: 1,
        }

    def test_ties_broken_by_creation_time(self) -> None:
        tasks = [
            make_task("newer", position=0, created_at="2025-09-16T00:00:00+00:00"),
            make_task("older", position=0, created_at="2025-09-14T00:00:00+00:00"),
        ]
        bucket = project_columns(tasks, Role.ADMIN, "a1")[TaskStatus.PENDING]
        assert [t.id for t in bucket] == ["older", "newer"]

    def test_tie_break_compares_times_not_strings(self) -> None:
        # "Z" and "+00:00" suffixes sort differently as text.
        tasks = [
            make_task("local", position=0, created_at="2025-09-15T09:00:00.500+00:00"),
            make_task("wire", position=0, created_at="2025-09-15T09:00:00Z"),
        ]
        bucket = project_columns(tasks, Role.MANAGER, "m1")[TaskStatus.PENDING]
        assert [t.id for t in bucket] == ["wire", "local"]

    def test_projection_does_not_mutate(self) -> None:
        tasks = _tasks()
        before = [t.to_dict() for t in tasks]
        project_columns(tasks, Role.MODERATOR, "mod1")
        assert [t.to_dict() for t in tasks] == before


def test_array_move() -> None:
    items = ["a", "b", "c", "d"]
    assert array_move(items, 3, 0) == ["d", "a", "b", "c"]
    assert array_move(items, 0, 2) == ["b", "c", "a", "d"]
    assert items == ["a", "b", "c", "d"]


def test_column_titles() -> None:
    assert [column_title(s) for s in PIPELINE] == ["To Do", "In Progress", "Done", "Completed"]


def test_awaiting_approval() -> None:
    assert [t.id for t in awaiting_approval(_tasks())] == ["review"]


def test_empty_state_messages_differ_by_role() -> None:
    messages = {empty_state_message(role) for role in Role}
    assert len(messages) == 4
    assert "Contact your manager" in empty_state_message(Role.USER)


class TestBoardProjector:
    def test_follows_store_changes(self, user: Actor) -> None:
        tasks = [make_task("a", position=0), make_task("b", position=1)]
        store = TaskStore(RecordingService(user, tasks), user, tasks=tasks)
        projector = BoardProjector(store, user)
        updates = []
        projector.on_change(updates.append)

        store.apply_reorder("b", TaskStatus.PENDING, 0)

        assert [t.id for t in projector.column(TaskStatus.PENDING)] == ["b", "a"]
        assert projector.index_of("a") == (TaskStatus.PENDING, 1)
        assert len(updates) == 1

    def test_empty_board(self, manager: Actor) -> None:
        store = TaskStore(RecordingService(manager), manager)
        projector = BoardProjector(store, manager)
        assert projector.is_empty
        assert projector.index_of("x") is None
        assert projector.empty_state_message() == empty_state_message(Role.MANAGER)

    def test_close_stops_updates(self, user: Actor) -> None:
        tasks = [make_task("a", position=0), make_task("b", position=1)]
        store = TaskStore(RecordingService(user, tasks), user, tasks=tasks)
        projector = BoardProjector(store, user)
        projector.close()

        store.apply_reorder("b", TaskStatus.PENDING, 0)

        assert [t.id for t in projector.column(TaskStatus.PENDING)] == ["a", "b"]
