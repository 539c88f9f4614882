from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

import yaml
from loguru import logger
from rich.console import Console
from rich.table import Table

from .config import get_notifications_config, load_workflow_config, state_dir_for
from .errors import TaskWorkflowError, permission_denied_message
from .logging_utils import configure_logging, pretty, summarize_event
from .model import PIPELINE, Actor, Role, Task, TaskStatus
from .notifications import Notification, create_notification_manager
from .policy import can_move
from .projector import awaiting_approval, column_title, empty_state_message, project_columns
from .remote.file import FileTaskService
from .store import TaskStore


console = Console()
err_console = Console(stderr=True)


def _resolve_project_dir(project_dir: Optional[str]) -> Path:
    return Path(project_dir).expanduser().resolve() if project_dir else Path.cwd().resolve()


def _actor(args: argparse.Namespace) -> Actor:
    return Actor(user_id=args.user, role=Role(args.role))


def _service(args: argparse.Namespace, actor: Actor) -> FileTaskService:
    return FileTaskService(state_dir_for(_resolve_project_dir(args.project_dir)), actor)


def _print_notification(note: Notification) -> None:
    style = "red" if note.level == "error" else "green"
    err_console.print(f"[{style}]{note.title}[/{style}]: {note.message}")


def _build_store(args: argparse.Namespace, actor: Actor, service: FileTaskService) -> TaskStore:
    config, err = load_workflow_config(_resolve_project_dir(args.project_dir))
    if err:
        logger.warning("Ignoring workflow config: {}", err)
    notifier = create_notification_manager(
        {"notifications": get_notifications_config(config)}, sink=_print_notification
    )
    store = TaskStore(service, actor, notifier=notifier, tasks=service.read_snapshot())
    store.subscribe(lambda event: logger.debug("Store event: {}", summarize_event(event)))
    return store


def _import(args: argparse.Namespace) -> int:
    path = Path(args.path).expanduser()
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        sys.stderr.write(f"Cannot read {path}: {exc}\n")
        return 1
    items = raw.get("tasks", []) if isinstance(raw, dict) else raw
    if not isinstance(items, list):
        sys.stderr.write(f"{path}: expected a list of tasks\n")
        return 1
    tasks = [Task.from_dict(item) for item in items if isinstance(item, dict)]
    service = FileTaskService(state_dir_for(_resolve_project_dir(args.project_dir)), Actor("system", Role.ADMIN))
    service.seed(tasks)
    sys.stdout.write(pretty({"imported": len(tasks), "path": str(service.path)}) + "\n")
    return 0


def _board(args: argparse.Namespace) -> int:
    actor = _actor(args)
    tasks = _service(args, actor).read_snapshot()
    if args.project:
        tasks = [t for t in tasks if t.project_id == args.project]
    columns = project_columns(tasks, actor.role, actor.user_id)

    if not any(columns.values()):
        console.print(empty_state_message(actor.role))
        return 0

    table = Table(title=f"Project board ({actor.role.value.lower()} view)")
    for status in PIPELINE:
        table.add_column(f"{column_title(status)} ({len(columns[status])})")
    depth = max(len(bucket) for bucket in columns.values())
    for row in range(depth):
        cells = []
        for status in PIPELINE:
            bucket = columns[status]
            if row < len(bucket):
                task = bucket[row]
                cells.append(f"{task.title or task.id}\n[dim]{task.id} · {task.priority.value}[/dim]")
            else:
                cells.append("")
        table.add_row(*cells)
    console.print(table)

    if actor.role == Role.MANAGER:
        pending = awaiting_approval(t for bucket in columns.values() for t in bucket)
        console.print(f"{len(pending)} task(s) awaiting approval")
    return 0


async def _commit_move(store: TaskStore, task_id: str, status: TaskStatus, approve: bool) -> Task:
    if approve:
        return await store.approve(task_id)
    return await store.apply_status_change(task_id, status)


def _move(args: argparse.Namespace, *, approve: bool = False) -> int:
    actor = _actor(args)
    service = _service(args, actor)
    store = _build_store(args, actor, service)
    target = TaskStatus.COMPLETED if approve else TaskStatus(args.status)

    task = store.get(args.task_id)
    if task is None:
        sys.stderr.write(f"Task {args.task_id} not found\n")
        return 1
    if not approve and not can_move(actor, task, target):
        sys.stderr.write(permission_denied_message(target) + "\n")
        return 1

    try:
        updated = asyncio.run(_commit_move(store, args.task_id, target, approve))
    except TaskWorkflowError as exc:
        sys.stderr.write(exc.user_message + "\n")
        return 1
    sys.stdout.write(pretty({"task": updated.to_dict()}) + "\n")
    return 0


def _approve(args: argparse.Namespace) -> int:
    args.role = Role.MANAGER.value
    return _move(args, approve=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Task workflow board CLI")
    parser.add_argument('--project-dir', default=None, help='Project directory holding .taskflow/ (default: current working directory)')
    parser.add_argument('--log-level', default='WARNING', help='Log level (default: WARNING)')
    subparsers = parser.add_subparsers(dest='command', required=True)

    roles = [r.value for r in Role]
    statuses = [s.value for s in TaskStatus]

    imp = subparsers.add_parser('import', help='Load tasks from a YAML/JSON file into the board')
    imp.add_argument('path')
    imp.set_defaults(func=_import)

    board = subparsers.add_parser('board', help='Show the board as a given viewer sees it')
    board.add_argument('--role', required=True, choices=roles)
    board.add_argument('--user', required=True)
    board.add_argument('--project', default=None)
    board.set_defaults(func=_board)

    move = subparsers.add_parser('move', help='Move a task to another column')
    move.add_argument('task_id')
    move.add_argument('status', choices=statuses)
    move.add_argument('--role', required=True, choices=roles)
    move.add_argument('--user', required=True)
    move.set_defaults(func=_move)

    approve = subparsers.add_parser('approve', help='Approve a Done task as its manager')
    approve.add_argument('task_id')
    approve.add_argument('--user', required=True)
    approve.set_defaults(func=_approve)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    handler = getattr(args, 'func', None)
    if handler is None:
        parser.print_help()
        return 1
    return int(handler(args) or 0)


if __name__ == "__main__":
    raise SystemExit(main())
