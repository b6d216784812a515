"""Command-line front end for the todo client.

Examples:

    todo-client list --filter pending
    todo-client add "Buy milk" --description "2 litres"
    todo-client toggle 3
    todo-client edit 3 --title "Buy oat milk"
    todo-client delete 3
    todo-client gui

Exit codes: 0 on success, 1 when the server operation failed (the reason
is printed to stderr), 2 for usage errors.
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from typing import List, Optional

from .config import Config
from .logs import setup_logging
from .models import FilterMode, Task, TaskId
from .state import apply_filter
from .store import TaskStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='todo-client', description='To-do list client for a /tasks REST API')
    parser.add_argument('--server-url', help='base URL of the API (overrides config)')
    parser.add_argument('--config', help='path of the JSON config file')
    parser.add_argument('--log-level', help='DEBUG, INFO, WARNING, ...')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('list', help='show tasks')
    p.add_argument('--filter', default='all', type=FilterMode.parse,
                   help='all, pending or finished')
    p.add_argument('--search', default=None, help='server-side search text')

    p = sub.add_parser('add', help='create a task')
    p.add_argument('title')
    p.add_argument('--description', '-d', default='')

    p = sub.add_parser('edit', help='change title and/or description of a task')
    p.add_argument('id')
    p.add_argument('--title', default=None)
    p.add_argument('--description', '-d', default=None)

    p = sub.add_parser('toggle', help='flip the completed flag of a task')
    p.add_argument('id')

    p = sub.add_parser('delete', help='delete a task')
    p.add_argument('id')

    sub.add_parser('gui', help='open the desktop window')
    return parser


def format_task(task: Task) -> str:
    mark = '[x]' if task.completed else '[ ]'
    line = f"{mark} {task.id}: {task.title}"
    if task.description:
        line += f" ({task.description})"
    return line


def _resolve_id(store: TaskStore, raw: str) -> Optional[TaskId]:
    """Map a command-line id to the id the server uses (ids are opaque)."""
    for task in store.state.tasks:
        if str(task.id) == raw:
            return task.id
    return None


def _report_failure(store: TaskStore) -> int:
    err = store.state.last_error
    print(f"error: {err}" if err else 'error: operation failed', file=sys.stderr)
    return 1


async def run_command(args: argparse.Namespace, store: TaskStore) -> int:
    if args.command == 'list':
        scope = args.filter if store.server_side_filter else None
        tasks = await store.fetch_all(scope, args.search)
        if store.state.last_error:
            return _report_failure(store)
        for task in apply_filter(tasks, args.filter):
            print(format_task(task))
        return 0

    if args.command == 'add':
        if not args.title.strip():
            print('error: title must not be empty', file=sys.stderr)
            return 2
        task = await store.create(args.title, args.description)
        if task is None:
            return _report_failure(store)
        print(format_task(task))
        return 0

    # the remaining commands work on an existing task, so load the list first
    await store.fetch_all()
    if store.state.last_error:
        return _report_failure(store)
    task_id = _resolve_id(store, args.id)

    if args.command == 'delete':
        ok = await store.delete(task_id if task_id is not None else args.id)
        if not ok:
            return _report_failure(store)
        print(f"deleted {args.id}")
        return 0

    if task_id is None:
        print(f"error: no task with id {args.id}", file=sys.stderr)
        return 1

    if args.command == 'toggle':
        task = await store.toggle_complete(task_id)
    elif args.command == 'edit':
        if args.title is None and args.description is None:
            print('error: nothing to change (use --title and/or --description)', file=sys.stderr)
            return 2
        if args.title is not None and not args.title.strip():
            print('error: title must not be empty', file=sys.stderr)
            return 2
        task = await store.update(task_id, title=args.title, description=args.description)
    else:
        raise ValueError(f"unknown command {args.command!r}")

    if task is None:
        return _report_failure(store)
    print(format_task(task))
    return 0


async def _run(args: argparse.Namespace, config: Config) -> int:
    store = TaskStore.from_config(config)
    try:
        return await run_command(args, store)
    finally:
        await store.aclose()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = Config(args.config)
    config.override(server_url=args.server_url, log_level=args.log_level)
    setup_logging(config.log_level, stream=sys.stderr)

    if args.command == 'gui':
        from .gui import run_gui
        run_gui(config)
        return 0
    return asyncio.run(_run(args, config))


if __name__ == '__main__':
    sys.exit(main())
