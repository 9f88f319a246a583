"""
pb add / list / show / move / comment - Board CRUD.

None of these touch git or GitHub.
"""

import sys

from projectboard.commands.context import BoardContext
from projectboard.lib.errors import InvalidTransitionError
from projectboard.lib.timeline import format_timeline
from projectboard.storage.models import Task
from projectboard.workflow.fsm import LifecycleFSM


def _print_task_lines(task: Task, problems: list[str]) -> None:
    print(f"  #{task.id}: {task.title}")
    if task.description:
        print(f"      {task.description}")
    if task.branch_name:
        print(f"      Branch: {task.branch_name}")
    if task.pr_url:
        print(f"      PR: {task.pr_url}")
    for problem in problems:
        print(f"      WARNING: {problem}")


def cmd_add(args, ctx: BoardContext) -> int:
    task = ctx.orchestrator.add(args.title, description=args.description, assignee=args.assignee)
    print(f"Created task #{task.id}: {task.title}")
    if task.description:
        print(f"   Description: {task.description}")
    print(f"   Column: {task.column_name}")
    return 0


def cmd_list(args, ctx: BoardContext) -> int:
    columns = ctx.store.load_columns_ordered()
    if args.column:
        column = ctx.store.find_column(args.column)
        if column is None:
            names = ", ".join(c.name for c in columns)
            print(f"ERROR: Column '{args.column}' not found (columns: {names})", file=sys.stderr)
            return 1
        columns = [column]

    for column in columns:
        tasks = ctx.store.list_tasks(column.id)
        print(f"{column.name} ({len(tasks)} tasks)")
        if not tasks:
            print("  (no tasks)")
        for task in tasks:
            _print_task_lines(task, ctx.orchestrator.check_invariants(task))
        print()
    return 0


def cmd_show(args, ctx: BoardContext) -> int:
    """Show one task with comments, lifecycle options and history."""
    task = ctx.store.require_task(args.id)

    print(f"Task #{task.id}: {task.title}")
    print("=" * 60)
    print(f"Column:   {task.column_name}")
    if task.description:
        print(f"About:    {task.description}")
    if task.assignee:
        print(f"Assignee: {task.assignee}")
    print(f"Branch:   {task.branch_name or '-'}")
    print(f"PR:       {task.pr_url or '-'}")
    print(f"Created:  {task.created_at.astimezone():%Y-%m-%d %H:%M}")
    print(f"Updated:  {task.updated_at.astimezone():%Y-%m-%d %H:%M}")

    if task.branch_name:
        counts = ctx.orchestrator.vcs.ahead_behind(task.branch_name)
        if counts is None:
            print("Remote:   not pushed")
        else:
            ahead, behind = counts
            print(f"Remote:   {ahead} ahead, {behind} behind {ctx.config.remote}")

    try:
        fsm = LifecycleFSM([c.name for c in ctx.store.load_columns_ordered()], task.column_name, task.id)
        available = fsm.get_available_triggers()
    except InvalidTransitionError:
        available = []
    print(f"Next:     {', '.join(f'pb {t} {task.id}' for t in available) or '-'}")

    for problem in ctx.orchestrator.check_invariants(task):
        print(f"WARNING: {problem}")
    print()

    comments = ctx.store.list_comments(task.id)
    if comments:
        print("Comments")
        print("-" * 40)
        for comment in comments:
            print(f"  {comment.created_at.astimezone():%Y-%m-%d %H:%M} {comment.author}: {comment.text}")
        print()

    entries = ctx.store.list_activity(task_id=task.id, limit=20)
    if entries:
        print("History")
        print("-" * 40)
        for line in format_timeline(entries, colorize=False):
            print(f"  {line}")
    return 0


def cmd_move(args, ctx: BoardContext) -> int:
    before = ctx.store.require_task(args.id)
    task = ctx.orchestrator.move(args.id, args.column)
    if before.column_id == task.column_id:
        print(f"Task #{task.id} is already in {task.column_name}")
        return 0
    print(f"Moved task #{task.id}: {before.column_name} -> {task.column_name}")
    print(f"   {task.title}")
    for problem in ctx.orchestrator.check_invariants(task):
        print(f"   WARNING: {problem}")
    return 0


def cmd_comment(args, ctx: BoardContext) -> int:
    comment = ctx.orchestrator.comment(args.id, args.text, author=args.author)
    task = ctx.store.require_task(args.id)
    print(f"Added comment to task #{task.id}: {task.title}")
    print(f"   {comment.author}: {comment.text}")
    return 0
