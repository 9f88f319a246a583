"""
pb log - Show the activity log.

Newest first, like `git log --oneline`. With --task only entries for that
task are shown.
"""

import sys

from projectboard.commands.context import BoardContext
from projectboard.lib.timeline import COLORS, format_entry_oneline


def cmd_log(args, ctx: BoardContext) -> int:
    """Show board or task history."""
    if args.task is not None:
        task = ctx.store.require_task(args.task)
    else:
        task = None

    entries = ctx.store.list_activity(task_id=args.task, limit=args.limit)
    if not entries:
        print("No events found.")
        return 0

    colorize = not args.no_color and sys.stdout.isatty()
    dim = COLORS["dim"] if colorize else ""
    reset = COLORS["reset"] if colorize else ""

    if task is not None:
        print(f"{dim}Task:{reset}   #{task.id} {task.title}")
        print(f"{dim}Column:{reset} {task.column_name}")
        print()

    for entry in entries:
        print(format_entry_oneline(entry, colorize=colorize))
    return 0
