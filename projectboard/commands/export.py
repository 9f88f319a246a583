"""
pb export - Dump the board as CSV or Markdown.
"""

import csv
import io
from pathlib import Path

from projectboard.commands.context import BoardContext
from projectboard.storage.models import Column, Task

CSV_HEADER = ["ID", "Title", "Description", "Column", "Created", "Updated", "Branch", "PR"]
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def export_csv(tasks: list[Task]) -> str:
    """One row per task; fields with commas, quotes or newlines are quoted."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for task in tasks:
        writer.writerow([
            task.id,
            task.title,
            task.description or "",
            task.column_name or "Unknown",
            task.created_at.strftime(TIMESTAMP_FORMAT),
            task.updated_at.strftime(TIMESTAMP_FORMAT),
            task.branch_name or "",
            task.pr_url or "",
        ])
    return buf.getvalue()


def export_markdown(columns: list[Column], tasks: list[Task]) -> str:
    """A section per column, tasks as bullets with branch and PR sub-bullets."""
    lines = ["# ProjectBoard Export", ""]
    for column in columns:
        column_tasks = [t for t in tasks if t.column_id == column.id]
        lines.append(f"## {column.name} ({len(column_tasks)})")
        lines.append("")
        for task in column_tasks:
            lines.append(f"- **#{task.id}**: {task.title}")
            if task.description:
                lines.append(f"  - {task.description}")
            if task.branch_name:
                lines.append(f"  - Branch: `{task.branch_name}`")
            if task.pr_url:
                lines.append(f"  - PR: {task.pr_url}")
            lines.append("")
    return "\n".join(lines).rstrip("\n") + "\n"


def cmd_export(args, ctx: BoardContext) -> int:
    tasks = ctx.store.list_tasks()
    if args.csv:
        output = export_csv(tasks)
    else:
        output = export_markdown(ctx.store.load_columns_ordered(), tasks)

    if args.output:
        path = Path(args.output)
        path.write_text(output)
        print(f"Exported {len(tasks)} tasks to {path}")
    else:
        print(output, end="")
    return 0
