"""
Activity timeline formatting.

Turns activity log entries into one-line summaries for `pb log` and
`pb show`. Entries are stored newest first; timelines read oldest first.
"""

from projectboard.storage.models import ActivityEntry


# ANSI color codes
COLORS = {
    "reset": "\033[0m",
    "dim": "\033[2m",
    "bold": "\033[1m",
    "green": "\033[32m",
    "red": "\033[31m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "cyan": "\033[36m",
}

EVENT_COLORS = {
    "project_initialized": "cyan",
    "task_created": "cyan",
    "task_moved": "dim",
    "comment_added": "dim",
    "idea_created": "cyan",
    "idea_promoted": "cyan",
    "branch_created": "green",
    "branch_adopted": "yellow",
    "commit": "green",
    "push": "green",
    "pr_created": "blue",
    "pr_adopted": "yellow",
    "pr_status": "blue",
    "step_failed": "red",
    "transition_completed": "bold",
}

EVENT_SYMBOLS = {
    "project_initialized": "+",
    "task_created": "+",
    "task_moved": ">",
    "comment_added": "#",
    "idea_created": "?",
    "idea_promoted": "^",
    "branch_created": "B",
    "branch_adopted": "B",
    "commit": "C",
    "push": "P",
    "pr_created": "R",
    "pr_adopted": "R",
    "pr_status": "S",
    "step_failed": "x",
    "transition_completed": "*",
}


def summarize(entry: ActivityEntry) -> str:
    """One-line description of an activity entry from its metadata."""
    m = entry.metadata
    task = f"#{m['task_id']}" if "task_id" in m else ""
    event = entry.event

    if event == "project_initialized":
        return f"Board initialized for {m.get('name', 'project')}"
    if event == "task_created":
        return f"Task {task} created: {m.get('title', '')}"
    if event == "task_moved":
        return f"Task {task} moved {m.get('from')} -> {m.get('to')}"
    if event == "comment_added":
        return f"Comment on {task} by {m.get('author', 'unknown')}"
    if event == "idea_created":
        return f"Idea #{m.get('idea_id')} added: {m.get('content', '')}"
    if event == "idea_promoted":
        return f"Idea #{m.get('idea_id')} promoted to task {task}"
    if event in ("branch_created", "branch_adopted"):
        verb = "created" if event == "branch_created" else "adopted"
        return f"Task {task}: branch {m.get('branch')} {verb}"
    if event == "commit":
        sha = (m.get("commit_id") or "")[:8]
        return f"Task {task}: committed {sha} \"{m.get('message', '')}\""
    if event == "push":
        outcome = "already up to date" if m.get("outcome") == "already_up_to_date" else "pushed"
        return f"Task {task}: {m.get('branch')} {outcome}"
    if event in ("pr_created", "pr_adopted"):
        verb = "opened" if event == "pr_created" else "adopted"
        return f"Task {task}: pull request {verb} {m.get('url')}"
    if event == "pr_status":
        return f"Task {task}: pull request {m.get('state')}"
    if event == "step_failed":
        return f"Task {task} {m.get('transition')}: step {m.get('step')} failed ({m.get('error')})"
    if event == "transition_completed":
        return f"Task {task} {m.get('transition')} complete: {m.get('from')} -> {m.get('to')}"

    # Entries from older boards may carry free text only
    if "text" in m:
        return f"{event}: {m['text']}"
    return event


def format_entry_oneline(entry: ActivityEntry, colorize: bool = True) -> str:
    """Format a single entry as a one-line string (like git log --oneline)."""
    ts_str = entry.created_at.astimezone().strftime("%Y-%m-%d %H:%M") if entry.created_at else "?"
    symbol = EVENT_SYMBOLS.get(entry.event, "?")
    summary = summarize(entry)

    if colorize:
        color = COLORS.get(EVENT_COLORS.get(entry.event, "reset"), "")
        reset = COLORS["reset"]
        dim = COLORS["dim"]
        return f"{dim}{ts_str}{reset} {color}[{symbol}]{reset} {summary}"
    else:
        return f"{ts_str} [{symbol}] {summary}"


def format_timeline(entries: list[ActivityEntry], colorize: bool = True) -> list[str]:
    """Format entries oldest first."""
    return [format_entry_oneline(e, colorize) for e in reversed(entries)]
