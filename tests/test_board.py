"""Tests for the board TUI rendering helpers."""

from datetime import datetime, timezone

from projectboard.commands.board import render_column, render_task_detail, task_markers
from projectboard.storage.models import ActivityEntry, Column, Task

TS = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
DOING = Column(id=3, name="Doing", order=2)


def make_task(task_id=1, title="Fix login bug", **kwargs):
    return Task(id=task_id, title=title, column_id=3, column_name="Doing",
                created_at=TS, updated_at=TS, **kwargs)


class TestTaskMarkers:
    def test_none(self):
        assert task_markers(make_task()) == ""

    def test_branch_and_pr(self):
        task = make_task(branch_name="feature/1-x", pr_url="https://github.com/o/r/pull/1")
        assert task_markers(task) == "[green]B[/green] [blue]PR[/blue]"


class TestRenderColumn:
    def test_empty(self):
        text = render_column(DOING, [])
        assert "Doing" in text
        assert "(0)" in text
        assert "No tasks" in text

    def test_selected_row_highlighted(self):
        tasks = [make_task(1, "One"), make_task(2, "Two")]
        lines = render_column(DOING, tasks, selected=1).splitlines()
        assert lines[2] == "#1 One"
        assert lines[3] == "[reverse]#2 Two[/reverse]"

    def test_markup_in_titles_is_escaped(self):
        text = render_column(DOING, [make_task(title="[bold]not bold[/bold]")])
        assert "\\[bold]not bold" in text


class TestRenderTaskDetail:
    def test_fields_problems_and_history(self):
        task = make_task(assignee="sam", description="Details", branch_name="feature/1-fix-login-bug")
        entries = [
            ActivityEntry(event="commit", metadata={"task_id": 1, "commit_id": "abc12345ff", "message": "m"},
                          created_at=TS),
            ActivityEntry(event="branch_created", metadata={"task_id": 1, "branch": "feature/1-fix-login-bug"},
                          created_at=TS),
        ]
        text = render_task_detail(task, entries, ["Task #1 is in Review but has no pull request"])

        assert "#1 Fix login bug" in text
        assert "Branch:  feature/1-fix-login-bug" in text
        assert "PR:      -" in text
        assert "Owner:   sam" in text
        assert "WARNING: Task #1 is in Review" in text
        # History reads oldest first
        assert text.index("branch feature/1-fix-login-bug created") < text.index("committed abc12345")
        assert "[green]\\[C][/green]" in text

    def test_no_history(self):
        text = render_task_detail(make_task(), [], [])
        assert "History" not in text
