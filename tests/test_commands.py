"""Tests for the command modules against a real store and fake ports."""

from argparse import Namespace
from unittest.mock import patch

import pytest

from projectboard.commands import ideas, init, lifecycle, log, tasks
from projectboard.commands.context import BoardContext, open_board
from projectboard.lib.config import BoardConfig, BoardPaths
from projectboard.lib.constants import DOING
from projectboard.lib.errors import NotInitializedError, TaskNotFoundError
from projectboard.lib.types import PRState, PullRequest
from projectboard.storage.db import BoardStore


@pytest.fixture
def ctx(tmp_path, store, orch):
    return BoardContext(paths=BoardPaths(tmp_path), config=BoardConfig(), store=store, orchestrator=orch)


class TestInit:
    @patch("projectboard.commands.init.get_remote_url", return_value="git@github.com:octo/board.git")
    @patch("projectboard.commands.init.ensure_excluded", return_value=True)
    def test_creates_board(self, mock_exclude, mock_remote, tmp_path, capsys):
        assert init.cmd_init(Namespace(), tmp_path) == 0

        paths = BoardPaths(tmp_path)
        assert paths.is_initialized()
        assert paths.config_path.exists()
        mock_exclude.assert_called_once_with(tmp_path, "/.projectboard/")
        out = capsys.readouterr().out
        assert "GitHub repository: octo/board" in out
        with BoardStore(paths.db_path) as s:
            assert len(s.load_columns_ordered()) == 5
            assert s.get_project_by_path(str(tmp_path)) is not None
            assert s.list_activity()[0].event == "project_initialized"

    @patch("projectboard.commands.init.get_remote_url", return_value=None)
    @patch("projectboard.commands.init.ensure_excluded", return_value=False)
    def test_second_init_refused(self, mock_exclude, mock_remote, tmp_path, capsys):
        init.cmd_init(Namespace(), tmp_path)
        assert init.cmd_init(Namespace(), tmp_path) == 1
        assert "already initialized" in capsys.readouterr().out

    def test_open_board_requires_init(self, tmp_path):
        with pytest.raises(NotInitializedError):
            open_board(tmp_path)


class TestTaskCommands:
    def test_add_and_list(self, ctx, capsys):
        tasks.cmd_add(Namespace(title="Fix login bug", description="d", assignee=None), ctx)
        assert tasks.cmd_list(Namespace(column=None), ctx) == 0
        out = capsys.readouterr().out
        assert "Created task #1: Fix login bug" in out
        assert "Backlog (1 tasks)" in out
        assert "Done (0 tasks)" in out

    def test_list_unknown_column(self, ctx, capsys):
        assert tasks.cmd_list(Namespace(column="Archive"), ctx) == 1
        assert "Column 'Archive' not found" in capsys.readouterr().err

    def test_list_warns_about_doing_without_branch(self, ctx, orch, capsys):
        task = orch.add("T")
        orch.move(task.id, DOING)
        tasks.cmd_list(Namespace(column="doing"), ctx)
        assert "WARNING: Task #1 is in Doing but has no branch" in capsys.readouterr().out

    def test_show(self, ctx, orch, capsys):
        task = orch.add("Fix login bug")
        orch.start(task.id)
        orch.comment(task.id, "looking into it")
        assert tasks.cmd_show(Namespace(id=task.id), ctx) == 0
        out = capsys.readouterr().out
        assert "Branch:   feature/1-fix-login-bug" in out
        assert "Remote:   not pushed" in out
        assert "Next:     pb start 1, pb done 1, pb submit 1, pb review 1" in out
        assert "Dana: looking into it" in out
        assert "branch feature/1-fix-login-bug created" in out

    def test_show_missing(self, ctx):
        with pytest.raises(TaskNotFoundError):
            tasks.cmd_show(Namespace(id=7), ctx)

    def test_move(self, ctx, orch, capsys):
        orch.add("T")
        assert tasks.cmd_move(Namespace(id=1, column="todo"), ctx) == 0
        assert tasks.cmd_move(Namespace(id=1, column="To Do"), ctx) == 0
        out = capsys.readouterr().out
        assert "Moved task #1: Backlog -> To Do" in out
        assert "already in To Do" in out

    def test_comment(self, ctx, orch, capsys):
        orch.add("T")
        tasks.cmd_comment(Namespace(id=1, text="hi", author="Sam"), ctx)
        assert "Sam: hi" in capsys.readouterr().out


class TestIdeaCommands:
    def test_idea_list_promote(self, ctx, capsys):
        ideas.cmd_idea(Namespace(content="Dark mode"), ctx)
        ideas.cmd_promote(Namespace(idea_id=1), ctx)
        ideas.cmd_ideas(Namespace(all=False), ctx)
        ideas.cmd_ideas(Namespace(all=True), ctx)
        out = capsys.readouterr().out
        assert "Promoted idea #1 to task #1: Dark mode" in out
        assert "No ideas" in out
        assert "(promoted to task #1)" in out


class TestLifecycleCommands:
    def test_start_done_submit_review(self, ctx, orch, vcs, remote, capsys):
        orch.add("Fix login bug")
        lifecycle.cmd_start(Namespace(id=1), ctx)
        vcs.staged = ["auth.py"]
        lifecycle.cmd_done(Namespace(id=1, message=None, all=False, skip_commit=False), ctx)
        lifecycle.cmd_submit(Namespace(id=1), ctx)
        remote.prs["feature/1-fix-login-bug"] = PullRequest(
            url="https://github.com/octo/board/pull/1", number=1, state=PRState.MERGED
        )
        lifecycle.cmd_review(Namespace(id=1), ctx)

        out = capsys.readouterr().out
        assert "Created and checked out branch: feature/1-fix-login-bug" in out
        assert "Pushed feature/1-fix-login-bug to origin" in out
        assert "Created PR: https://github.com/octo/board/pull/1" in out
        assert "Status: merged" in out
        assert "pb move 1 Done" in out

    def test_done_nothing_staged_clean_tree(self, ctx, orch, capsys):
        orch.add("T")
        orch.start(1)
        assert lifecycle.cmd_done(Namespace(id=1, message=None, all=False, skip_commit=False), ctx) == 1
        assert "--skip-commit" in capsys.readouterr().err

    def test_done_nothing_staged_dirty_tree(self, ctx, orch, vcs, capsys):
        orch.add("T")
        orch.start(1)
        vcs.dirty = True
        assert lifecycle.cmd_done(Namespace(id=1, message=None, all=False, skip_commit=False), ctx) == 1
        assert "pass --all" in capsys.readouterr().err


class TestLog:
    def test_task_log(self, ctx, orch, capsys):
        orch.add("T")
        orch.move(1, "todo")
        assert log.cmd_log(Namespace(task=1, limit=50, no_color=True), ctx) == 0
        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == "Task:   #1 T"
        # Newest first
        assert "moved Backlog -> To Do" in lines[3]
        assert "created" in lines[4]

    def test_empty_log(self, ctx, capsys):
        log.cmd_log(Namespace(task=None, limit=50, no_color=True), ctx)
        assert "No events found." in capsys.readouterr().out
