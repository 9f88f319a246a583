"""Tests for projectboard.git module."""

import shutil
import subprocess
from pathlib import Path
from unittest.mock import patch, MagicMock

import pytest

from projectboard.git.runner import run_git, GitResult
from projectboard.git.status import has_staged_changes, has_uncommitted_changes, ensure_excluded
from projectboard.git.remote import push_was_up_to_date
from projectboard.git.repo import GitRepo
from projectboard.lib.errors import NothingToCommitError, VersionControlError
from projectboard.lib.types import PushOutcome


def ok(stdout="", args=None):
    return GitResult(args=args or [], returncode=0, stdout=stdout, stderr="")


def fail(stderr="", returncode=1, args=None):
    return GitResult(args=args or [], returncode=returncode, stdout="", stderr=stderr)


class TestGitResult:
    """Test GitResult dataclass."""

    def test_success_when_returncode_zero(self):
        assert ok("done").success is True

    def test_failure_when_returncode_nonzero(self):
        assert fail("error").success is False

    def test_failure_when_timed_out(self):
        result = GitResult(args=[], returncode=0, stdout="ok", stderr="", timed_out=True)
        assert result.success is False

    def test_check_returns_self_on_success(self):
        result = ok("x")
        assert result.check("boom") is result

    def test_check_raises_with_command_and_stderr(self):
        result = fail("fatal: bad ref", args=["checkout", "nope"])
        with pytest.raises(VersionControlError) as exc_info:
            result.check("Failed to checkout")
        assert exc_info.value.command == ["checkout", "nope"]
        assert "fatal: bad ref" in str(exc_info.value)
        assert str(exc_info.value).startswith("Failed to checkout")


class TestRunGit:
    """Test run_git function."""

    @patch("projectboard.git.runner.subprocess.run")
    def test_returns_result_on_success(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="output", stderr="")
        result = run_git(["status"], Path("/tmp"))
        assert result.success
        assert result.stdout == "output"
        mock_run.assert_called_once()

    @patch("projectboard.git.runner.subprocess.run")
    def test_handles_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="git", timeout=30)
        result = run_git(["push"], Path("/tmp"), timeout=30)
        assert not result.success
        assert result.timed_out
        assert "timed out after 30s" in result.stderr

    @patch("projectboard.git.runner.subprocess.run")
    def test_git_missing(self, mock_run):
        mock_run.side_effect = FileNotFoundError("git")
        result = run_git(["status"], Path("/tmp"))
        assert result.returncode == 127
        assert not result.success

    @patch("projectboard.git.runner.subprocess.run")
    def test_never_prompts_for_credentials(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        run_git(["push"], Path("/tmp"))
        env = mock_run.call_args[1]["env"]
        assert env["GIT_TERMINAL_PROMPT"] == "0"
        assert env["LC_ALL"] == "C"

    @patch("projectboard.git.runner.subprocess.run")
    def test_passes_cwd_with_C_flag_and_timeout(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        run_git(["status", "--porcelain"], Path("/my/repo"), timeout=7)
        assert mock_run.call_args[0][0] == ["git", "-C", "/my/repo", "status", "--porcelain"]
        assert mock_run.call_args[1]["timeout"] == 7


class TestStatus:
    """Test working tree status helpers."""

    @patch("projectboard.git.status.run_git")
    def test_clean_tree(self, mock_run):
        mock_run.return_value = ok("")
        assert has_uncommitted_changes(Path("/tmp")) is False

    @patch("projectboard.git.status.run_git")
    def test_dirty_tree(self, mock_run):
        mock_run.return_value = ok(" M file.txt\n")
        assert has_uncommitted_changes(Path("/tmp")) is True

    @patch("projectboard.git.status.run_git")
    def test_staged_changes_exit_one(self, mock_run):
        mock_run.return_value = fail(returncode=1)
        assert has_staged_changes(Path("/tmp")) is True

    @patch("projectboard.git.status.run_git")
    def test_nothing_staged_exit_zero(self, mock_run):
        mock_run.return_value = ok()
        assert has_staged_changes(Path("/tmp")) is False

    @patch("projectboard.git.status.run_git")
    def test_staged_check_failure_raises(self, mock_run):
        mock_run.return_value = fail("fatal: index file corrupt", returncode=128)
        with pytest.raises(VersionControlError, match="index file corrupt"):
            has_staged_changes(Path("/tmp"))


class TestEnsureExcluded:
    """Test ensure_excluded helper."""

    @patch("projectboard.git.status.run_git")
    def test_appends_pattern_once(self, mock_run, tmp_path):
        exclude = tmp_path / ".git" / "info" / "exclude"
        exclude.parent.mkdir(parents=True)
        exclude.write_text("# git ls-files --others --exclude-from=.git/info/exclude")
        mock_run.return_value = ok(str(exclude) + "\n")

        assert ensure_excluded(tmp_path, "/.projectboard/") is True
        assert ensure_excluded(tmp_path, "/.projectboard/") is False
        lines = exclude.read_text().splitlines()
        assert lines.count("/.projectboard/") == 1
        assert lines[0].startswith("# git ls-files")

    @patch("projectboard.git.status.run_git")
    def test_relative_git_path_resolved_against_repo(self, mock_run, tmp_path):
        mock_run.return_value = ok(".git/info/exclude\n")
        assert ensure_excluded(tmp_path, "/.projectboard/") is True
        assert (tmp_path / ".git" / "info" / "exclude").read_text() == "/.projectboard/\n"

    @patch("projectboard.git.status.run_git")
    def test_not_a_repository(self, mock_run, tmp_path):
        mock_run.return_value = fail("fatal: not a git repository", returncode=128)
        assert ensure_excluded(tmp_path, "/.projectboard/") is False


class TestPushWasUpToDate:
    """Test porcelain push output parsing."""

    def test_up_to_date_flag(self):
        result = ok("To github.com:me/repo.git\n=\trefs/heads/f:refs/heads/f\t[up to date]\nDone\n")
        assert push_was_up_to_date(result) is True

    def test_new_branch_pushed(self):
        result = ok("To github.com:me/repo.git\n*\trefs/heads/f:refs/heads/f\t[new branch]\nDone\n")
        assert push_was_up_to_date(result) is False

    def test_fast_forward_pushed(self):
        result = ok("To github.com:me/repo.git\n \trefs/heads/f:refs/heads/f\tabc..def\nDone\n")
        assert push_was_up_to_date(result) is False

    def test_everything_up_to_date_message(self):
        result = GitResult(args=[], returncode=0, stdout="", stderr="Everything up-to-date\n")
        assert push_was_up_to_date(result) is True


class TestGitRepo:
    """Test the VersionControl port."""

    @pytest.fixture
    def repo(self):
        return GitRepo(Path("/repo"), remote="origin", timeout=15)

    @patch("projectboard.git.branch.run_git")
    def test_create_and_checkout_branch(self, mock_run, repo):
        mock_run.return_value = ok()
        repo.create_and_checkout_branch("feature/1-x")
        assert mock_run.call_args[0][0] == ["checkout", "-b", "feature/1-x"]
        assert mock_run.call_args[1]["timeout"] == 15

    @patch("projectboard.git.branch.run_git")
    def test_create_branch_failure_raises(self, mock_run, repo):
        mock_run.return_value = fail("fatal: a branch named 'feature/1-x' already exists")
        with pytest.raises(VersionControlError, match="already exists"):
            repo.create_and_checkout_branch("feature/1-x")

    @patch("projectboard.git.status.run_git")
    def test_commit_with_nothing_staged(self, mock_status, repo):
        mock_status.return_value = ok()
        with pytest.raises(NothingToCommitError):
            repo.commit("msg")

    @patch("projectboard.git.branch.run_git")
    @patch("projectboard.git.commit.run_git")
    @patch("projectboard.git.status.run_git")
    def test_commit_returns_sha(self, mock_status, mock_commit, mock_branch, repo):
        mock_status.return_value = fail(returncode=1)
        mock_commit.return_value = ok("[feature/1-x abc1234] msg\n")
        mock_branch.return_value = ok("abc1234def5678\n")

        assert repo.commit("msg") == "abc1234def5678"
        assert mock_commit.call_args[0][0] == ["commit", "-m", "msg"]

    @patch("projectboard.git.branch.run_git")
    @patch("projectboard.git.commit.run_git")
    @patch("projectboard.git.status.run_git")
    def test_commit_failure_raises(self, mock_status, mock_commit, mock_branch, repo):
        mock_status.return_value = fail(returncode=1)
        mock_commit.return_value = fail("error: gpg failed to sign the data")
        with pytest.raises(VersionControlError, match="gpg failed"):
            repo.commit("msg")
        mock_branch.assert_not_called()

    @patch("projectboard.git.remote.run_git")
    def test_push_reports_pushed(self, mock_run, repo):
        mock_run.return_value = ok("*\trefs/heads/f:refs/heads/f\t[new branch]\n")
        assert repo.push("f") is PushOutcome.PUSHED
        assert mock_run.call_args[0][0] == ["push", "--porcelain", "-u", "origin", "refs/heads/f:refs/heads/f"]

    @patch("projectboard.git.remote.run_git")
    def test_push_reports_up_to_date(self, mock_run, repo):
        mock_run.return_value = ok("=\trefs/heads/f:refs/heads/f\t[up to date]\n")
        assert repo.push("f") is PushOutcome.ALREADY_UP_TO_DATE

    @patch("projectboard.git.remote.run_git")
    def test_push_rejected_raises(self, mock_run, repo):
        mock_run.return_value = fail("! [rejected] f -> f (non-fast-forward)")
        with pytest.raises(VersionControlError, match="rejected"):
            repo.push("f")

    @patch("projectboard.git.branch.run_git")
    def test_ahead_behind(self, mock_run, repo):
        # rev-list --left-right origin/f...f: left = remote only, right = local only
        mock_run.return_value = ok("1\t3\n")
        assert repo.ahead_behind("f") == (3, 1)
        assert mock_run.call_args[0][0] == ["rev-list", "--left-right", "--count", "origin/f...f"]

    @patch("projectboard.git.branch.run_git")
    def test_ahead_behind_unknown_remote_branch(self, mock_run, repo):
        mock_run.return_value = fail("fatal: ambiguous argument")
        assert repo.ahead_behind("f") is None

    @patch("projectboard.git.branch.run_git")
    def test_current_branch_detached(self, mock_run, repo):
        mock_run.return_value = ok("\n")
        assert repo.current_branch() is None

    @patch("projectboard.git.status.run_git")
    def test_commit_with_unreadable_index_is_not_nothing_to_commit(self, mock_status, repo):
        mock_status.return_value = fail("fatal: index file corrupt", returncode=128)
        with pytest.raises(VersionControlError) as exc_info:
            repo.commit("msg")
        assert not isinstance(exc_info.value, NothingToCommitError)

    @patch("projectboard.git.commit.run_git")
    def test_stage_all_uses_configured_timeout(self, mock_run, repo):
        mock_run.return_value = ok()
        repo.stage_all()
        assert mock_run.call_args[0][0] == ["add", "-A"]
        assert mock_run.call_args[1]["timeout"] == 15

    @patch("projectboard.git.branch.run_git")
    def test_inspection_uses_configured_timeout(self, mock_run, repo):
        mock_run.return_value = ok("commit\n")
        repo.branch_exists("f")
        repo.commit_exists("abc1234")
        repo.is_ancestor("abc1234", "f")
        assert [c[1]["timeout"] for c in mock_run.call_args_list] == [15, 15, 15]


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
class TestGitRepoOnDisk:
    """GitRepo against a real repository in tmp_path."""

    @pytest.fixture
    def repo(self, tmp_path):
        for args in (
            ["init", "-q"],
            ["symbolic-ref", "HEAD", "refs/heads/main"],
            ["config", "user.name", "Dana"],
            ["config", "user.email", "dana@example.com"],
            ["config", "commit.gpgsign", "false"],
        ):
            subprocess.run(["git", "-C", str(tmp_path)] + args, check=True, capture_output=True)
        return GitRepo(tmp_path, timeout=15)

    def test_user_name(self, repo):
        assert repo.user_name() == "Dana"

    def test_stage_and_commit(self, repo):
        (repo.repo_path / "auth.py").write_text("print('ok')\n")
        assert repo.is_working_tree_dirty() is True

        repo.stage_all()
        assert repo.staged_files() == ["auth.py"]
        sha = repo.commit("Patched auth check")

        assert len(sha) == 40
        assert repo.commit_exists(sha)
        assert repo.is_ancestor(sha, "main")
        assert repo.has_staged_changes() is False
        assert repo.is_working_tree_dirty() is False

    def test_commit_with_empty_index(self, repo):
        (repo.repo_path / "README").write_text("board\n")
        repo.stage_all()
        repo.commit("Initial")
        with pytest.raises(NothingToCommitError):
            repo.commit("Again")

    def test_task_branch(self, repo):
        (repo.repo_path / "README").write_text("board\n")
        repo.stage_all()
        repo.commit("Initial")

        repo.create_and_checkout_branch("feature/1-fix-login-bug")

        assert repo.current_branch() == "feature/1-fix-login-bug"
        assert repo.branch_exists("feature/1-fix-login-bug")
        assert repo.ahead_behind("feature/1-fix-login-bug") is None
        repo.checkout_branch("main")
        assert repo.current_branch() == "main"
