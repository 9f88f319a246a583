"""
VersionControl port backed by the git CLI.

Wraps the function modules in this package and turns failed GitResults
into VersionControlError so the orchestrator can attribute them to a step.
"""

import logging
from pathlib import Path

from projectboard.git import branch as git_branch
from projectboard.git import commit as git_commit
from projectboard.git import remote as git_remote
from projectboard.git import status as git_status
from projectboard.git.runner import DEFAULT_TIMEOUT
from projectboard.lib.errors import NothingToCommitError, VersionControlError
from projectboard.lib.types import PushOutcome

logger = logging.getLogger(__name__)


class GitRepo:
    """Git operations for one repository working tree."""

    def __init__(self, repo_path: Path, remote: str = "origin", timeout: int = DEFAULT_TIMEOUT):
        self.repo_path = repo_path
        self.remote = remote
        self.timeout = timeout

    # --- inspection ---

    def branch_exists(self, name: str) -> bool:
        return git_branch.branch_exists(self.repo_path, name, timeout=self.timeout)

    def current_branch(self) -> str | None:
        return git_branch.get_current_branch(self.repo_path, timeout=self.timeout)

    def is_working_tree_dirty(self) -> bool:
        return git_status.has_uncommitted_changes(self.repo_path, timeout=self.timeout)

    def has_staged_changes(self) -> bool:
        return git_status.has_staged_changes(self.repo_path, timeout=self.timeout)

    def commit_exists(self, sha: str) -> bool:
        return git_branch.commit_exists(self.repo_path, sha, timeout=self.timeout)

    def is_ancestor(self, sha: str, branch: str) -> bool:
        """True if the commit is reachable from the branch tip."""
        return git_branch.is_ancestor(self.repo_path, sha, branch, timeout=self.timeout)

    def staged_files(self) -> list[str]:
        return git_status.get_staged_files(self.repo_path, timeout=self.timeout)

    def ahead_behind(self, branch: str) -> tuple[int, int] | None:
        """Return (ahead, behind) of the local branch versus its remote copy.

        None when the remote branch is unknown (never pushed or not fetched).
        """
        counts = git_branch.get_divergence_count(
            self.repo_path, f"{self.remote}/{branch}", branch, timeout=self.timeout
        )
        if counts is None:
            return None
        behind, ahead = counts
        return ahead, behind

    def user_name(self) -> str | None:
        return git_commit.get_user_name(self.repo_path, timeout=self.timeout)

    # --- effects ---

    def create_and_checkout_branch(self, name: str) -> None:
        git_branch.create_and_checkout_branch(self.repo_path, name, timeout=self.timeout).check(
            f"Failed to create branch '{name}'"
        )
        logger.info(f"[GIT] created and checked out {name}")

    def checkout_branch(self, name: str) -> None:
        git_branch.checkout_branch(self.repo_path, name, timeout=self.timeout).check(
            f"Failed to checkout branch '{name}'"
        )
        logger.info(f"[GIT] checked out {name}")

    def stage_all(self) -> None:
        git_commit.stage_all(self.repo_path, timeout=self.timeout).check("Failed to stage changes")

    def commit(self, message: str) -> str:
        """Commit the index and return the new commit SHA."""
        if not self.has_staged_changes():
            raise NothingToCommitError()

        result = git_commit.commit(self.repo_path, message, timeout=self.timeout)
        if not result.success and "nothing to commit" in (result.stdout + result.stderr):
            raise NothingToCommitError()
        result.check("Failed to commit")

        sha = git_branch.get_commit_sha(self.repo_path, timeout=self.timeout)
        if sha is None:
            raise VersionControlError("Commit succeeded but HEAD could not be resolved")
        logger.info(f"[GIT] committed {sha[:8]}")
        return sha

    def push(self, branch: str) -> PushOutcome:
        result = git_remote.push_branch(self.repo_path, self.remote, branch, timeout=self.timeout)
        result.check(f"Failed to push '{branch}' to {self.remote}")
        outcome = (
            PushOutcome.ALREADY_UP_TO_DATE
            if git_remote.push_was_up_to_date(result)
            else PushOutcome.PUSHED
        )
        logger.info(f"[GIT] push {branch}: {outcome.value}")
        return outcome
