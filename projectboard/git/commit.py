"""Git commit operations."""

from pathlib import Path

from projectboard.git.runner import run_git, GitResult


def stage_all(repo: Path, timeout: int = 60) -> GitResult:
    """Stage all changes (new, modified, deleted)."""
    return run_git(["add", "-A"], repo, timeout=timeout)


def commit(repo: Path, message: str, timeout: int = 60) -> GitResult:
    """Create a commit from the index with the given message."""
    return run_git(["commit", "-m", message], repo, timeout=timeout)


def get_user_name(repo: Path, timeout: int = 60) -> str | None:
    """Get the configured git user.name, or None if unset."""
    result = run_git(["config", "user.name"], repo, timeout=timeout)
    if result.success:
        return result.stdout.strip() or None
    return None
