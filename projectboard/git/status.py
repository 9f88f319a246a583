"""Git working tree status."""

from pathlib import Path

from projectboard.git.runner import run_git


def has_uncommitted_changes(repo: Path, timeout: int = 60) -> bool:
    """Check if the working tree has staged, unstaged, or untracked changes."""
    result = run_git(["status", "--porcelain"], repo, timeout=timeout)
    return bool(result.stdout.strip())


def has_staged_changes(repo: Path, timeout: int = 60) -> bool:
    """Check if the index differs from HEAD.

    Raises VersionControlError when git cannot compare them (e.g. a corrupt
    index), so the failure is not mistaken for an empty index.
    """
    result = run_git(["diff", "--cached", "--quiet"], repo, timeout=timeout)
    # exit 0 = nothing staged, exit 1 = staged changes
    if result.returncode == 1 and not result.timed_out:
        return True
    result.check("Failed to inspect staged changes")
    return False


def get_staged_files(repo: Path, timeout: int = 60) -> list[str]:
    """Get list of files staged for commit."""
    result = run_git(["diff", "--cached", "--name-only"], repo, timeout=timeout)
    return [f.strip() for f in result.stdout.splitlines() if f.strip()]


def ensure_excluded(repo: Path, pattern: str) -> bool:
    """Add pattern to .git/info/exclude unless it is already listed.

    Returns True if the file was changed.
    """
    result = run_git(["rev-parse", "--git-path", "info/exclude"], repo)
    if not result.success or not result.stdout.strip():
        return False
    exclude = Path(result.stdout.strip())
    if not exclude.is_absolute():
        exclude = repo / exclude
    text = exclude.read_text() if exclude.exists() else ""
    if pattern in text.splitlines():
        return False
    exclude.parent.mkdir(parents=True, exist_ok=True)
    with exclude.open("a") as f:
        if text and not text.endswith("\n"):
            f.write("\n")
        f.write(f"{pattern}\n")
    return True
