"""Git remote operations."""

from pathlib import Path

from projectboard.git.runner import run_git, GitResult

PUSH_TIMEOUT = 60


def get_remote_url(repo: Path, remote: str = "origin") -> str | None:
    """Get the fetch URL of a remote, or None if it does not exist."""
    result = run_git(["remote", "get-url", remote], repo)
    if result.success:
        return result.stdout.strip() or None
    return None


def push_branch(repo: Path, remote: str, branch: str, timeout: int = PUSH_TIMEOUT) -> GitResult:
    """Push a branch and set upstream tracking, with machine-readable output."""
    return run_git(
        ["push", "--porcelain", "-u", remote, f"refs/heads/{branch}:refs/heads/{branch}"],
        repo,
        timeout=timeout,
    )


def push_was_up_to_date(result: GitResult) -> bool:
    """
    Tell whether a successful porcelain push transferred nothing.

    Porcelain output has one line per ref: "<flag>\\t<from>:<to>\\t<summary>".
    Flag "=" means the ref was already up to date.
    """
    ref_lines = [line for line in result.stdout.splitlines() if "\t" in line]
    if not ref_lines:
        return "Everything up-to-date" in (result.stdout + result.stderr)
    return all(line.startswith("=") for line in ref_lines)
