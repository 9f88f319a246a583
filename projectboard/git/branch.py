"""Git branch operations."""

from pathlib import Path

from projectboard.git.runner import run_git, GitResult


def get_repo_root(path: Path) -> Path | None:
    """Get the top-level directory of the repository containing path."""
    result = run_git(["rev-parse", "--show-toplevel"], path)
    if result.success and result.stdout.strip():
        return Path(result.stdout.strip())
    return None


def get_current_branch(repo: Path, timeout: int = 60) -> str | None:
    """Get the current branch name, or None if detached HEAD."""
    result = run_git(["branch", "--show-current"], repo, timeout=timeout)
    if result.success:
        return result.stdout.strip() or None
    return None


def branch_exists(repo: Path, branch: str, timeout: int = 60) -> bool:
    """Check if a local branch exists."""
    result = run_git(["show-ref", "--verify", "--quiet", f"refs/heads/{branch}"], repo, timeout=timeout)
    return result.success


def create_and_checkout_branch(repo: Path, branch: str, timeout: int = 60) -> GitResult:
    """Create a branch at HEAD and switch to it."""
    return run_git(["checkout", "-b", branch], repo, timeout=timeout)


def checkout_branch(repo: Path, branch: str, timeout: int = 60) -> GitResult:
    """Checkout an existing branch."""
    return run_git(["checkout", branch], repo, timeout=timeout)


def get_commit_sha(repo: Path, ref: str = "HEAD", timeout: int = 60) -> str | None:
    """Get the SHA of a ref."""
    result = run_git(["rev-parse", ref], repo, timeout=timeout)
    if result.success:
        return result.stdout.strip()
    return None


def commit_exists(repo: Path, sha: str, timeout: int = 60) -> bool:
    """Check if a commit SHA exists."""
    result = run_git(["cat-file", "-t", sha], repo, timeout=timeout)
    return result.success and result.stdout.strip() == "commit"


def is_ancestor(repo: Path, ancestor: str, descendant: str, timeout: int = 60) -> bool:
    """Check if ancestor is an ancestor of descendant."""
    result = run_git(["merge-base", "--is-ancestor", ancestor, descendant], repo, timeout=timeout)
    return result.success


def get_divergence_count(repo: Path, ref1: str, ref2: str, timeout: int = 60) -> tuple[int, int] | None:
    """
    Get how many commits ref1 and ref2 have diverged.

    Returns:
        Tuple of (commits_in_ref1_not_in_ref2, commits_in_ref2_not_in_ref1),
        or None on error (e.g. ref1 does not exist yet).

    Example:
        get_divergence_count(repo, "origin/feature/1-x", "feature/1-x")
        -> (0, 2) means the local branch has 2 unpushed commits
    """
    result = run_git(["rev-list", "--left-right", "--count", f"{ref1}...{ref2}"], repo, timeout=timeout)
    if not result.success:
        return None
    parts = result.stdout.strip().split()
    if len(parts) != 2:
        return None
    try:
        return (int(parts[0]), int(parts[1]))
    except ValueError:
        return None
