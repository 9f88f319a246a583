"""Git operations for ProjectBoard.

Function modules return GitResult (callers check .success), bool, or parsed
values that are empty/None on failure. GitRepo is the port used by the
orchestrator and raises VersionControlError instead.

The commit module is not re-exported: its `commit` function would shadow
the submodule attribute that GitRepo resolves.
"""

from projectboard.git.branch import (
    get_repo_root,
    get_current_branch,
    branch_exists,
    create_and_checkout_branch,
    checkout_branch,
    get_commit_sha,
    commit_exists,
    is_ancestor,
    get_divergence_count,
)
from projectboard.git.remote import (
    get_remote_url,
    push_branch,
    push_was_up_to_date,
)
from projectboard.git.status import (
    has_uncommitted_changes,
    has_staged_changes,
    get_staged_files,
    ensure_excluded,
)
from projectboard.git.repo import GitRepo

__all__ = [
    # branch
    "get_repo_root",
    "get_current_branch",
    "branch_exists",
    "create_and_checkout_branch",
    "checkout_branch",
    "get_commit_sha",
    "commit_exists",
    "is_ancestor",
    "get_divergence_count",
    # remote
    "get_remote_url",
    "push_branch",
    "push_was_up_to_date",
    # status
    "has_uncommitted_changes",
    "has_staged_changes",
    "get_staged_files",
    "ensure_excluded",
    # port
    "GitRepo",
]
