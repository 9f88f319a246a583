"""
GitHub integration for the review workflow.

RemoteReview port backed by the gh CLI. gh owns HTTP and JSON; this module
maps its exit status and stderr onto AuthenticationError / NotFoundError /
RemoteReviewError.
"""

import json
import logging
import os
import subprocess
from pathlib import Path

from projectboard.lib.errors import (
    AuthenticationError,
    NotFoundError,
    RemoteReviewError,
)
from projectboard.lib.types import PRState, PullRequest

logger = logging.getLogger(__name__)


# Timeout for GitHub CLI operations (seconds)
GH_TIMEOUT_SECONDS = 30

DEFAULT_TOKEN_ENV = "GITHUB_TOKEN"
FALLBACK_TOKEN_ENV = "GH_TOKEN"

# Fragments of gh stderr that identify a failure class
AUTH_ERROR_MARKERS = (
    "gh auth login",
    "authentication",
    "not logged in",
    "bad credentials",
    "http 401",
)
NOT_FOUND_MARKERS = (
    "no pull requests found",
    "could not resolve to a pullrequest",
    "could not resolve",
    "not found",
    "http 404",
)


def resolve_token(token_env: str = DEFAULT_TOKEN_ENV) -> str | None:
    """Read the API token from the configured variable, then GH_TOKEN."""
    return os.environ.get(token_env) or os.environ.get(FALLBACK_TOKEN_ENV) or None


def classify_gh_error(stderr: str, action: str) -> RemoteReviewError:
    """Build the exception matching a failed gh invocation."""
    text = stderr.strip()
    lowered = text.lower()
    if any(marker in lowered for marker in AUTH_ERROR_MARKERS):
        return AuthenticationError(f"{action}: GitHub authentication failed ({text})")
    if any(marker in lowered for marker in NOT_FOUND_MARKERS):
        return NotFoundError(f"{action}: {text}")
    return RemoteReviewError(f"{action}: {text or 'gh exited with an error'}")


def parse_pr_number(url: str) -> int | None:
    """Extract the PR number from a .../pull/<n> URL."""
    try:
        return int(url.rstrip("/").split("/")[-1])
    except (ValueError, IndexError):
        return None


def extract_github_info(remote_url: str) -> tuple[str, str] | None:
    """Parse (owner, repo) from an HTTPS or SSH GitHub remote URL."""
    for prefix in ("git@github.com:", "https://github.com/", "ssh://git@github.com/"):
        if remote_url.startswith(prefix):
            path = remote_url[len(prefix):]
            if path.endswith(".git"):
                path = path[:-4]
            parts = path.strip("/").split("/")
            if len(parts) == 2 and all(parts):
                return parts[0], parts[1]
    return None


class GitHubReview:
    """Pull request operations for one repository via gh."""

    def __init__(
        self,
        repo_path: Path,
        base_branch: str = "main",
        token_env: str = DEFAULT_TOKEN_ENV,
        timeout: int = GH_TIMEOUT_SECONDS,
    ):
        self.repo_path = repo_path
        self.base_branch = base_branch
        self.token_env = token_env
        self.timeout = timeout

    def _env(self) -> dict[str, str]:
        env = dict(os.environ)
        token = resolve_token(self.token_env)
        if token:
            env["GH_TOKEN"] = token
        return env

    def _run_gh(self, args: list[str], action: str) -> subprocess.CompletedProcess:
        """Run gh and raise the classified error on failure."""
        logger.debug(f"[GH] {' '.join(args[:3])}")
        try:
            result = subprocess.run(
                ["gh"] + args,
                capture_output=True,
                text=True,
                cwd=str(self.repo_path),
                env=self._env(),
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise RemoteReviewError(
                f"{action}: GitHub CLI (gh) not found. Install: https://cli.github.com/"
            ) from None
        except subprocess.TimeoutExpired:
            raise RemoteReviewError(f"{action}: GitHub CLI timed out after {self.timeout}s") from None

        if result.returncode != 0:
            raise classify_gh_error(result.stderr, action)
        return result

    def _load_json(self, result: subprocess.CompletedProcess, action: str):
        try:
            return json.loads(result.stdout or "null")
        except json.JSONDecodeError:
            raise RemoteReviewError(f"{action}: invalid JSON from gh") from None

    def check_auth(self) -> None:
        """Raise AuthenticationError when no usable credential is configured."""
        if resolve_token(self.token_env):
            return
        try:
            result = subprocess.run(
                ["gh", "auth", "status"],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise AuthenticationError(
                f"No {self.token_env} set and GitHub CLI (gh) not installed"
            ) from None
        except subprocess.TimeoutExpired:
            raise AuthenticationError("GitHub CLI timed out checking authentication") from None
        if result.returncode != 0:
            raise AuthenticationError(
                f"No {self.token_env} set and gh is not authenticated. Run: gh auth login"
            )

    def create_pr(self, branch: str, title: str, body: str) -> PullRequest:
        """Open a PR from branch into the base branch."""
        result = self._run_gh(
            ["pr", "create",
             "--base", self.base_branch,
             "--head", branch,
             "--title", title,
             "--body", body],
            f"Creating PR for {branch}",
        )
        # gh prints progress lines before the URL; the URL is the last line
        lines = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        if not lines:
            raise RemoteReviewError(f"Creating PR for {branch}: gh returned no URL")
        url = lines[-1]
        logger.info(f"[GH] created PR {url}")
        return PullRequest(url=url, number=parse_pr_number(url), state=PRState.OPEN)

    def find_pr(self, branch: str) -> PullRequest | None:
        """Find an open or merged PR whose head is branch."""
        result = self._run_gh(
            ["pr", "list",
             "--head", branch,
             "--state", "all",
             "--json", "url,number,state",
             "--limit", "10"],
            f"Looking up PR for {branch}",
        )
        entries = self._load_json(result, f"Looking up PR for {branch}") or []
        for entry in entries:
            state = PRState.from_gh(entry.get("state", "open"))
            if state is PRState.CLOSED:
                continue
            return PullRequest(url=entry["url"], number=entry.get("number"), state=state)
        return None

    def get_status(self, pr_ref: str) -> PRState:
        """Get the state of a PR given its URL or number."""
        action = f"Checking PR {pr_ref}"
        result = self._run_gh(["pr", "view", pr_ref, "--json", "state,url"], action)
        data = self._load_json(result, action)
        if not isinstance(data, dict) or "state" not in data:
            raise RemoteReviewError(f"{action}: unexpected response from gh")
        try:
            return PRState.from_gh(data["state"])
        except ValueError:
            raise RemoteReviewError(f"{action}: unknown PR state '{data['state']}'") from None
