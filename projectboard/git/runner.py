"""Git subprocess runner.

Commands run non-interactively with the C locale: a push must fail instead
of waiting for a password, and callers match on English stderr ("nothing to
commit", "Everything up-to-date").
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

from projectboard.lib.errors import VersionControlError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60

GIT_ENV = {
    "GIT_TERMINAL_PROMPT": "0",
    "LC_ALL": "C",
}


@dataclass
class GitResult:
    """Outcome of one git invocation. Never raises by itself; see check()."""
    args: list[str]
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    def check(self, message: str) -> "GitResult":
        """Return self on success, raise VersionControlError otherwise."""
        if not self.success:
            raise VersionControlError(message, command=self.args, stderr=self.stderr)
        return self


def run_git(args: list[str], cwd: Path, timeout: int = DEFAULT_TIMEOUT) -> GitResult:
    """Run `git -C cwd <args>` and capture its output.

    A timeout or a missing git binary is reported as a failed GitResult so
    callers handle every failure the same way.
    """
    logger.debug(f"[GIT] {' '.join(args)}")
    try:
        proc = subprocess.run(
            ["git", "-C", str(cwd)] + args,
            capture_output=True,
            text=True,
            env={**os.environ, **GIT_ENV},
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.warning(f"[GIT] {args[0]} timed out after {timeout}s")
        return GitResult(args, -1, "", f"git {args[0]} timed out after {timeout}s", timed_out=True)
    except FileNotFoundError:
        return GitResult(args, 127, "", "git executable not found")

    return GitResult(args, proc.returncode, proc.stdout, proc.stderr)
