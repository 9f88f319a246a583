"""
Shared data types for ProjectBoard.

Value types exchanged across the port boundaries. Kept here so the git and
GitHub adapters and the orchestrator can share them without importing each
other.
"""

from dataclasses import dataclass
from enum import Enum


class PushOutcome(Enum):
    """Result of pushing a branch."""
    PUSHED = "pushed"
    ALREADY_UP_TO_DATE = "already_up_to_date"


class PRState(Enum):
    """Remote pull request state."""
    OPEN = "open"
    MERGED = "merged"
    CLOSED = "closed"

    @classmethod
    def from_gh(cls, value: str) -> "PRState":
        """Parse the state string reported by gh ("OPEN", "MERGED", ...)."""
        return cls(value.strip().lower())


@dataclass(frozen=True)
class PullRequest:
    """A pull request on the code-hosting service."""
    url: str
    number: int | None = None
    state: PRState | None = None
