"""
Error taxonomy for ProjectBoard.

Every failure a command can report derives from LifecycleError so the CLI
has a single place to turn exceptions into exit codes. Port adapters raise
PortError subclasses; the orchestrator wraps them in StepFailed.
"""


class LifecycleError(Exception):
    """Base class for every user-reportable failure."""


class InvalidTransitionError(LifecycleError):
    """Requested transition is not legal from the task's current column."""

    def __init__(self, transition: str, column: str, task_id: int | None = None, detail: str = ""):
        self.transition = transition
        self.column = column
        self.task_id = task_id
        target = f"task #{task_id}" if task_id is not None else "task"
        message = f"Cannot '{transition}' {target} from column '{column}'"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class PreconditionError(LifecycleError):
    """A field or repository condition required by a step is missing."""


class TaskNotFoundError(PreconditionError):
    def __init__(self, task_id: int):
        self.task_id = task_id
        super().__init__(f"Task #{task_id} not found")


class IdeaNotFoundError(PreconditionError):
    def __init__(self, idea_id: int):
        self.idea_id = idea_id
        super().__init__(f"Idea #{idea_id} not found")


class ConfigError(LifecycleError):
    """Board configuration is missing or invalid."""


class NotInitializedError(ConfigError):
    """No board exists for the repository yet."""


class PortError(LifecycleError):
    """An external collaborator (git, code host) failed."""


class VersionControlError(PortError):
    """A git command failed or timed out."""

    def __init__(self, message: str, command: list[str] | None = None, stderr: str = ""):
        self.command = command or []
        self.stderr = stderr
        detail = f": {stderr.strip()}" if stderr.strip() else ""
        super().__init__(f"{message}{detail}")


class NothingToCommitError(VersionControlError):
    """Commit requested with no staged changes."""

    def __init__(self, message: str = "Nothing staged to commit"):
        super().__init__(message)


class RemoteReviewError(PortError):
    """The code-hosting service call failed."""


class AuthenticationError(RemoteReviewError):
    """No usable credential for the code-hosting service."""


class NotFoundError(RemoteReviewError):
    """A pull request reference no longer resolves remotely."""


class StepFailed(LifecycleError):
    """A step of a transition failed.

    `completed` lists the steps of this attempt whose effects took place
    before the failure. When it is non-empty the task is in an intermediate
    state and re-running the same transition resumes after them.
    `hint` replaces that advice when a plain re-run would not resume, e.g.
    a commit that was made but could not be recorded.
    """

    def __init__(self, step: str, cause: Exception, transition: str = "",
                 task_id: int | None = None, completed: list[str] | None = None,
                 hint: str | None = None):
        self.step = step
        self.cause = cause
        self.transition = transition
        self.task_id = task_id
        self.completed = list(completed or [])
        self.hint = hint
        super().__init__(self._format())

    @property
    def partial(self) -> bool:
        return bool(self.completed)

    def _format(self) -> str:
        cause = f"{type(self.cause).__name__}: {self.cause}"
        message = f"Step '{self.step}' failed ({cause})"
        if self.partial:
            advice = self.hint or f"Task is in an intermediate state; re-run '{self.transition}' to resume"
            message += f". Completed before failure: {', '.join(self.completed)}. {advice}"
        else:
            message += f". Nothing was changed; re-run '{self.transition}' to retry"
        return message
