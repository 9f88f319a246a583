"""Lifecycle planning: which steps a transition needs for a given task.

Pure decision logic. Looks only at the task row and the board's columns,
never at git or GitHub; what is already true outside the database is
checked by the orchestrator when it reconciles the plan.

Usage:
    from projectboard.workflow.lifecycle import plan_transition, TransitionOptions

    plan = plan_transition(task, "done", columns, TransitionOptions(message="Fix"))
    plan.steps   # ["commit", "push", "set_column"]
    plan.dest    # "Done"
"""

import re
from dataclasses import dataclass, field

from projectboard.lib.constants import BRANCH_PREFIX, BRANCH_SLUG_MAX_LEN, EMPTY_SLUG
from projectboard.lib.errors import PreconditionError
from projectboard.storage.models import Column, Task
from projectboard.workflow.fsm import LifecycleFSM

# Transitions driven through the state machine
START = "start"
DONE = "done"
SUBMIT = "submit"
REVIEW = "review"

# Step names
CREATE_BRANCH = "create_branch"
CHECKOUT_BRANCH = "checkout_branch"
SET_BRANCH_NAME = "set_branch_name"
STAGE = "stage"
COMMIT = "commit"
PUSH = "push"
CREATE_PR = "create_pr"
SET_PR_URL = "set_pr_url"
PR_STATUS = "pr_status"
SET_COLUMN = "set_column"

# Steps whose completion leaves a durable trace in git, GitHub or the board.
# A failure after any of these is a partial transition.
EFFECT_STEPS = frozenset({
    CREATE_BRANCH, SET_BRANCH_NAME, COMMIT, PUSH, CREATE_PR, SET_PR_URL, SET_COLUMN,
})


def derive_branch_name(task_id: int, title: str) -> str:
    """Branch name for a task: feature/<id>-<slug>.

    >>> derive_branch_name(1, "Fix login bug")
    'feature/1-fix-login-bug'
    """
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    slug = slug[:BRANCH_SLUG_MAX_LEN].rstrip("-")
    return f"{BRANCH_PREFIX}/{task_id}-{slug or EMPTY_SLUG}"


def default_commit_message(task: Task) -> str:
    return f"Closes #{task.id}: {task.title}"


def pr_title(task: Task) -> str:
    return f"Task #{task.id}: {task.title}"


@dataclass
class TransitionOptions:
    """Per-invocation knobs for a transition."""
    message: str | None = None
    stage_all: bool = False
    skip_commit: bool = False


@dataclass
class TransitionPlan:
    """Ordered steps for one transition attempt.

    `skipped` maps a step name to the reason it will not run, so the caller
    can show what was already true.
    """
    transition: str
    task_id: int
    source: str
    dest: str
    steps: list[str]
    branch_name: str | None = None
    commit_message: str | None = None
    pr_title: str | None = None
    pr_body: str = ""
    skipped: dict[str, str] = field(default_factory=dict)

    def skip(self, step: str, reason: str) -> None:
        if step in self.steps:
            self.steps.remove(step)
            self.skipped[step] = reason

    def replace(self, step: str, new_step: str, reason: str) -> None:
        """Swap a step for another in place, recording why."""
        if step in self.steps:
            self.steps[self.steps.index(step)] = new_step
            self.skipped[step] = reason


def _require_branch(task: Task, transition: str) -> str:
    if not task.branch_name:
        raise PreconditionError(
            f"Task #{task.id} has no branch; run 'pb start {task.id}' before '{transition}'"
        )
    return task.branch_name


def plan_transition(
    task: Task,
    transition: str,
    columns: list[Column],
    options: TransitionOptions | None = None,
) -> TransitionPlan:
    """Compute the steps for a transition from the task's current state.

    Raises:
        InvalidTransitionError: If the transition is not legal from the
            task's column.
        PreconditionError: If a field the transition needs is missing.
    """
    options = options or TransitionOptions()
    fsm = LifecycleFSM([c.name for c in columns], task.column_name, task_id=task.id)
    dest = fsm.fire(transition)

    plan = TransitionPlan(
        transition=transition,
        task_id=task.id,
        source=task.column_name,
        dest=dest,
        steps=[],
    )

    if transition == START:
        if task.branch_name:
            plan.branch_name = task.branch_name
            plan.steps = [CHECKOUT_BRANCH, SET_COLUMN]
            plan.skipped[CREATE_BRANCH] = "branch already recorded"
            plan.skipped[SET_BRANCH_NAME] = "branch already recorded"
        else:
            plan.branch_name = derive_branch_name(task.id, task.title)
            plan.steps = [CREATE_BRANCH, SET_BRANCH_NAME, SET_COLUMN]

    elif transition == DONE:
        plan.branch_name = _require_branch(task, transition)
        plan.commit_message = options.message or default_commit_message(task)
        plan.steps = [STAGE, COMMIT, PUSH, SET_COLUMN]
        if not options.stage_all:
            plan.steps.remove(STAGE)
        if options.skip_commit:
            plan.skip(STAGE, "--skip-commit")
            plan.skip(COMMIT, "--skip-commit")

    elif transition == SUBMIT:
        plan.branch_name = _require_branch(task, transition)
        plan.pr_title = pr_title(task)
        plan.pr_body = task.description or ""
        if task.pr_url:
            plan.steps = [PUSH, PR_STATUS, SET_COLUMN]
            plan.skipped[CREATE_PR] = "pull request already recorded"
            plan.skipped[SET_PR_URL] = "pull request already recorded"
        else:
            plan.steps = [PUSH, CREATE_PR, SET_PR_URL, SET_COLUMN]

    elif transition == REVIEW:
        if not task.pr_url:
            raise PreconditionError(
                f"Task #{task.id} has no pull request; run 'pb submit {task.id}' first"
            )
        plan.steps = [PR_STATUS]

    if SET_COLUMN in plan.steps and task.column_name == dest:
        plan.skip(SET_COLUMN, f"already in {dest}")

    return plan
