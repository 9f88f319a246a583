"""Task lifecycle orchestrator.

Runs the steps of a lifecycle transition against git, GitHub and the board
database, in order. After each step with an outside effect the matching
field update and activity entry are committed before the next step starts,
so a crash can lose at most the record of one step. That gap is closed on
the next run by reconciliation: before executing, the plan is checked
against what git and GitHub already show and steps that are already true
are skipped.

Nothing is retried automatically. A failed step is reported as StepFailed
naming the step; running the same command again resumes.
"""

import logging
import sqlite3
import time
from dataclasses import dataclass, field

from projectboard.lib.config import BoardConfig
from projectboard.lib.constants import BACKLOG, DOING, REVIEW
from projectboard.lib.errors import (
    InvalidTransitionError,
    NothingToCommitError,
    PortError,
    PreconditionError,
    RemoteReviewError,
    StepFailed,
)
from projectboard.lib.types import PRState, PullRequest, PushOutcome
from projectboard.storage.models import ActivityEntry, Comment, Idea, Task
from projectboard.workflow.lifecycle import (
    CHECKOUT_BRANCH,
    COMMIT,
    CREATE_BRANCH,
    CREATE_PR,
    DONE,
    EFFECT_STEPS,
    PR_STATUS,
    PUSH,
    REVIEW as REVIEW_TRANSITION,
    SET_BRANCH_NAME,
    SET_COLUMN,
    SET_PR_URL,
    STAGE,
    START,
    SUBMIT,
    TransitionOptions,
    TransitionPlan,
    plan_transition,
)

logger = logging.getLogger(__name__)

UNKNOWN_AUTHOR = "unknown"


@dataclass
class TransitionResult:
    """Outcome of one successful transition."""
    task: Task
    transition: str
    performed: list[str] = field(default_factory=list)
    skipped: dict[str, str] = field(default_factory=dict)
    commit_id: str | None = None
    push_outcome: PushOutcome | None = None
    pr: PullRequest | None = None
    pr_status: PRState | None = None


@dataclass
class TransitionRun:
    """Mutable state of a single execute() call."""
    plan: TransitionPlan
    task: Task
    result: TransitionResult
    # Effect steps finished during this attempt, in order
    completed: list[str] = field(default_factory=list)
    branch_adopted: bool = False
    pr_adopted: bool = False
    pr: PullRequest | None = None


class Orchestrator:
    """Drives tasks through the board and keeps git, GitHub and the database in step.

    Args:
        store: Storage port (BoardStore)
        vcs: VersionControl port (GitRepo)
        remote: RemoteReview port (GitHubReview)
        config: Board settings; defaults when omitted
    """

    def __init__(self, store, vcs, remote, config: BoardConfig | None = None):
        self.store = store
        self.vcs = vcs
        self.remote = remote
        self.config = config or BoardConfig()
        self._handlers = {
            CREATE_BRANCH: self._create_branch,
            CHECKOUT_BRANCH: self._checkout_branch,
            SET_BRANCH_NAME: self._set_branch_name,
            STAGE: self._stage,
            COMMIT: self._commit,
            PUSH: self._push,
            CREATE_PR: self._create_pr,
            SET_PR_URL: self._set_pr_url,
            PR_STATUS: self._pr_status,
            SET_COLUMN: self._set_column,
        }

    # --- board operations (no external effects) ---

    def add(self, title: str, description: str | None = None, assignee: str | None = None) -> Task:
        """Create a task in Backlog."""
        title = title.strip()
        if not title:
            raise PreconditionError("Task title cannot be empty")
        backlog = self.store.require_column(BACKLOG)
        task = self.store.create_task(
            title,
            backlog.id,
            description=description or None,
            assignee=assignee,
            activity=ActivityEntry(event="task_created", metadata={"title": title}),
        )
        logger.info(f"[BOARD] created task #{task.id}: {title}")
        return task

    def move(self, task_id: int, column_name: str) -> Task:
        """Put a task in another column without touching git or GitHub.

        Moving backward keeps branch_name and pr_url; the branch and pull
        request are left alone.
        """
        task = self.store.require_task(task_id)
        column = self.store.find_column(column_name)
        if column is None:
            names = ", ".join(c.name for c in self.store.load_columns_ordered())
            raise InvalidTransitionError(
                "move", task.column_name, task_id, detail=f"unknown column '{column_name}' (columns: {names})"
            )
        if column.id == task.column_id:
            logger.info(f"[BOARD] task #{task_id} already in {column.name}")
            return task

        task = self.store.update_task(
            task_id,
            {"column_id": column.id},
            activity=ActivityEntry(
                event="task_moved",
                metadata={"task_id": task_id, "from": task.column_name, "to": column.name},
            ),
        )
        logger.info(f"[BOARD] moved task #{task_id} to {column.name}")
        return task

    def resolve_author(self) -> str:
        return self.vcs.user_name() or self.config.author or UNKNOWN_AUTHOR

    def comment(self, task_id: int, text: str, author: str | None = None) -> Comment:
        text = text.strip()
        if not text:
            raise PreconditionError("Comment text cannot be empty")
        return self.store.create_comment(task_id, author or self.resolve_author(), text)

    def add_idea(self, content: str) -> Idea:
        content = content.strip()
        if not content:
            raise PreconditionError("Idea cannot be empty")
        return self.store.create_idea(content)

    def promote(self, idea_id: int) -> tuple[Idea, Task]:
        """Turn an idea into a Backlog task; the idea is kept and marked promoted."""
        idea, task = self.store.promote_idea(idea_id)
        logger.info(f"[BOARD] promoted idea #{idea_id} to task #{task.id}")
        return idea, task

    def check_invariants(self, task: Task) -> list[str]:
        """Describe lifecycle invariants the task currently violates.

        Manual moves and interrupted transitions can leave a task in Doing
        without a branch or in Review without a pull request.
        """
        order = {c.name: c.order for c in self.store.load_columns_ordered()}
        problems = []
        doing_order = order.get(DOING)
        if doing_order is not None and order.get(task.column_name, -1) >= doing_order and not task.branch_name:
            problems.append(
                f"Task #{task.id} is in {task.column_name} but has no branch; run 'pb start {task.id}'"
            )
        if task.column_name == REVIEW and not task.pr_url:
            problems.append(
                f"Task #{task.id} is in {REVIEW} but has no pull request; run 'pb submit {task.id}'"
            )
        return problems

    # --- lifecycle transitions ---

    def start(self, task_id: int) -> TransitionResult:
        return self.execute(task_id, START)

    def done(self, task_id: int, message: str | None = None,
             stage_all: bool = False, skip_commit: bool = False) -> TransitionResult:
        options = TransitionOptions(message=message, stage_all=stage_all, skip_commit=skip_commit)
        return self.execute(task_id, DONE, options)

    def submit(self, task_id: int) -> TransitionResult:
        return self.execute(task_id, SUBMIT)

    def review(self, task_id: int) -> TransitionResult:
        return self.execute(task_id, REVIEW_TRANSITION)

    def execute(self, task_id: int, transition: str, options: TransitionOptions | None = None) -> TransitionResult:
        """Run a lifecycle transition for a task.

        Raises:
            TaskNotFoundError: If the task does not exist.
            InvalidTransitionError: If the transition is not legal from the
                task's column. Nothing is changed.
            PreconditionError: If the task or repository is not ready.
                Nothing is changed.
            AuthenticationError: If submit/review has no usable GitHub
                credential. Nothing is changed.
            NothingToCommitError: If done has nothing staged to commit.
            StepFailed: If a step failed. Its `completed` list says what was
                persisted before the failure.
        """
        task = self.store.require_task(task_id)
        plan = plan_transition(task, transition, self.store.load_columns_ordered(), options)
        logger.info(f"[STEP] task #{task_id} {transition}: {task.column_name} -> {plan.dest}, plan {plan.steps}")

        if transition in (SUBMIT, REVIEW_TRANSITION):
            self.remote.check_auth()

        run = TransitionRun(
            plan=plan,
            task=task,
            result=TransitionResult(task=task, transition=transition),
        )
        self._reconcile(run)
        self._check_preconditions(run)

        for step in list(plan.steps):
            self._run_step(run, step)

        if SET_COLUMN not in run.result.performed:
            self.store.append_activity(self._completed_entry(run))

        run.result.skipped = dict(plan.skipped)
        run.result.task = self.store.require_task(task_id)
        logger.info(f"[STEP] task #{task_id} {transition} complete: performed {run.result.performed}")
        return run.result

    # --- reconciliation ---

    def _reconcile(self, run: TransitionRun) -> None:
        """Skip or swap steps whose effect is already visible outside the database."""
        plan = run.plan
        transition = plan.transition

        if transition == START:
            recorded = CHECKOUT_BRANCH in plan.steps
            exists = self.vcs.branch_exists(plan.branch_name)
            if CREATE_BRANCH in plan.steps and exists:
                # Created by an attempt that died before recording it
                plan.replace(CREATE_BRANCH, CHECKOUT_BRANCH, "branch already exists in git")
                run.branch_adopted = True
                logger.info(f"[RECONCILE] task #{plan.task_id}: adopting existing branch {plan.branch_name}")
            elif recorded and not exists:
                plan.steps[plan.steps.index(CHECKOUT_BRANCH)] = CREATE_BRANCH
                plan.skipped.pop(CREATE_BRANCH, None)
                logger.warning(f"[RECONCILE] task #{plan.task_id}: recorded branch {plan.branch_name} missing, recreating")
            if CHECKOUT_BRANCH in plan.steps and self.vcs.current_branch() == plan.branch_name:
                plan.skip(CHECKOUT_BRANCH, "already checked out")

        elif transition == DONE and COMMIT in plan.steps:
            sha = self._pending_commit(run)
            if sha:
                reason = f"commit {sha[:8]} already made by an earlier attempt"
                plan.skip(STAGE, reason)
                plan.skip(COMMIT, reason)
                run.result.commit_id = sha
                logger.info(f"[RECONCILE] task #{plan.task_id}: {reason}")

        elif transition == SUBMIT and CREATE_PR in plan.steps:
            try:
                existing = self.remote.find_pr(plan.branch_name)
            except RemoteReviewError as e:
                self._log_failure(run, CREATE_PR, e)
                raise StepFailed(CREATE_PR, e, transition, plan.task_id) from e
            if existing is not None:
                plan.skip(CREATE_PR, f"pull request already open: {existing.url}")
                run.pr = existing
                run.pr_adopted = True
                run.result.pr = existing
                logger.info(f"[RECONCILE] task #{plan.task_id}: adopting {existing.url}")

    def _pending_commit(self, run: TransitionRun) -> str | None:
        """SHA of a commit made by an unfinished `done`, if it is still on the branch."""
        for entry in self.store.list_activity(task_id=run.task.id, limit=None):
            if entry.metadata.get("transition") != DONE:
                continue
            if entry.event == "transition_completed":
                return None
            if entry.event == "commit":
                sha = entry.metadata.get("commit_id")
                if sha and self.vcs.commit_exists(sha) and self.vcs.is_ancestor(sha, run.plan.branch_name):
                    return sha
                return None
        return None

    def _check_preconditions(self, run: TransitionRun) -> None:
        plan = run.plan
        if COMMIT in plan.steps or STAGE in plan.steps:
            current = self.vcs.current_branch()
            if current != plan.branch_name:
                raise PreconditionError(
                    f"HEAD is on '{current or 'detached HEAD'}', not on task branch '{plan.branch_name}'; "
                    f"run 'pb start {plan.task_id}' to check it out"
                )

    # --- step execution ---

    def _run_step(self, run: TransitionRun, step: str) -> None:
        plan = run.plan
        logger.info(f"[STEP] task #{plan.task_id} {plan.transition}: {step}")
        started = time.monotonic()
        try:
            self._handlers[step](run)
        except NothingToCommitError as e:
            self._log_failure(run, step, e)
            raise
        except (PortError, sqlite3.Error) as e:
            self._log_failure(run, step, e)
            hint = self._unrecorded_hint(run, step) if step in run.completed else None
            raise StepFailed(step, e, plan.transition, plan.task_id, run.completed, hint=hint) from e

        run.result.performed.append(step)
        if step in EFFECT_STEPS and step not in run.completed:
            run.completed.append(step)
        logger.debug(f"[STEP] {step} passed ({time.monotonic() - started:.2f}s)")

    def _unrecorded_hint(self, run: TransitionRun, step: str) -> str:
        """Advice for an effect that happened but whose activity entry was not written."""
        plan = run.plan
        if step == COMMIT:
            return (
                f"Commit {run.result.commit_id[:8]} exists on '{plan.branch_name}' but was not recorded; "
                f"run 'pb done {plan.task_id} --skip-commit' to push and finish"
            )
        return (
            f"{step} took effect on '{plan.branch_name}' but was not recorded; "
            f"re-run '{plan.transition}' to finish"
        )

    def _entry(self, run: TransitionRun, step: str, event: str, **metadata) -> ActivityEntry:
        return ActivityEntry(
            event=event,
            metadata={
                "task_id": run.plan.task_id,
                "transition": run.plan.transition,
                "step": step,
                **metadata,
            },
        )

    def _completed_entry(self, run: TransitionRun) -> ActivityEntry:
        plan = run.plan
        return self._entry(
            run,
            SET_COLUMN,
            "transition_completed",
            **{
                "from": plan.source,
                "to": plan.dest,
                "performed": run.result.performed + ([SET_COLUMN] if SET_COLUMN in plan.steps else []),
                "skipped": sorted(plan.skipped),
            },
        )

    def _log_failure(self, run: TransitionRun, step: str, error: Exception) -> None:
        entry = self._entry(
            run, step, "step_failed",
            error=f"{type(error).__name__}: {error}",
            completed=list(run.completed),
        )
        try:
            self.store.append_activity(entry)
        except sqlite3.Error as e:
            logger.error(f"[STEP] could not record failure of {step}: {e}")
        logger.warning(f"[STEP] task #{run.plan.task_id} {run.plan.transition}: {step} failed: {error}")

    # --- step handlers ---

    def _create_branch(self, run: TransitionRun) -> None:
        self.vcs.create_and_checkout_branch(run.plan.branch_name)

    def _checkout_branch(self, run: TransitionRun) -> None:
        self.vcs.checkout_branch(run.plan.branch_name)

    def _set_branch_name(self, run: TransitionRun) -> None:
        branch = run.plan.branch_name
        event = "branch_adopted" if run.branch_adopted else "branch_created"
        run.task = self.store.update_task(
            run.task.id,
            {"branch_name": branch},
            activity=self._entry(run, SET_BRANCH_NAME, event, branch=branch),
        )

    def _stage(self, run: TransitionRun) -> None:
        self.vcs.stage_all()

    def _commit(self, run: TransitionRun) -> None:
        message = run.plan.commit_message
        files = self.vcs.staged_files()
        sha = self.vcs.commit(message)
        run.result.commit_id = sha
        run.completed.append(COMMIT)
        # Recorded right away: a later push failure must not lose the commit
        self.store.append_activity(
            self._entry(run, COMMIT, "commit", commit_id=sha, message=message,
                        branch=run.plan.branch_name, files=len(files))
        )

    def _push(self, run: TransitionRun) -> None:
        branch = run.plan.branch_name
        outcome = self.vcs.push(branch)
        run.result.push_outcome = outcome
        run.completed.append(PUSH)
        self.store.append_activity(
            self._entry(run, PUSH, "push", branch=branch, remote=self.config.remote, outcome=outcome.value)
        )

    def _create_pr(self, run: TransitionRun) -> None:
        pr = self.remote.create_pr(run.plan.branch_name, run.plan.pr_title, run.plan.pr_body)
        run.pr = pr
        run.result.pr = pr

    def _set_pr_url(self, run: TransitionRun) -> None:
        pr = run.pr
        event = "pr_adopted" if run.pr_adopted else "pr_created"
        run.task = self.store.update_task(
            run.task.id,
            {"pr_url": pr.url},
            activity=self._entry(run, SET_PR_URL, event, url=pr.url, number=pr.number),
        )

    def _pr_status(self, run: TransitionRun) -> None:
        ref = run.task.pr_url
        state = self.remote.get_status(ref)
        run.result.pr_status = state
        if run.result.pr is None:
            run.result.pr = PullRequest(url=ref, state=state)
        self.store.append_activity(self._entry(run, PR_STATUS, "pr_status", url=ref, state=state.value))

    def _set_column(self, run: TransitionRun) -> None:
        column = self.store.require_column(run.plan.dest)
        # The column write carries the completion record in the same transaction
        run.task = self.store.update_task(
            run.task.id,
            {"column_id": column.id},
            activity=self._completed_entry(run),
        )
