"""
pb start / done / submit / review - Lifecycle transitions.

Thin wrappers around the orchestrator; they only render the result.
Failures propagate to the CLI, which prints them and sets the exit code.
"""

import sys

from projectboard.commands.context import BoardContext
from projectboard.lib.constants import DONE
from projectboard.lib.errors import NothingToCommitError
from projectboard.lib.types import PRState, PushOutcome
from projectboard.workflow.lifecycle import CHECKOUT_BRANCH, COMMIT, CREATE_BRANCH, CREATE_PR, PR_STATUS
from projectboard.workflow.orchestrator import TransitionResult


def _print_skipped(result: TransitionResult) -> None:
    for step, reason in result.skipped.items():
        print(f"   - skipped {step}: {reason}")


def cmd_start(args, ctx: BoardContext) -> int:
    result = ctx.orchestrator.start(args.id)
    task = result.task
    print(f"Started task #{task.id}: {task.title}")
    if CREATE_BRANCH in result.performed:
        print(f"   Created and checked out branch: {task.branch_name}")
    elif CHECKOUT_BRANCH in result.performed:
        print(f"   Checked out branch: {task.branch_name}")
    else:
        print(f"   On branch: {task.branch_name}")
    print(f"   Column: {task.column_name}")
    _print_skipped(result)
    return 0


def cmd_done(args, ctx: BoardContext) -> int:
    try:
        result = ctx.orchestrator.done(
            args.id,
            message=args.message,
            stage_all=args.all,
            skip_commit=args.skip_commit,
        )
    except NothingToCommitError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        if ctx.orchestrator.vcs.is_working_tree_dirty():
            print("   Working tree has unstaged changes; stage them with 'git add' or pass --all", file=sys.stderr)
        else:
            print("   Working tree is clean; use --skip-commit to push and complete anyway", file=sys.stderr)
        return 1

    task = result.task
    if COMMIT in result.performed:
        print(f"Committed {result.commit_id[:8]} on {task.branch_name}")
    if result.push_outcome is PushOutcome.ALREADY_UP_TO_DATE:
        print(f"Branch {task.branch_name} already up to date on {ctx.config.remote}")
    elif result.push_outcome is PushOutcome.PUSHED:
        print(f"Pushed {task.branch_name} to {ctx.config.remote}")
    print(f"Completed task #{task.id}: {task.title}")
    print(f"   Column: {task.column_name}")
    _print_skipped(result)
    return 0


def cmd_submit(args, ctx: BoardContext) -> int:
    result = ctx.orchestrator.submit(args.id)
    task = result.task
    if result.push_outcome is PushOutcome.PUSHED:
        print(f"Pushed {task.branch_name} to {ctx.config.remote}")
    if CREATE_PR in result.performed:
        print(f"Created PR: {task.pr_url}")
    elif PR_STATUS in result.performed:
        print(f"PR: {task.pr_url} ({result.pr_status.value})")
    else:
        print(f"Linked existing PR: {task.pr_url}")
    print(f"Submitted task #{task.id} for review: {task.title}")
    print(f"   Column: {task.column_name}")
    _print_skipped(result)
    return 0


def cmd_review(args, ctx: BoardContext) -> int:
    result = ctx.orchestrator.review(args.id)
    task = result.task
    print(f"Task #{task.id}: {task.title}")
    print(f"   PR:     {task.pr_url}")
    print(f"   Status: {result.pr_status.value}")
    print(f"   Column: {task.column_name}")
    if result.pr_status is PRState.MERGED and task.column_name != DONE:
        print(f"   Merged; move it with: pb move {task.id} Done")
    elif result.pr_status is PRState.CLOSED:
        print("   Closed without merging")
    return 0
