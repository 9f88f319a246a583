#!/usr/bin/env python3
"""ProjectBoard CLI entrypoint."""

import argparse
import logging
import sys

from projectboard.commands import board as cmd_board_module
from projectboard.commands import export as cmd_export_module
from projectboard.commands import ideas as cmd_ideas_module
from projectboard.commands import init as cmd_init_module
from projectboard.commands import lifecycle as cmd_lifecycle_module
from projectboard.commands import log as cmd_log_module
from projectboard.commands import tasks as cmd_tasks_module
from projectboard.commands.context import open_board, resolve_repo
from projectboard.lib.constants import EXIT_CONFIG, EXIT_ERROR, EXIT_INTERRUPTED
from projectboard.lib.errors import ConfigError, LifecycleError, StepFailed

logger = logging.getLogger(__name__)


def board_command(handler):
    """Adapt a command module function to (args) by opening the board first."""
    def run(args):
        ctx = open_board(resolve_repo(args.repo))
        try:
            return handler(args, ctx)
        finally:
            ctx.close()
    return run


def cmd_init(args):
    return cmd_init_module.cmd_init(args, resolve_repo(args.repo))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='pb', description='ProjectBoard: a git-aware Kanban board')
    parser.add_argument('--repo', help='Repository path (default: git top-level of the current directory)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # pb init
    p_init = subparsers.add_parser('init', help='Create the board for this repository')
    p_init.set_defaults(func=cmd_init)

    # pb add
    p_add = subparsers.add_parser('add', help='Add a task to Backlog')
    p_add.add_argument('title', help='Task title')
    p_add.add_argument('--description', '-d', help='Task description')
    p_add.add_argument('--assignee', '-a', help='Assignee')
    p_add.set_defaults(func=board_command(cmd_tasks_module.cmd_add))

    # pb list
    p_list = subparsers.add_parser('list', help='List tasks by column')
    p_list.add_argument('column', nargs='?', help='Only this column')
    p_list.set_defaults(func=board_command(cmd_tasks_module.cmd_list))

    # pb show
    p_show = subparsers.add_parser('show', help='Show task details and history')
    p_show.add_argument('id', type=int, help='Task ID')
    p_show.set_defaults(func=board_command(cmd_tasks_module.cmd_show))

    # pb move
    p_move = subparsers.add_parser('move', help='Move a task to a column (no git/GitHub changes)')
    p_move.add_argument('id', type=int, help='Task ID')
    p_move.add_argument('column', help='Target column (e.g. "To Do", todo, Review)')
    p_move.set_defaults(func=board_command(cmd_tasks_module.cmd_move))

    # pb comment
    p_comment = subparsers.add_parser('comment', help='Comment on a task')
    p_comment.add_argument('id', type=int, help='Task ID')
    p_comment.add_argument('text', help='Comment text')
    p_comment.add_argument('--author', help='Author (default: git user.name)')
    p_comment.set_defaults(func=board_command(cmd_tasks_module.cmd_comment))

    # pb idea
    p_idea = subparsers.add_parser('idea', help='Capture an idea')
    p_idea.add_argument('content', help='Idea text')
    p_idea.set_defaults(func=board_command(cmd_ideas_module.cmd_idea))

    # pb ideas
    p_ideas = subparsers.add_parser('ideas', help='List ideas')
    p_ideas.add_argument('--all', action='store_true', help='Include promoted ideas')
    p_ideas.set_defaults(func=board_command(cmd_ideas_module.cmd_ideas))

    # pb promote
    p_promote = subparsers.add_parser('promote', help='Turn an idea into a Backlog task')
    p_promote.add_argument('idea_id', type=int, help='Idea ID')
    p_promote.set_defaults(func=board_command(cmd_ideas_module.cmd_promote))

    # pb start
    p_start = subparsers.add_parser('start', help='Create/check out the task branch and move to Doing')
    p_start.add_argument('id', type=int, help='Task ID')
    p_start.set_defaults(func=board_command(cmd_lifecycle_module.cmd_start))

    # pb done
    p_done = subparsers.add_parser('done', help='Commit, push and move to Done')
    p_done.add_argument('id', type=int, help='Task ID')
    p_done.add_argument('--message', '-m', help='Commit message (default: "Closes #<id>: <title>")')
    p_done.add_argument('--all', '-a', action='store_true', help='Stage all changes before committing')
    p_done.add_argument('--skip-commit', action='store_true', help='Push and complete without committing')
    p_done.set_defaults(func=board_command(cmd_lifecycle_module.cmd_done))

    # pb submit
    p_submit = subparsers.add_parser('submit', help='Push, open a pull request and move to Review')
    p_submit.add_argument('id', type=int, help='Task ID')
    p_submit.set_defaults(func=board_command(cmd_lifecycle_module.cmd_submit))

    # pb review
    p_review = subparsers.add_parser('review', help='Show pull request status')
    p_review.add_argument('id', type=int, help='Task ID')
    p_review.set_defaults(func=board_command(cmd_lifecycle_module.cmd_review))

    # pb board
    p_board = subparsers.add_parser('board', help='Interactive board')
    p_board.set_defaults(func=board_command(cmd_board_module.cmd_board))

    # pb export
    p_export = subparsers.add_parser('export', help='Export tasks')
    export_format = p_export.add_mutually_exclusive_group(required=True)
    export_format.add_argument('--csv', action='store_true', help='CSV output')
    export_format.add_argument('--markdown', action='store_true', help='Markdown output')
    p_export.add_argument('--output', '-o', help='Write to file instead of stdout')
    p_export.set_defaults(func=board_command(cmd_export_module.cmd_export))

    # pb log
    p_log = subparsers.add_parser('log', help='Show activity log')
    p_log.add_argument('--task', '-t', type=int, help='Only this task')
    p_log.add_argument('--limit', '-n', type=int, default=50, help='Number of entries (default: 50)')
    p_log.add_argument('--no-color', action='store_true', help='Disable colors')
    p_log.set_defaults(func=board_command(cmd_log_module.cmd_log))

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return args.func(args)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_CONFIG
    except StepFailed as e:
        logger.debug(f"Step failure cause: {e.cause!r}")
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_ERROR
    except LifecycleError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_ERROR
    except KeyboardInterrupt:
        print(
            "\nInterrupted. Completed steps are saved; re-run the same command to resume.",
            file=sys.stderr,
        )
        return EXIT_INTERRUPTED


if __name__ == '__main__':
    sys.exit(main())
