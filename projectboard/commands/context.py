"""
Board context shared by the commands.

Resolves the repository, loads config.yaml, opens the store and wires the
git and GitHub adapters into an Orchestrator.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from projectboard.git import GitRepo, get_repo_root
from projectboard.lib.config import BoardConfig, BoardPaths, load_board_config
from projectboard.lib.errors import NotInitializedError
from projectboard.lib.github import GitHubReview
from projectboard.storage.db import BoardStore
from projectboard.workflow.orchestrator import Orchestrator

logger = logging.getLogger(__name__)


@dataclass
class BoardContext:
    """Everything a command needs for one repository."""
    paths: BoardPaths
    config: BoardConfig
    store: BoardStore
    orchestrator: Orchestrator

    def close(self) -> None:
        self.store.close()


def resolve_repo(repo_arg: str | None) -> Path:
    """Repository root from --repo, else the git top-level of the cwd.

    Raises:
        NotInitializedError: If the directory is not inside a git repository.
    """
    start = Path(repo_arg).expanduser() if repo_arg else Path.cwd()
    root = get_repo_root(start)
    if root is None:
        raise NotInitializedError(f"Not a git repository: {start}")
    return root.resolve()


def build_orchestrator(repo_path: Path, store: BoardStore, config: BoardConfig) -> Orchestrator:
    vcs = GitRepo(repo_path, remote=config.remote, timeout=config.git_timeout)
    remote = GitHubReview(
        repo_path,
        base_branch=config.base_branch,
        token_env=config.token_env,
        timeout=config.gh_timeout,
    )
    return Orchestrator(store, vcs, remote, config)


def open_board(repo_path: Path) -> BoardContext:
    """Open the board of an initialized repository.

    Raises:
        NotInitializedError: If `pb init` has not been run.
        ConfigError: If config.yaml is invalid.
    """
    paths = BoardPaths(repo_path)
    if not paths.is_initialized():
        raise NotInitializedError("ProjectBoard not initialized. Run 'pb init' first.")
    config = load_board_config(paths)
    store = BoardStore(paths.db_path)
    logger.debug(f"Opened board {paths.db_path}")
    return BoardContext(
        paths=paths,
        config=config,
        store=store,
        orchestrator=build_orchestrator(repo_path, store, config),
    )
