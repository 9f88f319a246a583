"""
pb init - Create the board for the current repository.
"""

import logging
from pathlib import Path

from projectboard.git import ensure_excluded, get_remote_url
from projectboard.lib.config import BOARD_DIR_NAME, BoardPaths, write_default_config
from projectboard.lib.github import extract_github_info
from projectboard.storage.db import BoardStore
from projectboard.storage.models import ActivityEntry

logger = logging.getLogger(__name__)


def cmd_init(args, repo_path: Path) -> int:
    """Create .projectboard/ with the database, seeded columns and config."""
    paths = BoardPaths(repo_path)
    if paths.is_initialized():
        print(f"ERROR: ProjectBoard already initialized in {repo_path}")
        return 1

    print("Initializing ProjectBoard...")
    with BoardStore(paths.db_path) as store:
        columns = store.seed_columns()
        project = store.get_project_by_path(str(repo_path))
        if project is None:
            project = store.create_project(repo_path.name or "project", str(repo_path))
        store.append_activity(ActivityEntry(
            event="project_initialized",
            metadata={"name": project.name, "repo_path": project.repo_path},
        ))

    if not paths.config_path.exists():
        write_default_config(paths)

    # The database must never end up in a task commit
    if ensure_excluded(repo_path, f"/{BOARD_DIR_NAME}/"):
        logger.debug(f"Added /{BOARD_DIR_NAME}/ to .git/info/exclude")

    print("Created columns:")
    for column in columns:
        print(f"  - {column.name}")

    remote_url = get_remote_url(repo_path)
    github = extract_github_info(remote_url) if remote_url else None
    if github:
        print(f"GitHub repository: {github[0]}/{github[1]}")
    else:
        print("No GitHub remote found; 'pb submit' and 'pb review' need one.")

    print(f"Database: {paths.db_path}")
    print(f"Config:   {paths.config_path}")
    print("Use 'pb add \"Task title\"' to create your first task.")
    return 0
