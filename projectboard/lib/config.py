"""
Configuration loaders for ProjectBoard.

Board state lives in <repo>/.projectboard/. Settings are read from the
optional config.yaml there; a missing file means defaults.
"""

import logging
from dataclasses import dataclass, fields
from pathlib import Path

import yaml

from projectboard.lib import validate
from projectboard.lib.errors import ConfigError
from projectboard.lib.github import DEFAULT_TOKEN_ENV, GH_TIMEOUT_SECONDS
from projectboard.git.runner import DEFAULT_TIMEOUT as GIT_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

BOARD_DIR_NAME = ".projectboard"
DB_FILE_NAME = "board.sqlite"
CONFIG_FILE_NAME = "config.yaml"


@dataclass
class BoardPaths:
    """Locations of the board files for one repository."""
    repo_path: Path

    @property
    def board_dir(self) -> Path:
        return self.repo_path / BOARD_DIR_NAME

    @property
    def db_path(self) -> Path:
        return self.board_dir / DB_FILE_NAME

    @property
    def config_path(self) -> Path:
        return self.board_dir / CONFIG_FILE_NAME

    def is_initialized(self) -> bool:
        return self.db_path.exists()


@dataclass
class BoardConfig:
    """Board settings from config.yaml."""
    base_branch: str = "main"
    remote: str = "origin"
    git_timeout: int = GIT_TIMEOUT_SECONDS
    gh_timeout: int = GH_TIMEOUT_SECONDS
    token_env: str = DEFAULT_TOKEN_ENV
    author: str | None = None


def load_board_config(paths: BoardPaths) -> BoardConfig:
    """Load config.yaml and return BoardConfig.

    Returns defaults if the file doesn't exist or is empty.

    Raises:
        ConfigError: If the file is not valid YAML or fails schema validation.
    """
    config_path = paths.config_path
    if not config_path.exists():
        return BoardConfig()

    try:
        data = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse {config_path}: {e}") from None

    if data is None:
        return BoardConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping, got {type(data).__name__}")

    validate.validate(data, "config")
    logger.debug(f"Loaded config from {config_path}: {sorted(data)}")
    return BoardConfig(**data)


def write_default_config(paths: BoardPaths) -> Path:
    """Write a commented config.yaml with the default values."""
    defaults = BoardConfig()
    lines = ["# ProjectBoard settings. Delete a key to use its default."]
    for f in fields(BoardConfig):
        value = getattr(defaults, f.name)
        lines.append(yaml.safe_dump({f.name: value}, default_flow_style=False).strip())
    paths.config_path.write_text("\n".join(lines) + "\n")
    return paths.config_path
