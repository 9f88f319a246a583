"""Tests for projectboard.lib.config and projectboard.lib.validate."""

import pytest
import yaml

from projectboard.lib.config import (
    BoardConfig,
    BoardPaths,
    load_board_config,
    write_default_config,
)
from projectboard.lib.errors import ConfigError
from projectboard.lib.validate import ValidationError, validate


@pytest.fixture
def paths(tmp_path):
    p = BoardPaths(tmp_path)
    p.board_dir.mkdir()
    return p


class TestBoardPaths:
    def test_layout(self, tmp_path):
        p = BoardPaths(tmp_path)
        assert p.board_dir == tmp_path / ".projectboard"
        assert p.db_path == tmp_path / ".projectboard" / "board.sqlite"
        assert p.config_path == tmp_path / ".projectboard" / "config.yaml"

    def test_initialized_only_with_database(self, paths):
        assert paths.is_initialized() is False
        paths.db_path.write_bytes(b"")
        assert paths.is_initialized() is True


class TestLoadBoardConfig:
    """Test load_board_config function."""

    def test_missing_file_gives_defaults(self, paths):
        config = load_board_config(paths)
        assert config == BoardConfig()
        assert config.base_branch == "main"
        assert config.remote == "origin"
        assert config.token_env == "GITHUB_TOKEN"
        assert config.author is None

    def test_empty_file_gives_defaults(self, paths):
        paths.config_path.write_text("")
        assert load_board_config(paths) == BoardConfig()

    def test_overrides(self, paths):
        paths.config_path.write_text("base_branch: develop\ngh_timeout: 45\nauthor: Dana\n")
        config = load_board_config(paths)
        assert config.base_branch == "develop"
        assert config.gh_timeout == 45
        assert config.author == "Dana"
        assert config.remote == "origin"

    def test_invalid_yaml(self, paths):
        paths.config_path.write_text("base_branch: [unclosed\n")
        with pytest.raises(ConfigError, match="Failed to parse"):
            load_board_config(paths)

    def test_not_a_mapping(self, paths):
        paths.config_path.write_text("- main\n- origin\n")
        with pytest.raises(ConfigError, match="must contain a mapping"):
            load_board_config(paths)

    def test_unknown_key_rejected(self, paths):
        paths.config_path.write_text("base_brnch: main\n")
        with pytest.raises(ValidationError):
            load_board_config(paths)

    def test_wrong_type_rejected(self, paths):
        paths.config_path.write_text("git_timeout: soon\n")
        with pytest.raises(ValidationError) as exc_info:
            load_board_config(paths)
        assert exc_info.value.path == "git_timeout"


class TestWriteDefaultConfig:
    def test_round_trip(self, paths):
        written = write_default_config(paths)
        assert written == paths.config_path
        assert paths.config_path.read_text().startswith("#")
        assert load_board_config(paths) == BoardConfig()

    def test_every_field_present(self, paths):
        write_default_config(paths)
        data = yaml.safe_load(paths.config_path.read_text())
        assert set(data) == {"base_branch", "remote", "git_timeout", "gh_timeout", "token_env", "author"}


class TestValidate:
    def test_valid_config(self):
        validate({"base_branch": "main", "git_timeout": 10}, "config")

    def test_bad_token_env_name(self):
        with pytest.raises(ValidationError, match=r"\[config\]"):
            validate({"token_env": "1-bad"}, "config")

    def test_all_violations_reported(self):
        with pytest.raises(ValidationError) as exc_info:
            validate({"remote": "", "git_timeout": 0}, "config")
        assert exc_info.value.path == "git_timeout"
        assert "also: remote:" in str(exc_info.value)

    def test_unknown_schema(self):
        with pytest.raises(ValidationError, match="Schema file not found"):
            validate({}, "nope")

    def test_validation_error_is_config_error(self):
        assert issubclass(ValidationError, ConfigError)
