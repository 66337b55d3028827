"""Tests for circlerank init command."""

from pathlib import Path

import yaml
from click.testing import CliRunner

from circlerank.cli.init import initialize_root
from circlerank.cli.main import cli
from circlerank.config.loader import load_config
from circlerank.config.models import CircleRankConfig

runner = CliRunner()


class TestInitCommand:
    """circlerank init command tests."""

    def test_given_empty_dir_when_init_then_creates_config_and_store(self, tmp_path: Path) -> None:
        """Init creates .circlerank/ with config and database."""
        # When
        result = runner.invoke(cli, ["init", "--root", str(tmp_path)])

        # Then
        assert result.exit_code == 0, result.output
        assert (tmp_path / ".circlerank" / "config.yaml").is_file()
        assert (tmp_path / ".circlerank" / "rankings.db").is_file()

    def test_given_missing_dir_when_init_then_creates_it(self, tmp_path: Path) -> None:
        """The target directory is created if needed."""
        target = tmp_path / "new" / "deployment"

        result = runner.invoke(cli, ["init", "--root", str(target)])

        assert result.exit_code == 0, result.output
        assert (target / ".circlerank").is_dir()

    def test_given_init_when_loaded_then_config_matches_defaults(self, tmp_path: Path) -> None:
        """The written template parses and resolves to the defaults."""
        runner.invoke(cli, ["init", "--root", str(tmp_path)])

        content = (tmp_path / ".circlerank" / "config.yaml").read_text()
        assert yaml.safe_load(content)["logging"]["level"] == "INFO"
        assert load_config(tmp_path) == CircleRankConfig()

    def test_given_initialized_dir_when_init_again_then_config_kept(self, tmp_path: Path) -> None:
        """A second init leaves the existing config untouched."""
        runner.invoke(cli, ["init", "--root", str(tmp_path)])
        config_path = tmp_path / ".circlerank" / "config.yaml"
        config_path.write_text("ranking:\n  strategy: copeland\n")

        result = runner.invoke(cli, ["init", "--root", str(tmp_path)])

        assert result.exit_code == 0
        assert "copeland" in config_path.read_text()

    def test_given_initialized_dir_when_init_force_then_rewritten(self, tmp_path: Path) -> None:
        """--force rewrites config.yaml."""
        runner.invoke(cli, ["init", "--root", str(tmp_path)])
        config_path = tmp_path / ".circlerank" / "config.yaml"
        config_path.write_text("ranking:\n  strategy: copeland\n")

        result = runner.invoke(cli, ["init", "--force", "--root", str(tmp_path)])

        assert result.exit_code == 0
        assert load_config(tmp_path).ranking.strategy == "borda"


class TestInitializeRoot:
    """initialize_root() return value."""

    def test_returns_true_then_false(self, tmp_path: Path) -> None:
        assert initialize_root(tmp_path) is True
        assert initialize_root(tmp_path) is False
        assert initialize_root(tmp_path, force=True) is True
