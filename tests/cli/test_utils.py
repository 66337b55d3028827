"""Tests for CLI utilities.

Covers:
- find_root() upward search
- open_engine() config and manifest resolution
- handle_errors() exception translation
"""

from __future__ import annotations

from pathlib import Path

import click
import pytest

from circlerank.cli.utils import find_root, handle_errors, open_engine
from circlerank.core.errors import ConfigError, NotFoundError
from circlerank.ranking.models import ItemType, Scope

MANIFEST = """\
scopes:
  - container: circle-1
    item_type: tasks
    items:
      - {id: A, created: 1}
      - {id: B, created: 2}
"""


class TestFindRoot:
    """Tests for find_root function."""

    def test_finds_root_from_root(self, tmp_path: Path) -> None:
        """Finds the root when starting at it."""
        (tmp_path / ".circlerank").mkdir()
        assert find_root(tmp_path) == tmp_path.resolve()

    def test_finds_root_from_subdirectory(self, tmp_path: Path) -> None:
        """Walks up from a nested directory."""
        (tmp_path / ".circlerank").mkdir()
        nested = tmp_path / "a" / "b" / "c"
        nested.mkdir(parents=True)

        assert find_root(nested) == tmp_path.resolve()

    def test_raises_when_not_initialized(self, tmp_path: Path) -> None:
        """Raises ClickException naming the searched path."""
        with pytest.raises(click.ClickException) as exc_info:
            find_root(tmp_path)

        assert str(tmp_path) in exc_info.value.message
        assert "circlerank init" in exc_info.value.message

    def test_uses_cwd_when_none(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Uses current working directory when start_path is None."""
        (tmp_path / ".circlerank").mkdir()
        monkeypatch.chdir(tmp_path)

        assert find_root() == tmp_path.resolve()

    def test_file_named_like_dir_is_ignored(self, tmp_path: Path) -> None:
        """A regular file called .circlerank does not count."""
        (tmp_path / ".circlerank").write_text("")
        with pytest.raises(click.ClickException):
            find_root(tmp_path)


class TestOpenEngine:
    """Tests for open_engine."""

    def test_uses_default_manifest(self, tmp_path: Path) -> None:
        (tmp_path / ".circlerank").mkdir()
        (tmp_path / ".circlerank" / "manifest.yaml").write_text(MANIFEST)

        engine = open_engine(tmp_path, None)
        try:
            engine.save_ranking(Scope("circle-1", ItemType.TASKS), "u1", ["B", "A"])
            assert (tmp_path / ".circlerank" / "rankings.db").exists()
        finally:
            engine.close()

    def test_explicit_manifest(self, tmp_path: Path) -> None:
        (tmp_path / ".circlerank").mkdir()
        manifest = tmp_path / "elsewhere.yaml"
        manifest.write_text(MANIFEST)

        engine = open_engine(tmp_path, manifest)
        try:
            view = engine.get_scope_view(Scope("circle-1", ItemType.TASKS), "u1")
            assert view.rank_map == {"A": 1, "B": 2}
        finally:
            engine.close()

    def test_missing_manifest(self, tmp_path: Path) -> None:
        (tmp_path / ".circlerank").mkdir()
        with pytest.raises(ConfigError):
            open_engine(tmp_path, None)


class TestHandleErrors:
    """Tests for the error translation decorator."""

    def test_circlerank_error_becomes_click_exception(self) -> None:
        @handle_errors
        def boom() -> None:
            raise NotFoundError.scope("c:tasks")

        with pytest.raises(click.ClickException) as exc_info:
            boom()

        assert "SCOPE_NOT_FOUND" in exc_info.value.message

    def test_other_errors_propagate(self) -> None:
        @handle_errors
        def boom() -> None:
            raise RuntimeError("bug")

        with pytest.raises(RuntimeError):
            boom()

    def test_return_value_passed_through(self) -> None:
        @handle_errors
        def ok() -> int:
            return 42

        assert ok() == 42
