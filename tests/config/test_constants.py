"""Tests for config/constants.py module.

Covers:
- On-disk layout names
- Storage keys
"""

from __future__ import annotations

from pathlib import Path

from circlerank.config.constants import (
    CONFIG_DIR_NAME,
    CONFIG_FILE_NAME,
    DB_FILE_NAME,
    MANIFEST_FILE_NAME,
    SCOPE_KEY_SEPARATOR,
    UNFILTERED_KEY,
)
from circlerank.config.loader import get_db_path
from circlerank.config.models import CircleRankConfig
from circlerank.ranking.models import ItemType, Scope


class TestLayout:
    """Files live under one hidden directory."""

    def test_names(self) -> None:
        assert CONFIG_DIR_NAME == ".circlerank"
        assert CONFIG_FILE_NAME == "config.yaml"
        assert MANIFEST_FILE_NAME == "manifest.yaml"

    def test_default_db_under_config_dir(self, tmp_path: Path) -> None:
        """Default database path joins the layout constants."""
        assert get_db_path(tmp_path, CircleRankConfig()) == tmp_path / CONFIG_DIR_NAME / DB_FILE_NAME


class TestStorageKeys:
    """Keys written to the store."""

    def test_unfiltered_key_is_empty_string(self) -> None:
        """Unfiltered aggregates use a non-null key so the unique index applies."""
        assert UNFILTERED_KEY == ""

    def test_scope_key_format(self) -> None:
        scope = Scope("circle-1", ItemType.GOALS)
        assert scope.key == f"circle-1{SCOPE_KEY_SEPARATOR}goals"
