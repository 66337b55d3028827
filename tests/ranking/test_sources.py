"""Tests for the static collaborator implementations and manifest loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from circlerank.core.errors import ConfigError, NotFoundError
from circlerank.ranking.models import ActiveItem, ItemType, NoticeKind, Scope, StalenessNotice
from circlerank.ranking.sources import (
    ActiveItemSource,
    LoggingNotifier,
    MembershipSource,
    Notifier,
    StaticItemSource,
    StaticMembershipSource,
    load_manifest,
)

SCOPE = Scope("circle-1", ItemType.TASKS)


class TestStaticItemSource:
    """In-memory active sets."""

    def test_items_sorted_by_creation(self) -> None:
        source = StaticItemSource()
        source.set_items(SCOPE, [ActiveItem("b", 2.0), ActiveItem("a", 1.0)])
        assert [item.item_id for item in source.get_active_items(SCOPE)] == ["a", "b"]

    def test_unknown_scope_strict(self) -> None:
        with pytest.raises(NotFoundError):
            StaticItemSource().get_active_items(SCOPE)

    def test_unknown_scope_lenient(self) -> None:
        assert StaticItemSource(strict=False).get_active_items(SCOPE) == []

    def test_add_and_remove(self) -> None:
        source = StaticItemSource()
        source.add_item(SCOPE, ActiveItem("a", 1.0))
        source.add_item(SCOPE, ActiveItem("b", 2.0))
        source.remove_item(SCOPE, "a")
        source.remove_item(SCOPE, "never-there")
        assert [item.item_id for item in source.get_active_items(SCOPE)] == ["b"]

    def test_satisfies_protocol(self) -> None:
        assert isinstance(StaticItemSource(), ActiveItemSource)
        assert isinstance(StaticMembershipSource(), MembershipSource)
        assert isinstance(LoggingNotifier(), Notifier)


class TestStaticMembershipSource:
    """Sub-group membership."""

    def test_members_keyed_by_container(self) -> None:
        source = StaticMembershipSource()
        source.set_members("circle-1", "core", ["u1", "u2"])

        assert source.get_sub_group_members(SCOPE, "core") == {"u1", "u2"}
        assert source.get_sub_group_members(Scope("circle-1", ItemType.GOALS), "core") == {"u1", "u2"}
        assert source.get_sub_group_members(Scope("circle-2", ItemType.TASKS), "core") == set()

    def test_returned_set_is_a_copy(self) -> None:
        source = StaticMembershipSource()
        source.set_members("circle-1", "core", ["u1"])
        source.get_sub_group_members(SCOPE, "core").add("intruder")
        assert source.get_sub_group_members(SCOPE, "core") == {"u1"}


class TestLoggingNotifier:
    def test_notify_does_not_raise(self) -> None:
        notice = StalenessNotice(
            kind=NoticeKind.STALE_REMINDER,
            scope=SCOPE,
            user_id="u1",
            unranked_count=2,
            became_stale_at=0.0,
            grace_period_ends_at=604800.0,
        )
        LoggingNotifier().notify(notice)


class TestLoadManifest:
    """YAML manifest parsing."""

    def test_loads_scopes_and_groups(self, tmp_path: Path) -> None:
        path = tmp_path / "manifest.yaml"
        path.write_text(
            """
scopes:
  - container: circle-1
    item_type: tasks
    items:
      - {id: t2, created: 200}
      - {id: t1, created: 100}
    groups:
      core: [u1, u2]
  - container: circle-1
    item_type: goals
"""
        )

        items, members = load_manifest(path)

        assert items.get_active_items(SCOPE) == [ActiveItem("t1", 100.0), ActiveItem("t2", 200.0)]
        assert items.get_active_items(Scope("circle-1", ItemType.GOALS)) == []
        assert members.get_sub_group_members(SCOPE, "core") == {"u1", "u2"}

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "manifest.yaml"
        path.write_text("")
        items, _ = load_manifest(path)
        assert items.scopes() == []

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError) as exc_info:
            load_manifest(tmp_path / "nope.yaml")
        assert exc_info.value.error_name == "CONFIG_FILE_NOT_FOUND"

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "manifest.yaml"
        path.write_text("scopes: [unclosed")
        with pytest.raises(ConfigError) as exc_info:
            load_manifest(path)
        assert exc_info.value.error_name == "CONFIG_PARSE_ERROR"

    @pytest.mark.parametrize(
        "entry",
        [
            "- just-a-string",
            "- {item_type: tasks}",
            "- {container: c, item_type: widgets}",
            "- {container: c, item_type: tasks, items: [{id: x}]}",
        ],
    )
    def test_invalid_entries(self, tmp_path: Path, entry: str) -> None:
        path = tmp_path / "manifest.yaml"
        path.write_text(f"scopes:\n  {entry}\n")
        with pytest.raises(ConfigError):
            load_manifest(path)

    def test_top_level_must_be_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "manifest.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            load_manifest(path)
