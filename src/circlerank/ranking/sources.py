"""Collaborators the ranking engine consumes but does not own.

- ActiveItemSource: which items are currently rankable in a scope (item
  lifecycle module)
- MembershipSource: which users belong to a sub-group (membership module)
- Notifier: delivers staleness notices (notification module)

The static implementations back the CLI (via a YAML manifest) and tests.
Manifest format::

    scopes:
      - container: circle-1
        item_type: tasks
        items:
          - {id: task-a, created: 1700000000}
          - {id: task-b, created: 1700000100}
        groups:
          core: [user-1, user-2]
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import structlog
import yaml

from circlerank.core.errors import ConfigError, NotFoundError
from circlerank.ranking.models import ActiveItem, ItemType, Scope, StalenessNotice

logger = structlog.get_logger(__name__)


@runtime_checkable
class ActiveItemSource(Protocol):
    """Reports the active item set of a scope.

    Raises NotFoundError for an unknown scope and SourceError when the
    backing module cannot answer.
    """

    def get_active_items(self, scope: Scope) -> list[ActiveItem]: ...


@runtime_checkable
class MembershipSource(Protocol):
    """Reports the user ids belonging to a sub-group of a scope's container."""

    def get_sub_group_members(self, scope: Scope, group: str) -> set[str]: ...


@runtime_checkable
class Notifier(Protocol):
    """Hands a staleness notice to the delivery channel."""

    def notify(self, notice: StalenessNotice) -> None: ...


class StaticItemSource:
    """In-memory active item sets, mutable at runtime.

    Scopes never registered raise NotFoundError unless strict=False, in which
    case they report an empty set.
    """

    def __init__(self, *, strict: bool = True) -> None:
        self._strict = strict
        self._items: dict[Scope, dict[str, ActiveItem]] = {}
        self._lock = threading.Lock()

    def get_active_items(self, scope: Scope) -> list[ActiveItem]:
        with self._lock:
            items = self._items.get(scope)
            if items is None:
                if self._strict:
                    raise NotFoundError.scope(scope.key)
                return []
            return sorted(items.values(), key=lambda item: (item.created_key, item.item_id))

    def set_items(self, scope: Scope, items: Iterable[ActiveItem]) -> None:
        """Replace the active set of a scope."""
        with self._lock:
            self._items[scope] = {item.item_id: item for item in items}

    def add_item(self, scope: Scope, item: ActiveItem) -> None:
        with self._lock:
            self._items.setdefault(scope, {})[item.item_id] = item

    def remove_item(self, scope: Scope, item_id: str) -> None:
        """Drop an item (deleted or deactivated). Unknown ids are ignored."""
        with self._lock:
            self._items.get(scope, {}).pop(item_id, None)

    def scopes(self) -> list[Scope]:
        with self._lock:
            return list(self._items)


class StaticMembershipSource:
    """In-memory sub-group membership keyed by (container, group)."""

    def __init__(self) -> None:
        self._groups: dict[tuple[str, str], set[str]] = {}
        self._lock = threading.Lock()

    def get_sub_group_members(self, scope: Scope, group: str) -> set[str]:
        with self._lock:
            return set(self._groups.get((scope.container_id, group), set()))

    def set_members(self, container_id: str, group: str, user_ids: Iterable[str]) -> None:
        with self._lock:
            self._groups[(container_id, group)] = set(user_ids)


class LoggingNotifier:
    """Notifier that only logs. Default when no delivery channel is wired."""

    def notify(self, notice: StalenessNotice) -> None:
        logger.info(
            "staleness_notice",
            kind=notice.kind.value,
            scope=notice.scope.key,
            user_id=notice.user_id,
            unranked_count=notice.unranked_count,
            grace_period_ends_at=notice.grace_period_ends_at,
        )


def _parse_scope_entry(entry: Any, path: Path) -> tuple[Scope, list[ActiveItem], dict[str, list[str]]]:
    if not isinstance(entry, dict):
        raise ConfigError.parse_error(str(path), "each scope must be a mapping")
    try:
        scope = Scope(str(entry["container"]), ItemType(entry["item_type"]))
        items = [
            ActiveItem(item_id=str(item["id"]), created_key=float(item["created"]))
            for item in entry.get("items") or []
        ]
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigError.parse_error(str(path), f"invalid scope entry: {e}") from e
    groups = {
        str(name): [str(user_id) for user_id in (members or [])]
        for name, members in (entry.get("groups") or {}).items()
    }
    return scope, items, groups


def load_manifest(path: Path) -> tuple[StaticItemSource, StaticMembershipSource]:
    """Build static sources from a YAML manifest.

    Raises:
        ConfigError: Missing file, malformed YAML or invalid entries.
    """
    if not path.exists():
        raise ConfigError.file_not_found(str(path))
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top level must be a mapping")

    items_source = StaticItemSource()
    members_source = StaticMembershipSource()
    for entry in data.get("scopes") or []:
        scope, items, groups = _parse_scope_entry(entry, path)
        items_source.set_items(scope, items)
        for group, user_ids in groups.items():
            members_source.set_members(scope.container_id, group, user_ids)

    logger.debug("manifest_loaded", path=str(path), scopes=len(items_source.scopes()))
    return items_source, members_source
