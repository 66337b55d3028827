"""Reconciles personal rankings with a changed active item set.

on_active_set_changed() is the only path that flips rankings from valid to
stale. It never rewrites an order and never revalidates: a stale ranking is
repaired only by its owner saving again.

Redundant or concurrent calls are harmless. The mismatch set is computed
from a snapshot, already-stale records are skipped by mark_invalid(), and a
later notification corrects anything a racing change slipped past.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TYPE_CHECKING

import structlog

from circlerank.core.errors import NotFoundError
from circlerank.ranking.models import ActiveItem, InvalidationResult, Scope

if TYPE_CHECKING:
    from circlerank.ranking._internal.cache import AggregateCache
    from circlerank.ranking._internal.store import RankedListStore
    from circlerank.ranking.sources import ActiveItemSource

logger = structlog.get_logger(__name__)


class InvalidationSupervisor:
    """Flags mismatched rankings stale and drops the scope's aggregates."""

    def __init__(
        self,
        store: RankedListStore,
        cache: AggregateCache,
        items: ActiveItemSource,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._cache = cache
        self._items = items
        self._clock = clock

    def fetch_active_items(self, scope: Scope) -> list[ActiveItem]:
        """Current active set; a scope unknown to the item source has none."""
        try:
            return self._items.get_active_items(scope)
        except NotFoundError:
            logger.debug("active_set_not_found", scope=scope.key)
            return []

    def on_active_set_changed(self, scope: Scope) -> InvalidationResult:
        """Rescan scope and mark every valid ranking that no longer matches.

        Store and source errors propagate; the caller is expected to retry,
        since a missed invalidation leaves mismatched rankings counted.
        """
        active_ids = frozenset(item.item_id for item in self.fetch_active_items(scope))
        rankings = self._store.scan_all(scope)

        mismatched: list[str] = []
        already_stale = 0
        for ranking in rankings:
            if not ranking.is_valid:
                already_stale += 1
            elif ranking.item_set != active_ids:
                mismatched.append(ranking.user_id)

        if mismatched:
            self._store.mark_invalid(scope, mismatched, self._clock())
        self._cache.invalidate_all(scope)

        logger.info(
            "active_set_reconciled",
            scope=scope.key,
            active_items=len(active_ids),
            scanned=len(rankings),
            marked_stale=len(mismatched),
            already_stale=already_stale,
        )
        return InvalidationResult(
            scope=scope,
            scanned=len(rankings),
            marked_stale=tuple(mismatched),
            already_stale=already_stale,
        )
