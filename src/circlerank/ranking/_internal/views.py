"""Read-side views combining the store, the cache and the active set."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TYPE_CHECKING

import structlog

from circlerank.core.errors import NotFoundError
from circlerank.ranking.models import ScopeView, StaleRankingInfo

if TYPE_CHECKING:
    from circlerank.ranking._internal.cache import AggregateCache
    from circlerank.ranking._internal.store import RankedListStore
    from circlerank.ranking.models import ActiveItem, Scope
    from circlerank.ranking.sources import ActiveItemSource

logger = structlog.get_logger(__name__)


class ScopeQueryFacade:
    """Builds ScopeView and staleness reports. Writes nothing except cache fills."""

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

    def _active_items(self, scope: Scope) -> list[ActiveItem] | None:
        try:
            return self._items.get_active_items(scope)
        except NotFoundError:
            return None

    def get_scope_view(
        self,
        scope: Scope,
        viewer_user_id: str,
        group: str | None = None,
    ) -> ScopeView:
        """Aggregate plus the viewer's own ranking and coverage.

        A scope with no active items (or unknown to the item source) yields an
        empty aggregate with total_rankers 0 rather than an error.
        """
        personal = self._store.get(scope, viewer_user_id)
        active = self._active_items(scope)

        if not active:
            logger.debug("scope_view_empty", scope=scope.key, group=group)
            return ScopeView(
                scope=scope,
                rank_map={},
                total_rankers=0,
                personal=personal,
                has_ranked=personal is not None,
                unranked_count=0,
                rank_updated_at=personal.updated_at if personal else None,
                rank_became_stale_at=personal.became_stale_at if personal else None,
                group=group,
            )

        entry = self._cache.get_or_compute(scope, group, active_items=active)
        active_ids = frozenset(item.item_id for item in active)
        if personal is None:
            unranked = len(active_ids)
        else:
            unranked = personal.unranked_count(active_ids)

        return ScopeView(
            scope=scope,
            rank_map=dict(entry.rank_map),
            total_rankers=entry.total_rankers,
            personal=personal,
            has_ranked=personal is not None,
            unranked_count=unranked,
            rank_updated_at=personal.updated_at if personal else None,
            rank_became_stale_at=personal.became_stale_at if personal else None,
            group=group,
            computed_at=entry.computed_at,
        )

    def get_staleness_report(self, scope: Scope, grace_period_sec: float) -> list[StaleRankingInfo]:
        """One entry per stale ranking in scope, oldest staleness first."""
        active = self._active_items(scope) or []
        active_ids = frozenset(item.item_id for item in active)
        now = self._clock()

        report = []
        for ranking in self._store.scan_all(scope):
            if ranking.is_valid:
                continue
            stale_since = ranking.became_stale_at
            report.append(
                StaleRankingInfo(
                    user_id=ranking.user_id,
                    became_stale_at=stale_since,
                    past_grace_period=stale_since is not None
                    and now - stale_since >= grace_period_sec,
                    unranked_count=ranking.unranked_count(active_ids),
                )
            )
        report.sort(key=lambda info: (info.became_stale_at or 0.0, info.user_id))
        return report
