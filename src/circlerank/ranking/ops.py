"""High-level entry point of the ranking engine.

RankingEngine wires the components and exposes the caller-facing
operations:

- save_ranking: validate against the active set, upsert, invalidate
- get_scope_view / get_personal_ranking: reads
- notify_active_set_changed: item lifecycle hook (at-least-once delivery)
- sweep / get_staleness_report: staleness backstop and reminders
- tear_down_scope: delete everything stored for a scope

Component graph::

    ActiveItemSource ─┬─> RankedListStore <─┬─ InvalidationSupervisor
                      │         │           │          │
                      │         v           │          v
    MembershipSource ─┴─> AggregateCache <──┴── ScopeQueryFacade

The engine is permission-agnostic: callers must have authorized the
principal before calling in. Scopes are independent; nothing here locks
across scopes.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path

import structlog

from circlerank.config.loader import get_db_path
from circlerank.config.models import CircleRankConfig, StalenessConfig
from circlerank.ranking._internal.aggregation import (
    DEFAULT_STRATEGY,
    AggregationStrategy,
    get_strategy,
)
from circlerank.ranking._internal.cache import AggregateCache
from circlerank.ranking._internal.db import Database, create_additional_indexes
from circlerank.ranking._internal.invalidation import InvalidationSupervisor
from circlerank.ranking._internal.store import RankedListStore
from circlerank.ranking._internal.sweep import StalenessSweeper
from circlerank.ranking._internal.views import ScopeQueryFacade
from circlerank.ranking.models import (
    InvalidationResult,
    PersonalRanking,
    Scope,
    ScopeView,
    StaleRankingInfo,
    SweepResult,
)
from circlerank.ranking.sources import (
    ActiveItemSource,
    LoggingNotifier,
    MembershipSource,
    Notifier,
)

logger = structlog.get_logger(__name__)


class RankingEngine:
    """
    Collaborative ranking engine over one SQLite store.

    Usage::

        engine = RankingEngine(db, items=item_source, members=member_source)
        engine.initialize()

        engine.save_ranking(scope, "user-1", ["a", "b", "c"])
        view = engine.get_scope_view(scope, "user-1")

        # Called by the item lifecycle module after every active-set change
        engine.notify_active_set_changed(scope)
    """

    def __init__(
        self,
        db: Database,
        items: ActiveItemSource,
        members: MembershipSource | None = None,
        notifier: Notifier | None = None,
        *,
        strategy: AggregationStrategy = DEFAULT_STRATEGY,
        max_age_sec: float = 3600.0,
        eager_recompute: bool = False,
        staleness: StalenessConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.db = db
        self._items = items
        self._eager_recompute = eager_recompute

        self.store = RankedListStore(db, clock=clock)
        self.cache = AggregateCache(
            db,
            self.store,
            items,
            members,
            strategy=strategy,
            max_age_sec=max_age_sec,
            clock=clock,
        )
        self.supervisor = InvalidationSupervisor(self.store, self.cache, items, clock=clock)
        self.views = ScopeQueryFacade(self.store, self.cache, items, clock=clock)
        self.sweeper = StalenessSweeper(
            self.store,
            self.supervisor,
            notifier or LoggingNotifier(),
            staleness or StalenessConfig(),
            clock=clock,
        )

    @classmethod
    def from_config(
        cls,
        config: CircleRankConfig,
        items: ActiveItemSource,
        members: MembershipSource | None = None,
        notifier: Notifier | None = None,
        *,
        root: Path | None = None,
        db_path: Path | None = None,
        clock: Callable[[], float] = time.time,
    ) -> RankingEngine:
        """Build an engine from resolved configuration.

        The database path is db_path if given, else resolved from config
        relative to root (default: current directory).
        """
        if db_path is None:
            db_path = get_db_path(root or Path.cwd(), config)
        db = Database(
            db_path,
            max_retries=config.database.max_retries,
            retry_base_delay=config.database.retry_base_delay_sec,
            busy_timeout_ms=config.database.busy_timeout_ms,
        )
        return cls(
            db,
            items,
            members,
            notifier,
            strategy=get_strategy(config.ranking.strategy),
            max_age_sec=config.cache.max_age_sec,
            eager_recompute=config.cache.eager_recompute,
            staleness=config.staleness,
            clock=clock,
        )

    def initialize(self) -> None:
        """Create the schema and lookup indexes. Safe to call repeatedly."""
        self.db.create_all()
        create_additional_indexes(self.db.engine)
        logger.debug("ranking_schema_ready", db_path=str(self.db.db_path))

    def close(self) -> None:
        self.db.dispose()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save_ranking(
        self,
        scope: Scope,
        user_id: str,
        ordered_item_ids: Sequence[str],
    ) -> PersonalRanking:
        """Save user_id's total order over the scope's current active set.

        Raises:
            RankingValidationError: Duplicates, or not exactly the active set.
                The previous ranking is left untouched.
            NotFoundError: The item source does not know the scope.
        """
        active = self._items.get_active_items(scope)
        ranking = self.store.upsert(
            scope,
            user_id,
            ordered_item_ids,
            [item.item_id for item in active],
        )
        self.cache.invalidate_all(scope)
        if self._eager_recompute:
            self.cache.recompute(scope, active_items=active)
        return ranking

    def notify_active_set_changed(self, scope: Scope) -> InvalidationResult:
        """Reconcile rankings after items were created, deleted or (de)activated.

        Duplicate notifications are harmless. Errors propagate so the
        caller can redeliver.
        """
        result = self.supervisor.on_active_set_changed(scope)
        if self._eager_recompute:
            active = self.supervisor.fetch_active_items(scope)
            if active:
                self.cache.recompute(scope, active_items=active)
        return result

    def tear_down_scope(self, scope: Scope) -> int:
        """Delete every ranking and aggregate of a scope that no longer exists."""
        deleted = self.store.purge_scope(scope)
        self.cache.invalidate_all(scope)
        return deleted

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_scope_view(
        self,
        scope: Scope,
        viewer_user_id: str,
        group: str | None = None,
    ) -> ScopeView:
        return self.views.get_scope_view(scope, viewer_user_id, group)

    def get_personal_ranking(self, scope: Scope, user_id: str) -> PersonalRanking | None:
        return self.store.get(scope, user_id)

    def get_staleness_report(self, scope: Scope) -> list[StaleRankingInfo]:
        return self.views.get_staleness_report(scope, self.sweeper.grace_period_sec)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def sweep(self, scopes: Iterable[Scope] | None = None) -> SweepResult:
        """Run the staleness sweep (reconcile + reminders)."""
        return self.sweeper.sweep(scopes)
