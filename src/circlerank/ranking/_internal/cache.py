"""Memoized aggregates per (scope, sub-group filter).

Entries are derivable and may be dropped at any time. Ordering between
concurrent recomputes is enforced with per-scope tickets:

- A recompute takes a ticket (AggregateClock.last_ticket + 1) BEFORE reading
  any ranking. The ticket becomes the entry's computed_at.
- invalidate()/invalidate_all() raise an invalidation floor to the last
  issued ticket. Anything computed from a read that may predate the
  invalidation carries a ticket at or below the floor.
- Publishing is a compare-and-swap inside one immediate transaction: the
  candidate is written only if its ticket is above the floor and above the
  stored entry's ticket. A candidate beaten by a newer entry yields the newer
  entry; a candidate at or below the floor is returned to its caller but
  never stored.

A recompute abandoned before publishing leaves nothing behind except a
consumed ticket.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from circlerank.config.constants import UNFILTERED_KEY
from circlerank.core.errors import InternalError, StoreError
from circlerank.ranking._internal.aggregation import (
    DEFAULT_STRATEGY,
    AggregationStrategy,
    aggregate,
)
from circlerank.ranking.models import (
    ActiveItem,
    AggregateClock,
    AggregateEntry,
    AggregateEntryRecord,
    Scope,
)

if TYPE_CHECKING:
    from circlerank.ranking._internal.db import Database
    from circlerank.ranking._internal.store import RankedListStore
    from circlerank.ranking.sources import ActiveItemSource, MembershipSource

logger = structlog.get_logger(__name__)


def _filter_key(group: str | None) -> str:
    return UNFILTERED_KEY if group is None else group


class AggregateCache:
    """Aggregate memo with compare-and-swap recomputation.

    max_age_sec bounds how long an entry is reused; 0 disables reuse so every
    get() misses.
    """

    def __init__(
        self,
        db: Database,
        store: RankedListStore,
        items: ActiveItemSource,
        members: MembershipSource | None = None,
        *,
        strategy: AggregationStrategy = DEFAULT_STRATEGY,
        max_age_sec: float = 3600.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db = db
        self._store = store
        self._items = items
        self._members = members
        self._strategy = strategy
        self._max_age_sec = max_age_sec
        self._now = clock

    @property
    def strategy(self) -> AggregationStrategy:
        return self._strategy

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, scope: Scope, group: str | None = None) -> AggregateEntry | None:
        """Return the stored entry, or None on a miss (absent, invalidated or expired)."""
        if self._max_age_sec == 0:
            return None
        try:
            with self._db.session() as session:
                record = self._find(session, scope, _filter_key(group))
                if record is None or record.rank_map is None:
                    logger.debug("aggregate_cache_miss", scope=scope.key, group=group)
                    return None
                entry = self._to_entry(scope, group, record)
        except SQLAlchemyError as e:
            raise StoreError.unavailable("aggregate_cache.get", str(e)) from e

        age = self._now() - entry.refreshed_at
        if age > self._max_age_sec:
            logger.debug("aggregate_cache_expired", scope=scope.key, group=group, age_sec=age)
            return None
        logger.debug("aggregate_cache_hit", scope=scope.key, group=group)
        return entry

    def get_or_compute(
        self,
        scope: Scope,
        group: str | None = None,
        *,
        active_items: Sequence[ActiveItem] | None = None,
    ) -> AggregateEntry:
        entry = self.get(scope, group)
        if entry is not None:
            return entry
        return self.recompute(scope, group, active_items=active_items)

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def invalidate(self, scope: Scope, group: str | None = None) -> None:
        """Drop the entry for one filter; in-flight recomputes for it are fenced off."""
        key = _filter_key(group)
        try:
            with self._db.immediate_transaction() as session:
                clock = self._clock_row(session, scope)
                record = self._find(session, scope, key)
                if record is None:
                    record = AggregateEntryRecord(
                        container_id=scope.container_id,
                        item_type=scope.item_type.value,
                        filter_key=key,
                    )
                record.rank_map = None
                record.invalidated_through = clock.last_ticket
                session.add(record)
        except SQLAlchemyError as e:
            raise StoreError.unavailable("aggregate_cache.invalidate", str(e)) from e
        logger.debug("aggregate_invalidated", scope=scope.key, group=group)

    def invalidate_all(self, scope: Scope) -> None:
        """Drop every filter's entry for scope, including filters never requested yet."""
        stmt = delete(AggregateEntryRecord).where(
            col(AggregateEntryRecord.container_id) == scope.container_id,
            col(AggregateEntryRecord.item_type) == scope.item_type.value,
        )
        try:
            with self._db.immediate_transaction() as session:
                clock = self._clock_row(session, scope)
                clock.invalidated_through = clock.last_ticket
                session.add(clock)
                session.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError.unavailable("aggregate_cache.invalidate_all", str(e)) from e
        logger.debug("aggregate_scope_invalidated", scope=scope.key)

    # ------------------------------------------------------------------
    # Recompute
    # ------------------------------------------------------------------

    def recompute(
        self,
        scope: Scope,
        group: str | None = None,
        *,
        active_items: Sequence[ActiveItem] | None = None,
    ) -> AggregateEntry:
        """Compute a fresh aggregate and compare-and-swap it into the cache.

        Args:
            scope: Scope to aggregate.
            group: Optional sub-group filter; only its members' rankings fold in.
            active_items: Active set already fetched by the caller, to avoid a
                second round trip to the item source.

        Returns:
            The published entry, or the newer entry that beat it, or the
            unpublished candidate if the scope was invalidated meanwhile.
        """
        ticket = self._issue_ticket(scope)
        candidate = self._build_candidate(scope, group, ticket, active_items)
        return self._publish(candidate)

    def _issue_ticket(self, scope: Scope) -> int:
        try:
            with self._db.immediate_transaction() as session:
                clock = self._clock_row(session, scope)
                clock.last_ticket += 1
                session.add(clock)
                ticket = clock.last_ticket
        except SQLAlchemyError as e:
            raise StoreError.unavailable("aggregate_cache.issue_ticket", str(e)) from e
        return ticket

    def _build_candidate(
        self,
        scope: Scope,
        group: str | None,
        ticket: int,
        active_items: Sequence[ActiveItem] | None,
    ) -> AggregateEntry:
        if active_items is None:
            active_items = self._items.get_active_items(scope)
        rankings = self._store.scan_valid(scope)
        if group is not None:
            if self._members is None:
                raise ValueError(f"Group filter '{group}' requested but no membership source is configured")
            members = self._members.get_sub_group_members(scope, group)
            rankings = [ranking for ranking in rankings if ranking.user_id in members]

        result = aggregate(rankings, active_items, self._strategy)
        return AggregateEntry(
            scope=scope,
            group=group,
            rank_map=result.rank_map,
            total_rankers=result.total_rankers,
            computed_at=ticket,
            refreshed_at=self._now(),
        )

    def _publish(self, candidate: AggregateEntry) -> AggregateEntry:
        scope = candidate.scope
        key = _filter_key(candidate.group)
        try:
            with self._db.immediate_transaction() as session:
                clock = self._clock_row(session, scope)
                record = self._find(session, scope, key)
                floor = max(
                    clock.invalidated_through,
                    record.invalidated_through if record is not None else 0,
                )
                if candidate.computed_at <= floor:
                    logger.debug(
                        "aggregate_candidate_discarded",
                        scope=scope.key,
                        group=candidate.group,
                        reason="invalidated",
                        ticket=candidate.computed_at,
                        floor=floor,
                    )
                    return candidate
                if (
                    record is not None
                    and record.rank_map is not None
                    and record.computed_at > candidate.computed_at
                ):
                    logger.debug(
                        "aggregate_candidate_discarded",
                        scope=scope.key,
                        group=candidate.group,
                        reason="superseded",
                        ticket=candidate.computed_at,
                        newer=record.computed_at,
                    )
                    return self._to_entry(scope, candidate.group, record)

                if record is None:
                    record = AggregateEntryRecord(
                        container_id=scope.container_id,
                        item_type=scope.item_type.value,
                        filter_key=key,
                    )
                record.rank_map = json.dumps(candidate.rank_map)
                record.total_rankers = candidate.total_rankers
                record.computed_at = candidate.computed_at
                record.refreshed_at = candidate.refreshed_at
                session.add(record)
        except SQLAlchemyError as e:
            raise StoreError.unavailable("aggregate_cache.publish", str(e)) from e

        logger.info(
            "aggregate_recomputed",
            scope=scope.key,
            group=candidate.group,
            strategy=self._strategy.name,
            total_rankers=candidate.total_rankers,
            items=len(candidate.rank_map),
            computed_at=candidate.computed_at,
        )
        return candidate

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _find(session: Session, scope: Scope, key: str) -> AggregateEntryRecord | None:
        stmt = select(AggregateEntryRecord).where(
            AggregateEntryRecord.container_id == scope.container_id,
            AggregateEntryRecord.item_type == scope.item_type.value,
            AggregateEntryRecord.filter_key == key,
        )
        return session.exec(stmt).first()

    @staticmethod
    def _clock_row(session: Session, scope: Scope) -> AggregateClock:
        clock = session.get(AggregateClock, (scope.container_id, scope.item_type.value))
        if clock is None:
            clock = AggregateClock(
                container_id=scope.container_id,
                item_type=scope.item_type.value,
            )
            session.add(clock)
        return clock

    @staticmethod
    def _to_entry(scope: Scope, group: str | None, record: AggregateEntryRecord) -> AggregateEntry:
        rank_map = record.get_rank_map()
        if rank_map is None or record.refreshed_at is None:
            raise InternalError.unexpected(
                "aggregate entry has no payload",
                scope=scope.key,
                group=group,
            )
        return AggregateEntry(
            scope=scope,
            group=group,
            rank_map=rank_map,
            total_rankers=record.total_rankers,
            computed_at=record.computed_at,
            refreshed_at=record.refreshed_at,
        )
