"""Durable per-(scope, user) personal rankings.

Writers:
- upsert(): the owner's save. Replaces the order, forces the record valid
  and clears every staleness field. created_at is fixed on first insert.
- mark_invalid(): the invalidation supervisor. Only flips is_valid off and
  stamps became_stale_at; never touches the order.
- record_notice(): the staleness sweep. Only stamps reminder send times.

Records are never deleted except by purge_scope() (scope teardown).
"""

from __future__ import annotations

import time
from collections.abc import Callable, Collection, Iterable, Sequence
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from circlerank.core.errors import RankingValidationError, StoreError
from circlerank.ranking.models import (
    ItemType,
    NoticeKind,
    PersonalRanking,
    PersonalRankingRecord,
    Scope,
)

if TYPE_CHECKING:
    from circlerank.ranking._internal.db import Database

logger = structlog.get_logger(__name__)


def validate_ranking(
    scope: Scope,
    ordered_items: Sequence[str],
    active_ids: Collection[str],
) -> tuple[str, ...]:
    """Check that ordered_items is a permutation of active_ids.

    Raises:
        RankingValidationError: On duplicates, or when the submitted set is
            not exactly the active set.
    """
    items = tuple(ordered_items)
    seen: set[str] = set()
    duplicates: list[str] = []
    for item in items:
        if item in seen:
            duplicates.append(item)
        seen.add(item)
    if duplicates:
        raise RankingValidationError.duplicate_items(scope.key, duplicates)

    active = set(active_ids)
    missing = active - seen
    unknown = seen - active
    if missing or unknown:
        raise RankingValidationError.set_mismatch(scope.key, missing, unknown)
    return items


def _to_ranking(scope: Scope, record: PersonalRankingRecord) -> PersonalRanking:
    return PersonalRanking(
        scope=scope,
        user_id=record.user_id,
        ordered_items=tuple(record.get_ordered_items()),
        created_at=record.created_at,
        updated_at=record.updated_at,
        is_valid=record.is_valid,
        became_stale_at=record.became_stale_at,
        stale_reminder_sent_at=record.stale_reminder_sent_at,
        grace_ended_sent_at=record.grace_ended_sent_at,
    )


class RankedListStore:
    """Personal ranking persistence over the SQLite database."""

    def __init__(self, db: Database, *, clock: Callable[[], float] = time.time) -> None:
        self._db = db
        self._clock = clock

    def upsert(
        self,
        scope: Scope,
        user_id: str,
        ordered_items: Sequence[str],
        active_ids: Collection[str],
    ) -> PersonalRanking:
        """Create or replace user_id's ranking for scope.

        active_ids is the scope's active item set as reported at call time.
        Validation happens before any write, so a rejected save leaves the
        previous ranking untouched.
        """
        if not user_id:
            raise ValueError("user_id must be non-empty")
        items = validate_ranking(scope, ordered_items, active_ids)
        now = self._clock()

        try:
            with self._db.immediate_transaction() as session:
                record = self._find(session, scope, user_id)
                created = record is None
                if record is None:
                    record = PersonalRankingRecord(
                        container_id=scope.container_id,
                        item_type=scope.item_type.value,
                        user_id=user_id,
                        ordered_items="[]",
                        created_at=now,
                        updated_at=now,
                    )
                record.set_ordered_items(items)
                record.updated_at = now
                record.is_valid = True
                record.became_stale_at = None
                record.stale_reminder_sent_at = None
                record.grace_ended_sent_at = None
                session.add(record)
                session.flush()
                ranking = _to_ranking(scope, record)
        except SQLAlchemyError as e:
            raise StoreError.unavailable("upsert", str(e)) from e

        logger.info(
            "ranking_saved",
            scope=scope.key,
            user_id=user_id,
            items=len(items),
            created=created,
        )
        return ranking

    def get(self, scope: Scope, user_id: str) -> PersonalRanking | None:
        """Point lookup of one user's ranking."""
        try:
            with self._db.session() as session:
                record = self._find(session, scope, user_id)
                return _to_ranking(scope, record) if record else None
        except SQLAlchemyError as e:
            raise StoreError.unavailable("get", str(e)) from e

    def scan_valid(self, scope: Scope) -> list[PersonalRanking]:
        """All rankings of scope currently flagged valid."""
        return self._scan(scope, valid_only=True)

    def scan_all(self, scope: Scope) -> list[PersonalRanking]:
        """All rankings of scope, stale ones included."""
        return self._scan(scope, valid_only=False)

    def mark_invalid(self, scope: Scope, user_ids: Iterable[str], at: float) -> int:
        """Flag the given users' rankings stale, returning how many flipped.

        Records that are already invalid are left alone (their
        became_stale_at keeps the start of the stale period), so re-marking
        is a no-op.
        """
        targets = sorted(set(user_ids))
        if not targets:
            return 0

        stmt = (
            update(PersonalRankingRecord)
            .where(
                col(PersonalRankingRecord.container_id) == scope.container_id,
                col(PersonalRankingRecord.item_type) == scope.item_type.value,
                col(PersonalRankingRecord.user_id).in_(targets),
                col(PersonalRankingRecord.is_valid).is_(True),
            )
            .values(is_valid=False, became_stale_at=at)
        )
        try:
            with self._db.immediate_transaction() as session:
                result = session.execute(stmt)
                updated = int(result.rowcount)  # type: ignore[attr-defined]
        except SQLAlchemyError as e:
            raise StoreError.unavailable("mark_invalid", str(e)) from e

        if updated:
            logger.info("rankings_marked_stale", scope=scope.key, count=updated)
        return updated

    def record_notice(self, scope: Scope, user_id: str, kind: NoticeKind, at: float) -> bool:
        """Stamp the send time of a staleness notice on a still-stale ranking."""
        column = (
            PersonalRankingRecord.stale_reminder_sent_at
            if kind == NoticeKind.STALE_REMINDER
            else PersonalRankingRecord.grace_ended_sent_at
        )
        stmt = (
            update(PersonalRankingRecord)
            .where(
                col(PersonalRankingRecord.container_id) == scope.container_id,
                col(PersonalRankingRecord.item_type) == scope.item_type.value,
                col(PersonalRankingRecord.user_id) == user_id,
                col(PersonalRankingRecord.is_valid).is_(False),
            )
            .values({col(column): at})
        )
        try:
            with self._db.immediate_transaction() as session:
                result = session.execute(stmt)
                return int(result.rowcount) == 1  # type: ignore[attr-defined]
        except SQLAlchemyError as e:
            raise StoreError.unavailable("record_notice", str(e)) from e

    def list_scopes(self) -> list[Scope]:
        """Every scope with at least one stored ranking."""
        stmt = (
            select(PersonalRankingRecord.container_id, PersonalRankingRecord.item_type)
            .distinct()
            .order_by(
                col(PersonalRankingRecord.container_id),
                col(PersonalRankingRecord.item_type),
            )
        )
        try:
            with self._db.session() as session:
                rows = session.exec(stmt).all()
        except SQLAlchemyError as e:
            raise StoreError.unavailable("list_scopes", str(e)) from e
        return [Scope(container_id, ItemType(item_type)) for container_id, item_type in rows]

    def purge_scope(self, scope: Scope) -> int:
        """Delete every ranking of a torn-down scope."""
        stmt = delete(PersonalRankingRecord).where(
            col(PersonalRankingRecord.container_id) == scope.container_id,
            col(PersonalRankingRecord.item_type) == scope.item_type.value,
        )
        try:
            with self._db.immediate_transaction() as session:
                result = session.execute(stmt)
                deleted = int(result.rowcount)  # type: ignore[attr-defined]
        except SQLAlchemyError as e:
            raise StoreError.unavailable("purge_scope", str(e)) from e
        logger.info("scope_rankings_purged", scope=scope.key, count=deleted)
        return deleted

    def _scan(self, scope: Scope, *, valid_only: bool) -> list[PersonalRanking]:
        stmt = select(PersonalRankingRecord).where(
            PersonalRankingRecord.container_id == scope.container_id,
            PersonalRankingRecord.item_type == scope.item_type.value,
        )
        if valid_only:
            stmt = stmt.where(col(PersonalRankingRecord.is_valid).is_(True))
        stmt = stmt.order_by(col(PersonalRankingRecord.id))
        try:
            with self._db.session() as session:
                return [_to_ranking(scope, record) for record in session.exec(stmt).all()]
        except SQLAlchemyError as e:
            raise StoreError.scan_failed(scope.key, str(e)) from e

    @staticmethod
    def _find(session: Session, scope: Scope, user_id: str) -> PersonalRankingRecord | None:
        stmt = select(PersonalRankingRecord).where(
            PersonalRankingRecord.container_id == scope.container_id,
            PersonalRankingRecord.item_type == scope.item_type.value,
            PersonalRankingRecord.user_id == user_id,
        )
        return session.exec(stmt).first()
