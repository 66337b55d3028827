"""Periodic staleness sweep.

Each run, per scope:
1. Re-run active-set reconciliation, so a lost change notification cannot
   leave a mismatched ranking counted.
2. Walk the stale rankings and hand due notices to the notifier:
   - GRACE_PERIOD_ENDED once the grace period has elapsed
   - otherwise STALE_REMINDER once the reminder delay has elapsed
   Each kind is sent at most once per stale period: a send time recorded
   before became_stale_at belongs to an earlier period and does not count.

A failing scope is logged and reported in SweepResult.failed; the sweep
moves on to the next scope. A notifier that raises fails only its scope:
the remaining rankings of that scope still get their notices, and the
undelivered notice is not stamped as sent.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

import structlog

from circlerank.core.errors import CircleRankError
from circlerank.ranking.models import (
    NoticeKind,
    PersonalRanking,
    Scope,
    StalenessNotice,
    SweepResult,
)

if TYPE_CHECKING:
    from circlerank.config.models import StalenessConfig
    from circlerank.ranking._internal.invalidation import InvalidationSupervisor
    from circlerank.ranking._internal.store import RankedListStore
    from circlerank.ranking.sources import Notifier

logger = structlog.get_logger(__name__)

HOUR_SEC = 3600.0
DAY_SEC = 24 * HOUR_SEC


def _sent_in_period(sent_at: float | None, stale_since: float) -> bool:
    return sent_at is not None and sent_at >= stale_since


class StalenessSweeper:
    """Backstop reconciliation plus reminders for stale rankings."""

    def __init__(
        self,
        store: RankedListStore,
        supervisor: InvalidationSupervisor,
        notifier: Notifier,
        config: StalenessConfig,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._supervisor = supervisor
        self._notifier = notifier
        self._reminder_after_sec = config.reminder_after_hours * HOUR_SEC
        self._grace_period_sec = config.grace_period_days * DAY_SEC
        self._clock = clock

    @property
    def grace_period_sec(self) -> float:
        return self._grace_period_sec

    def sweep(self, scopes: Iterable[Scope] | None = None) -> SweepResult:
        """Sweep the given scopes, or every scope with stored rankings."""
        start = time.monotonic()
        result = SweepResult()
        targets = list(scopes) if scopes is not None else self._store.list_scopes()

        for scope in targets:
            try:
                self._sweep_scope(scope, result)
            except CircleRankError as e:
                logger.warning(
                    "sweep_scope_failed",
                    scope=scope.key,
                    code=e.code.name,
                    error=e.message,
                )
                result.failed[scope.key] = str(e)
                continue
            if scope.key not in result.failed:
                result.scopes_processed += 1

        logger.info(
            "sweep_finished",
            scopes=result.scopes_processed,
            marked_stale=result.rankings_marked_stale,
            notices=len(result.notices_sent),
            failed=len(result.failed),
            duration_sec=round(time.monotonic() - start, 3),
        )
        return result

    def _sweep_scope(self, scope: Scope, result: SweepResult) -> None:
        reconciled = self._supervisor.on_active_set_changed(scope)
        result.rankings_marked_stale += len(reconciled.marked_stale)

        active_ids = frozenset(
            item.item_id for item in self._supervisor.fetch_active_items(scope)
        )
        now = self._clock()
        for ranking in self._store.scan_all(scope):
            if ranking.is_valid or ranking.became_stale_at is None:
                continue
            kind = self._due_notice(ranking, now)
            if kind is None:
                continue
            notice = StalenessNotice(
                kind=kind,
                scope=scope,
                user_id=ranking.user_id,
                unranked_count=ranking.unranked_count(active_ids),
                became_stale_at=ranking.became_stale_at,
                grace_period_ends_at=ranking.became_stale_at + self._grace_period_sec,
            )
            try:
                self._notifier.notify(notice)
            except Exception as e:
                # Not stamped, so the next sweep retries this notice.
                logger.error(
                    "notice_delivery_failed",
                    scope=scope.key,
                    user_id=ranking.user_id,
                    kind=kind.value,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                result.failed[scope.key] = f"{kind.value} to {ranking.user_id}: {e}"
                continue
            result.notices_sent.append(notice)
            if not self._store.record_notice(scope, ranking.user_id, kind, now):
                # Re-saved between the scan and the stamp.
                logger.debug("notice_target_revalidated", scope=scope.key, user_id=ranking.user_id)

    def _due_notice(self, ranking: PersonalRanking, now: float) -> NoticeKind | None:
        stale_since = ranking.became_stale_at
        if stale_since is None:
            return None
        age = now - stale_since
        # One notice per ranking per run. A ranking first seen past the grace
        # period gets only GRACE_PERIOD_ENDED, never a late reminder too.
        if age >= self._grace_period_sec:
            if _sent_in_period(ranking.grace_ended_sent_at, stale_since):
                return None
            return NoticeKind.GRACE_PERIOD_ENDED
        if age >= self._reminder_after_sec:
            if _sent_in_period(ranking.stale_reminder_sent_at, stale_since):
                return None
            return NoticeKind.STALE_REMINDER
        return None
