"""SQLModel definitions and value types for the ranking engine.

Tables:
- personal_rankings: one row per (container, item type, user); the only
  source of truth
- aggregate_entries: memoized consensus per (container, item type, filter);
  droppable at any time
- aggregate_clocks: per-scope recompute tickets and invalidation floor

Value types (frozen dataclasses) are what the engine hands to callers; table
rows never leave the store and cache modules.
"""

import json
from dataclasses import dataclass, field
from enum import Enum

from sqlmodel import Field, SQLModel

from circlerank.config.constants import SCOPE_KEY_SEPARATOR

# ============================================================================
# ENUMS
# ============================================================================


class ItemType(str, Enum):
    """Kinds of circle items members can rank."""

    TASKS = "tasks"
    GOALS = "goals"
    ISSUES = "issues"
    PROPOSALS = "proposals"


class NoticeKind(str, Enum):
    """Staleness notices sent to ranking owners."""

    STALE_REMINDER = "stale_reminder"
    GRACE_PERIOD_ENDED = "grace_period_ended"


# ============================================================================
# VALUE TYPES
# ============================================================================


@dataclass(frozen=True, slots=True)
class Scope:
    """A container (e.g. circle id) paired with the item type being ranked."""

    container_id: str
    item_type: ItemType

    def __post_init__(self) -> None:
        if not self.container_id:
            raise ValueError("container_id must be non-empty")
        if not isinstance(self.item_type, ItemType):
            object.__setattr__(self, "item_type", ItemType(self.item_type))

    @property
    def key(self) -> str:
        """Printable key, e.g. 'circle-1:tasks'."""
        return f"{self.container_id}{SCOPE_KEY_SEPARATOR}{self.item_type.value}"

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True, slots=True)
class ActiveItem:
    """An item currently eligible for ranking.

    created_key orders items by creation (timestamp or monotonic id); lower
    means older.
    """

    item_id: str
    created_key: float


@dataclass(frozen=True, slots=True)
class PersonalRanking:
    """One user's total order over a scope's active items."""

    scope: Scope
    user_id: str
    ordered_items: tuple[str, ...]
    created_at: float
    updated_at: float
    is_valid: bool = True
    became_stale_at: float | None = None
    stale_reminder_sent_at: float | None = None
    grace_ended_sent_at: float | None = None

    @property
    def item_set(self) -> frozenset[str]:
        return frozenset(self.ordered_items)

    def unranked_count(self, active_ids: frozenset[str] | set[str]) -> int:
        """Number of active items this ranking does not place."""
        return len(set(active_ids) - self.item_set)


@dataclass(frozen=True, slots=True)
class AggregateResult:
    """Output of one aggregation run."""

    rank_map: dict[str, int]
    total_rankers: int


@dataclass(frozen=True, slots=True)
class AggregateEntry:
    """A memoized aggregate for (scope, group filter).

    computed_at is the recompute ticket (monotonic per scope), not wall time;
    refreshed_at is wall time and only drives max-age expiry.
    """

    scope: Scope
    group: str | None
    rank_map: dict[str, int]
    total_rankers: int
    computed_at: int
    refreshed_at: float


@dataclass(frozen=True, slots=True)
class ScopeView:
    """Everything a viewer needs to render a scope's ranking state."""

    scope: Scope
    rank_map: dict[str, int]
    total_rankers: int
    personal: PersonalRanking | None
    has_ranked: bool
    unranked_count: int
    rank_updated_at: float | None
    rank_became_stale_at: float | None
    group: str | None = None
    computed_at: int | None = None

    def to_dict(self) -> dict[str, object]:
        """Serialize for JSON output."""
        return {
            "scope": self.scope.key,
            "group": self.group,
            "rank_map": dict(self.rank_map),
            "total_rankers": self.total_rankers,
            "has_ranked": self.has_ranked,
            "unranked_count": self.unranked_count,
            "rank_updated_at": self.rank_updated_at,
            "rank_became_stale_at": self.rank_became_stale_at,
            "personal": list(self.personal.ordered_items) if self.personal else None,
            "personal_is_valid": self.personal.is_valid if self.personal else None,
            "computed_at": self.computed_at,
        }


@dataclass(frozen=True, slots=True)
class StaleRankingInfo:
    """Staleness status of one stale ranking."""

    user_id: str
    became_stale_at: float | None
    past_grace_period: bool
    unranked_count: int


@dataclass(frozen=True, slots=True)
class InvalidationResult:
    """Outcome of one active-set reconciliation for a scope."""

    scope: Scope
    scanned: int
    marked_stale: tuple[str, ...]
    already_stale: int


@dataclass(frozen=True, slots=True)
class StalenessNotice:
    """A reminder to hand to the notification collaborator."""

    kind: NoticeKind
    scope: Scope
    user_id: str
    unranked_count: int
    became_stale_at: float
    grace_period_ends_at: float


@dataclass
class SweepResult:
    """Statistics from a staleness sweep."""

    scopes_processed: int = 0
    rankings_marked_stale: int = 0
    notices_sent: list[StalenessNotice] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)  # scope key -> error

    @property
    def ok(self) -> bool:
        return not self.failed


# ============================================================================
# TABLES
# ============================================================================


class PersonalRankingRecord(SQLModel, table=True):
    """Stored personal ranking. See PersonalRanking for field meaning."""

    __tablename__ = "personal_rankings"

    id: int | None = Field(default=None, primary_key=True)
    container_id: str = Field(index=True)
    item_type: str
    user_id: str
    ordered_items: str  # JSON array of item ids, order significant
    created_at: float
    updated_at: float
    is_valid: bool = Field(default=True)
    became_stale_at: float | None = None
    stale_reminder_sent_at: float | None = None
    grace_ended_sent_at: float | None = None

    def get_ordered_items(self) -> list[str]:
        """Parse ordered_items JSON to list."""
        result: list[str] = json.loads(self.ordered_items)
        return result

    def set_ordered_items(self, items: list[str] | tuple[str, ...]) -> None:
        self.ordered_items = json.dumps(list(items))


class AggregateEntryRecord(SQLModel, table=True):
    """Memoized aggregate. rank_map is None for a tombstone left by invalidate()."""

    __tablename__ = "aggregate_entries"

    id: int | None = Field(default=None, primary_key=True)
    container_id: str = Field(index=True)
    item_type: str
    filter_key: str  # "" = unfiltered
    rank_map: str | None = None  # JSON object item id -> rank
    total_rankers: int = Field(default=0)
    computed_at: int = Field(default=0)  # recompute ticket
    invalidated_through: int = Field(default=0)  # tickets <= this are stale
    refreshed_at: float | None = None

    def get_rank_map(self) -> dict[str, int] | None:
        """Parse rank_map JSON to dict, None for a tombstone."""
        if self.rank_map is None:
            return None
        result: dict[str, int] = json.loads(self.rank_map)
        return result


class AggregateClock(SQLModel, table=True):
    """Per-scope ticket counter for aggregate compare-and-swap."""

    __tablename__ = "aggregate_clocks"

    container_id: str = Field(primary_key=True)
    item_type: str = Field(primary_key=True)
    last_ticket: int = Field(default=0)
    invalidated_through: int = Field(default=0)
