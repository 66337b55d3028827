"""Consensus ranking from personal rankings.

aggregate() is a pure function of (valid rankings, active items, strategy):
no store, no cache, no clock. A strategy only scores items (higher is
better); ordering is shared by every strategy:

1. Sort by descending score.
2. Break ties by ascending creation key (older item ranks higher).
3. Break remaining ties by ascending item id, so the order is always total.
4. Assign ranks 1..N in that order.

Every active item gets a rank, including when no ranking was folded (all
items then tie at score 0 and fall back to creation order). Items present in
a ranking but absent from the active set are ignored.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Protocol

from circlerank.ranking.models import ActiveItem, AggregateResult, PersonalRanking


class AggregationStrategy(Protocol):
    """Scores active items from a set of orders (most preferred first)."""

    name: str

    def score(
        self,
        orders: Sequence[Sequence[str]],
        item_ids: frozenset[str],
    ) -> dict[str, float]: ...


class BordaStrategy:
    """Positional scoring: position i of an n-long order earns n - i."""

    name = "borda"

    def score(
        self,
        orders: Sequence[Sequence[str]],
        item_ids: frozenset[str],
    ) -> dict[str, float]:
        scores: dict[str, float] = dict.fromkeys(item_ids, 0)
        for order in orders:
            n = len(order)
            for position, item_id in enumerate(order):
                if item_id in scores:
                    scores[item_id] += n - position
        return scores


class MeanRankStrategy:
    """Negated mean 1-based position.

    Positions are counted over active items only. An active item missing
    from an order takes the mean of that order's unfilled positions.
    """

    name = "mean_rank"

    def score(
        self,
        orders: Sequence[Sequence[str]],
        item_ids: frozenset[str],
    ) -> dict[str, float]:
        if not orders:
            return dict.fromkeys(item_ids, 0.0)

        n = len(item_ids)
        totals: dict[str, float] = dict.fromkeys(item_ids, 0.0)
        for order in orders:
            placed = [item_id for item_id in dict.fromkeys(order) if item_id in item_ids]
            for position, item_id in enumerate(placed, start=1):
                totals[item_id] += position
            if len(placed) < n:
                fill = (len(placed) + 1 + n) / 2
                for item_id in item_ids.difference(placed):
                    totals[item_id] += fill
        return {item_id: -total / len(orders) for item_id, total in totals.items()}


class CopelandStrategy:
    """Pairwise (Condorcet) scoring: pairwise wins minus pairwise losses.

    An item placed in an order is preferred over one the order omits.
    """

    name = "copeland"

    def score(
        self,
        orders: Sequence[Sequence[str]],
        item_ids: frozenset[str],
    ) -> dict[str, float]:
        ids = sorted(item_ids)
        positions: list[dict[str, int]] = []
        for order in orders:
            pos: dict[str, int] = {}
            for index, item_id in enumerate(order):
                pos.setdefault(item_id, index)
            positions.append(pos)

        scores: dict[str, float] = dict.fromkeys(ids, 0)
        for i, a in enumerate(ids):
            for b in ids[i + 1 :]:
                margin = 0
                for pos in positions:
                    pa = pos.get(a, len(pos))
                    pb = pos.get(b, len(pos))
                    if pa < pb:
                        margin += 1
                    elif pb < pa:
                        margin -= 1
                if margin > 0:
                    scores[a] += 1
                    scores[b] -= 1
                elif margin < 0:
                    scores[a] -= 1
                    scores[b] += 1
        return scores


STRATEGIES: dict[str, AggregationStrategy] = {
    strategy.name: strategy
    for strategy in (BordaStrategy(), MeanRankStrategy(), CopelandStrategy())
}

DEFAULT_STRATEGY: AggregationStrategy = STRATEGIES["borda"]


def get_strategy(name: str) -> AggregationStrategy:
    """Look up a built-in strategy by name."""
    try:
        return STRATEGIES[name]
    except KeyError:
        known = ", ".join(sorted(STRATEGIES))
        raise ValueError(f"Unknown aggregation strategy '{name}' (known: {known})") from None


def _creation_keys(active_items: Iterable[ActiveItem]) -> dict[str, float]:
    """Map item id -> creation key; a repeated id keeps its oldest key."""
    keys: dict[str, float] = {}
    for item in active_items:
        current = keys.get(item.item_id)
        if current is None or item.created_key < current:
            keys[item.item_id] = item.created_key
    return keys


def aggregate_orders(
    orders: Sequence[Sequence[str]],
    active_items: Iterable[ActiveItem],
    strategy: AggregationStrategy = DEFAULT_STRATEGY,
) -> AggregateResult:
    """Fold raw orders into a rank map. See module docstring for ordering."""
    created = _creation_keys(active_items)
    scores = strategy.score(orders, frozenset(created))

    ordered = sorted(
        created,
        key=lambda item_id: (-scores.get(item_id, 0), created[item_id], item_id),
    )
    rank_map = {item_id: rank for rank, item_id in enumerate(ordered, start=1)}
    return AggregateResult(rank_map=rank_map, total_rankers=len(orders))


def aggregate(
    valid_rankings: Sequence[PersonalRanking],
    active_items: Iterable[ActiveItem],
    strategy: AggregationStrategy = DEFAULT_STRATEGY,
) -> AggregateResult:
    """Fold valid personal rankings into a consensus rank map.

    total_rankers is the number of rankings folded in.
    """
    return aggregate_orders(
        [ranking.ordered_items for ranking in valid_rankings],
        active_items,
        strategy,
    )
