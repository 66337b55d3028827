"""Shared fixtures for ranking tests."""

from __future__ import annotations

import tempfile
from collections.abc import Generator
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from circlerank.ranking.models import ActiveItem, ItemType, Scope
from circlerank.ranking.sources import StaticItemSource, StaticMembershipSource

if TYPE_CHECKING:
    from circlerank.ranking._internal.db import Database
    from circlerank.ranking.ops import RankingEngine


class FakeClock:
    """Manually advanced clock returning POSIX-like seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory(ignore_cleanup_errors=True) as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_db(temp_dir: Path) -> Generator[Database, None, None]:
    """Create a temporary database with schema."""
    from circlerank.ranking._internal.db import Database, create_additional_indexes

    db = Database(temp_dir / "test.db")
    db.create_all()
    create_additional_indexes(db.engine)
    yield db
    db.dispose()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scope() -> Scope:
    return Scope("circle-1", ItemType.TASKS)


@pytest.fixture
def items(scope: Scope) -> StaticItemSource:
    """Active items A, B, C in creation order (A oldest)."""
    source = StaticItemSource()
    source.set_items(
        scope,
        [
            ActiveItem("A", 1.0),
            ActiveItem("B", 2.0),
            ActiveItem("C", 3.0),
        ],
    )
    return source


@pytest.fixture
def members() -> StaticMembershipSource:
    source = StaticMembershipSource()
    source.set_members("circle-1", "core", ["u1"])
    return source


@pytest.fixture
def engine(
    temp_db: Database,
    items: StaticItemSource,
    members: StaticMembershipSource,
    clock: FakeClock,
) -> RankingEngine:
    """Engine over the temp database with a controllable clock."""
    from circlerank.ranking.ops import RankingEngine

    engine = RankingEngine(temp_db, items, members, clock=clock)
    engine.initialize()
    return engine
