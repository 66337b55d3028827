"""Additional index creation for ranking lookups.

These complement the basic indexes declared via Field(index=True). They are
composite (and unique) indexes that cannot be expressed there.

Call create_additional_indexes() after Database.create_all().
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import text

if TYPE_CHECKING:
    from sqlalchemy import Engine


ADDITIONAL_INDEXES = [
    # One personal ranking per owner and scope; upsert relies on it
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_personal_rankings_owner "
    "ON personal_rankings(container_id, item_type, user_id)",
    # Scope scans filtered by validity (ScanValid)
    "CREATE INDEX IF NOT EXISTS idx_personal_rankings_scope_valid "
    "ON personal_rankings(container_id, item_type, is_valid)",
    # One aggregate per scope and filter
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_aggregate_entries_key "
    "ON aggregate_entries(container_id, item_type, filter_key)",
]

_INDEX_NAMES = [
    "idx_personal_rankings_owner",
    "idx_personal_rankings_scope_valid",
    "idx_aggregate_entries_key",
]


def create_additional_indexes(engine: Engine) -> None:
    """
    Create additional composite indexes.

    Call this after Database.create_all().
    """
    with engine.connect() as conn:
        for sql in ADDITIONAL_INDEXES:
            conn.execute(text(sql))
        conn.commit()


def drop_additional_indexes(engine: Engine) -> None:
    """Drop additional indexes (for testing/reset)."""
    with engine.connect() as conn:
        for name in _INDEX_NAMES:
            conn.execute(text(f"DROP INDEX IF EXISTS {name}"))
        conn.commit()
