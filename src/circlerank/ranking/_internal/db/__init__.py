"""Database layer for the ranking engine."""

from circlerank.ranking._internal.db.database import Database
from circlerank.ranking._internal.db.indexes import (
    create_additional_indexes,
    drop_additional_indexes,
)

__all__ = [
    "Database",
    "create_additional_indexes",
    "drop_additional_indexes",
]
