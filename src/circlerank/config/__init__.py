"""Config module exports."""

from circlerank.config.loader import get_db_path, load_config
from circlerank.config.models import (
    CacheConfig,
    CircleRankConfig,
    DatabaseConfig,
    LoggingConfig,
    RankingConfig,
    StalenessConfig,
)

__all__ = [
    "load_config",
    "get_db_path",
    "CircleRankConfig",
    "CacheConfig",
    "DatabaseConfig",
    "LoggingConfig",
    "RankingConfig",
    "StalenessConfig",
]
