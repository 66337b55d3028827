"""Core module exports."""

from circlerank.core.errors import (
    CircleRankError,
    ConfigError,
    ErrorCode,
    InternalError,
    NotFoundError,
    RankingValidationError,
    SourceError,
    StoreError,
)
from circlerank.core.logging import (
    clear_request_id,
    configure_logging,
    get_logger,
    get_request_id,
    set_request_id,
)

__all__ = [
    # Errors
    "CircleRankError",
    "ConfigError",
    "ErrorCode",
    "InternalError",
    "NotFoundError",
    "RankingValidationError",
    "SourceError",
    "StoreError",
    # Logging
    "clear_request_id",
    "configure_logging",
    "get_logger",
    "get_request_id",
    "set_request_id",
]
