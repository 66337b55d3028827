"""CircleRank error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Ranking validation
- 4xxx: Store
- 5xxx: External sources
- 9xxx: Internal
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_MISSING_REQUIRED = 2003
    CONFIG_FILE_NOT_FOUND = 2004

    # Ranking validation (3xxx)
    RANKING_DUPLICATE_ITEMS = 3001
    RANKING_SET_MISMATCH = 3002

    # Store (4xxx)
    STORE_UNAVAILABLE = 4001
    STORE_SCAN_FAILED = 4002

    # External sources (5xxx)
    SOURCE_UNAVAILABLE = 5001
    SCOPE_NOT_FOUND = 5002

    # Internal (9xxx)
    INTERNAL_ERROR = 9001
    INTERNAL_TIMEOUT = 9002


@dataclass(frozen=True, slots=True)
class CircleRankError(Exception):
    """Base error with structured context for callers and logs."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'RANKING_SET_MISMATCH')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(CircleRankError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def missing_required(cls, field: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_MISSING_REQUIRED,
            message=f"Missing required config field: {field}",
            details={"field": field},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class RankingValidationError(CircleRankError):
    """A submitted ranking is not a permutation of the active item set.

    The details carry enough to re-render a corrected form: the offending
    ids, sorted, under ``duplicates``, ``missing`` and ``unknown``.
    """

    @classmethod
    def duplicate_items(cls, scope: str, duplicates: Iterable[str]) -> "RankingValidationError":
        dupes = sorted(set(duplicates))
        return cls(
            code=ErrorCode.RANKING_DUPLICATE_ITEMS,
            message=f"Ranking for {scope} lists {len(dupes)} item(s) more than once",
            details={"scope": scope, "duplicates": dupes},
        )

    @classmethod
    def set_mismatch(
        cls,
        scope: str,
        missing: Iterable[str],
        unknown: Iterable[str],
    ) -> "RankingValidationError":
        missing_ids = sorted(missing)
        unknown_ids = sorted(unknown)
        return cls(
            code=ErrorCode.RANKING_SET_MISMATCH,
            message=(
                f"Ranking for {scope} must order every active item exactly once "
                f"({len(missing_ids)} missing, {len(unknown_ids)} unknown)"
            ),
            details={"scope": scope, "missing": missing_ids, "unknown": unknown_ids},
        )


class StoreError(CircleRankError):
    """Ranking store failures. Retryable by the triggering caller."""

    @classmethod
    def unavailable(cls, operation: str, reason: str) -> "StoreError":
        return cls(
            code=ErrorCode.STORE_UNAVAILABLE,
            message=f"Ranking store unavailable during {operation}: {reason}",
            retryable=True,
            details={"operation": operation, "reason": reason},
        )

    @classmethod
    def scan_failed(cls, scope: str, reason: str) -> "StoreError":
        return cls(
            code=ErrorCode.STORE_SCAN_FAILED,
            message=f"Failed to scan rankings for {scope}: {reason}",
            retryable=True,
            details={"scope": scope, "reason": reason},
        )


class SourceError(CircleRankError):
    """An external collaborator (items, membership) could not answer."""

    @classmethod
    def unavailable(cls, source: str, scope: str, reason: str) -> "SourceError":
        return cls(
            code=ErrorCode.SOURCE_UNAVAILABLE,
            message=f"{source} unavailable for {scope}: {reason}",
            retryable=True,
            details={"source": source, "scope": scope, "reason": reason},
        )


class NotFoundError(CircleRankError):
    """Scope is unknown to the item source."""

    @classmethod
    def scope(cls, scope: str) -> "NotFoundError":
        return cls(
            code=ErrorCode.SCOPE_NOT_FOUND,
            message=f"Scope not found: {scope}",
            details={"scope": scope},
        )


class InternalError(CircleRankError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
