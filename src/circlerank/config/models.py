"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (CIRCLERANK__SECTION__KEY)
3. Repo YAML (.circlerank/config.yaml)
4. Global YAML (~/.config/circlerank/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    CIRCLERANK__<SECTION>__<KEY>=<VALUE>

Examples:
    CIRCLERANK__LOGGING__LEVEL=DEBUG
    CIRCLERANK__RANKING__STRATEGY=copeland
    CIRCLERANK__CACHE__MAX_AGE_SEC=0
    CIRCLERANK__STALENESS__GRACE_PERIOD_DAYS=14
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
StrategyName = Literal["borda", "mean_rank", "copeland"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        CIRCLERANK__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every cache hit and miss.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class DatabaseConfig(BaseModel):
    """Ranking store connection configuration.

    Env vars:
        CIRCLERANK__DATABASE__PATH: SQLite file (default: .circlerank/rankings.db)
        CIRCLERANK__DATABASE__BUSY_TIMEOUT_MS: SQLite busy timeout
        CIRCLERANK__DATABASE__MAX_RETRIES: Max retry attempts for locked DB
    """

    path: str | None = Field(
        default=None,
        description="SQLite database file. Default: .circlerank/rankings.db under the root.",
    )
    busy_timeout_ms: int = Field(
        default=30000,
        description="SQLite busy timeout (ms). How long to wait for locks. "
        "RISK: Too low causes failures under contention; too high delays errors.",
    )
    max_retries: int = Field(
        default=3,
        description="Max retry attempts for locked database errors.",
    )
    retry_base_delay_sec: float = Field(
        default=0.1,
        description="Base delay between retries (exponential backoff).",
    )

    @field_validator("busy_timeout_ms", "max_retries")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"Must be >= 0, got {v}")
        return v


class RankingConfig(BaseModel):
    """Aggregation configuration.

    Env vars:
        CIRCLERANK__RANKING__STRATEGY: borda, mean_rank or copeland
    """

    strategy: StrategyName = Field(
        default="borda",
        description="Consensus scoring strategy. Borda is positional scoring; "
        "mean_rank averages positions; copeland counts pairwise wins.",
    )


class CacheConfig(BaseModel):
    """Aggregate cache configuration.

    Env vars:
        CIRCLERANK__CACHE__MAX_AGE_SEC: Max age of a reusable aggregate (0 disables reuse)
        CIRCLERANK__CACHE__EAGER_RECOMPUTE: Recompute the unfiltered aggregate after writes
    """

    max_age_sec: float = Field(
        default=3600.0,
        description="Aggregates older than this are recomputed on read. "
        "0 disables reuse: every read recomputes.",
    )
    eager_recompute: bool = Field(
        default=False,
        description="Recompute the unfiltered aggregate right after a save or "
        "active-set change instead of on the next read.",
    )

    @field_validator("max_age_sec")
    @classmethod
    def validate_max_age(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"max_age_sec must be >= 0, got {v}")
        return v


class StalenessConfig(BaseModel):
    """Stale ranking reminders.

    Env vars:
        CIRCLERANK__STALENESS__REMINDER_AFTER_HOURS: First reminder delay
        CIRCLERANK__STALENESS__GRACE_PERIOD_DAYS: Grace period length
    """

    reminder_after_hours: float = Field(
        default=48.0,
        description="Hours after a ranking becomes stale before the owner is reminded.",
    )
    grace_period_days: float = Field(
        default=7.0,
        description="Days after a ranking becomes stale before the owner is told "
        "the grace period ended.",
    )

    @field_validator("reminder_after_hours", "grace_period_days")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Must be > 0, got {v}")
        return v


class CircleRankConfig(BaseModel):
    """Root configuration for CircleRank.

    All settings can be configured via:
    1. Environment variables: CIRCLERANK__SECTION__KEY
    2. YAML config files (repo or global)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    ranking: RankingConfig = Field(default_factory=RankingConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    staleness: StalenessConfig = Field(default_factory=StalenessConfig)
