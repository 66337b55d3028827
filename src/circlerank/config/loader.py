"""Configuration loading with pydantic-settings.

Supports loading configuration from multiple sources with precedence:
1. Direct kwargs (highest priority)
2. Environment variables (CIRCLERANK__SECTION__KEY)
3. Repo config (.circlerank/config.yaml)
4. Global config (~/.config/circlerank/config.yaml)
5. Built-in defaults (lowest priority)
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from circlerank.config.constants import CONFIG_DIR_NAME, CONFIG_FILE_NAME, DB_FILE_NAME
from circlerank.config.models import (
    CacheConfig,
    CircleRankConfig,
    DatabaseConfig,
    LoggingConfig,
    RankingConfig,
    StalenessConfig,
)
from circlerank.core.errors import ConfigError

GLOBAL_CONFIG_PATH = Path("~/.config/circlerank/config.yaml").expanduser()


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top level must be a mapping")
    # A section whose keys are all commented out parses as null
    return {key: value for key, value in data.items() if value is not None}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class _YamlSource(PydanticBaseSettingsSource):
    """Settings source that reads from pre-loaded YAML config."""

    def __init__(self, settings_cls: type[BaseSettings], yaml_config: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._yaml_config = yaml_config

    def get_field_value(
        self,
        field: Any,  # noqa: ARG002
        field_name: str,
    ) -> tuple[Any, str, bool]:
        val = self._yaml_config.get(field_name)
        return val, field_name, val is not None

    def __call__(self) -> dict[str, Any]:
        return self._yaml_config


def _make_settings_class(yaml_config: dict[str, Any]) -> type[BaseSettings]:
    """Create a Settings class with instance-based YAML source (thread-safe)."""

    class CircleRankSettings(BaseSettings):
        """Root config. Env vars: CIRCLERANK__LOGGING__LEVEL, CIRCLERANK__CACHE__MAX_AGE_SEC, etc."""

        model_config = SettingsConfigDict(
            env_prefix="CIRCLERANK__",
            env_nested_delimiter="__",
            case_sensitive=False,
        )

        logging: LoggingConfig = LoggingConfig()
        database: DatabaseConfig = DatabaseConfig()
        ranking: RankingConfig = RankingConfig()
        cache: CacheConfig = CacheConfig()
        staleness: StalenessConfig = StalenessConfig()

        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            # Precedence (first wins): init kwargs > env vars > yaml files
            return (init_settings, env_settings, _YamlSource(settings_cls, yaml_config))

    return CircleRankSettings


def load_config(root: Path | None = None, **kwargs: Any) -> CircleRankConfig:
    """Load config: defaults < global yaml < repo yaml < env vars < kwargs.

    Args:
        root: Directory holding .circlerank/. Defaults to current working directory.
        **kwargs: Override values (highest precedence).

    Returns:
        Fully resolved configuration object.

    Raises:
        ConfigError: On invalid YAML syntax or validation errors.
    """
    root = root or Path.cwd()
    yaml_config = _load_yaml(root / CONFIG_DIR_NAME / CONFIG_FILE_NAME)

    global_config = _load_yaml(GLOBAL_CONFIG_PATH)
    if global_config:
        yaml_config = _deep_merge(global_config, yaml_config)

    settings_cls = _make_settings_class(yaml_config)
    try:
        settings = settings_cls(**kwargs)
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(loc) for loc in err["loc"])
        raise ConfigError.invalid_value(field, err.get("input"), err["msg"]) from e
    return CircleRankConfig.model_validate(settings.model_dump())


def get_db_path(root: Path, config: CircleRankConfig | None = None) -> Path:
    """Resolve the SQLite path, respecting config.database.path."""
    config = config or load_config(root)
    if config.database.path:
        return Path(config.database.path).expanduser()
    return root / CONFIG_DIR_NAME / DB_FILE_NAME
