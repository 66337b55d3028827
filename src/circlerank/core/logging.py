"""Structured logging for circlerank.

Every event goes through structlog into stdlib handlers, one per configured
output. Each output picks its own format (console or JSON lines) and level.

Correlation: the CLI sets one request id per command, so the events of a
save, an active-set change or a sweep can be grepped out of a shared file.
The first file output is remembered so CLI errors can point at it.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog

if TYPE_CHECKING:
    from circlerank.config.models import LoggingConfig, LogOutputConfig

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)

_log_file_path: Path | None = None

_CONSOLE_DESTINATIONS = ("stderr", "stdout")

# Statement and pool chatter; our own store events carry what matters.
_QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")

_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def get_request_id() -> str | None:
    return _request_id.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set or generate the correlation id for the current operation."""
    rid = request_id or uuid4().hex[:12]
    _request_id.set(rid)
    return rid


def clear_request_id() -> None:
    _request_id.set(None)


def get_log_file_path() -> Path | None:
    """First file output of the active configuration, if any."""
    return _log_file_path


def _add_request_id(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    if rid := get_request_id():
        event_dict["request_id"] = rid
    return event_dict


def _level(name: str | None, fallback: int) -> int:
    if name is None:
        return fallback
    return _LEVEL_MAP.get(name.upper(), fallback)


def configure_logging(
    *,
    config: LoggingConfig | None = None,
    json_format: bool = False,
    level: str = "INFO",
    console_level: str | None = None,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        config: Outputs to install. When omitted, a single stderr output
            at ``level`` is used.
        json_format: Format of that single output when config is omitted
        level: Root level when config is omitted
        console_level: Level for stderr/stdout outputs that set none of
            their own. File outputs are unaffected.
    """
    from circlerank.config.models import LoggingConfig, LogOutputConfig

    if config is None:
        config = LoggingConfig(
            level=level,
            outputs=[LogOutputConfig(format="json" if json_format else "console")],
        )

    root_level = _level(config.level, logging.INFO)
    output_levels = [_output_level(output, root_level, console_level) for output in config.outputs]
    # Filter at the lowest level any output wants, not just the root level.
    threshold = min([root_level, *output_levels])

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
        _add_request_id,  # type: ignore[list-item]
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Uncached so a CLI command can reconfigure after loading config.yaml
        cache_logger_on_first_use=False,
    )
    _install_handlers(config.outputs, output_levels, shared_processors, threshold)


def _output_level(output: LogOutputConfig, root_level: int, console_level: str | None) -> int:
    if output.level is not None:
        return _level(output.level, root_level)
    if output.destination in _CONSOLE_DESTINATIONS and console_level is not None:
        return _level(console_level, root_level)
    return root_level


def _install_handlers(
    outputs: list[LogOutputConfig],
    levels: list[int],
    shared_processors: list[structlog.types.Processor],
    threshold: int,
) -> None:
    global _log_file_path

    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        handler.close()
    root_logger.handlers.clear()
    root_logger.setLevel(threshold)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _log_file_path = None
    for output, output_level in zip(outputs, levels, strict=True):
        is_console = output.destination in _CONSOLE_DESTINATIONS
        if not is_console and _log_file_path is None:
            _log_file_path = Path(output.destination)

        renderer: structlog.types.Processor
        if output.format == "json":
            renderer = structlog.processors.JSONRenderer()
        else:
            renderer = structlog.dev.ConsoleRenderer(
                colors=is_console and sys.stderr.isatty(),
                pad_event_to=0,
                pad_level=False,
            )

        handler = _create_handler(output.destination)
        handler.setLevel(output_level)
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=renderer,
                foreign_pre_chain=shared_processors,
            )
        )
        root_logger.addHandler(handler)


def _create_handler(destination: str) -> logging.Handler:
    if destination == "stderr":
        return logging.StreamHandler(sys.stderr)
    if destination == "stdout":
        return logging.StreamHandler(sys.stdout)
    path = Path(destination)
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, mode="a")


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger=name)
    return logger  # type: ignore[no-any-return]
