"""CLI utilities."""

from collections.abc import Callable
from functools import wraps
from pathlib import Path
from typing import Any

import click
import structlog

from circlerank.config.constants import CONFIG_DIR_NAME, MANIFEST_FILE_NAME
from circlerank.config.loader import load_config
from circlerank.config.models import LoggingConfig
from circlerank.core.errors import CircleRankError
from circlerank.core.logging import configure_logging, get_log_file_path
from circlerank.ranking.ops import RankingEngine
from circlerank.ranking.sources import load_manifest

logger = structlog.get_logger(__name__)


def find_root(start_path: Path | None = None) -> Path:
    """Find the directory holding .circlerank/ from the given path.

    Walks up the directory tree. If start_path is None, uses the current
    working directory.

    Raises:
        click.ClickException: If no initialized directory is found
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()
    while current != current.parent:
        if (current / CONFIG_DIR_NAME).is_dir():
            return current
        current = current.parent
    if (current / CONFIG_DIR_NAME).is_dir():
        return current

    raise click.ClickException(
        f"No {CONFIG_DIR_NAME} directory found from {start_path}\n"
        "Run 'circlerank init' first, or pass --root."
    )


def configure_command_logging(config: LoggingConfig) -> None:
    """Install the configured outputs for one command.

    Console outputs without their own level stay at WARNING so status lines
    are not buried in events; -v lowers the root and that console default
    to DEBUG.
    """
    ctx = click.get_current_context(silent=True)
    verbose = bool(ctx is not None and ctx.obj and ctx.obj.get("verbose"))
    if verbose:
        configure_logging(config=config.model_copy(update={"level": "DEBUG"}), console_level="DEBUG")
    else:
        configure_logging(config=config, console_level="WARNING")


def open_engine(root: Path | None, manifest: Path | None) -> RankingEngine:
    """Resolve config and manifest, then build an initialized engine."""
    root = find_root(root)
    config = load_config(root)
    configure_command_logging(config.logging)
    manifest = manifest or root / CONFIG_DIR_NAME / MANIFEST_FILE_NAME
    items, members = load_manifest(manifest)
    engine = RankingEngine.from_config(config, items, members, root=root)
    engine.initialize()
    return engine


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Turn CircleRankError into a ClickException (exit code 1).

    When a log file is configured the message points at it.
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except CircleRankError as e:
            logger.info("command_failed", code=e.code.name, error=e.message, details=e.details)
            message = str(e)
            if log_file := get_log_file_path():
                message = f"{message}\nSee {log_file} for details."
            raise click.ClickException(message) from e

    return wrapper


root_option = click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Directory holding .circlerank/ (default: search upward from cwd)",
)

manifest_option = click.option(
    "--manifest",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="YAML manifest of active items and groups (default: .circlerank/manifest.yaml)",
)
