"""circlerank init command - create config and the ranking store."""

from pathlib import Path

import click

from circlerank.cli.utils import handle_errors
from circlerank.config.constants import CONFIG_DIR_NAME, CONFIG_FILE_NAME
from circlerank.config.loader import get_db_path, load_config
from circlerank.config.user_config import write_user_config
from circlerank.core.progress import status
from circlerank.ranking._internal.db import Database, create_additional_indexes


def initialize_root(root: Path, *, force: bool = False) -> bool:
    """Write .circlerank/config.yaml and create the schema, returning True on success.

    An existing config is kept unless force is set.
    """
    config_path = root / CONFIG_DIR_NAME / CONFIG_FILE_NAME
    if config_path.exists() and not force:
        status(f"Already initialized: {config_path.parent}", style="info")
        status("Use --force to rewrite config.yaml", style="info")
        return False

    write_user_config(config_path)
    config = load_config(root)
    db = Database(get_db_path(root, config), busy_timeout_ms=config.database.busy_timeout_ms)
    try:
        db.create_all()
        create_additional_indexes(db.engine)
    finally:
        db.dispose()

    status(f"Config written to {config_path}", style="success")
    status(f"Ranking store ready at {db.db_path}", style="success")
    return True


@click.command("init")
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    help="Directory to initialize (default: current directory)",
)
@click.option("--force", is_flag=True, help="Overwrite an existing config.yaml")
@handle_errors
def init_command(root: Path, force: bool) -> None:
    """Initialize a directory for CircleRank."""
    root = root.resolve()
    root.mkdir(parents=True, exist_ok=True)
    initialize_root(root, force=force)
