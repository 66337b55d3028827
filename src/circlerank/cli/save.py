"""circlerank save / changed commands - the write side."""

from pathlib import Path

import click

from circlerank.cli.utils import handle_errors, manifest_option, open_engine, root_option
from circlerank.core.progress import pluralize, status
from circlerank.ranking.models import ItemType, Scope

item_type_argument = click.argument(
    "item_type",
    type=click.Choice([t.value for t in ItemType]),
)


@click.command("save")
@click.argument("container")
@item_type_argument
@click.argument("user")
@click.argument("items", nargs=-1, required=True)
@root_option
@manifest_option
@handle_errors
def save_command(
    container: str,
    item_type: str,
    user: str,
    items: tuple[str, ...],
    root: Path | None,
    manifest: Path | None,
) -> None:
    """Save USER's ranking of ITEMS (most preferred first).

    ITEMS must be exactly the scope's active items, each once.
    """
    scope = Scope(container, ItemType(item_type))
    engine = open_engine(root, manifest)
    try:
        ranking = engine.save_ranking(scope, user, list(items))
    finally:
        engine.close()
    status(
        f"Saved {pluralize(len(ranking.ordered_items), 'item')} for {user} in {scope}",
        style="success",
    )


@click.command("changed")
@click.argument("container")
@item_type_argument
@root_option
@manifest_option
@handle_errors
def changed_command(
    container: str,
    item_type: str,
    root: Path | None,
    manifest: Path | None,
) -> None:
    """Reconcile rankings after the scope's active items changed."""
    scope = Scope(container, ItemType(item_type))
    engine = open_engine(root, manifest)
    try:
        result = engine.notify_active_set_changed(scope)
    finally:
        engine.close()
    status(
        f"Scanned {pluralize(result.scanned, 'ranking')} in {scope}: "
        f"{len(result.marked_stale)} newly stale, {result.already_stale} already stale",
        style="success",
    )
