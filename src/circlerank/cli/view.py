"""circlerank view command - print a scope's consensus ranking."""

import json
from pathlib import Path

import click
from rich.table import Table

from circlerank.cli.save import item_type_argument
from circlerank.cli.utils import handle_errors, manifest_option, open_engine, root_option
from circlerank.core.progress import get_console
from circlerank.ranking.models import ItemType, Scope, ScopeView


def _render(view: ScopeView, viewer: str) -> None:
    console = get_console()
    title = f"{view.scope}" + (f" (group {view.group})" if view.group else "")
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Rank", justify="right")
    table.add_column("Item")
    table.add_column("Yours", justify="right")

    personal_pos = {}
    if view.personal is not None:
        personal_pos = {item: pos for pos, item in enumerate(view.personal.ordered_items, start=1)}
    for item_id, rank in sorted(view.rank_map.items(), key=lambda kv: kv[1]):
        yours = personal_pos.get(item_id)
        table.add_row(str(rank), item_id, str(yours) if yours else "-")
    console.print(table)

    console.print(f"  Rankers: {view.total_rankers}", highlight=False)
    if not view.has_ranked:
        console.print(f"  {viewer} has not ranked yet", highlight=False)
    elif view.personal is not None and not view.personal.is_valid:
        console.print(
            f"  [yellow]![/yellow] {viewer}'s ranking is stale: "
            f"{view.unranked_count} unranked item(s)",
            highlight=False,
        )


@click.command("view")
@click.argument("container")
@item_type_argument
@click.option("--user", "viewer", default="", help="Viewer user id (shows their ranking)")
@click.option("--group", default=None, help="Only fold rankings from this sub-group")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@root_option
@manifest_option
@handle_errors
def view_command(
    container: str,
    item_type: str,
    viewer: str,
    group: str | None,
    as_json: bool,
    root: Path | None,
    manifest: Path | None,
) -> None:
    """Show the consensus ranking of a scope."""
    scope = Scope(container, ItemType(item_type))
    engine = open_engine(root, manifest)
    try:
        view = engine.get_scope_view(scope, viewer, group)
    finally:
        engine.close()

    if as_json:
        click.echo(json.dumps(view.to_dict(), indent=2))
        return
    _render(view, viewer or "viewer")
