"""circlerank sweep command - scheduled staleness sweep."""

import json
import sys
from pathlib import Path

import click

from circlerank.cli.utils import handle_errors, manifest_option, open_engine, root_option
from circlerank.core.progress import pluralize, status


@click.command("sweep")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@root_option
@manifest_option
@handle_errors
def sweep_command(as_json: bool, root: Path | None, manifest: Path | None) -> None:
    """Reconcile every scope and send due staleness reminders.

    Meant for cron. Exits 1 if any scope failed.
    """
    engine = open_engine(root, manifest)
    try:
        result = engine.sweep()
    finally:
        engine.close()

    if as_json:
        click.echo(
            json.dumps(
                {
                    "scopes_processed": result.scopes_processed,
                    "rankings_marked_stale": result.rankings_marked_stale,
                    "notices_sent": [
                        {
                            "kind": notice.kind.value,
                            "scope": notice.scope.key,
                            "user_id": notice.user_id,
                            "unranked_count": notice.unranked_count,
                        }
                        for notice in result.notices_sent
                    ],
                    "failed": result.failed,
                },
                indent=2,
            )
        )
    else:
        status(
            f"Swept {pluralize(result.scopes_processed, 'scope')}: "
            f"{pluralize(result.rankings_marked_stale, 'ranking')} marked stale, "
            f"{pluralize(len(result.notices_sent), 'notice')} sent",
            style="success" if result.ok else "warning",
        )
        for scope_key, error in result.failed.items():
            status(f"{scope_key}: {error}", style="error", indent=2)

    if not result.ok:
        sys.exit(1)
