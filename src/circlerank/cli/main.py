"""CircleRank CLI - circlerank command."""

import click

from circlerank.cli.init import init_command
from circlerank.cli.save import changed_command, save_command
from circlerank.cli.sweep import sweep_command
from circlerank.cli.view import view_command
from circlerank.core.logging import configure_logging, set_request_id


@click.group()
@click.version_option(version="0.1.0", prog_name="circlerank")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """CircleRank - collaborative ranking aggregation for circles."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "WARNING")
    # One id per invocation; config.yaml outputs are installed once the root is known.
    set_request_id()


cli.add_command(init_command, name="init")
cli.add_command(save_command, name="save")
cli.add_command(changed_command, name="changed")
cli.add_command(view_command, name="view")
cli.add_command(sweep_command, name="sweep")


if __name__ == "__main__":
    cli()
