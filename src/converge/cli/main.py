"""Main CLI entry point for converge."""

import click
from .commands.apply import apply, destroy
from .commands.graph import graph
from .commands.plan import plan
from .commands.refresh import refresh
from .commands.state import state
from .commands.version import version
from .. import __version__


@click.group()
@click.version_option(version=__version__, prog_name="converge", message="%(prog)s version %(version)s")
def cli():
    """converge - declarative infrastructure reconciliation."""
    pass


cli.add_command(plan)
cli.add_command(apply)
cli.add_command(destroy)
cli.add_command(refresh)
cli.add_command(graph)
cli.add_command(state)
cli.add_command(version)


if __name__ == "__main__":
    cli()
