"""State commands - inspect recorded resources."""

import json
import sys
import click
from ...registry import ResourceAddress
from ...utils.errors import ConvergeError
from ..utils import build_engine, engine_options, format_error


@click.group()
def state():
    """Inspect recorded state."""
    pass


@state.command(name="list")
@engine_options
def list_resources(state, provider, settings_path, verbose):
    """List every resource recorded in state."""
    try:
        engine = build_engine(settings_path, state=state, provider=provider, verbose=verbose)
    except ConvergeError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    
    records = engine.store.snapshot()
    if not records:
        click.echo("State is empty.")
        return
    for address in sorted(records):
        click.echo(f"{address}\t{records[address].provider_id}")


@state.command()
@click.argument('address')
@engine_options
def show(address, state, provider, settings_path, verbose):
    """Show the recorded attributes and outputs of ADDRESS (kind.name)."""
    try:
        engine = build_engine(settings_path, state=state, provider=provider, verbose=verbose)
        record = engine.store.get(ResourceAddress.parse(address))
    except ValueError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    except ConvergeError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    
    if record is None:
        click.echo(format_error(f"{address} is not in state"), err=True)
        sys.exit(1)
    click.echo(json.dumps(record.model_dump(), indent=2, sort_keys=True))
