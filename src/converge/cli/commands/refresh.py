"""Refresh command - sync recorded outputs with the provider."""

import sys
import click
from ...utils.errors import ConvergeError
from ...utils.logging import get_logger
from ..utils import build_engine, engine_options, format_error

logger = get_logger("cli.refresh")


@click.command()
@engine_options
def refresh(state, provider, settings_path, verbose):
    """Re-read every recorded resource and drop the ones that no longer exist."""
    try:
        engine = build_engine(settings_path, state=state, provider=provider, verbose=verbose)
        dropped = engine.refresh()
        if dropped:
            click.echo("Dropped from state (no longer exist):")
            for address in dropped:
                click.echo(f"  - {address}")
        else:
            click.echo(f"State is up to date ({len(engine.store.addresses())} resources).")
    except ConvergeError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        click.echo(format_error(f"Refresh failed: {e}"), err=True)
        sys.exit(1)
