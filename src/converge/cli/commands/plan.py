"""Plan command - show what apply would change, without changing anything."""

import json
import sys
from pathlib import Path
import click
from ...presentation import format_plan
from ...utils.errors import ConvergeError
from ...utils.logging import get_logger
from ..utils import build_engine, engine_options, format_error, load_registry

logger = get_logger("cli.plan")


@click.command()
@click.argument('config_file', type=click.Path(exists=False))
@engine_options
@click.option('--refresh', is_flag=True, help='Re-read recorded resources from the provider first')
@click.option('--json', 'json_output', is_flag=True, help='Output structured JSON instead of human-readable')
@click.option('--output', '-o', type=click.Path(), help='Save output to file')
@click.option('--show-unchanged', is_flag=True, help='Also list resources with no changes')
@click.option('--quiet', is_flag=True, help='Suppress progress messages')
def plan(config_file, state, provider, settings_path, verbose, refresh, json_output, output, show_unchanged, quiet):
    """
    Build and display a reconciliation plan for CONFIG_FILE.
    
    Nothing is created, changed or destroyed.
    """
    try:
        engine = build_engine(settings_path, state=state, provider=provider, verbose=verbose)
        if not quiet:
            click.echo(f"Loading configuration: {config_file}", err=True)
        registry = load_registry(config_file)
        
        result = engine.plan(registry, refresh=refresh)
        
        if json_output:
            output_text = json.dumps(result.model_dump(mode="json"), indent=2, sort_keys=True)
        else:
            output_text = format_plan(result, show_unchanged=show_unchanged)
        
        if output:
            output_path = Path(output)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, 'w', encoding='utf-8') as f:
                f.write(output_text)
            if not quiet:
                click.echo(f"Output saved to: {output_path}", err=True)
        else:
            click.echo(output_text)
    
    except ConvergeError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        click.echo(format_error(f"Plan failed: {e}"), err=True)
        sys.exit(1)
