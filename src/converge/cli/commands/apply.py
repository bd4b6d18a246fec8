"""Apply and destroy commands - plan, confirm, execute."""

import sys
from pathlib import Path
from typing import Optional
import click
from ...presentation import format_plan, format_report
from ...report import generate_artifacts
from ...utils.errors import ConvergeError, RunCancelled
from ...utils.logging import get_logger
from ..utils import build_engine, engine_options, format_error, load_registry, run_with_interrupt

logger = get_logger("cli.apply")


def _execute(
    config_file: Optional[str],
    state: Optional[str],
    provider: Optional[str],
    settings_path: Optional[str],
    verbose: bool,
    refresh: bool,
    parallelism: Optional[int],
    auto_approve: bool,
    artifacts: Optional[str],
) -> None:
    try:
        engine = build_engine(settings_path, state=state, provider=provider, parallelism=parallelism, verbose=verbose)
        registry = load_registry(config_file)
        plan = engine.plan(registry, refresh=refresh)
        
        click.echo(format_plan(plan))
        if not plan.needs_apply:
            return
        
        if plan.has_changes and not auto_approve and not click.confirm("\nApply these changes?", default=False):
            click.echo("Apply cancelled.", err=True)
            sys.exit(1)
        
        try:
            report = run_with_interrupt(engine, plan)
        except RunCancelled as e:
            click.echo(format_report(e.report))
            if artifacts:
                generate_artifacts(plan, Path(artifacts), e.report)
            click.echo(format_error("Run cancelled before completion"), err=True)
            sys.exit(1)
        
        click.echo("")
        click.echo(format_report(report))
        if artifacts:
            generate_artifacts(plan, Path(artifacts), report)
            click.echo(f"Artifacts written to: {artifacts}", err=True)
        
        if report.has_failures:
            sys.exit(1)
    
    except ConvergeError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        click.echo(format_error(f"Apply failed: {e}"), err=True)
        sys.exit(1)


@click.command()
@click.argument('config_file', type=click.Path(exists=False))
@engine_options
@click.option('--refresh', is_flag=True, help='Re-read recorded resources from the provider first')
@click.option('--parallelism', type=click.IntRange(min=1), help='Maximum concurrent provider operations')
@click.option('--auto-approve', is_flag=True, help='Skip interactive confirmation')
@click.option('--artifacts', type=click.Path(), help='Write plan/report JSON artifacts to this directory')
def apply(config_file, state, provider, settings_path, verbose, refresh, parallelism, auto_approve, artifacts):
    """
    Build a plan for CONFIG_FILE and execute it.
    
    Exits non-zero if any resource ended in the failed state.
    """
    _execute(config_file, state, provider, settings_path, verbose, refresh, parallelism, auto_approve, artifacts)


@click.command()
@engine_options
@click.option('--parallelism', type=click.IntRange(min=1), help='Maximum concurrent provider operations')
@click.option('--auto-approve', is_flag=True, help='Skip interactive confirmation')
@click.option('--artifacts', type=click.Path(), help='Write plan/report JSON artifacts to this directory')
def destroy(state, provider, settings_path, verbose, parallelism, auto_approve, artifacts):
    """Destroy every resource recorded in state, dependents first."""
    _execute(None, state, provider, settings_path, verbose, False, parallelism, auto_approve, artifacts)
