"""CLI utilities package."""

import threading
from typing import Optional
import click
from ...config import load_settings
from ...engine import Engine
from ...executor import RunReport
from ...ingest import load_configuration
from ...planner import Plan
from ...registry import ResourceRegistry
from ...utils.logging import get_logger, set_verbosity

logger = get_logger("cli.utils")


def engine_options(func):
    """Options shared by every command that talks to state or a provider."""
    func = click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')(func)
    func = click.option('--settings', 'settings_path', type=click.Path(exists=True), help='Settings YAML file')(func)
    func = click.option('--provider', help='Registered provider name (overrides settings)')(func)
    func = click.option('--state', help='State file path (overrides settings)')(func)
    return func


def format_error(message: str, suggestion: Optional[str] = None) -> str:
    """
    Format error message with optional suggestion.
    
    Args:
        message: Error message
        suggestion: Optional suggestion or help text
        
    Returns:
        Formatted error string
    """
    error = f"Error: {message}"
    if suggestion:
        error += f"\nTip: {suggestion}"
    return error


def build_engine(
    settings_path: Optional[str] = None,
    state: Optional[str] = None,
    provider: Optional[str] = None,
    parallelism: Optional[int] = None,
    verbose: bool = False,
) -> Engine:
    """Shared engine construction - all commands call this."""
    set_verbosity(verbose)
    settings = load_settings(settings_path, overrides={
        "state_path": state,
        "provider": provider,
        "max_parallelism": parallelism,
    })
    logger.debug(f"Using provider '{settings.provider}' with state {settings.state_path}")
    return Engine(settings)


def load_registry(config_file: Optional[str]) -> ResourceRegistry:
    """Load declarations; None means an empty configuration (destroy everything)."""
    if config_file is None:
        return ResourceRegistry()
    return load_configuration(config_file)


def run_with_interrupt(engine: Engine, plan: Plan) -> RunReport:
    """
    Apply on a worker thread so Ctrl-C becomes a cancellation request.
    
    In-flight provider calls finish; RunCancelled is raised afterwards.
    """
    cancel_event = threading.Event()
    result = {}
    
    def _run() -> None:
        try:
            result["report"] = engine.apply(plan, cancel_event=cancel_event)
        except BaseException as e:
            result["error"] = e
    
    worker = threading.Thread(target=_run, name="converge-apply", daemon=True)
    worker.start()
    try:
        while worker.is_alive():
            worker.join(0.2)
    except KeyboardInterrupt:
        click.echo("Interrupted: waiting for in-flight operations to finish...", err=True)
        cancel_event.set()
        worker.join()
    
    if "error" in result:
        raise result["error"]
    return result["report"]


__all__ = ["build_engine", "engine_options", "format_error", "load_registry", "run_with_interrupt"]
