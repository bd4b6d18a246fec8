"""converge - declarative infrastructure reconciliation engine."""

import threading
from typing import Optional, Tuple
from .config import Settings, load_settings
from .engine import Engine
from .executor import RunReport
from .ingest import load_configuration
from .planner import Plan
from .registry import ResourceRegistry
from .utils.errors import ConvergeError
from .utils.logging import setup_logging, get_logger

__version__ = "0.1.0"

__all__ = ["Engine", "apply", "plan"]

setup_logging()
logger = get_logger("converge")


def plan(config_path: str, settings: Optional[Settings] = None, refresh: bool = False) -> Plan:
    """Load a configuration and return the plan that would reconcile it."""
    try:
        settings = settings or load_settings()
        registry = load_configuration(config_path)
        return Engine(settings).plan(registry, refresh=refresh)
    except ConvergeError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during planning: {e}", exc_info=True)
        raise ConvergeError(f"Planning failed: {e}") from e


def apply(
    config_path: Optional[str],
    settings: Optional[Settings] = None,
    refresh: bool = False,
    cancel_event: Optional[threading.Event] = None,
) -> Tuple[Plan, RunReport]:
    """
    Load a configuration, plan, and execute the plan.
    
    Passing None as config_path destroys everything recorded in state.
    """
    try:
        settings = settings or load_settings()
        registry = load_configuration(config_path) if config_path else ResourceRegistry()
        return Engine(settings).plan_and_apply(registry, refresh=refresh, cancel_event=cancel_event)
    except ConvergeError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during apply: {e}", exc_info=True)
        raise ConvergeError(f"Apply failed: {e}") from e
