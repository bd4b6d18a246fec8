"""Configuration input: declarations file -> ResourceRegistry."""

from .config_loader import build_registry, load_configuration

__all__ = ["build_registry", "load_configuration"]
