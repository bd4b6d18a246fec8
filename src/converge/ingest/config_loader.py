"""Load resource declarations from YAML or JSON into a registry."""

import yaml
from pathlib import Path
from typing import Any, List
from pydantic import ValidationError
from ..registry import ResourceRegistry
from ..utils.errors import ConfigurationError
from ..utils.logging import get_logger
from .models import ResourceDeclaration

logger = get_logger("ingest.config_loader")


def load_configuration(config_path: str) -> ResourceRegistry:
    """
    Load a configuration file and register every declared resource.
    
    Args:
        config_path: Path to a YAML (or JSON) configuration file
        
    Returns:
        Populated ResourceRegistry
        
    Raises:
        ConfigurationError: If the file is missing, unparsable or invalid
    """
    path = Path(config_path)
    
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")
    
    if not path.is_file():
        raise ConfigurationError(f"Path is not a file: {config_path}")
    
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
    except OSError as e:
        raise ConfigurationError(f"Error reading configuration file: {e}")
    
    registry = build_registry(data)
    logger.info(f"Loaded {len(registry)} resources from {config_path}")
    return registry


def build_registry(data: Any) -> ResourceRegistry:
    """Validate decoded configuration data and build a registry from it."""
    if data is None:
        data = {"resources": []}
    
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration must contain a dictionary")
    
    if "resources" not in data:
        raise ConfigurationError("Configuration must contain 'resources' key")
    
    raw_resources = data["resources"] or []
    if not isinstance(raw_resources, list):
        raise ConfigurationError("'resources' must be a list")
    
    declarations: List[ResourceDeclaration] = []
    for idx, raw in enumerate(raw_resources):
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Invalid resource at index {idx}: expected a mapping")
        try:
            declarations.append(ResourceDeclaration(**raw))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid resource at index {idx}: {e}")
    
    registry = ResourceRegistry()
    for declaration in declarations:
        registry.register(
            declaration.kind,
            declaration.name,
            declaration.attributes,
            declaration.depends_on,
        )
    return registry

