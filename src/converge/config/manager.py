"""Two-tier configuration manager (user + project override)."""

import yaml
from pathlib import Path
from typing import Any, Dict, Optional
from .paths import get_defaults_path, get_project_config_path, get_user_config_path
from ..utils.errors import SettingsError
from ..utils.logging import get_logger

logger = get_logger("config.manager")


def read_yaml_file(path: Path) -> Dict[str, Any]:
    """
    Read a YAML mapping from path.
    
    Raises:
        SettingsError: If the file cannot be parsed or is not a mapping
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise SettingsError(f"Invalid YAML in settings file {path}: {e}")
    except OSError as e:
        raise SettingsError(f"Error reading settings file {path}: {e}")
    
    if not isinstance(data, dict):
        raise SettingsError(f"Settings file {path} must contain a dictionary")
    return data


def load_config(settings_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load full config tree: packaged defaults, then user, then project, then explicit file.
    
    Args:
        settings_path: Optional explicit settings file (highest file precedence)
    
    Returns:
        Merged configuration dictionary
    """
    config = read_yaml_file(get_defaults_path())
    
    user_config_path = get_user_config_path()
    if user_config_path.exists():
        try:
            _deep_merge(config, read_yaml_file(user_config_path))
        except SettingsError as e:
            logger.warning(f"Could not load user config from {user_config_path}: {e}")
    
    project_config_path = get_project_config_path()
    if project_config_path:
        _deep_merge(config, read_yaml_file(project_config_path))
        logger.info(f"Loaded project config from {project_config_path}")
    
    if settings_path:
        path = Path(settings_path)
        if not path.exists():
            raise SettingsError(f"Settings file not found: {settings_path}")
        _deep_merge(config, read_yaml_file(path))
        logger.info(f"Loaded settings from {settings_path}")
    
    return config


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """Deep merge override into base (mutates base)."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
