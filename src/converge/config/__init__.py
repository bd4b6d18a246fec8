"""Configuration module: load and validate runtime settings."""

import os
from typing import Any, Dict, Optional
from pydantic import ValidationError
from ..utils.errors import SettingsError
from ..utils.logging import get_logger
from .manager import load_config
from .paths import get_defaults_path, get_project_config_path, get_user_config_path
from .settings import Settings

logger = get_logger("config")

ENV_OVERRIDES = {
    "CONVERGE_STATE": "state_path",
    "CONVERGE_PROVIDER": "provider",
}


def load_settings(settings_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None) -> Settings:
    """
    Load settings from files, environment variables and explicit overrides.
    
    Precedence (lowest to highest): packaged defaults, user config, project
    config, settings_path, CONVERGE_* environment variables, overrides.
    
    Args:
        settings_path: Optional explicit settings YAML file
        overrides: Values from CLI flags; None entries are ignored
        
    Returns:
        Validated Settings
        
    Raises:
        SettingsError: If any layer is invalid
    """
    config = load_config(settings_path)
    
    for env_var, key in ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value:
            logger.debug(f"Using {env_var} for {key}")
            config[key] = value
    
    for key, value in (overrides or {}).items():
        if value is not None:
            config[key] = value
    
    try:
        settings = Settings(**config)
    except ValidationError as e:
        raise SettingsError(f"Invalid settings: {e}")
    
    # capability entries are validated here rather than at first use
    settings.capability_table()
    return settings


__all__ = [
    "Settings",
    "get_defaults_path",
    "get_project_config_path",
    "get_user_config_path",
    "load_config",
    "load_settings",
]
