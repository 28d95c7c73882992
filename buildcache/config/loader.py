"""Configuration loading for buildcache.

This module handles loading settings from a YAML file and environment
variables.

Contract:
- Inputs: Config file paths, environment variables
- Outputs: BuildCacheSettings objects
- Side Effects: None (the config file is never written)
"""

import logging
import os
from pathlib import Path

import yaml

from ..storage.paths import get_config_dir
from .settings import BuildCacheSettings

logger = logging.getLogger(__name__)

# Environment variables that set a setting besides BUILDCACHE_<KEY>.
_ENV_ALIASES = {"cache_dir": ("CACHE",)}


def get_config_path() -> Path:
    """Get path to config file.

    Returns:
        Path to config.yaml in config directory

    Example:
        >>> config_path = get_config_path()
        >>> assert config_path.name == "config.yaml"
    """
    return get_config_dir() / "config.yaml"


def _env_overrides(key: str) -> bool:
    names = [f"BUILDCACHE_{key.upper()}", *_ENV_ALIASES.get(key, ())]
    return any(name in os.environ for name in names)


def load_config(config_path: Path | None = None) -> BuildCacheSettings:
    """Load configuration from YAML and environment.

    Environment variables take precedence over YAML settings. A missing
    config file simply means defaults; it is not created.

    Args:
        config_path: Optional config file path (default: config.yaml in config dir)

    Returns:
        Validated settings

    Example:
        >>> settings = load_config()
        >>> assert isinstance(settings, BuildCacheSettings)
    """
    if config_path is None:
        config_path = get_config_path()

    yaml_settings = {}
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                yaml_settings = yaml.safe_load(f) or {}
            logger.debug(f"Loaded config from {config_path}")
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load config from {config_path}: {e}")
            logger.info("Using default settings and environment variables")

    if not isinstance(yaml_settings, dict):
        logger.warning(f"Ignoring config {config_path}: top level must be a mapping")
        yaml_settings = {}

    # Only pass YAML values that don't have corresponding env vars, so the
    # precedence is defaults < YAML < environment.
    filtered_yaml = {key: value for key, value in yaml_settings.items() if not _env_overrides(key)}

    settings = BuildCacheSettings(**filtered_yaml)
    logger.debug(f"Configuration loaded: cache_dir={settings.cache_dir}, log_level={settings.log_level}")
    return settings
