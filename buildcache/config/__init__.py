"""Configuration module for buildcache.

Provides configuration loading from YAML and environment variables.

Public Interface:
    - BuildCacheSettings: Settings model
    - load_config: Load configuration
    - get_config_path: Get config file path
"""

from .loader import get_config_path
from .loader import load_config
from .settings import BuildCacheSettings

__all__ = [
    "BuildCacheSettings",
    "load_config",
    "get_config_path",
]
