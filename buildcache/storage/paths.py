"""Path resolution for buildcache's own files.

This module provides path resolution based on the BUILDCACHE_HOME
environment variable. The artifact store location itself is a setting
(see BuildCacheSettings.cache_dir), not derived from here.

Contract:
- Inputs: Environment variables (BUILDCACHE_HOME, BUILDCACHE_CONFIG_DIR)
- Outputs: Resolved Path objects
- Side Effects: None; callers create directories when they write
"""

import os
from pathlib import Path


def get_home_dir() -> Path:
    """Get BUILDCACHE_HOME from environment.

    Returns:
        Path to root directory (default: ~/.buildcache)
    """
    root = os.environ.get("BUILDCACHE_HOME", "~/.buildcache")
    return Path(root).expanduser().resolve()


def get_config_dir() -> Path:
    """Get configuration directory.

    Returns:
        Path to config directory ($BUILDCACHE_HOME/config)

    Environment Variables:
        BUILDCACHE_CONFIG_DIR: Override config directory location
        (falls back to $BUILDCACHE_HOME/config if not set)
    """
    config_dir: Path = get_home_dir() / "config"

    env_override: str | None = os.environ.get("BUILDCACHE_CONFIG_DIR")
    if env_override is not None:
        config_dir = Path(env_override).expanduser().resolve()

    return config_dir
