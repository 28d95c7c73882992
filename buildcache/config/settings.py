"""Settings model for buildcache.

Contract:
- Inputs: Environment variables, YAML files
- Outputs: Validated settings objects
- Side Effects: None (read-only)
"""

from pathlib import Path

from pydantic import AliasChoices
from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class BuildCacheSettings(BaseSettings):
    """Configuration for buildcache.

    Attributes:
        cache_dir: Artifact store directory (default: ~/buildcache)
        log_level: Logging level (default: info)
        go_command: go executable used to describe packages (default: go)
        fingerprint_workers: Threads used to fingerprint units (default: 1)

    Example:
        >>> settings = BuildCacheSettings()
        >>> assert settings.log_level == "info"
    """

    model_config = SettingsConfigDict(
        env_prefix="BUILDCACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # CACHE is accepted for existing CI scripts that set it.
    cache_dir: str = Field(
        default="~/buildcache",
        validation_alias=AliasChoices("BUILDCACHE_CACHE_DIR", "CACHE"),
    )
    log_level: str = "info"
    go_command: str = "go"
    fingerprint_workers: int = Field(default=1, ge=1)

    @field_validator("cache_dir")
    @classmethod
    def expand_and_resolve_path(cls, v: str) -> str:
        """Expand ~ and resolve to absolute path.

        Args:
            v: Path string (may contain ~ or be relative)

        Returns:
            Absolute path as string
        """
        return str(Path(v).expanduser().resolve())

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.strip().lower()
        if level not in {"debug", "info", "warning", "error", "critical"}:
            raise ValueError(f"Unknown log level: {v}")
        return level
