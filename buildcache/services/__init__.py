"""Services for buildcache."""

from .cache_service import CacheService

__all__ = ["CacheService"]
