"""Data models for buildcache."""

from .base import ToolJSONModel
from .descriptors import FLAG_CATEGORIES
from .descriptors import SOURCE_CATEGORIES
from .descriptors import ProviderError
from .descriptors import Toolchain
from .descriptors import UnitDescriptor
from .results import CacheRunResult
from .results import UnitCacheResult
from .units import CompilationUnit
from .units import DependencyGraph
from .units import ResolutionStatus

__all__ = [
    "ToolJSONModel",
    "SOURCE_CATEGORIES",
    "FLAG_CATEGORIES",
    "Toolchain",
    "ProviderError",
    "UnitDescriptor",
    "CompilationUnit",
    "DependencyGraph",
    "ResolutionStatus",
    "UnitCacheResult",
    "CacheRunResult",
]
