"""Artifact caching for compilation units.

This module provides the pieces that decide and perform artifact reuse:
- Fingerprinting of units and their dependencies
- Staleness evaluation of installed artifacts
- The content-addressed artifact store
"""

from .fingerprint import FingerprintEngine
from .staleness import StalenessEvaluator
from .store import CacheStore
from .store import PutResult
from .store import link_or_copy

__all__ = [
    "FingerprintEngine",
    "StalenessEvaluator",
    "CacheStore",
    "PutResult",
    "link_or_copy",
]
