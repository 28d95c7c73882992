"""Cache service for saving, restoring and clearing build artifacts.

Coordinates GraphBuilder → StalenessEvaluator → FingerprintEngine →
CacheStore for one invocation. The command layer only parses arguments and
renders the returned results.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from buildcache.cache import CacheStore
from buildcache.cache import FingerprintEngine
from buildcache.cache import PutResult
from buildcache.cache import StalenessEvaluator
from buildcache.graph import GraphBuilder
from buildcache.graph import ImplicitImportPolicy
from buildcache.models import CacheRunResult
from buildcache.models import CompilationUnit
from buildcache.models import DependencyGraph
from buildcache.models import UnitCacheResult
from buildcache.providers import MetadataProvider

logger = logging.getLogger(__name__)


class CacheService:
    """Service for moving unit artifacts in and out of the cache store."""

    def __init__(
        self,
        provider: MetadataProvider,
        store: CacheStore,
        implicit_imports: ImplicitImportPolicy | None = None,
        cwd: Path | None = None,
        fingerprint_workers: int = 1,
    ) -> None:
        """Initialize cache service.

        Args:
            provider: Build metadata provider
            store: Artifact store
            implicit_imports: Toolchain-implied import policy for the graph builder
            cwd: Directory local requests are relative to
            fingerprint_workers: Threads used for fingerprinting
        """
        self.provider = provider
        self.store = store
        self.builder = GraphBuilder(provider, implicit_imports=implicit_imports, cwd=cwd)
        self.staleness = StalenessEvaluator()
        self.fingerprint_workers = fingerprint_workers

    def load(self, requests: list[str] | None = None, include_tests: bool = False) -> DependencyGraph:
        """Resolve requests and evaluate staleness.

        Each distinct unit error is logged once, even when many units depend
        on the failing one.

        Args:
            requests: Unit requests (default: current directory)
            include_tests: Also resolve test imports of units under the roots

        Returns:
            Resolved graph with stale flags set
        """
        graph = self.builder.resolve(requests, include_test_imports=include_tests)
        self.staleness.evaluate(graph)

        for error in graph.errors():
            logger.error(f"can't load package: {error}")
        return graph

    @staticmethod
    def _cacheable(graph: DependencyGraph) -> list[CompilationUnit]:
        # Standard units belong to the toolchain installation.
        return [unit for unit in graph.closure() if not unit.standard]

    def save(self, requests: list[str] | None = None, include_tests: bool = False) -> CacheRunResult:
        """Store the artifact of every fresh unit in the requested closure.

        Stale units and units without an installed artifact are skipped.

        Raises:
            StoreIOError: If an artifact cannot be stored
        """
        logger.info(f"Saving {' '.join(requests or ['.'])} to {self.store.directory}")
        graph = self.load(requests, include_tests)
        engine = FingerprintEngine(self.provider.toolchain())

        units = self._cacheable(graph)
        eligible = [
            unit for unit in units if not unit.stale and unit.target is not None and unit.target.exists()
        ]
        fingerprints = engine.fingerprint_many(eligible, workers=self.fingerprint_workers)

        result = CacheRunResult(command="save", cache_dir=self.store.directory)
        for unit in units:
            fp = fingerprints.get(unit.key)
            if fp is None or unit.target is None:
                result.units.append(UnitCacheResult(identity=unit.key, status="skipped"))
                continue
            put = self.store.put(fp, unit.target)
            status = "saved" if put is PutResult.INSERTED else "present"
            result.units.append(UnitCacheResult(identity=unit.key, fingerprint=fp, status=status))

        result.errors = [str(error) for error in graph.errors()]
        logger.info(f"Saved {result.count('saved')} new artifact(s), {result.count('present')} already cached")
        return result

    def restore(self, requests: list[str] | None = None, include_tests: bool = False) -> CacheRunResult:
        """Install cached artifacts for every unit whose fingerprint is in the store.

        All restored artifacts get the same modification time, taken once at
        the start of the restore, so none looks newer than a dependent.

        Raises:
            StoreIOError: If an artifact cannot be installed
        """
        result = CacheRunResult(command="restore", cache_dir=self.store.directory)
        if not self.store.exists():
            logger.info(f"{self.store.directory} does not exist")
            return result

        logger.info(f"Restoring {' '.join(requests or ['.'])} from {self.store.directory}")
        graph = self.load(requests, include_tests)
        engine = FingerprintEngine(self.provider.toolchain())

        units = self._cacheable(graph)
        with_target = [unit for unit in units if unit.target is not None]
        fingerprints = engine.fingerprint_many(with_target, workers=self.fingerprint_workers)

        now = time.time()
        for unit in units:
            fp = fingerprints.get(unit.key)
            if fp is not None and unit.target is not None and self.store.restore(fp, unit.target, mtime=now):
                result.units.append(UnitCacheResult(identity=unit.key, fingerprint=fp, status="restored"))
            else:
                result.units.append(UnitCacheResult(identity=unit.key, status="missing"))

        result.errors = [str(error) for error in graph.errors()]
        logger.info(f"Restored {result.count('restored')} artifact(s), {result.count('missing')} missing")
        return result

    def clear(self) -> CacheRunResult:
        """Delete every cache entry along with the store directory.

        Raises:
            StoreIOError: If the directory cannot be removed
        """
        logger.info(f"Clearing {self.store.directory}")
        self.store.clear()
        return CacheRunResult(command="clear", cache_dir=self.store.directory)
