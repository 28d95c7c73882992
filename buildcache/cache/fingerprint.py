"""Content fingerprints for compilation units.

A fingerprint is a SHA-256 digest over, in this order:

1. the toolchain identity (version, OS, arch) and the unit key,
2. the declared build flags, category by category,
3. the name and byte content of every owned source file,
4. the fingerprints of all non-standard dependencies, depth first in
   declared-import order.

Standard-library units are treated as fixed for a given toolchain version
and are left out, which bounds the amount of hashing per unit. Every field
is length-prefixed so adjacent fields cannot run into each other.

A unit whose fingerprint cannot be computed (it failed to load, or one of
its dependencies did) gets None. None is memoized like any other result and
makes every dependent None as well: they show up as cache misses rather than
aborting the run.
"""

from __future__ import annotations

import hashlib
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from threading import Lock

from buildcache.models import CompilationUnit
from buildcache.models import Toolchain

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


def _write_field(h: "hashlib._Hash", data: bytes) -> None:
    h.update(f"{len(data)}:".encode())
    h.update(data)


def _write_file(h: "hashlib._Hash", path: Path) -> None:
    with open(path, "rb") as f:
        size = os.fstat(f.fileno()).st_size
        h.update(f"{size}:".encode())
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            h.update(chunk)


class FingerprintEngine:
    """Computes and memoizes unit fingerprints for one run.

    Example:
        >>> engine = FingerprintEngine(provider.toolchain())
        >>> engine.fingerprint(graph.roots[0])
        '5d41402abc4b2a76b9719d911017c592...'
    """

    def __init__(self, toolchain: Toolchain) -> None:
        self.toolchain = toolchain
        self._memo: dict[str, str | None] = {}
        self._lock = Lock()

    def fingerprint(self, unit: CompilationUnit) -> str | None:
        """Return the hex digest of ``unit``, or None when indeterminate.

        Raises:
            OSError: If one of the unit's own source files cannot be read
        """
        with self._lock:
            if unit.key in self._memo:
                return self._memo[unit.key]

        result = self._compute(unit)

        with self._lock:
            # Concurrent computations of one unit produce the same digest.
            return self._memo.setdefault(unit.key, result)

    def fingerprint_many(self, units: list[CompilationUnit], workers: int = 1) -> dict[str, str | None]:
        """Fingerprint several units, optionally on a thread pool.

        Args:
            units: Units to fingerprint
            workers: Number of worker threads (1 computes inline)

        Returns:
            Mapping of unit key to fingerprint (None when indeterminate)
        """
        if workers <= 1:
            return {unit.key: self.fingerprint(unit) for unit in units}
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(self.fingerprint, units))
        return {unit.key: result for unit, result in zip(units, results)}

    @staticmethod
    def hashed_dependencies(unit: CompilationUnit) -> list[CompilationUnit]:
        """Non-standard direct and transitive dependencies in hashing order.

        Depth-first pre-order over declared imports; each dependency appears
        once and standard units are not descended into.
        """
        ordered: list[CompilationUnit] = []
        seen: set[str] = {unit.key}

        def walk(node: CompilationUnit) -> None:
            for dep in node.imports:
                if dep.key in seen or dep.standard:
                    continue
                seen.add(dep.key)
                ordered.append(dep)
                walk(dep)

        walk(unit)
        return ordered

    def _compute(self, unit: CompilationUnit) -> str | None:
        if unit.incomplete or unit.error is not None or unit.descriptor is None:
            logger.debug(f"Fingerprint of {unit.key} is indeterminate: unit did not load")
            return None

        dep_fingerprints = []
        for dep in self.hashed_dependencies(unit):
            fp = self.fingerprint(dep)
            if fp is None:
                logger.debug(f"Fingerprint of {unit.key} is indeterminate: {dep.key} has none")
                return None
            dep_fingerprints.append(fp)

        descriptor = unit.descriptor
        directory = unit.directory or Path(".")
        h = hashlib.sha256()

        for value in [*self.toolchain.identity(), unit.key]:
            _write_field(h, value.encode())

        for category, flags in descriptor.flag_groups():
            _write_field(h, category.encode())
            _write_field(h, str(len(flags)).encode())
            for flag in flags:
                _write_field(h, flag.encode())

        for _, files in descriptor.source_groups():
            for name in sorted(files):
                _write_field(h, name.encode())
                _write_file(h, directory / name)

        for fp in dep_fingerprints:
            _write_field(h, fp.encode())

        digest = h.hexdigest()
        logger.debug(f"Fingerprint {digest} {unit.key}")
        return digest
