"""Staleness evaluation.

Decides, per unit, whether its installed artifact no longer reflects its
sources, using the same rules the toolchain uses to decide whether an
install would do anything. The evaluator only reads modification times; it
never touches files.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from buildcache.models import CompilationUnit
from buildcache.models import DependencyGraph

logger = logging.getLogger(__name__)


def _mtime(path: Path) -> float | None:
    try:
        return os.stat(path).st_mtime
    except OSError:
        return None


class StalenessEvaluator:
    """Computes the stale flag for every unit reachable from the graph roots."""

    def evaluate(self, graph: DependencyGraph) -> dict[str, bool]:
        """Evaluate staleness for the graph.

        Walks the import graph from the roots (and extras) in depth-first
        post-order, so every dependency is decided before its dependents.

        Args:
            graph: Resolved dependency graph

        Returns:
            Mapping of unit key to stale flag
        """
        top_roots = {root.root for root in graph.roots}
        results: dict[str, bool] = {}
        for unit in self.post_order([*graph.roots, *graph.extras]):
            unit.stale = self.is_stale(unit, top_roots)
            results[unit.key] = unit.stale
        return results

    @staticmethod
    def post_order(roots: list[CompilationUnit]) -> list[CompilationUnit]:
        """Units reachable from ``roots``, each once, dependencies first."""
        seen: set[str] = set()
        ordered: list[CompilationUnit] = []

        def walk(unit: CompilationUnit) -> None:
            if unit.key in seen:
                return
            seen.add(unit.key)
            for dep in unit.imports:
                walk(dep)
            ordered.append(unit)

        for root in roots:
            walk(root)
        return ordered

    def is_stale(self, unit: CompilationUnit, top_roots: set[str]) -> bool:
        """Whether ``unit`` needs to be rebuilt.

        Args:
            unit: Unit to decide; its dependencies must already be decided
            top_roots: Source tree roots of the requested units
        """
        # unsafe is built into the compiler and never has an artifact.
        if unit.standard and unit.base_path == "unsafe":
            return False

        if unit.error is not None or unit.descriptor is None:
            logger.debug(f"stale (load error): {unit.key}")
            return True

        # Binary-only unit: only the installed artifact exists and there is
        # nothing to rebuild it from.
        if not unit.descriptor.has_compilable_sources():
            return False

        target = unit.target
        if target is None or unit.descriptor.stale:
            logger.debug(f"stale (no target or toolchain says stale): {unit.key}")
            return True

        built = _mtime(target)
        if built is None:
            logger.debug(f"stale (not built): {unit.key}")
            return True

        def newer(path: Path) -> bool:
            mtime = _mtime(path)
            return mtime is None or mtime > built

        for dep in unit.deps:
            if dep.stale or (dep.target is not None and newer(dep.target)):
                logger.debug(f"stale (dependency {dep.key}): {unit.key}")
                return True

        # Units outside every requested tree are taken as up to date whatever
        # their source times say (e.g. a read-only toolchain installation).
        if unit.root and unit.root not in top_roots:
            return False

        directory = unit.directory or Path(".")
        for name in unit.descriptor.source_files():
            if newer(directory / name):
                logger.debug(f"stale (source {name} newer): {unit.key}")
                return True

        return False
