"""Dependency graph builder.

Resolves unit requests into a graph of compilation units. Every unit key is
resolved at most once per build; later imports of the same key reuse the
existing unit by reference. Resolution state is explicit
(UNVISITED / IN_PROGRESS / RESOLVED) so that meeting an IN_PROGRESS unit
again is recognised as an import cycle instead of recursing forever.

Errors are per unit: a unit that cannot be described, sits on an import
cycle or misuses a local import gets the error attached and is marked
incomplete, while the rest of the graph keeps resolving.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from buildcache.errors import ImportCycleError
from buildcache.errors import LocalImportMisuseError
from buildcache.errors import MetadataError
from buildcache.models import CompilationUnit
from buildcache.models import DependencyGraph
from buildcache.models import ResolutionStatus
from buildcache.providers import MetadataProvider

from .implicit import ImplicitImportPolicy
from .requests import UnitRequest
from .requests import dir_to_import_path
from .requests import is_local_import
from .requests import unit_key

logger = logging.getLogger(__name__)


def _under(import_path: str, prefix: str) -> bool:
    return import_path == prefix or import_path.startswith(prefix + "/")


class ResolutionContext:
    """Mutable state of one graph build.

    Holds the unit cache and the current import stack. A new context is made
    for every GraphBuilder.resolve() call, so separate builds never share
    units.
    """

    def __init__(self) -> None:
        self.units: dict[str, CompilationUnit] = {}
        self.stack: list[str] = []

    def push(self, key: str) -> None:
        self.stack.append(key)

    def pop(self) -> None:
        self.stack.pop()

    def copy_stack(self) -> list[str]:
        return list(self.stack)

    def shorter_than(self, other: list[str]) -> bool:
        """Whether the current stack is shorter than ``other``.

        Stacks of equal length are ordered by comparing components.
        """
        if len(self.stack) != len(other):
            return len(self.stack) < len(other)
        for mine, theirs in zip(self.stack, other):
            if mine != theirs:
                return mine < theirs
        return False


class GraphBuilder:
    """Builds dependency graphs from unit requests."""

    def __init__(
        self,
        provider: MetadataProvider,
        implicit_imports: ImplicitImportPolicy | None = None,
        cwd: Path | None = None,
    ) -> None:
        """Initialize graph builder.

        Args:
            provider: Source of unit descriptors
            implicit_imports: Policy adding toolchain-implied imports (None adds none)
            cwd: Directory local requests are relative to (default: process cwd)
        """
        self.provider = provider
        self.implicit_imports = implicit_imports
        self.cwd = cwd

    def resolve(
        self, requests: list[str | UnitRequest] | None = None, include_test_imports: bool = False
    ) -> DependencyGraph:
        """Resolve requests into a dependency graph.

        Args:
            requests: Unit requests; empty means the unit in the current directory
            include_test_imports: Also resolve test imports of units under the roots

        Returns:
            DependencyGraph with roots in request order
        """
        ctx = ResolutionContext()
        graph = DependencyGraph(units=ctx.units)

        parsed = [r if isinstance(r, UnitRequest) else UnitRequest.parse(r) for r in (requests or ["."])]
        seen: set[UnitRequest] = set()
        for request in parsed:
            if request in seen:
                continue
            seen.add(request)
            root = self.resolve_root(ctx, request)
            if not any(root is existing for existing in graph.roots):
                graph.roots.append(root)

        if include_test_imports:
            self._resolve_test_imports(ctx, graph)

        logger.debug(f"Resolved {len(graph.units)} units for {len(graph.roots)} root(s)")
        return graph

    def resolve_root(self, ctx: ResolutionContext, request: UnitRequest) -> CompilationUnit:
        """Resolve a requested unit.

        A local path naming a directory that has a canonical import path is
        treated as that import path, so ``./pkg`` inside a source tree and
        ``example.com/pkg`` are the same unit.
        """
        src_dir = Path(self.cwd or os.getcwd())
        path = request.path
        if request.local:
            canonical = self.provider.canonical_import_path(Path(os.path.normpath(src_dir / path)))
            if canonical:
                path = canonical
        return self.resolve_one(ctx, path, src_dir, request.options)

    def resolve_one(
        self, ctx: ResolutionContext, path: str, src_dir: Path, options: tuple[str, ...] = ()
    ) -> CompilationUnit:
        """Resolve one import path (or local path relative to ``src_dir``)."""
        local = is_local_import(path)
        import_path = dir_to_import_path(Path(os.path.normpath(src_dir / path))) if local else path
        key = unit_key(import_path, options)

        ctx.push(key)
        try:
            unit = ctx.units.get(key)
            if unit is not None:
                return self._reuse(ctx, unit)

            unit = CompilationUnit(key=key, base_path=import_path, variant=options, local=local)
            ctx.units[key] = unit
            self._load(ctx, unit, path, src_dir)
            return unit
        finally:
            ctx.pop()

    def _reuse(self, ctx: ResolutionContext, unit: CompilationUnit) -> CompilationUnit:
        if unit.status is ResolutionStatus.IN_PROGRESS:
            self._record_cycle(ctx, unit)
        elif (
            unit.error is not None
            and not unit.error.is_import_cycle
            and ctx.shorter_than(unit.error.import_stack)
        ):
            unit.error.import_stack = ctx.copy_stack()
        return unit

    def _record_cycle(self, ctx: ResolutionContext, unit: CompilationUnit) -> None:
        """Attach a cycle error to every unit on the cycle ending at ``unit``."""
        stack = ctx.copy_stack()
        start = stack.index(unit.key)
        cycle_error = ImportCycleError(stack)
        for key in stack[start:-1]:
            member = ctx.units[key]
            if member.error is None:
                member.error = cycle_error
            elif member.error.is_import_cycle and ctx.shorter_than(member.error.import_stack):
                member.error.import_stack = list(stack)
            member.incomplete = True
        logger.debug(f"Import cycle: {' -> '.join(stack[start:])}")

    def _load(self, ctx: ResolutionContext, unit: CompilationUnit, path: str, src_dir: Path) -> None:
        unit.status = ResolutionStatus.IN_PROGRESS
        try:
            descriptor = self.provider.describe(path, src_dir, unit.variant)
        except MetadataError as e:
            e.import_stack = ctx.copy_stack()
            unit.set_error(e)
            unit.status = ResolutionStatus.RESOLVED
            logger.debug(f"Failed to load {unit.key}: {e.message}")
            return

        unit.descriptor = descriptor
        if not unit.local and descriptor.import_comment and descriptor.import_comment != path:
            unit.set_error(
                MetadataError(
                    f"code in directory {descriptor.dir} expects import {descriptor.import_comment!r}",
                    ctx.copy_stack(),
                )
            )
            unit.status = ResolutionStatus.RESOLVED
            return

        import_paths = list(descriptor.imports)
        if self.implicit_imports is not None:
            import_paths.extend(self.implicit_imports.implicit_imports(descriptor, unit.base_path, unit.variant))

        dep_dir = unit.directory or src_dir
        imports: list[CompilationUnit] = []
        deps: dict[str, CompilationUnit] = {}
        for import_path in import_paths:
            # cgo pseudo-package
            if import_path == "C":
                continue
            dep = self.resolve_one(ctx, import_path, dep_dir, unit.variant)
            if dep.local and not unit.local:
                unit.set_error(
                    LocalImportMisuseError(
                        f"local import {import_path!r} in non-local package",
                        ctx.copy_stack(),
                    )
                )
            if not any(dep is existing for existing in imports):
                imports.append(dep)
            deps[dep.key] = dep
            for transitive in dep.deps:
                deps.setdefault(transitive.key, transitive)
            if dep.incomplete:
                unit.incomplete = True

        deps.pop(unit.key, None)
        unit.imports = imports
        unit.deps = [deps[key] for key in sorted(deps)]
        unit.status = ResolutionStatus.RESOLVED

    def _resolve_test_imports(self, ctx: ResolutionContext, graph: DependencyGraph) -> None:
        """Resolve test imports of every unit lying under a requested root."""
        prefixes = [root.base_path for root in graph.roots if not root.local]
        members = {unit.key for unit in graph.closure()}
        for unit in graph.closure():
            if unit.descriptor is None or not any(_under(unit.base_path, p) for p in prefixes):
                continue
            dep_dir = unit.directory or Path(self.cwd or os.getcwd())
            for import_path in [*unit.descriptor.test_imports, *unit.descriptor.xtest_imports]:
                extra = self.resolve_one(ctx, import_path, dep_dir, unit.variant)
                if extra.key not in members:
                    members.add(extra.key)
                    graph.extras.append(extra)
