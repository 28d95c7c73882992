"""Compilation units and the dependency graph built from them.

Units are plain mutable dataclasses rather than pydantic models: the graph
builder fills them in while recursing, units refer to each other by reference
(cycles included), and identity matters more than value equality.
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from pathlib import Path

from buildcache.errors import UnitError

from .descriptors import UnitDescriptor


class ResolutionStatus(str, Enum):
    """Resolution state of a unit within one graph build.

    State transitions:
    - UNVISITED: Unit key is known but its resolution has not started
    - IN_PROGRESS: Unit's imports are being resolved (seeing it again is a cycle)
    - RESOLVED: Unit and its transitive dependencies are complete
    """

    UNVISITED = "unvisited"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


@dataclass(eq=False)
class CompilationUnit:
    """One buildable package node in the dependency graph."""

    key: str
    base_path: str
    variant: tuple[str, ...] = ()
    local: bool = False
    descriptor: UnitDescriptor | None = None
    status: ResolutionStatus = ResolutionStatus.UNVISITED
    error: UnitError | None = None
    incomplete: bool = False
    imports: list[CompilationUnit] = field(default_factory=list)
    deps: list[CompilationUnit] = field(default_factory=list)
    stale: bool | None = None

    @property
    def directory(self) -> Path | None:
        if self.descriptor is None or not self.descriptor.dir:
            return None
        return Path(self.descriptor.dir)

    @property
    def standard(self) -> bool:
        return self.descriptor is not None and self.descriptor.standard

    @property
    def root(self) -> str:
        return self.descriptor.root if self.descriptor is not None else ""

    @property
    def target(self) -> Path | None:
        """Install path of the unit's artifact, or None when it has none."""
        if self.local or self.descriptor is None or not self.descriptor.target:
            return None
        return Path(self.descriptor.target)

    def set_error(self, error: UnitError) -> None:
        """Attach ``error`` unless the unit already carries one."""
        if self.error is None:
            self.error = error
        self.incomplete = True

    def __repr__(self) -> str:
        return f"CompilationUnit({self.key!r}, status={self.status.value})"


@dataclass
class DependencyGraph:
    """Units of one graph build plus the requested roots."""

    units: dict[str, CompilationUnit] = field(default_factory=dict)
    roots: list[CompilationUnit] = field(default_factory=list)
    # Units pulled in beside the roots (test imports); part of the closure.
    extras: list[CompilationUnit] = field(default_factory=list)

    def closure(self) -> list[CompilationUnit]:
        """Roots, extras and their transitive dependencies, each once, sorted by key."""
        seen: dict[str, CompilationUnit] = {}
        for root in [*self.roots, *self.extras]:
            seen.setdefault(root.key, root)
            for dep in root.deps:
                seen.setdefault(dep.key, dep)
        return [seen[key] for key in sorted(seen)]

    def errors(self) -> list[UnitError]:
        """Distinct unit errors found in the closure, in closure order."""
        errors: list[UnitError] = []
        seen: set[int] = set()
        for unit in self.closure():
            if unit.error is not None and id(unit.error) not in seen:
                seen.add(id(unit.error))
                errors.append(unit.error)
        return errors

    def get(self, key: str) -> CompilationUnit | None:
        return self.units.get(key)
