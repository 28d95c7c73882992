"""Implicit imports added by the toolchain.

Some units depend on runtime support packages without importing them in
source: cgo users need the cgo runtime and syscall, everything needs the
runtime, and race-instrumented builds need the race runtime. The exclusion
lists keep the support packages themselves from depending on each other in a
cycle.
"""

from typing import Protocol

from buildcache.models import UnitDescriptor

RACE_EXCLUDE = frozenset({"runtime/race", "runtime/cgo", "cmd/cgo", "syscall", "errors"})
CGO_EXCLUDE = frozenset({"runtime/cgo"})
CGO_SYSCALL_EXCLUDE = frozenset({"runtime/cgo", "runtime/race"})
RUNTIME_EXCLUDE = frozenset({"runtime", "unsafe"})


class ImplicitImportPolicy(Protocol):
    """Computes imports a unit has in addition to its declared ones."""

    def implicit_imports(
        self, descriptor: UnitDescriptor, base_path: str, options: tuple[str, ...]
    ) -> list[str]: ...


class GoImplicitImports:
    """Implicit imports the go tool adds when building a package."""

    def implicit_imports(
        self, descriptor: UnitDescriptor, base_path: str, options: tuple[str, ...]
    ) -> list[str]:
        """Return extra import paths for the unit.

        Args:
            descriptor: Provider description of the unit
            base_path: Unit import path without variant qualifier
            options: Build variant options of the unit

        Returns:
            Import paths in the order the toolchain adds them
        """
        standard = descriptor.standard
        extra = []
        if descriptor.uses_cgo() and (not standard or base_path not in CGO_EXCLUDE):
            extra.append("runtime/cgo")
        if descriptor.uses_cgo() and (not standard or base_path not in CGO_SYSCALL_EXCLUDE):
            extra.append("syscall")
        if not standard or base_path not in RUNTIME_EXCLUDE:
            extra.append("runtime")
            if "race" in options and (not standard or base_path not in RACE_EXCLUDE):
                extra.append("runtime/race")
        return [path for path in extra if path not in descriptor.imports]
