"""Error types for buildcache.

Two families of errors exist:

- Invocation errors (UsageError, StoreIOError) abort the run.
- Unit errors (MetadataError, ImportCycleError, LocalImportMisuseError) are
  attached to a single compilation unit. They never abort graph resolution;
  the run only fails if one of them sits in a requested root's closure.
"""

from __future__ import annotations

from pathlib import Path


class BuildCacheError(Exception):
    """Base class for all buildcache errors."""

    pass


class UsageError(BuildCacheError):
    """Raised when the tool is invoked with bad arguments."""

    pass


class UnitError(BuildCacheError):
    """Error loading a single compilation unit.

    Attributes:
        message: The error itself
        import_stack: Shortest import path from a requested root to the unit
        pos: Source position of the offending import, if known
    """

    def __init__(self, message: str, import_stack: list[str] | None = None, pos: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.import_stack = list(import_stack or [])
        self.pos = pos

    @property
    def is_import_cycle(self) -> bool:
        return False

    def __str__(self) -> str:
        if self.pos:
            # The position is more useful than the import stack.
            return f"{self.pos}: {self.message}"
        if not self.import_stack:
            return self.message
        return "package " + "\n\timports ".join(self.import_stack) + ": " + self.message


class MetadataError(UnitError):
    """The metadata provider could not describe a unit."""

    pass


class ImportCycleError(UnitError):
    """A unit (transitively) imports itself."""

    def __init__(self, import_stack: list[str] | None = None) -> None:
        super().__init__("import cycle not allowed", import_stack)

    @property
    def is_import_cycle(self) -> bool:
        return True

    def __str__(self) -> str:
        return f"{self.message}\npackage " + "\n\timports ".join(self.import_stack) + "\n"


class LocalImportMisuseError(UnitError):
    """A unit named by a local path is imported from a non-local unit."""

    pass


class StoreIOError(BuildCacheError):
    """A cache store write, link or remove failed.

    Attributes:
        path: The store path involved in the failed operation
    """

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path
