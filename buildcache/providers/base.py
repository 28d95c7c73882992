"""Build metadata provider protocol.

The graph builder never inspects source trees itself; everything it knows
about a unit comes from a MetadataProvider. This keeps the resolution,
fingerprint and staleness logic independent of how a toolchain reports its
packages (``go list``, a static manifest, a test double).
"""

from pathlib import Path
from typing import Protocol

from buildcache.models import Toolchain
from buildcache.models import UnitDescriptor


class MetadataProvider(Protocol):
    """Protocol for describing compilation units."""

    def toolchain(self) -> Toolchain:
        """Return the identity of the toolchain building the artifacts."""
        ...

    def describe(self, path: str, src_dir: Path, options: tuple[str, ...] = ()) -> UnitDescriptor:
        """Describe the unit named by ``path``.

        Args:
            path: Canonical import path, or a local path relative to src_dir
            src_dir: Directory local paths are resolved against
            options: Build variant options (e.g. ``("race",)``)

        Returns:
            UnitDescriptor for the unit

        Raises:
            MetadataError: If the unit cannot be described
        """
        ...

    def canonical_import_path(self, directory: Path) -> str | None:
        """Return the canonical import path of the unit in ``directory``, if it has one."""
        ...
