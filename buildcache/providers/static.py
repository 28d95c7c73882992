"""Metadata provider backed by a fixed set of descriptors.

Useful for toolchains that cannot be queried directly and for tests. The
descriptors can be given in code or loaded from a YAML manifest:

    toolchain:
      version: go1.22.3
      os: linux
      arch: amd64
    units:
      - import_path: example.com/x
        dir: src/x                  # relative to the manifest
        target: pkg/x.a             # relative to the manifest
        root: .
        go_files: [x.go]
        imports: [fmt]
"""

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from buildcache.errors import MetadataError
from buildcache.models import Toolchain
from buildcache.models import UnitDescriptor

logger = logging.getLogger(__name__)


class StaticProvider:
    """Provider answering from in-memory descriptors keyed by import path."""

    def __init__(self, toolchain: Toolchain, descriptors: list[UnitDescriptor] | None = None) -> None:
        self._toolchain = toolchain
        self._by_path: dict[str, UnitDescriptor] = {}
        self._by_dir: dict[Path, UnitDescriptor] = {}
        for descriptor in descriptors or []:
            self.add(descriptor)

    def add(self, descriptor: UnitDescriptor) -> None:
        """Register (or replace) a descriptor."""
        if not descriptor.import_path:
            raise ValueError("descriptor needs an import_path")
        self._by_path[descriptor.import_path] = descriptor
        if descriptor.dir:
            self._by_dir[Path(descriptor.dir).resolve()] = descriptor

    def toolchain(self) -> Toolchain:
        return self._toolchain

    def describe(self, path: str, src_dir: Path, options: tuple[str, ...] = ()) -> UnitDescriptor:
        descriptor = self._by_path.get(path)
        if descriptor is None:
            directory = (Path(src_dir) / path).resolve()
            descriptor = self._by_dir.get(directory)
        if descriptor is None:
            raise MetadataError(f"cannot find package {path!r}")
        return descriptor.model_copy(deep=True)

    def canonical_import_path(self, directory: Path) -> str | None:
        descriptor = self._by_dir.get(Path(directory).resolve())
        if descriptor is None or descriptor.import_path.startswith("_"):
            return None
        return descriptor.import_path

    @classmethod
    def from_yaml(cls, manifest_path: Path) -> "StaticProvider":
        """Load a provider from a YAML manifest.

        Relative ``dir``, ``target`` and ``root`` values are resolved against
        the manifest's directory.

        Raises:
            MetadataError: If the manifest cannot be read or is invalid
        """
        manifest_path = Path(manifest_path)
        try:
            with open(manifest_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise MetadataError(f"failed to read manifest {manifest_path}: {e}") from e

        if not isinstance(data, dict):
            raise MetadataError(f"manifest {manifest_path} must be a mapping")

        base_dir = manifest_path.parent.resolve()
        try:
            toolchain = Toolchain.model_validate(data.get("toolchain") or {})
            descriptors = []
            for entry in data.get("units") or []:
                descriptor = UnitDescriptor.model_validate(entry)
                for attr in ("dir", "target", "root"):
                    value = getattr(descriptor, attr)
                    if value:
                        setattr(descriptor, attr, str(base_dir / value))
                descriptors.append(descriptor)
        except ValidationError as e:
            raise MetadataError(f"invalid manifest {manifest_path}: {e}") from e

        logger.info(f"Loaded {len(descriptors)} unit descriptors from {manifest_path}")
        return cls(toolchain, descriptors)
