"""
Shared pytest fixtures for the buildcache test suite.

Provides fixtures for:
- Temporary storage directories with isolated environment
- A small built source tree (units x, y, z) served by a StaticProvider
- A cache directory
"""

import os
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
import yaml

from buildcache.models import Toolchain
from buildcache.models import UnitDescriptor
from buildcache.providers import StaticProvider

# Fixed times well in the past, so anything written "now" is newer.
SOURCE_TIME = 1_600_000_000
TARGET_TIME = SOURCE_TIME + 100


def set_mtime(path: Path, mtime: float) -> None:
    os.utime(path, (mtime, mtime))


class Workspace:
    """A built source tree.

    Units (import path: imports):
        example.com/x: fmt
        example.com/y: example.com/x
        example.com/z: example.com/y

    ``fmt`` is a standard unit living in a separate toolchain root. Every
    source file has mtime SOURCE_TIME and every artifact TARGET_TIME.
    """

    def __init__(self, base: Path) -> None:
        self.base = base
        self.src = base / "src"
        self.pkg = base / "pkg"
        self.goroot = base / "goroot"
        self.source_time = SOURCE_TIME
        self.target_time = TARGET_TIME
        self.toolchain = Toolchain(version="go1.22.3", os="linux", arch="amd64")
        self.descriptors: dict[str, UnitDescriptor] = {}

        self.add_standard("fmt")
        self.add_unit("example.com/x", imports=["fmt"])
        self.add_unit("example.com/y", imports=["example.com/x"])
        self.add_unit("example.com/z", imports=["example.com/y"])

    def add_unit(
        self,
        import_path: str,
        imports: list[str] | None = None,
        files: dict[str, str] | None = None,
        build: bool = True,
        **fields,
    ) -> UnitDescriptor:
        """Write the unit's sources (and artifact) and register its descriptor."""
        name = import_path.rsplit("/", 1)[-1]
        directory = self.src / import_path
        directory.mkdir(parents=True, exist_ok=True)

        files = files or {f"{name}.go": f"package {name}\n"}
        for file_name, content in files.items():
            path = directory / file_name
            path.write_text(content)
            set_mtime(path, SOURCE_TIME)

        target = self.pkg / f"{import_path}.a"
        if build:
            self.build(target)

        descriptor = UnitDescriptor(
            dir=str(directory),
            import_path=import_path,
            name=name,
            root=str(self.base),
            target=str(target),
            go_files=sorted(files),
            imports=list(imports or []),
            **fields,
        )
        self.descriptors[import_path] = descriptor
        return descriptor

    def add_standard(self, import_path: str) -> UnitDescriptor:
        name = import_path.rsplit("/", 1)[-1]
        directory = self.goroot / "src" / import_path
        directory.mkdir(parents=True, exist_ok=True)
        source = directory / f"{name}.go"
        source.write_text(f"package {name}\n")
        set_mtime(source, SOURCE_TIME)

        target = self.goroot / "pkg" / f"{import_path}.a"
        self.build(target)

        descriptor = UnitDescriptor(
            dir=str(directory),
            import_path=import_path,
            name=name,
            root=str(self.goroot),
            target=str(target),
            goroot=True,
            standard=True,
            go_files=[source.name],
        )
        self.descriptors[import_path] = descriptor
        return descriptor

    def build(self, target: Path, mtime: float = TARGET_TIME) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(f"artifact {target.name}\n".encode())
        set_mtime(target, mtime)

    def touch(self, path: Path, mtime: float) -> None:
        set_mtime(path, mtime)

    def provider(self) -> StaticProvider:
        return StaticProvider(self.toolchain, list(self.descriptors.values()))

    def source(self, import_path: str) -> Path:
        descriptor = self.descriptors[import_path]
        return Path(descriptor.dir) / descriptor.go_files[0]

    def target(self, import_path: str) -> Path:
        return Path(self.descriptors[import_path].target)

    def edit(self, import_path: str, content: str = "package edited\n") -> Path:
        """Change the unit's first source file after its artifact was built."""
        path = self.source(import_path)
        path.write_text(content)
        set_mtime(path, TARGET_TIME + 50)
        return path

    def write_manifest(self) -> Path:
        """Write a YAML manifest describing every unit."""
        manifest = self.base / "units.yaml"
        data = {
            "toolchain": self.toolchain.model_dump(),
            "units": [d.model_dump(exclude_defaults=True) for d in self.descriptors.values()],
        }
        manifest.write_text(yaml.safe_dump(data))
        return manifest


@pytest.fixture
def temp_storage_dir() -> Generator[Path, None, None]:
    """Create temporary storage directory for tests.

    Automatically cleaned up after test completes.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def mock_storage_env(temp_storage_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point BUILDCACHE_HOME at a temp directory and clear related variables.

    Example:
        >>> def test_with_isolated_storage(mock_storage_env):
        ...     from buildcache.storage.paths import get_home_dir
        ...     assert get_home_dir() == mock_storage_env
    """
    for name in (
        "BUILDCACHE_CONFIG_DIR",
        "BUILDCACHE_CACHE_DIR",
        "BUILDCACHE_LOG_LEVEL",
        "BUILDCACHE_GO_COMMAND",
        "BUILDCACHE_FINGERPRINT_WORKERS",
        "CACHE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("BUILDCACHE_HOME", str(temp_storage_dir))
    return temp_storage_dir.resolve()


@pytest.fixture
def workspace(tmp_path: Path) -> Workspace:
    """Built x/y/z source tree."""
    return Workspace(tmp_path / "ws")


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    """Cache directory path (not created)."""
    return tmp_path / "cache"
