"""Metadata provider backed by ``go list -json``."""

import logging
import os
import subprocess
from pathlib import Path

from pydantic import ValidationError

from buildcache.errors import MetadataError
from buildcache.models import Toolchain
from buildcache.models import UnitDescriptor

logger = logging.getLogger(__name__)

# Variant options that map to a dedicated go flag; anything else is a build tag.
_FLAG_OPTIONS = {"race": "-race", "msan": "-msan", "asan": "-asan"}


class GoListProvider:
    """Describe Go packages by running the go tool.

    Each describe() call runs ``go list -e -json`` for one package. With -e the
    tool reports load problems in the Error field instead of failing, which is
    then surfaced as a MetadataError for that unit only.
    """

    def __init__(self, go_command: str = "go", env: dict[str, str] | None = None) -> None:
        """Initialize provider.

        Args:
            go_command: go executable to run
            env: Extra environment variables for the go tool (GOFLAGS, GOOS, ...)
        """
        self.go_command = go_command
        self.env = dict(env or {})
        self._toolchain: Toolchain | None = None

    def _run(self, args: list[str], cwd: Path | None = None) -> str:
        cmd = [self.go_command, *args]
        logger.debug(f"Running {' '.join(cmd)} in {cwd or Path.cwd()}")
        try:
            proc = subprocess.run(
                cmd,
                cwd=str(cwd) if cwd else None,
                env={**os.environ, **self.env},
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise MetadataError(f"failed to run {self.go_command}: {e}") from e

        if proc.returncode != 0:
            output = (proc.stderr or proc.stdout).strip()
            raise MetadataError(f"{' '.join(cmd)} failed: {output}")
        return proc.stdout

    def toolchain(self) -> Toolchain:
        """Return the toolchain the go command builds with.

        Uses ``go env`` rather than anything about this process, so the
        fingerprint changes when the installed go changes.
        """
        if self._toolchain is None:
            output = self._run(["env", "-json", "GOVERSION", "GOOS", "GOARCH"])
            try:
                self._toolchain = Toolchain.model_validate_json(output)
            except ValidationError as e:
                raise MetadataError(f"unexpected go env output: {e}") from e
            logger.info(
                f"Using toolchain {self._toolchain.version} {self._toolchain.os}/{self._toolchain.arch}"
            )
        return self._toolchain

    @staticmethod
    def list_args(path: str, options: tuple[str, ...] = ()) -> list[str]:
        """Build the ``go list`` argument vector for one package."""
        args = ["list", "-e", "-json"]
        tags = []
        for option in options:
            if option in _FLAG_OPTIONS:
                args.append(_FLAG_OPTIONS[option])
            else:
                tags.append(option)
        if tags:
            args.extend(["-tags", ",".join(tags)])
        args.append(path)
        return args

    def describe(self, path: str, src_dir: Path, options: tuple[str, ...] = ()) -> UnitDescriptor:
        output = self._run(self.list_args(path, options), cwd=src_dir)
        try:
            descriptor = UnitDescriptor.model_validate_json(output)
        except ValidationError as e:
            raise MetadataError(f"unexpected go list output for {path}: {e}") from e

        if descriptor.error is not None:
            raise MetadataError(descriptor.error.err, descriptor.error.import_stack, descriptor.error.pos)
        return descriptor

    def canonical_import_path(self, directory: Path) -> str | None:
        try:
            output = self._run(["list", "-e", "-f", "{{.ImportPath}}", "."], cwd=directory)
        except MetadataError as e:
            logger.debug(f"No canonical import path for {directory}: {e}")
            return None
        import_path = output.strip()
        if not import_path or import_path == "." or import_path.startswith("_"):
            return None
        return import_path

