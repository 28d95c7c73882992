"""Content-addressed artifact store.

A flat directory of immutable blobs, each named by the lowercase hex
fingerprint of the unit whose artifact it holds. Several processes (parallel
CI jobs sharing a cache volume) may use one directory at the same time, so
every operation treats "destination already exists" as success: two entries
under the same fingerprint are by construction identical.

Blobs are hard-linked in and out of the store when possible. When the store
and the workspace are on different filesystems (or the filesystem refuses
hard links) the blob is copied instead, with its permission bits.
"""

from __future__ import annotations

import errno
import logging
import os
import re
import shutil
import tempfile
from enum import Enum
from pathlib import Path

from buildcache.errors import StoreIOError

logger = logging.getLogger(__name__)

_FINGERPRINT_RE = re.compile(r"^[0-9a-f]+$")

# link() failures that mean "cannot link here", not "something is broken".
_LINK_FALLBACK_ERRNOS = {
    errno.EXDEV,
    errno.EPERM,
    errno.EMLINK,
    errno.ENOTSUP,
    errno.EOPNOTSUPP,
}


class PutResult(str, Enum):
    """Outcome of CacheStore.put()."""

    INSERTED = "inserted"
    PRESENT = "present"


def _copy_into_place(source: Path, dest: Path) -> bool:
    """Copy ``source`` to ``dest`` without ever exposing a partial file.

    The copy is written to a temporary file next to ``dest`` and then moved
    into place.

    Returns:
        True if ``dest`` was created, False if it already existed
    """
    fd, tmp_name = tempfile.mkstemp(prefix=".tmp-", dir=dest.parent)
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        shutil.copyfile(source, tmp_path)
        shutil.copymode(source, tmp_path)
        try:
            os.link(tmp_path, dest)
        except FileExistsError:
            return False
        except OSError as e:
            if e.errno not in _LINK_FALLBACK_ERRNOS:
                raise
            if dest.exists():
                return False
            os.replace(tmp_path, dest)
        return True
    finally:
        tmp_path.unlink(missing_ok=True)


def link_or_copy(source: Path, dest: Path) -> bool:
    """Hard-link ``source`` to ``dest``, copying when linking is not possible.

    Returns:
        True if ``dest`` was created, False if it already existed

    Raises:
        OSError: For failures other than an existing destination
    """
    try:
        os.link(source, dest)
        return True
    except FileExistsError:
        return False
    except OSError as e:
        if e.errno not in _LINK_FALLBACK_ERRNOS:
            raise
        logger.debug(f"Cannot link {source} -> {dest} ({e.strerror}), copying")
    return _copy_into_place(source, dest)


class CacheStore:
    """Directory-backed, content-addressed blob store.

    The store owns its blobs. Callers get paths to read or link from and must
    never write through them.
    """

    def __init__(self, directory: Path) -> None:
        """Initialize cache store.

        Args:
            directory: Store directory (created on first put)
        """
        self.directory = Path(directory)

    def _entry_path(self, fingerprint: str) -> Path:
        if not _FINGERPRINT_RE.match(fingerprint):
            raise ValueError(f"Invalid fingerprint: {fingerprint!r}")
        return self.directory / fingerprint

    def exists(self) -> bool:
        return self.directory.is_dir()

    def contains(self, fingerprint: str) -> bool:
        return self._entry_path(fingerprint).exists()

    def get(self, fingerprint: str) -> Path | None:
        """Return the path of the entry for ``fingerprint``, or None if absent."""
        path = self._entry_path(fingerprint)
        return path if path.exists() else None

    def entries(self) -> list[str]:
        """Names of all entries, sorted."""
        if not self.exists():
            return []
        return sorted(p.name for p in self.directory.iterdir() if _FINGERPRINT_RE.match(p.name))

    def put(self, fingerprint: str, source: Path) -> PutResult:
        """Insert ``source`` under ``fingerprint``.

        Idempotent: an existing entry, including one written by a concurrent
        process between the existence check and the write, counts as success.

        Raises:
            StoreIOError: If the entry cannot be written
        """
        dest = self._entry_path(fingerprint)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            if dest.exists():
                return PutResult.PRESENT
            created = link_or_copy(Path(source), dest)
        except OSError as e:
            raise StoreIOError(f"Failed to store {source} as {dest}: {e}", dest) from e

        if not created:
            return PutResult.PRESENT
        logger.debug(f"Stored {source} as {fingerprint}")
        return PutResult.INSERTED

    def restore(self, fingerprint: str, target: Path, mtime: float | None = None) -> bool:
        """Install the entry for ``fingerprint`` at ``target``.

        Any existing file at ``target`` is removed first and missing parent
        directories are created. The restored artifact's modification time is
        set to ``mtime`` (default: now) so the toolchain treats it as freshly
        built.

        Returns:
            True if restored, False if the store has no such entry

        Raises:
            StoreIOError: If the artifact cannot be installed
        """
        source = self.get(fingerprint)
        if source is None:
            return False

        target = Path(target)
        try:
            target.unlink(missing_ok=True)
            target.parent.mkdir(parents=True, exist_ok=True)
            link_or_copy(source, target)
            os.utime(target, None if mtime is None else (mtime, mtime))
        except OSError as e:
            raise StoreIOError(f"Failed to restore {fingerprint} to {target}: {e}", target) from e

        logger.debug(f"Restored {fingerprint} to {target}")
        return True

    def clear(self) -> None:
        """Delete the whole store directory.

        Raises:
            StoreIOError: If the directory cannot be removed
        """
        try:
            shutil.rmtree(self.directory)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StoreIOError(f"Failed to clear {self.directory}: {e}", self.directory) from e
        logger.info(f"Cleared cache directory {self.directory}")
