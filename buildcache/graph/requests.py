"""Unit requests and import path helpers."""

import os
import unicodedata
from dataclasses import dataclass
from pathlib import Path

from buildcache.errors import UsageError

# Characters that may not appear in an import path.
_ILLEGAL_IMPORT_CHARS = set('!"#$%&\'()*,:;<=>?[\\]^{|}`\ufffd')


@dataclass(frozen=True)
class UnitRequest:
    """A unit named on the command line: ``path[:option,option...]``.

    Attributes:
        path: Import path or local directory path
        options: Sorted, de-duplicated build variant options
    """

    path: str
    options: tuple[str, ...] = ()

    @classmethod
    def parse(cls, arg: str) -> "UnitRequest":
        """Split ``arg`` into its base path and variant options.

        Raises:
            UsageError: If an option contains a colon or whitespace

        Example:
            >>> UnitRequest.parse("./server:race")
            UnitRequest(path='./server', options=('race',))
        """
        base, sep, rest = arg.partition(":")
        options: tuple[str, ...] = ()
        if sep:
            options = tuple(sorted({opt for opt in rest.split(",") if opt}))
        for option in options:
            if ":" in option or any(ch.isspace() for ch in option):
                raise UsageError(f"invalid build option {option!r} in {arg!r}")
        return cls(path=base or ".", options=options)

    @property
    def local(self) -> bool:
        return is_local_import(self.path)


def is_local_import(path: str) -> bool:
    """Whether ``path`` names a directory rather than an import path."""
    return (
        path in (".", "..")
        or path.startswith("./")
        or path.startswith("../")
        or os.path.isabs(path)
    )


def _make_import_valid(ch: str) -> str:
    category = unicodedata.category(ch)
    graphic = not category.startswith("C") and category not in ("Zl", "Zp")
    if not graphic or ch.isspace() or ch in _ILLEGAL_IMPORT_CHARS:
        return "_"
    return ch


def dir_to_import_path(directory: Path) -> str:
    """Pseudo import path for a directory outside any source tree.

    The result is ``_`` followed by the absolute slash-separated directory,
    so local units get keys that work like ordinary import paths. On Windows
    ``c:\\home\\pkg`` becomes ``_/c_/home/pkg``.
    """
    slashed = Path(directory).absolute().as_posix()
    cleaned = "".join(_make_import_valid(ch) for ch in slashed)
    return "_/" + cleaned.lstrip("/")


def unit_key(import_path: str, options: tuple[str, ...] = ()) -> str:
    """Canonical unit key: import path plus the variant qualifier."""
    if not options:
        return import_path
    return f"{import_path}:{','.join(options)}"
