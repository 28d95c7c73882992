"""Descriptor models supplied by a build metadata provider.

A UnitDescriptor is what the provider knows about one compilation unit: its
directory, source files by category, build flags, imports and install target.
The field aliases match the keys printed by ``go list -json`` so its output
validates without any translation step.
"""

from pydantic import Field

from .base import ToolJSONModel

# Categories of owned build sources, in fingerprint order.
SOURCE_CATEGORIES: tuple[str, ...] = (
    "go_files",
    "cgo_files",
    "c_files",
    "cxx_files",
    "m_files",
    "h_files",
    "s_files",
    "swig_files",
    "swig_cxx_files",
    "syso_files",
)

# Categories of declared build flags, in fingerprint order.
FLAG_CATEGORIES: tuple[str, ...] = (
    "cgo_cflags",
    "cgo_cppflags",
    "cgo_cxxflags",
    "cgo_ldflags",
    "cgo_pkg_config",
)


class Toolchain(ToolJSONModel):
    """Identity of the compiler toolchain that produces artifacts.

    Attributes:
        version: Toolchain version string (e.g. go1.22.3)
        os: Target operating system
        arch: Target architecture
    """

    version: str = Field(alias="GOVERSION")
    os: str = Field(alias="GOOS")
    arch: str = Field(alias="GOARCH")

    def identity(self) -> list[str]:
        return [self.version, self.os, self.arch]


class ProviderError(ToolJSONModel):
    """Load error reported by the provider itself."""

    import_stack: list[str] = Field(default_factory=list)
    pos: str = ""
    err: str = ""


class UnitDescriptor(ToolJSONModel):
    """Everything the provider knows about one compilation unit."""

    dir: str = Field(default="", description="Directory containing the unit sources")
    import_path: str = Field(default="", description="Canonical import path")
    import_comment: str = Field(default="", description="Path declared in the import comment")
    name: str = Field(default="", description="Package name")
    root: str = Field(default="", description="Source tree root containing the unit")
    target: str = Field(default="", description="Install path; empty when the unit has none")
    goroot: bool = Field(default=False, description="Unit lives in the toolchain root")
    standard: bool = Field(default=False, description="Unit is part of the standard library")
    stale: bool = Field(default=False, description="Toolchain reports it would rebuild the unit")

    go_files: list[str] = Field(default_factory=list)
    cgo_files: list[str] = Field(default_factory=list)
    c_files: list[str] = Field(default_factory=list)
    cxx_files: list[str] = Field(default_factory=list, alias="CXXFiles")
    m_files: list[str] = Field(default_factory=list)
    h_files: list[str] = Field(default_factory=list)
    s_files: list[str] = Field(default_factory=list)
    swig_files: list[str] = Field(default_factory=list)
    swig_cxx_files: list[str] = Field(default_factory=list, alias="SwigCXXFiles")
    syso_files: list[str] = Field(default_factory=list)
    test_go_files: list[str] = Field(default_factory=list)
    xtest_go_files: list[str] = Field(default_factory=list, alias="XTestGoFiles")

    cgo_cflags: list[str] = Field(default_factory=list, alias="CgoCFLAGS")
    cgo_cppflags: list[str] = Field(default_factory=list, alias="CgoCPPFLAGS")
    cgo_cxxflags: list[str] = Field(default_factory=list, alias="CgoCXXFLAGS")
    cgo_ldflags: list[str] = Field(default_factory=list, alias="CgoLDFLAGS")
    cgo_pkg_config: list[str] = Field(default_factory=list)

    imports: list[str] = Field(default_factory=list)
    test_imports: list[str] = Field(default_factory=list)
    xtest_imports: list[str] = Field(default_factory=list, alias="XTestImports")

    error: ProviderError | None = None

    def source_groups(self) -> list[tuple[str, list[str]]]:
        """Owned build sources as (category, files) pairs in fingerprint order."""
        return [(category, list(getattr(self, category))) for category in SOURCE_CATEGORIES]

    def flag_groups(self) -> list[tuple[str, list[str]]]:
        """Declared build flags as (category, flags) pairs in fingerprint order."""
        return [(category, list(getattr(self, category))) for category in FLAG_CATEGORIES]

    def source_files(self) -> list[str]:
        files: list[str] = []
        for _, group in self.source_groups():
            files.extend(group)
        return files

    def uses_cgo(self) -> bool:
        return len(self.cgo_files) > 0

    def uses_swig(self) -> bool:
        return len(self.swig_files) > 0 or len(self.swig_cxx_files) > 0

    def has_compilable_sources(self) -> bool:
        """Whether the toolchain could rebuild this unit from source.

        A unit without any of these is binary-only: only the installed
        artifact was found.
        """
        return bool(
            self.go_files or self.cgo_files or self.test_go_files or self.xtest_go_files or self.uses_swig()
        )
