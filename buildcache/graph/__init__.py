"""Dependency graph construction.

Public Interface:
    - GraphBuilder: Resolves unit requests into a DependencyGraph
    - ResolutionContext: Per-build resolution state
    - UnitRequest: Parsed ``path[:options]`` request
    - GoImplicitImports: Toolchain-implied imports for Go packages
"""

from .builder import GraphBuilder
from .builder import ResolutionContext
from .implicit import GoImplicitImports
from .implicit import ImplicitImportPolicy
from .requests import UnitRequest
from .requests import dir_to_import_path
from .requests import is_local_import
from .requests import unit_key

__all__ = [
    "GraphBuilder",
    "ResolutionContext",
    "GoImplicitImports",
    "ImplicitImportPolicy",
    "UnitRequest",
    "dir_to_import_path",
    "is_local_import",
    "unit_key",
]
