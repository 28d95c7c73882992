"""Build metadata providers.

Public Interface:
    - MetadataProvider: Protocol every provider implements
    - GoListProvider: Describes Go packages via ``go list -json``
    - StaticProvider: Describes units from fixed descriptors or a YAML manifest
"""

from .base import MetadataProvider
from .golist import GoListProvider
from .static import StaticProvider

__all__ = [
    "MetadataProvider",
    "GoListProvider",
    "StaticProvider",
]
