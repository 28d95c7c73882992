"""Result models for save / restore / clear runs.

These are what the cache service hands back to the command layer, which only
renders them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel
from pydantic import Field

UnitCacheStatus = Literal["saved", "present", "skipped", "restored", "missing"]


class UnitCacheResult(BaseModel):
    """Outcome for one compilation unit."""

    identity: str = Field(description="Canonical key of the unit")
    fingerprint: str | None = Field(default=None, description="Hex digest, None when indeterminate or unused")
    status: UnitCacheStatus = Field(description="What happened to the unit's artifact")

    @property
    def marker(self) -> str:
        """Column marker: ``*`` for a newly stored artifact, blank otherwise."""
        return "*" if self.status == "saved" else " "


class CacheRunResult(BaseModel):
    """Outcome of one save / restore / clear invocation."""

    command: Literal["save", "restore", "clear"]
    cache_dir: Path
    units: list[UnitCacheResult] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list, description="Rendered unit load errors")

    @property
    def ok(self) -> bool:
        return not self.errors

    def count(self, status: UnitCacheStatus) -> int:
        return sum(1 for unit in self.units if unit.status == status)
