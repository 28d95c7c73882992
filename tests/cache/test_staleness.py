"""
Unit tests for staleness evaluation.
"""

import os

import pytest

from buildcache.cache import StalenessEvaluator
from buildcache.graph import GoImplicitImports
from buildcache.graph import GraphBuilder
from buildcache.graph import dir_to_import_path
from buildcache.models import UnitDescriptor

X, Y, Z = "example.com/x", "example.com/y", "example.com/z"


def evaluate(workspace, requests: list[str] | None = None) -> dict[str, bool]:
    graph = GraphBuilder(workspace.provider(), cwd=workspace.src).resolve(requests or [Z])
    return StalenessEvaluator().evaluate(graph)


@pytest.mark.unit
class TestStalenessRules:
    """Test the per-unit staleness rules."""

    def test_built_tree_is_fresh(self, workspace) -> None:
        assert evaluate(workspace) == {"fmt": False, X: False, Y: False, Z: False}

    def test_newer_source_is_stale(self, workspace) -> None:
        workspace.edit(Z)
        stale = evaluate(workspace)

        assert stale[Z] is True
        assert stale[Y] is False

    def test_missing_source_is_stale(self, workspace) -> None:
        workspace.source(Z).unlink()
        assert evaluate(workspace)[Z] is True

    def test_missing_target_is_stale(self, workspace) -> None:
        workspace.target(Z).unlink()
        assert evaluate(workspace)[Z] is True

    def test_no_target_is_stale(self, workspace) -> None:
        workspace.descriptors[Z].target = ""
        assert evaluate(workspace)[Z] is True

    def test_toolchain_reported_stale(self, workspace) -> None:
        workspace.descriptors[Z].stale = True
        assert evaluate(workspace)[Z] is True

    def test_load_error_is_stale(self, workspace) -> None:
        del workspace.descriptors[X]
        assert evaluate(workspace)[X] is True

    def test_newer_dependency_target_is_stale(self, workspace) -> None:
        """Test a dependency rebuilt after the unit makes the unit stale."""
        workspace.touch(workspace.target(X), workspace.target_time + 10)
        stale = evaluate(workspace)

        assert stale[X] is False
        assert stale[Y] is True

    def test_missing_dependency_target_is_stale(self, workspace) -> None:
        workspace.target(X).unlink()
        stale = evaluate(workspace)

        assert stale[X] is True
        assert stale[Y] is True

    def test_no_compilable_sources_is_fresh(self, workspace) -> None:
        """Test a binary-only unit is fresh even without a target."""
        workspace.descriptors[Z].go_files = []
        workspace.descriptors[Z].target = ""
        assert evaluate(workspace)[Z] is False

    def test_unit_outside_requested_roots_ignores_sources(self, workspace) -> None:
        """Test a standard unit's newer sources do not count unless its root was requested."""
        workspace.touch(workspace.source("fmt"), workspace.target_time + 10)

        assert evaluate(workspace)["fmt"] is False
        assert evaluate(workspace, ["fmt"])["fmt"] is True

    def test_local_unit_is_stale(self, workspace, tmp_path) -> None:
        """Test a unit without an install target needs building."""
        scratch = tmp_path / "scratch"
        scratch.mkdir()
        (scratch / "main.go").write_text("package main\n")
        provider = workspace.provider()
        provider.add(
            UnitDescriptor(import_path=dir_to_import_path(scratch), dir=str(scratch), go_files=["main.go"])
        )
        graph = GraphBuilder(provider, cwd=tmp_path).resolve(["./scratch"])

        assert StalenessEvaluator().evaluate(graph)[graph.roots[0].key] is True

    def test_unsafe_is_never_stale(self, workspace) -> None:
        """Test the builtin unsafe unit, reported without a target, keeps its importers fresh."""
        workspace.add_standard("unsafe").target = ""
        workspace.add_standard("runtime").imports = ["unsafe"]
        builder = GraphBuilder(workspace.provider(), implicit_imports=GoImplicitImports(), cwd=workspace.src)

        stale = StalenessEvaluator().evaluate(builder.resolve([Z]))

        assert stale["unsafe"] is False
        assert stale["runtime"] is False
        assert [stale[key] for key in (X, Y, Z)] == [False, False, False]

    def test_non_standard_unsafe_path_gets_no_exemption(self, workspace) -> None:
        workspace.add_unit("unsafe", build=False)
        workspace.descriptors[X].imports.append("unsafe")

        stale = evaluate(workspace)

        assert stale["unsafe"] is True
        assert stale[X] is True

    def test_evaluation_does_not_touch_files(self, workspace) -> None:
        before = os.stat(workspace.target(Z)).st_mtime
        evaluate(workspace)
        assert os.stat(workspace.target(Z)).st_mtime == before


@pytest.mark.unit
class TestMonotonicity:
    """Test staleness propagating to dependents."""

    def test_stale_dependency_makes_every_dependent_stale(self, workspace) -> None:
        workspace.edit(X)
        stale = evaluate(workspace)

        assert stale[X] and stale[Y] and stale[Z]

    def test_sets_unit_flags(self, workspace) -> None:
        workspace.edit(X)
        graph = GraphBuilder(workspace.provider(), cwd=workspace.src).resolve([Z])
        StalenessEvaluator().evaluate(graph)

        assert graph.get(Z).stale is True
        assert graph.get("fmt").stale is False

    def test_post_order_visits_dependencies_first(self, workspace) -> None:
        graph = GraphBuilder(workspace.provider(), cwd=workspace.src).resolve([Z])

        order = [unit.key for unit in StalenessEvaluator.post_order(graph.roots)]
        assert order == ["fmt", X, Y, Z]
