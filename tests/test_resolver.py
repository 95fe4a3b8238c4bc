"""
Tests for the activation resolver — dependency graph, cycles, ordering.
"""

import pytest

from apogee.core.errors import ConfigError, DependencyCycleError, MissingDependencyError
from apogee.core.models import Module
from apogee.core.services.resolver import build_graph, find_cycle, resolve, topological_order


def _mods(*specs) -> list[Module]:
    """Build modules from (id, [requires]) tuples."""
    return [Module(id=mid, requires=list(reqs)) for mid, reqs in specs]


def _all(modules, value=True) -> dict[str, bool]:
    return {m.id: value for m in modules}


class TestGraph:
    def test_build_graph(self):
        g = build_graph(_mods(("a", []), ("b", ["a"])))
        assert g == {"a": [], "b": ["a"]}

    def test_duplicate_ids(self):
        with pytest.raises(ConfigError, match="Duplicate"):
            build_graph(_mods(("a", []), ("a", [])))

    def test_no_cycle(self):
        assert find_cycle({"a": [], "b": ["a"], "c": ["a", "b"]}) is None

    def test_two_node_cycle_path(self):
        assert find_cycle({"a": ["b"], "b": ["a"]}) == ["a", "b", "a"]

    def test_self_cycle(self):
        assert find_cycle({"a": ["a"]}) == ["a", "a"]

    def test_cycle_behind_acyclic_prefix(self):
        g = {"x": [], "a": ["x", "b"], "b": ["c"], "c": ["a"]}
        assert find_cycle(g) == ["a", "b", "c", "a"]

    def test_topological_order_ties_by_declaration(self):
        modules = _mods(("z", []), ("y", []), ("x", ["z"]))
        order = topological_order(modules, build_graph(modules))
        assert order == ["z", "y", "x"]

    def test_dependency_declared_after_dependent(self):
        modules = _mods(("app", ["lib"]), ("other", []), ("lib", []))
        order = topological_order(modules, build_graph(modules))
        assert order.index("lib") < order.index("app")
        assert order == ["other", "lib", "app"]


class TestResolve:
    def test_chain_order(self):
        # A requires B, B requires C: emission order C, B, A.
        modules = _mods(("A", ["B"]), ("B", ["C"]), ("C", []))
        result = resolve(modules, _all(modules))
        assert result.order == ["C", "B", "A"]
        assert all(s.active for s in result.statuses.values())

    def test_inactive_dependency_propagates(self):
        modules = _mods(("A", ["B"]), ("B", ["C"]), ("C", []))
        eligibility = {"A": True, "B": True, "C": False}
        result = resolve(modules, eligibility)
        assert result.order == []
        assert result.statuses["C"].reason == "not locally eligible"
        assert result.statuses["B"].reason == "requires 'C' which is inactive"
        assert result.statuses["A"].eligible
        assert not result.statuses["A"].active

    def test_no_rules_no_requires_is_active(self):
        modules = _mods(("solo", []))
        assert resolve(modules, {"solo": True}).is_active("solo")

    def test_missing_eligibility_counts_as_ineligible(self):
        modules = _mods(("a", []))
        assert not resolve(modules, {}).is_active("a")

    def test_statuses_in_declaration_order(self):
        modules = _mods(("app", ["lib"]), ("lib", []))
        result = resolve(modules, _all(modules))
        assert list(result.statuses) == ["app", "lib"]
        assert result.order == ["lib", "app"]

    def test_cycle_raises_with_path(self):
        modules = _mods(("a", ["b"]), ("b", ["a"]), ("c", []))
        with pytest.raises(DependencyCycleError) as exc:
            resolve(modules, _all(modules))
        assert exc.value.cycle == ["a", "b", "a"]
        assert "a -> b -> a" in str(exc.value)

    def test_cycle_raises_even_when_ineligible(self):
        modules = _mods(("a", ["b"]), ("b", ["a"]))
        with pytest.raises(DependencyCycleError):
            resolve(modules, _all(modules, False))

    def test_missing_dependency_strict(self):
        modules = _mods(("a", ["ghost"]))
        with pytest.raises(MissingDependencyError, match="'a' requires unknown module 'ghost'"):
            resolve(modules, _all(modules))

    def test_missing_dependency_lenient(self):
        modules = _mods(("a", ["ghost"]), ("b", []))
        result = resolve(modules, _all(modules), strict=False)
        assert not result.is_active("a")
        assert result.statuses["a"].reason == "requires unknown module 'ghost'"
        assert result.order == ["b"]

    def test_deterministic(self):
        modules = _mods(("d", ["b", "c"]), ("c", ["a"]), ("b", ["a"]), ("a", []))
        orders = {tuple(resolve(modules, _all(modules)).order) for _ in range(5)}
        assert orders == {("a", "c", "b", "d")}

    def test_to_dict(self):
        modules = _mods(("a", []))
        d = resolve(modules, _all(modules)).to_dict()
        assert d["order"] == ["a"]
        assert d["modules"]["a"] == {"eligible": True, "active": True, "reason": "active"}
