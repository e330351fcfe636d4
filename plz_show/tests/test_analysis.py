"""
plz_show/tests/test_analysis.py — Tests for path, cycle and impact queries.

Tests verify:
- Shortest path follows dependency direction; [A] for A → A; None when
  unreachable; NotFound for unknown ids.
- All simple paths honours max_paths and max_length.
- A single cycle is reported exactly once, in canonical rotation;
  acyclic graphs report none.
- Impact analysis: transitive dependents/dependencies exclude the node
  itself, even on a cycle.
"""

import pytest

from plz_show.analysis.cycles import canonical_cycle, find_cycles, has_cycles
from plz_show.analysis.impact import (
    impact_summary,
    reverse_dependencies,
    transitive_dependencies,
)
from plz_show.analysis.paths import all_simple_paths, shortest_path
from plz_show.errors import NotFound
from plz_show.graph.model import DependencyGraph


def make_chain_graph() -> DependencyGraph:
    """A → B → C, plus isolated D."""
    graph = DependencyGraph()
    for node, pkg in [("A", "app"), ("B", "lib"), ("C", "lib"), ("D", "misc")]:
        graph.add_node(node, package=pkg)
    graph.add_edge("A", "B")
    graph.add_edge("B", "C")
    return graph


def make_diamond_graph() -> DependencyGraph:
    """
    top → left → bottom
    top → right → bottom
    top → bottom
    """
    graph = DependencyGraph()
    for node in ("top", "left", "right", "bottom"):
        graph.add_node(node)
    for u, v in [("top", "left"), ("top", "right"), ("left", "bottom"),
                 ("right", "bottom"), ("top", "bottom")]:
        graph.add_edge(u, v)
    return graph


def make_cycle_graph() -> DependencyGraph:
    """A → B → C → A, plus C → D (D outside the cycle)."""
    graph = DependencyGraph()
    for node in ("A", "B", "C", "D"):
        graph.add_node(node)
    for u, v in [("A", "B"), ("B", "C"), ("C", "A"), ("C", "D")]:
        graph.add_edge(u, v)
    return graph


# ── Shortest path ─────────────────────────────────────────────────────────────

def test_shortest_path_follows_dependencies():
    assert shortest_path(make_chain_graph(), "A", "C") == ["A", "B", "C"]


def test_shortest_path_against_edges_is_none():
    assert shortest_path(make_chain_graph(), "C", "A") is None


def test_shortest_path_disconnected_is_none():
    assert shortest_path(make_chain_graph(), "A", "D") is None


def test_shortest_path_same_node():
    assert shortest_path(make_chain_graph(), "A", "A") == ["A"]


def test_shortest_path_unknown_node_raises():
    with pytest.raises(NotFound):
        shortest_path(make_chain_graph(), "A", "Z")
    with pytest.raises(NotFound):
        shortest_path(make_chain_graph(), "Z", "A")


def test_shortest_path_prefers_direct_edge():
    assert shortest_path(make_diamond_graph(), "top", "bottom") == ["top", "bottom"]


# ── All simple paths ──────────────────────────────────────────────────────────

def test_all_simple_paths_diamond():
    paths = all_simple_paths(make_diamond_graph(), "top", "bottom")
    assert sorted(paths) == [
        ["top", "bottom"],
        ["top", "left", "bottom"],
        ["top", "right", "bottom"],
    ]


def test_all_simple_paths_max_paths():
    assert len(all_simple_paths(make_diamond_graph(), "top", "bottom", max_paths=2)) == 2


def test_all_simple_paths_max_length():
    paths = all_simple_paths(make_diamond_graph(), "top", "bottom", max_length=1)
    assert paths == [["top", "bottom"]]


def test_all_simple_paths_none_and_same_node():
    graph = make_chain_graph()
    assert all_simple_paths(graph, "C", "A") == []
    assert all_simple_paths(graph, "B", "B") == [["B"]]
    with pytest.raises(NotFound):
        all_simple_paths(graph, "A", "Z")


def test_all_simple_paths_on_cycle_are_simple():
    for path in all_simple_paths(make_cycle_graph(), "A", "D"):
        assert len(path) == len(set(path))


# ── Cycles ────────────────────────────────────────────────────────────────────

def test_single_cycle_reported_once():
    cycles = find_cycles(make_cycle_graph())
    assert cycles == [["A", "B", "C"]]


def test_cycle_found_from_any_start():
    graph = DependencyGraph()
    for node in ("D", "C", "B", "A"):
        graph.add_node(node)
    for u, v in [("C", "A"), ("A", "B"), ("B", "C")]:
        graph.add_edge(u, v)
    cycles = find_cycles(graph)
    assert len(cycles) == 1
    assert set(cycles[0]) == {"A", "B", "C"}
    assert cycles[0][0] == "A"


def test_two_component_cycles():
    graph = make_cycle_graph()
    for node in ("X", "Y"):
        graph.add_node(node)
    graph.add_edge("X", "Y")
    graph.add_edge("Y", "X")
    cycles = find_cycles(graph)
    assert sorted(map(tuple, cycles)) == [("A", "B", "C"), ("X", "Y")]


def test_acyclic_graph_has_no_cycles(synthetic_graph):
    assert find_cycles(synthetic_graph) == []
    assert not has_cycles(synthetic_graph)
    assert has_cycles(make_cycle_graph())


def test_canonical_cycle_rotation():
    assert canonical_cycle(["C", "A", "B"]) == ("A", "B", "C")


# ── Impact ────────────────────────────────────────────────────────────────────

def test_reverse_and_transitive_dependencies():
    graph = make_chain_graph()
    assert reverse_dependencies(graph, "C") == {"A", "B"}
    assert transitive_dependencies(graph, "A") == {"B", "C"}
    assert reverse_dependencies(graph, "D") == set()


def test_impact_excludes_self_on_cycle():
    graph = make_cycle_graph()
    assert reverse_dependencies(graph, "A") == {"B", "C"}
    assert transitive_dependencies(graph, "A") == {"B", "C", "D"}


def test_impact_unknown_node_raises():
    with pytest.raises(NotFound):
        reverse_dependencies(make_chain_graph(), "Z")
    with pytest.raises(NotFound):
        impact_summary(make_chain_graph(), "Z")


def test_impact_summary():
    summary = impact_summary(make_chain_graph(), "C")
    assert summary.direct_dependents == ["B"]
    assert summary.transitive_dependents == ["A", "B"]
    assert summary.transitive_dependencies == []
    assert summary.affected_packages == ["app", "lib"]
    assert summary.to_dict()["transitive_dependents"] == 2
