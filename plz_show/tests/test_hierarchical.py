"""
plz_show/tests/test_hierarchical.py — Tests for the treemap-constrained layout.

Tests verify:
- The root canvas grows with node count and is centered on the origin.
- Every node lands inside the content bounds of its own package.
- Cyclic graphs still partition (no sibling ordering hint).
- The layout is deterministic.
"""

import math

import pytest

from plz_show.config import LayoutConfig
from plz_show.graph.model import DependencyGraph
from plz_show.layout.hierarchical import (
    hierarchical_layout,
    partition_packages,
    root_bounds,
)


def test_root_bounds_centered_square():
    config = LayoutConfig(treemap_area_per_node=100.0)
    bounds = root_bounds(16, config)
    assert bounds.width == pytest.approx(40.0)
    assert bounds.height == pytest.approx(40.0)
    assert bounds.center == pytest.approx((0.0, 0.0))


def test_nodes_inside_package_content_bounds(synthetic_graph, fast_config):
    positions = hierarchical_layout(synthetic_graph, fast_config)
    tree = partition_packages(synthetic_graph, fast_config)
    assert set(positions) == set(synthetic_graph.nodes())

    for package in tree:
        region = package.content_bounds or package.bounds
        for node in package.nodes:
            x, y = positions[node]
            assert region.contains(x, y, tol=1e-6), (
                f"{node} at ({x:.1f}, {y:.1f}) outside package '{package.full_path}'"
            )


def test_hierarchical_layout_deterministic(synthetic_graph, fast_config):
    first = hierarchical_layout(synthetic_graph, fast_config)
    assert first == hierarchical_layout(synthetic_graph, fast_config)
    assert all(math.isfinite(x) and math.isfinite(y) for x, y in first.values())


def test_cyclic_graph_still_partitions():
    graph = DependencyGraph()
    for node, pkg in [("a", "x/a"), ("b", "x/b"), ("c", "y")]:
        graph.add_node(node, package=pkg)
    graph.add_edge("a", "b")
    graph.add_edge("b", "a")
    graph.add_edge("c", "a")
    graph.refresh_derived()

    positions = hierarchical_layout(graph, LayoutConfig(layout_quality="fast"))
    assert set(positions) == {"a", "b", "c"}


def test_single_node_package_placed_at_region_center():
    graph = DependencyGraph()
    graph.add_node("only", package="solo")
    config = LayoutConfig(layout_quality="fast")
    positions = hierarchical_layout(graph, config)
    region = partition_packages(graph, config).get("solo").content_bounds
    assert positions["only"] == pytest.approx(region.center)


def test_hierarchical_layout_empty_graph():
    assert hierarchical_layout(DependencyGraph()) == {}
