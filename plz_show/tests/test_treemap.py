"""
plz_show/tests/test_treemap.py — Tests for the squarified treemap partitioner.

Tests verify:
- squarify() conserves area, keeps rectangles inside the input bounds and
  never overlaps siblings.
- Single items get the whole rectangle; zero weights get nothing; degenerate
  bounds collapse every item onto themselves.
- apply_treemap() nests every package's bounds inside its parent's and
  reserves a strip for a package's own targets.
"""

import itertools

import pytest

from plz_show.config import LayoutConfig
from plz_show.geometry.bounds import Bounds
from plz_show.graph.model import DependencyGraph
from plz_show.graph.package_tree import build_package_tree
from plz_show.layout.treemap import apply_treemap, squarify, worst_aspect_ratio

CANVAS = Bounds(0.0, 0.0, 600.0, 400.0)


# ── squarify ──────────────────────────────────────────────────────────────────

def test_squarify_conserves_area():
    items = [("a", 6), ("b", 6), ("c", 4), ("d", 3), ("e", 2), ("f", 2), ("g", 1)]
    result = squarify(items, CANVAS)
    total = sum(w for _, w in items)
    assert set(result) == {k for k, _ in items}
    for key, weight in items:
        assert result[key].area == pytest.approx(CANVAS.area * weight / total, rel=1e-6)
    assert sum(b.area for b in result.values()) == pytest.approx(CANVAS.area)


def test_squarify_no_overlap_and_inside():
    items = [(i, w) for i, w in enumerate([9, 7, 5, 5, 3, 2, 1, 1])]
    result = squarify(items, CANVAS)
    for a, b in itertools.combinations(result.values(), 2):
        assert a.overlap_area(b) == pytest.approx(0.0, abs=1e-6)
    for rect in result.values():
        assert rect.x >= CANVAS.x - 1e-9
        assert rect.y >= CANVAS.y - 1e-9
        assert rect.x + rect.width <= CANVAS.x + CANVAS.width + 1e-6
        assert rect.y + rect.height <= CANVAS.y + CANVAS.height + 1e-6


def test_squarify_single_item_gets_everything():
    assert squarify([("only", 3)], CANVAS) == {"only": CANVAS}


def test_squarify_drops_non_positive_weights():
    result = squarify([("a", 1), ("zero", 0), ("neg", -2)], CANVAS)
    assert set(result) == {"a"}


def test_squarify_degenerate_bounds_collapse():
    thin = Bounds(0.0, 0.0, 0.5, 100.0)
    result = squarify([("a", 1), ("b", 2)], thin)
    assert result == {"a": thin, "b": thin}


def test_worst_aspect_ratio():
    assert worst_aspect_ratio([4.0], 2.0) == pytest.approx(1.0)
    assert worst_aspect_ratio([], 2.0) == float("inf")


# ── apply_treemap ─────────────────────────────────────────────────────────────

def make_package_graph() -> DependencyGraph:
    """
    Packages with node counts:
        app (2) + app/web (3) + app/cli (1), lib (4), lib/deep/x (2)
    """
    graph = DependencyGraph()
    counts = {"app": 2, "app/web": 3, "app/cli": 1, "lib": 4, "lib/deep/x": 2}
    for pkg, count in counts.items():
        for i in range(count):
            graph.add_node(f"//{pkg}:t{i}", package=pkg)
    graph.refresh_derived()
    return graph


def _inside(inner: Bounds, outer: Bounds, tol: float = 1e-6) -> bool:
    return (
        inner.x >= outer.x - tol
        and inner.y >= outer.y - tol
        and inner.x + inner.width <= outer.x + outer.width + tol
        and inner.y + inner.height <= outer.y + outer.height + tol
    )


def test_apply_treemap_nests_children():
    tree = build_package_tree(make_package_graph())
    config = LayoutConfig(treemap_padding=5.0, treemap_min_size=10.0)
    apply_treemap(tree, Bounds(0.0, 0.0, 1000.0, 800.0), config)

    for node in tree:
        assert node.bounds is not None, f"No bounds for '{node.full_path}'"
        parent = tree.parent(node)
        if parent is not None:
            assert _inside(node.bounds, parent.bounds), (
                f"'{node.full_path}' not inside '{parent.full_path}'"
            )


def test_apply_treemap_siblings_do_not_overlap():
    tree = build_package_tree(make_package_graph())
    config = LayoutConfig(treemap_padding=5.0, treemap_min_size=10.0)
    apply_treemap(tree, Bounds(0.0, 0.0, 1000.0, 800.0), config)

    for node in tree:
        for a, b in itertools.combinations(tree.children(node), 2):
            assert a.bounds.overlap_area(b.bounds) == pytest.approx(0.0, abs=1e-6)


def test_apply_treemap_reserves_direct_strip():
    tree = build_package_tree(make_package_graph())
    config = LayoutConfig(treemap_padding=0.0, treemap_min_size=10.0)
    apply_treemap(tree, Bounds(0.0, 0.0, 1000.0, 800.0), config)

    app = tree.get("app")
    assert app.content_bounds is not None
    # 2 own targets out of 6 in total.
    assert app.content_bounds.area == pytest.approx(app.bounds.area * 2 / 6)
    for child in tree.children(app):
        assert child.bounds.overlap_area(app.content_bounds) == pytest.approx(0.0, abs=1e-6)


def test_apply_treemap_leaf_content_is_padded_bounds():
    tree = build_package_tree(make_package_graph())
    config = LayoutConfig(treemap_padding=5.0, treemap_min_size=10.0)
    apply_treemap(tree, Bounds(0.0, 0.0, 1000.0, 800.0), config)

    leaf = tree.get("app/web")
    assert leaf.content_bounds == leaf.bounds.padded(5.0)


def test_apply_treemap_too_small_shares_rectangle():
    tree = build_package_tree(make_package_graph())
    config = LayoutConfig(treemap_padding=1.0, treemap_min_size=1000.0)
    apply_treemap(tree, Bounds(0.0, 0.0, 100.0, 100.0), config)

    shared = Bounds(0.0, 0.0, 100.0, 100.0).padded(1.0)
    for child in tree.children(tree.root):
        assert child.bounds == shared
