"""
plz_show/layout/hierarchical.py — Treemap-constrained hierarchical layout.

Nested packages get nested rectangles, and every package's own targets are
laid out by a bounded ForceSolver inside the rectangle reserved for them:

    1. Build the PackageTree.
    2. Root canvas: a square of side sqrt(n * treemap_area_per_node)
       centered on the origin.
    3. Order siblings by the mean topological layer of their targets, so
       packages that are mostly depended upon drift toward the same side of
       the canvas. A cyclic graph has no layering; siblings then keep tree
       order.
    4. Squarified treemap down the tree (plz_show.layout.treemap).
    5. For every package with targets of its own: bounded ForceSolver over
       the subgraph induced by those targets, inside content_bounds.

The simulation for each package runs in a local frame centered on its
region and is translated back afterwards, so gravity pulls toward the
middle of the package's rectangle rather than toward the canvas origin.
"""

import logging
import math
import threading

from plz_show.config import DEFAULT_CONFIG, LayoutConfig
from plz_show.geometry.bounds import Bounds
from plz_show.graph.model import DependencyGraph
from plz_show.graph.package_tree import (
    PackageTree,
    PackageTreeNode,
    build_package_tree,
    package_average_layer,
    topological_layers,
)
from plz_show.layout.force import ForceSettings, ForceSolver
from plz_show.layout.structural import random_positions
from plz_show.layout.treemap import apply_treemap

logger = logging.getLogger(__name__)


def root_bounds(node_count: int, config: LayoutConfig = DEFAULT_CONFIG) -> Bounds:
    side = math.sqrt(max(node_count, 1) * config.treemap_area_per_node)
    return Bounds(-side / 2.0, -side / 2.0, side, side)


def partition_packages(
    graph: DependencyGraph,
    config: LayoutConfig = DEFAULT_CONFIG,
) -> PackageTree:
    """Build the package tree and assign treemap bounds to every package."""
    tree = build_package_tree(graph)
    layers = topological_layers(graph)

    sibling_order = None
    if layers is not None:
        def sibling_order(children: list[PackageTreeNode]) -> list[PackageTreeNode]:
            return sorted(children, key=lambda c: package_average_layer(c, layers))

    apply_treemap(tree, root_bounds(len(graph), config), config, sibling_order)
    return tree


def _layout_in_region(
    graph: DependencyGraph,
    node_ids: list[str],
    region: Bounds,
    seed: int,
    config: LayoutConfig,
    cancel_event: threading.Event | None,
) -> dict[str, tuple[float, float]]:
    cx, cy = region.center
    if len(node_ids) == 1:
        return {node_ids[0]: (cx, cy)}

    local = Bounds(-region.width / 2.0, -region.height / 2.0, region.width, region.height)
    initial = random_positions(node_ids, seed, min(region.width, region.height))
    settings = ForceSettings.from_config(config, len(node_ids))
    solver = ForceSolver.for_subgraph(graph, node_ids, settings, cancel_event=cancel_event)
    placed = solver.run(initial, bounds=local, config=config)
    return {node: (cx + x, cy + y) for node, (x, y) in placed.items()}


def hierarchical_layout(
    graph: DependencyGraph,
    config: LayoutConfig = DEFAULT_CONFIG,
    cancel_event: threading.Event | None = None,
) -> dict[str, tuple[float, float]]:
    """
    Treemap-constrained layout (see module docstring).

    Returns:
        positions: node_id → (x, y), each inside its package's
                   content_bounds. Empty for an empty graph.
    """
    if len(graph) == 0:
        return {}

    tree = partition_packages(graph, config)

    positions: dict[str, tuple[float, float]] = {}
    for package in tree.flatten():
        if not package.nodes:
            continue
        region = package.content_bounds or package.bounds
        positions.update(
            _layout_in_region(
                graph, package.nodes, region, config.seed + package.index,
                config, cancel_event,
            )
        )

    logger.info(
        "Hierarchical layout complete: %d nodes in %d packages (tree depth %d).",
        len(positions),
        len(tree),
        tree.tree_depth(),
    )
    return positions
