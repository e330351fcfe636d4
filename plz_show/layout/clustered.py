"""
plz_show/layout/clustered.py — ClusteredLayout: package-clustered ForceAtlas2.

Two phases:

    Phase 1 (meta-graph)
        One meta-node per package (exact package path), sized by
        sqrt(member count). One meta-edge per pair of packages that share at
        least one dependency edge, weighted by the number of underlying
        edges. ForceSolver positions the meta-graph; each package gets a
        center from it and a radius
            cluster_base_radius * sqrt(member count) * strength factor
        where the strength factor is 1.6 ('weak', loose) or 1.0 ('strong',
        tight). Centers are then spread uniformly until no two packages are
        closer than cluster_spacing * (r_a + r_b).

    Phase 2 (members)
        Each package is laid out in its own local frame around the origin:
            - internal edges → ForceSolver over the internal subgraph, seeded
              inside the package radius;
            - no internal edges, <= cluster_circle_max_nodes members → circle;
            - no internal edges, more members → grid.
        The local bounding box is scaled down (never up) so its half-diagonal
        fits inside the package radius, preserving aspect ratio, and then
        translated onto the package center.

Edgeless packages never pay for a simulation they cannot benefit from.
"""

import logging
import math
import threading

import networkx as nx
import numpy as np

from plz_show.config import DEFAULT_CONFIG, LayoutConfig
from plz_show.graph.model import DependencyGraph
from plz_show.layout.force import ForceSettings, ForceSolver, meta_graph_solver_edges
from plz_show.layout.structural import random_positions

logger = logging.getLogger(__name__)


def build_package_meta_graph(graph: DependencyGraph) -> tuple[nx.Graph, dict[str, list[str]]]:
    """
    Collapse the dependency graph to one node per package.

    Returns:
        meta:    Undirected nx.Graph. Node attributes: 'count' (members),
                 'size' (sqrt(count)). Edge attribute: 'weight' (number of
                 dependency edges between the two packages, either direction).
        members: package path → member node ids, in graph order.
    """
    members: dict[str, list[str]] = {}
    for node_id, data in graph.G.nodes(data=True):
        members.setdefault(data.get("package", "") or "", []).append(node_id)

    meta = nx.Graph()
    for package, node_ids in members.items():
        meta.add_node(package, count=len(node_ids), size=math.sqrt(len(node_ids)))

    package_of = {n: d.get("package", "") or "" for n, d in graph.G.nodes(data=True)}
    for u, v in graph.G.edges:
        pu, pv = package_of[u], package_of[v]
        if pu == pv:
            continue
        if meta.has_edge(pu, pv):
            meta.edges[pu, pv]["weight"] += 1
        else:
            meta.add_edge(pu, pv, weight=1)

    return meta, members


def package_radius(member_count: int, config: LayoutConfig = DEFAULT_CONFIG) -> float:
    return config.cluster_base_radius * math.sqrt(member_count) * config.cluster_radius_factor


def layout_package_centers(
    meta: nx.Graph,
    config: LayoutConfig = DEFAULT_CONFIG,
    cancel_event: threading.Event | None = None,
) -> tuple[dict[str, tuple[float, float]], dict[str, float]]:
    """
    Phase 1: place packages and size them.

    Returns:
        centers: package → (x, y).
        radii:   package → radius.
    """
    packages = list(meta.nodes)
    radii = {p: package_radius(meta.nodes[p]["count"], config) for p in packages}
    if len(packages) == 1:
        return {packages[0]: (0.0, 0.0)}, radii

    settings = ForceSettings.from_config(config, len(packages))
    solver = ForceSolver(
        packages,
        meta_graph_solver_edges(meta),
        settings,
        sizes=radii,
        cancel_event=cancel_event,
    )
    initial = random_positions(packages, config.seed, config.random_scale)
    centers = solver.run(initial, config=config)
    return spread_centers(centers, radii, config), radii


def spread_centers(
    centers: dict[str, tuple[float, float]],
    radii: dict[str, float],
    config: LayoutConfig = DEFAULT_CONFIG,
) -> dict[str, tuple[float, float]]:
    """
    Uniformly scale centers about the origin until every pair of packages is
    at least cluster_spacing * (r_a + r_b) apart.

    The scale factor is capped at config.cluster_max_spread, so packages whose
    centers coincide cannot blow the layout up to infinity.
    """
    packages = list(centers)
    if len(packages) < 2:
        return dict(centers)

    xy = np.array([centers[p] for p in packages], dtype=float)
    r = np.array([radii[p] for p in packages], dtype=float)
    dist = np.sqrt(((xy[:, None, :] - xy[None, :, :]) ** 2).sum(axis=2))
    required = config.cluster_spacing * (r[:, None] + r[None, :])
    np.fill_diagonal(dist, np.inf)

    if (dist == 0).any():
        scale = config.cluster_max_spread
    else:
        scale = min(float((required / dist).max()), config.cluster_max_spread)

    if scale <= 1.0:
        return dict(centers)
    logger.debug("Clustered layout: spreading package centers by %.2fx.", scale)
    return {p: (float(xy[i, 0] * scale), float(xy[i, 1] * scale)) for i, p in enumerate(packages)}


def circle_arrangement(node_ids: list[str], radius: float) -> dict[str, tuple[float, float]]:
    n = len(node_ids)
    if n == 1:
        return {node_ids[0]: (0.0, 0.0)}
    return {
        node: (
            radius * math.cos(2.0 * math.pi * i / n),
            radius * math.sin(2.0 * math.pi * i / n),
        )
        for i, node in enumerate(node_ids)
    }


def grid_arrangement(node_ids: list[str], radius: float) -> dict[str, tuple[float, float]]:
    """Row-major square-ish grid centered on the origin."""
    n = len(node_ids)
    cols = math.ceil(math.sqrt(n))
    rows = math.ceil(n / cols)
    step = 2.0 * radius / cols
    x0 = -(cols - 1) * step / 2.0
    y0 = -(rows - 1) * step / 2.0
    return {
        node: (x0 + (i % cols) * step, y0 + (i // cols) * step)
        for i, node in enumerate(node_ids)
    }


def fit_to_radius(
    local: dict[str, tuple[float, float]],
    center: tuple[float, float],
    radius: float,
) -> dict[str, tuple[float, float]]:
    """
    Scale local positions so their bounding box's half-diagonal is at most
    `radius` (never enlarging them), then move the box center onto `center`.
    """
    xs = [p[0] for p in local.values()]
    ys = [p[1] for p in local.values()]
    min_x, max_x = min(xs), max(xs)
    min_y, max_y = min(ys), max(ys)
    mid_x = (min_x + max_x) / 2.0
    mid_y = (min_y + max_y) / 2.0
    half_diagonal = math.hypot(max_x - min_x, max_y - min_y) / 2.0
    scale = 1.0 if half_diagonal <= radius or half_diagonal == 0 else radius / half_diagonal

    cx, cy = center
    return {
        node: (cx + (x - mid_x) * scale, cy + (y - mid_y) * scale)
        for node, (x, y) in local.items()
    }


def layout_package_members(
    graph: DependencyGraph,
    node_ids: list[str],
    radius: float,
    seed: int,
    config: LayoutConfig = DEFAULT_CONFIG,
    cancel_event: threading.Event | None = None,
) -> dict[str, tuple[float, float]]:
    """Phase 2 for one package, in a local frame centered on the origin."""
    members = set(node_ids)
    has_internal_edges = any(
        v in members for u in node_ids for v in graph.G.successors(u)
    )

    if len(node_ids) == 1:
        return {node_ids[0]: (0.0, 0.0)}
    if not has_internal_edges:
        if len(node_ids) <= config.cluster_circle_max_nodes:
            return circle_arrangement(node_ids, radius)
        return grid_arrangement(node_ids, radius)

    settings = ForceSettings.from_config(config, len(node_ids))
    solver = ForceSolver.for_subgraph(graph, node_ids, settings, cancel_event=cancel_event)
    initial = random_positions(node_ids, seed, 2.0 * radius)
    return solver.run(initial, config=config)


def clustered_layout(
    graph: DependencyGraph,
    config: LayoutConfig = DEFAULT_CONFIG,
    cancel_event: threading.Event | None = None,
) -> dict[str, tuple[float, float]]:
    """
    Package-clustered ForceAtlas2 layout (see module docstring).

    Returns:
        positions: node_id → (x, y). Empty for an empty graph.
    """
    if len(graph) == 0:
        return {}

    meta, members = build_package_meta_graph(graph)
    centers, radii = layout_package_centers(meta, config, cancel_event)

    positions: dict[str, tuple[float, float]] = {}
    for i, (package, node_ids) in enumerate(members.items()):
        local = layout_package_members(
            graph, node_ids, radii[package], config.seed + i + 1, config, cancel_event
        )
        positions.update(fit_to_radius(local, centers[package], radii[package]))

    logger.info(
        "Clustered layout complete: %d nodes in %d packages (strength=%s).",
        len(positions),
        len(members),
        config.clustering_strength,
    )
    return positions
