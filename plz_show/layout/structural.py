"""
plz_show/layout/structural.py — Structural layouts: layered, radial, stress
majorization, and the circular / random baselines.

Unlike ForceAtlas2 these layouts place nodes from graph structure directly
(ranks, BFS rings, graph distances). All of them return a fresh
node_id → (x, y) mapping and leave the graph untouched; the dispatcher in
plz_show.layout.engine commits the result.
"""

import logging
import math
import threading

import networkx as nx
import numpy as np

from plz_show.config import DEFAULT_CONFIG, LAYERED_SPACING_PRESETS, LayoutConfig
from plz_show.errors import LayoutCancelled
from plz_show.graph.model import DependencyGraph

logger = logging.getLogger(__name__)


# ── Baselines ─────────────────────────────────────────────────────────────────

def random_positions(
    node_ids: list[str],
    seed: int,
    scale: float,
    center: tuple[float, float] = (0.0, 0.0),
) -> dict[str, tuple[float, float]]:
    """
    Uniform positions in a square of side `scale` around `center`.

    Draws from numpy's default_rng(seed): the same ids in the same order with
    the same seed always produce the same positions.
    """
    rng = np.random.default_rng(seed)
    coords = rng.uniform(-scale / 2.0, scale / 2.0, size=(len(node_ids), 2))
    cx, cy = center
    return {
        node: (float(cx + coords[i, 0]), float(cy + coords[i, 1]))
        for i, node in enumerate(node_ids)
    }


def random_layout(
    graph: DependencyGraph,
    config: LayoutConfig = DEFAULT_CONFIG,
) -> dict[str, tuple[float, float]]:
    return random_positions(graph.nodes(), config.seed, config.random_scale)


def circular_layout(
    graph: DependencyGraph,
    config: LayoutConfig = DEFAULT_CONFIG,
) -> dict[str, tuple[float, float]]:
    """
    Nodes evenly spaced on one circle, in graph order.

    radius = max(circular_min_radius, n * circular_radius_per_node)
    """
    nodes = graph.nodes()
    n = len(nodes)
    radius = max(config.circular_min_radius, n * config.circular_radius_per_node)
    return {
        node: (
            radius * math.cos(2.0 * math.pi * i / n),
            radius * math.sin(2.0 * math.pi * i / n),
        )
        for i, node in enumerate(nodes)
    }


# ── Layered (Sugiyama-style) ──────────────────────────────────────────────────

def assign_ranks(graph: DependencyGraph) -> dict[str, int]:
    """
    Rank every node by topological generation (dependents above dependencies).

    Rank 0 holds the nodes nothing depends on. When the graph is cyclic the
    ranking is computed on its condensation (each strongly connected
    component collapsed into one node), so members of a cycle share a rank
    instead of failing the layout.
    """
    G = graph.G
    try:
        generations = list(nx.topological_generations(G))
        return {n: rank for rank, layer in enumerate(generations) for n in layer}
    except nx.NetworkXUnfeasible:
        logger.debug("Layered layout: cyclic graph, ranking strongly connected components.")

    condensed = nx.condensation(G)
    component_rank = {
        c: rank
        for rank, layer in enumerate(nx.topological_generations(condensed))
        for c in layer
    }
    mapping = condensed.graph["mapping"]
    return {n: component_rank[mapping[n]] for n in G.nodes}


def order_layers(
    graph: DependencyGraph,
    ranks: dict[str, int],
    sweeps: int,
) -> list[list[str]]:
    """
    Order nodes within each rank by the barycenter heuristic.

    Layers start sorted by node id. Each sweep reorders a layer by the mean
    position of its neighbors in the adjacent layer (downward sweeps use the
    layer above, upward sweeps the layer below). Nodes without neighbors in
    the reference layer keep their current position. Ties break on the
    current position, so the ordering is deterministic.
    """
    if not ranks:
        return []
    layers: list[list[str]] = [[] for _ in range(max(ranks.values()) + 1)]
    for node in sorted(ranks):
        layers[ranks[node]].append(node)

    U = graph.undirected()
    for sweep in range(sweeps):
        downward = sweep % 2 == 0
        indices = range(1, len(layers)) if downward else range(len(layers) - 2, -1, -1)
        for i in indices:
            reference = layers[i - 1] if downward else layers[i + 1]
            ref_pos = {n: p for p, n in enumerate(reference)}
            keyed = []
            for pos, node in enumerate(layers[i]):
                neighbor_pos = [ref_pos[m] for m in U.neighbors(node) if m in ref_pos]
                bary = sum(neighbor_pos) / len(neighbor_pos) if neighbor_pos else float(pos)
                keyed.append((bary, pos, node))
            keyed.sort()
            layers[i] = [node for _, _, node in keyed]
    return layers


def layered_spacing(config: LayoutConfig, node_count: int) -> tuple[float, float]:
    """(node spacing, rank spacing), scaled by 1 + log10(node_count)."""
    node_sep, rank_sep = LAYERED_SPACING_PRESETS[config.layered_spacing]
    scale = 1.0 + math.log10(max(node_count, 1))
    return node_sep * scale, rank_sep * scale


def layered_layout(
    graph: DependencyGraph,
    config: LayoutConfig = DEFAULT_CONFIG,
) -> dict[str, tuple[float, float]]:
    """
    Rank assignment → barycenter ordering → coordinate assignment.

    Directions:
        TB: ranks grow downward (+y), LR: ranks grow rightward (+x),
        BT / RL: the reverse of TB / LR.
    Within a rank, nodes are centered on the rank axis.
    """
    if len(graph) == 0:
        return {}

    ranks = assign_ranks(graph)
    layers = order_layers(graph, ranks, config.layered_sweeps)
    node_sep, rank_sep = layered_spacing(config, len(graph))
    direction = config.layered_direction
    sign = -1.0 if direction in ("BT", "RL") else 1.0

    positions: dict[str, tuple[float, float]] = {}
    for rank, layer in enumerate(layers):
        along = sign * rank * rank_sep
        offset = (len(layer) - 1) / 2.0
        for i, node in enumerate(layer):
            across = (i - offset) * node_sep
            if direction in ("TB", "BT"):
                positions[node] = (across, along)
            else:
                positions[node] = (along, across)

    logger.info(
        "Layered layout complete: %d nodes in %d ranks (direction=%s).",
        len(positions),
        len(layers),
        direction,
    )
    return positions


# ── Radial ────────────────────────────────────────────────────────────────────

def pick_radial_center(graph: DependencyGraph, requested: str | None) -> str:
    """
    The requested center if present, else the highest-degree node (ties:
    first in graph order).
    """
    if requested is not None:
        if requested in graph:
            return requested
        logger.warning(
            "Radial center '%s' not in graph; falling back to highest-degree node.",
            requested,
        )
    best = None
    best_degree = -1
    for node, degree in graph.G.degree():
        if degree > best_degree:
            best, best_degree = node, degree
    return best


def radial_layout(
    graph: DependencyGraph,
    config: LayoutConfig = DEFAULT_CONFIG,
) -> dict[str, tuple[float, float]]:
    """
    Concentric BFS rings around a center node.

    Algorithm:
        1. Pick the center (config.radial_center_node or highest degree).
        2. BFS over the undirected view: distance k from the center.
        3. Ring k >= 1 sits at radius base + (k - 1) * increment; the center
           sits at the origin.
        4. Nodes on a ring are evenly spaced by angle, ordered by the
           position of their BFS parent on the previous ring (then by id).
        5. Nodes unreachable from the center form one extra outer ring.
    """
    if len(graph) == 0:
        return {}

    center = pick_radial_center(graph, config.radial_center_node)
    U = graph.undirected()

    distance: dict[str, int] = {center: 0}
    parent: dict[str, str] = {}
    for u, v in nx.bfs_edges(U, center):
        distance[v] = distance[u] + 1
        parent[v] = u

    max_ring = max(distance.values())
    rings: dict[int, list[str]] = {}
    for node, k in distance.items():
        rings.setdefault(k, []).append(node)
    unreachable = sorted(n for n in graph.nodes() if n not in distance)
    if unreachable:
        rings[max_ring + 1] = unreachable

    positions: dict[str, tuple[float, float]] = {center: (0.0, 0.0)}
    slot: dict[str, int] = {center: 0}
    for k in range(1, max(rings) + 1):
        ring = rings.get(k, [])
        if not ring:
            continue
        ring.sort(key=lambda n: (slot.get(parent.get(n, ""), -1), n))
        radius = config.radial_base_radius + (k - 1) * config.radial_ring_increment
        for i, node in enumerate(ring):
            angle = 2.0 * math.pi * i / len(ring)
            positions[node] = (radius * math.cos(angle), radius * math.sin(angle))
            slot[node] = i

    logger.info(
        "Radial layout complete: center '%s', %d rings, %d unreachable nodes.",
        center,
        max_ring,
        len(unreachable),
    )
    return positions


# ── Stress majorization ───────────────────────────────────────────────────────

def stress_layout(
    graph: DependencyGraph,
    config: LayoutConfig = DEFAULT_CONFIG,
    cancel_event: threading.Event | None = None,
) -> dict[str, tuple[float, float]]:
    """
    Stress majorization on undirected graph distances.

    Algorithm:
        1. All-pairs BFS distances d_ij on the undirected view.
        2. Target distance t_ij = d_ij * config.stress_scale,
           weight w_ij = 1 / (d_ij² + epsilon). Disconnected pairs
           (infinite distance) get weight 0 and are excluded.
        3. Seeded random start.
        4. Each iteration visits the nodes in graph order and moves node i to
               x_i = Σ_j w_ij (x_j + t_ij · (x_i − x_j) / |x_i − x_j|) / Σ_j w_ij
           using the already-updated positions of earlier nodes. Sequential
           updates never increase stress; updating all nodes at once can
           oscillate. Nodes with no connected partner keep their position.

    Complexity:
        O(n²) memory and O(n²) per iteration. Unsuitable for very large
        graphs; use ForceAtlas2 with Barnes-Hut there.
    """
    nodes = graph.nodes()
    n = len(nodes)
    if n == 0:
        return {}

    index = {node: i for i, node in enumerate(nodes)}
    hops = np.full((n, n), np.inf)
    for source, lengths in nx.all_pairs_shortest_path_length(graph.undirected()):
        i = index[source]
        for target, d in lengths.items():
            hops[i, index[target]] = d

    connected = np.isfinite(hops)
    np.fill_diagonal(connected, False)
    finite_hops = np.where(connected, hops, 0.0)
    weights = np.where(connected, 1.0 / (finite_hops ** 2 + config.stress_epsilon), 0.0)
    targets = finite_hops * config.stress_scale
    weight_sum = weights.sum(axis=1)
    movable = weight_sum > 0

    start_scale = config.stress_scale * max(1.0, math.sqrt(n))
    initial = random_positions(nodes, config.seed, start_scale)
    X = np.array([initial[node] for node in nodes], dtype=float)

    for _ in range(config.stress_iterations):
        if cancel_event is not None and cancel_event.is_set():
            raise LayoutCancelled("stress majorization cancelled")
        for i in np.flatnonzero(movable):
            diff = X[i] - X
            dist = np.sqrt((diff ** 2).sum(axis=1))
            unit = diff / np.maximum(dist, 1e-9)[:, None]
            proposal = X + targets[i][:, None] * unit
            X[i] = (weights[i][:, None] * proposal).sum(axis=0) / weight_sum[i]

    logger.info(
        "Stress layout complete: %d nodes, %d iterations.",
        n,
        config.stress_iterations,
    )
    return {node: (float(X[i, 0]), float(X[i, 1])) for i, node in enumerate(nodes)}
