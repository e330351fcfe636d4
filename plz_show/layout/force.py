"""
plz_show/layout/force.py — ForceSolver: ForceAtlas2-style force-directed simulation.

Each iteration accumulates three forces per node and then moves every node
at once:

    Repulsion   Between every pair of nodes, proportional to the product of
                their masses (mass = 1 + degree) over squared distance.
                Exact O(n²) below config.barnes_hut_threshold nodes, Barnes-Hut
                O(n log n) above it.
    Attraction  Along every edge, scaled by weight ** edge_weight_influence.
                linlog_mode compresses it logarithmically; dissuade_hubs
                (outbound attraction distribution) divides it by the source's
                mass so hubs do not dominate.
    Gravity     Toward the origin: uniform ('strong gravity') or falling off
                with distance ('normal gravity'), scaled by mass.

Movement per iteration is damped by swinging (how much a node's force changed
direction since the last iteration) and by config.slow_down.

Determinism: the simulation itself draws no random numbers. Given identical
initial positions, weights and settings, two runs are bit-identical. Only the
initial placement is random, and it is seeded (config.seed).

Two refinements are available on top of the plain simulation:

    Neighbor gravity  After every batch of iterations (the whole budget is
                      one batch in an unbounded run), each node is pulled
                      toward the centroid of its neighbors with strength
                      1 / sqrt(degree), decayed linearly across passes.
    Bounded run       Confines nodes to a Bounds rectangle: after every batch
                      of iterations a soft boundary force pushes nodes that
                      crossed the inset margin back inward, then a hard clamp
                      keeps them inside. Groups of <= 3 nodes are clamped once
                      at the end instead.
"""

import logging
import threading
from dataclasses import dataclass

import networkx as nx
import numpy as np

from plz_show.config import DEFAULT_CONFIG, LayoutConfig
from plz_show.errors import LayoutCancelled
from plz_show.geometry.bounds import Bounds
from plz_show.graph.model import DependencyGraph
from plz_show.layout.barnes_hut import barnes_hut_repulsion
from plz_show.layout.structural import random_positions

logger = logging.getLogger(__name__)

# Squared-distance floor for repulsion; keeps near-coincident pairs finite.
MIN_DISTANCE_SQ = 1e-4

# Groups this small skip batched boundary enforcement.
TINY_GROUP = 3


@dataclass(frozen=True)
class ForceSettings:
    """Resolved ForceAtlas2 settings for a single solver run."""

    iterations: int = 100
    gravity: float = 1.0
    scaling_ratio: float = 10.0
    strong_gravity_mode: bool = False
    linlog_mode: bool = False
    outbound_attraction_distribution: bool = False
    edge_weight_influence: float = 1.0
    slow_down: float = 1.0
    adjust_sizes: bool = True
    barnes_hut_optimize: bool = False
    barnes_hut_theta: float = 0.5

    @classmethod
    def from_config(
        cls,
        config: LayoutConfig,
        node_count: int,
        iterations: int | None = None,
    ) -> "ForceSettings":
        return cls(
            iterations=config.force_iterations if iterations is None else iterations,
            gravity=config.gravity,
            scaling_ratio=config.scaling_ratio,
            strong_gravity_mode=config.strong_gravity_mode,
            linlog_mode=config.linlog_mode,
            outbound_attraction_distribution=config.dissuade_hubs,
            edge_weight_influence=config.edge_weight_influence,
            slow_down=config.slow_down,
            adjust_sizes=config.adjust_sizes,
            barnes_hut_optimize=node_count > config.barnes_hut_threshold,
            barnes_hut_theta=config.barnes_hut_theta,
        )


class ForceSolver:
    """
    ForceAtlas2 simulation over a fixed node set and weighted edge list.

    Args:
        node_ids: Node ids, in the order that defines array indices.
        edges:    (source, target, weight) triples between ids in node_ids.
        sizes:    Node radius per id (missing ids get 1.0).
        settings: ForceSettings for this run.
        cancel_event: Checked once per iteration; raises LayoutCancelled
                      when set.
    """

    def __init__(
        self,
        node_ids: list[str],
        edges: list[tuple[str, str, float]],
        settings: ForceSettings,
        sizes: dict[str, float] | None = None,
        cancel_event: threading.Event | None = None,
    ):
        self.node_ids = list(node_ids)
        self.settings = settings
        self.cancel_event = cancel_event

        index = {n: i for i, n in enumerate(self.node_ids)}
        n = len(self.node_ids)
        self.sources = np.array([index[u] for u, _, _ in edges], dtype=np.intp)
        self.targets = np.array([index[v] for _, v, _ in edges], dtype=np.intp)
        self.weights = np.array([float(w) for _, _, w in edges], dtype=float)

        self.degree = np.zeros(n)
        np.add.at(self.degree, self.sources, 1.0)
        np.add.at(self.degree, self.targets, 1.0)
        self.masses = 1.0 + self.degree

        sizes = sizes or {}
        self.sizes = np.array([float(sizes.get(node, 1.0)) for node in self.node_ids])

    @classmethod
    def for_subgraph(
        cls,
        graph: DependencyGraph,
        node_ids: list[str],
        settings: ForceSettings,
        cancel_event: threading.Event | None = None,
    ) -> "ForceSolver":
        """Solver over the subgraph induced by node_ids, using graph weights and sizes."""
        members = set(node_ids)
        edges = [
            (u, v, d.get("weight", 1.0))
            for u, v, d in graph.G.edges(data=True)
            if u in members and v in members
        ]
        sizes = {n: graph.G.nodes[n].get("size", 1.0) for n in node_ids}
        return cls(node_ids, edges, settings, sizes=sizes, cancel_event=cancel_event)

    # ── Public entry points ───────────────────────────────────────────────────

    def run(
        self,
        initial: dict[str, tuple[float, float]],
        bounds: Bounds | None = None,
        config: LayoutConfig = DEFAULT_CONFIG,
    ) -> dict[str, tuple[float, float]]:
        """
        Run the full iteration budget from `initial` positions.

        Args:
            initial: Starting (x, y) per node id. Every id must be present.
            bounds:  Optional confinement rectangle (bounded variant).
            config:  Supplies bounded-run batching and neighbor-gravity
                     refinement parameters. Neighbor gravity runs after
                     every batch, before the boundary is enforced.

        Returns:
            Final (x, y) per node id.
        """
        if not self.node_ids:
            return {}

        xs = np.array([initial[n][0] for n in self.node_ids], dtype=float)
        ys = np.array([initial[n][1] for n in self.node_ids], dtype=float)
        state = _SimulationState(xs, ys)

        iterations = self.settings.iterations
        if bounds is None:
            self._run_batch(state, iterations, config)
        elif len(self.node_ids) <= TINY_GROUP:
            self._run_batch(state, iterations, config)
            _clamp(state, bounds)
        else:
            batch = max(1, config.bounded_batch_size)
            done = 0
            while done < iterations:
                self._run_batch(state, min(batch, iterations - done), config)
                done += batch
                _soft_boundary(state, bounds, config)
                _clamp(state, bounds)

        return {
            node: (float(state.xs[i]), float(state.ys[i]))
            for i, node in enumerate(self.node_ids)
        }

    def _run_batch(self, state: "_SimulationState", iterations: int, config: LayoutConfig) -> None:
        """`iterations` simulation steps, then the neighbor-gravity passes (if enabled)."""
        for _ in range(iterations):
            self._step(state)
        if config.neighbor_gravity_passes > 0 and len(self.sources):
            self._neighbor_gravity(state, config.neighbor_gravity_passes,
                                   config.neighbor_gravity_strength)

    # ── One iteration ─────────────────────────────────────────────────────────

    def _step(self, state: "_SimulationState") -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise LayoutCancelled("force simulation cancelled")

        s = self.settings
        xs, ys = state.xs, state.ys

        if s.barnes_hut_optimize:
            fx, fy = barnes_hut_repulsion(
                xs, ys, self.masses, self.sizes, s.scaling_ratio,
                s.barnes_hut_theta, s.adjust_sizes, MIN_DISTANCE_SQ,
            )
        else:
            fx, fy = self._exact_repulsion(xs, ys)

        self._gravity(xs, ys, fx, fy)
        self._attraction(xs, ys, fx, fy)
        self._apply(state, fx, fy)

    def _exact_repulsion(self, xs: np.ndarray, ys: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        s = self.settings
        dx = xs[:, None] - xs[None, :]
        dy = ys[:, None] - ys[None, :]
        dist_sq = dx * dx + dy * dy
        mass_product = s.scaling_ratio * self.masses[:, None] * self.masses[None, :]

        if s.adjust_sizes:
            dist = np.sqrt(dist_sq) - (self.sizes[:, None] + self.sizes[None, :])
            factor = np.where(
                dist > 0,
                mass_product / np.maximum(dist * dist, MIN_DISTANCE_SQ),
                np.where(dist < 0, 100.0 * mass_product, 0.0),
            )
        else:
            factor = np.where(
                dist_sq > 0,
                mass_product / np.maximum(dist_sq, MIN_DISTANCE_SQ),
                0.0,
            )
        np.fill_diagonal(factor, 0.0)
        return (dx * factor).sum(axis=1), (dy * factor).sum(axis=1)

    def _gravity(self, xs: np.ndarray, ys: np.ndarray, fx: np.ndarray, fy: np.ndarray) -> None:
        s = self.settings
        if s.strong_gravity_mode:
            factor = s.scaling_ratio * self.masses * s.gravity
        else:
            dist = np.sqrt(xs * xs + ys * ys)
            factor = np.divide(
                self.masses * s.gravity, dist,
                out=np.zeros_like(dist), where=dist > 0,
            )
        fx -= xs * factor
        fy -= ys * factor

    def _attraction(self, xs: np.ndarray, ys: np.ndarray, fx: np.ndarray, fy: np.ndarray) -> None:
        if not len(self.sources):
            return
        s = self.settings
        src, tgt = self.sources, self.targets

        coefficient = float(self.masses.mean()) if s.outbound_attraction_distribution else 1.0
        if s.edge_weight_influence == 0:
            ewc = np.ones_like(self.weights)
        elif s.edge_weight_influence == 1:
            ewc = self.weights
        else:
            ewc = np.power(self.weights, s.edge_weight_influence)

        dx = xs[src] - xs[tgt]
        dy = ys[src] - ys[tgt]
        dist = np.sqrt(dx * dx + dy * dy)
        if s.adjust_sizes:
            dist = dist - self.sizes[src] - self.sizes[tgt]

        if s.linlog_mode:
            factor = np.divide(
                -coefficient * ewc * np.log1p(np.maximum(dist, 0.0)), dist,
                out=np.zeros_like(dist), where=dist > 0,
            )
        else:
            factor = -coefficient * ewc
            if s.adjust_sizes:
                factor = np.where(dist > 0, factor, 0.0)
        if s.outbound_attraction_distribution:
            factor = factor / self.masses[src]

        np.add.at(fx, src, dx * factor)
        np.add.at(fy, src, dy * factor)
        np.add.at(fx, tgt, -dx * factor)
        np.add.at(fy, tgt, -dy * factor)

    def _apply(self, state: "_SimulationState", fx: np.ndarray, fy: np.ndarray) -> None:
        swing_x = state.old_fx - fx
        swing_y = state.old_fy - fy
        swinging = np.sqrt(self.masses * np.sqrt(swing_x * swing_x + swing_y * swing_y))
        trac_x = state.old_fx + fx
        trac_y = state.old_fy + fy
        traction = np.sqrt(trac_x * trac_x + trac_y * trac_y) / 2.0

        speed = state.convergence * np.log1p(traction) / (1.0 + swinging)
        state.convergence = np.minimum(
            1.0, np.sqrt(speed * (fx * fx + fy * fy) / (1.0 + swinging))
        )

        state.xs += fx * speed / self.settings.slow_down
        state.ys += fy * speed / self.settings.slow_down
        state.old_fx = fx
        state.old_fy = fy

    # ── Neighbor-gravity refinement ───────────────────────────────────────────

    def _neighbor_gravity(self, state: "_SimulationState", passes: int, strength: float) -> None:
        n = len(self.node_ids)
        src, tgt = self.sources, self.targets
        degree = self.degree
        connected = degree > 0
        pull = np.zeros(n)
        pull[connected] = strength / np.sqrt(degree[connected])

        for p in range(passes):
            if self.cancel_event is not None and self.cancel_event.is_set():
                raise LayoutCancelled("neighbor gravity cancelled")
            decay = 1.0 - p / passes
            sum_x = np.zeros(n)
            sum_y = np.zeros(n)
            np.add.at(sum_x, src, state.xs[tgt])
            np.add.at(sum_y, src, state.ys[tgt])
            np.add.at(sum_x, tgt, state.xs[src])
            np.add.at(sum_y, tgt, state.ys[src])
            cx = np.divide(sum_x, degree, out=state.xs.copy(), where=connected)
            cy = np.divide(sum_y, degree, out=state.ys.copy(), where=connected)
            state.xs += (cx - state.xs) * pull * decay
            state.ys += (cy - state.ys) * pull * decay


class _SimulationState:
    def __init__(self, xs: np.ndarray, ys: np.ndarray):
        self.xs = xs
        self.ys = ys
        self.old_fx = np.zeros_like(xs)
        self.old_fy = np.zeros_like(ys)
        self.convergence = np.ones_like(xs)


def _soft_boundary(state: _SimulationState, bounds: Bounds, config: LayoutConfig) -> None:
    margin = min(bounds.width, bounds.height) * config.boundary_margin_fraction
    inner = bounds.padded(margin)
    push = config.boundary_push_strength
    left, right = inner.x, inner.x + inner.width
    top, bottom = inner.y, inner.y + inner.height
    state.xs += np.where(state.xs < left, (left - state.xs) * push, 0.0)
    state.xs += np.where(state.xs > right, (right - state.xs) * push, 0.0)
    state.ys += np.where(state.ys < top, (top - state.ys) * push, 0.0)
    state.ys += np.where(state.ys > bottom, (bottom - state.ys) * push, 0.0)


def _clamp(state: _SimulationState, bounds: Bounds) -> None:
    np.clip(state.xs, bounds.x, bounds.x + bounds.width, out=state.xs)
    np.clip(state.ys, bounds.y, bounds.y + bounds.height, out=state.ys)


def force_atlas2_layout(
    graph: DependencyGraph,
    config: LayoutConfig = DEFAULT_CONFIG,
    cancel_event: threading.Event | None = None,
) -> dict[str, tuple[float, float]]:
    """
    Plain ForceAtlas2 layout of the whole graph.

    Initial positions are drawn uniformly from a square of side
    config.random_scale centered at the origin, seeded with config.seed, so
    re-running on an already laid-out graph reproduces the same result.

    Returns:
        positions: node_id → (x, y). Empty for an empty graph.
    """
    nodes = graph.nodes()
    if not nodes:
        return {}

    settings = ForceSettings.from_config(config, len(nodes))
    if settings.barnes_hut_optimize:
        logger.debug("ForceAtlas2: Barnes-Hut repulsion for %d nodes.", len(nodes))

    initial = random_positions(nodes, config.seed, config.random_scale)
    solver = ForceSolver.for_subgraph(graph, nodes, settings, cancel_event=cancel_event)
    positions = solver.run(initial, config=config)

    logger.info(
        "ForceAtlas2 layout complete: %d nodes, %d iterations.",
        len(positions),
        settings.iterations,
    )
    return positions


def meta_graph_solver_edges(meta: nx.Graph) -> list[tuple[str, str, float]]:
    """(u, v, weight) triples of a weighted NetworkX graph, in edge order."""
    return [(u, v, float(d.get("weight", 1.0))) for u, v, d in meta.edges(data=True)]
