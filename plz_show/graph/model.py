"""
plz_show/graph/model.py — GraphModel: the attributed directed dependency graph.

A thin wrapper over a NetworkX DiGraph. The wrapper exists to pin down the
contract every layout and analysis module relies on:

    - Node ids are stable strings; an edge source → target means
      "source depends on target".
    - No self-loops, no parallel edges: re-adding an existing edge is a no-op.
    - Node and edge attributes are a fixed set of named fields (NODE_FIELDS,
      EDGE_FIELDS). Anything else the core never inspects goes into the single
      opaque 'metadata' field.
    - Referencing a node id that is not in the graph raises NotFound.

The underlying DiGraph is exposed as `G` so algorithm modules can use
NetworkX directly for read-only traversals.

Node attributes:
    x, y        Position (float), mutated by layout commits.
    package     "/"-delimited package path ('' for the repository root).
    labels      List of build labels (strings).
    binary      True for terminal artifacts (binaries).
    in_degree   Derived: number of dependents.
    out_degree  Derived: number of dependencies.
    size        Derived: visual radius used by adjust_sizes and noverlap.
    hidden      Visibility flag (hulls skip hidden nodes).
    metadata    Opaque passthrough (e.g. the raw Please target dict).

Edge attributes:
    weight      Derived: 1 when weight optimisation is off, else in [1, 11],
                inversely proportional to the harmonic mean of the endpoint
                degrees (low-degree endpoints pull harder).
"""

import logging
from collections.abc import Iterable, Iterator
from typing import Any

import networkx as nx

from plz_show.errors import NotFound

logger = logging.getLogger(__name__)


NODE_FIELDS = frozenset(
    {"x", "y", "package", "labels", "binary", "in_degree", "out_degree",
     "size", "hidden", "metadata"}
)
EDGE_FIELDS = frozenset({"weight"})

DIRECTIONS = ("out", "in", "both")

MIN_NODE_SIZE = 3.0
MAX_NODE_SIZE = 15.0
MIN_EDGE_WEIGHT = 1.0
MAX_EDGE_WEIGHT = 11.0


class DependencyGraph:
    """
    Attributed directed dependency graph.

    `layout_version` is a monotonically increasing counter bumped whenever
    committed positions or node visibility change. Hull computation keys off
    it (see plz_show.geometry.hulls.refresh_hulls).
    """

    def __init__(self) -> None:
        self.G: nx.DiGraph = nx.DiGraph()
        self.layout_version: int = 0

    def __len__(self) -> int:
        return self.G.number_of_nodes()

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.G

    def __iter__(self) -> Iterator[str]:
        return iter(self.G.nodes)

    def __repr__(self) -> str:
        return (
            f"DependencyGraph(nodes={self.G.number_of_nodes()}, "
            f"edges={self.G.number_of_edges()}, version={self.layout_version})"
        )

    # ── Nodes ─────────────────────────────────────────────────────────────────

    def add_node(
        self,
        node_id: str,
        package: str = "",
        labels: Iterable[str] | None = None,
        binary: bool = False,
        metadata: Any = None,
        x: float = 0.0,
        y: float = 0.0,
        size: float | None = None,
    ) -> None:
        """
        Add a node, or overwrite the attributes of an existing one.

        Overwriting keeps the fields this call does not own: in_degree,
        out_degree and hidden are carried over (the node's edges stay), and so
        is size unless a new one is passed.
        """
        existing = self.G.nodes[node_id] if node_id in self.G else {}
        if size is None:
            size = existing.get("size", MIN_NODE_SIZE)
        self.G.add_node(
            node_id,
            x=float(x),
            y=float(y),
            package=package,
            labels=list(labels or []),
            binary=bool(binary),
            in_degree=existing.get("in_degree", 0),
            out_degree=existing.get("out_degree", 0),
            size=float(size),
            hidden=existing.get("hidden", False),
            metadata=metadata,
        )

    def remove_node(self, node_id: str) -> None:
        self._require(node_id)
        self.G.remove_node(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self.G

    def nodes(self) -> list[str]:
        return list(self.G.nodes)

    def node(self, node_id: str) -> dict:
        """Return the live attribute dict of a node."""
        self._require(node_id)
        return self.G.nodes[node_id]

    def get_node_attribute(self, node_id: str, name: str) -> Any:
        _check_field(name, NODE_FIELDS)
        return self.node(node_id)[name]

    def set_node_attribute(self, node_id: str, name: str, value: Any) -> None:
        _check_field(name, NODE_FIELDS)
        self.node(node_id)[name] = value

    # ── Edges ─────────────────────────────────────────────────────────────────

    def add_edge(self, source: str, target: str, weight: float = 1.0) -> bool:
        """
        Add a dependency edge source → target.

        Returns:
            True if the edge was added. False for a self-loop (dropped with a
            warning) or an edge that already exists (idempotent re-add).

        Raises:
            NotFound: If either endpoint is not in the graph.
        """
        self._require(source)
        self._require(target)
        if source == target:
            logger.warning("Dropping self-loop on node '%s'.", source)
            return False
        if self.G.has_edge(source, target):
            return False
        self.G.add_edge(source, target, weight=float(weight))
        return True

    def remove_edge(self, source: str, target: str) -> None:
        self._require(source)
        self._require(target)
        if not self.G.has_edge(source, target):
            raise NotFound(f"{source} -> {target}")
        self.G.remove_edge(source, target)

    def has_edge(self, source: str, target: str) -> bool:
        return self.G.has_edge(source, target)

    def edges(self) -> list[tuple[str, str]]:
        return list(self.G.edges)

    def get_edge_attribute(self, source: str, target: str, name: str) -> Any:
        _check_field(name, EDGE_FIELDS)
        return self._edge(source, target)[name]

    def set_edge_attribute(self, source: str, target: str, name: str, value: Any) -> None:
        _check_field(name, EDGE_FIELDS)
        self._edge(source, target)[name] = value

    def number_of_edges(self) -> int:
        return self.G.number_of_edges()

    # ── Neighborhood ──────────────────────────────────────────────────────────

    def neighbors(self, node_id: str, direction: str = "out") -> list[str]:
        """
        Neighbors of a node filtered by direction.

        'out' → dependencies, 'in' → dependents, 'both' → union (each neighbor
        once, dependencies first).
        """
        self._require(node_id)
        if direction == "out":
            return list(self.G.successors(node_id))
        if direction == "in":
            return list(self.G.predecessors(node_id))
        if direction == "both":
            seen = dict.fromkeys(self.G.successors(node_id))
            seen.update(dict.fromkeys(self.G.predecessors(node_id)))
            return list(seen)
        raise ValueError(f"Invalid direction {direction!r}; expected one of {DIRECTIONS}")

    def in_degree(self, node_id: str) -> int:
        self._require(node_id)
        return self.G.in_degree(node_id)

    def out_degree(self, node_id: str) -> int:
        self._require(node_id)
        return self.G.out_degree(node_id)

    def degree(self, node_id: str) -> int:
        self._require(node_id)
        return self.G.degree(node_id)

    def undirected(self) -> nx.Graph:
        """Read-only undirected view of the topology."""
        return self.G.to_undirected(as_view=True)

    # ── Positions and visibility ──────────────────────────────────────────────

    def position(self, node_id: str) -> tuple[float, float]:
        data = self.node(node_id)
        return data["x"], data["y"]

    def positions(self) -> dict[str, tuple[float, float]]:
        return {n: (d["x"], d["y"]) for n, d in self.G.nodes(data=True)}

    def commit_positions(self, positions: dict[str, tuple[float, float]]) -> int:
        """
        Write a completed layout back onto the nodes and bump layout_version.

        Ids in `positions` that are no longer in the graph are ignored (the
        graph may have been edited while the layout ran).

        Returns:
            The new layout_version.
        """
        for node_id, (x, y) in positions.items():
            if node_id in self.G:
                self.G.nodes[node_id]["x"] = float(x)
                self.G.nodes[node_id]["y"] = float(y)
        return self.bump_version()

    def set_visible(self, visible: Iterable[str] | None) -> int:
        """Show only `visible` (None shows everything). Bumps layout_version."""
        keep = None if visible is None else set(visible)
        for node_id, data in self.G.nodes(data=True):
            data["hidden"] = keep is not None and node_id not in keep
        return self.bump_version()

    def visible_nodes(self) -> list[str]:
        return [n for n, d in self.G.nodes(data=True) if not d.get("hidden", False)]

    def bump_version(self) -> int:
        self.layout_version += 1
        return self.layout_version

    # ── Derived attributes ────────────────────────────────────────────────────

    def refresh_derived(self, optimize_edge_weights: bool = True) -> None:
        """
        Recompute in/out degree, node size, and edge weights.

        Node size = clamp(3 + 0.5 * total_degree, 3, 15).

        Edge weight (optimize_edge_weights=True):
            h = harmonic mean of the endpoint total degrees
            weight = clamp(1 + 10 / h, 1, 11)
        An edge between two leaves (h = 1) pulls with weight 11; an edge
        between two hubs tends to 1.
        """
        for node_id in self.G.nodes:
            d_in = self.G.in_degree(node_id)
            d_out = self.G.out_degree(node_id)
            data = self.G.nodes[node_id]
            data["in_degree"] = d_in
            data["out_degree"] = d_out
            data["size"] = max(MIN_NODE_SIZE, min(MAX_NODE_SIZE, 3.0 + 0.5 * (d_in + d_out)))

        for u, v, data in self.G.edges(data=True):
            if not optimize_edge_weights:
                data["weight"] = 1.0
                continue
            du = self.G.degree(u)
            dv = self.G.degree(v)
            harmonic = 2.0 * du * dv / (du + dv)
            data["weight"] = max(MIN_EDGE_WEIGHT, min(MAX_EDGE_WEIGHT, 1.0 + 10.0 / harmonic))

    # ── Copies ────────────────────────────────────────────────────────────────

    def copy(self) -> "DependencyGraph":
        """Deep-enough copy for running a layout off the committed state."""
        clone = DependencyGraph()
        clone.G = self.G.copy()
        for _, data in clone.G.nodes(data=True):
            data["labels"] = list(data.get("labels", []))
        clone.layout_version = self.layout_version
        return clone

    # ── Internal helpers ──────────────────────────────────────────────────────

    def _require(self, node_id: str) -> None:
        if node_id not in self.G:
            raise NotFound(node_id)

    def _edge(self, source: str, target: str) -> dict:
        self._require(source)
        self._require(target)
        if not self.G.has_edge(source, target):
            raise NotFound(f"{source} -> {target}")
        return self.G.edges[source, target]


def _check_field(name: str, allowed: frozenset) -> None:
    if name not in allowed:
        raise ValueError(f"Unknown attribute {name!r}; expected one of {sorted(allowed)}")
