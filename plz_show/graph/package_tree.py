"""
plz_show/graph/package_tree.py — PackageTree: hierarchical decomposition of
targets by "/"-delimited package path.

The tree is stored as an arena: every PackageTreeNode lives in one flat list
and refers to its parent and children by index. A parent is always created
before its children, so iterating the arena in reverse visits every child
before its parent, which is how weights and descendant lists are computed
bottom-up without recursion.

The tree is rebuilt from scratch whenever the graph is reloaded or package
membership changes; it is never patched incrementally. The only field
mutated after construction is the treemap's bounds assignment.
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field

import networkx as nx

from plz_show.geometry.bounds import Bounds
from plz_show.graph.model import DependencyGraph

logger = logging.getLogger(__name__)

ROOT = 0


@dataclass
class PackageTreeNode:
    """
    One package path segment in the hierarchy.

    Fields:
        index:            Position in the arena.
        name:             Path segment ('' for the root).
        full_path:        Complete package path ('' for the root).
        depth:            0 for the root, 1 for top-level packages, ...
        parent:           Arena index of the parent (None for the root).
        children:         Segment → arena index, in first-seen order.
        nodes:            Graph node ids whose package is exactly full_path.
        descendant_nodes: nodes + every child's descendant_nodes.
        weight:           len(nodes) + sum(child weights), floored at 1 when
                          the package has children but no targets of its own.
        bounds:           Rectangle assigned by the treemap partitioner.
        content_bounds:   Sub-rectangle reserved for `nodes` themselves (the
                          whole padded bounds for a leaf package).
    """

    index: int
    name: str
    full_path: str
    depth: int
    parent: int | None = None
    children: dict[str, int] = field(default_factory=dict)
    nodes: list[str] = field(default_factory=list)
    descendant_nodes: list[str] = field(default_factory=list)
    weight: int = 0
    bounds: Bounds | None = None
    content_bounds: Bounds | None = None

    @property
    def is_leaf(self) -> bool:
        return not self.children


class PackageTree:
    """Arena-backed package hierarchy. Index ROOT (0) is the repository root."""

    def __init__(self) -> None:
        self.arena: list[PackageTreeNode] = [
            PackageTreeNode(index=ROOT, name="", full_path="", depth=0)
        ]
        self._by_path: dict[str, int] = {"": ROOT}

    def __len__(self) -> int:
        return len(self.arena)

    def __contains__(self, path: object) -> bool:
        return path in self._by_path

    def __iter__(self) -> Iterator[PackageTreeNode]:
        return iter(self.arena)

    @property
    def root(self) -> PackageTreeNode:
        return self.arena[ROOT]

    def get(self, path: str) -> PackageTreeNode:
        """Look up a package by full path. Raises KeyError if absent."""
        return self.arena[self._by_path[path]]

    def children(self, node: PackageTreeNode) -> list[PackageTreeNode]:
        return [self.arena[i] for i in node.children.values()]

    def parent(self, node: PackageTreeNode) -> PackageTreeNode | None:
        return None if node.parent is None else self.arena[node.parent]

    def ensure_path(self, path: str) -> PackageTreeNode:
        """Return the node for `path`, creating it and any missing ancestors."""
        if path in self._by_path:
            return self.get(path)

        current = self.root
        segments = path.split("/") if path else []
        for i, segment in enumerate(segments):
            child_index = current.children.get(segment)
            if child_index is None:
                child_index = len(self.arena)
                self.arena.append(
                    PackageTreeNode(
                        index=child_index,
                        name=segment,
                        full_path="/".join(segments[: i + 1]),
                        depth=i + 1,
                        parent=current.index,
                    )
                )
                current.children[segment] = child_index
                self._by_path[self.arena[child_index].full_path] = child_index
            current = self.arena[child_index]
        return current

    # ── Queries ───────────────────────────────────────────────────────────────

    def flatten(self) -> list[PackageTreeNode]:
        """All packages in pre-order (parent before children)."""
        result: list[PackageTreeNode] = []
        stack = [ROOT]
        while stack:
            node = self.arena[stack.pop()]
            result.append(node)
            stack.extend(reversed(list(node.children.values())))
        return result

    def packages_at_depth(self, depth: int) -> list[PackageTreeNode]:
        return [n for n in self.flatten() if n.depth == depth]

    def tree_depth(self) -> int:
        """Length of the longest root → leaf chain (0 for a root-only tree)."""
        return max(n.depth for n in self.arena)

    def is_descendant(self, path: str, ancestor: str) -> bool:
        """True if `path` lies strictly below `ancestor` in the hierarchy."""
        if ancestor == "":
            return path != ""
        return path.startswith(ancestor + "/")


def build_package_tree(graph: DependencyGraph) -> PackageTree:
    """
    Build the package hierarchy for every node in `graph`.

    Algorithm (O(V · depth)):
        1. Group node ids by exact package path (graph iteration order).
        2. Walk/create the path segments for each group and attach its ids
           to the leaf package's `nodes` list.
        3. Sweep the arena in reverse to fill descendant_nodes and weight
           bottom-up.

    Returns:
        tree: PackageTree whose root.descendant_nodes covers every node.
    """
    tree = PackageTree()

    by_package: dict[str, list[str]] = {}
    for node_id, data in graph.G.nodes(data=True):
        by_package.setdefault(data.get("package", "") or "", []).append(node_id)

    for path, node_ids in by_package.items():
        tree.ensure_path(path).nodes = list(node_ids)

    _compute_descendants_and_weights(tree)

    logger.debug(
        "Package tree built: %d packages, depth %d, %d nodes.",
        len(tree),
        tree.tree_depth(),
        len(tree.root.descendant_nodes),
    )
    return tree


def _compute_descendants_and_weights(tree: PackageTree) -> None:
    for node in reversed(tree.arena):
        children = tree.children(node)
        node.descendant_nodes = list(node.nodes)
        for child in children:
            node.descendant_nodes.extend(child.descendant_nodes)
        total = len(node.nodes) + sum(child.weight for child in children)
        node.weight = max(total, 1 if children else 0)


def topological_layers(graph: DependencyGraph) -> dict[str, int] | None:
    """
    Topological generation of every node (dependents before dependencies).

    Returns None when the graph is cyclic. Callers treat that as "no
    ordering hint" rather than an error.
    """
    try:
        generations = list(nx.topological_generations(graph.G))
    except nx.NetworkXUnfeasible:
        logger.debug("Graph is cyclic; no topological layering available.")
        return None
    return {n: layer for layer, nodes in enumerate(generations) for n in nodes}


def package_average_layer(node: PackageTreeNode, node_to_layer: dict[str, int]) -> float:
    """Mean topological layer over a package's descendant nodes (0 if none known)."""
    layers = [node_to_layer[n] for n in node.descendant_nodes if n in node_to_layer]
    if not layers:
        return 0.0
    return sum(layers) / len(layers)
