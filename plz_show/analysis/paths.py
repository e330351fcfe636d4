"""
plz_show/analysis/paths.py — Dependency path queries.

Both queries follow edges in the dependency direction only: a path from A to
C exists when A depends on C through some chain of dependencies. They answer
"how does this target end up depending on that one?".

"No path" is a normal answer (None, or an empty list); only an id that is
not in the graph raises NotFound.
"""

import logging
from itertools import islice

import networkx as nx

from plz_show.config import DEFAULT_CONFIG
from plz_show.errors import NotFound
from plz_show.graph.model import DependencyGraph

logger = logging.getLogger(__name__)


def _require_nodes(graph: DependencyGraph, *node_ids: str) -> None:
    for node_id in node_ids:
        if node_id not in graph:
            raise NotFound(node_id)


def shortest_path(graph: DependencyGraph, source: str, target: str) -> list[str] | None:
    """
    Shortest dependency chain from `source` to `target` (BFS, unweighted).

    Returns:
        [source, ..., target], [source] when source == target, or None when
        target is not reachable.

    Raises:
        NotFound: If source or target is not in the graph.
    """
    _require_nodes(graph, source, target)
    if source == target:
        return [source]
    try:
        return nx.shortest_path(graph.G, source, target)
    except nx.NetworkXNoPath:
        return None


def all_simple_paths(
    graph: DependencyGraph,
    source: str,
    target: str,
    max_paths: int = DEFAULT_CONFIG.max_simple_paths,
    max_length: int | None = DEFAULT_CONFIG.max_path_length,
) -> list[list[str]]:
    """
    Every simple (no repeated node) dependency chain from `source` to `target`.

    Args:
        graph:      Dependency graph.
        source:     Start node id.
        target:     End node id.
        max_paths:  Stop after this many paths.
        max_length: Ignore paths longer than this many edges (None: no limit).

    Returns:
        Paths in depth-first discovery order; [[source]] when
        source == target; [] when no path exists.

    Raises:
        NotFound: If source or target is not in the graph.

    Complexity:
        Exponential in the worst case. max_paths and max_length are the only
        bound on the work done, so keep them modest on dense graphs.
    """
    _require_nodes(graph, source, target)
    if source == target:
        return [[source]]

    # networkx enumerates with an explicit stack, not recursion.
    paths = list(
        islice(nx.all_simple_paths(graph.G, source, target, cutoff=max_length), max_paths)
    )
    if len(paths) == max_paths:
        logger.debug(
            "Path enumeration %s -> %s stopped at max_paths=%d.", source, target, max_paths
        )
    return paths
