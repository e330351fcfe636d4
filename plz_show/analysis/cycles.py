"""
plz_show/analysis/cycles.py — Dependency cycle detection.

A depth-first traversal keeps the set of nodes on the current DFS path (the
"recursion stack"). An edge back to a node on that path closes a cycle: the
cycle is the path suffix starting at that node.

The traversal is restarted from every unvisited node so disconnected
components are covered, and runs on an explicit stack so deep dependency
chains cannot hit Python's recursion limit.

Reported cycles are canonical:
    - the closing node is not repeated ([A, B, C] means A → B → C → A);
    - the cycle is rotated to start at its smallest node id, keeping edge
      direction;
    - each canonical cycle is reported once.

This finds one cycle per back edge of the traversal, which is enough to
prove a graph cyclic and to point at every offending edge, but is not an
enumeration of every elementary cycle.
"""

import logging

import networkx as nx

from plz_show.graph.model import DependencyGraph

logger = logging.getLogger(__name__)


def canonical_cycle(cycle: list[str]) -> tuple[str, ...]:
    """Rotate a cycle to start at its smallest node id."""
    start = cycle.index(min(cycle))
    return tuple(cycle[start:] + cycle[:start])


def find_cycles(graph: DependencyGraph) -> list[list[str]]:
    """
    Dependency cycles found by DFS back-edge detection.

    Returns:
        List of canonical cycles in discovery order. Empty for an acyclic
        graph.
    """
    G = graph.G
    visited: set[str] = set()
    on_stack: set[str] = set()
    seen: set[tuple[str, ...]] = set()
    cycles: list[list[str]] = []

    for root in G.nodes:
        if root in visited:
            continue

        path = [root]
        visited.add(root)
        on_stack.add(root)
        stack = [iter(G.successors(root))]

        while stack:
            neighbor = next(stack[-1], None)
            if neighbor is None:
                stack.pop()
                on_stack.discard(path.pop())
                continue

            if neighbor not in visited:
                visited.add(neighbor)
                on_stack.add(neighbor)
                path.append(neighbor)
                stack.append(iter(G.successors(neighbor)))
            elif neighbor in on_stack:
                cycle = canonical_cycle(path[path.index(neighbor):])
                if cycle not in seen:
                    seen.add(cycle)
                    cycles.append(list(cycle))

    logger.debug("Cycle detection: %d cycles in %d nodes.", len(cycles), len(G))
    return cycles


def has_cycles(graph: DependencyGraph) -> bool:
    """True if any dependency cycle exists (stops at the first one)."""
    return not nx.is_directed_acyclic_graph(graph.G)
