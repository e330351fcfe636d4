"""
plz_show/analysis/impact.py — Impact analysis (transitive reachability).

Edges point from dependent to dependency (A → B: "A depends on B"), so:

    reverse_dependencies(X)     Everything reachable from X against the edges:
                                every target that would need rebuilding if X
                                changed.
    transitive_dependencies(X)  Everything reachable from X along the edges:
                                every target X needs in order to build.

Both exclude X itself, even when X sits on a cycle.
"""

import logging
from dataclasses import dataclass, field

import networkx as nx

from plz_show.errors import NotFound
from plz_show.graph.model import DependencyGraph

logger = logging.getLogger(__name__)


def reverse_dependencies(graph: DependencyGraph, node_id: str) -> set[str]:
    """All transitive dependents of `node_id`. Raises NotFound for an unknown id."""
    if node_id not in graph:
        raise NotFound(node_id)
    return nx.ancestors(graph.G, node_id)


def transitive_dependencies(graph: DependencyGraph, node_id: str) -> set[str]:
    """All transitive dependencies of `node_id`. Raises NotFound for an unknown id."""
    if node_id not in graph:
        raise NotFound(node_id)
    return nx.descendants(graph.G, node_id)


@dataclass
class ImpactSummary:
    """Direct vs transitive reach of one node in both directions."""

    node: str
    direct_dependents: list[str] = field(default_factory=list)
    transitive_dependents: list[str] = field(default_factory=list)
    direct_dependencies: list[str] = field(default_factory=list)
    transitive_dependencies: list[str] = field(default_factory=list)
    affected_packages: list[str] = field(default_factory=list)
    # Packages containing at least one transitive dependent.

    def to_dict(self) -> dict:
        return {
            "node": self.node,
            "direct_dependents": len(self.direct_dependents),
            "transitive_dependents": len(self.transitive_dependents),
            "direct_dependencies": len(self.direct_dependencies),
            "transitive_dependencies": len(self.transitive_dependencies),
            "affected_packages": len(self.affected_packages),
        }


def impact_summary(graph: DependencyGraph, node_id: str) -> ImpactSummary:
    """
    Summarise what `node_id` touches. All lists are sorted.

    Raises:
        NotFound: If node_id is not in the graph.
    """
    dependents = reverse_dependencies(graph, node_id)
    dependencies = transitive_dependencies(graph, node_id)
    packages = {graph.G.nodes[n].get("package", "") for n in dependents}

    summary = ImpactSummary(
        node=node_id,
        direct_dependents=sorted(graph.neighbors(node_id, "in")),
        transitive_dependents=sorted(dependents),
        direct_dependencies=sorted(graph.neighbors(node_id, "out")),
        transitive_dependencies=sorted(dependencies),
        affected_packages=sorted(packages),
    )
    logger.debug(
        "Impact of %s: %d dependents (%d direct), %d dependencies (%d direct).",
        node_id,
        len(summary.transitive_dependents),
        len(summary.direct_dependents),
        len(summary.transitive_dependencies),
        len(summary.direct_dependencies),
    )
    return summary
