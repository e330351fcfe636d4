"""
plz_show/graph/builder.py — DependencyGraph construction from Please query output.

Builds a DependencyGraph from the JSON emitted by `plz query graph`:

    {
      "packages": {
        "src/core": {
          "targets": {
            "core": {"deps": ["//src/util:util", ":proto"], "labels": [...],
                     "binary": false, ...},
            ...
          }
        },
        ...
      }
    }

One node per target (id = canonical label '//pkg:target'), one edge per
resolved dependency that points at a known, non-subrepo target.
"""

import json
import logging
from typing import Any

import numpy as np

from plz_show.config import DEFAULT_CONFIG, LayoutConfig
from plz_show.graph.labels import build_label, parse_label, resolve_label
from plz_show.graph.model import DependencyGraph

logger = logging.getLogger(__name__)


def build_graph_from_query(
    data: dict[str, Any],
    config: LayoutConfig = DEFAULT_CONFIG,
    seed: int | None = None,
) -> DependencyGraph:
    """
    Build a DependencyGraph from a parsed Please query-output mapping.

    Two passes:
        1. Every target of every package becomes a node:
               id       = build_label(package, target_name)
               package  = package path
               labels   = target['labels'] (default [])
               binary   = target['binary'] (default False)
               metadata = the raw target dict (passthrough, never inspected)
           Initial positions are uniform in [0, config.random_scale)², drawn
           from a numpy Generator seeded with `seed` (config.seed if None).
        2. Every entry of target['deps'] is resolved against the declaring
           package (':x' → '//pkg:x') and parsed. An edge is added when the
           dependency is not a subrepo label and names a target that exists.

    Finally degrees, node sizes and edge weights are derived
    (DependencyGraph.refresh_derived).

    Args:
        data:   Mapping with a top-level 'packages' key.
        config: LayoutConfig. Uses random_scale, seed, optimize_edge_weights.
        seed:   Override for the initial-position seed.

    Returns:
        graph: Populated DependencyGraph.

    Notes:
        - Subrepo dependencies (///subrepo//...) are skipped: external
          targets are not part of the package hierarchy.
        - Dependencies on targets missing from the query output are logged
          at DEBUG and skipped; partial queries are common.
        - Self-dependencies are dropped by DependencyGraph.add_edge.
    """
    rng = np.random.default_rng(config.seed if seed is None else seed)
    packages: dict[str, Any] = data.get("packages", {}) or {}

    graph = DependencyGraph()

    # ── Pass 1: nodes ─────────────────────────────────────────────────────────
    for pkg_path, pkg in packages.items():
        for target_name, target in (pkg.get("targets", {}) or {}).items():
            target = target or {}
            x, y = rng.uniform(0.0, config.random_scale, size=2)
            graph.add_node(
                build_label(pkg_path, target_name),
                package=pkg_path,
                labels=target.get("labels") or [],
                binary=bool(target.get("binary", False)),
                metadata=target,
                x=float(x),
                y=float(y),
            )

    logger.info("Added %d target nodes from %d packages.", len(graph), len(packages))

    # ── Pass 2: dependency edges ──────────────────────────────────────────────
    edges_added = 0
    skipped_external = 0
    skipped_missing = 0
    for pkg_path, pkg in packages.items():
        for target_name, target in (pkg.get("targets", {}) or {}).items():
            source_id = build_label(pkg_path, target_name)
            for dep in (target or {}).get("deps") or []:
                parsed = parse_label(resolve_label(dep, pkg_path))
                if parsed is None:
                    logger.warning("Unparseable dependency label '%s' on %s.", dep, source_id)
                    continue
                if parsed.subrepo:
                    skipped_external += 1
                    continue
                target_id = build_label(parsed.package, parsed.target)
                if target_id not in graph:
                    skipped_missing += 1
                    logger.debug("Dependency '%s' of %s not in query output.", target_id, source_id)
                    continue
                if graph.add_edge(source_id, target_id):
                    edges_added += 1

    graph.refresh_derived(optimize_edge_weights=config.optimize_edge_weights)

    logger.info(
        "Graph construction complete: %d nodes, %d edges "
        "(%d subrepo deps skipped, %d unresolved deps skipped).",
        len(graph),
        edges_added,
        skipped_external,
        skipped_missing,
    )
    return graph


def load_query_json(
    path: str,
    config: LayoutConfig = DEFAULT_CONFIG,
    seed: int | None = None,
) -> DependencyGraph:
    """Read a `plz query graph` JSON file and build the DependencyGraph."""
    logger.info("Loading Please query output from: %s", path)
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    return build_graph_from_query(data, config=config, seed=seed)


def get_packages(graph: DependencyGraph) -> list[str]:
    """Sorted unique package paths."""
    return sorted({d["package"] for _, d in graph.G.nodes(data=True)})


def get_labels(graph: DependencyGraph) -> list[str]:
    """Sorted unique build labels across all targets."""
    labels: set[str] = set()
    for _, data in graph.G.nodes(data=True):
        labels.update(data.get("labels", []))
    return sorted(labels)


def graph_stats(graph: DependencyGraph) -> dict[str, int]:
    return {
        "node_count": len(graph),
        "edge_count": graph.number_of_edges(),
        "packages": len(get_packages(graph)),
    }
