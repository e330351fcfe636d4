"""
plz_show/pipeline.py — Single-call layout pipeline.

Provides run_layout_pipeline(), which runs layout → commit → hulls in the
required order and returns every product of the run: positions, hulls, the
layout version the hulls belong to, and per-phase timings.

Usage:
    from plz_show.graph.builder import load_query_json
    from plz_show.pipeline import run_layout_pipeline

    graph = load_query_json("query.json")
    result = run_layout_pipeline(graph)
    print(result.version, len(result.hulls))
"""

import logging
import time
from dataclasses import dataclass, field

from plz_show.config import DEFAULT_CONFIG, LayoutConfig
from plz_show.geometry.hulls import PackageHull, compute_package_hulls
from plz_show.graph.model import DependencyGraph
from plz_show.layout.engine import compute_layout

logger = logging.getLogger(__name__)


@dataclass
class LayoutResult:
    """Complete output of one layout pipeline run."""

    algorithm: str
    positions: dict[str, tuple[float, float]]
    hulls: dict[str, PackageHull]
    version: int
    # Graph layout_version after the commit; the hulls belong to it.
    timings: dict[str, float] = field(default_factory=dict)
    # Phase name → wall-clock seconds (informational only).


def run_layout_pipeline(
    graph: DependencyGraph,
    config: LayoutConfig = DEFAULT_CONFIG,
) -> LayoutResult:
    """
    Lay out `graph`, commit the positions, and compute package hulls.

    Order:
        1. compute_layout() with config.algorithm (+ noverlap if enabled)
        2. commit positions (bumps layout_version)
        3. compute_package_hulls() on the committed positions

    Args:
        graph:  Dependency graph. Positions are overwritten.
        config: LayoutConfig.

    Returns:
        LayoutResult.
    """
    logger.info(
        "Layout pipeline starting: %s on %d nodes, %d edges.",
        config.algorithm,
        len(graph),
        graph.number_of_edges(),
    )
    timings: dict[str, float] = {}

    # ── 1. Layout ─────────────────────────────────────────────────────────────
    start = time.perf_counter()
    positions = compute_layout(graph, config)
    timings["layout"] = time.perf_counter() - start

    # ── 2. Commit ─────────────────────────────────────────────────────────────
    version = graph.commit_positions(positions)

    # ── 3. Hulls ──────────────────────────────────────────────────────────────
    start = time.perf_counter()
    hulls = compute_package_hulls(graph, config.hull_padding)
    timings["hulls"] = time.perf_counter() - start

    logger.info(
        "Layout pipeline complete: version %d, %d hulls (layout %.2fs, hulls %.2fs).",
        version,
        len(hulls),
        timings["layout"],
        timings["hulls"],
    )
    return LayoutResult(
        algorithm=config.algorithm,
        positions=positions,
        hulls=hulls,
        version=version,
        timings=timings,
    )
