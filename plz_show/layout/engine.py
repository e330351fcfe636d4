"""
plz_show/layout/engine.py — Layout dispatcher.

compute_layout() maps config.algorithm to its implementation, runs the
optional noverlap post-process, and returns positions without touching the
graph. apply_layout() is the synchronous convenience that also commits the
result. Long-running work should go through LayoutRunner instead, which
computes on a snapshot and commits only the newest run.
"""

import logging
import threading
from collections.abc import Callable

from plz_show.config import DEFAULT_CONFIG, LayoutConfig
from plz_show.graph.model import DependencyGraph
from plz_show.layout.clustered import clustered_layout
from plz_show.layout.force import force_atlas2_layout
from plz_show.layout.hierarchical import hierarchical_layout
from plz_show.layout.overlap import remove_overlaps
from plz_show.layout.structural import (
    circular_layout,
    layered_layout,
    radial_layout,
    random_layout,
    stress_layout,
)

logger = logging.getLogger(__name__)

Positions = dict[str, tuple[float, float]]
LayoutFunction = Callable[[DependencyGraph, LayoutConfig, threading.Event | None], Positions]


def _without_cancel(fn: Callable[[DependencyGraph, LayoutConfig], Positions]) -> LayoutFunction:
    def wrapper(graph, config, cancel_event=None):
        return fn(graph, config)
    wrapper.__name__ = fn.__name__
    return wrapper


LAYOUTS: dict[str, LayoutFunction] = {
    "forceAtlas2": force_atlas2_layout,
    "clusteredForceAtlas2": clustered_layout,
    "hierarchical": hierarchical_layout,
    "layered": _without_cancel(layered_layout),
    "radial": _without_cancel(radial_layout),
    "stress": stress_layout,
    "circular": _without_cancel(circular_layout),
    "random": _without_cancel(random_layout),
}


def compute_layout(
    graph: DependencyGraph,
    config: LayoutConfig = DEFAULT_CONFIG,
    cancel_event: threading.Event | None = None,
) -> Positions:
    """
    Compute positions for every node with config.algorithm.

    An empty graph yields an empty mapping; no algorithm treats it as an
    error.

    Raises:
        LayoutCancelled: If cancel_event is set while an iterative algorithm
                         is running.
    """
    if len(graph) == 0:
        logger.debug("Layout '%s' skipped: empty graph.", config.algorithm)
        return {}

    positions = LAYOUTS[config.algorithm](graph, config, cancel_event)
    if config.apply_noverlap:
        positions = remove_overlaps(graph, positions, config, cancel_event)
    return positions


def apply_layout(
    graph: DependencyGraph,
    config: LayoutConfig = DEFAULT_CONFIG,
) -> int:
    """
    Compute and commit a layout in the calling thread.

    Returns:
        The graph's new layout_version.
    """
    positions = compute_layout(graph, config)
    return graph.commit_positions(positions)
