"""
plz_show/layout/overlap.py — OverlapRemoval: noverlap post-process.

Treats every node as a disc of radius

    size * noverlap_ratio + noverlap_margin

and, for a bounded number of iterations, pushes every overlapping pair apart
along the line joining their centers, each node taking half of the overlap.
All pushes of one iteration are summed and applied at once, so the result
does not depend on pair order. Stops early as soon as no pair overlaps.

Coincident nodes have no line to push along; they are separated along a
fixed per-node direction (golden-angle spiral by index), which keeps the pass
deterministic.

Each iteration compares every pair, so time is O(n²) per iteration. The
pairwise arrays are built OVERLAP_CHUNK_ROWS rows at a time, which keeps
memory at O(n) per row block instead of O(n²) for large graphs.

Only ever run as the last step of plz_show.layout.engine.compute_layout.
"""

import logging
import math
import threading

import numpy as np

from plz_show.config import DEFAULT_CONFIG, LayoutConfig
from plz_show.errors import LayoutCancelled
from plz_show.graph.model import DependencyGraph

logger = logging.getLogger(__name__)

GOLDEN_ANGLE = math.pi * (3.0 - math.sqrt(5.0))

# Rows of the pairwise distance arrays held in memory at once.
OVERLAP_CHUNK_ROWS = 256


def remove_overlaps(
    graph: DependencyGraph,
    positions: dict[str, tuple[float, float]],
    config: LayoutConfig = DEFAULT_CONFIG,
    cancel_event: threading.Event | None = None,
) -> dict[str, tuple[float, float]]:
    """
    Nudge overlapping nodes apart.

    Args:
        graph:     Supplies node sizes.
        positions: node_id → (x, y) from a layout. Not modified.
        config:    noverlap_max_iterations, noverlap_ratio, noverlap_margin.
        cancel_event: Checked once per iteration.

    Returns:
        New node_id → (x, y) mapping.
    """
    node_ids = list(positions)
    n = len(node_ids)
    if n < 2:
        return dict(positions)

    xy = np.array([positions[node] for node in node_ids], dtype=float)
    radii = _radii(graph, node_ids, config)

    angles = GOLDEN_ANGLE * np.arange(n)
    fallback = np.stack([np.cos(angles), np.sin(angles)], axis=1)

    iterations = 0
    for _ in range(config.noverlap_max_iterations):
        if cancel_event is not None and cancel_event.is_set():
            raise LayoutCancelled("overlap removal cancelled")

        moves, overlapping = _overlap_moves(xy, radii, fallback)
        if not overlapping:
            break
        iterations += 1
        xy = xy + moves

    logger.debug("Overlap removal: %d iterations over %d nodes.", iterations, n)
    return {node: (float(xy[i, 0]), float(xy[i, 1])) for i, node in enumerate(node_ids)}


def _radii(graph: DependencyGraph, node_ids: list[str], config: LayoutConfig) -> np.ndarray:
    sizes = np.array([graph.G.nodes[node].get("size", 1.0) for node in node_ids], dtype=float)
    return sizes * config.noverlap_ratio + config.noverlap_margin


def _row_blocks(n: int):
    for start in range(0, n, OVERLAP_CHUNK_ROWS):
        yield start, min(start + OVERLAP_CHUNK_ROWS, n)


def _overlap_moves(
    xy: np.ndarray,
    radii: np.ndarray,
    fallback: np.ndarray,
) -> tuple[np.ndarray, bool]:
    """
    Summed displacement per node for one iteration, and whether any pair
    overlapped. Every row block reads the same `xy`, so blocking does not
    change the result.
    """
    moves = np.zeros_like(xy)
    found = False
    for start, stop in _row_blocks(len(xy)):
        rows = np.arange(start, stop)
        diff = xy[start:stop, None, :] - xy[None, :, :]
        dist = np.sqrt((diff ** 2).sum(axis=2))
        overlap = radii[start:stop, None] + radii[None, :] - dist
        overlap[rows - start, rows] = 0.0
        overlapping = overlap > 0
        if not overlapping.any():
            continue
        found = True

        unit = np.divide(
            diff, dist[:, :, None],
            out=np.zeros_like(diff), where=dist[:, :, None] > 0,
        )
        # Coincident pair: push along the difference of the two fallback
        # directions, which is antisymmetric in i and j.
        coincident = overlapping & (dist == 0)
        if coincident.any():
            unit = np.where(
                coincident[:, :, None],
                fallback[start:stop, None, :] - fallback[None, :, :],
                unit,
            )
        push = np.where(overlapping, overlap / 2.0, 0.0)
        moves[start:stop] = (unit * push[:, :, None]).sum(axis=1)
    return moves, found


def count_overlaps(
    graph: DependencyGraph,
    positions: dict[str, tuple[float, float]],
    config: LayoutConfig = DEFAULT_CONFIG,
) -> int:
    """Number of node pairs whose noverlap discs intersect."""
    node_ids = list(positions)
    n = len(node_ids)
    if n < 2:
        return 0
    xy = np.array([positions[node] for node in node_ids], dtype=float)
    radii = _radii(graph, node_ids, config)

    total = 0
    for start, stop in _row_blocks(n):
        dist = np.sqrt(((xy[start:stop, None, :] - xy[None, :, :]) ** 2).sum(axis=2))
        overlapping = radii[start:stop, None] + radii[None, :] - dist > 1e-9
        # Count each pair once: column index above the row index.
        overlapping &= np.arange(n)[None, :] > np.arange(start, stop)[:, None]
        total += int(overlapping.sum())
    return total
