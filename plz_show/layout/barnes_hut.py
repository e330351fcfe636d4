"""
plz_show/layout/barnes_hut.py — Barnes-Hut quad-tree repulsion.

Approximates the O(n²) pairwise repulsion of ForceAtlas2 in O(n log n):
a region whose side / distance ratio falls below theta is treated as a single
body located at its center of mass, carrying the summed mass of its bodies.

The tree is rebuilt every iteration (positions change every iteration).
Bodies are inserted in index order and regions are traversed in a fixed
child order, so the approximation is deterministic for given positions.
"""

import math
from dataclasses import dataclass, field

import numpy as np

# Coincident points stop subdividing here and share one leaf.
MAX_DEPTH = 24


@dataclass
class _Region:
    x0: float
    y0: float
    side: float
    depth: int
    children: list[int] | None = None
    bodies: list[int] = field(default_factory=list)
    mass: float = 0.0
    cx: float = 0.0
    cy: float = 0.0


class QuadTree:
    """Region quad-tree over body positions with aggregated mass per region."""

    def __init__(self, xs: np.ndarray, ys: np.ndarray, masses: np.ndarray):
        self.xs = xs
        self.ys = ys
        self.masses = masses

        min_x, max_x = float(xs.min()), float(xs.max())
        min_y, max_y = float(ys.min()), float(ys.max())
        side = max(max_x - min_x, max_y - min_y, 1e-6) * 1.0001
        self.regions: list[_Region] = [_Region(min_x, min_y, side, 0)]

        for i in range(len(xs)):
            self._insert(i)
        self._aggregate()

    def _insert(self, i: int) -> None:
        x, y = self.xs[i], self.ys[i]
        index = 0
        while True:
            region = self.regions[index]
            if region.children is None:
                if not region.bodies or region.depth >= MAX_DEPTH:
                    region.bodies.append(i)
                    return
                self._split(index)
                continue
            index = region.children[self._quadrant(region, x, y)]

    def _split(self, index: int) -> None:
        region = self.regions[index]
        half = region.side / 2.0
        first = len(self.regions)
        for qy in (0, 1):
            for qx in (0, 1):
                self.regions.append(
                    _Region(region.x0 + qx * half, region.y0 + qy * half, half, region.depth + 1)
                )
        region.children = [first, first + 1, first + 2, first + 3]
        existing, region.bodies = region.bodies, []
        for b in existing:
            child = self.regions[region.children[self._quadrant(region, self.xs[b], self.ys[b])]]
            child.bodies.append(b)

    @staticmethod
    def _quadrant(region: _Region, x: float, y: float) -> int:
        half = region.side / 2.0
        qx = 1 if x >= region.x0 + half else 0
        qy = 1 if y >= region.y0 + half else 0
        return qx + 2 * qy

    def _aggregate(self) -> None:
        # Children are always appended after their parent.
        for region in reversed(self.regions):
            if region.children is None:
                members = region.bodies
                if not members:
                    continue
                m = self.masses[members]
                region.mass = float(m.sum())
                region.cx = float((self.xs[members] * m).sum() / region.mass)
                region.cy = float((self.ys[members] * m).sum() / region.mass)
            else:
                total = 0.0
                sx = 0.0
                sy = 0.0
                for c in region.children:
                    child = self.regions[c]
                    if child.mass > 0:
                        total += child.mass
                        sx += child.cx * child.mass
                        sy += child.cy * child.mass
                region.mass = total
                if total > 0:
                    region.cx = sx / total
                    region.cy = sy / total


def barnes_hut_repulsion(
    xs: np.ndarray,
    ys: np.ndarray,
    masses: np.ndarray,
    sizes: np.ndarray,
    coefficient: float,
    theta: float,
    adjust_sizes: bool,
    min_distance_sq: float,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Approximate ForceAtlas2 repulsion for every body.

    Args:
        xs, ys:          Body positions.
        masses:          Body masses (1 + degree).
        sizes:           Body radii, used for exact leaf pairs when adjust_sizes.
        coefficient:     scaling_ratio.
        theta:           Opening criterion.
        adjust_sizes:    Subtract radii from distances for exact pairs.
        min_distance_sq: Floor on squared distances (keeps forces finite).

    Returns:
        (fx, fy): Repulsive force per body.
    """
    tree = QuadTree(xs, ys, masses)
    regions = tree.regions
    n = len(xs)
    fx = np.zeros(n)
    fy = np.zeros(n)

    for i in range(n):
        xi = xs[i]
        yi = ys[i]
        mi = masses[i]
        acc_x = 0.0
        acc_y = 0.0
        stack = [0]
        while stack:
            region = regions[stack.pop()]
            if region.mass <= 0:
                continue
            if region.children is None:
                for j in region.bodies:
                    if j == i:
                        continue
                    dx = xi - xs[j]
                    dy = yi - ys[j]
                    factor = _pair_factor(
                        dx, dy, mi * masses[j], sizes[i] + sizes[j],
                        coefficient, adjust_sizes, min_distance_sq,
                    )
                    acc_x += dx * factor
                    acc_y += dy * factor
                continue

            dx = xi - region.cx
            dy = yi - region.cy
            dist_sq = dx * dx + dy * dy
            if dist_sq > 0 and region.side * region.side / dist_sq < theta * theta:
                factor = coefficient * mi * region.mass / max(dist_sq, min_distance_sq)
                acc_x += dx * factor
                acc_y += dy * factor
            else:
                stack.extend(region.children)
        fx[i] = acc_x
        fy[i] = acc_y

    return fx, fy


def _pair_factor(
    dx: float,
    dy: float,
    mass_product: float,
    size_sum: float,
    coefficient: float,
    adjust_sizes: bool,
    min_distance_sq: float,
) -> float:
    dist_sq = dx * dx + dy * dy
    if adjust_sizes:
        dist = math.sqrt(dist_sq) - size_sum
        if dist > 0:
            return coefficient * mass_product / max(dist * dist, min_distance_sq)
        if dist < 0:
            return 100.0 * coefficient * mass_product
        return 0.0
    if dist_sq <= 0:
        return 0.0
    return coefficient * mass_product / max(dist_sq, min_distance_sq)
