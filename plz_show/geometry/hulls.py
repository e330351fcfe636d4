"""
plz_show/geometry/hulls.py — HullComputer: hierarchical package hulls.

For every package P the hull input is the position of every visible node in
P or in any package below P, so a parent's hull always encloses its
children's hulls' input points. The repository root package ('') is an
ordinary package of root-level targets here, not an ancestor of the
top-level packages: a hull around the whole repository carries no
information.

Per package:
    1. Graham scan over the input points. Points closer together than
       HULL_EPSILON times the extent of the input are merged first, and
       turns within the same relative tolerance count as collinear, so
       near-coincident positions (common after bounded runs clamp nodes onto
       the same wall) cannot leave a reflex vertex in the hull.
    2. Degenerate results get volume: one point → square of half-width
       `padding`; a hull of two points or of (near) zero area, i.e.
       collinear input → rectangle around the two extreme points along the
       line, extended perpendicular to it by `padding`.
    3. Every vertex is pushed radially outward from the centroid of the
       input points by `padding`.

Hulls are always recomputed from scratch. refresh_hulls() makes that cheap
to call repeatedly: it hands back the previous result unless the graph's
layout_version moved.
"""

import functools
import logging
import math
from dataclasses import dataclass, field

from plz_show.config import DEFAULT_CONFIG
from plz_show.graph.model import DependencyGraph
from plz_show.graph.package_tree import build_package_tree

logger = logging.getLogger(__name__)

Point = tuple[float, float]

# Relative tolerance (fraction of the input's extent) for merging points and
# for treating turns and areas as zero.
HULL_EPSILON = 1e-9


@dataclass
class PackageHull:
    """
    Padded convex hull of one package.

    Fields:
        package: Package path.
        points:  Polygon vertices, counter-clockwise.
        center:  Mean of the input points.
        depth:   Package depth in the tree (1 for top-level packages, 0 for
                 the repository root).
        members: Node ids whose positions formed the input.
    """

    package: str
    points: list[Point]
    center: Point
    depth: int
    members: list[str] = field(default_factory=list)


# ── Geometry primitives ───────────────────────────────────────────────────────

def cross(o: Point, a: Point, b: Point) -> float:
    """Cross product of OA × OB: > 0 counter-clockwise, < 0 clockwise, 0 collinear."""
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


def extent(points: list[Point]) -> float:
    """Larger side of the bounding box of `points`."""
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return max(max(xs) - min(xs), max(ys) - min(ys))


def polygon_area(points: list[Point]) -> float:
    """Unsigned shoelace area."""
    n = len(points)
    twice = sum(
        points[i][0] * points[(i + 1) % n][1] - points[(i + 1) % n][0] * points[i][1]
        for i in range(n)
    )
    return abs(twice) / 2.0


def merge_close_points(points: list[Point], tol: float) -> list[Point]:
    """Keep the first point of every `tol`-sized grid cell, in input order."""
    if tol <= 0:
        return list(dict.fromkeys(points))
    cells: dict[tuple[int, int], Point] = {}
    for x, y in points:
        cells.setdefault((round(x / tol), round(y / tol)), (x, y))
    return list(cells.values())


def graham_scan(points: list[Point]) -> list[Point]:
    """
    Convex hull of `points`, counter-clockwise, starting at the pivot.

    Pivot: lowest y, then lowest x. The remaining points are ordered around
    the pivot by the sign of their cross product (closer first when
    collinear with the pivot) and swept with a stack that pops while the
    last two hull points and the candidate do not make a left turn larger
    than the tolerance.

    Comparing cross products instead of atan2 angles keeps the order exact
    for points that nearly coincide; near-duplicates are merged up front.
    Fewer than three distinct points are returned unchanged; collinear input
    collapses to its two extreme points.
    """
    unique = list(dict.fromkeys(points))
    if len(unique) < 3:
        return unique

    scale = extent(unique)
    unique = merge_close_points(unique, scale * HULL_EPSILON)
    if len(unique) < 3:
        return unique
    eps = scale * scale * HULL_EPSILON

    pivot = min(unique, key=lambda p: (p[1], p[0]))

    def dist_sq(p: Point) -> float:
        return (p[0] - pivot[0]) ** 2 + (p[1] - pivot[1]) ** 2

    def by_angle(a: Point, b: Point) -> int:
        turn = cross(pivot, a, b)
        if turn > eps:
            return -1
        if turn < -eps:
            return 1
        da, db = dist_sq(a), dist_sq(b)
        return (da > db) - (da < db)

    others = sorted((p for p in unique if p != pivot), key=functools.cmp_to_key(by_angle))

    hull = [pivot]
    for p in others:
        while len(hull) > 1 and cross(hull[-2], hull[-1], p) <= eps:
            hull.pop()
        hull.append(p)
    return hull


def extreme_pair(points: list[Point]) -> list[Point]:
    """
    The two extreme points of (near) collinear `points` along their line.

    The line runs from the lowest point (y, then x) to the point furthest
    from it; every point is projected onto it.
    """
    anchor = min(points, key=lambda p: (p[1], p[0]))
    far = max(points, key=lambda p: (p[0] - anchor[0]) ** 2 + (p[1] - anchor[1]) ** 2)
    length = math.hypot(far[0] - anchor[0], far[1] - anchor[1])
    if length == 0:
        return [anchor]
    ux, uy = (far[0] - anchor[0]) / length, (far[1] - anchor[1]) / length
    ts = [(p[0] - anchor[0]) * ux + (p[1] - anchor[1]) * uy for p in points]
    lo, hi = min(ts), max(ts)
    return [
        (anchor[0] + ux * lo, anchor[1] + uy * lo),
        (anchor[0] + ux * hi, anchor[1] + uy * hi),
    ]


def hull_outline(points: list[Point]) -> list[Point]:
    """
    Graham scan hull with collinear results reduced to their two extremes.

    A hull of three or more vertices whose area is within HULL_EPSILON of
    zero (relative to the squared extent) is treated as collinear.
    """
    hull = graham_scan(points)
    if len(hull) < 3:
        return hull
    if polygon_area(hull) > HULL_EPSILON * extent(hull) ** 2:
        return hull
    return extreme_pair(hull)


def ensure_hull_volume(points: list[Point], padding: float) -> list[Point]:
    """Turn a 1- or 2-point hull into a square or a thin rectangle."""
    if len(points) >= 3:
        return points

    if len(points) == 2:
        (x1, y1), (x2, y2) = points
        dx, dy = x2 - x1, y2 - y1
        length = math.hypot(dx, dy)
        if length > 0:
            px = -dy / length * padding
            py = dx / length * padding
            return [
                (x1 - px, y1 - py),
                (x2 - px, y2 - py),
                (x2 + px, y2 + py),
                (x1 + px, y1 + py),
            ]

    x, y = points[0]
    return [
        (x - padding, y - padding),
        (x + padding, y - padding),
        (x + padding, y + padding),
        (x - padding, y + padding),
    ]


def expand_hull(points: list[Point], center: Point, padding: float) -> list[Point]:
    """Move every vertex `padding` further away from `center`."""
    cx, cy = center
    expanded = []
    for x, y in points:
        dx, dy = x - cx, y - cy
        dist = math.hypot(dx, dy)
        if dist == 0:
            expanded.append((x + padding, y))
            continue
        scale = (dist + padding) / dist
        expanded.append((cx + dx * scale, cy + dy * scale))
    return expanded


def polygon_contains(polygon: list[Point], point: Point, tol: float = 1e-6) -> bool:
    """
    True if `point` lies inside `polygon` or within `tol` of its boundary.

    Even-odd ray casting, so it also holds for the padded hulls, which are
    star-shaped around their center but not always convex.
    """
    px, py = point
    n = len(polygon)
    inside = False
    for i in range(n):
        ax, ay = polygon[i]
        bx, by = polygon[(i + 1) % n]
        if _segment_distance(ax, ay, bx, by, px, py) <= tol:
            return True
        if (ay > py) != (by > py):
            x_cross = ax + (py - ay) * (bx - ax) / (by - ay)
            if px < x_cross:
                inside = not inside
    return inside


def _segment_distance(ax: float, ay: float, bx: float, by: float, px: float, py: float) -> float:
    dx, dy = bx - ax, by - ay
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return math.hypot(px - ax, py - ay)
    t = max(0.0, min(1.0, ((px - ax) * dx + (py - ay) * dy) / length_sq))
    return math.hypot(px - (ax + t * dx), py - (ay + t * dy))


# ── Package hulls ─────────────────────────────────────────────────────────────

def build_hull(
    package: str,
    depth: int,
    members: list[str],
    positions: dict[str, Point],
    padding: float,
) -> PackageHull:
    points = [positions[n] for n in members]
    center = (
        sum(p[0] for p in points) / len(points),
        sum(p[1] for p in points) / len(points),
    )
    outline = ensure_hull_volume(hull_outline(points), padding)
    return PackageHull(
        package=package,
        points=expand_hull(outline, center, padding),
        center=center,
        depth=depth,
        members=list(members),
    )


def compute_package_hulls(
    graph: DependencyGraph,
    padding: float = DEFAULT_CONFIG.hull_padding,
    visible_only: bool = True,
) -> dict[str, PackageHull]:
    """
    Hull for every package with at least one (visible) node at or below it.

    Args:
        graph:        Graph with committed positions.
        padding:      Hull padding (config.hull_padding).
        visible_only: Skip hidden nodes (see DependencyGraph.set_visible).

    Returns:
        package path → PackageHull, in tree pre-order.
    """
    tree = build_package_tree(graph)
    positions = graph.positions()
    if visible_only:
        shown = set(graph.visible_nodes())
    else:
        shown = set(positions)

    hulls: dict[str, PackageHull] = {}
    for package in tree.flatten():
        source = package.nodes if package is tree.root else package.descendant_nodes
        members = [n for n in source if n in shown]
        if not members:
            continue
        hulls[package.full_path] = build_hull(
            package.full_path, package.depth, members, positions, padding
        )

    logger.info("Computed %d package hulls (version %d).", len(hulls), graph.layout_version)
    return hulls


def refresh_hulls(
    graph: DependencyGraph,
    last_seen_version: int | None,
    previous: dict[str, PackageHull] | None,
    padding: float = DEFAULT_CONFIG.hull_padding,
) -> tuple[int, dict[str, PackageHull]]:
    """
    Hulls for the graph's current layout_version.

    Returns (version, hulls). When `last_seen_version` equals the graph's
    layout_version and `previous` is given, `previous` is returned as-is;
    otherwise every hull is recomputed.
    """
    version = graph.layout_version
    if previous is not None and last_seen_version == version:
        return version, previous
    return version, compute_package_hulls(graph, padding)
