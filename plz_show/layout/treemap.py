"""
plz_show/layout/treemap.py — TreemapPartitioner: squarified treemap over the
package tree.

Squarified treemaps (Bruls, Huizing, van Wijk) partition a rectangle into
sub-rectangles whose areas are proportional to item weights while keeping
each rectangle as close to square as possible:

    1. Sort items by weight, descending.
    2. Grow a "row" along the current rectangle's short side for as long as
       adding the next item does not worsen the row's worst aspect ratio.
    3. Lay the row out as a strip perpendicular to the rectangle's long side
       and continue with the remaining rectangle.

apply_treemap() recurses that partition down the package tree. A package
with both its own targets and sub-packages first reserves a strip for its
own targets (proportional to direct weight / total weight) along the
leading edge of its wider dimension, then squarifies the rest among its
children.
"""

import logging
from collections.abc import Callable
from typing import Hashable

from plz_show.config import DEFAULT_CONFIG, LayoutConfig
from plz_show.geometry.bounds import Bounds
from plz_show.graph.package_tree import PackageTree, PackageTreeNode

logger = logging.getLogger(__name__)

# Rectangles thinner than this are not partitioned by squarify().
MIN_PARTITION_SIDE = 1.0


def worst_aspect_ratio(areas: list[float], side: float) -> float:
    """
    Worst aspect ratio of a row of `areas` laid along a side of length `side`.

    For row sum s, the worst ratio is max(side² · max / s², s² / (side² · min)).
    """
    if not areas or side <= 0:
        return float("inf")
    total = sum(areas)
    if total <= 0:
        return float("inf")
    side_sq = side * side
    return max(side_sq * max(areas) / (total * total), (total * total) / (side_sq * min(areas)))


def squarify(
    items: list[tuple[Hashable, float]],
    bounds: Bounds,
) -> dict[Hashable, Bounds]:
    """
    Partition `bounds` among weighted items.

    Args:
        items:  (key, weight) pairs. Items with weight <= 0 get no rectangle.
        bounds: Rectangle to partition.

    Returns:
        key → Bounds. Areas are proportional to weight and siblings never
        overlap.

    Notes:
        - A single item receives the whole rectangle.
        - If either side of `bounds` is below MIN_PARTITION_SIDE, every item
          collapses onto `bounds` itself rather than being subdivided.
    """
    weighted = sorted(
        ((key, float(w)) for key, w in items if w > 0),
        key=lambda kw: kw[1],
        reverse=True,
    )
    if not weighted:
        return {}
    if len(weighted) == 1:
        return {weighted[0][0]: bounds}
    if bounds.width < MIN_PARTITION_SIDE or bounds.height < MIN_PARTITION_SIDE:
        logger.debug("Treemap: %d items collapsed onto degenerate bounds %s.", len(weighted), bounds)
        return {key: bounds for key, _ in weighted}

    total_weight = sum(w for _, w in weighted)
    remaining = [(key, w / total_weight * bounds.area) for key, w in weighted]
    rect = bounds
    result: dict[Hashable, Bounds] = {}

    while remaining:
        side = min(rect.width, rect.height)
        row = [remaining[0]]
        for candidate in remaining[1:]:
            current = worst_aspect_ratio([a for _, a in row], side)
            extended = worst_aspect_ratio([a for _, a in row] + [candidate[1]], side)
            if extended <= current:
                row.append(candidate)
            else:
                break
        remaining = remaining[len(row):]
        rect = _layout_row(row, rect, is_last=not remaining, result=result)

    return result


def _layout_row(
    row: list[tuple[Hashable, float]],
    rect: Bounds,
    is_last: bool,
    result: dict[Hashable, Bounds],
) -> Bounds:
    """Place one row as a strip of `rect`; return the leftover rectangle."""
    row_area = sum(a for _, a in row)

    if rect.is_wide:
        # Vertical strip on the left, items stacked top to bottom.
        strip = rect.width if is_last else min(rect.width, row_area / rect.height)
        offset = 0.0
        for i, (key, area) in enumerate(row):
            extent = rect.height - offset if i == len(row) - 1 else area / strip
            result[key] = Bounds(rect.x, rect.y + offset, strip, extent)
            offset += extent
        return Bounds(rect.x + strip, rect.y, max(0.0, rect.width - strip), rect.height)

    # Horizontal strip on top, items side by side.
    strip = rect.height if is_last else min(rect.height, row_area / rect.width)
    offset = 0.0
    for i, (key, area) in enumerate(row):
        extent = rect.width - offset if i == len(row) - 1 else area / strip
        result[key] = Bounds(rect.x + offset, rect.y, extent, strip)
        offset += extent
    return Bounds(rect.x, rect.y + strip, rect.width, max(0.0, rect.height - strip))


def apply_treemap(
    tree: PackageTree,
    bounds: Bounds,
    config: LayoutConfig = DEFAULT_CONFIG,
    sibling_order: Callable[[list[PackageTreeNode]], list[PackageTreeNode]] | None = None,
) -> None:
    """
    Assign `bounds` and `content_bounds` to every package in the tree.

    Walks the tree with an explicit stack starting from the root:

        - node.bounds is the rectangle handed down by the parent.
        - The inner rectangle is node.bounds shrunk by config.treemap_padding.
        - Leaf package: content_bounds = inner rectangle (or bounds when the
          padding leaves nothing).
        - Inner rectangle below config.treemap_min_size in either dimension:
          not subdivided; every child and the package's own targets share
          the inner rectangle.
        - Own targets and sub-packages: a strip of the inner rectangle,
          fraction direct / (direct + children weight), along the left edge
          (wide) or top edge (tall), becomes content_bounds; the rest is
          squarified among the children.
        - Sub-packages only: the whole inner rectangle is squarified.

    Args:
        tree:          PackageTree from build_package_tree().
        bounds:        Rectangle for the root package.
        config:        Uses treemap_padding and treemap_min_size.
        sibling_order: Optional reordering of a package's children before
                       squarifying (ties in weight keep this order).
    """
    padding = config.treemap_padding
    min_size = config.treemap_min_size

    stack: list[tuple[PackageTreeNode, Bounds]] = [(tree.root, bounds)]
    while stack:
        node, node_bounds = stack.pop()
        node.bounds = node_bounds
        inner = node_bounds.padded(padding)
        usable = inner if inner.width > 0 and inner.height > 0 else node_bounds

        children = tree.children(node)
        if not children:
            node.content_bounds = usable
            continue

        if inner.width < min_size or inner.height < min_size:
            logger.debug(
                "Treemap: package '%s' too small to subdivide (%.1f x %.1f).",
                node.full_path, inner.width, inner.height,
            )
            node.content_bounds = usable
            stack.extend((child, usable) for child in reversed(children))
            continue

        if sibling_order is not None:
            children = sibling_order(children)

        direct_weight = len(node.nodes)
        children_weight = sum(child.weight for child in children)
        children_bounds = inner
        node.content_bounds = None

        if direct_weight > 0 and children_weight > 0:
            fraction = direct_weight / (direct_weight + children_weight)
            if inner.is_wide:
                reserved = inner.width * fraction
                node.content_bounds = Bounds(inner.x, inner.y, reserved, inner.height)
                children_bounds = Bounds(
                    inner.x + reserved, inner.y, inner.width - reserved, inner.height
                )
            else:
                reserved = inner.height * fraction
                node.content_bounds = Bounds(inner.x, inner.y, inner.width, reserved)
                children_bounds = Bounds(
                    inner.x, inner.y + reserved, inner.width, inner.height - reserved
                )

        assigned = squarify([(child.index, child.weight) for child in children], children_bounds)
        for child in reversed(children):
            child_bounds = assigned.get(child.index)
            if child_bounds is not None:
                stack.append((child, child_bounds))
