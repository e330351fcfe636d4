"""
plz_show/geometry/bounds.py — Axis-aligned rectangle used by the treemap
partitioner and as the confinement region of bounded force simulation.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Bounds:
    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center(self) -> tuple[float, float]:
        return self.x + self.width / 2.0, self.y + self.height / 2.0

    @property
    def is_wide(self) -> bool:
        return self.width >= self.height

    def padded(self, padding: float) -> "Bounds":
        """
        Shrink inward by `padding` on every side.

        Padding is capped at half of each dimension, so the result never has
        negative size and always stays inside (centered in) the original.
        """
        pad_x = min(padding, self.width / 2.0)
        pad_y = min(padding, self.height / 2.0)
        return Bounds(
            self.x + pad_x,
            self.y + pad_y,
            self.width - 2.0 * pad_x,
            self.height - 2.0 * pad_y,
        )

    def contains(self, px: float, py: float, tol: float = 1e-9) -> bool:
        return (
            self.x - tol <= px <= self.x + self.width + tol
            and self.y - tol <= py <= self.y + self.height + tol
        )

    def overlap_area(self, other: "Bounds") -> float:
        w = min(self.x + self.width, other.x + other.width) - max(self.x, other.x)
        h = min(self.y + self.height, other.y + other.height) - max(self.y, other.y)
        return max(0.0, w) * max(0.0, h)
