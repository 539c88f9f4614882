"""Plain geometry for drop-target hit testing."""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in board coordinates (y grows downward)."""

    left: float
    top: float
    width: float
    height: float

    @classmethod
    def from_edges(cls, left: float, top: float, right: float, bottom: float) -> "Rect":
        return cls(left, top, right - left, bottom - top)

    @classmethod
    def around(cls, point: Point, half_size: float) -> "Rect":
        """Square of side ``2 * half_size`` centred on *point*."""
        return cls(point.x - half_size, point.y - half_size, 2 * half_size, 2 * half_size)

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def center(self) -> Point:
        return Point(self.left + self.width / 2, self.top + self.height / 2)

    @property
    def area(self) -> float:
        return max(self.width, 0) * max(self.height, 0)

    def contains(self, point: Point) -> bool:
        # Edges are inclusive.
        return self.left <= point.x <= self.right and self.top <= point.y <= self.bottom

    def expanded(self, margin: float) -> "Rect":
        return Rect(self.left - margin, self.top - margin, self.width + 2 * margin, self.height + 2 * margin)

    def intersection_area(self, other: "Rect") -> float:
        width = min(self.right, other.right) - max(self.left, other.left)
        height = min(self.bottom, other.bottom) - max(self.top, other.top)
        if width <= 0 or height <= 0:
            return 0.0
        return width * height

    def intersects(self, other: "Rect") -> bool:
        return self.intersection_area(other) > 0


def distance(a: Point, b: Point) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)
