# subtile_ocr/models/area.py
"""Axis-aligned rectangle with inclusive integer bounds."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class Area:
    """
    Rectangle covering the pixels ``left..right`` x ``top..bottom``.

    Bounds are inclusive: an Area built from a single pixel has a width and
    a height of 1.
    """

    left: int
    top: int
    right: int
    bottom: int

    def __post_init__(self):
        if self.right < self.left or self.bottom < self.top:
            raise ValueError(
                f"Invalid area ({self.left}, {self.top}, {self.right}, {self.bottom})"
            )

    @classmethod
    def from_points(cls, points: Iterable[tuple[int, int]]) -> Area:
        """Bounding box of a non-empty collection of ``(x, y)`` points."""
        xs: list[int] = []
        ys: list[int] = []
        for x, y in points:
            xs.append(x)
            ys.append(y)
        if not xs:
            raise ValueError("Cannot compute the area of no points")
        return cls(min(xs), min(ys), max(xs), max(ys))

    @property
    def width(self) -> int:
        return self.right - self.left + 1

    @property
    def height(self) -> int:
        return self.bottom - self.top + 1

    def contains_point_y(self, y: int) -> bool:
        return self.top <= y <= self.bottom

    def intersects_x(self, other: Area) -> bool:
        """True when the horizontal ranges overlap."""
        return self.left <= other.right and other.left <= self.right

    def intersects_y(self, other: Area) -> bool:
        """True when the vertical ranges overlap."""
        return self.top <= other.bottom and other.top <= self.bottom

    def contains_x(self, other: Area) -> bool:
        """True when ``other``'s horizontal range lies inside this one."""
        return self.left <= other.left and other.right <= self.right

    def union(self, other: Area) -> Area:
        return Area(
            min(self.left, other.left),
            min(self.top, other.top),
            max(self.right, other.right),
            max(self.bottom, other.bottom),
        )
