from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple

from pygame.math import Vector2


@dataclass(frozen=True, slots=True)
class Rect:
    """Axis-aligned rectangle; ``y`` grows towards ``bottom``."""

    x: float
    y: float
    w: float
    h: float

    @classmethod
    def from_lrtb(cls, left: float, right: float, top: float, bottom: float) -> "Rect":
        return cls(left, top, right - left, bottom - top)

    @classmethod
    def from_center(cls, center: Vector2, size: Tuple[float, float]) -> "Rect":
        w, h = size
        return cls(center.x - w / 2, center.y - h / 2, w, h)

    @classmethod
    def bounding(cls, points: Iterable[Vector2]) -> "Rect":
        xs = []
        ys = []
        for point in points:
            xs.append(point.x)
            ys.append(point.y)
        if not xs:
            raise ValueError("cannot bound an empty set of points")
        return cls.from_lrtb(min(xs), max(xs), min(ys), max(ys))

    @property
    def left(self) -> float:
        return self.x

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def top(self) -> float:
        return self.y

    @property
    def bottom(self) -> float:
        return self.y + self.h

    @property
    def center(self) -> Vector2:
        return Vector2(self.x + self.w / 2, self.y + self.h / 2)

    @property
    def x_range(self) -> Tuple[float, float]:
        return (self.left, self.right)

    @property
    def y_range(self) -> Tuple[float, float]:
        return (self.top, self.bottom)

    def contains_point(self, point: Vector2) -> bool:
        return self.left <= point.x < self.right and self.top <= point.y < self.bottom

    def contains(self, other: "Rect") -> bool:
        return (
            self.left <= other.left
            and other.right <= self.right
            and self.top <= other.top
            and other.bottom <= self.bottom
        )

    def intersects(self, other: "Rect") -> bool:
        return (
            self.left < other.right
            and other.left < self.right
            and self.top < other.bottom
            and other.top < self.bottom
        )

    def intersects_circle(self, center: Vector2, radius: float) -> bool:
        # distance from the circle center to the closest point of the rectangle
        dx = max(self.left - center.x, 0.0, center.x - self.right)
        dy = max(self.top - center.y, 0.0, center.y - self.bottom)
        return dx * dx + dy * dy <= radius * radius
