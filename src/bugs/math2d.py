from __future__ import annotations

import math
from typing import Tuple

from pygame.math import Vector2

from .angle import Angle


def from_polar(length: float, angle: Angle) -> Vector2:
    radians = angle.raw
    return Vector2(length * math.cos(radians), length * math.sin(radians))


def angle_of(vector: Vector2) -> Angle:
    return Angle(math.atan2(vector.y, vector.x))


def sign(value: float) -> float:
    if value > 0.0:
        return 1.0
    if value < 0.0:
        return -1.0
    return 0.0


def clamp(value: float, low: float, high: float) -> float:
    if value < low:
        return low
    if value > high:
        return high
    return value


def fit_into_range(value: float, source: Tuple[float, float], target: Tuple[float, float]) -> float:
    """Linearly map ``value`` from ``source`` onto ``target``, clamping at the ends."""
    src_low, src_high = source
    dst_low, dst_high = target
    if src_high == src_low:
        return dst_low
    t = (clamp(value, min(src_low, src_high), max(src_low, src_high)) - src_low) / (src_high - src_low)
    return dst_low + t * (dst_high - dst_low)


def safe_ratio(numerator: float, denominator: float, default: float = 0.0) -> float:
    if denominator == 0.0:
        return default
    return numerator / denominator
