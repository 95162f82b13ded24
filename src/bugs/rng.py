from __future__ import annotations

import math
import random
from typing import Any, List

from pygame.math import Vector2


class DeterministicRng:
    def __init__(self, seed: int):
        self._seed = seed
        self._random = random.Random(seed)

    @property
    def seed(self) -> int:
        return self._seed

    def reset(self) -> None:
        self._random.seed(self._seed)

    def next_float(self) -> float:
        return self._random.random()

    def next_range(self, low: float, high: float) -> float:
        return self._random.uniform(low, high)

    def next_int(self, max_value: int) -> int:
        return self._random.randrange(max_value)

    def next_bool(self, probability: float) -> bool:
        return self._random.random() < probability

    def next_angle(self) -> float:
        return self._random.uniform(0, 2 * math.pi)

    def next_unit_circle(self) -> Vector2:
        angle = self.next_angle()
        return Vector2(math.cos(angle), math.sin(angle))

    def get_state(self) -> List[Any]:
        version, internal, gauss_next = self._random.getstate()
        return [version, list(internal), gauss_next]

    def set_state(self, state: List[Any]) -> None:
        version, internal, gauss_next = state
        self._random.setstate((version, tuple(internal), gauss_next))
