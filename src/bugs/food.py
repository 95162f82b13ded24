from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from pygame.math import Vector2

from .ids import IdAllocator
from .noneg import NoNeg
from .rng import DeterministicRng


@dataclass(slots=True)
class FoodCreateInfo:
    position: Vector2
    energy: NoNeg

    @classmethod
    def generate_vec(
        cls,
        rng: DeterministicRng,
        x_range: Tuple[float, float],
        y_range: Tuple[float, float],
        energy_range: Tuple[float, float],
        count: int,
    ) -> List["FoodCreateInfo"]:
        infos = []
        for _ in range(count):
            x = rng.next_range(*x_range)
            y = rng.next_range(*y_range)
            energy = rng.next_range(*energy_range)
            infos.append(cls(Vector2(x, y), NoNeg(energy)))
        return infos


@dataclass(slots=True)
class Food:
    id: int
    position: Vector2
    energy: NoNeg

    @classmethod
    def create(cls, ids: IdAllocator, info: FoodCreateInfo) -> "Food":
        return cls(ids.allocate(), Vector2(info.position), info.energy)

    @staticmethod
    def radius_for(energy: NoNeg) -> float:
        return math.sqrt(energy.unwrap() / math.pi) * 10.0

    @property
    def radius(self) -> float:
        return Food.radius_for(self.energy)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "position": [self.position.x, self.position.y], "energy": self.energy.unwrap()}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Food":
        x, y = raw["position"]
        return cls(int(raw["id"]), Vector2(x, y), NoNeg(raw["energy"]))
