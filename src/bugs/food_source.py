from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Tuple, TypeVar, Union

from pygame.math import Vector2

from .env_requests import PlaceFood
from .food import FoodCreateInfo
from .noneg import NoNeg
from .rect import Rect
from .rng import DeterministicRng

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RectShape:
    size: Tuple[float, float]

    def sample(self, center: Vector2, rng: DeterministicRng) -> Vector2:
        area = Rect.from_center(center, self.size)
        x = rng.next_range(area.left, area.right)
        y = rng.next_range(area.top, area.bottom)
        return Vector2(x, y)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "rect", "size": list(self.size)}


@dataclass(frozen=True, slots=True)
class CircleShape:
    radius: NoNeg

    def sample(self, center: Vector2, rng: DeterministicRng) -> Vector2:
        # uniform in radius and angle, so spawns cluster towards the center
        distance = rng.next_range(0.0, self.radius.unwrap())
        angle = rng.next_range(0.0, 2 * math.pi)
        return Vector2(center.x + distance * math.cos(angle), center.y + distance * math.sin(angle))

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "circle", "radius": self.radius.unwrap()}


FoodSourceShape = Union[RectShape, CircleShape]


def shape_from_dict(raw: Dict[str, Any]) -> FoodSourceShape:
    kind = raw.get("type")
    if kind == "rect":
        width, height = raw["size"]
        return RectShape((float(width), float(height)))
    if kind == "circle":
        return CircleShape(NoNeg(raw["radius"]))
    raise ValueError(f"unknown food source shape: {kind!r}")


@dataclass(slots=True)
class FoodSourceCreateInfo:
    position: Vector2
    shape: FoodSourceShape
    energy_range: Tuple[float, float]
    spawn_interval: float

    def create(self, now: T) -> "FoodSource[T]":
        return FoodSource(Vector2(self.position), self.shape, self.energy_range, self.spawn_interval, now)


class FoodSource(Generic[T]):
    """Stationary emitter that places one food item per elapsed ``spawn_interval``."""

    __slots__ = ("position", "shape", "energy_range", "spawn_interval", "last_food_creation_instant")

    def __init__(
        self,
        position: Vector2,
        shape: FoodSourceShape,
        energy_range: Tuple[float, float],
        spawn_interval: float,
        last_food_creation_instant: T,
    ) -> None:
        if not spawn_interval > 0:
            raise ValueError(f"spawn interval must be positive, got {spawn_interval!r}")
        low, high = energy_range
        if low < 0 or high < low:
            raise ValueError(f"invalid food energy range {energy_range!r}")
        self.position = position
        self.shape = shape
        self.energy_range = (float(low), float(high))
        self.spawn_interval = float(spawn_interval)
        self.last_food_creation_instant = last_food_creation_instant

    def proceed(self, now: T, rng: DeterministicRng) -> List[PlaceFood]:
        elapsed = now.duration_since(self.last_food_creation_instant)
        count = math.floor(elapsed / self.spawn_interval)
        if count <= 0:
            return []
        requests = []
        for _ in range(count):
            position = self.shape.sample(self.position, rng)
            energy = NoNeg(rng.next_range(*self.energy_range))
            requests.append(PlaceFood(FoodCreateInfo(position, energy)))
        # last + interval * count, measured back from now so it can never pass now
        remainder = max(elapsed - self.spawn_interval * count, 0.0)
        self.last_food_creation_instant = now - remainder
        return requests

    def to_dict(self) -> Dict[str, Any]:
        return {
            "position": [self.position.x, self.position.y],
            "shape": self.shape.to_dict(),
            "energy_range": list(self.energy_range),
            "spawn_interval": self.spawn_interval,
            "last_food_creation_instant": self.last_food_creation_instant.to_json(),
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], time_point_type: Any) -> "FoodSource[T]":
        x, y = raw["position"]
        low, high = raw["energy_range"]
        return cls(
            Vector2(x, y),
            shape_from_dict(raw["shape"]),
            (low, high),
            raw["spawn_interval"],
            time_point_type.from_json(raw["last_food_creation_instant"]),
        )
