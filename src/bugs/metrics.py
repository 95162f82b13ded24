from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    iteration: int
    population: int
    food: int
    births: int
    deaths: int
    food_spawned: int
    food_consumed: int
    rebucketed: int
    tick_duration_ms: float = 0.0
