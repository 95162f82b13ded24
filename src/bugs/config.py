from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

import yaml


@dataclass
class FoodSourceConfig:
    position: tuple[float, float] = (0.0, 0.0)
    shape: str = "rect"
    size: tuple[float, float] = (1000.0, 1000.0)
    radius: float = 0.0
    energy_range: tuple[float, float] = (0.0, 1.0)
    spawn_interval: float = 1.0


@dataclass
class WorldConfig:
    x_range: tuple[float, float] = (-1000.0, 1000.0)
    y_range: tuple[float, float] = (-1000.0, 1000.0)
    food_energy_range: tuple[float, float] = (0.0, 1.0)
    food_count: int = 512
    bug_position: tuple[float, float] = (0.0, 0.0)
    food_sources: List[FoodSourceConfig] = field(default_factory=list)


@dataclass
class SimulationConfig:
    time_step: float = 1.0 / 30.0
    seed: int = 42
    preset: str = "less_food_further_from_center"
    log_interval_seconds: float = 5.0
    save_interval_seconds: float = 300.0
    collect_chunks_interval: int = 1000
    broadcast_interval: int = 2
    config_version: str = "v1"
    world: WorldConfig = field(default_factory=WorldConfig)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text())
        return load_config(data or {})


def load_config(raw: dict) -> SimulationConfig:
    def _pair(value: tuple[float, float] | list[float] | None, default: tuple[float, float]) -> tuple[float, float]:
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return (float(value[0]), float(value[1]))
        return default

    default_source = FoodSourceConfig()
    sources = []
    for source_raw in raw.get("world", {}).get("food_sources", []):
        values = {k: v for k, v in source_raw.items() if k not in {"position", "size", "energy_range"}}
        sources.append(
            FoodSourceConfig(
                position=_pair(source_raw.get("position"), default_source.position),
                size=_pair(source_raw.get("size"), default_source.size),
                energy_range=_pair(source_raw.get("energy_range"), default_source.energy_range),
                **values,
            )
        )

    default_world = WorldConfig()
    world_raw = raw.get("world", {})
    pairs = {"x_range", "y_range", "food_energy_range", "bug_position"}
    world = WorldConfig(
        x_range=_pair(world_raw.get("x_range"), default_world.x_range),
        y_range=_pair(world_raw.get("y_range"), default_world.y_range),
        food_energy_range=_pair(world_raw.get("food_energy_range"), default_world.food_energy_range),
        bug_position=_pair(world_raw.get("bug_position"), default_world.bug_position),
        food_sources=sources,
        **{k: v for k, v in world_raw.items() if k not in pairs | {"food_sources"}},
    )
    sim_values = {k: v for k, v in raw.items() if k != "world"}
    return SimulationConfig(world=world, **sim_values)
