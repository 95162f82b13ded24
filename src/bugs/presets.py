from __future__ import annotations

from typing import Callable, Dict, List, TypeVar

from pygame.math import Vector2

from .angle import Angle
from .bug import CHROMOSOME_LENGTH
from .chromosome import Chromosome
from .config import FoodSourceConfig, SimulationConfig
from .environment import BugCreateInfo, Environment, SeededEnvironment
from .food import FoodCreateInfo
from .food_source import CircleShape, FoodSourceCreateInfo, RectShape
from .noneg import NoNeg
from .rng import DeterministicRng

T = TypeVar("T")


def less_food_further_from_center(now: T, seed: int) -> SeededEnvironment[T]:
    # ring k: side grows with k, energy range 2^k, spawn interval 4^k seconds
    sides = [1000.0, 2000.0, 4000.0, 16000.0, 32000.0, 64000.0]
    sources = [
        FoodSourceCreateInfo(
            position=Vector2(0.0, 0.0),
            shape=RectShape((side, side)),
            energy_range=(0.0, float(2**k)),
            spawn_interval=float(4**k),
        )
        for k, side in enumerate(sides)
    ]
    return SeededEnvironment.generate(
        now, seed, sources, (-1000.0, 1000.0), (-1000.0, 1000.0), (0.0, 1.0), 32768, Vector2(0.0, 0.0)
    )


def one_big_circle(now: T, seed: int) -> SeededEnvironment[T]:
    sources = [
        FoodSourceCreateInfo(
            position=Vector2(0.0, 0.0),
            shape=CircleShape(NoNeg(131072.0)),
            energy_range=(0.0, 128.0),
            spawn_interval=5.0,
        )
    ]
    return SeededEnvironment.generate(
        now, seed, sources, (-10000.0, 10000.0), (-10000.0, 10000.0), (0.0, 1.0), 262144, Vector2(0.0, 0.0)
    )


def limited_resources(now: T, seed: int) -> SeededEnvironment[T]:
    """Small closed world: 512 food, no sources and one bug with random genes."""
    rng = DeterministicRng(seed)
    food = FoodCreateInfo.generate_vec(rng, (-50.0, 50.0), (-50.0, 50.0), (0.0, 1.0), 512)
    bug = BugCreateInfo(
        chromosome=Chromosome.new_random(CHROMOSOME_LENGTH, (-1.0, 1.0), rng),
        position=Vector2(0.0, 0.0),
        rotation=Angle(rng.next_angle()),
    )
    return SeededEnvironment(Environment(now, food, [], [bug]), rng)


def food_source_from_config(config: FoodSourceConfig) -> FoodSourceCreateInfo:
    if config.shape == "rect":
        shape = RectShape(config.size)
    elif config.shape == "circle":
        shape = CircleShape(NoNeg(config.radius))
    else:
        raise ValueError(f"unknown food source shape: {config.shape!r}")
    return FoodSourceCreateInfo(
        position=Vector2(config.position),
        shape=shape,
        energy_range=config.energy_range,
        spawn_interval=config.spawn_interval,
    )


def from_config(now: T, config: SimulationConfig) -> SeededEnvironment[T]:
    world = config.world
    return SeededEnvironment.generate(
        now,
        config.seed,
        [food_source_from_config(source) for source in world.food_sources],
        world.x_range,
        world.y_range,
        world.food_energy_range,
        world.food_count,
        Vector2(world.bug_position),
    )


PRESETS: Dict[str, Callable[..., SeededEnvironment]] = {
    "less_food_further_from_center": less_food_further_from_center,
    "one_big_circle": one_big_circle,
    "limited_resources": limited_resources,
}


def preset_names() -> List[str]:
    return sorted([*PRESETS, "custom"])


def build_environment(now: T, config: SimulationConfig) -> SeededEnvironment[T]:
    if config.preset == "custom":
        return from_config(now, config)
    try:
        factory = PRESETS[config.preset]
    except KeyError:
        raise ValueError(f"unknown preset {config.preset!r}, expected one of {preset_names()}") from None
    return factory(now, config.seed)
