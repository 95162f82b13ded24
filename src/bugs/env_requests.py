"""Deferred mutations emitted during decisions and applied by the environment afterwards."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from pygame.math import Vector2

from .angle import Angle
from .chromosome import Chromosome
from .food import FoodCreateInfo
from .noneg import NoNeg


@dataclass(frozen=True, slots=True)
class Kill:
    id: int


@dataclass(frozen=True, slots=True)
class GiveBirth:
    chromosome: Chromosome
    position: Vector2
    rotation: Angle
    energy_level: NoNeg


@dataclass(frozen=True, slots=True)
class TransferEnergyFromFoodToBug:
    food_id: int
    food_position: Vector2
    bug_id: int
    delta_energy: NoNeg


@dataclass(frozen=True, slots=True)
class PlaceFood:
    info: FoodCreateInfo


EnvironmentRequest = Union[Kill, GiveBirth, TransferEnergyFromFoodToBug, PlaceFood]
