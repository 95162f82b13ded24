"""Fixed 16-8-8 perceptron network driven by the first 208 genes of a chromosome."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .angle import TAU, Angle, DeltaAngle
from .color import Color
from .math2d import clamp, fit_into_range, safe_ratio
from .noneg import NoNeg

INPUT_SIZE = 16
HIDDEN_SIZE = 8
OUTPUT_SIZE = 8

_LAYER_0_WEIGHTS = INPUT_SIZE * HIDDEN_SIZE
_LAYER_1_WEIGHTS = HIDDEN_SIZE * OUTPUT_SIZE
BRAIN_GENE_COUNT = _LAYER_0_WEIGHTS + _LAYER_1_WEIGHTS + HIDDEN_SIZE + OUTPUT_SIZE

MAX_VELOCITY = 10.0
MAX_BABY_CHARGING_RATE = 10.0
MAX_RELATIVE_RADIUS = 64.0


def activation(x: float) -> float:
    return x / (1.0 + abs(x))


def delta_angle_to_activation(delta: DeltaAngle) -> float:
    return fit_into_range(delta.radians, (-TAU, TAU), (-1.0, 1.0))


def activation_to_delta_angle(value: float) -> DeltaAngle:
    return DeltaAngle(fit_into_range(value, (-1.0, 1.0), (-TAU, TAU)))


def relative_radius_to_activation(value: float) -> float:
    return fit_into_range(value, (0.0, MAX_RELATIVE_RADIUS), (0.0, 1.0))


@dataclass(frozen=True, slots=True)
class FoodInfo:
    dst: NoNeg
    direction: Angle
    relative_radius: NoNeg


@dataclass(frozen=True, slots=True)
class BugInfo:
    dst: NoNeg
    direction: Angle
    color: Color
    relative_radius: NoNeg


@dataclass(frozen=True, slots=True)
class Input:
    energy_level: NoNeg
    energy_capacity: NoNeg
    rotation: Angle
    proximity_to_food: Optional[FoodInfo]
    proximity_to_bug: Optional[BugInfo]
    age: NoNeg
    vision_range: NoNeg
    baby_charge_level: NoNeg
    baby_charge_capacity: NoNeg

    def activations(self) -> List[float]:
        vision = self.vision_range.unwrap()

        food = self.proximity_to_food
        if food is None:
            food_dst, food_direction, food_radius = 1.0, 0.0, 1.0
        else:
            food_dst = safe_ratio(food.dst.unwrap(), vision, 1.0)
            food_direction = delta_angle_to_activation(food.direction.signed_distance(self.rotation))
            food_radius = relative_radius_to_activation(food.relative_radius.unwrap())

        bug = self.proximity_to_bug
        if bug is None:
            bug_dst, bug_direction, bug_radius = 1.0, 0.0, 1.0
            color = Color.transparent()
        else:
            bug_dst = safe_ratio(bug.dst.unwrap(), vision, 1.0)
            bug_direction = delta_angle_to_activation(bug.direction.signed_distance(self.rotation))
            bug_radius = relative_radius_to_activation(bug.relative_radius.unwrap())
            color = bug.color

        values = [
            safe_ratio(self.energy_level.unwrap(), self.energy_capacity.unwrap(), 0.0),
            food_dst,
            food_direction,
            food_radius,
            self.age.unwrap(),
            bug_dst,
            bug_direction,
            color.a,
            color.r,
            color.g,
            color.b,
            bug_radius,
            safe_ratio(self.baby_charge_level.unwrap(), self.baby_charge_capacity.unwrap(), 0.0),
            0.0,
            0.0,
            0.0,
        ]
        return [clamp(value, -1.0, 1.0) for value in values]


@dataclass(frozen=True, slots=True)
class Output:
    velocity: float
    relative_desired_rotation: DeltaAngle
    rotation_velocity: DeltaAngle
    baby_charging_rate: NoNeg

    @classmethod
    def from_activations(cls, values: Sequence[float]) -> "Output":
        return cls(
            velocity=clamp(values[0], -1.0, 1.0) * MAX_VELOCITY,
            relative_desired_rotation=activation_to_delta_angle(values[1]),
            rotation_velocity=DeltaAngle(fit_into_range(abs(values[2]), (0.0, 1.0), (0.0, TAU))),
            baby_charging_rate=NoNeg(fit_into_range(abs(values[3]), (0.0, 1.0), (0.0, MAX_BABY_CHARGING_RATE))),
        )


@dataclass(frozen=True, slots=True)
class VerboseOutput:
    output: Output
    activations: Tuple[Tuple[float, ...], Tuple[float, ...], Tuple[float, ...]]


class Brain:
    """Pure function from ``Input`` to ``Output``; weights never change after construction."""

    __slots__ = ("_layers",)

    def __init__(self, genes: Sequence[float]) -> None:
        if len(genes) != BRAIN_GENE_COUNT:
            raise ValueError(f"brain needs {BRAIN_GENE_COUNT} genes, got {len(genes)}")
        weights_0 = genes[:_LAYER_0_WEIGHTS]
        weights_1 = genes[_LAYER_0_WEIGHTS:_LAYER_0_WEIGHTS + _LAYER_1_WEIGHTS]
        biases_0 = genes[_LAYER_0_WEIGHTS + _LAYER_1_WEIGHTS:BRAIN_GENE_COUNT - OUTPUT_SIZE]
        biases_1 = genes[BRAIN_GENE_COUNT - OUTPUT_SIZE:]
        self._layers: Tuple[Tuple[Tuple[Tuple[float, ...], float], ...], ...] = (
            tuple(
                (tuple(weights_0[n * INPUT_SIZE:(n + 1) * INPUT_SIZE]), biases_0[n]) for n in range(HIDDEN_SIZE)
            ),
            tuple(
                (tuple(weights_1[n * HIDDEN_SIZE:(n + 1) * HIDDEN_SIZE]), biases_1[n]) for n in range(OUTPUT_SIZE)
            ),
        )

    def evaluate(self, brain_input: Input) -> Output:
        return self.evaluate_verbosely(brain_input).output

    def evaluate_verbosely(self, brain_input: Input) -> VerboseOutput:
        values = brain_input.activations()
        trace = [tuple(values)]
        for layer in self._layers:
            values = [activation(math.fsum(w * x for w, x in zip(weights, values)) + bias) for weights, bias in layer]
            trace.append(tuple(values))
        return VerboseOutput(Output.from_activations(values), (trace[0], trace[1], trace[2]))

