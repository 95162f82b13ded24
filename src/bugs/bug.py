from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Generic, List, Optional, Tuple, TypeVar

from pygame.math import Vector2

from .angle import Angle, DeltaAngle
from .brain import BRAIN_GENE_COUNT, Brain, BugInfo, FoodInfo, Input, Output
from .chromosome import Chromosome
from .color import Color
from .energy import drain_energy, transfer_energy
from .env_requests import EnvironmentRequest, GiveBirth, Kill, TransferEnergyFromFoodToBug
from .food import Food
from .ids import IdAllocator
from .math2d import angle_of, from_polar, safe_ratio, sign
from .noneg import NoNeg, abs_noneg
from .rng import DeterministicRng

if TYPE_CHECKING:
    from .environment import Environment

T = TypeVar("T")

CHROMOSOME_LENGTH = 256
SECONDS_PER_DAY = 86400.0

ENERGY_CAPACITY_PER_SIZE = 100.0
HEAT_CAPACITY_PER_SIZE = 1000.0
EAT_FOOD_MAX_PROXIMITY = 20.0
EAT_RATE_PER_SIZE = 0.1
VISION_RANGE_PER_GENE = 100.0

ROTATION_EPSILON = 0.001
ROTATION_DAMPING = 0.1
ROTATION_COST_PER_SIZE = 0.001
MOVEMENT_COST_PER_SIZE = 0.001
BABY_CHARGING_RATE_SCALE = 0.01
HEAT_RATE_PER_SIZE = 0.001

MUTATION_CHANCE = 0.01
MUTATION_DELTA_RANGE = (0.01, 0.8)


class BugEnergyCapacityExceeded(ValueError):
    def __init__(self, energy_level: NoNeg, energy_capacity: NoNeg) -> None:
        super().__init__(
            f"energy level {energy_level.unwrap()} exceeds energy capacity {energy_capacity.unwrap()}"
        )
        self.energy_level = energy_level
        self.energy_capacity = energy_capacity


def energy_capacity(size: NoNeg) -> NoNeg:
    return NoNeg(size.unwrap() * ENERGY_CAPACITY_PER_SIZE)


def heat_capacity(size: NoNeg) -> NoNeg:
    return NoNeg(size.unwrap() * HEAT_CAPACITY_PER_SIZE)


def baby_charge_capacity(size: NoNeg, capacity_per_size: NoNeg) -> NoNeg:
    return size * capacity_per_size


def in_vision_arc(origin: Vector2, rotation: Angle, half_arc: float, target: Vector2) -> bool:
    if half_arc >= math.pi:
        return True
    direction = angle_of(target - origin)
    return abs(direction.signed_distance(rotation).radians) <= half_arc


@dataclass(frozen=True, slots=True)
class GeneticFeatures:
    """Everything derived from a chromosome. Computed once at birth."""

    brain: Brain
    max_age: float
    size: NoNeg
    baby_charge_capacity_per_size: NoNeg
    vision_range: NoNeg
    vision_half_arc: float
    color: Color

    @classmethod
    def from_chromosome(cls, chromosome: Chromosome) -> "GeneticFeatures":
        if len(chromosome) != CHROMOSOME_LENGTH:
            raise ValueError(f"chromosome needs {CHROMOSOME_LENGTH} genes, got {len(chromosome)}")
        genes = chromosome.genes
        body = genes[BRAIN_GENE_COUNT:]
        return cls(
            brain=Brain(genes[:BRAIN_GENE_COUNT]),
            max_age=abs(body[0]) * abs(body[1]) * SECONDS_PER_DAY,
            size=abs_noneg(body[1]),
            baby_charge_capacity_per_size=abs_noneg(body[2]),
            vision_range=NoNeg(abs(body[3]) * VISION_RANGE_PER_GENE),
            vision_half_arc=min(abs(body[7]), 1.0) * math.pi,
            color=Color(1.0, body[4] % 1.0, body[5] % 1.0, body[6] % 1.0),
        )


@dataclass(frozen=True, slots=True)
class BrainLog:
    input: Input
    output: Output
    activations: Tuple[Tuple[float, ...], Tuple[float, ...], Tuple[float, ...]]


@dataclass(slots=True)
class BugDecision:
    """Outcome of one decision step; nothing in it is applied until the environment says so."""

    bug_id: int
    origin: Vector2
    position: Vector2
    rotation: Angle
    energy_level: NoNeg
    baby_charge_level: NoNeg
    heat_level: NoNeg
    brain_log: Optional[BrainLog]
    requests: List[EnvironmentRequest] = field(default_factory=list)


class Bug(Generic[T]):
    __slots__ = (
        "id",
        "chromosome",
        "features",
        "position",
        "rotation",
        "energy_level",
        "birth_instant",
        "baby_charge_level",
        "heat_level",
        "last_brain_log",
    )

    def __init__(
        self,
        id: int,
        chromosome: Chromosome,
        features: GeneticFeatures,
        position: Vector2,
        rotation: Angle,
        energy_level: NoNeg,
        birth_instant: T,
        baby_charge_level: Optional[NoNeg] = None,
        heat_level: Optional[NoNeg] = None,
    ) -> None:
        self.id = id
        self.chromosome = chromosome
        self.features = features
        self.position = position
        self.rotation = rotation
        self.energy_level = energy_level
        self.birth_instant = birth_instant
        self.baby_charge_level = baby_charge_level if baby_charge_level is not None else NoNeg.zero()
        self.heat_level = heat_level if heat_level is not None else NoNeg.zero()
        self.last_brain_log: Optional[BrainLog] = None

    @classmethod
    def give_birth(
        cls,
        ids: IdAllocator,
        chromosome: Chromosome,
        position: Vector2,
        rotation: Angle,
        energy_level: NoNeg,
        now: T,
    ) -> "Bug[T]":
        features = GeneticFeatures.from_chromosome(chromosome)
        capacity = energy_capacity(features.size)
        if energy_level > capacity:
            raise BugEnergyCapacityExceeded(energy_level, capacity)
        return cls(ids.allocate(), chromosome, features, Vector2(position), rotation, energy_level, now)

    @classmethod
    def give_birth_with_max_energy(
        cls,
        ids: IdAllocator,
        chromosome: Chromosome,
        position: Vector2,
        rotation: Angle,
        now: T,
    ) -> "Bug[T]":
        features = GeneticFeatures.from_chromosome(chromosome)
        return cls(
            ids.allocate(), chromosome, features, Vector2(position), rotation, energy_capacity(features.size), now
        )

    @classmethod
    def give_birth_to_twins(
        cls,
        ids: IdAllocator,
        chromosome: Chromosome,
        position: Vector2,
        rotation: Angle,
        energy_level: NoNeg,
        now: T,
    ) -> List["Bug[T]"]:
        """Split ``energy_level`` into full-capacity offspring plus one carrying the remainder."""
        features = GeneticFeatures.from_chromosome(chromosome)
        capacity = energy_capacity(features.size).unwrap()
        energy = energy_level.unwrap()
        if capacity == 0.0:
            shares = [0.0]
        else:
            full = math.floor(energy / capacity)
            remainder = min(max(energy - capacity * full, 0.0), capacity)
            shares = [capacity] * full + [remainder]
        return [
            cls(
                ids.allocate(),
                Chromosome(list(chromosome.genes)),
                features,
                Vector2(position),
                rotation,
                NoNeg(share),
                now,
            )
            for share in shares
        ]

    @property
    def brain(self) -> Brain:
        return self.features.brain

    @property
    def size(self) -> NoNeg:
        return self.features.size

    @property
    def color(self) -> Color:
        return self.features.color

    @property
    def max_age(self) -> float:
        return self.features.max_age

    @property
    def vision_range(self) -> NoNeg:
        return self.features.vision_range

    @property
    def vision_half_arc(self) -> float:
        return self.features.vision_half_arc

    @property
    def energy_capacity(self) -> NoNeg:
        return energy_capacity(self.features.size)

    @property
    def heat_capacity(self) -> NoNeg:
        return heat_capacity(self.features.size)

    @property
    def baby_charge_capacity(self) -> NoNeg:
        return baby_charge_capacity(self.features.size, self.features.baby_charge_capacity_per_size)

    @property
    def eat_range(self) -> NoNeg:
        return NoNeg(self.features.size.unwrap() * EAT_FOOD_MAX_PROXIMITY)

    def age(self, now: T) -> NoNeg:
        elapsed = now.duration_since(self.birth_instant)
        if self.features.max_age <= 0.0:
            return NoNeg(math.inf)
        return NoNeg(elapsed / self.features.max_age)

    def decide(self, env: "Environment[T]", dt: float, rng: DeterministicRng) -> BugDecision:
        """Perceive, think and act against a read-only environment.

        Own state changes are returned in the decision and cross-entity effects as
        requests; the environment applies both after every bug has decided.
        """
        decision = BugDecision(
            bug_id=self.id,
            origin=Vector2(self.position),
            position=Vector2(self.position),
            rotation=self.rotation,
            energy_level=self.energy_level,
            baby_charge_level=self.baby_charge_level,
            heat_level=self.heat_level,
            brain_log=self.last_brain_log,
        )
        age = self.age(env.now)
        if age > 1.0:
            decision.requests.append(Kill(self.id))
            return decision

        size = self.features.size.unwrap()
        eat_range = self.eat_range.unwrap()

        nearest_food = env.find_nearest_food_in_vision_arc(
            self.position, self.vision_range, self.rotation, self.vision_half_arc
        )
        nearest_bug = env.find_nearest_bug_in_vision_arc(
            self.position, self.vision_range, self.rotation, self.vision_half_arc, exclude_id=self.id
        )

        food_info = None
        if nearest_food is not None:
            food, food_dst = nearest_food
            food_info = FoodInfo(
                dst=food_dst,
                direction=angle_of(food.position - self.position),
                relative_radius=NoNeg(safe_ratio(food.radius, eat_range, math.inf)),
            )
        bug_info = None
        if nearest_bug is not None:
            other, bug_dst = nearest_bug
            bug_info = BugInfo(
                dst=bug_dst,
                direction=angle_of(other.position - self.position),
                color=other.color,
                relative_radius=NoNeg(safe_ratio(other.eat_range.unwrap(), eat_range, math.inf)),
            )

        brain_input = Input(
            energy_level=self.energy_level,
            energy_capacity=self.energy_capacity,
            rotation=self.rotation,
            proximity_to_food=food_info,
            proximity_to_bug=bug_info,
            age=age,
            vision_range=self.vision_range,
            baby_charge_level=self.baby_charge_level,
            baby_charge_capacity=self.baby_charge_capacity,
        )
        verbose = self.features.brain.evaluate_verbosely(brain_input)
        output = verbose.output
        decision.brain_log = BrainLog(brain_input, output, verbose.activations)

        energy = self.energy_level

        rotation = self.rotation
        desired = (rotation + output.relative_desired_rotation).signed_distance(rotation).radians
        if abs(desired) > ROTATION_EPSILON:
            turn = sign(desired) * min(abs(desired), output.rotation_velocity.radians) * ROTATION_DAMPING * dt
            rotation = rotation + DeltaAngle(turn)
            energy = drain_energy(energy, NoNeg(abs(turn) * ROTATION_COST_PER_SIZE * size)).source

        distance = output.velocity * dt
        position = self.position + from_polar(distance, rotation)
        energy = drain_energy(energy, NoNeg(abs(distance) * MOVEMENT_COST_PER_SIZE * size)).source

        charged = transfer_energy(
            energy,
            self.baby_charge_level,
            NoNeg(output.baby_charging_rate.unwrap() * BABY_CHARGING_RATE_SCALE * dt),
            self.baby_charge_capacity,
        )
        energy, baby_charge = charged.source, charged.destination

        heated = transfer_energy(energy, self.heat_level, NoNeg(HEAT_RATE_PER_SIZE * size * dt), self.heat_capacity)
        energy, heat = heated.source, heated.destination

        if nearest_food is not None:
            food, food_dst = nearest_food
            if food_dst.unwrap() < EAT_FOOD_MAX_PROXIMITY * size + food.radius:
                decision.requests.append(
                    TransferEnergyFromFoodToBug(
                        food_id=food.id,
                        food_position=Vector2(food.position),
                        bug_id=self.id,
                        delta_energy=NoNeg(dt * EAT_RATE_PER_SIZE * size),
                    )
                )

        capacity = self.baby_charge_capacity
        if capacity.unwrap() > 0.0 and baby_charge >= capacity:
            decision.requests.append(
                GiveBirth(
                    chromosome=self.chromosome.mutated(MUTATION_DELTA_RANGE, MUTATION_CHANCE, rng),
                    position=Vector2(position),
                    rotation=Angle(rng.next_angle()),
                    energy_level=capacity,
                )
            )
            baby_charge = NoNeg(max(baby_charge - capacity, 0.0))

        if energy == 0.0:
            decision.requests.append(Kill(self.id))

        decision.position = position
        decision.rotation = rotation
        decision.energy_level = energy
        decision.baby_charge_level = baby_charge
        decision.heat_level = heat
        return decision

    def apply(self, decision: BugDecision) -> None:
        if decision.bug_id != self.id:
            raise ValueError(f"decision of bug {decision.bug_id} applied to bug {self.id}")
        self.position = decision.position
        self.rotation = decision.rotation
        self.energy_level = decision.energy_level
        self.baby_charge_level = decision.baby_charge_level
        self.heat_level = decision.heat_level
        self.last_brain_log = decision.brain_log

    def eat(self, food: Food, delta: NoNeg) -> bool:
        """Move up to ``delta`` of ``food``'s energy into this bug. True once the food is empty."""
        outcome = transfer_energy(food.energy, self.energy_level, delta, self.energy_capacity)
        food.energy = outcome.source
        self.energy_level = outcome.destination
        return outcome.completely_drained

    def irradiate(self, delta_range: Tuple[float, float], rng: DeterministicRng) -> None:
        """Mutate every gene and rebuild the features, clamping pools to the new capacities."""
        self.chromosome = self.chromosome.mutated(delta_range, 1.0, rng)
        self.features = GeneticFeatures.from_chromosome(self.chromosome)
        self.energy_level = min(self.energy_level, self.energy_capacity)
        self.heat_level = min(self.heat_level, self.heat_capacity)
        self.baby_charge_level = min(self.baby_charge_level, self.baby_charge_capacity)
        self.last_brain_log = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "chromosome": list(self.chromosome.genes),
            "position": [self.position.x, self.position.y],
            "rotation": self.rotation.raw,
            "energy_level": self.energy_level.unwrap(),
            "birth_instant": self.birth_instant.to_json(),
            "baby_charge_level": self.baby_charge_level.unwrap(),
            "heat_level": self.heat_level.unwrap(),
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], time_point_type: Any) -> "Bug[T]":
        chromosome = Chromosome(raw["chromosome"])
        x, y = raw["position"]
        return cls(
            int(raw["id"]),
            chromosome,
            GeneticFeatures.from_chromosome(chromosome),
            Vector2(x, y),
            Angle(raw["rotation"]),
            NoNeg(raw["energy_level"]),
            time_point_type.from_json(raw["birth_instant"]),
            NoNeg(raw["baby_charge_level"]),
            NoNeg(raw["heat_level"]),
        )

    def __repr__(self) -> str:
        return f"Bug(id={self.id}, position=({self.position.x:.2f}, {self.position.y:.2f}))"
