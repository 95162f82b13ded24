from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Generic, Iterable, Iterator, List, Optional, Set, Tuple, TypeVar

from pygame.math import Vector2

from .angle import Angle
from .brain import BRAIN_GENE_COUNT
from .bug import CHROMOSOME_LENGTH, Bug, in_vision_arc
from .chromosome import Chromosome
from .chunk import DEFAULT_CHUNK_SIZE, ChunkedVec, ChunkIndex
from .env_requests import GiveBirth, Kill, PlaceFood, TransferEnergyFromFoodToBug
from .food import Food, FoodCreateInfo
from .food_source import FoodSource, FoodSourceCreateInfo
from .ids import IdAllocator
from .metrics import TickMetrics
from .noneg import NoNeg
from .rect import Rect
from .rng import DeterministicRng
from .time_point import StaticTimePoint

logger = logging.getLogger(__name__)

T = TypeVar("T")

FOUNDER_ENERGY = 50.0
MAX_PLACED_FOOD_ENERGY = 8.0
IRRADIATION_DELTA_RANGE = (0.001, 1.0)


class InvariantViolation(RuntimeError):
    """The tick resolution found the environment in a state it can never legally reach."""


def founder_chromosome() -> Chromosome:
    """Genes of the default starting bug: it walks forward and slowly charges a baby."""
    genes = [0.0] * BRAIN_GENE_COUNT + [1.0] * (CHROMOSOME_LENGTH - BRAIN_GENE_COUNT)
    genes[0] = 1.0
    genes[128] = 2.0
    genes[152] = 0.5
    return Chromosome(genes)


@dataclass(slots=True)
class BugCreateInfo:
    chromosome: Chromosome
    position: Vector2
    rotation: Angle


class Environment(Generic[T]):
    def __init__(
        self,
        now: T,
        food: Iterable[FoodCreateInfo] = (),
        food_sources: Iterable[FoodSourceCreateInfo] = (),
        bugs: Iterable[BugCreateInfo] = (),
        chunk_size: float = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._creation_time = now
        self._now = now
        self._iteration = 0
        self._food_ids = IdAllocator()
        self._bug_ids = IdAllocator()
        self._food: ChunkedVec[Food] = ChunkedVec(chunk_size)
        self._bugs: ChunkedVec[Bug[T]] = ChunkedVec(chunk_size)
        self._food_sources: List[FoodSource[T]] = [info.create(now) for info in food_sources]
        self._consumed_food_ids: Set[int] = set()

        for info in food:
            self._place_food(info)
        for info in bugs:
            self._bugs.push(
                Bug.give_birth_with_max_energy(self._bug_ids, info.chromosome, info.position, info.rotation, now)
            )

    @classmethod
    def generate(
        cls,
        now: T,
        rng: DeterministicRng,
        food_sources: Iterable[FoodSourceCreateInfo],
        x_range: Tuple[float, float],
        y_range: Tuple[float, float],
        food_energy_range: Tuple[float, float],
        food_count: int,
        bug_position: Vector2,
    ) -> "Environment[T]":
        food = FoodCreateInfo.generate_vec(rng, x_range, y_range, food_energy_range, food_count)
        environment = cls(now, food, food_sources)
        environment._bugs.push(
            Bug.give_birth(
                environment._bug_ids,
                founder_chromosome(),
                Vector2(bug_position),
                Angle(rng.next_angle()),
                NoNeg(FOUNDER_ENERGY),
                now,
            )
        )
        return environment

    @property
    def now(self) -> T:
        return self._now

    @property
    def creation_time(self) -> T:
        return self._creation_time

    @property
    def iteration(self) -> int:
        return self._iteration

    @property
    def next_food_id(self) -> int:
        return self._food_ids.peek

    @property
    def next_bug_id(self) -> int:
        return self._bug_ids.peek

    @property
    def food_index(self) -> ChunkedVec[Food]:
        return self._food

    @property
    def bug_index(self) -> ChunkedVec[Bug[T]]:
        return self._bugs

    @property
    def food_count(self) -> int:
        return len(self._food)

    @property
    def bugs_count(self) -> int:
        return len(self._bugs)

    def food(self) -> Iterator[Food]:
        return iter(self._food)

    def bugs(self) -> Iterator[Bug[T]]:
        return iter(self._bugs)

    def food_sources(self) -> Iterator[FoodSource[T]]:
        return iter(self._food_sources)

    def food_chunks(self) -> Iterator[Tuple[ChunkIndex, List[Food]]]:
        return self._food.chunks()

    def bug_chunks(self) -> Iterator[Tuple[ChunkIndex, List[Bug[T]]]]:
        return self._bugs.chunks()

    def food_chunks_in_area(self, area: Rect) -> Iterator[Tuple[ChunkIndex, List[Food]]]:
        return self._food.chunks_in_area(area)

    def bug_chunks_in_area(self, area: Rect) -> Iterator[Tuple[ChunkIndex, List[Bug[T]]]]:
        return self._bugs.chunks_in_area(area)

    def find_bug_by_id(self, bug_id: int) -> Optional[Bug[T]]:
        index = self._bugs.index_of(lambda bug: bug.id == bug_id)
        if index is None:
            return None
        return self._bugs[index]

    def find_nearest_food_in_vision_arc(
        self,
        position: Vector2,
        vision_range: NoNeg,
        rotation: Angle,
        half_arc: float,
    ) -> Optional[Tuple[Food, NoNeg]]:
        def visible(food: Food) -> Optional[Food]:
            return food if in_vision_arc(position, rotation, half_arc, food.position) else None

        return self._food.find_nearest_filter_map(position, vision_range, visible)

    def find_nearest_bug_in_vision_arc(
        self,
        position: Vector2,
        vision_range: NoNeg,
        rotation: Angle,
        half_arc: float,
        exclude_id: Optional[int] = None,
    ) -> Optional[Tuple[Bug[T], NoNeg]]:
        def visible(bug: Bug[T]) -> Optional[Bug[T]]:
            if bug.id == exclude_id:
                return None
            return bug if in_vision_arc(position, rotation, half_arc, bug.position) else None

        return self._bugs.find_nearest_filter_map(position, vision_range, visible)

    def proceed(self, dt: float, rng: DeterministicRng) -> TickMetrics:
        """Advance one tick: clock, food sources, decisions, requests, re-bucketing."""
        started = time.perf_counter()
        self._now = self._now + dt

        food_spawned = 0
        for source in self._food_sources:
            for request in source.proceed(self._now, rng):
                self._place_food(request.info)
                food_spawned += 1

        # bugs born during this tick only act from the next one
        decisions = [(bug, bug.decide(self, dt, rng)) for bug in list(self._bugs)]

        births = 0
        deaths = 0
        food_consumed = 0
        self._consumed_food_ids.clear()
        for bug, decision in decisions:
            bug.apply(decision)
            for request in decision.requests:
                if isinstance(request, Kill):
                    self._kill(request.id, decision.origin)
                    deaths += 1
                elif isinstance(request, GiveBirth):
                    births += self._give_birth(request)
                elif isinstance(request, TransferEnergyFromFoodToBug):
                    if self.transfer_energy_from_food_to_bug(
                        request.food_id, request.food_position, bug, request.delta_energy
                    ):
                        food_consumed += 1
                elif isinstance(request, PlaceFood):
                    self._place_food(request.info)
                    food_spawned += 1
                else:
                    raise TypeError(f"unknown environment request: {request!r}")

        rebucketed = self._bugs.shuffle()
        self._iteration += 1

        return TickMetrics(
            iteration=self._iteration,
            population=len(self._bugs),
            food=len(self._food),
            births=births,
            deaths=deaths,
            food_spawned=food_spawned,
            food_consumed=food_consumed,
            rebucketed=rebucketed,
            tick_duration_ms=(time.perf_counter() - started) * 1000.0,
        )

    def transfer_energy_from_food_to_bug(
        self, food_id: int, food_position: Vector2, bug: Bug[T], delta: NoNeg
    ) -> bool:
        """Let ``bug`` eat from a food item. True if the food was used up and removed."""
        index = self._food.index_of_in_range(lambda food: food.id == food_id, food_position, NoNeg.zero())
        if index is None:
            if food_id in self._consumed_food_ids:
                return False
            logger.error("food %d requested by bug %d is missing", food_id, bug.id)
            raise InvariantViolation(f"food {food_id} requested by bug {bug.id} is missing")
        if bug.eat(self._food[index], delta):
            self._food.remove(index)
            self._consumed_food_ids.add(food_id)
            logger.debug("food %d consumed by bug %d", food_id, bug.id)
            return True
        return False

    def add_food(self, position: Vector2, rng: DeterministicRng) -> Food:
        energy = NoNeg(rng.next_range(0.0, MAX_PLACED_FOOD_ENERGY))
        return self._place_food(FoodCreateInfo(Vector2(position), energy))

    def add_bug(self, position: Vector2, rng: DeterministicRng) -> Bug[T]:
        bug = Bug.give_birth_with_max_energy(
            self._bug_ids, founder_chromosome(), Vector2(position), Angle(rng.next_angle()), self._now
        )
        self._bugs.push(bug)
        return bug

    def irradiate_area(self, center: Vector2, radius: NoNeg, rng: DeterministicRng) -> int:
        """Mutate the chromosome of every bug strictly within ``radius`` of ``center``."""
        irradiated = 0
        for bug in self._bugs:
            if center.distance_to(bug.position) < radius.unwrap():
                bug.irradiate(IRRADIATION_DELTA_RANGE, rng)
                irradiated += 1
        logger.info("irradiated %d bugs around (%.1f, %.1f)", irradiated, center.x, center.y)
        return irradiated

    def collect_unused_chunks(self) -> None:
        self._food.collect_unused_chunks()
        self._bugs.collect_unused_chunks()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "creation_time": self._creation_time.to_json(),
            "now": self._now.to_json(),
            "iteration": self._iteration,
            "next_food_id": self._food_ids.peek,
            "next_bug_id": self._bug_ids.peek,
            "food": self._food.to_dict(Food.to_dict),
            "food_sources": [source.to_dict() for source in self._food_sources],
            "bugs": self._bugs.to_dict(Bug.to_dict),
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], time_point_type: Any = StaticTimePoint) -> "Environment[T]":
        environment = cls(time_point_type.from_json(raw["creation_time"]))
        environment._now = time_point_type.from_json(raw["now"])
        environment._iteration = int(raw["iteration"])
        environment._food_ids = IdAllocator(int(raw["next_food_id"]))
        environment._bug_ids = IdAllocator(int(raw["next_bug_id"]))
        environment._food = ChunkedVec.from_dict(raw["food"], Food.from_dict)
        environment._food_sources = [
            FoodSource.from_dict(source, time_point_type) for source in raw.get("food_sources", [])
        ]
        environment._bugs = ChunkedVec.from_dict(raw["bugs"], lambda bug: Bug.from_dict(bug, time_point_type))
        return environment

    def _place_food(self, info: FoodCreateInfo) -> Food:
        food = Food.create(self._food_ids, info)
        self._food.push(food)
        return food

    def _kill(self, bug_id: int, origin: Vector2) -> None:
        removed = self._bugs.remove_first_at(origin, lambda bug: bug.id == bug_id)
        if removed is None:
            logger.error("bug %d scheduled for death is missing", bug_id)
            raise InvariantViolation(f"bug {bug_id} scheduled for death is missing")
        logger.debug("bug %d died at iteration %d", bug_id, self._iteration)

    def _give_birth(self, request: GiveBirth) -> int:
        offspring = Bug.give_birth_to_twins(
            self._bug_ids, request.chromosome, request.position, request.rotation, request.energy_level, self._now
        )
        for bug in offspring:
            self._bugs.push(bug)
        logger.debug("%d bugs born at iteration %d", len(offspring), self._iteration)
        return len(offspring)


class SeededEnvironment(Generic[T]):
    """An environment bundled with the generator that drives it."""

    def __init__(self, environment: Environment[T], rng: DeterministicRng) -> None:
        self._environment = environment
        self._rng = rng

    @classmethod
    def generate(
        cls,
        now: T,
        seed: int,
        food_sources: Iterable[FoodSourceCreateInfo],
        x_range: Tuple[float, float],
        y_range: Tuple[float, float],
        food_energy_range: Tuple[float, float],
        food_count: int,
        bug_position: Vector2,
    ) -> "SeededEnvironment[T]":
        rng = DeterministicRng(seed)
        environment = Environment.generate(
            now, rng, food_sources, x_range, y_range, food_energy_range, food_count, bug_position
        )
        return cls(environment, rng)

    @property
    def environment(self) -> Environment[T]:
        return self._environment

    @property
    def rng(self) -> DeterministicRng:
        return self._rng

    def proceed(self, dt: float) -> TickMetrics:
        return self._environment.proceed(dt, self._rng)

    def add_food(self, position: Vector2) -> Food:
        return self._environment.add_food(position, self._rng)

    def add_bug(self, position: Vector2) -> Bug[T]:
        return self._environment.add_bug(position, self._rng)

    def irradiate_area(self, center: Vector2, radius: NoNeg) -> int:
        return self._environment.irradiate_area(center, radius, self._rng)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._environment, name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "environment": self._environment.to_dict(),
            "rng": {"seed": self._rng.seed, "state": self._rng.get_state()},
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], time_point_type: Any = StaticTimePoint) -> "SeededEnvironment[T]":
        rng = DeterministicRng(raw["rng"]["seed"])
        rng.set_state(raw["rng"]["state"])
        return cls(Environment.from_dict(raw["environment"], time_point_type), rng)
