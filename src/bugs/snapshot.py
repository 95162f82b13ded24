from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from .bug import Bug
from .chunk import ChunkedVec
from .environment import Environment
from .food import Food
from .metrics import TickMetrics
from .rect import Rect


@dataclass(slots=True)
class SnapshotMetadata:
    iteration: int
    time_seconds: float
    population: int
    food: int
    seed: Optional[int] = None
    config_version: str = "v1"


@dataclass(slots=True)
class EnvironmentSnapshot:
    metadata: SnapshotMetadata
    metrics: Optional[TickMetrics]
    bugs: List[Dict[str, Any]]
    food: List[Dict[str, Any]]
    bug_chunks: List[Dict[str, Any]]
    food_chunks: List[Dict[str, Any]]
    food_sources: List[Dict[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _bug_snapshot(bug: Bug) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": bug.id,
        "x": bug.position.x,
        "y": bug.position.y,
        "rotation": bug.rotation.radians,
        "size": bug.size.unwrap(),
        "color": bug.color.to_dict(),
        "energy_level": bug.energy_level.unwrap(),
        "energy_capacity": bug.energy_capacity.unwrap(),
        "baby_charge_level": bug.baby_charge_level.unwrap(),
        "baby_charge_capacity": bug.baby_charge_capacity.unwrap(),
        "heat_level": bug.heat_level.unwrap(),
        "vision_range": bug.vision_range.unwrap(),
        "vision_half_arc": bug.vision_half_arc,
    }
    log = bug.last_brain_log
    if log is not None:
        payload["brain"] = {
            "activations": [list(layer) for layer in log.activations],
            "velocity": log.output.velocity,
            "relative_desired_rotation": log.output.relative_desired_rotation.radians,
            "rotation_velocity": log.output.rotation_velocity.radians,
            "baby_charging_rate": log.output.baby_charging_rate.unwrap(),
        }
    return payload


def _food_snapshot(food: Food) -> Dict[str, Any]:
    return {"id": food.id, "x": food.position.x, "y": food.position.y, "radius": food.radius}


def _chunk_occupancy(index: ChunkedVec, area: Optional[Rect]) -> List[Dict[str, Any]]:
    chunks = index.chunks() if area is None else index.chunks_in_area(area)
    payload = []
    for chunk_index, items in chunks:
        if not items:
            continue
        x, y = chunk_index.to_raw()
        payload.append({"x": x, "y": y, "quadrant": chunk_index.quadrant.value, "count": len(items)})
    return payload


def take_snapshot(
    environment: Environment,
    metrics: Optional[TickMetrics] = None,
    area: Optional[Rect] = None,
    seed: Optional[int] = None,
    config_version: str = "v1",
) -> EnvironmentSnapshot:
    """Read-only copy of what a renderer needs. ``area`` limits entities to overlapping chunks."""
    if area is None:
        bugs = list(environment.bugs())
        food = list(environment.food())
    else:
        bugs = [bug for _, chunk in environment.bug_chunks_in_area(area) for bug in chunk]
        food = [item for _, chunk in environment.food_chunks_in_area(area) for item in chunk]

    metadata = SnapshotMetadata(
        iteration=environment.iteration,
        time_seconds=environment.now.duration_since(environment.creation_time),
        population=environment.bugs_count,
        food=environment.food_count,
        seed=seed,
        config_version=config_version,
    )
    return EnvironmentSnapshot(
        metadata=metadata,
        metrics=metrics,
        bugs=[_bug_snapshot(bug) for bug in bugs],
        food=[_food_snapshot(item) for item in food],
        bug_chunks=_chunk_occupancy(environment.bug_index, area),
        food_chunks=_chunk_occupancy(environment.food_index, area),
        food_sources=[source.to_dict() for source in environment.food_sources()],
    )
