from __future__ import annotations

from pygame.math import Vector2

from bugs.angle import Angle
from bugs.environment import BugCreateInfo, Environment, founder_chromosome
from bugs.food import FoodCreateInfo
from bugs.noneg import NoNeg
from bugs.rect import Rect
from bugs.rng import DeterministicRng
from bugs.snapshot import take_snapshot
from bugs.time_point import StaticTimePoint


def _environment():
    food = [FoodCreateInfo(Vector2(x, 10.0), NoNeg(1.0)) for x in (10.0, 300.0, -700.0)]
    bugs = [BugCreateInfo(founder_chromosome(), Vector2(x, 0.0), Angle(0.0)) for x in (5.0, 2000.0)]
    return Environment(StaticTimePoint(), food=food, bugs=bugs)


def test_snapshot_contains_everything_without_area():
    environment = _environment()
    metrics = environment.proceed(1.0 / 30.0, DeterministicRng(0))

    snapshot = take_snapshot(environment, metrics=metrics, seed=7)

    assert snapshot.metadata.iteration == 1
    assert snapshot.metadata.population == 2
    assert snapshot.metadata.seed == 7
    assert len(snapshot.bugs) == 2
    assert len(snapshot.food) == 3
    assert sum(chunk["count"] for chunk in snapshot.food_chunks) == 3
    payload = snapshot.bugs[0]
    for key in ["id", "x", "y", "rotation", "size", "color", "energy_level", "vision_range"]:
        assert key in payload
    assert "activations" in payload["brain"]


def test_snapshot_area_limits_entities_to_overlapping_chunks():
    environment = _environment()
    snapshot = take_snapshot(environment, area=Rect.from_lrtb(0.0, 100.0, 0.0, 100.0))
    assert [bug["id"] for bug in snapshot.bugs] == [0]
    assert len(snapshot.food) == 1
    assert snapshot.food_chunks == [{"x": 0, "y": 0, "quadrant": "from_top_left", "count": 1}]
    assert snapshot.metadata.food == 3
