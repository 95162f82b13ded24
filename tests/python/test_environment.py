from __future__ import annotations

import json

import pytest
from pygame.math import Vector2
from pytest import approx

from bugs.angle import Angle
from bugs.brain import BRAIN_GENE_COUNT
from bugs.config import FoodSourceConfig, SimulationConfig, WorldConfig
from bugs.environment import (
    FOUNDER_ENERGY,
    BugCreateInfo,
    Environment,
    InvariantViolation,
    SeededEnvironment,
    founder_chromosome,
)
from bugs.food import FoodCreateInfo
from bugs.food_source import FoodSourceCreateInfo, RectShape
from bugs.noneg import NoNeg
from bugs.persistence import dumps, loads
from bugs.presets import from_config, limited_resources
from bugs.rng import DeterministicRng
from bugs.time_point import StaticTimePoint

DT = 1.0 / 30.0


def _world(bug_positions=((0.0, 0.0),), food=(), chromosome=None):
    chromosome = chromosome or founder_chromosome()
    bugs = [BugCreateInfo(chromosome, Vector2(pos), Angle(0.0)) for pos in bug_positions]
    return Environment(StaticTimePoint(), food=food, bugs=bugs)


def _small_config(seed=5):
    world = WorldConfig(
        x_range=(-200.0, 200.0),
        y_range=(-200.0, 200.0),
        food_count=128,
        food_sources=[
            FoodSourceConfig(position=(300.0, 0.0), shape="rect", size=(100.0, 100.0), spawn_interval=0.2),
            FoodSourceConfig(position=(-300.0, 0.0), shape="circle", radius=50.0, spawn_interval=0.5),
        ],
    )
    return SimulationConfig(seed=seed, preset="custom", world=world)


def test_single_founder_survives_a_tick():
    environment = _world()
    bug = next(environment.bugs())
    start = Vector2(bug.position)

    metrics = environment.proceed(DT, DeterministicRng(0))

    assert metrics.births == 0
    assert metrics.deaths == 0
    assert environment.bugs_count == 1
    assert bug.energy_level > 0.0
    assert bug.position.distance_to(start) <= 10.0 * DT + 1e-9
    assert environment.iteration == 1
    assert environment.now == StaticTimePoint(DT)


def test_bug_eats_food_in_range():
    environment = _world(food=[FoodCreateInfo(Vector2(5.0, 0.0), NoNeg(1.0))])
    bug = next(environment.bugs())
    bug.energy_level = NoNeg(50.0)
    food = next(environment.food())
    expected = bug.decide(environment, DT, DeterministicRng(0)).energy_level.unwrap() + 0.1 * DT

    metrics = environment.proceed(DT, DeterministicRng(0))

    assert food.energy.unwrap() == approx(1.0 - 0.1 * DT)
    assert bug.energy_level.unwrap() == approx(expected)
    assert metrics.food_consumed == 0
    assert environment.food_count == 1


def test_bug_eats_the_last_bit_of_food():
    environment = _world(food=[FoodCreateInfo(Vector2(5.0, 0.0), NoNeg(0.001))])
    bug = next(environment.bugs())
    bug.energy_level = NoNeg(50.0)
    expected = bug.decide(environment, DT, DeterministicRng(0)).energy_level.unwrap() + 0.001

    metrics = environment.proceed(DT, DeterministicRng(0))

    assert metrics.food_consumed == 1
    assert environment.food_count == 0
    assert bug.energy_level.unwrap() == approx(expected)


def test_two_bugs_racing_for_one_crumb():
    environment = _world(
        bug_positions=((0.0, 0.0), (1.0, 0.0)),
        food=[FoodCreateInfo(Vector2(5.0, 0.0), NoNeg(1e-5))],
    )
    metrics = environment.proceed(DT, DeterministicRng(0))
    assert metrics.food_consumed == 1
    assert environment.food_count == 0
    assert environment.bugs_count == 2


def test_full_baby_charge_gives_birth():
    environment = _world()
    parent = next(environment.bugs())
    parent.baby_charge_level = parent.baby_charge_capacity

    metrics = environment.proceed(DT, DeterministicRng(0))

    assert metrics.births == 1
    assert environment.bugs_count == 2
    child = next(bug for bug in environment.bugs() if bug.id != parent.id)
    assert child.id == 1
    assert child.energy_level <= child.energy_capacity
    assert child.energy_level == parent.baby_charge_capacity
    assert child.position == parent.position
    assert parent.baby_charge_level.unwrap() == approx(0.0, abs=1e-9)
    assert environment.next_bug_id == 2


def test_starving_bug_dies():
    environment = _world()
    next(environment.bugs()).energy_level = NoNeg.zero()

    metrics = environment.proceed(DT, DeterministicRng(0))

    assert metrics.deaths == 1
    assert environment.bugs_count == 0
    assert list(environment.bugs()) == []


def test_bug_that_crossed_a_cell_border_dies_cleanly():
    sprinter = founder_chromosome()
    sprinter.genes[192] = 5.0
    environment = _world(bug_positions=((255.99, 10.0),), chromosome=sprinter)
    bug = next(environment.bugs())
    bug.energy_level = NoNeg(1e-7)

    metrics = environment.proceed(DT, DeterministicRng(0))

    assert bug.position.x > 256.0
    assert metrics.deaths == 1
    assert environment.bugs_count == 0


def test_missing_food_is_an_invariant_violation():
    environment = _world()
    bug = next(environment.bugs())
    with pytest.raises(InvariantViolation):
        environment.transfer_energy_from_food_to_bug(42, Vector2(0.0, 0.0), bug, NoNeg(1.0))


def test_food_sources_spawn_food_during_ticks():
    source = FoodSourceCreateInfo(Vector2(0.0, 0.0), RectShape((10.0, 10.0)), (0.0, 1.0), 0.1)
    environment = Environment(StaticTimePoint(), food_sources=[source])
    rng = DeterministicRng(3)
    spawned = sum(environment.proceed(DT, rng).food_spawned for _ in range(30))
    assert spawned == environment.food_count
    assert 9 <= spawned <= 10


def test_generate_places_food_and_one_founder():
    environment = Environment.generate(
        StaticTimePoint(), DeterministicRng(1), [], (-10.0, 10.0), (-10.0, 10.0), (0.0, 1.0), 20, Vector2(3.0, 4.0)
    )
    assert environment.food_count == 20
    assert environment.bugs_count == 1
    founder = next(environment.bugs())
    assert founder.energy_level == FOUNDER_ENERGY
    assert founder.position == Vector2(3.0, 4.0)
    assert environment.find_bug_by_id(founder.id) is founder
    assert environment.find_bug_by_id(999) is None


def test_interactive_spawning():
    seeded = SeededEnvironment(Environment(StaticTimePoint()), DeterministicRng(0))
    food = seeded.add_food(Vector2(1.0, 1.0))
    bug = seeded.add_bug(Vector2(-1.0, -1.0))
    assert seeded.food_count == 1
    assert seeded.bugs_count == 1
    assert 0.0 <= food.energy.unwrap() <= 8.0
    assert bug.energy_level == bug.energy_capacity


def test_vision_queries_exclude_self_and_respect_range():
    environment = _world(bug_positions=((0.0, 0.0), (30.0, 0.0), (500.0, 0.0)))
    first = next(bug for bug in environment.bugs() if bug.id == 0)
    found = environment.find_nearest_bug_in_vision_arc(
        first.position, first.vision_range, first.rotation, first.vision_half_arc, exclude_id=first.id
    )
    assert found is not None
    assert found[0].id == 1
    assert found[1].unwrap() == approx(30.0)


def _run(environment, ticks):
    history = []
    for _ in range(ticks):
        metrics = environment.proceed(DT)
        history.append((metrics.population, metrics.food, metrics.births, metrics.deaths))
    return history


def test_same_seed_same_run():
    a = from_config(StaticTimePoint(), _small_config())
    b = from_config(StaticTimePoint(), _small_config())
    assert _run(a, 90) == _run(b, 90)
    assert a.to_dict() == b.to_dict()


def test_reloaded_environment_continues_identically():
    original = from_config(StaticTimePoint(), _small_config(seed=8))
    _run(original, 45)

    reloaded = loads(dumps(original))
    assert reloaded.to_dict() == json.loads(dumps(original))

    assert _run(reloaded, 45) == _run(original, 45)
    assert dumps(reloaded) == dumps(original)


def test_limited_resources_short_run_keeps_chunks_bounded():
    environment = limited_resources(StaticTimePoint(), 4)
    for tick in range(1, 301):
        environment.proceed(DT)
        if tick % 50 == 0:
            environment.collect_unused_chunks()
        if environment.bugs_count == 0:
            break
    assert environment.food_index.allocated_chunk_count() <= 4
    for chunk_index, chunk in environment.bug_chunks():
        for bug in chunk:
            assert environment.bug_index.chunk_index_of(bug.position) == chunk_index


def test_irradiation_mutates_only_bugs_strictly_inside_the_area():
    seeded = SeededEnvironment(_world(bug_positions=((0.0, 0.0), (50.0, 0.0), (200.0, 0.0))), DeterministicRng(4))
    before = {bug.id: (list(bug.chromosome.genes), bug.features) for bug in seeded.bugs()}

    assert seeded.irradiate_area(Vector2(0.0, 0.0), NoNeg(50.0)) == 1

    bugs = {bug.id: bug for bug in seeded.bugs()}
    genes, features = before[0]
    irradiated = bugs[0]
    assert all(new != old for new, old in zip(irradiated.chromosome.genes, genes))
    assert irradiated.features is not features
    assert irradiated.size.unwrap() == approx(abs(irradiated.chromosome.genes[BRAIN_GENE_COUNT + 1]))
    assert irradiated.energy_level <= irradiated.energy_capacity
    assert irradiated.heat_level <= irradiated.heat_capacity
    assert irradiated.baby_charge_level <= irradiated.baby_charge_capacity
    for untouched in (1, 2):
        assert bugs[untouched].chromosome.genes == before[untouched][0]
        assert bugs[untouched].features is before[untouched][1]


def test_irradiated_world_keeps_running():
    seeded = SeededEnvironment(_world(bug_positions=((0.0, 0.0), (10.0, 10.0))), DeterministicRng(6))
    seeded.irradiate_area(Vector2(0.0, 0.0), NoNeg(100.0))
    for _ in range(20):
        seeded.proceed(DT)
    assert seeded.iteration == 20
