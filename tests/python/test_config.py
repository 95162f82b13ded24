from __future__ import annotations

from pathlib import Path

import pytest

from bugs.config import SimulationConfig, load_config
from bugs.food_source import CircleShape, RectShape
from bugs.presets import build_environment, food_source_from_config, preset_names
from bugs.time_point import StaticTimePoint

ROOT = Path(__file__).resolve().parents[2]


def test_defaults():
    config = SimulationConfig()
    assert config.time_step == pytest.approx(1.0 / 30.0)
    assert config.preset == "less_food_further_from_center"
    assert config.world.food_sources == []


def test_load_config_reads_nested_world(tmp_path):
    path = tmp_path / "sim.yaml"
    path.write_text(
        "\n".join(
            [
                "seed: 99",
                "preset: custom",
                "collect_chunks_interval: 10",
                "world:",
                "  x_range: [-5, 5]",
                "  food_count: 3",
                "  bug_position: [1, 2]",
                "  food_sources:",
                "    - position: [10, 0]",
                "      shape: circle",
                "      radius: 4",
                "      spawn_interval: 0.5",
            ]
        )
    )
    config = SimulationConfig.from_yaml(path)
    assert config.seed == 99
    assert config.collect_chunks_interval == 10
    assert config.world.x_range == (-5.0, 5.0)
    assert config.world.y_range == (-1000.0, 1000.0)
    assert config.world.food_count == 3
    assert config.world.bug_position == (1.0, 2.0)
    source = config.world.food_sources[0]
    assert source.position == (10.0, 0.0)
    assert isinstance(food_source_from_config(source).shape, CircleShape)


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert SimulationConfig.from_yaml(path) == SimulationConfig()


def test_custom_preset_builds_from_world():
    config = load_config(
        {
            "seed": 3,
            "preset": "custom",
            "world": {
                "x_range": [-10, 10],
                "y_range": [-10, 10],
                "food_count": 7,
                "food_sources": [{"shape": "rect", "size": [4, 4], "spawn_interval": 1.0}],
            },
        }
    )
    environment = build_environment(StaticTimePoint(), config)
    assert environment.food_count == 7
    assert environment.bugs_count == 1
    assert environment.rng.seed == 3
    assert isinstance(next(environment.food_sources()).shape, RectShape)


def test_unknown_preset_and_shape_are_rejected():
    with pytest.raises(ValueError):
        build_environment(StaticTimePoint(), SimulationConfig(preset="nope"))
    bad = load_config({"world": {"food_sources": [{"shape": "triangle"}]}})
    with pytest.raises(ValueError):
        food_source_from_config(bad.world.food_sources[0])
    assert "custom" in preset_names()


@pytest.mark.config_change
def test_sandbox_config_runs():
    config = SimulationConfig.from_yaml(ROOT / "configs" / "sandbox.yaml")
    environment = build_environment(StaticTimePoint(), config)
    for _ in range(30):
        environment.proceed(config.time_step)
    assert environment.iteration == 30
