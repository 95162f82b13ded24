from __future__ import annotations

import argparse
import csv
import logging
import time
from pathlib import Path
from typing import Optional

from .config import SimulationConfig
from .environment import SeededEnvironment
from .metrics import TickMetrics
from .persistence import load_environment, save_environment
from .presets import build_environment, preset_names
from .time_point import StaticTimePoint

logger = logging.getLogger(__name__)

_HEADER = [
    "iteration",
    "population",
    "food",
    "births",
    "deaths",
    "food_spawned",
    "food_consumed",
    "rebucketed",
    "tick_ms",
]


def pretty_duration(seconds: float) -> str:
    seconds = int(seconds)
    days, seconds = divmod(seconds, 86400)
    hours, seconds = divmod(seconds, 3600)
    minutes, seconds = divmod(seconds, 60)
    if days:
        return f"{days}d {hours}h {minutes}m {seconds}s"
    if hours:
        return f"{hours}h {minutes}m {seconds}s"
    if minutes:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def _format_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.iteration,
        metrics.population,
        metrics.food,
        metrics.births,
        metrics.deaths,
        metrics.food_spawned,
        metrics.food_consumed,
        metrics.rebucketed,
        f"{tick_ms:.3f}",
    ]


def run_headless(
    steps: Optional[int],
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    config: Optional[SimulationConfig] = None,
    preset: Optional[str] = None,
    load_path: Optional[Path] = None,
    save_path: Optional[Path] = None,
    timeout: Optional[float] = None,
) -> SeededEnvironment:
    """Run until ``steps`` ticks, ``timeout`` wall seconds or extinction, whichever comes first."""
    config = config or SimulationConfig()
    if seed is not None:
        config.seed = seed
    if preset is not None:
        config.preset = preset

    beginning = StaticTimePoint()
    if load_path is not None:
        environment = load_environment(load_path)
    else:
        logger.info("run simulation with seed %d and preset %s", config.seed, config.preset)
        environment = build_environment(beginning, config)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_HEADER)

    started = time.monotonic()
    last_log = started
    last_save = started
    last_log_sim_seconds = environment.now.duration_since(environment.creation_time)
    tick = 0
    try:
        while environment.bugs_count > 0 and (steps is None or tick < steps):
            metrics = environment.proceed(config.time_step)
            tick += 1
            if writer:
                tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
                writer.writerow(_format_row(metrics, tick_ms))
            if config.collect_chunks_interval > 0 and tick % config.collect_chunks_interval == 0:
                environment.collect_unused_chunks()

            wall = time.monotonic()
            if wall - last_log >= config.log_interval_seconds:
                sim_seconds = environment.now.duration_since(environment.creation_time)
                logger.info(
                    "iteration %d, time: %s, population: %d, food: %d, time speed: %.2fx",
                    environment.iteration,
                    pretty_duration(sim_seconds),
                    environment.bugs_count,
                    environment.food_count,
                    (sim_seconds - last_log_sim_seconds) / max(wall - last_log, 1e-9),
                )
                last_log = wall
                last_log_sim_seconds = sim_seconds
            if save_path is not None and wall - last_save >= config.save_interval_seconds:
                save_environment(environment, save_path)
                last_save = wall
            if timeout is not None and wall - started >= timeout:
                logger.info("timeout of %s reached", pretty_duration(timeout))
                break
    finally:
        if csv_file:
            csv_file.close()

    if environment.bugs_count == 0:
        logger.info("population died out at iteration %d", environment.iteration)
    if save_path is not None:
        save_environment(environment, save_path)
    return environment


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless bugs simulation")
    parser.add_argument("--config", type=Path, default=None, help="YAML simulation config")
    parser.add_argument("--steps", type=int, default=None, help="Stop after this many ticks")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--preset", choices=preset_names(), default=None)
    parser.add_argument("--timeout", type=float, default=None, help="Stop after this many wall-clock seconds")
    parser.add_argument("--load", type=Path, default=None, help="Continue from a JSON save file")
    parser.add_argument("--save", type=Path, default=None, help="JSON file to save into periodically and on exit")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    config = SimulationConfig.from_yaml(args.config) if args.config else SimulationConfig()
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        config=config,
        preset=args.preset,
        load_path=args.load,
        save_path=args.save,
        timeout=args.timeout,
    )


if __name__ == "__main__":
    main()
