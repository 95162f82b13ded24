#!/usr/bin/env python3
"""Run a small closed world until it dies out, failing if memory grows past a ceiling."""
from __future__ import annotations

import argparse
import logging
import resource
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))

from bugs.headless import pretty_duration  # noqa: E402
from bugs.presets import limited_resources  # noqa: E402
from bugs.time_point import StaticTimePoint  # noqa: E402

logger = logging.getLogger("soak")

TIME_STEP = 1.0 / 30.0


def peak_memory_mb() -> float:
    # ru_maxrss is in KiB on Linux
    return resource.getrusage(resource.RUSAGE_SELF).ru_maxrss / 1024.0


def check_memory(limit_mb: float) -> float:
    usage = peak_memory_mb()
    if usage > limit_mb:
        raise SystemExit(f"memory usage {usage:.1f} MiB exceeds limit {limit_mb:.1f} MiB")
    return usage


def run_soak(seed: int, max_ticks: int, memory_limit_mb: float, collect_interval: int) -> int:
    beginning = StaticTimePoint()
    environment = limited_resources(beginning, seed)
    logger.info("seed %d, first bug genes: %s", seed, next(environment.bugs()).chromosome.genes[:8])
    tick = 0
    while environment.bugs_count > 0 and tick < max_ticks:
        environment.proceed(TIME_STEP)
        tick += 1
        if tick % collect_interval == 0:
            environment.collect_unused_chunks()
            usage = check_memory(memory_limit_mb)
            logger.info(
                "iteration %d, time: %s, population: %d, food: %d, peak memory: %.1f MiB",
                environment.iteration,
                pretty_duration(environment.now.duration_since(beginning)),
                environment.bugs_count,
                environment.food_count,
                usage,
            )
    check_memory(memory_limit_mb)
    return tick


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Soak a small simulation under a memory ceiling.")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--max-ticks", type=int, default=100_000)
    parser.add_argument("--memory-limit-mb", type=float, default=1024.0)
    parser.add_argument("--collect-interval", type=int, default=100)
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    ticks = run_soak(args.seed, args.max_ticks, args.memory_limit_mb, max(1, args.collect_interval))
    print(f"Soak finished after {ticks} ticks")


if __name__ == "__main__":
    main()
