from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from .environment import SeededEnvironment
from .time_point import StaticTimePoint

logger = logging.getLogger(__name__)


def default_save_path(directory: Path) -> Path:
    return Path(directory) / f"save_{datetime.now():%d.%m.%Y_%H-%M-%S}.json"


def dumps(environment: SeededEnvironment) -> str:
    return json.dumps(environment.to_dict(), indent=2)


def loads(text: str, time_point_type: Any = StaticTimePoint) -> SeededEnvironment:
    return SeededEnvironment.from_dict(json.loads(text), time_point_type)


def save_environment(environment: SeededEnvironment, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps(environment))
    logger.info("saved iteration %d into %s", environment.iteration, path)
    return path


def load_environment(path: Path, time_point_type: Any = StaticTimePoint) -> SeededEnvironment:
    environment = loads(Path(path).read_text(), time_point_type)
    logger.info("loaded iteration %d from %s", environment.iteration, path)
    return environment
