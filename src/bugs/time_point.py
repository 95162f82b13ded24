from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol, TypeVar

T = TypeVar("T", bound="TimePoint")


class TimePoint(Protocol):
    """Instant type the simulation is generic over. Durations are float seconds."""

    def duration_since(self: T, other: T) -> float:
        ...

    def __add__(self: T, seconds: float) -> T:
        ...

    def __sub__(self: T, seconds: float) -> T:
        ...

    def to_json(self) -> Any:
        ...


@dataclass(frozen=True, slots=True)
class StaticTimePoint:
    """Deterministic clock: seconds elapsed since an arbitrary epoch."""

    seconds: float = 0.0

    def duration_since(self, other: "StaticTimePoint") -> float:
        elapsed = self.seconds - other.seconds
        if elapsed < 0.0:
            raise ValueError(f"time point {self.seconds} precedes {other.seconds}")
        return elapsed

    def __add__(self, seconds: float) -> "StaticTimePoint":
        return StaticTimePoint(self.seconds + seconds)

    def __sub__(self, seconds: float) -> "StaticTimePoint":
        return StaticTimePoint(self.seconds - seconds)

    def to_json(self) -> float:
        return self.seconds

    @classmethod
    def from_json(cls, raw: Any) -> "StaticTimePoint":
        return cls(float(raw))


@dataclass(frozen=True, slots=True)
class SystemTimePoint:
    instant: datetime

    @classmethod
    def now(cls) -> "SystemTimePoint":
        return cls(datetime.now(timezone.utc))

    def duration_since(self, other: "SystemTimePoint") -> float:
        elapsed = (self.instant - other.instant).total_seconds()
        if elapsed < 0.0:
            raise ValueError(f"time point {self.instant} precedes {other.instant}")
        return elapsed

    def __add__(self, seconds: float) -> "SystemTimePoint":
        return SystemTimePoint(self.instant + timedelta(seconds=seconds))

    def __sub__(self, seconds: float) -> "SystemTimePoint":
        return SystemTimePoint(self.instant - timedelta(seconds=seconds))

    def to_json(self) -> str:
        return self.instant.isoformat()

    @classmethod
    def from_json(cls, raw: Any) -> "SystemTimePoint":
        return cls(datetime.fromisoformat(raw))
