from __future__ import annotations

import math

TAU = 2.0 * math.pi


class DeltaAngle:
    """Signed rotation. ``radians`` is canonicalized to (-2π, 2π) keeping the sign."""

    __slots__ = ("_value",)

    def __init__(self, radians: float) -> None:
        self._value = float(radians)

    @property
    def radians(self) -> float:
        return math.fmod(self._value, TAU)

    @property
    def raw(self) -> float:
        return self._value

    def __abs__(self) -> "DeltaAngle":
        return DeltaAngle(abs(self._value))

    def __neg__(self) -> "DeltaAngle":
        return DeltaAngle(-self._value)

    def __add__(self, other: object) -> "DeltaAngle":
        if isinstance(other, DeltaAngle):
            return DeltaAngle(self._value + other._value)
        return NotImplemented

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DeltaAngle):
            return self.radians == other.radians
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.radians)

    def __repr__(self) -> str:
        return f"DeltaAngle({self._value!r})"


class Angle:
    """Absolute direction. ``radians`` is canonicalized to [0, 2π)."""

    __slots__ = ("_value",)

    def __init__(self, radians: float = 0.0) -> None:
        self._value = float(radians)

    @staticmethod
    def normalize(radians: float) -> float:
        result = radians % TAU
        # tiny negative inputs round up to exactly TAU
        if result >= TAU:
            return 0.0
        return result

    @property
    def radians(self) -> float:
        return Angle.normalize(self._value)

    @property
    def raw(self) -> float:
        return self._value

    def signed_distance(self, other: "Angle") -> DeltaAngle:
        """Shortest signed rotation from ``other`` to ``self``, in (-π, π]."""
        diff = self.radians - other.radians
        if diff > math.pi:
            diff -= TAU
        elif diff <= -math.pi:
            diff += TAU
        return DeltaAngle(diff)

    def __add__(self, other: object) -> "Angle":
        if isinstance(other, DeltaAngle):
            return Angle(self._value + other.raw)
        return NotImplemented

    def __sub__(self, other: object) -> "Angle":
        if isinstance(other, DeltaAngle):
            return Angle(self._value - other.raw)
        return NotImplemented

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Angle):
            return self.radians == other.radians
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.radians)

    def __repr__(self) -> str:
        return f"Angle({self._value!r})"
