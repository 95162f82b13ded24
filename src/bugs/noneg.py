from __future__ import annotations

import math
from functools import total_ordering
from typing import Union

Number = Union[int, float]


class NegativeValueError(ValueError):
    def __init__(self, value: float) -> None:
        super().__init__(f"expected a non-negative value, got {value!r}")
        self.value = value


@total_ordering
class NoNeg:
    """Float that is guaranteed to be >= 0.

    Sums and products of two ``NoNeg`` values stay ``NoNeg``. Subtraction yields a
    plain float so call sites have to re-wrap (and clamp) explicitly.
    """

    __slots__ = ("_value",)

    def __init__(self, value: Number) -> None:
        value = float(value)
        if not value >= 0.0:
            raise NegativeValueError(value)
        self._value = value

    @classmethod
    def zero(cls) -> "NoNeg":
        return cls(0.0)

    def unwrap(self) -> float:
        return self._value

    def sqrt(self) -> "NoNeg":
        return NoNeg(math.sqrt(self._value))

    def __float__(self) -> float:
        return self._value

    def __add__(self, other: object) -> "NoNeg":
        if isinstance(other, NoNeg):
            return NoNeg(self._value + other._value)
        return NotImplemented

    def __mul__(self, other: object) -> "NoNeg":
        if isinstance(other, NoNeg):
            return NoNeg(self._value * other._value)
        return NotImplemented

    def __truediv__(self, other: object) -> "NoNeg":
        if isinstance(other, NoNeg):
            return NoNeg(self._value / other._value)
        return NotImplemented

    def __sub__(self, other: object) -> float:
        if isinstance(other, NoNeg):
            return self._value - other._value
        if isinstance(other, (int, float)):
            return self._value - other
        return NotImplemented

    def __rsub__(self, other: object) -> float:
        if isinstance(other, (int, float)):
            return other - self._value
        return NotImplemented

    def __eq__(self, other: object) -> bool:
        if isinstance(other, NoNeg):
            return self._value == other._value
        if isinstance(other, (int, float)):
            return self._value == other
        return NotImplemented

    def __lt__(self, other: object) -> bool:
        if isinstance(other, NoNeg):
            return self._value < other._value
        if isinstance(other, (int, float)):
            return self._value < other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)

    def __bool__(self) -> bool:
        return self._value != 0.0

    def __repr__(self) -> str:
        return f"NoNeg({self._value!r})"


def abs_noneg(value: Number) -> NoNeg:
    return NoNeg(abs(value))


def min_noneg(a: NoNeg, b: NoNeg) -> NoNeg:
    return a if a <= b else b
