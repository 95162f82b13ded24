from __future__ import annotations

from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True, slots=True)
class Color:
    a: float
    r: float
    g: float
    b: float

    @classmethod
    def transparent(cls) -> "Color":
        return cls(0.0, 0.0, 0.0, 0.0)

    def to_dict(self) -> Dict[str, float]:
        return {"a": self.a, "r": self.r, "g": self.g, "b": self.b}
