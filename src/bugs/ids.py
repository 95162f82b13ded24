from __future__ import annotations


class IdAllocator:
    """Monotonic id counter; ids are never handed out twice."""

    __slots__ = ("_next",)

    def __init__(self, start: int = 0) -> None:
        self._next = start

    @property
    def peek(self) -> int:
        return self._next

    def allocate(self) -> int:
        value = self._next
        self._next += 1
        return value
