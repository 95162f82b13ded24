"""Sparse grid of fixed-size square cells over moving point entities.

Cells live in four dense quadrants around the origin so negative coordinates need no
global offset. A raw signed cell ``(x, y)`` maps onto a quadrant plus unsigned offsets:

    x >= 0, y >= 0  -> top-left     (x, y)
    x <  0, y >= 0  -> top-right    (-1 - x, y)
    x >= 0, y <  0  -> bottom-left  (x, -1 - y)
    x <  0, y <  0  -> bottom-right (-1 - x, -1 - y)

Elements are expected to sit in the cell of their current position. Moving an element
breaks that until ``shuffle`` runs; ``Index`` values are only valid until then.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, Protocol, Tuple, TypeVar

from pygame.math import Vector2

from .noneg import NoNeg
from .rect import Rect

DEFAULT_CHUNK_SIZE = 256.0

# A spiral walk stops after this many consecutive ring-start cells miss the search circle.
MAX_RING_START_SKIPS = 5


class HasPosition(Protocol):
    position: Vector2


T = TypeVar("T", bound=HasPosition)
B = TypeVar("B", bound=HasPosition)


class Quadrant(str, Enum):
    TOP_LEFT = "from_top_left"
    TOP_RIGHT = "from_top_right"
    BOTTOM_LEFT = "from_bottom_left"
    BOTTOM_RIGHT = "from_bottom_right"

    @property
    def mirrors_x(self) -> bool:
        return self in (Quadrant.TOP_RIGHT, Quadrant.BOTTOM_RIGHT)

    @property
    def mirrors_y(self) -> bool:
        return self in (Quadrant.BOTTOM_LEFT, Quadrant.BOTTOM_RIGHT)


@dataclass(frozen=True, slots=True)
class ChunkIndex:
    quadrant: Quadrant
    x: int
    y: int

    @classmethod
    def from_raw(cls, x: int, y: int) -> "ChunkIndex":
        if y >= 0:
            if x >= 0:
                return cls(Quadrant.TOP_LEFT, x, y)
            return cls(Quadrant.TOP_RIGHT, -1 - x, y)
        if x >= 0:
            return cls(Quadrant.BOTTOM_LEFT, x, -1 - y)
        return cls(Quadrant.BOTTOM_RIGHT, -1 - x, -1 - y)

    def to_raw(self) -> Tuple[int, int]:
        x = -1 - self.x if self.quadrant.mirrors_x else self.x
        y = -1 - self.y if self.quadrant.mirrors_y else self.y
        return (x, y)


@dataclass(frozen=True, slots=True)
class Index:
    chunk: ChunkIndex
    item: int


class CircularTraverse:
    """Spiral walk over raw cell coordinates, yielding cells whose square touches a circle.

    The walk starts one cell west of the center cell and moves east, north, west and
    south with leg lengths 1, 1, 2, 2, 3, 3, ... The last cell of each leg is a
    ring-start cell. The walk ends once more than ``MAX_RING_START_SKIPS`` consecutive
    ring-start cells miss the circle, or once it leaves the ``limit`` box around the
    center cell.

    The ring-start rule is an approximation. With a very large radius and sparse
    cells a cell touching the circle can be left unvisited; callers read "nothing
    found" as "nothing found so far".
    """

    def __init__(
        self,
        center: Tuple[int, int],
        position: Vector2,
        radius: float,
        chunk_size: float,
        limit: Optional[int] = None,
    ) -> None:
        self._cx, self._cy = center
        self._x = self._cx - 1
        self._y = self._cy
        self._iteration = 0
        self._i = 0
        self._max_i = 0
        self._skips = 0
        self._done = False
        self._position = Vector2(position)
        self._chunk_size = chunk_size
        self._limit = limit
        self.radius = radius

    def __iter__(self) -> "CircularTraverse":
        return self

    def __next__(self) -> Tuple[int, int]:
        size = self._chunk_size
        while not self._done:
            self._advance()
            x, y = self._x, self._y
            if self._limit is not None and max(abs(x - self._cx), abs(y - self._cy)) > self._limit:
                self._done = True
                break
            hit = Rect(x * size, y * size, size, size).intersects_circle(self._position, self.radius)
            if self._i == 0:
                if hit:
                    self._skips = 0
                else:
                    self._skips += 1
                    if self._skips > MAX_RING_START_SKIPS:
                        self._done = True
                        break
            if hit:
                return (x, y)
        raise StopIteration

    def _advance(self) -> None:
        direction = self._iteration % 4
        if direction == 0:
            self._x += 1
        elif direction == 1:
            self._y += 1
        elif direction == 2:
            self._x -= 1
        else:
            self._y -= 1

        if self._i >= self._max_i:
            self._i = 0
            self._max_i = self._iteration // 2
            self._iteration += 1
        else:
            self._i += 1


def _axis_span(low: int, high: int, mirrored: bool) -> Optional[Tuple[int, int]]:
    """Unsigned offsets covering raw cells ``low..=high`` on one side of the origin."""
    if mirrored:
        top = min(high, -1)
        if low > top:
            return None
        return (-1 - top, -1 - low)
    bottom = max(low, 0)
    if bottom > high:
        return None
    return (bottom, high)


class ChunkedVec(Generic[T]):
    def __init__(self, chunk_size: float = DEFAULT_CHUNK_SIZE) -> None:
        if not chunk_size > 0:
            raise ValueError(f"chunk size must be positive, got {chunk_size!r}")
        self._chunk_size = float(chunk_size)
        self._quadrants: Dict[Quadrant, List[List[List[T]]]] = {quadrant: [] for quadrant in Quadrant}
        self._len = 0

    @property
    def chunk_size(self) -> float:
        return self._chunk_size

    def __len__(self) -> int:
        return self._len

    def __iter__(self) -> Iterator[T]:
        for _, chunk in self.chunks():
            yield from chunk

    def __getitem__(self, index: Index) -> T:
        return self._checked_chunk(index)[index.item]

    def raw_index_of(self, position: Vector2) -> Tuple[int, int]:
        return (math.floor(position.x / self._chunk_size), math.floor(position.y / self._chunk_size))

    def chunk_index_of(self, position: Vector2) -> ChunkIndex:
        return ChunkIndex.from_raw(*self.raw_index_of(position))

    def chunk_rect(self, chunk_index: ChunkIndex) -> Rect:
        x, y = chunk_index.to_raw()
        size = self._chunk_size
        return Rect(x * size, y * size, size, size)

    def push(self, item: T) -> Index:
        chunk_index = self.chunk_index_of(item.position)
        chunk = self._ensure_chunk(chunk_index)
        chunk.append(item)
        self._len += 1
        return Index(chunk_index, len(chunk) - 1)

    def remove(self, index: Index) -> T:
        item = self._checked_chunk(index).pop(index.item)
        self._len -= 1
        return item

    def index_of(self, predicate: Callable[[T], bool]) -> Optional[Index]:
        for chunk_index, chunk in self.chunks():
            for item_index, item in enumerate(chunk):
                if predicate(item):
                    return Index(chunk_index, item_index)
        return None

    def index_of_in_range(self, predicate: Callable[[T], bool], position: Vector2, range_: NoNeg) -> Optional[Index]:
        for raw in self.circular_traverse(position, range_):
            chunk_index = ChunkIndex.from_raw(*raw)
            chunk = self._get_chunk(chunk_index)
            if not chunk:
                continue
            for item_index, item in enumerate(chunk):
                if predicate(item):
                    return Index(chunk_index, item_index)
        return None

    def remove_first_at(self, position: Vector2, predicate: Callable[[T], bool]) -> Optional[T]:
        """Remove the first element matching ``predicate`` from the cell of ``position``."""
        chunk = self._get_chunk(self.chunk_index_of(position))
        if not chunk:
            return None
        for item_index, item in enumerate(chunk):
            if predicate(item):
                self._len -= 1
                return chunk.pop(item_index)
        return None

    def find_nearest(self, position: Vector2, range_: NoNeg) -> Optional[Tuple[T, NoNeg]]:
        return self.find_nearest_filter_map(position, range_, _identity)

    def find_nearest_filter_map(
        self,
        position: Vector2,
        range_: NoNeg,
        project: Callable[[T], Optional[B]],
    ) -> Optional[Tuple[B, NoNeg]]:
        """Closest projected element strictly within ``range_``.

        ``project`` may drop an element by returning ``None``. Ties keep the element
        met first in spiral order.
        """
        best: Optional[B] = None
        best_distance = float(range_)
        for raw in self.circular_traverse(position, range_):
            chunk_index = ChunkIndex.from_raw(*raw)
            chunk = self._get_chunk(chunk_index)
            if not chunk:
                continue
            # a cell wholly outside the best distance cannot hold a closer element
            if not self.chunk_rect(chunk_index).intersects_circle(position, best_distance):
                continue
            for item in chunk:
                candidate = project(item)
                if candidate is None:
                    continue
                distance = position.distance_to(candidate.position)
                if distance < best_distance:
                    best = candidate
                    best_distance = distance
        if best is None:
            return None
        return (best, NoNeg(best_distance))

    def circular_traverse(self, position: Vector2, range_: NoNeg) -> CircularTraverse:
        center = self.raw_index_of(position)
        return CircularTraverse(center, position, float(range_), self._chunk_size, self._traverse_limit(center))

    def chunks(self) -> Iterator[Tuple[ChunkIndex, List[T]]]:
        """Every allocated cell, empty ones included."""
        for quadrant, rows in self._quadrants.items():
            for y, row in enumerate(rows):
                for x, chunk in enumerate(row):
                    yield ChunkIndex(quadrant, x, y), chunk

    def chunks_in_area(self, area: Rect) -> Iterator[Tuple[ChunkIndex, List[T]]]:
        """Non-empty cells overlapping ``area``."""
        x0, y0 = self.raw_index_of(Vector2(area.left, area.top))
        x1, y1 = self.raw_index_of(Vector2(area.right, area.bottom))
        for quadrant, rows in self._quadrants.items():
            x_span = _axis_span(x0, x1, quadrant.mirrors_x)
            y_span = _axis_span(y0, y1, quadrant.mirrors_y)
            if x_span is None or y_span is None:
                continue
            for y in range(y_span[0], min(y_span[1], len(rows) - 1) + 1):
                row = rows[y]
                for x in range(x_span[0], min(x_span[1], len(row) - 1) + 1):
                    chunk = row[x]
                    if chunk:
                        yield ChunkIndex(quadrant, x, y), chunk

    def allocated_chunk_count(self) -> int:
        return sum(len(row) for rows in self._quadrants.values() for row in rows)

    def retain(self, predicate: Callable[[T], bool]) -> int:
        removed = 0
        for _, chunk in self.chunks():
            kept = [item for item in chunk if predicate(item)]
            if len(kept) != len(chunk):
                removed += len(chunk) - len(kept)
                chunk[:] = kept
        self._len -= removed
        return removed

    def shuffle(self) -> int:
        """Move every element whose position left its cell. Returns the number moved."""
        misplaced: List[T] = []
        for chunk_index, chunk in self.chunks():
            raw = chunk_index.to_raw()
            kept = []
            for item in chunk:
                if self.raw_index_of(item.position) == raw:
                    kept.append(item)
                else:
                    misplaced.append(item)
            if len(kept) != len(chunk):
                chunk[:] = kept
        for item in misplaced:
            self._ensure_chunk(self.chunk_index_of(item.position)).append(item)
        return len(misplaced)

    def collect_unused_chunks(self) -> None:
        for rows in self._quadrants.values():
            for row in rows:
                while row and not row[-1]:
                    row.pop()
            while rows and not rows[-1]:
                rows.pop()

    def to_dict(self, encode: Callable[[T], Any]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"chunk_size": self._chunk_size}
        for quadrant, rows in self._quadrants.items():
            payload[quadrant.value] = [[[encode(item) for item in chunk] for chunk in row] for row in rows]
        return payload

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], decode: Callable[[Any], T]) -> "ChunkedVec[T]":
        vec: ChunkedVec[T] = cls(raw.get("chunk_size", DEFAULT_CHUNK_SIZE))
        for quadrant in Quadrant:
            rows = [[[decode(item) for item in chunk] for chunk in row] for row in raw.get(quadrant.value, [])]
            vec._quadrants[quadrant] = rows
            vec._len += sum(len(chunk) for row in rows for chunk in row)
        return vec

    def _get_chunk(self, chunk_index: ChunkIndex) -> Optional[List[T]]:
        rows = self._quadrants[chunk_index.quadrant]
        if chunk_index.y >= len(rows):
            return None
        row = rows[chunk_index.y]
        if chunk_index.x >= len(row):
            return None
        return row[chunk_index.x]

    def _checked_chunk(self, index: Index) -> List[T]:
        chunk = self._get_chunk(index.chunk)
        if chunk is None or not 0 <= index.item < len(chunk):
            raise IndexError(f"stale chunk index {index}")
        return chunk

    def _ensure_chunk(self, chunk_index: ChunkIndex) -> List[T]:
        rows = self._quadrants[chunk_index.quadrant]
        while len(rows) <= chunk_index.y:
            rows.append([])
        row = rows[chunk_index.y]
        while len(row) <= chunk_index.x:
            row.append([])
        return row[chunk_index.x]

    def _traverse_limit(self, center: Tuple[int, int]) -> int:
        bounds = self._raw_bounds()
        if bounds is None:
            return -1
        min_x, max_x, min_y, max_y = bounds
        cx, cy = center
        # past this Chebyshev distance the spiral has covered every allocated cell
        return max(cx - min_x, max_x - cx, cy - min_y, max_y - cy) + 2

    def _raw_bounds(self) -> Optional[Tuple[int, int, int, int]]:
        xs: List[int] = []
        ys: List[int] = []
        for quadrant, rows in self._quadrants.items():
            width = max((len(row) for row in rows), default=0)
            if width == 0:
                continue
            corner_a = ChunkIndex(quadrant, 0, 0).to_raw()
            corner_b = ChunkIndex(quadrant, width - 1, len(rows) - 1).to_raw()
            xs.extend((corner_a[0], corner_b[0]))
            ys.extend((corner_a[1], corner_b[1]))
        if not xs:
            return None
        return (min(xs), max(xs), min(ys), max(ys))


def _identity(item: T) -> T:
    return item
