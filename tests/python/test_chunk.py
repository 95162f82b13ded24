from __future__ import annotations

import math
import random
from dataclasses import dataclass

import pytest
from pygame.math import Vector2
from pytest import approx

from bugs.chunk import ChunkedVec, ChunkIndex, CircularTraverse, Quadrant
from bugs.noneg import NoNeg
from bugs.rect import Rect


@dataclass
class Point:
    id: int
    position: Vector2


def _filled(positions, chunk_size=256.0):
    vec = ChunkedVec(chunk_size)
    for idx, pos in enumerate(positions):
        vec.push(Point(idx, Vector2(pos)))
    return vec


@pytest.mark.parametrize(
    "raw, quadrant, offsets",
    [
        ((0, 0), Quadrant.TOP_LEFT, (0, 0)),
        ((-1, 0), Quadrant.TOP_RIGHT, (0, 0)),
        ((3, -1), Quadrant.BOTTOM_LEFT, (3, 0)),
        ((-4, -2), Quadrant.BOTTOM_RIGHT, (3, 1)),
    ],
)
def test_quadrant_mapping(raw, quadrant, offsets):
    index = ChunkIndex.from_raw(*raw)
    assert index.quadrant == quadrant
    assert (index.x, index.y) == offsets
    assert index.to_raw() == raw


def test_quadrant_mapping_is_a_bijection():
    seen = set()
    for x in range(-6, 6):
        for y in range(-6, 6):
            index = ChunkIndex.from_raw(x, y)
            assert index.to_raw() == (x, y)
            seen.add(index)
    assert len(seen) == 144


def test_cell_of_position_uses_floor():
    vec = ChunkedVec(256.0)
    assert vec.raw_index_of(Vector2(0.0, 255.9)) == (0, 0)
    assert vec.raw_index_of(Vector2(-0.1, 256.0)) == (-1, 1)
    assert vec.chunk_rect(vec.chunk_index_of(Vector2(-300.0, -10.0))) == Rect(-512.0, -256.0, 256.0, 256.0)


def test_push_get_and_remove():
    vec = _filled([(10.0, 10.0), (-10.0, 10.0)])
    index = vec.push(Point(99, Vector2(12.0, 12.0)))
    assert len(vec) == 3
    assert vec[index].id == 99
    removed = vec.remove(index)
    assert removed.id == 99
    assert len(vec) == 2
    with pytest.raises(IndexError):
        vec[index]
    with pytest.raises(IndexError):
        vec.remove(index)


def test_empty_index_finds_nothing():
    vec = ChunkedVec()
    assert vec.find_nearest(Vector2(0.0, 0.0), NoNeg(math.inf)) is None
    assert vec.index_of(lambda item: True) is None
    assert list(vec.circular_traverse(Vector2(0.0, 0.0), NoNeg(1000.0))) == []


def test_find_nearest_matches_bruteforce():
    rng = random.Random(3)
    positions = [(rng.uniform(-2000.0, 2000.0), rng.uniform(-2000.0, 2000.0)) for _ in range(600)]
    vec = _filled(positions)

    for _ in range(60):
        query = Vector2(rng.uniform(-1900.0, 1900.0), rng.uniform(-1900.0, 1900.0))
        result = vec.find_nearest(query, NoNeg(math.inf))
        assert result is not None
        found, distance = result
        brute = min(query.distance_to(Vector2(pos)) for pos in positions)
        assert distance.unwrap() == approx(brute)
        assert query.distance_to(found.position) == approx(brute)


def test_find_nearest_is_exact_on_sparse_layouts():
    rng = random.Random(29)
    misses = []
    for _ in range(60):
        positions = [
            (rng.uniform(-4000.0, 4000.0), rng.uniform(-4000.0, 4000.0)) for _ in range(rng.randint(1, 40))
        ]
        vec = _filled(positions)
        for _ in range(5):
            query = Vector2(rng.uniform(-4000.0, 4000.0), rng.uniform(-4000.0, 4000.0))
            result = vec.find_nearest(query, NoNeg(math.inf))
            assert result is not None
            brute = min(query.distance_to(Vector2(pos)) for pos in positions)
            if result[1].unwrap() != approx(brute):
                misses.append((brute, result[1].unwrap()))
    assert misses == []


def test_far_item_is_found_past_empty_rings():
    vec = _filled([(100.0, 100.0), (9000.0, 9000.0), (-9000.0, 300.0)])
    found = vec.find_nearest(Vector2(-8000.0, 0.0), NoNeg(math.inf))
    assert found is not None
    assert found[0].id == 2


def test_find_nearest_respects_range_strictly():
    vec = _filled([(100.0, 0.0)])
    assert vec.find_nearest(Vector2(0.0, 0.0), NoNeg(100.0)) is None
    found = vec.find_nearest(Vector2(0.0, 0.0), NoNeg(100.5))
    assert found is not None
    assert found[1].unwrap() == approx(100.0)


def test_find_nearest_filter_map_skips_dropped_items():
    vec = _filled([(1.0, 1.0), (50.0, 50.0), (600.0, 0.0)])
    result = vec.find_nearest_filter_map(
        Vector2(0.0, 0.0), NoNeg(1000.0), lambda item: item if item.id != 0 else None
    )
    assert result is not None
    assert result[0].id == 1


def test_index_of_in_range_finds_item_at_exact_position():
    vec = _filled([(256.0, 512.0), (256.0, 512.0), (-1.0, -1.0)])
    index = vec.index_of_in_range(lambda item: item.id == 1, Vector2(256.0, 512.0), NoNeg.zero())
    assert index is not None
    assert vec[index].id == 1
    assert vec.index_of_in_range(lambda item: item.id == 2, Vector2(256.0, 512.0), NoNeg.zero()) is None


def test_shuffle_moves_elements_to_their_cells():
    rng = random.Random(11)
    vec = _filled([(rng.uniform(-1000.0, 1000.0), rng.uniform(-1000.0, 1000.0)) for _ in range(200)])
    for item in vec:
        item.position += Vector2(rng.uniform(-400.0, 400.0), rng.uniform(-400.0, 400.0))

    moved = vec.shuffle()

    assert moved > 0
    assert len(vec) == 200
    assert sorted(item.id for item in vec) == list(range(200))
    for chunk_index, chunk in vec.chunks():
        for item in chunk:
            assert vec.chunk_index_of(item.position) == chunk_index
    assert vec.shuffle() == 0


def test_retain_and_remove_first_at():
    vec = _filled([(1.0, 1.0), (2.0, 2.0), (300.0, 300.0), (-5.0, 3.0)])
    removed = vec.remove_first_at(Vector2(3.0, 3.0), lambda item: item.id == 1)
    assert removed is not None and removed.id == 1
    assert vec.remove_first_at(Vector2(3.0, 3.0), lambda item: item.id == 2) is None

    assert vec.retain(lambda item: item.id != 3) == 1
    assert sorted(item.id for item in vec) == [0, 2]
    assert len(vec) == 2


def test_collect_unused_chunks_trims_trailing_empty_cells():
    vec = _filled([(10.0, 10.0), (2000.0, 2000.0)])
    far = vec.index_of(lambda item: item.id == 1)
    allocated = vec.allocated_chunk_count()
    vec.remove(far)

    vec.collect_unused_chunks()

    assert vec.allocated_chunk_count() < allocated
    assert vec.allocated_chunk_count() == 1
    assert [item.id for item in vec] == [0]


def test_chunks_in_area_yields_only_non_empty_overlapping_cells():
    vec = _filled([(10.0, 10.0), (-10.0, -10.0), (1000.0, 1000.0), (700.0, 10.0)])
    vec.remove(vec.index_of(lambda item: item.id == 3))
    found = {index.to_raw() for index, _ in vec.chunks_in_area(Rect.from_lrtb(-100.0, 800.0, -100.0, 100.0))}
    assert found == {(0, 0), (-1, -1)}


def test_spiral_starts_at_center_and_walks_rings():
    traverse = CircularTraverse((0, 0), Vector2(128.0, 128.0), 1000.0, 256.0, limit=1)
    cells = list(traverse)
    assert cells[0] == (0, 0)
    assert cells[1:4] == [(0, 1), (-1, 1), (-1, 0)]
    assert len(cells) == 9
    assert len(set(cells)) == 9


def test_serialization_keeps_cell_order():
    vec = _filled([(1.0, 1.0), (2.0, 2.0), (-600.0, 30.0), (40.0, -900.0)])
    raw = vec.to_dict(lambda item: {"id": item.id, "position": [item.position.x, item.position.y]})
    restored = ChunkedVec.from_dict(raw, lambda item: Point(item["id"], Vector2(*item["position"])))
    assert len(restored) == len(vec)
    assert [item.id for item in restored] == [item.id for item in vec]
    assert restored.chunk_size == vec.chunk_size
