from __future__ import annotations

import pytest

from verifier_types import WorkChunk
from work_partition import partition


@pytest.mark.parametrize(
    "start, end, workers",
    [
        (2, 2, 1),
        (2, 100, 1),
        (2, 100, 3),
        (2, 100, 7),
        (2, 101, 4),
        (10, 13, 4),
        (5, 7, 10),
        (2, 1_000_003, 16),
        (2**64 - 1000, 2**64 - 1, 6),
    ],
)
def test_chunks_cover_range_exactly_once(start, end, workers):
    chunks = partition(start, end, workers)
    size = end - start + 1

    assert len(chunks) == min(workers, size)
    assert chunks[0].start == start
    assert chunks[-1].end == end
    for a, b in zip(chunks, chunks[1:]):
        assert b.start == a.end + 1
    assert all(c.start <= c.end for c in chunks)
    assert sum(c.size for c in chunks) == size
    assert [c.index for c in chunks] == list(range(len(chunks)))


def test_last_chunk_absorbs_remainder():
    assert partition(2, 11, 3) == [
        WorkChunk(0, 2, 4),
        WorkChunk(1, 5, 7),
        WorkChunk(2, 8, 11),
    ]


def test_more_workers_than_integers():
    assert partition(5, 7, 10) == [WorkChunk(0, 5, 5), WorkChunk(1, 6, 6), WorkChunk(2, 7, 7)]


def test_invalid_arguments():
    with pytest.raises(ValueError):
        partition(2, 10, 0)
    with pytest.raises(ValueError):
        partition(50, 10, 2)
