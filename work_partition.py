"""Split an inclusive integer range into one contiguous chunk per worker."""

from __future__ import annotations

from verifier_types import WorkChunk


def partition(start: int, end: int, worker_count: int) -> list[WorkChunk]:
    """Return chunks covering ``[start, end]`` exactly once.

    Every worker gets ``(end - start + 1) // worker_count`` integers and the
    last one absorbs the remainder.  With more workers than integers the
    count collapses to one single-integer chunk per value.
    """
    if worker_count < 1:
        raise ValueError(f"worker_count must be >= 1, got {worker_count}")
    if start > end:
        raise ValueError(f"empty range [{start}, {end}]")

    size = end - start + 1
    workers = min(worker_count, size)
    chunk_size = max(1, size // workers)

    chunks: list[WorkChunk] = []
    for i in range(workers):
        lo = start + i * chunk_size
        hi = end if i == workers - 1 else lo + chunk_size - 1
        chunks.append(WorkChunk(i, lo, hi))
    return chunks
