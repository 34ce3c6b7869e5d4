from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


def partition(items: Sequence[T], count: int) -> list[Sequence[T]]:
    """Split ``items`` into at most ``count`` disjoint, contiguous chunks.

    Chunk sizes differ by at most one. Empty chunks are not returned.
    """
    if count < 1:
        raise ValueError("Partition count must be at least 1")
    size, extra = divmod(len(items), count)
    chunks: list[Sequence[T]] = []
    start = 0
    for index in range(count):
        end = start + size + (1 if index < extra else 0)
        if end > start:
            chunks.append(items[start:end])
        start = end
    return chunks
