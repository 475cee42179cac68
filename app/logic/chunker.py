"""Split id lists to fit the store's "is one of" filter limit."""

from __future__ import annotations

from typing import List, Sequence


def chunk(ids: Sequence[str], limit: int) -> List[List[str]]:
    """Partition ``ids`` into contiguous chunks of at most ``limit`` items.

    Concatenating the chunks in order yields ``ids`` exactly. An empty input
    yields no chunks at all.
    """
    if int(limit) <= 0:
        raise ValueError(f"chunk limit must be positive, got {limit}")
    size = int(limit)
    return [list(ids[i : i + size]) for i in range(0, len(ids), size)]


__all__ = ["chunk"]
