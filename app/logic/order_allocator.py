"""Sparse integer order keys for reorderable sibling lists.

Keys are spaced by a fixed gap so one insertion between two siblings never
forces a rewrite of the others. Two list shapes are supported:

- ``ascending``: first item has the lowest key (document sections);
- ``descending``: newest item has the highest key and lists read highest
  first (documents).

All functions are pure apart from ``fallback_order``, which reads the clock.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Dict, List, Mapping, Optional, Sequence, TypeVar

ORDER_GAP = 1000
DEFAULT_ORDER = 1000

ASCENDING = "ascending"
DESCENDING = "descending"
DIRECTIONS = (ASCENDING, DESCENDING)

UP = "up"
DOWN = "down"

T = TypeVar("T")

_fallback_lock = threading.Lock()
_last_fallback = 0


def _check_direction(direction: str) -> str:
    if direction not in DIRECTIONS:
        raise ValueError(f"direction must be one of {DIRECTIONS}, got {direction!r}")
    return direction


def next_order(
    direction: str,
    current_extreme: Optional[int],
    *,
    gap: int = ORDER_GAP,
    base: int = DEFAULT_ORDER,
) -> int:
    """Order key for a new item placed at the "next" end of the list.

    ``current_extreme`` is the highest key among existing siblings, or None
    when there are none. Both list shapes grow upwards; they differ only in
    which end readers treat as first.
    """
    _check_direction(direction)
    if current_extreme is None:
        return int(base)
    return int(current_extreme) + int(gap)


def order_values_for_batch(count: int, direction: str, *, gap: int = ORDER_GAP) -> List[int]:
    """Keys for ``count`` fresh siblings given in read order.

    Ascending yields ``[G, 2G, .., N*G]``; descending yields ``[N*G, .., G]``
    so the first (newest) item carries the largest key.
    """
    _check_direction(direction)
    return [order_for_position(i, count, direction, gap=gap) for i in range(max(int(count), 0))]


def order_for_position(position: int, total: int, direction: str, *, gap: int = ORDER_GAP) -> int:
    """Key for zero-based ``position`` in a list of ``total`` items."""
    _check_direction(direction)
    if direction == ASCENDING:
        return (int(position) + 1) * int(gap)
    return (int(total) - int(position)) * int(gap)


def fallback_order() -> int:
    """Wall-clock milliseconds, strictly increasing within this process.

    Used only when gap allocation cannot run, e.g. the sibling read failed.
    """
    global _last_fallback
    with _fallback_lock:
        value = max(time.time_ns() // 1_000_000, _last_fallback + 1)
        _last_fallback = value
        return value


def _item_id(item: Any, id_field: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(id_field)
    return getattr(item, id_field, None)


def reorder(items: Sequence[T], from_index: int, to_index: int) -> List[T]:
    """Return a copy with the item at ``from_index`` moved to ``to_index``.

    Out-of-range indexes return an unchanged copy.
    """
    result = list(items)
    if not (0 <= from_index < len(result)) or not (0 <= to_index < len(result)):
        return result
    moved = result.pop(from_index)
    result.insert(to_index, moved)
    return result


def move_within_list(
    items: Sequence[T],
    item_id: Any,
    direction: str,
    id_field: str = "id",
) -> Optional[List[T]]:
    """Swap the identified item with its neighbour in ``direction``.

    Returns None when the item is missing or already at that boundary.
    """
    if direction not in (UP, DOWN):
        raise ValueError(f"move direction must be 'up' or 'down', got {direction!r}")
    index = next((i for i, item in enumerate(items) if _item_id(item, id_field) == item_id), -1)
    if index == -1:
        return None
    target = index - 1 if direction == UP else index + 1
    if target < 0 or target >= len(items):
        return None
    return reorder(items, index, target)


def changed_orders(
    before_ids: Sequence[str],
    after_ids: Sequence[str],
    direction: str,
    *,
    gap: int = ORDER_GAP,
) -> Dict[str, int]:
    """Position keys for the ids whose index differs between two orderings."""
    total = len(after_ids)
    return {
        item_id: order_for_position(idx, total, direction, gap=gap)
        for idx, item_id in enumerate(after_ids)
        if idx >= len(before_ids) or before_ids[idx] != item_id
    }


__all__ = [
    "ORDER_GAP",
    "DEFAULT_ORDER",
    "ASCENDING",
    "DESCENDING",
    "DIRECTIONS",
    "UP",
    "DOWN",
    "next_order",
    "order_values_for_batch",
    "order_for_position",
    "fallback_order",
    "reorder",
    "move_within_list",
    "changed_orders",
]
