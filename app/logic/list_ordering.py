"""Persisted ordering for document sections and documents.

Reads sibling lists through a ``DocumentStore`` and writes ``order`` keys
computed by ``app.logic.order_allocator``. Sections read ascending, documents
read newest first; see ``ORDERABLE_COLLECTIONS``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from app.logic.batch_writer import BatchWriter
from app.logic.cascade_delete import require_actor
from app.logic.errors import QueryFailure
from app.logic.events import ORDER_UPDATED, publish
from app.logic.order_allocator import (
    ASCENDING,
    DESCENDING,
    ORDER_GAP,
    DEFAULT_ORDER,
    changed_orders,
    fallback_order,
    move_within_list,
    next_order,
    order_for_position,
)
from app.logic.store import DocumentStore, Filter, eq
from app.models.collections import ORDER_PARENT_KEYS, ORDERABLE_COLLECTIONS, Status
from app.models.entity import Entity

logger = logging.getLogger(__name__)


def direction_for(collection: str) -> str:
    try:
        return ORDERABLE_COLLECTIONS[collection]
    except KeyError:
        raise ValueError(f"{collection} is not an orderable collection") from None


def _require_scope(collection: str, scope: Mapping[str, Any]) -> None:
    key = ORDER_PARENT_KEYS[collection]
    if not scope.get(key):
        raise ValueError(f"{collection} lists are scoped by {key}; scope must include it")


def _scope_filters(scope: Mapping[str, Any]) -> List[Filter]:
    return [eq(k, v) for k, v in scope.items() if v is not None]


def list_siblings(store: DocumentStore, collection: str, scope: Mapping[str, Any]) -> List[Entity]:
    """Non-deleted siblings in read order for the collection's direction."""
    direction = direction_for(collection)
    _require_scope(collection, scope)
    return store.query(
        collection,
        _scope_filters(scope),
        exclude_status=Status.DELETED,
        order_by="order",
        descending=(direction == DESCENDING),
    )


def next_order_for(
    store: DocumentStore,
    collection: str,
    scope: Mapping[str, Any],
    *,
    gap: int = ORDER_GAP,
    base: int = DEFAULT_ORDER,
) -> int:
    """Order key for a new sibling; falls back to a clock value if the read fails."""
    direction = direction_for(collection)
    _require_scope(collection, scope)
    try:
        highest = store.max_order(collection, _scope_filters(scope))
    except Exception:
        logger.error("next_order_for read failed collection=%s scope=%s", collection, dict(scope), exc_info=True)
        return fallback_order()
    return next_order(direction, highest, gap=gap, base=base)


def create_ordered(
    store: DocumentStore,
    collection: str,
    scope: Mapping[str, Any],
    fields: Mapping[str, Any],
    actor_id: Optional[str],
    *,
    gap: int = ORDER_GAP,
    base: int = DEFAULT_ORDER,
) -> Entity:
    """Create an active record at the next end of its sibling list."""
    actor = require_actor(actor_id)
    order = next_order_for(store, collection, scope, gap=gap, base=base)
    now = store.now()
    data: Dict[str, Any] = dict(fields)
    data.update({k: v for k, v in scope.items() if v is not None})
    data.update(
        {
            "order": order,
            "status": Status.ACTIVE,
            "createdAt": now,
            "createdBy": actor,
            "updatedAt": now,
            "updatedBy": actor,
        }
    )
    entity = store.create(collection, data)
    logger.info("create_ordered collection=%s id=%s order=%s", collection, entity.id, order)
    return entity


def apply_order(
    store: DocumentStore,
    collection: str,
    ordered_ids: Sequence[str],
    actor_id: Optional[str],
    *,
    gap: int = ORDER_GAP,
) -> Dict[str, int]:
    """Rewrite every listed id with its position key; return the mapping."""
    actor = require_actor(actor_id)
    direction = direction_for(collection)
    total = len(ordered_ids)
    mapping = {
        item_id: order_for_position(idx, total, direction, gap=gap)
        for idx, item_id in enumerate(ordered_ids)
    }
    _write_orders(store, collection, mapping, actor)
    return mapping


def _write_orders(store: DocumentStore, collection: str, mapping: Mapping[str, int], actor: str) -> None:
    if not mapping:
        return
    now = store.now()
    writer = BatchWriter(store)
    for item_id, order in mapping.items():
        writer.add(
            store.ref(collection, item_id),
            {"order": int(order), "updatedAt": now, "updatedBy": actor},
        )
    writer.commit()
    logger.info("order_written collection=%s count=%s", collection, len(mapping))
    publish(ORDER_UPDATED, {"collection": collection, "orders": dict(mapping), "actor": actor})


def move_item(
    store: DocumentStore,
    collection: str,
    scope: Mapping[str, Any],
    item_id: str,
    move: str,
    actor_id: Optional[str],
    *,
    gap: int = ORDER_GAP,
) -> Optional[List[str]]:
    """Move one sibling up or down; return the new id order or None for a no-op.

    Only the moved item and its displaced neighbour are rewritten. When the
    list already carries canonical position keys they receive their new
    position keys; otherwise the two exchange their current keys. If the two
    share a key the whole list is rewritten with position keys.
    """
    actor = require_actor(actor_id)
    direction = direction_for(collection)
    _require_scope(collection, scope)
    try:
        siblings = list_siblings(store, collection, scope)
    except Exception as exc:
        raise QueryFailure(collection, exc) from exc
    before = [s.id for s in siblings]
    moved = move_within_list(siblings, item_id, move)
    if moved is None:
        logger.info("move_item.noop collection=%s id=%s move=%s", collection, item_id, move)
        return None
    after = [s.id for s in moved]
    current = {s.id: getattr(s, "order") for s in siblings}
    canonical = all(
        current[sid] == order_for_position(idx, len(before), direction, gap=gap)
        for idx, sid in enumerate(before)
    )
    if canonical:
        mapping = changed_orders(before, after, direction, gap=gap)
    else:
        a, b = list(changed_orders(before, after, direction, gap=gap))
        if current[a] != current[b]:
            mapping = {a: current[b], b: current[a]}
        else:
            mapping = {
                sid: order_for_position(idx, len(after), direction, gap=gap)
                for idx, sid in enumerate(after)
            }
    _write_orders(store, collection, mapping, actor)
    return after


__all__ = [
    "ASCENDING",
    "DESCENDING",
    "direction_for",
    "list_siblings",
    "next_order_for",
    "create_ordered",
    "apply_order",
    "move_item",
]
