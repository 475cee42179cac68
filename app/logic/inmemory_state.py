"""In-memory document store (test/dev only).

Holds entity documents per collection in plain dicts and implements the
``DocumentStore`` contract, including the store's filter-size and write-group
limits. Issued queries and committed write groups are recorded so tests can
observe how the engine drives the store, and failures can be injected at a
given query or group to exercise partial-failure paths.
"""

from __future__ import annotations

import copy
import logging
import uuid
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from app.logic.store import (
    DEFAULT_BATCH_LIMIT,
    DEFAULT_IN_QUERY_LIMIT,
    DocRef,
    Filter,
    has_field,
    matches,
    sort_key,
    utc_timestamp,
    validate_filters,
)
from app.models.collections import Status
from app.models.entity import Entity

logger = logging.getLogger(__name__)

# Process-wide documents used by the app when no store is injected:
# collection -> id -> document dict
DOCUMENTS: Dict[str, Dict[str, Dict[str, Any]]] = {}


class InMemoryWriteGroup:
    def __init__(self, store: "InMemoryDocumentStore") -> None:
        self._store = store
        self._ops: List[Tuple[DocRef, Dict[str, Any]]] = []
        self._committed = False

    def __len__(self) -> int:
        return len(self._ops)

    def update(self, ref: DocRef, fields: Dict[str, Any]) -> None:
        if self._committed:
            raise RuntimeError("write group already committed")
        if len(self._ops) >= self._store.batch_limit:
            raise ValueError(f"write group exceeds {self._store.batch_limit} operations")
        self._ops.append((ref, dict(fields)))

    def commit(self) -> None:
        if self._committed:
            raise RuntimeError("write group already committed")
        self._store._commit_group(self._ops)
        self._committed = True


class InMemoryDocumentStore:
    """Dict-backed ``DocumentStore``.

    ``fail_on_query`` is a predicate over ``(collection, filters)``; when it
    returns True the query raises. ``fail_on_group`` is the 1-based number of
    the write-group commit that should raise.
    """

    def __init__(
        self,
        documents: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None,
        *,
        in_query_limit: int = DEFAULT_IN_QUERY_LIMIT,
        batch_limit: int = DEFAULT_BATCH_LIMIT,
    ) -> None:
        self.documents = documents if documents is not None else {}
        self.in_query_limit = int(in_query_limit)
        self.batch_limit = int(batch_limit)
        self.queries: List[Tuple[str, Tuple[Filter, ...]]] = []
        self.committed_groups: List[List[Tuple[DocRef, Dict[str, Any]]]] = []
        self.fail_on_query: Optional[Callable[[str, Sequence[Filter]], bool]] = None
        self.fail_on_group: Optional[int] = None
        self._commit_attempts = 0

    # Seeding and inspection helpers
    def put(self, collection: str, entity_id: str, **fields: Any) -> Dict[str, Any]:
        doc = {"id": entity_id, "status": Status.ACTIVE}
        doc.update(fields)
        self.documents.setdefault(collection, {})[entity_id] = doc
        return doc

    def raw(self, collection: str, entity_id: str) -> Optional[Dict[str, Any]]:
        return self.documents.get(collection, {}).get(entity_id)

    def statuses(self, collection: str) -> Dict[str, str]:
        return {k: v.get("status") for k, v in self.documents.get(collection, {}).items()}

    @property
    def writes(self) -> int:
        return sum(len(g) for g in self.committed_groups)

    def reset_observations(self) -> None:
        self.queries.clear()
        self.committed_groups.clear()
        self._commit_attempts = 0

    def clear(self) -> None:
        self.documents.clear()
        self.reset_observations()

    # DocumentStore contract
    def ref(self, collection: str, entity_id: str) -> DocRef:
        return DocRef(collection, str(entity_id))

    def now(self) -> str:
        return utc_timestamp()

    def get(self, ref: DocRef) -> Optional[Entity]:
        doc = self.raw(ref.collection, ref.id)
        return Entity(**copy.deepcopy(doc)) if doc is not None else None

    def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        exclude_status: Optional[str] = Status.DELETED,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Entity]:
        filters = tuple(filters)
        validate_filters(filters, self.in_query_limit)
        self.queries.append((collection, filters))
        if self.fail_on_query is not None and self.fail_on_query(collection, filters):
            raise ConnectionError(f"injected query failure on {collection}")
        rows = [
            Entity(**copy.deepcopy(doc))
            for doc in self.documents.get(collection, {}).values()
            if (exclude_status is None or doc.get("status") != exclude_status) and matches(doc, filters)
        ]
        if order_by:
            rows = [r for r in rows if has_field(r, order_by)]
            rows.sort(key=sort_key(order_by), reverse=descending)
        if limit is not None:
            rows = rows[: int(limit)]
        return rows

    def max_order(self, collection: str, filters: Sequence[Filter] = (), field: str = "order") -> Optional[Any]:
        """Highest ``field`` among non-deleted matches, or None when none carry it."""
        top = self.query(
            collection,
            filters,
            exclude_status=Status.DELETED,
            order_by=field,
            descending=True,
            limit=1,
        )
        return getattr(top[0], field) if top else None

    def create(self, collection: str, fields: Dict[str, Any], entity_id: Optional[str] = None) -> Entity:
        new_id = str(entity_id or uuid.uuid4())
        if new_id in self.documents.get(collection, {}):
            raise ValueError(f"{collection}/{new_id} already exists")
        doc = {"status": Status.ACTIVE}
        doc.update(fields)
        doc["id"] = new_id
        self.documents.setdefault(collection, {})[new_id] = doc
        return Entity(**copy.deepcopy(doc))

    def new_write_group(self) -> InMemoryWriteGroup:
        return InMemoryWriteGroup(self)

    def _commit_group(self, ops: List[Tuple[DocRef, Dict[str, Any]]]) -> None:
        self._commit_attempts += 1
        if self.fail_on_group is not None and self._commit_attempts == self.fail_on_group:
            raise ConnectionError(f"injected commit failure on group {self._commit_attempts}")
        # All-or-nothing: an update to a missing document fails the whole group
        for ref, _ in ops:
            if self.raw(ref.collection, ref.id) is None:
                raise KeyError(f"no document to update: {ref}")
        for ref, fields in ops:
            self.documents[ref.collection][ref.id].update(fields)
        self.committed_groups.append(list(ops))
        logger.debug("inmemory.commit ops=%s", len(ops))


# Default process-wide store over DOCUMENTS
DEFAULT_STORE = InMemoryDocumentStore(DOCUMENTS)


__all__ = [
    "DOCUMENTS",
    "DEFAULT_STORE",
    "InMemoryDocumentStore",
    "InMemoryWriteGroup",
]
