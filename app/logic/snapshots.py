"""Live snapshot feed for list views.

Pages render collections from a lazy sequence of snapshots rather than from
the one-shot reads the cascade engine uses. Each iteration over a
``SnapshotFeed`` starts a fresh sequence, so a consumer that stops can simply
iterate again to resume observing.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Iterator, List, Mapping, Optional

from app.logic.store import DocumentStore, eq
from app.models.collections import ORDERABLE_COLLECTIONS, Status
from app.models.entity import Entity

logger = logging.getLogger(__name__)


class SnapshotFeed:
    """Restartable iterable of non-deleted records matching ``filters``.

    ``max_snapshots`` bounds each iteration (None means unbounded);
    ``interval`` is the pause in seconds between polls; with ``distinct``
    only snapshots that differ from the previous one are yielded.
    """

    def __init__(
        self,
        store: DocumentStore,
        collection: str,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        interval: float = 0.0,
        max_snapshots: Optional[int] = None,
        distinct: bool = False,
    ) -> None:
        self.store = store
        self.collection = collection
        self.filters = dict(filters or {})
        self.interval = float(interval)
        self.max_snapshots = max_snapshots
        self.distinct = distinct

    def read(self) -> List[Entity]:
        """One snapshot: read order for orderable collections, id order otherwise."""
        direction = ORDERABLE_COLLECTIONS.get(self.collection)
        rows = self.store.query(
            self.collection,
            [eq(k, v) for k, v in self.filters.items()],
            exclude_status=Status.DELETED,
        )
        if direction is None:
            return sorted(rows, key=lambda e: e.id)
        ordered = [r for r in rows if getattr(r, "order", None) is not None]
        unordered = [r for r in rows if getattr(r, "order", None) is None]
        ordered.sort(key=lambda e: (e.order, e.id), reverse=(direction == "descending"))
        return ordered + sorted(unordered, key=lambda e: e.id)

    def __iter__(self) -> Iterator[List[Entity]]:
        emitted = 0
        previous: Optional[List[dict]] = None
        while self.max_snapshots is None or emitted < self.max_snapshots:
            snapshot = self.read()
            dumped = [e.model_dump() for e in snapshot]
            if not (self.distinct and dumped == previous):
                emitted += 1
                yield snapshot
            previous = dumped
            if self.interval and (self.max_snapshots is None or emitted < self.max_snapshots):
                time.sleep(self.interval)
        logger.debug("snapshot_feed.exhausted collection=%s emitted=%s", self.collection, emitted)


__all__ = ["SnapshotFeed"]
