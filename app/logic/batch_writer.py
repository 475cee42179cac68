"""Bounded write groups over a document store.

Updates are accumulated into groups of at most ``limit`` operations and
flushed in insertion order, one group at a time. There is no cross-group
transaction: when group *k* fails, groups before it stay applied and groups
after it are never sent. Callers recover by re-running the same operation,
which is safe because cascade selection skips records already deleted.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from app.logic.errors import BatchCommitFailure
from app.logic.store import DocRef, DocumentStore

logger = logging.getLogger(__name__)


class BatchWriter:
    def __init__(self, store: DocumentStore, limit: Optional[int] = None) -> None:
        self._store = store
        self.limit = int(limit if limit is not None else store.batch_limit)
        if self.limit <= 0:
            raise ValueError(f"batch limit must be positive, got {self.limit}")
        self._sealed: List[List[Tuple[DocRef, Dict[str, Any]]]] = []
        self._current: List[Tuple[DocRef, Dict[str, Any]]] = []
        self._committed = False

    @property
    def operation_count(self) -> int:
        return sum(len(g) for g in self._sealed) + len(self._current)

    @property
    def group_sizes(self) -> List[int]:
        sizes = [len(g) for g in self._sealed]
        if self._current:
            sizes.append(len(self._current))
        return sizes

    def add(self, ref: DocRef, fields: Dict[str, Any]) -> None:
        if self._committed:
            raise RuntimeError("batch writer already committed")
        self._current.append((ref, dict(fields)))
        if len(self._current) >= self.limit:
            self._sealed.append(self._current)
            self._current = []

    def commit(self) -> int:
        """Flush every group sequentially; return the number of groups written.

        Raises ``BatchCommitFailure`` chained to the store error on the first
        failing group.
        """
        if self._committed:
            raise RuntimeError("batch writer already committed")
        self._committed = True
        groups = list(self._sealed)
        if self._current:
            groups.append(self._current)
        committed = 0
        for index, ops in enumerate(groups, start=1):
            group = self._store.new_write_group()
            for ref, fields in ops:
                group.update(ref, fields)
            try:
                group.commit()
            except Exception as exc:
                logger.error(
                    "batch_writer.commit_failed group=%s of=%s committed=%s",
                    index,
                    len(groups),
                    committed,
                    exc_info=True,
                )
                raise BatchCommitFailure(index, committed, exc) from exc
            committed += 1
            logger.info("batch_writer.group_committed group=%s of=%s ops=%s", index, len(groups), len(ops))
        return committed


__all__ = ["BatchWriter"]
