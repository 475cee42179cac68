"""Cascading soft delete over a declarative ``CascadeGraph``.

One generic engine replaces per-root delete functions. A call walks

    Start -> SelectRoot -> ProcessEdge(0..E-1) -> Commit -> Done

and moves to Failed from SelectRoot, any ProcessEdge or Commit. All reads
happen before the first write, so a read failure leaves the store untouched.
A commit failure leaves earlier write groups applied (see ``BatchWriter``).

Records already in ``deleted`` status are never enqueued, so re-running a
partially applied or completed cascade only writes what is still missing.
Leaf edges exclude them in the query itself; edges that collect parent ids
read them too, so their children stay reachable on a re-run.
"""

from __future__ import annotations

import enum
import logging
from typing import Any, Dict, List, Optional, Sequence

from app.logic.batch_writer import BatchWriter
from app.logic.cascade_graph import ROOT, CascadeEdge, CascadeGraph
from app.logic.chunker import chunk
from app.logic.errors import (
    AuthRequiredError,
    EntityNotFound,
    LifecycleError,
    QueryFailure,
)
from app.logic.events import ENTITY_DELETED, cascade_deleted, publish
from app.logic.store import DocRef, DocumentStore, Filter, eq, in_
from app.models.collections import MATERIAL_COLLECTIONS, Status
from app.models.entity import CascadeResult, DeleteResult, Entity

logger = logging.getLogger(__name__)


class CascadeState(str, enum.Enum):
    START = "start"
    SELECT_ROOT = "select_root"
    PROCESS_EDGE = "process_edge"
    COMMIT = "commit"
    DONE = "done"
    FAILED = "failed"


def require_actor(actor_id: Optional[str]) -> str:
    if not actor_id or not str(actor_id).strip():
        raise AuthRequiredError()
    return str(actor_id)


def soft_delete_fields(actor_id: str, now: Any) -> Dict[str, Any]:
    return {
        "status": Status.DELETED,
        "deletedAt": now,
        "deletedBy": actor_id,
        "updatedAt": now,
        "updatedBy": actor_id,
    }


class _CascadeRun:
    """Mutable state for one ``delete_root`` invocation."""

    def __init__(self, engine: "CascadeDeleteEngine", graph: CascadeGraph, root_id: str, actor_id: str) -> None:
        self.engine = engine
        self.store = engine.store
        self.graph = graph
        self.root_id = root_id
        self.actor_id = actor_id
        self.state = CascadeState.START
        self.writer = BatchWriter(self.store, engine.batch_limit)
        self.fields = soft_delete_fields(actor_id, self.store.now())
        self.collected: Dict[str, List[str]] = {}
        self._collected_ids: Dict[str, set[str]] = {}
        self.enqueued: set[DocRef] = set()
        self.counts: Dict[str, int] = {}
        self.queries = 0
        self.root: Optional[Entity] = None
        self.failed_in: Optional[CascadeState] = None

    def _move(self, state: CascadeState, **info: Any) -> None:
        self.state = state
        logger.debug(
            "cascade.state graph=%s root_id=%s state=%s %s",
            self.graph.name,
            self.root_id,
            state.value,
            " ".join(f"{k}={v}" for k, v in info.items()),
        )

    def _enqueue(self, ref: DocRef) -> None:
        if ref in self.enqueued:
            return
        self.enqueued.add(ref)
        self.writer.add(ref, self.fields)
        self.counts[ref.collection] = self.counts.get(ref.collection, 0) + 1

    def _read(
        self,
        collection: str,
        filters: Sequence[Filter],
        exclude_status: Optional[str] = Status.DELETED,
    ) -> List[Entity]:
        self.queries += 1
        try:
            return self.store.query(collection, filters, exclude_status=exclude_status)
        except LifecycleError:
            raise
        except Exception as exc:
            raise QueryFailure(collection, exc) from exc

    def select_root(self) -> None:
        self._move(CascadeState.SELECT_ROOT)
        ref = self.store.ref(self.graph.root_collection, self.root_id)
        self.queries += 1
        try:
            root = self.store.get(ref)
        except Exception as exc:
            raise QueryFailure(self.graph.root_collection, exc) from exc
        if root is None:
            raise EntityNotFound(self.graph.root_collection, self.root_id)
        self.root = root
        if root.is_deleted:
            # Already deleted: still walk edges so an interrupted cascade completes
            logger.info("cascade.root_already_deleted graph=%s root_id=%s", self.graph.name, self.root_id)
            return
        self._enqueue(ref)

    def _scope_filters(self, edge: CascadeEdge) -> List[Filter]:
        filters: List[Filter] = []
        for child_field, root_field in edge.scope:
            value = self.root_id if root_field == "id" else getattr(self.root, root_field, None)
            if value is None:
                logger.warning(
                    "cascade.scope_missing graph=%s root_id=%s field=%s; filtering without it",
                    self.graph.name,
                    self.root_id,
                    root_field,
                )
                continue
            filters.append(eq(child_field, value))
        return filters

    def process_edge(self, index: int, edge: CascadeEdge) -> None:
        self._move(CascadeState.PROCESS_EDGE, edge=index, collection=edge.collection)
        scope = self._scope_filters(edge)
        # Collecting edges also read deleted parents so a resumed cascade still
        # reaches children left behind by an earlier partial commit.
        exclude = None if edge.collect else Status.DELETED
        matched: List[Entity] = []
        if edge.source == ROOT:
            matched = self._read(edge.collection, [eq(edge.field, self.root_id), *scope], exclude)
        else:
            parent_ids = self.collected.get(edge.source, [])
            for ids in chunk(parent_ids, self.engine.in_query_limit):
                matched.extend(self._read(edge.collection, [in_(edge.field, ids), *scope], exclude))
        for entity in matched:
            if not entity.is_deleted:
                self._enqueue(self.store.ref(edge.collection, entity.id))
        if edge.collect:
            bucket = self.collected.setdefault(edge.key, [])
            seen = self._collected_ids.setdefault(edge.key, set())
            for entity in matched:
                if entity.id not in seen:
                    seen.add(entity.id)
                    bucket.append(entity.id)
        logger.info(
            "cascade.edge graph=%s root_id=%s collection=%s field=%s matched=%s",
            self.graph.name,
            self.root_id,
            edge.collection,
            edge.field,
            len(matched),
        )

    def commit(self) -> int:
        self._move(CascadeState.COMMIT, operations=self.writer.operation_count)
        return self.writer.commit()

    def run(self) -> CascadeResult:
        try:
            self.select_root()
            for index, edge in enumerate(self.graph.edges):
                self.process_edge(index, edge)
            groups = self.commit()
        except Exception:
            self.failed_in = self.state
            self._move(CascadeState.FAILED)
            raise
        self._move(CascadeState.DONE)
        return CascadeResult(
            root=self.graph.name,
            root_collection=self.graph.root_collection,
            root_id=self.root_id,
            deleted=dict(self.counts),
            total_deleted=sum(self.counts.values()),
            groups_committed=groups,
            queries_issued=self.queries,
        )


class CascadeDeleteEngine:
    """Soft-delete roots and their dependents through a ``DocumentStore``.

    ``in_query_limit`` and ``batch_limit`` default to the store's documented
    limits and may be lowered, never raised, by configuration.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        in_query_limit: Optional[int] = None,
        batch_limit: Optional[int] = None,
    ) -> None:
        self.store = store
        self.in_query_limit = min(int(in_query_limit or store.in_query_limit), store.in_query_limit)
        self.batch_limit = min(int(batch_limit or store.batch_limit), store.batch_limit)

    def delete_root(self, graph: CascadeGraph, root_id: str, actor_id: Optional[str]) -> CascadeResult:
        """Mark the root and every transitive dependent as deleted.

        Raises ``AuthRequiredError`` without an actor, ``EntityNotFound`` for an
        unknown root, ``QueryFailure`` when a read fails (nothing written) and
        ``BatchCommitFailure`` when a write group fails (earlier groups kept).
        """
        actor = require_actor(actor_id)
        logger.info("cascade.start graph=%s root_id=%s actor=%s", graph.name, root_id, actor)
        run = _CascadeRun(self, graph, str(root_id), actor)
        try:
            result = run.run()
        except Exception as exc:
            logger.error(
                "cascade.failed graph=%s root_id=%s failed_in=%s error=%s",
                graph.name,
                root_id,
                run.failed_in.value if run.failed_in else None,
                exc,
            )
            raise
        logger.info(
            "cascade.done graph=%s root_id=%s deleted=%s groups=%s",
            graph.name,
            root_id,
            result.total_deleted,
            result.groups_committed,
        )
        publish(
            cascade_deleted(graph.name),
            {"root_id": result.root_id, "deleted": result.deleted, "actor": actor},
        )
        return result

    def delete_entity(self, collection: str, entity_id: str, actor_id: Optional[str]) -> DeleteResult:
        """Soft-delete a single record without touching any dependents."""
        actor = require_actor(actor_id)
        ref = self.store.ref(collection, entity_id)
        try:
            current = self.store.get(ref)
        except Exception as exc:
            raise QueryFailure(collection, exc) from exc
        if current is None:
            raise EntityNotFound(collection, entity_id)
        if current.is_deleted:
            logger.info("delete_entity.already_deleted ref=%s", ref)
            return DeleteResult(collection=collection, id=str(entity_id), deleted=False)
        writer = BatchWriter(self.store, self.batch_limit)
        writer.add(ref, soft_delete_fields(actor, self.store.now()))
        writer.commit()
        logger.info("delete_entity.done ref=%s actor=%s", ref, actor)
        publish(ENTITY_DELETED, {"collection": collection, "id": str(entity_id), "actor": actor})
        return DeleteResult(collection=collection, id=str(entity_id), deleted=True)

    def delete_material(self, material_type: str, material_id: str, actor_id: Optional[str]) -> DeleteResult:
        try:
            collection = MATERIAL_COLLECTIONS[material_type]
        except KeyError:
            raise ValueError(f"Invalid material type: {material_type}") from None
        return self.delete_entity(collection, material_id, actor_id)


__all__ = [
    "CascadeState",
    "CascadeDeleteEngine",
    "require_actor",
    "soft_delete_fields",
]
