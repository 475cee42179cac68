"""SQL-backed document store.

Stores every collection's documents in the ``entity_document`` table (see
``migrations/001_entity_document.sql``) and implements the ``DocumentStore``
contract with SQLAlchemy Core. Foreign-key filters are evaluated against the
JSON body; ``status`` is a real column so the active-only reads the cascade
engine issues stay index-friendly. A write group is one transaction.
"""

from __future__ import annotations

import copy
import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import JSON, Column, MetaData, String, Table, and_, insert, select, update
from sqlalchemy.engine import Engine

from app.db.base import get_engine
from app.logic.store import (
    DEFAULT_BATCH_LIMIT,
    DEFAULT_IN_QUERY_LIMIT,
    OP_EQ,
    DocRef,
    Filter,
    utc_timestamp,
    validate_filters,
)
from app.models.collections import Status
from app.models.entity import Entity

logger = logging.getLogger(__name__)

metadata = MetaData()

entity_document = Table(
    "entity_document",
    metadata,
    Column("collection", String(64), primary_key=True),
    Column("id", String(128), primary_key=True),
    Column("status", String(16), nullable=False),
    Column("data", JSON, nullable=False),
)


def _column_for(field: str, sample: Any):
    """Return a SQL expression for ``field``, typed after ``sample``."""
    if field in ("id", "status"):
        return entity_document.c[field]
    element = entity_document.c.data[field]
    if isinstance(sample, bool):
        return element.as_boolean()
    if isinstance(sample, int):
        return element.as_integer()
    if isinstance(sample, float):
        return element.as_float()
    return element.as_string()


def _criterion(f: Filter):
    if f.op == OP_EQ:
        return _column_for(f.field, f.value) == f.value
    values = list(f.value)
    return _column_for(f.field, values[0]).in_(values)


def _to_entity(data: Dict[str, Any]) -> Entity:
    return Entity(**copy.deepcopy(data))


class SqlWriteGroup:
    def __init__(self, store: "SqlDocumentStore") -> None:
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
        """Apply every update in one transaction; any missing document aborts all."""
        if self._committed:
            raise RuntimeError("write group already committed")
        with self._store.engine.begin() as conn:
            for ref, fields in self._ops:
                where = and_(
                    entity_document.c.collection == ref.collection,
                    entity_document.c.id == ref.id,
                )
                row = conn.execute(select(entity_document.c.data).where(where)).fetchone()
                if row is None:
                    raise KeyError(f"no document to update: {ref}")
                data = dict(row[0] or {})
                data.update(fields)
                conn.execute(
                    update(entity_document)
                    .where(where)
                    .values(data=data, status=str(data.get("status") or Status.ACTIVE))
                )
        self._committed = True
        logger.debug("sql_store.commit ops=%s", len(self._ops))


class SqlDocumentStore:
    def __init__(
        self,
        engine: Optional[Engine] = None,
        *,
        in_query_limit: int = DEFAULT_IN_QUERY_LIMIT,
        batch_limit: int = DEFAULT_BATCH_LIMIT,
    ) -> None:
        self.engine = engine or get_engine()
        self.in_query_limit = int(in_query_limit)
        self.batch_limit = int(batch_limit)

    def ref(self, collection: str, entity_id: str) -> DocRef:
        return DocRef(collection, str(entity_id))

    def now(self) -> str:
        return utc_timestamp()

    def get(self, ref: DocRef) -> Optional[Entity]:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(entity_document.c.data).where(
                    and_(
                        entity_document.c.collection == ref.collection,
                        entity_document.c.id == ref.id,
                    )
                )
            ).fetchone()
        return _to_entity(row[0]) if row is not None else None

    def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        exclude_status: Optional[str] = Status.DELETED,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Entity]:
        validate_filters(filters, self.in_query_limit)
        stmt = select(entity_document.c.data).where(entity_document.c.collection == collection)
        if exclude_status is not None:
            stmt = stmt.where(entity_document.c.status != exclude_status)
        for f in filters:
            stmt = stmt.where(_criterion(f))
        if order_by:
            key = entity_document.c.data[order_by].as_float()
            stmt = stmt.where(key.isnot(None))
            stmt = stmt.order_by(key.desc() if descending else key.asc())
            stmt = stmt.order_by(entity_document.c.id.desc() if descending else entity_document.c.id.asc())
        if limit is not None:
            stmt = stmt.limit(int(limit))
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_to_entity(r[0]) for r in rows]

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
        data: Dict[str, Any] = {"status": Status.ACTIVE}
        data.update(fields)
        data["id"] = new_id
        with self.engine.begin() as conn:
            conn.execute(
                insert(entity_document).values(
                    collection=collection,
                    id=new_id,
                    status=str(data["status"]),
                    data=data,
                )
            )
        return _to_entity(data)

    def new_write_group(self) -> SqlWriteGroup:
        return SqlWriteGroup(self)


__all__ = [
    "entity_document",
    "metadata",
    "SqlDocumentStore",
    "SqlWriteGroup",
]
