"""Document store contract used by the lifecycle engine.

The engine only ever talks to a store through this surface: equality and
"is one of" filters, a status exclusion, bounded write groups, document
references and a store-assigned timestamp. Two implementations exist:
``app.logic.repository_entities.SqlDocumentStore`` and
``app.logic.inmemory_state.InMemoryDocumentStore``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from app.models.collections import Status
from app.models.entity import Entity

# Documented store limits; treated as configuration defaults.
DEFAULT_IN_QUERY_LIMIT = 30
DEFAULT_BATCH_LIMIT = 500

OP_EQ = "=="
OP_IN = "in"


@dataclass(frozen=True)
class DocRef:
    collection: str
    id: str

    def __str__(self) -> str:
        return f"{self.collection}/{self.id}"


@dataclass(frozen=True)
class Filter:
    field: str
    op: str
    value: Any


def eq(field: str, value: Any) -> Filter:
    return Filter(field, OP_EQ, value)


def in_(field: str, values: Sequence[Any]) -> Filter:
    return Filter(field, OP_IN, tuple(values))


def validate_filters(filters: Sequence[Filter], in_query_limit: int) -> None:
    """Reject filters the backing store would refuse.

    An "is one of" filter must carry between 1 and ``in_query_limit`` values.
    """
    for f in filters:
        if f.op == OP_IN:
            count = len(f.value)
            if count == 0:
                raise ValueError(f"'in' filter on {f.field} must not be empty")
            if count > in_query_limit:
                raise ValueError(
                    f"'in' filter on {f.field} has {count} values; limit is {in_query_limit}"
                )
        elif f.op != OP_EQ:
            raise ValueError(f"unsupported filter operator {f.op!r}")


def matches(data: Dict[str, Any], filters: Sequence[Filter]) -> bool:
    for f in filters:
        value = data.get(f.field)
        if f.op == OP_EQ and value != f.value:
            return False
        if f.op == OP_IN and value not in f.value:
            return False
    return True


def utc_timestamp() -> str:
    """RFC3339 UTC timestamp with millisecond precision and trailing 'Z'."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


class WriteGroup(Protocol):
    """A bounded set of field updates applied as one indivisible request."""

    def update(self, ref: DocRef, fields: Dict[str, Any]) -> None: ...

    def commit(self) -> None: ...

    def __len__(self) -> int: ...


class DocumentStore(Protocol):
    in_query_limit: int
    batch_limit: int

    def ref(self, collection: str, entity_id: str) -> DocRef: ...

    def now(self) -> Any: ...

    def get(self, ref: DocRef) -> Optional[Entity]: ...

    def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        exclude_status: Optional[str] = Status.DELETED,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Entity]: ...

    def max_order(self, collection: str, filters: Sequence[Filter] = (), field: str = "order") -> Optional[Any]: ...

    def create(self, collection: str, fields: Dict[str, Any], entity_id: Optional[str] = None) -> Entity: ...

    def new_write_group(self) -> WriteGroup: ...


def has_field(entity: Entity, field: str) -> bool:
    return getattr(entity, field, None) is not None


def sort_key(field: str):
    """Sort key for records ordered by ``field``, ties broken by id.

    Callers drop records lacking ``field`` first, as the document store does
    for ordered queries.
    """

    def key(entity: Entity) -> Tuple[Any, str]:
        return (getattr(entity, field), entity.id)

    return key


__all__ = [
    "DEFAULT_IN_QUERY_LIMIT",
    "DEFAULT_BATCH_LIMIT",
    "OP_EQ",
    "OP_IN",
    "DocRef",
    "Filter",
    "eq",
    "in_",
    "validate_filters",
    "matches",
    "utc_timestamp",
    "WriteGroup",
    "DocumentStore",
    "has_field",
    "sort_key",
]
