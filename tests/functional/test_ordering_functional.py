"""Functional tests for sparse order allocation and persisted list ordering."""

from __future__ import annotations

import pytest

from app.logic import events, list_ordering
from app.logic.errors import AuthRequiredError, QueryFailure
from app.logic.inmemory_state import InMemoryDocumentStore
from app.logic.order_allocator import (
    ASCENDING,
    DESCENDING,
    DOWN,
    UP,
    changed_orders,
    fallback_order,
    move_within_list,
    next_order,
    order_for_position,
    order_values_for_batch,
    reorder,
)
from app.logic.snapshots import SnapshotFeed
from app.logic.store import eq
from app.models.collections import Collection, Status

from conftest import ACTOR

SECTIONS = Collection.PROJECT_DOCUMENT_SECTIONS
DOCUMENTS = Collection.PROJECT_DOCUMENTS


def _orders(store: InMemoryDocumentStore, collection: str) -> dict:
    return {k: v.get("order") for k, v in store.documents.get(collection, {}).items()}


# ---------------------------------------------------------------------------
# Pure allocation
# ---------------------------------------------------------------------------


def test_batch_values_follow_list_direction():
    assert order_values_for_batch(3, ASCENDING) == [1000, 2000, 3000]
    assert order_values_for_batch(3, DESCENDING) == [3000, 2000, 1000]
    assert order_values_for_batch(0, ASCENDING) == []
    assert order_values_for_batch(2, ASCENDING, gap=10) == [10, 20]


def test_next_order():
    assert next_order(ASCENDING, None) == 1000
    assert next_order(DESCENDING, None) == 1000
    assert next_order(ASCENDING, 3000) == 4000
    assert next_order(DESCENDING, 3000) == 4000
    assert next_order(ASCENDING, 7, gap=5, base=1) == 12
    with pytest.raises(ValueError):
        next_order("sideways", None)


def test_position_keys():
    assert order_for_position(0, 3, ASCENDING) == 1000
    assert order_for_position(0, 3, DESCENDING) == 3000
    assert order_for_position(2, 3, DESCENDING) == 1000


def test_move_within_list():
    items = ["A", "B", "C"]
    records = [{"id": i} for i in items]
    assert move_within_list(records, "A", UP) is None
    assert move_within_list(records, "C", DOWN) is None
    assert move_within_list(records, "Z", UP) is None
    assert [r["id"] for r in move_within_list(records, "B", UP)] == ["B", "A", "C"]
    assert [r["id"] for r in move_within_list(records, "B", DOWN)] == ["A", "C", "B"]
    assert [r["id"] for r in records] == items
    with pytest.raises(ValueError):
        move_within_list(records, "B", "left")


def test_reorder_and_changed_orders():
    assert reorder(["a", "b", "c"], 0, 2) == ["b", "c", "a"]
    assert reorder(["a", "b", "c"], 0, 5) == ["a", "b", "c"]
    assert changed_orders(["a", "b", "c"], ["b", "a", "c"], ASCENDING) == {"b": 1000, "a": 2000}
    assert changed_orders(["a", "b", "c"], ["a", "c", "b"], DESCENDING) == {"c": 2000, "b": 1000}


def test_fallback_order_is_strictly_increasing():
    values = [fallback_order() for _ in range(50)]
    assert values == sorted(set(values))
    assert values[0] > 1_600_000_000_000


# ---------------------------------------------------------------------------
# Persisted ordering
# ---------------------------------------------------------------------------


def test_direction_for_rejects_non_orderable_collection():
    assert list_ordering.direction_for(SECTIONS) == ASCENDING
    assert list_ordering.direction_for(DOCUMENTS) == DESCENDING
    with pytest.raises(ValueError):
        list_ordering.direction_for(Collection.WELDS)


def test_sections_are_created_at_the_end(store: InMemoryDocumentStore):
    scope = {"projectId": "p1"}
    first = list_ordering.create_ordered(store, SECTIONS, scope, {"title": "General"}, ACTOR)
    second = list_ordering.create_ordered(store, SECTIONS, scope, {"title": "Drawings"}, ACTOR)
    other = list_ordering.create_ordered(store, SECTIONS, {"projectId": "p2"}, {"title": "Other"}, ACTOR)

    assert (first.order, second.order, other.order) == (1000, 2000, 1000)
    assert first.projectId == "p1"
    assert first.createdBy == ACTOR
    assert first.status == Status.ACTIVE
    assert [s.id for s in list_ordering.list_siblings(store, SECTIONS, scope)] == [first.id, second.id]


def test_documents_list_newest_first(store: InMemoryDocumentStore):
    scope = {"projectId": "p1", "sectionId": "s1"}
    older = list_ordering.create_ordered(store, DOCUMENTS, scope, {}, ACTOR)
    newer = list_ordering.create_ordered(store, DOCUMENTS, scope, {}, ACTOR)

    assert newer.order == older.order + 1000
    assert [d.id for d in list_ordering.list_siblings(store, DOCUMENTS, scope)] == [newer.id, older.id]


def test_deleted_siblings_do_not_count(store: InMemoryDocumentStore):
    store.put(SECTIONS, "s1", projectId="p1", order=1000)
    store.put(SECTIONS, "s2", projectId="p1", order=9000, status=Status.DELETED)

    created = list_ordering.create_ordered(store, SECTIONS, {"projectId": "p1"}, {}, ACTOR)

    assert created.order == 2000
    assert [s.id for s in list_ordering.list_siblings(store, SECTIONS, {"projectId": "p1"})] == ["s1", created.id]


def test_ordering_requires_the_parent_scope(store: InMemoryDocumentStore):
    store.put(SECTIONS, "s1", projectId="p1", order=1000)
    store.put(SECTIONS, "s2", projectId="p1", order=2000)

    with pytest.raises(ValueError, match="projectId"):
        list_ordering.create_ordered(store, SECTIONS, {}, {"title": "Loose"}, ACTOR)
    with pytest.raises(ValueError, match="projectId"):
        list_ordering.move_item(store, SECTIONS, {}, "s2", UP, ACTOR)
    with pytest.raises(ValueError, match="projectId"):
        list_ordering.next_order_for(store, SECTIONS, {"projectId": None})
    with pytest.raises(ValueError, match="weldLogId"):
        list_ordering.list_siblings(store, Collection.WELD_LOG_DOCUMENTS, {"projectId": "p1"})
    assert store.writes == 0
    assert len(store.documents[SECTIONS]) == 2


def test_max_order_ignores_deleted_and_unordered_records(store: InMemoryDocumentStore):
    store.put(DOCUMENTS, "d1", projectId="p1", order=1000)
    store.put(DOCUMENTS, "d2", projectId="p1", order=9000, status=Status.DELETED)
    store.put(DOCUMENTS, "d3", projectId="p1")
    store.put(DOCUMENTS, "d4", projectId="p2", order=5000)

    assert store.max_order(DOCUMENTS, [eq("projectId", "p1")]) == 1000
    assert store.max_order(DOCUMENTS, [eq("projectId", "p3")]) is None


def test_failed_sibling_read_falls_back_to_clock(store: InMemoryDocumentStore):
    store.fail_on_query = lambda collection, filters: True

    created = list_ordering.create_ordered(store, SECTIONS, {"projectId": "p1"}, {}, ACTOR)

    assert created.order > 1_600_000_000_000


def test_create_requires_actor(store: InMemoryDocumentStore):
    with pytest.raises(AuthRequiredError):
        list_ordering.create_ordered(store, SECTIONS, {"projectId": "p1"}, {}, None)
    assert store.documents == {}


def test_apply_order_rewrites_position_keys(store: InMemoryDocumentStore):
    for sid in ("a", "b", "c"):
        store.put(SECTIONS, sid, projectId="p1", order=1)
        store.put(DOCUMENTS, sid, projectId="p1", order=1)

    assert list_ordering.apply_order(store, SECTIONS, ["c", "a", "b"], ACTOR) == {"c": 1000, "a": 2000, "b": 3000}
    assert list_ordering.apply_order(store, DOCUMENTS, ["c", "a", "b"], ACTOR) == {"c": 3000, "a": 2000, "b": 1000}
    assert _orders(store, SECTIONS) == {"a": 2000, "b": 3000, "c": 1000}
    assert store.raw(SECTIONS, "a")["updatedBy"] == ACTOR
    published = events.get_buffered_events()
    assert [e["type"] for e in published] == [events.ORDER_UPDATED, events.ORDER_UPDATED]


def test_move_in_canonical_list_rewrites_two_items(store: InMemoryDocumentStore):
    for i, sid in enumerate(("s1", "s2", "s3"), start=1):
        store.put(SECTIONS, sid, projectId="p1", order=i * 1000)

    after = list_ordering.move_item(store, SECTIONS, {"projectId": "p1"}, "s3", UP, ACTOR)

    assert after == ["s1", "s3", "s2"]
    assert store.writes == 2
    assert _orders(store, SECTIONS) == {"s1": 1000, "s2": 3000, "s3": 2000}


def test_move_in_descending_list(store: InMemoryDocumentStore):
    for i, did in enumerate(("d1", "d2", "d3"), start=1):
        store.put(DOCUMENTS, did, projectId="p1", sectionId="s1", order=i * 1000)
    scope = {"projectId": "p1", "sectionId": "s1"}

    after = list_ordering.move_item(store, DOCUMENTS, scope, "d1", UP, ACTOR)

    assert after == ["d3", "d1", "d2"]
    assert _orders(store, DOCUMENTS) == {"d1": 2000, "d2": 1000, "d3": 3000}


def test_move_in_sparse_list_exchanges_keys(store: InMemoryDocumentStore):
    store.put(SECTIONS, "a", projectId="p1", order=1000)
    store.put(SECTIONS, "b", projectId="p1", order=5000)
    store.put(SECTIONS, "c", projectId="p1", order=9000)

    after = list_ordering.move_item(store, SECTIONS, {"projectId": "p1"}, "c", UP, ACTOR)

    assert after == ["a", "c", "b"]
    assert store.writes == 2
    assert _orders(store, SECTIONS) == {"a": 1000, "b": 9000, "c": 5000}


def test_move_with_tied_keys_rewrites_the_list(store: InMemoryDocumentStore):
    store.put(SECTIONS, "a", projectId="p1", order=1000)
    store.put(SECTIONS, "b", projectId="p1", order=1000)
    store.put(SECTIONS, "c", projectId="p1", order=3000)

    after = list_ordering.move_item(store, SECTIONS, {"projectId": "p1"}, "b", UP, ACTOR)

    assert after == ["b", "a", "c"]
    assert _orders(store, SECTIONS) == {"a": 2000, "b": 1000, "c": 3000}


def test_move_at_boundary_is_a_no_op(store: InMemoryDocumentStore):
    store.put(SECTIONS, "a", projectId="p1", order=1000)
    store.put(SECTIONS, "b", projectId="p1", order=2000)

    assert list_ordering.move_item(store, SECTIONS, {"projectId": "p1"}, "a", UP, ACTOR) is None
    assert list_ordering.move_item(store, SECTIONS, {"projectId": "p1"}, "b", DOWN, ACTOR) is None
    assert list_ordering.move_item(store, SECTIONS, {"projectId": "p1"}, "zz", UP, ACTOR) is None
    assert store.writes == 0
    assert events.get_buffered_events() == []


def test_move_surfaces_read_failure(store: InMemoryDocumentStore):
    store.put(SECTIONS, "a", projectId="p1", order=1000)
    store.fail_on_query = lambda collection, filters: True

    with pytest.raises(QueryFailure):
        list_ordering.move_item(store, SECTIONS, {"projectId": "p1"}, "a", DOWN, ACTOR)
    assert store.writes == 0


# ---------------------------------------------------------------------------
# Snapshot feed
# ---------------------------------------------------------------------------


def test_snapshot_feed_reads_in_list_order(store: InMemoryDocumentStore):
    store.put(DOCUMENTS, "old", projectId="p1", order=1000)
    store.put(DOCUMENTS, "new", projectId="p1", order=2000)
    store.put(DOCUMENTS, "gone", projectId="p1", order=3000, status=Status.DELETED)
    store.put(DOCUMENTS, "elsewhere", projectId="p2", order=4000)

    feed = SnapshotFeed(store, DOCUMENTS, {"projectId": "p1"}, max_snapshots=1)

    assert [[e.id for e in snap] for snap in feed] == [["new", "old"]]


def test_snapshot_feed_sorts_unordered_collections_by_id(store: InMemoryDocumentStore):
    store.put(Collection.WELDS, "w2", weldLogId="wl1")
    store.put(Collection.WELDS, "w1", weldLogId="wl1")

    assert [e.id for e in SnapshotFeed(store, Collection.WELDS).read()] == ["w1", "w2"]


def test_snapshot_feed_is_restartable_and_observes_changes(store: InMemoryDocumentStore):
    store.put(SECTIONS, "s1", projectId="p1", order=1000)
    feed = SnapshotFeed(store, SECTIONS, {"projectId": "p1"}, max_snapshots=2, distinct=True)

    stream = iter(feed)
    first = next(stream)
    store.put(SECTIONS, "s2", projectId="p1", order=2000)
    second = next(stream)
    assert [e.id for e in first] == ["s1"]
    assert [e.id for e in second] == ["s1", "s2"]
    with pytest.raises(StopIteration):
        next(stream)

    restarted = SnapshotFeed(store, SECTIONS, {"projectId": "p1"}, max_snapshots=3)
    assert len(list(restarted)) == 3
    assert len(list(restarted)) == 3
