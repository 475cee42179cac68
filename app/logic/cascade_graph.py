"""Declarative parent -> child relationships walked by the cascade engine.

A ``CascadeGraph`` names a root collection and an ordered tuple of
``CascadeEdge`` entries. Each edge selects records in ``collection`` whose
``field`` holds either the root id (``source="root"``) or one of the ids
collected by an earlier edge (``source=<edge name>``). Edges that feed later
edges set ``collect=True``. ``scope`` adds equality filters whose values are
read from the root record, e.g. a section's ``projectId``.

Declaration order must already list a feeding edge before its consumers; the
engine does not sort. Graphs are validated when built, so a bad field or
collection fails at import time rather than mid-cascade.
"""

from __future__ import annotations

from dataclasses import dataclass, field as dc_field
from typing import Dict, Optional, Tuple

from app.logic.errors import InvalidGraphError
from app.models.collections import ALL_COLLECTIONS, FOREIGN_KEYS, Collection

ROOT = "root"


@dataclass(frozen=True)
class CascadeEdge:
    field: str
    collection: str
    source: str = ROOT
    scope: Tuple[Tuple[str, str], ...] = ()
    collect: bool = False
    name: Optional[str] = None

    @property
    def key(self) -> str:
        return self.name or self.collection


@dataclass(frozen=True)
class CascadeGraph:
    name: str
    root_collection: str
    edges: Tuple[CascadeEdge, ...] = dc_field(default_factory=tuple)

    def __post_init__(self) -> None:
        validate_graph(self)

    @property
    def collections(self) -> Tuple[str, ...]:
        return tuple(e.collection for e in self.edges)


def validate_graph(graph: CascadeGraph) -> None:
    """Raise ``InvalidGraphError`` when ``graph`` cannot be resolved."""
    if graph.root_collection not in ALL_COLLECTIONS:
        raise InvalidGraphError(f"{graph.name}: unknown root collection {graph.root_collection!r}")
    root_fields = FOREIGN_KEYS.get(graph.root_collection, frozenset()) | {"id"}
    collecting: set[str] = set()
    seen: set[str] = set()
    for idx, edge in enumerate(graph.edges):
        where = f"{graph.name} edge {idx} ({edge.key})"
        if edge.key in seen:
            raise InvalidGraphError(f"{where}: duplicate edge name")
        seen.add(edge.key)
        if edge.collection not in ALL_COLLECTIONS:
            raise InvalidGraphError(f"{where}: unknown collection {edge.collection!r}")
        child_fields = FOREIGN_KEYS.get(edge.collection, frozenset())
        if edge.field not in child_fields:
            raise InvalidGraphError(f"{where}: {edge.collection} has no foreign key {edge.field!r}")
        if edge.source != ROOT and edge.source not in collecting:
            raise InvalidGraphError(
                f"{where}: source {edge.source!r} is not an earlier collecting edge"
            )
        for child_field, root_field in edge.scope:
            if child_field not in child_fields:
                raise InvalidGraphError(f"{where}: scope field {child_field!r} not on {edge.collection}")
            if root_field not in root_fields:
                raise InvalidGraphError(
                    f"{where}: scope source {root_field!r} not on {graph.root_collection}"
                )
        if edge.collect:
            collecting.add(edge.key)


PROJECT_GRAPH = CascadeGraph(
    name="project",
    root_collection=Collection.PROJECTS,
    edges=(
        CascadeEdge("projectId", Collection.PROJECT_PARTICIPANTS),
        CascadeEdge("projectId", Collection.WELD_LOGS, collect=True),
        CascadeEdge(
            "weldLogId",
            Collection.WELDS,
            source=Collection.WELD_LOGS,
            scope=(("projectId", "id"),),
        ),
        CascadeEdge("projectId", Collection.PROJECT_DOCUMENT_SECTIONS),
        CascadeEdge("projectId", Collection.PROJECT_DOCUMENTS),
        CascadeEdge("projectId", Collection.WELD_LOG_DOCUMENTS),
    ),
)

WELD_LOG_GRAPH = CascadeGraph(
    name="weld_log",
    root_collection=Collection.WELD_LOGS,
    edges=(
        CascadeEdge("weldLogId", Collection.WELDS),
        CascadeEdge("weldLogId", Collection.WELD_LOG_DOCUMENTS),
    ),
)

DOCUMENT_LIBRARY_GRAPH = CascadeGraph(
    name="document_library",
    root_collection=Collection.DOCUMENT_LIBRARY,
    edges=(
        CascadeEdge("libraryId", Collection.LIBRARY_DOCUMENT_SECTIONS),
        CascadeEdge("libraryId", Collection.LIBRARY_DOCUMENTS),
    ),
)

PROJECT_SECTION_GRAPH = CascadeGraph(
    name="project_section",
    root_collection=Collection.PROJECT_DOCUMENT_SECTIONS,
    edges=(
        CascadeEdge(
            "sectionId",
            Collection.PROJECT_DOCUMENTS,
            scope=(("projectId", "projectId"),),
        ),
    ),
)

LIBRARY_SECTION_GRAPH = CascadeGraph(
    name="library_section",
    root_collection=Collection.LIBRARY_DOCUMENT_SECTIONS,
    edges=(
        CascadeEdge(
            "sectionId",
            Collection.LIBRARY_DOCUMENTS,
            scope=(("libraryId", "libraryId"),),
        ),
    ),
)

GRAPHS: Dict[str, CascadeGraph] = {
    g.name: g
    for g in (
        PROJECT_GRAPH,
        WELD_LOG_GRAPH,
        DOCUMENT_LIBRARY_GRAPH,
        PROJECT_SECTION_GRAPH,
        LIBRARY_SECTION_GRAPH,
    )
}


def get_graph(name: str) -> CascadeGraph:
    try:
        return GRAPHS[name]
    except KeyError:
        raise InvalidGraphError(f"no cascade graph named {name!r}") from None


__all__ = [
    "ROOT",
    "CascadeEdge",
    "CascadeGraph",
    "validate_graph",
    "PROJECT_GRAPH",
    "WELD_LOG_GRAPH",
    "DOCUMENT_LIBRARY_GRAPH",
    "PROJECT_SECTION_GRAPH",
    "LIBRARY_SECTION_GRAPH",
    "GRAPHS",
    "get_graph",
]
