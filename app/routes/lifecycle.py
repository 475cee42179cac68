"""Delete routes for roots with dependents and for standalone records.

Each handler resolves the actor from ``X-Actor-Id`` and delegates to
``CascadeDeleteEngine``. Lifecycle errors propagate to the problem+json
handlers registered in ``app.main``.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header

from app.logic.cascade_delete import CascadeDeleteEngine, require_actor
from app.logic.cascade_graph import (
    DOCUMENT_LIBRARY_GRAPH,
    LIBRARY_SECTION_GRAPH,
    PROJECT_GRAPH,
    PROJECT_SECTION_GRAPH,
    WELD_LOG_GRAPH,
    CascadeGraph,
)
from app.logic.errors import EntityNotFound, QueryFailure
from app.logic.store import DocumentStore
from app.models.collections import Collection
from app.models.entity import CascadeResult, DeleteResult
from app.routes.deps import get_delete_engine, get_store

router = APIRouter()
logger = logging.getLogger(__name__)

ACTOR_HEADER = "X-Actor-Id"


def _check_parent(
    store: DocumentStore,
    graph: CascadeGraph,
    root_id: str,
    field: str,
    parent_id: str,
    actor_id: Optional[str],
) -> None:
    """404 unless the root exists and belongs to ``parent_id``."""
    require_actor(actor_id)
    try:
        root = store.get(store.ref(graph.root_collection, root_id))
    except Exception as exc:
        raise QueryFailure(graph.root_collection, exc) from exc
    if root is None or getattr(root, field, None) != parent_id:
        raise EntityNotFound(graph.root_collection, root_id)


@router.delete("/projects/{project_id}", response_model=CascadeResult, summary="Delete a project and its dependents")
def delete_project(
    project_id: str,
    actor_id: Optional[str] = Header(default=None, alias=ACTOR_HEADER),
    engine: CascadeDeleteEngine = Depends(get_delete_engine),
) -> CascadeResult:
    return engine.delete_root(PROJECT_GRAPH, project_id, actor_id)


@router.delete("/weld-logs/{weld_log_id}", response_model=CascadeResult, summary="Delete a weld log and its welds")
def delete_weld_log(
    weld_log_id: str,
    actor_id: Optional[str] = Header(default=None, alias=ACTOR_HEADER),
    engine: CascadeDeleteEngine = Depends(get_delete_engine),
) -> CascadeResult:
    return engine.delete_root(WELD_LOG_GRAPH, weld_log_id, actor_id)


@router.delete(
    "/document-libraries/{library_id}",
    response_model=CascadeResult,
    summary="Delete a document library with its sections and documents",
)
def delete_document_library(
    library_id: str,
    actor_id: Optional[str] = Header(default=None, alias=ACTOR_HEADER),
    engine: CascadeDeleteEngine = Depends(get_delete_engine),
) -> CascadeResult:
    return engine.delete_root(DOCUMENT_LIBRARY_GRAPH, library_id, actor_id)


@router.delete(
    "/projects/{project_id}/sections/{section_id}",
    response_model=CascadeResult,
    summary="Delete a project document section and its documents",
)
def delete_project_section(
    project_id: str,
    section_id: str,
    actor_id: Optional[str] = Header(default=None, alias=ACTOR_HEADER),
    engine: CascadeDeleteEngine = Depends(get_delete_engine),
    store: DocumentStore = Depends(get_store),
) -> CascadeResult:
    _check_parent(store, PROJECT_SECTION_GRAPH, section_id, "projectId", project_id, actor_id)
    return engine.delete_root(PROJECT_SECTION_GRAPH, section_id, actor_id)


@router.delete(
    "/document-libraries/{library_id}/sections/{section_id}",
    response_model=CascadeResult,
    summary="Delete a library document section and its documents",
)
def delete_library_section(
    library_id: str,
    section_id: str,
    actor_id: Optional[str] = Header(default=None, alias=ACTOR_HEADER),
    engine: CascadeDeleteEngine = Depends(get_delete_engine),
    store: DocumentStore = Depends(get_store),
) -> CascadeResult:
    _check_parent(store, LIBRARY_SECTION_GRAPH, section_id, "libraryId", library_id, actor_id)
    return engine.delete_root(LIBRARY_SECTION_GRAPH, section_id, actor_id)


@router.delete("/users/{user_id}", response_model=DeleteResult, summary="Delete a user (no cascade)")
def delete_user(
    user_id: str,
    actor_id: Optional[str] = Header(default=None, alias=ACTOR_HEADER),
    engine: CascadeDeleteEngine = Depends(get_delete_engine),
) -> DeleteResult:
    return engine.delete_entity(Collection.USERS, user_id, actor_id)


@router.delete(
    "/materials/{material_type}/{material_id}",
    response_model=DeleteResult,
    summary="Delete a parent, filler or alloy material (no cascade)",
)
def delete_material(
    material_type: str,
    material_id: str,
    actor_id: Optional[str] = Header(default=None, alias=ACTOR_HEADER),
    engine: CascadeDeleteEngine = Depends(get_delete_engine),
) -> DeleteResult:
    return engine.delete_material(material_type, material_id, actor_id)


__all__ = [
    "router",
    "ACTOR_HEADER",
    "delete_project",
    "delete_weld_log",
    "delete_document_library",
    "delete_project_section",
    "delete_library_section",
    "delete_user",
    "delete_material",
]
