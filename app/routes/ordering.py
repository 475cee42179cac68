"""Ordered list routes for document sections and documents.

- GET    /collections/{collection}                 current snapshot (query params filter)
- POST   /collections/{collection}                 create at the next end of the list
- PUT    /collections/{collection}/order           rewrite keys for a full id order
- POST   /collections/{collection}/{item_id}/move  move one item up or down
"""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from app.config import AppConfig
from app.logic import list_ordering
from app.logic.snapshots import SnapshotFeed
from app.logic.store import DocumentStore
from app.models.collections import ALL_COLLECTIONS, ORDERABLE_COLLECTIONS
from app.models.entity import CreateOrderedRequest, MoveRequest, MoveResult, OrderRequest
from app.routes.deps import get_config, get_store
from app.routes.lifecycle import ACTOR_HEADER

router = APIRouter()
logger = logging.getLogger(__name__)


def _known(collection: str) -> str:
    if collection not in ALL_COLLECTIONS:
        raise HTTPException(status_code=404, detail={"title": "Not Found", "status": 404, "detail": f"unknown collection {collection}"})
    return collection


def _orderable(collection: str) -> str:
    _known(collection)
    if collection not in ORDERABLE_COLLECTIONS:
        raise HTTPException(
            status_code=409,
            detail={"title": "Conflict", "status": 409, "detail": f"{collection} is not orderable"},
        )
    return collection


@router.get("/collections/{collection}", summary="Current non-deleted records of a collection")
def list_collection(
    collection: str,
    request: Request,
    store: DocumentStore = Depends(get_store),
) -> JSONResponse:
    _known(collection)
    feed = SnapshotFeed(store, collection, dict(request.query_params), max_snapshots=1)
    snapshot = next(iter(feed))
    return JSONResponse({"items": [e.model_dump() for e in snapshot]})


@router.post("/collections/{collection}", status_code=201, summary="Create an ordered record")
def create_item(
    collection: str,
    payload: CreateOrderedRequest,
    actor_id: Optional[str] = Header(default=None, alias=ACTOR_HEADER),
    store: DocumentStore = Depends(get_store),
    config: AppConfig = Depends(get_config),
) -> JSONResponse:
    _orderable(collection)
    entity = list_ordering.create_ordered(
        store,
        collection,
        payload.scope,
        payload.fields,
        actor_id,
        gap=config.ordering.gap,
        base=config.ordering.base,
    )
    return JSONResponse(entity.model_dump(), status_code=201)


@router.put("/collections/{collection}/order", summary="Persist a full id order")
def put_order(
    collection: str,
    payload: OrderRequest,
    actor_id: Optional[str] = Header(default=None, alias=ACTOR_HEADER),
    store: DocumentStore = Depends(get_store),
    config: AppConfig = Depends(get_config),
) -> dict:
    _orderable(collection)
    mapping = list_ordering.apply_order(store, collection, payload.ordered_ids, actor_id, gap=config.ordering.gap)
    return {"orders": mapping}


@router.post("/collections/{collection}/{item_id}/move", response_model=MoveResult, summary="Move an item up or down")
def move(
    collection: str,
    item_id: str,
    payload: MoveRequest,
    actor_id: Optional[str] = Header(default=None, alias=ACTOR_HEADER),
    store: DocumentStore = Depends(get_store),
    config: AppConfig = Depends(get_config),
) -> MoveResult:
    _orderable(collection)
    after: Optional[List[str]] = list_ordering.move_item(
        store, collection, payload.scope, item_id, payload.direction, actor_id, gap=config.ordering.gap
    )
    if after is None:
        return MoveResult(moved=False)
    return MoveResult(moved=True, ordered_ids=after)


__all__ = ["router", "list_collection", "create_item", "put_order", "move"]
