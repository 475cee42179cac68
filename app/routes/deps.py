"""FastAPI dependencies resolving the configured store and engine."""

from __future__ import annotations

from fastapi import Request

from app.config import AppConfig
from app.logic.cascade_delete import CascadeDeleteEngine
from app.logic.store import DocumentStore


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_delete_engine(request: Request) -> CascadeDeleteEngine:
    config: AppConfig = request.app.state.config
    return CascadeDeleteEngine(
        request.app.state.store,
        in_query_limit=config.limits.in_query_limit,
        batch_limit=config.limits.batch_limit,
    )


__all__ = ["get_store", "get_config", "get_delete_engine"]
