"""APIRouter registration for the lifecycle service."""

from __future__ import annotations

from fastapi import APIRouter

from app.routes.lifecycle import router as lifecycle_router
from app.routes.ordering import router as ordering_router

api_router = APIRouter()
api_router.include_router(lifecycle_router, tags=["Lifecycle"])
api_router.include_router(ordering_router, tags=["Ordering"])

__all__ = ["api_router"]
