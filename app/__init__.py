"""Weldbook lifecycle service.

Exposes the FastAPI application factory. Business logic lives in
``app/logic/`` (cascade engine, batch writer, ordering) and route handlers in
``app/routes/``.
"""

from __future__ import annotations

from app.main import create_app

__all__ = ["create_app"]
