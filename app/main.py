from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from app.config import AppConfig, load_config
from app.db.base import get_engine
from app.db.migrations_runner import apply_migrations
from app.http.problem import (
    handle_http_exception,
    handle_lifecycle_error,
    handle_request_validation_error,
    handle_unexpected_error,
    handle_value_error,
)
from app.http.request_id import RequestIdMiddleware
from app.logging_setup import configure_logging
from app.logic.errors import LifecycleError
from app.logic.inmemory_state import DEFAULT_STORE
from app.logic.repository_entities import SqlDocumentStore
from app.logic.store import DocumentStore
from app.routes import api_router
from app.routes.test_support import router as test_support_router

logger = logging.getLogger(__name__)


def build_store(config: AppConfig) -> DocumentStore:
    """Construct the configured document store, applying migrations for SQL.

    Stores keep their documented limits; ``config.limits`` reaches only the
    delete engine (see ``app.routes.deps``).
    """
    if config.store_backend == "sql":
        engine = get_engine(config.database.dsn)
        apply_migrations(engine)
        logger.info("store_backend=sql dialect=%s", engine.dialect.name)
        return SqlDocumentStore(engine)
    logger.info("store_backend=memory")
    return DEFAULT_STORE


def create_app(store: Optional[DocumentStore] = None, config: Optional[AppConfig] = None) -> FastAPI:
    """Application factory.

    ``store`` and ``config`` may be injected (tests); otherwise configuration
    is loaded from the environment and the configured store is built.
    """
    configure_logging()
    cfg = config or load_config()
    app = FastAPI(title="Weldbook Lifecycle Service")
    app.state.config = cfg
    app.state.store = store if store is not None else build_store(cfg)

    app.add_exception_handler(LifecycleError, handle_lifecycle_error)
    app.add_exception_handler(ValueError, handle_value_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router, prefix="/api/v1")
    # Test-support routes (no prefix) expose '/__test__/...'
    app.include_router(test_support_router)

    @app.get("/health")
    def health():  # pragma: no cover - trivial
        return {"status": "ok", "store": type(app.state.store).__name__}

    return app


# Intentionally do not instantiate the app at import time to prevent side effects.
