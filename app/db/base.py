"""SQLAlchemy engine management.

The service targets PostgreSQL in production and SQLite for local development
and CI. No declarative models are defined; repositories use SQLAlchemy Core
against the tables created by ``migrations/``.
"""

from __future__ import annotations

import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


def _db_url() -> str:
    return (
        os.getenv("TEST_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or "sqlite+pysqlite:///:memory:"
    )


# Module-level cached Engine shared by all repositories
_ENGINE: Engine | None = None
_ENGINE_URL: str | None = None


def get_engine(url: str | None = None) -> Engine:
    """Return a cached Engine for ``url`` (or the environment's URL).

    In-memory SQLite URLs use a StaticPool so the single connection, and so the
    database, survives across checkouts and threads.
    """
    global _ENGINE, _ENGINE_URL
    resolved_url = url or _db_url()

    if _ENGINE is None or _ENGINE_URL != resolved_url:
        kwargs: dict = {"future": True, "pool_pre_ping": True}
        if resolved_url.startswith("sqlite") and ":memory:" in resolved_url:
            kwargs.update({
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            })
        if _ENGINE is not None:
            _ENGINE.dispose()
        _ENGINE = create_engine(resolved_url, **kwargs)
        _ENGINE_URL = resolved_url
        logger.info("db.engine.created dialect=%s", _ENGINE.dialect.name)

    return _ENGINE


def dispose_engine() -> None:
    """Dispose the cached Engine so the next call builds a fresh one."""
    global _ENGINE, _ENGINE_URL
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = None
    _ENGINE_URL = None


__all__ = ["get_engine", "dispose_engine"]
