"""Database bootstrap utilities.

Exposes engine construction and the SQL migrations runner that creates the
``entity_document`` table used by the SQL document store.
"""

from app.db.base import get_engine, dispose_engine
from app.db.migrations_runner import apply_migrations

__all__ = [
    "get_engine",
    "dispose_engine",
    "apply_migrations",
]
