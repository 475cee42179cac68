"""Lightweight SQL migrations runner.

Applies ``.sql`` files in lexical order from the ``migrations/`` directory and
records each applied filename in a ``schema_migration`` table so reruns skip
it. Rollback scripts are skipped. Intended for local development and CI.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)

DEFAULT_MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"

_JOURNAL_DDL = (
    "CREATE TABLE IF NOT EXISTS schema_migration ("
    " filename VARCHAR(255) PRIMARY KEY,"
    " applied_at VARCHAR(32) NOT NULL)"
)


def _iter_sql_files(root: Path) -> Iterable[Path]:
    for p in sorted(root.glob("*.sql")):
        if "rollback" in p.name.lower():
            continue
        yield p


def _statements(sql: str) -> List[str]:
    """Split a script into statements; drop comment lines and transaction verbs.

    SQLite's driver refuses multiple statements per execute(), so every dialect
    receives one statement at a time.
    """
    body = "\n".join(line for line in sql.splitlines() if not line.strip().startswith("--"))
    out: List[str] = []
    for stmt in body.split(";"):
        s = stmt.strip()
        if not s or s.upper() in {"BEGIN", "COMMIT", "END"}:
            continue
        out.append(s)
    return out


def _applied(conn: Connection) -> set[str]:
    rows = conn.execute(sql_text("SELECT filename FROM schema_migration")).fetchall()
    return {str(r[0]) for r in rows}


def apply_migrations(engine: Engine, migrations_dir: str | os.PathLike[str] | None = None) -> List[str]:
    """Apply pending migrations; return the filenames applied by this call."""
    root = Path(migrations_dir) if migrations_dir is not None else DEFAULT_MIGRATIONS_DIR
    if not root.exists():  # pragma: no cover - optional
        logger.warning("migrations_dir_missing path=%s", root)
        return []

    newly_applied: List[str] = []
    with engine.begin() as conn:
        conn.execute(sql_text(_JOURNAL_DDL))
        done = _applied(conn)
        for sql_path in _iter_sql_files(root):
            fname = sql_path.name
            if fname in done:
                continue
            for stmt in _statements(sql_path.read_text(encoding="utf-8")):
                conn.exec_driver_sql(stmt)
            conn.execute(
                sql_text("INSERT INTO schema_migration (filename, applied_at) VALUES (:f, :at)"),
                {
                    "f": fname,
                    "at": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
                },
            )
            newly_applied.append(fname)
            logger.info("migration_applied file=%s", fname)
    return newly_applied


__all__ = ["apply_migrations", "DEFAULT_MIGRATIONS_DIR"]
