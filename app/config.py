"""Configuration for the lifecycle service.

Loads application configuration with the following rules:
- Primary source: ``lifecycle_config.json`` at the project root.
- Overrides: optional text files under ``config/``, then environment variables.
- Validation: Pydantic models enforce value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from app.logic.order_allocator import DEFAULT_ORDER, ORDER_GAP
from app.logic.store import DEFAULT_BATCH_LIMIT, DEFAULT_IN_QUERY_LIMIT

CONFIG_DIR = Path("config")
ROOT_CONFIG = Path("lifecycle_config.json")
logger = logging.getLogger(__name__)


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
    return None


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            data = json.loads(path.read_text(encoding="utf-8"))
            return data if isinstance(data, dict) else {}
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


class DatabaseConfig(BaseModel):
    dsn: str

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class StoreLimits(BaseModel):
    """Engine limits: values per "in" filter and ops per write group.

    Bounded above by the store's documented limits; config may only lower them.
    """

    in_query_limit: int = Field(default=DEFAULT_IN_QUERY_LIMIT, gt=0, le=DEFAULT_IN_QUERY_LIMIT)
    batch_limit: int = Field(default=DEFAULT_BATCH_LIMIT, gt=0, le=DEFAULT_BATCH_LIMIT)


class OrderingConfig(BaseModel):
    gap: int = Field(default=ORDER_GAP, gt=0)
    base: int = Field(default=DEFAULT_ORDER, ge=0)


class AppConfig(BaseModel):
    store_backend: str = "memory"
    database: DatabaseConfig
    limits: StoreLimits = Field(default_factory=StoreLimits)
    ordering: OrderingConfig = Field(default_factory=OrderingConfig)

    @field_validator("store_backend")
    @classmethod
    def backend_must_be_known(cls, v: str) -> str:
        allowed = {"memory", "sql"}
        if v not in allowed:
            raise ValueError(f"store_backend must be one of {sorted(allowed)}")
        return v


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in ``config/`` (optional)
    3) lifecycle_config.json at project root
    4) Defaults
    """
    base = _read_json_file(ROOT_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    def _pick(env_key: str, file_key: str, json_path: str, default: str) -> str:
        return str(
            os.environ.get(env_key)
            or _read_config_file(file_key)
            or _base(json_path)
            or default
        ).strip()

    backend = _pick("STORE_BACKEND", "store.backend", "store_backend", "memory")
    dsn = _pick("DATABASE_URL", "database.url", "database.dsn", "sqlite+pysqlite:///:memory:")
    in_limit = _pick("STORE_IN_QUERY_LIMIT", "store.in_query_limit", "limits.in_query_limit", str(DEFAULT_IN_QUERY_LIMIT))
    batch_limit = _pick("STORE_BATCH_LIMIT", "store.batch_limit", "limits.batch_limit", str(DEFAULT_BATCH_LIMIT))
    gap = _pick("ORDER_GAP", "ordering.gap", "ordering.gap", str(ORDER_GAP))
    order_base = _pick("ORDER_BASE", "ordering.base", "ordering.base", str(DEFAULT_ORDER))

    try:
        return AppConfig(
            store_backend=backend,
            database=DatabaseConfig(dsn=dsn),
            limits=StoreLimits(in_query_limit=int(in_limit), batch_limit=int(batch_limit)),
            ordering=OrderingConfig(gap=int(gap), base=int(order_base)),
        )
    except (PydanticValidationError, ValueError) as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "StoreLimits",
    "OrderingConfig",
    "load_config",
]
