"""Central logging configuration for the application.

Applies a root stdout handler so module loggers emit without per-module
setup. ``LOG_LEVEL`` selects the level (INFO by default); uvicorn loggers
stay visible and reloads do not stack duplicate handlers.
"""
from __future__ import annotations
import logging
import os
from logging.config import dictConfig


def _dict_config(level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)s:%(name)s:%(message)s",
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "default",
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": level, "handlers": ["console"]},
        "loggers": {
            name: {"level": level, "handlers": ["console"], "propagate": False}
            for name in ("uvicorn", "uvicorn.error", "uvicorn.access")
        },
    }


def configure_logging(level: str | None = None) -> None:
    """Configure application-wide logging once.

    Returns early when the root logger already has handlers.
    """
    root = logging.getLogger()
    if root.handlers:
        return
    resolved = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    dictConfig(_dict_config(resolved))


__all__ = ["configure_logging"]
