"""Domain event constants and publisher.

Lifecycle flows publish one event per successful root deletion. Events are
logged and buffered in-process so tests and the test-support route can
observe them.
"""

from __future__ import annotations

from typing import Any, Dict, List
import logging

logger = logging.getLogger(__name__)

ENTITY_DELETED = "entity.deleted"
ORDER_UPDATED = "order.updated"


def cascade_deleted(graph_name: str) -> str:
    """Event type for a completed cascade rooted at ``graph_name``."""
    return f"{graph_name}.deleted"


# In-memory buffer for domain events (test-only visibility)
EVENT_BUFFER: List[Dict[str, Any]] = []


def publish(event_type: str, payload: Dict[str, Any]) -> None:
    logger.info("event_publish type=%s payload=%s", event_type, payload)
    EVENT_BUFFER.append({"type": event_type, "payload": payload})


def get_buffered_events(clear: bool = True) -> List[Dict[str, Any]]:
    """Return buffered domain events; optionally clear the buffer."""
    events = list(EVENT_BUFFER)
    if clear:
        EVENT_BUFFER.clear()
    return events


__all__ = [
    "ENTITY_DELETED",
    "ORDER_UPDATED",
    "cascade_deleted",
    "publish",
    "get_buffered_events",
    "EVENT_BUFFER",
]
