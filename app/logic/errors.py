"""Lifecycle error taxonomy.

Every error raised by the cascade engine, the batch writer and the ordering
service derives from ``LifecycleError`` so the HTTP layer can map them to
problem+json in one place (see ``app.http.problem``).
"""

from __future__ import annotations

from typing import Optional


class LifecycleError(Exception):
    """Base class for lifecycle engine errors."""

    code = "LIFECYCLE_ERROR"


class AuthRequiredError(LifecycleError):
    """No authenticated actor id was supplied for a write path."""

    code = "AUTH_REQUIRED"

    def __init__(self, message: str = "an authenticated actor id is required") -> None:
        super().__init__(message)


class EntityNotFound(LifecycleError):
    code = "ENTITY_NOT_FOUND"

    def __init__(self, collection: str, entity_id: str) -> None:
        super().__init__(f"{collection}/{entity_id} not found")
        self.collection = collection
        self.entity_id = entity_id


class QueryFailure(LifecycleError):
    """A read against the store failed; no writes were attempted."""

    code = "QUERY_FAILURE"

    def __init__(self, collection: str, cause: Optional[BaseException] = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"query against {collection} failed{detail}")
        self.collection = collection


class BatchCommitFailure(LifecycleError):
    """A write group failed; earlier groups of the same call stay applied."""

    code = "BATCH_COMMIT_FAILURE"

    def __init__(self, group_index: int, groups_committed: int, cause: Optional[BaseException] = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(
            f"write group {group_index} failed after {groups_committed} group(s) committed{detail}"
        )
        self.group_index = group_index
        self.groups_committed = groups_committed

    @property
    def partially_applied(self) -> bool:
        return self.groups_committed > 0


class InvalidGraphError(LifecycleError):
    """A cascade graph names a collection or field that cannot be resolved."""

    code = "INVALID_GRAPH"


__all__ = [
    "LifecycleError",
    "AuthRequiredError",
    "EntityNotFound",
    "QueryFailure",
    "BatchCommitFailure",
    "InvalidGraphError",
]
