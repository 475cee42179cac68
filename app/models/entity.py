"""Pydantic models for entity documents and lifecycle responses."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.collections import ALL_STATUSES, Status


class Entity(BaseModel):
    """A persisted record as read back from a document store.

    Audit fields keep the stored camelCase names. Fields that are not part of
    the lifecycle contract (titles, foreign keys, order) are kept as extras.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    status: str = Status.ACTIVE
    createdAt: Any = None
    updatedAt: Any = None
    deletedAt: Any = None
    createdBy: Optional[str] = None
    updatedBy: Optional[str] = None
    deletedBy: Optional[str] = None

    @field_validator("status")
    @classmethod
    def status_must_be_known(cls, v: str) -> str:
        if v not in ALL_STATUSES:
            raise ValueError(f"status must be one of {sorted(ALL_STATUSES)}")
        return v

    @property
    def is_deleted(self) -> bool:
        return self.status == Status.DELETED


class CascadeResult(BaseModel):
    root: str
    root_collection: str
    root_id: str
    deleted: Dict[str, int] = Field(default_factory=dict)
    total_deleted: int = 0
    groups_committed: int = 0
    queries_issued: int = 0


class DeleteResult(BaseModel):
    collection: str
    id: str
    deleted: bool


class OrderRequest(BaseModel):
    ordered_ids: List[str]


class MoveRequest(BaseModel):
    direction: str
    scope: Dict[str, str] = Field(default_factory=dict)

    @field_validator("direction")
    @classmethod
    def direction_must_be_up_or_down(cls, v: str) -> str:
        if v not in ("up", "down"):
            raise ValueError("direction must be 'up' or 'down'")
        return v


class MoveResult(BaseModel):
    moved: bool
    ordered_ids: List[str] = Field(default_factory=list)


class CreateOrderedRequest(BaseModel):
    scope: Dict[str, str] = Field(default_factory=dict)
    fields: Dict[str, Any] = Field(default_factory=dict)


__all__ = [
    "Entity",
    "CascadeResult",
    "DeleteResult",
    "OrderRequest",
    "MoveRequest",
    "MoveResult",
    "CreateOrderedRequest",
]
