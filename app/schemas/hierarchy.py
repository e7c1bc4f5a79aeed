from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class FranchiseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    regional_manager_id: UUID | None = None
    status: str
    created_at: datetime | None = None


class FranchiseListResponse(BaseModel):
    items: list[FranchiseOut]
    total: int


class RelationshipManagerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    regional_manager_id: UUID | None = None
    owner_user_id: UUID | None = None
    status: str
    created_at: datetime | None = None


class RelationshipManagerListResponse(BaseModel):
    items: list[RelationshipManagerOut]
    total: int
