from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel


class ScopeResponse(BaseModel):
    user_id: UUID
    role: str
    unrestricted: bool
    regional_manager_ids: list[UUID]
    franchise_ids: list[UUID]
    relationship_manager_ids: list[UUID]
    agent_ids: list[UUID]
    franchise_user_ids: list[UUID]
    relationship_manager_user_ids: list[UUID]
