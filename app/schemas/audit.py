from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class AuditLogEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    org_id: str
    actor_id: UUID | None = None
    action: str
    resource_type: str
    resource_id: str
    old_value: dict[str, Any] | list[Any] | None = None
    new_value: dict[str, Any] | list[Any] | None = None
    changes: dict[str, Any] | None = None
    summary: str | None = None
    created_at: datetime


class AuditLogListResponse(BaseModel):
    items: list[AuditLogEntry]
    total: int
    limit: int
    offset: int


class AuditLogStats(BaseModel):
    total: int
    by_action: dict[str, int]
    by_resource_type: dict[str, int]
