from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.schemas.common import Pagination

AccountantStatus = Literal["active", "inactive"]


class AccountantCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)
    mobile: str | None = Field(default=None, max_length=50)
    department: str = Field(default="Finance", min_length=1, max_length=100)
    assigned_regional_manager_ids: list[UUID] = Field(default_factory=list)


class AccountantUpdate(BaseModel):
    """Sparse update; a provided ``assigned_regional_manager_ids`` replaces the whole list."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    mobile: str | None = Field(default=None, max_length=50)
    department: str | None = Field(default=None, min_length=1, max_length=100)
    status: AccountantStatus | None = None
    assigned_regional_manager_ids: list[UUID] | None = None


class AccountantOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    name: str
    email: str
    department: str
    status: str
    assigned_regional_manager_ids: list[UUID] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AccountantListResponse(BaseModel):
    items: list[AccountantOut]
    pagination: Pagination
