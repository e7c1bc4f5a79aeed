from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class AccessToken(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    org_id: str
    email: EmailStr
    full_name: str
    role: str
    is_active: bool
    last_active_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
