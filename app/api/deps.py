from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.context import set_actor, set_tenant_id
from app.core.permissions import Capability, UserRole
from app.core.security import decode_token
from app.core.settings import settings
from app.core.tenant import resolve_org_id
from app.db.session import get_db
from app.models import User
from app.services import authz


@dataclass(slots=True)
class TenantContext:
    org_id: str


@dataclass(frozen=True, slots=True)
class Principal:
    """The acting user, handed explicitly to every service operation."""

    user_id: UUID
    role: str

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN.value

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(user_id=user.id, role=user.role)


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


def enforce_inactivity(last_active_at: Optional[datetime], now: datetime) -> None:
    timeout = timedelta(minutes=settings.session_timeout_minutes)
    if last_active_at and now - last_active_at > timeout:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired due to inactivity",
        )


def _resolve_subdomain(request: Request) -> str | None:
    host = request.headers.get("host", "").split(":")[0]
    if settings.allowed_tenant_hosts and host not in settings.allowed_tenant_hosts:
        return None
    parts = host.split(".")
    # ignore localhost/invalid hosts
    if len(parts) >= 3:
        return parts[0]
    return None


async def get_tenant_context(
    request: Request,
    tenant_id: str | None = Header(default=None, alias="X-Tenant-ID"),
) -> TenantContext:
    if settings.tenancy_mode == "multi":
        try:
            org_id = resolve_org_id(tenant_id, _resolve_subdomain(request))
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    else:
        org_id = settings.default_org_id
    set_tenant_id(org_id)
    return TenantContext(org_id=org_id)


async def get_db_session(db: AsyncSession = Depends(get_db)) -> AsyncSession:
    return db


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
    ctx: TenantContext = Depends(get_tenant_context),
) -> User:
    try:
        payload = decode_token(token, expected_type="access")
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
    user_sub = payload.get("sub")
    token_version = payload.get("tv")
    if not user_sub:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    if payload.get("org") and payload["org"] != ctx.org_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token issued for another tenant")

    stmt = select(User).where(User.id == user_sub, User.org_id == ctx.org_id)
    result = await db.execute(stmt)
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Inactive user")
    if token_version is not None and user.token_version != token_version:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token revoked")

    now = datetime.now(timezone.utc)
    enforce_inactivity(user.last_active_at, now)
    user.last_active_at = now
    db.add(user)
    await db.commit()
    set_actor(str(user.id), user.role)
    return user


async def get_principal(current_user: User = Depends(get_current_user)) -> Principal:
    return Principal.from_user(current_user)


def require_capability(capability: Capability | str):
    """Dependency factory: the caller's role must carry ``capability``."""

    async def dependency(principal: Principal = Depends(get_principal)) -> Principal:
        if not authz.has_capability(principal.role, capability):
            target = capability.value if isinstance(capability, Capability) else str(capability)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing capability: {target}",
            )
        return principal

    return dependency
