import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.api.auth_utils import constant_time_verify
from app.core.limiter import limiter
from app.core.security import create_access_token
from app.core.settings import settings
from app.db.session import get_db
from app.models import User
from app.schemas.auth import AccessToken, LoginRequest, UserOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=AccessToken)
@limiter.limit(lambda: f"{settings.rate_limit_per_minute}/minute")
async def login(
    credentials: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
) -> AccessToken:
    stmt = select(User).where(User.org_id == ctx.org_id, User.email == credentials.email)
    user = (await db.execute(stmt)).scalar_one_or_none()
    if not constant_time_verify(user.hashed_password if user else None, credentials.password):
        logger.info("Failed login attempt", extra={"action": "auth.login.failed"})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Inactive user")

    user.last_active_at = datetime.now(timezone.utc)
    db.add(user)
    await db.commit()

    token = create_access_token(
        str(user.id),
        org_id=ctx.org_id,
        role=user.role,
        token_version=user.token_version,
    )
    return AccessToken(access_token=token)


@router.post("/logout", status_code=204)
async def logout(
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    current_user.token_version += 1
    db.add(current_user)
    await db.commit()
    return None


@router.get("/me", response_model=UserOut)
async def read_current_user(current_user: User = Depends(deps.get_current_user)) -> UserOut:
    return UserOut.model_validate(current_user)
