from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.db.session import get_db
from app.schemas.scope import ScopeResponse
from app.services.lead_scope import describe_scope, resolve_scope

router = APIRouter(prefix="/me", tags=["scope"])


@router.get("/scope", response_model=ScopeResponse, summary="Resolved visibility scope of the caller")
async def get_my_scope(
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    principal: deps.Principal = Depends(deps.get_principal),
    db: AsyncSession = Depends(get_db),
) -> ScopeResponse:
    scope = await resolve_scope(db, ctx, principal)
    return describe_scope(principal, scope)
