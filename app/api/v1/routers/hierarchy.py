from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.permissions import Capability
from app.db.session import get_db
from app.schemas.hierarchy import (
    FranchiseListResponse,
    FranchiseOut,
    RelationshipManagerListResponse,
    RelationshipManagerOut,
)
from app.services import hierarchy

router = APIRouter(prefix="/org", tags=["hierarchy"])


@router.get("/franchises", response_model=FranchiseListResponse, summary="Franchises in scope")
async def list_franchises(
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    principal: deps.Principal = Depends(deps.require_capability(Capability.HIERARCHY_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> FranchiseListResponse:
    return await hierarchy.list_franchises(db, ctx, principal)


@router.get("/franchises/{franchise_id}", response_model=FranchiseOut, summary="Get a franchise")
async def get_franchise(
    franchise_id: UUID,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    principal: deps.Principal = Depends(deps.require_capability(Capability.HIERARCHY_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> FranchiseOut:
    return await hierarchy.get_franchise(db, ctx, principal, franchise_id)


@router.get(
    "/relationship-managers",
    response_model=RelationshipManagerListResponse,
    summary="Relationship managers in scope",
)
async def list_relationship_managers(
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    principal: deps.Principal = Depends(deps.require_capability(Capability.HIERARCHY_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> RelationshipManagerListResponse:
    return await hierarchy.list_relationship_managers(db, ctx, principal)


@router.get(
    "/relationship-managers/{relationship_manager_id}",
    response_model=RelationshipManagerOut,
    summary="Get a relationship manager",
)
async def get_relationship_manager(
    relationship_manager_id: UUID,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    principal: deps.Principal = Depends(deps.require_capability(Capability.HIERARCHY_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> RelationshipManagerOut:
    return await hierarchy.get_relationship_manager(db, ctx, principal, relationship_manager_id)
