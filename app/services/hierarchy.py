from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.exceptions import AccessDenied, NotFoundError
from app.models.franchise import Franchise
from app.models.relationship_manager import RelationshipManager
from app.services.lead_scope import resolve_scope


async def list_franchises(
    db: AsyncSession,
    ctx: deps.TenantContext,
    principal: deps.Principal,
) -> dict:
    scope = await resolve_scope(db, ctx, principal)
    stmt = scope.restrict(
        select(Franchise).where(Franchise.org_id == ctx.org_id),
        Franchise.id,
        scope.franchise_ids,
    ).order_by(Franchise.name)
    items = (await db.execute(stmt)).scalars().all()
    return {"items": items, "total": len(items)}


async def get_franchise(
    db: AsyncSession,
    ctx: deps.TenantContext,
    principal: deps.Principal,
    franchise_id: UUID,
) -> Franchise:
    scope = await resolve_scope(db, ctx, principal)
    stmt = select(Franchise).where(Franchise.org_id == ctx.org_id, Franchise.id == franchise_id)
    franchise = (await db.execute(stmt)).scalar_one_or_none()
    if not franchise:
        raise NotFoundError("Franchise not found")
    if not scope.allows_franchise(franchise.id):
        raise AccessDenied("Franchise is outside your assigned scope")
    return franchise


async def list_relationship_managers(
    db: AsyncSession,
    ctx: deps.TenantContext,
    principal: deps.Principal,
) -> dict:
    scope = await resolve_scope(db, ctx, principal)
    stmt = scope.restrict(
        select(RelationshipManager).where(RelationshipManager.org_id == ctx.org_id),
        RelationshipManager.id,
        scope.relationship_manager_ids,
    ).order_by(RelationshipManager.name)
    items = (await db.execute(stmt)).scalars().all()
    return {"items": items, "total": len(items)}


async def get_relationship_manager(
    db: AsyncSession,
    ctx: deps.TenantContext,
    principal: deps.Principal,
    relationship_manager_id: UUID,
) -> RelationshipManager:
    scope = await resolve_scope(db, ctx, principal)
    stmt = select(RelationshipManager).where(
        RelationshipManager.org_id == ctx.org_id,
        RelationshipManager.id == relationship_manager_id,
    )
    relationship_manager = (await db.execute(stmt)).scalar_one_or_none()
    if not relationship_manager:
        raise NotFoundError("Relationship manager not found")
    if not scope.allows_relationship_manager(relationship_manager.id):
        raise AccessDenied("Relationship manager is outside your assigned scope")
    return relationship_manager
