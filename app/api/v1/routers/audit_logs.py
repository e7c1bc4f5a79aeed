from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.permissions import Capability
from app.db.session import get_db
from app.models.audit_log import AuditLog
from app.schemas.audit import AuditLogEntry, AuditLogListResponse, AuditLogStats


router = APIRouter(prefix="/org/audit-logs", tags=["audit-logs"])


def _conditions(
    ctx: deps.TenantContext,
    *,
    action: list[str] | None = None,
    resource_type: str | None = None,
    resource_id: str | None = None,
    actor_id: UUID | None = None,
    created_from: datetime | None = None,
    created_to: datetime | None = None,
) -> list:
    conditions = [AuditLog.org_id == ctx.org_id]
    if action:
        conditions.append(AuditLog.action.in_(action))
    if resource_type:
        conditions.append(AuditLog.resource_type == resource_type)
    if resource_id:
        conditions.append(AuditLog.resource_id == resource_id)
    if actor_id:
        conditions.append(AuditLog.actor_id == actor_id)
    if created_from:
        conditions.append(AuditLog.created_at >= created_from)
    if created_to:
        conditions.append(AuditLog.created_at <= created_to)
    return conditions


@router.get("", response_model=AuditLogListResponse, summary="List audit logs for the org")
async def list_audit_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    action: list[str] | None = Query(default=None),
    resource_type: str | None = Query(default=None),
    resource_id: str | None = Query(default=None),
    actor_id: UUID | None = Query(default=None),
    created_from: datetime | None = Query(default=None),
    created_to: datetime | None = Query(default=None),
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    _: deps.Principal = Depends(deps.require_capability(Capability.AUDIT_LOG_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> AuditLogListResponse:
    offset = (page - 1) * page_size
    conditions = _conditions(
        ctx,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        actor_id=actor_id,
        created_from=created_from,
        created_to=created_to,
    )

    count_stmt = select(func.count()).select_from(AuditLog).where(*conditions)
    total = int((await db.execute(count_stmt)).scalar_one() or 0)

    stmt = (
        select(AuditLog)
        .where(*conditions)
        .order_by(AuditLog.created_at.desc())
        .offset(offset)
        .limit(page_size)
    )
    rows = (await db.execute(stmt)).scalars().all()
    items = [AuditLogEntry.model_validate(row) for row in rows]
    return AuditLogListResponse(items=items, total=total, limit=page_size, offset=offset)


@router.get("/stats", response_model=AuditLogStats, summary="Audit log counts by action and resource type")
async def audit_log_stats(
    created_from: datetime | None = Query(default=None),
    created_to: datetime | None = Query(default=None),
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    _: deps.Principal = Depends(deps.require_capability(Capability.AUDIT_LOG_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> AuditLogStats:
    conditions = _conditions(ctx, created_from=created_from, created_to=created_to)

    action_stmt = (
        select(AuditLog.action, func.count()).where(*conditions).group_by(AuditLog.action)
    )
    by_action = {row[0]: int(row[1]) for row in (await db.execute(action_stmt)).all()}

    type_stmt = (
        select(AuditLog.resource_type, func.count())
        .where(*conditions)
        .group_by(AuditLog.resource_type)
    )
    by_resource_type = {row[0]: int(row[1]) for row in (await db.execute(type_stmt)).all()}

    return AuditLogStats(
        total=sum(by_action.values()),
        by_action=by_action,
        by_resource_type=by_resource_type,
    )
