from __future__ import annotations

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.permissions import Capability
from app.core.settings import settings
from app.db.session import get_db
from app.schemas.accountant import (
    AccountantCreate,
    AccountantListResponse,
    AccountantOut,
    AccountantUpdate,
)
from app.services import accountants

router = APIRouter(prefix="/org/accountants", tags=["accountants"])


@router.get("", response_model=AccountantListResponse, summary="List accountant profiles")
async def list_accountants(
    status_filter: Literal["active", "inactive"] | None = Query(default=None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=settings.max_page_size),
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    principal: deps.Principal = Depends(deps.require_capability(Capability.ACCOUNTANT_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> AccountantListResponse:
    return await accountants.list_accountants(db, ctx, status=status_filter, page=page, limit=limit)


@router.get("/{accountant_id}", response_model=AccountantOut, summary="Get an accountant profile")
async def get_accountant(
    accountant_id: UUID,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    principal: deps.Principal = Depends(deps.require_capability(Capability.ACCOUNTANT_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> AccountantOut:
    return await accountants.get_accountant(db, ctx, accountant_id)


@router.post(
    "",
    response_model=AccountantOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create an accountant with its login user",
)
async def create_accountant(
    payload: AccountantCreate,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    principal: deps.Principal = Depends(deps.require_capability(Capability.ACCOUNTANT_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> AccountantOut:
    return await accountants.create_accountant(db, ctx, principal, payload)


@router.patch("/{accountant_id}", response_model=AccountantOut, summary="Update an accountant profile")
async def update_accountant(
    accountant_id: UUID,
    payload: AccountantUpdate,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    principal: deps.Principal = Depends(deps.require_capability(Capability.ACCOUNTANT_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> AccountantOut:
    return await accountants.update_accountant(db, ctx, principal, accountant_id, payload)


@router.delete("/{accountant_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete an accountant")
async def delete_accountant(
    accountant_id: UUID,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    principal: deps.Principal = Depends(deps.require_capability(Capability.ACCOUNTANT_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> None:
    await accountants.delete_accountant(db, ctx, principal, accountant_id)
    return None
