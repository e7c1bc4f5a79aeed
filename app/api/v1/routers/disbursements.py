from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.permissions import Capability
from app.db.session import get_db
from app.schemas.lead import (
    DisbursementCreate,
    DisbursementHistoryResponse,
    DisbursementMutationResponse,
    DisbursementPatch,
)
from app.services import disbursements

router = APIRouter(prefix="/accountant/disbursements", tags=["disbursements"])


@router.post(
    "/{lead_id}",
    response_model=DisbursementMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a disbursement against a lead",
)
async def add_disbursement(
    lead_id: UUID,
    payload: DisbursementCreate,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    principal: deps.Principal = Depends(deps.require_capability(Capability.LEDGER_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> DisbursementMutationResponse:
    return await disbursements.add_disbursement(db, ctx, principal, lead_id, payload)


@router.get(
    "/{lead_id}/history",
    response_model=DisbursementHistoryResponse,
    summary="Disbursement history with totals",
)
async def get_history(
    lead_id: UUID,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    principal: deps.Principal = Depends(deps.require_capability(Capability.LEDGER_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> DisbursementHistoryResponse:
    return await disbursements.get_disbursement_history(db, ctx, principal, lead_id)


@router.put(
    "/{lead_id}/{entry_id}",
    response_model=DisbursementMutationResponse,
    summary="Edit a disbursement entry",
)
async def update_disbursement(
    lead_id: UUID,
    entry_id: UUID,
    payload: DisbursementPatch,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    principal: deps.Principal = Depends(deps.require_capability(Capability.LEDGER_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> DisbursementMutationResponse:
    return await disbursements.update_disbursement(db, ctx, principal, lead_id, entry_id, payload)


@router.delete(
    "/{lead_id}/{entry_id}",
    response_model=DisbursementMutationResponse,
    summary="Delete a disbursement entry",
)
async def delete_disbursement(
    lead_id: UUID,
    entry_id: UUID,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    principal: deps.Principal = Depends(deps.require_capability(Capability.LEDGER_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> DisbursementMutationResponse:
    return await disbursements.delete_disbursement(db, ctx, principal, lead_id, entry_id)
