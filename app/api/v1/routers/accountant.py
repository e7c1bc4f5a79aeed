from __future__ import annotations

from datetime import date
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.permissions import Capability
from app.core.settings import settings
from app.db.session import get_db
from app.schemas.dashboard import AccountantDashboardResponse, CommissionReportResponse
from app.schemas.lead import (
    LeadDetailResponse,
    LeadListResponse,
    LeadNoteCreate,
    LeadNoteResponse,
    LeadStatusUpdateRequest,
    LeadStatusUpdateResponse,
)
from app.services import accountant_dashboard, commission_report, leads

router = APIRouter(prefix="/accountant", tags=["accountant"])


@router.get("/dashboard", response_model=AccountantDashboardResponse, summary="Accountant dashboard")
async def get_dashboard(
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    principal: deps.Principal = Depends(deps.require_capability(Capability.DASHBOARD_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> AccountantDashboardResponse:
    return await accountant_dashboard.build_dashboard(db, ctx, principal)


@router.get("/leads", response_model=LeadListResponse, summary="List ledger-eligible leads in scope")
async def list_leads(
    search: str | None = Query(default=None, max_length=200),
    bank: str | None = Query(default=None, max_length=200),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    sort_by: str = Query(default="created_at"),
    sort_order: Literal["asc", "desc"] = Query(default="desc"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    principal: deps.Principal = Depends(deps.require_capability(Capability.LEDGER_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> LeadListResponse:
    return await leads.list_approved_leads(
        db,
        ctx,
        principal,
        search=search,
        bank=bank,
        start_date=start_date,
        end_date=end_date,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )


@router.get("/leads/{lead_id}", response_model=LeadDetailResponse, summary="Lead detail with financial summary")
async def get_lead(
    lead_id: UUID,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    principal: deps.Principal = Depends(deps.require_capability(Capability.LEDGER_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> LeadDetailResponse:
    return await leads.get_lead_detail(db, ctx, principal, lead_id)


@router.patch(
    "/leads/{lead_id}/status",
    response_model=LeadStatusUpdateResponse,
    summary="Manually set a lead's status",
)
async def update_lead_status(
    lead_id: UUID,
    payload: LeadStatusUpdateRequest,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    principal: deps.Principal = Depends(deps.require_capability(Capability.LEAD_STATUS_UPDATE)),
    db: AsyncSession = Depends(get_db),
) -> LeadStatusUpdateResponse:
    return await leads.update_lead_status(db, ctx, principal, lead_id, payload)


@router.post(
    "/leads/{lead_id}/notes",
    response_model=LeadNoteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a note to a lead",
)
async def add_lead_note(
    lead_id: UUID,
    payload: LeadNoteCreate,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    principal: deps.Principal = Depends(deps.require_capability(Capability.LEAD_NOTE_ADD)),
    db: AsyncSession = Depends(get_db),
) -> LeadNoteResponse:
    return await leads.add_lead_note(db, ctx, principal, lead_id, payload)


@router.get(
    "/reports/commission",
    response_model=CommissionReportResponse,
    summary="Commission report over disbursement entries",
)
async def get_commission_report(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    bank: str | None = Query(default=None, max_length=200),
    agent: str | None = Query(default=None, max_length=200),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    principal: deps.Principal = Depends(deps.require_capability(Capability.REPORT_COMMISSION_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> CommissionReportResponse:
    return await commission_report.build_commission_report(
        db,
        ctx,
        principal,
        start_date=start_date,
        end_date=end_date,
        bank=bank,
        agent=agent,
        page=page,
        limit=limit,
    )
