from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from app.api import deps
from app.core.exceptions import AccessDenied, ConflictError, NotFoundError, ValidationError
from app.core.permissions import UserRole
from app.models.bank import Bank
from app.models.lead import Lead
from app.models.lead_note import LeadNote
from app.schemas.common import build_pagination
from app.schemas.lead import LeadNoteCreate, LeadStatusUpdateRequest
from app.services.audit import record_audit_log
from app.services.disbursement_ledger import TWOPLACES, ZERO, as_money, summarize_entries
from app.services.lead_scope import LeadScope, resolve_scope
from app.services.lead_status import (
    LEDGER_ELIGIBLE_STATUSES,
    ensure_ledger_eligible,
    validate_manual_transition,
)

logger = logging.getLogger(__name__)

SORTABLE_COLUMNS = {
    "created_at": Lead.created_at,
    "updated_at": Lead.updated_at,
    "customer_name": Lead.customer_name,
    "lead_code": Lead.lead_code,
    "loan_amount": Lead.loan_amount,
    "disbursed_amount": Lead.disbursed_amount,
    "status": Lead.status,
}


def eligible_lead_conditions(ctx: deps.TenantContext) -> list:
    return [
        Lead.org_id == ctx.org_id,
        Lead.status.in_(sorted(LEDGER_ELIGIBLE_STATUSES)),
    ]


async def load_lead(
    db: AsyncSession,
    ctx: deps.TenantContext,
    lead_id: UUID,
    *,
    with_notes: bool = False,
) -> Lead:
    options = [selectinload(Lead.disbursement_history)]
    if with_notes:
        options.append(selectinload(Lead.notes))
    stmt = select(Lead).options(*options).where(Lead.org_id == ctx.org_id, Lead.id == lead_id)
    lead = (await db.execute(stmt)).scalar_one_or_none()
    if not lead:
        raise NotFoundError("Lead not found", details={"lead_id": str(lead_id)})
    return lead


def ensure_in_scope(scope: LeadScope, lead: Lead) -> None:
    if not scope.allows_agent(lead.agent_id):
        raise AccessDenied(
            "Access denied. This lead is outside your assigned scope.",
            details={"lead_id": str(lead.id)},
        )


async def commit_lead_changes(db: AsyncSession, lead: Lead) -> None:
    """Commit, turning a lost optimistic-lock race into a 409."""
    try:
        await db.commit()
    except StaleDataError as exc:
        await db.rollback()
        logger.warning("Concurrent modification detected", extra={"lead_id": str(lead.id)})
        raise ConflictError(
            "Lead was modified by another request; reload and retry",
            details={"lead_id": str(lead.id)},
        ) from exc


def _day_start(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


async def list_approved_leads(
    db: AsyncSession,
    ctx: deps.TenantContext,
    principal: deps.Principal,
    *,
    search: str | None = None,
    bank: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 10,
) -> dict:
    sort_column = SORTABLE_COLUMNS.get(sort_by)
    if sort_column is None:
        raise ValidationError(
            f"Cannot sort by '{sort_by}'",
            details={"allowed": sorted(SORTABLE_COLUMNS)},
        )
    if start_date and end_date and start_date > end_date:
        raise ValidationError("start_date must be on or before end_date")

    scope = await resolve_scope(db, ctx, principal)

    conditions = eligible_lead_conditions(ctx)
    if search:
        pattern = f"%{search.strip()}%"
        conditions.append(
            or_(
                Lead.customer_name.ilike(pattern),
                Lead.lead_code.ilike(pattern),
                Lead.loan_account_no.ilike(pattern),
            )
        )
    if bank:
        conditions.append(Lead.bank.has(Bank.name.ilike(f"%{bank.strip()}%")))
    if start_date:
        conditions.append(Lead.created_at >= _day_start(start_date))
    if end_date:
        conditions.append(Lead.created_at < _day_start(end_date + timedelta(days=1)))

    count_stmt = scope.filter(select(func.count()).select_from(Lead).where(*conditions), Lead.agent_id)
    total = int((await db.execute(count_stmt)).scalar_one() or 0)

    order = sort_column.asc() if sort_order == "asc" else sort_column.desc()
    stmt = (
        scope.filter(
            select(Lead)
            .options(selectinload(Lead.agent), selectinload(Lead.bank))
            .where(*conditions),
            Lead.agent_id,
        )
        .order_by(order, Lead.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    items = (await db.execute(stmt)).scalars().all()
    return {"items": items, "pagination": build_pagination(page, limit, total)}


def financial_summary(lead: Lead) -> dict:
    loan_amount = as_money(lead.loan_amount)
    disbursed = as_money(lead.disbursed_amount)
    percentage = lead.commission_percentage
    calculated = ZERO
    if percentage is not None:
        calculated = (loan_amount * Decimal(str(percentage)) / Decimal("100")).quantize(TWOPLACES)
    totals = summarize_entries(lead.disbursement_history)
    return {
        "loan_amount": loan_amount,
        "total_disbursed": disbursed,
        "remaining_amount": loan_amount - disbursed,
        "commission_percentage": percentage,
        "calculated_commission": calculated,
        "total_commission": totals["total_commission"],
        "total_gst": totals["total_gst"],
        "net_commission": totals["net_commission"],
    }


async def get_lead_detail(
    db: AsyncSession,
    ctx: deps.TenantContext,
    principal: deps.Principal,
    lead_id: UUID,
) -> dict:
    scope = await resolve_scope(db, ctx, principal)
    if principal.role == UserRole.ACCOUNTS_MANAGER.value and scope.is_empty:
        raise AccessDenied("Access denied. No regional managers assigned.")

    stmt = scope.filter(
        select(Lead)
        .options(
            selectinload(Lead.agent),
            selectinload(Lead.bank),
            selectinload(Lead.disbursement_history),
            selectinload(Lead.notes),
        )
        .where(*eligible_lead_conditions(ctx), Lead.id == lead_id),
        Lead.agent_id,
    )
    lead = (await db.execute(stmt)).scalar_one_or_none()
    if not lead:
        raise NotFoundError("Lead not found or access denied", details={"lead_id": str(lead_id)})
    return {
        "lead": lead,
        "disbursements": list(lead.disbursement_history),
        "notes": list(lead.notes),
        "financial_summary": financial_summary(lead),
    }


async def update_lead_status(
    db: AsyncSession,
    ctx: deps.TenantContext,
    principal: deps.Principal,
    lead_id: UUID,
    payload: LeadStatusUpdateRequest,
) -> dict:
    lead = await load_lead(db, ctx, lead_id)
    ensure_in_scope(await resolve_scope(db, ctx, principal), lead)
    target = validate_manual_transition(lead.status, payload.status)

    previous = lead.status
    now = datetime.now(timezone.utc)
    lead.status = target
    lead.status_notes = payload.notes
    lead.status_updated_by_user_id = principal.user_id
    lead.status_updated_at = now
    record_audit_log(
        db,
        ctx,
        principal,
        action="lead.status.updated",
        resource_type="lead",
        resource_id=str(lead.id),
        old_value={"status": previous},
        new_value={"status": target, "notes": payload.notes},
    )
    await commit_lead_changes(db, lead)
    logger.info(
        "Lead status updated from %s to %s",
        previous,
        target,
        extra={"lead_id": str(lead.id), "status": target},
    )
    return {
        "lead_id": lead.id,
        "previous_status": previous,
        "new_status": target,
        "status_notes": payload.notes,
        "updated_by_user_id": principal.user_id,
        "updated_at": now,
    }


async def add_lead_note(
    db: AsyncSession,
    ctx: deps.TenantContext,
    principal: deps.Principal,
    lead_id: UUID,
    payload: LeadNoteCreate,
) -> dict:
    content = (payload.content or "").strip()
    if not content:
        raise ValidationError("Note content is required")

    lead = await load_lead(db, ctx, lead_id, with_notes=True)
    ensure_in_scope(await resolve_scope(db, ctx, principal), lead)
    ensure_ledger_eligible(lead.status)

    note = LeadNote(
        id=uuid4(),
        org_id=lead.org_id,
        lead_id=lead.id,
        content=content,
        note_type=(payload.note_type or "general").strip() or "general",
        created_by_user_id=principal.user_id,
        created_at=datetime.now(timezone.utc),
    )
    lead.notes.append(note)
    record_audit_log(
        db,
        ctx,
        principal,
        action="lead.note.added",
        resource_type="lead",
        resource_id=str(lead.id),
        new_value={"note_id": note.id, "note_type": note.note_type},
    )
    await commit_lead_changes(db, lead)
    return {"note": note, "total_notes": len(lead.notes)}
