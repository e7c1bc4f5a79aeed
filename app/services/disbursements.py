from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.schemas.lead import DisbursementCreate, DisbursementPatch
from app.services import disbursement_ledger as ledger
from app.services.audit import model_snapshot, record_audit_log
from app.services.lead_scope import resolve_scope
from app.services.lead_status import ensure_ledger_eligible
from app.services.leads import commit_lead_changes, ensure_in_scope, load_lead

logger = logging.getLogger(__name__)

_ENTRY_AUDIT_EXCLUDE = ("org_id", "created_at", "updated_at")


async def _load_scoped_lead(
    db: AsyncSession,
    ctx: deps.TenantContext,
    principal: deps.Principal,
    lead_id: UUID,
):
    lead = await load_lead(db, ctx, lead_id)
    ensure_in_scope(await resolve_scope(db, ctx, principal), lead)
    return lead


def _log_mutation(message: str, lead, entry_id) -> None:
    logger.info(
        "%s: disbursed=%s of %s",
        message,
        lead.disbursed_amount,
        lead.loan_amount,
        extra={"lead_id": str(lead.id), "entry_id": str(entry_id), "status": lead.status},
    )


async def add_disbursement(
    db: AsyncSession,
    ctx: deps.TenantContext,
    principal: deps.Principal,
    lead_id: UUID,
    payload: DisbursementCreate,
) -> dict:
    new_entry = ledger.prepare_entry(payload)
    lead = await _load_scoped_lead(db, ctx, principal, lead_id)

    before = ledger.ledger_summary(lead)
    entry = ledger.add_entry(lead, new_entry, actor_id=principal.user_id)
    record_audit_log(
        db,
        ctx,
        principal,
        action="lead.disbursement.added",
        resource_type="lead",
        resource_id=str(lead.id),
        old_value={"lead": before},
        new_value={
            "lead": ledger.ledger_summary(lead),
            "entry": model_snapshot(entry, exclude=_ENTRY_AUDIT_EXCLUDE),
        },
    )
    await commit_lead_changes(db, lead)
    _log_mutation("Disbursement added", lead, entry.id)
    return {"lead": ledger.ledger_summary(lead), "disbursement": entry}


async def update_disbursement(
    db: AsyncSession,
    ctx: deps.TenantContext,
    principal: deps.Principal,
    lead_id: UUID,
    entry_id: UUID,
    patch: DisbursementPatch,
) -> dict:
    lead = await _load_scoped_lead(db, ctx, principal, lead_id)

    before_entry = model_snapshot(ledger.find_entry(lead, entry_id), exclude=_ENTRY_AUDIT_EXCLUDE)
    before = ledger.ledger_summary(lead)
    entry = ledger.edit_entry(lead, entry_id, patch, actor_id=principal.user_id)
    record_audit_log(
        db,
        ctx,
        principal,
        action="lead.disbursement.updated",
        resource_type="lead",
        resource_id=str(lead.id),
        old_value={"lead": before, "entry": before_entry},
        new_value={
            "lead": ledger.ledger_summary(lead),
            "entry": model_snapshot(entry, exclude=_ENTRY_AUDIT_EXCLUDE),
        },
    )
    await commit_lead_changes(db, lead)
    _log_mutation("Disbursement updated", lead, entry.id)
    return {"lead": ledger.ledger_summary(lead), "disbursement": entry}


async def delete_disbursement(
    db: AsyncSession,
    ctx: deps.TenantContext,
    principal: deps.Principal,
    lead_id: UUID,
    entry_id: UUID,
) -> dict:
    lead = await _load_scoped_lead(db, ctx, principal, lead_id)

    before = ledger.ledger_summary(lead)
    entry = ledger.delete_entry(lead, entry_id)
    record_audit_log(
        db,
        ctx,
        principal,
        action="lead.disbursement.deleted",
        resource_type="lead",
        resource_id=str(lead.id),
        old_value={
            "lead": before,
            "entry": model_snapshot(entry, exclude=_ENTRY_AUDIT_EXCLUDE),
        },
        new_value={"lead": ledger.ledger_summary(lead)},
    )
    await commit_lead_changes(db, lead)
    _log_mutation("Disbursement deleted", lead, entry.id)
    return {"lead": ledger.ledger_summary(lead), "disbursement": None}


async def get_disbursement_history(
    db: AsyncSession,
    ctx: deps.TenantContext,
    principal: deps.Principal,
    lead_id: UUID,
) -> dict:
    lead = await _load_scoped_lead(db, ctx, principal, lead_id)
    ensure_ledger_eligible(lead.status)
    entries = list(lead.disbursement_history)
    return {
        "lead_id": lead.id,
        "lead_code": lead.lead_code,
        "customer_name": lead.customer_name,
        "status": lead.status,
        "loan_amount": ledger.as_money(lead.loan_amount),
        "remaining_amount": ledger.remaining_amount(lead),
        "entries": entries,
        **ledger.summarize_entries(entries),
    }
