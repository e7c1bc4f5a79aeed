from __future__ import annotations

from datetime import date
from typing import Any, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.exceptions import ValidationError
from app.models.bank import Bank
from app.models.lead import Lead
from app.models.lead_disbursement import LeadDisbursement
from app.models.user import User
from app.schemas.common import build_pagination
from app.services.disbursement_ledger import ZERO, as_money
from app.services.lead_scope import resolve_scope
from app.services.leads import eligible_lead_conditions


def paginate_commission_rows(rows: Sequence[dict[str, Any]], page: int, limit: int) -> dict:
    """Totals cover every filtered row; only ``items`` is sliced to the page."""
    gross = sum((as_money(row["commission"]) for row in rows), ZERO)
    gst = sum((as_money(row["gst"]) for row in rows), ZERO)
    start = (page - 1) * limit
    return {
        "items": list(rows[start:start + limit]),
        "totals": {
            "gross_commission": gross,
            "total_gst": gst,
            "net_commission": gross - gst,
            "total_entries": len(rows),
        },
        "pagination": build_pagination(page, limit, len(rows)),
    }


async def build_commission_report(
    db: AsyncSession,
    ctx: deps.TenantContext,
    principal: deps.Principal,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    bank: str | None = None,
    agent: str | None = None,
    page: int = 1,
    limit: int = 50,
) -> dict:
    if start_date and end_date and start_date > end_date:
        raise ValidationError("start_date must be on or before end_date")

    scope = await resolve_scope(db, ctx, principal)

    conditions = eligible_lead_conditions(ctx)
    if start_date:
        conditions.append(LeadDisbursement.disbursed_on >= start_date)
    if end_date:
        conditions.append(LeadDisbursement.disbursed_on <= end_date)
    if bank:
        conditions.append(Bank.name.ilike(f"%{bank.strip()}%"))
    if agent:
        conditions.append(User.full_name.ilike(f"%{agent.strip()}%"))

    stmt = scope.filter(
        select(
            LeadDisbursement,
            Lead.lead_code,
            Lead.customer_name,
            Bank.name,
            User.full_name,
        )
        .join(Lead, Lead.id == LeadDisbursement.lead_id)
        .join(User, User.id == Lead.agent_id)
        .outerjoin(Bank, Bank.id == Lead.bank_id)
        .where(*conditions)
        .order_by(LeadDisbursement.disbursed_on.desc(), LeadDisbursement.lead_id, LeadDisbursement.sequence),
        Lead.agent_id,
    )
    rows = [
        {
            "lead_id": entry.lead_id,
            "lead_code": lead_code,
            "customer_name": customer_name,
            "bank_name": bank_name,
            "agent_name": agent_name,
            "entry_id": entry.id,
            "disbursed_on": entry.disbursed_on,
            "amount": as_money(entry.amount),
            "commission": as_money(entry.commission),
            "gst": as_money(entry.gst),
            "net_commission": as_money(entry.net_commission),
            "utr": entry.utr,
        }
        for entry, lead_code, customer_name, bank_name, agent_name in (await db.execute(stmt)).all()
    ]
    return paginate_commission_rows(rows, page, limit)
