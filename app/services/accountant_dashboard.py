from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.api import deps
from app.core.settings import settings
from app.models.lead import Lead
from app.models.lead_disbursement import LeadDisbursement
from app.services.disbursement_ledger import as_money
from app.services.lead_scope import resolve_scope
from app.services.leads import eligible_lead_conditions


def build_financial_summary(
    total_approved,
    total_disbursed,
    total_commission,
    total_leads,
    completed_leads,
) -> dict:
    approved = as_money(total_approved)
    disbursed = as_money(total_disbursed)
    total = int(total_leads or 0)
    completed = int(completed_leads or 0)
    return {
        "total_approved": approved,
        "total_disbursed": disbursed,
        "total_remaining": approved - disbursed,
        "total_commission": as_money(total_commission),
        "completed_leads": completed,
        "active_leads": total - completed,
        "total_leads": total,
    }


async def build_dashboard(
    db: AsyncSession,
    ctx: deps.TenantContext,
    principal: deps.Principal,
    as_of: date | None = None,
) -> dict:
    today = as_of or date.today()
    month_start = today.replace(day=1)
    scope = await resolve_scope(db, ctx, principal)
    conditions = eligible_lead_conditions(ctx)

    totals_stmt = scope.filter(
        select(
            func.coalesce(func.sum(Lead.loan_amount), 0),
            func.coalesce(func.sum(Lead.disbursed_amount), 0),
            func.coalesce(func.sum(Lead.commission_amount), 0),
            func.count(Lead.id),
            func.count(Lead.id).filter(Lead.disbursed_amount >= Lead.loan_amount),
        ).where(*conditions),
        Lead.agent_id,
    )
    row = (await db.execute(totals_stmt)).first() or (0, 0, 0, 0, 0)
    summary = build_financial_summary(*row)

    recent_stmt = (
        scope.filter(
            select(Lead)
            .options(selectinload(Lead.agent), selectinload(Lead.bank))
            .where(*conditions),
            Lead.agent_id,
        )
        .order_by(Lead.created_at.desc())
        .limit(settings.dashboard_recent_leads)
    )
    recent_leads = (await db.execute(recent_stmt)).scalars().all()

    stats_stmt = scope.filter(
        select(
            func.count(LeadDisbursement.id),
            func.coalesce(func.sum(LeadDisbursement.amount), 0),
            func.coalesce(
                func.sum(
                    case(
                        (LeadDisbursement.disbursed_on >= month_start, LeadDisbursement.amount),
                        else_=0,
                    )
                ),
                0,
            ),
        )
        .join(Lead, Lead.id == LeadDisbursement.lead_id)
        .where(*conditions),
        Lead.agent_id,
    )
    count, amount, this_month = (await db.execute(stats_stmt)).first() or (0, 0, 0)

    return {
        "financial_summary": summary,
        "recent_leads": recent_leads,
        "disbursement_stats": {
            "total_disbursements": int(count or 0),
            "total_amount": as_money(amount),
            "this_month": as_money(this_month),
        },
    }
