from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel

from app.schemas.common import Pagination
from app.schemas.lead import LeadListItem


class DashboardFinancialSummary(BaseModel):
    total_approved: Decimal
    total_disbursed: Decimal
    total_remaining: Decimal
    total_commission: Decimal
    completed_leads: int
    active_leads: int
    total_leads: int


class DisbursementStats(BaseModel):
    total_disbursements: int
    total_amount: Decimal
    this_month: Decimal


class AccountantDashboardResponse(BaseModel):
    financial_summary: DashboardFinancialSummary
    recent_leads: list[LeadListItem]
    disbursement_stats: DisbursementStats


class CommissionReportRow(BaseModel):
    lead_id: UUID
    lead_code: str
    customer_name: str
    bank_name: str | None = None
    agent_name: str | None = None
    entry_id: UUID
    disbursed_on: date
    amount: Decimal
    commission: Decimal
    gst: Decimal
    net_commission: Decimal
    utr: str


class CommissionTotals(BaseModel):
    gross_commission: Decimal
    total_gst: Decimal
    net_commission: Decimal
    total_entries: int


class CommissionReportResponse(BaseModel):
    items: list[CommissionReportRow]
    totals: CommissionTotals
    pagination: Pagination
