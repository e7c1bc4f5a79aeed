from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from app.schemas.common import Pagination

# Upper bound of a Numeric(18, 2) money column.
MONEY_LIMIT = Decimal("9999999999999999.99")


class LeadStatus(str, Enum):
    NEW = "new"
    VERIFIED = "verified"
    APPROVED = "approved"
    DISBURSEMENT_IN_PROGRESS = "disbursement_in_progress"
    SANCTIONED = "sanctioned"
    PARTIAL_DISBURSED = "partial_disbursed"
    DISBURSED = "disbursed"
    COMPLETED = "completed"
    REJECTED = "rejected"


class DisbursementCreate(BaseModel):
    """Body of an add-entry request. Required fields are checked by the ledger so the
    caller gets one consistent error for any missing amount, date or UTR."""

    model_config = ConfigDict(populate_by_name=True)

    amount: Decimal | None = Field(default=None, le=MONEY_LIMIT)
    disbursed_on: date | None = Field(
        default=None, validation_alias=AliasChoices("disbursed_on", "date")
    )
    utr: str | None = None
    bank_ref: str | None = None
    commission: Decimal | None = Field(default=None, le=MONEY_LIMIT)
    gst: Decimal | None = Field(default=None, le=MONEY_LIMIT)
    notes: str | None = None


class DisbursementPatch(BaseModel):
    """Sparse edit; only fields present in the request body are merged."""

    model_config = ConfigDict(populate_by_name=True)

    amount: Decimal | None = Field(default=None, le=MONEY_LIMIT)
    disbursed_on: date | None = Field(
        default=None, validation_alias=AliasChoices("disbursed_on", "date")
    )
    utr: str | None = None
    bank_ref: str | None = None
    commission: Decimal | None = Field(default=None, le=MONEY_LIMIT)
    gst: Decimal | None = Field(default=None, le=MONEY_LIMIT)
    notes: str | None = None


class DisbursementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sequence: int
    amount: Decimal
    disbursed_on: date
    utr: str
    bank_ref: str = ""
    commission: Decimal = Decimal("0")
    gst: Decimal = Decimal("0")
    net_commission: Decimal = Decimal("0")
    notes: str = ""
    created_by_user_id: UUID | None = None
    updated_by_user_id: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class LeadLedgerSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    loan_amount: Decimal
    disbursed_amount: Decimal
    remaining_amount: Decimal
    commission_amount: Decimal
    status: str


class DisbursementMutationResponse(BaseModel):
    lead: LeadLedgerSummary
    disbursement: DisbursementOut | None = None


class DisbursementHistoryResponse(BaseModel):
    lead_id: UUID
    lead_code: str
    customer_name: str
    status: str
    loan_amount: Decimal
    remaining_amount: Decimal
    entries: list[DisbursementOut]
    total_entries: int
    total_disbursed: Decimal
    total_commission: Decimal
    total_gst: Decimal
    net_commission: Decimal


class LeadStatusUpdateRequest(BaseModel):
    status: str = Field(min_length=1)
    notes: str | None = None


class LeadStatusUpdateResponse(BaseModel):
    lead_id: UUID
    previous_status: str
    new_status: str
    status_notes: str | None = None
    updated_by_user_id: UUID
    updated_at: datetime


class LeadNoteCreate(BaseModel):
    content: str | None = None
    note_type: str = "general"


class LeadNoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    content: str
    note_type: str
    created_by_user_id: UUID | None = None
    created_at: datetime | None = None


class LeadNoteResponse(BaseModel):
    note: LeadNoteOut
    total_notes: int


class LeadListItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    lead_code: str
    customer_name: str
    loan_account_no: str | None = None
    bank_name: str | None = None
    agent_id: UUID
    agent_name: str | None = None
    status: str
    loan_amount: Decimal
    disbursed_amount: Decimal
    remaining_amount: Decimal
    commission_amount: Decimal
    created_at: datetime | None = None


class LeadListResponse(BaseModel):
    items: list[LeadListItem]
    pagination: Pagination


class LeadFinancialSummary(BaseModel):
    loan_amount: Decimal
    total_disbursed: Decimal
    remaining_amount: Decimal
    commission_percentage: Decimal | None = None
    calculated_commission: Decimal
    total_commission: Decimal
    total_gst: Decimal
    net_commission: Decimal


class LeadDetail(LeadListItem):
    commission_percentage: Decimal | None = None
    status_notes: str | None = None
    status_updated_by_user_id: UUID | None = None
    status_updated_at: datetime | None = None


class LeadDetailResponse(BaseModel):
    lead: LeadDetail
    disbursements: list[DisbursementOut]
    notes: list[LeadNoteOut]
    financial_summary: LeadFinancialSummary
