from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql

from conftest import FakeAsyncSession, FakeResult, make_entry, make_lead, make_principal, sequence_handler
from app.api import deps
from app.core.exceptions import AccessDenied, InvalidStateError, NotFoundError, ValidationError
from app.core.permissions import UserRole
from app.models.audit_log import AuditLog
from app.schemas.lead import LeadNoteCreate, LeadStatusUpdateRequest
from app.services import disbursement_ledger, leads
from app.services.lead_scope import LeadScope

CTX = deps.TenantContext(org_id="default")


def _scope_with(monkeypatch, scope: LeadScope) -> None:
    async def _resolve(*args, **kwargs):
        return scope

    monkeypatch.setattr(leads, "resolve_scope", _resolve)


@pytest.mark.asyncio
async def test_status_update_records_actor_and_audit(monkeypatch):
    lead = make_lead(status="approved")
    _scope_with(monkeypatch, LeadScope.everything())
    db = FakeAsyncSession().on_execute_return(FakeResult(scalar=lead))
    principal = make_principal()

    result = await leads.update_lead_status(
        db, CTX, principal, lead.id, LeadStatusUpdateRequest(status=" Sanctioned ", notes="Bank confirmed")
    )

    assert result["previous_status"] == "approved"
    assert result["new_status"] == "sanctioned"
    assert lead.status == "sanctioned"
    assert lead.status_notes == "Bank confirmed"
    assert lead.status_updated_by_user_id == principal.user_id
    assert lead.status_updated_at == result["updated_at"]
    audit = next(obj for obj in db.added if isinstance(obj, AuditLog))
    assert audit.action == "lead.status.updated"
    assert audit.changes["status"] == {"from": "approved", "to": "sanctioned"}
    assert db.committed


@pytest.mark.asyncio
async def test_status_update_rejects_unknown_target(monkeypatch):
    lead = make_lead(status="approved")
    _scope_with(monkeypatch, LeadScope.everything())
    db = FakeAsyncSession().on_execute_return(FakeResult(scalar=lead))
    with pytest.raises(ValidationError):
        await leads.update_lead_status(db, CTX, make_principal(), lead.id, LeadStatusUpdateRequest(status="rejected"))
    assert lead.status == "approved"
    assert not db.committed


@pytest.mark.asyncio
async def test_status_update_rejects_early_pipeline_source(monkeypatch):
    lead = make_lead(status="new")
    _scope_with(monkeypatch, LeadScope.everything())
    db = FakeAsyncSession().on_execute_return(FakeResult(scalar=lead))
    with pytest.raises(InvalidStateError):
        await leads.update_lead_status(db, CTX, make_principal(), lead.id, LeadStatusUpdateRequest(status="sanctioned"))
    assert lead.status == "new"


@pytest.mark.asyncio
async def test_status_update_outside_scope_is_denied(monkeypatch):
    lead = make_lead(status="approved")
    _scope_with(monkeypatch, LeadScope(agent_ids=frozenset({uuid4()})))
    db = FakeAsyncSession().on_execute_return(FakeResult(scalar=lead))
    with pytest.raises(AccessDenied):
        await leads.update_lead_status(db, CTX, make_principal(), lead.id, LeadStatusUpdateRequest(status="sanctioned"))
    assert lead.status == "approved"
    assert not db.committed


@pytest.mark.asyncio
async def test_status_update_missing_lead(monkeypatch):
    _scope_with(monkeypatch, LeadScope.everything())
    with pytest.raises(NotFoundError):
        await leads.update_lead_status(
            FakeAsyncSession(), CTX, make_principal(), uuid4(), LeadStatusUpdateRequest(status="sanctioned")
        )


@pytest.mark.asyncio
async def test_add_note_appends_and_counts(monkeypatch):
    lead = make_lead(status="partial_disbursed")
    _scope_with(monkeypatch, LeadScope(agent_ids=frozenset({lead.agent_id})))
    db = FakeAsyncSession().on_execute_return(FakeResult(scalar=lead))
    principal = make_principal()

    result = await leads.add_lead_note(
        db, CTX, principal, lead.id, LeadNoteCreate(content="  Called the branch  ", note_type="follow_up")
    )

    assert result["total_notes"] == 1
    assert result["note"].content == "Called the branch"
    assert result["note"].note_type == "follow_up"
    assert result["note"].created_by_user_id == principal.user_id
    assert lead.notes == [result["note"]]
    assert db.committed


@pytest.mark.asyncio
async def test_add_note_requires_content():
    db = FakeAsyncSession()
    with pytest.raises(ValidationError):
        await leads.add_lead_note(db, CTX, make_principal(), uuid4(), LeadNoteCreate(content="   "))
    assert db.executed == []


@pytest.mark.asyncio
async def test_add_note_requires_ledger_status(monkeypatch):
    lead = make_lead(status="verified")
    _scope_with(monkeypatch, LeadScope.everything())
    db = FakeAsyncSession().on_execute_return(FakeResult(scalar=lead))
    with pytest.raises(InvalidStateError):
        await leads.add_lead_note(db, CTX, make_principal(), lead.id, LeadNoteCreate(content="hello"))


@pytest.mark.asyncio
async def test_detail_denied_for_accountant_without_assignments(monkeypatch):
    _scope_with(monkeypatch, LeadScope.empty())
    db = FakeAsyncSession()
    with pytest.raises(AccessDenied):
        await leads.get_lead_detail(db, CTX, make_principal(UserRole.ACCOUNTS_MANAGER.value), uuid4())
    assert db.executed == []


@pytest.mark.asyncio
async def test_detail_outside_scope_is_not_found(monkeypatch):
    _scope_with(monkeypatch, LeadScope(agent_ids=frozenset({uuid4()})))
    with pytest.raises(NotFoundError):
        await leads.get_lead_detail(FakeAsyncSession(), CTX, make_principal(), uuid4())


@pytest.mark.asyncio
async def test_detail_includes_financial_summary(monkeypatch):
    lead = make_lead(loan_amount="100000", commission_percentage=Decimal("1.5"))
    make_entry(lead, amount="40000", commission="400", gst="72")
    disbursement_ledger.recompute(lead)
    _scope_with(monkeypatch, LeadScope.everything())
    db = FakeAsyncSession().on_execute_return(FakeResult(scalar=lead))

    detail = await leads.get_lead_detail(db, CTX, make_principal(UserRole.SUPER_ADMIN.value), lead.id)

    summary = detail["financial_summary"]
    assert summary["loan_amount"] == Decimal("100000.00")
    assert summary["total_disbursed"] == Decimal("40000.00")
    assert summary["remaining_amount"] == Decimal("60000.00")
    assert summary["calculated_commission"] == Decimal("1500.00")
    assert summary["total_commission"] == Decimal("400.00")
    assert summary["net_commission"] == Decimal("328.00")
    assert len(detail["disbursements"]) == 1
    assert detail["notes"] == []


@pytest.mark.asyncio
async def test_list_paginates_with_total_count(monkeypatch):
    leads_page = [make_lead(), make_lead()]
    _scope_with(monkeypatch, LeadScope.everything())
    db = FakeAsyncSession().on_execute(
        sequence_handler([FakeResult(scalar=12), FakeResult(items=leads_page)])
    )

    result = await leads.list_approved_leads(db, CTX, make_principal(), page=2, limit=5)

    assert result["items"] == leads_page
    pagination = result["pagination"]
    assert pagination.total_items == 12
    assert pagination.total_pages == 3
    assert pagination.has_next_page
    assert pagination.has_prev_page
    assert len(db.executed) == 2


@pytest.mark.asyncio
async def test_list_with_empty_scope_filters_everything(monkeypatch):
    _scope_with(monkeypatch, LeadScope.empty())
    db = FakeAsyncSession().on_execute(sequence_handler([FakeResult(scalar=0), FakeResult(items=[])]))

    result = await leads.list_approved_leads(db, CTX, make_principal())

    assert result["items"] == []
    assert result["pagination"].total_items == 0
    assert "false" in str(db.executed[1].compile(dialect=postgresql.dialect())).lower()


@pytest.mark.asyncio
async def test_list_rejects_unknown_sort_field():
    db = FakeAsyncSession()
    with pytest.raises(ValidationError):
        await leads.list_approved_leads(db, CTX, make_principal(), sort_by="password")
    assert db.executed == []


@pytest.mark.asyncio
async def test_list_rejects_inverted_date_range():
    with pytest.raises(ValidationError):
        await leads.list_approved_leads(
            FakeAsyncSession(),
            CTX,
            make_principal(),
            start_date=date(2026, 3, 1),
            end_date=date(2026, 2, 1),
        )
