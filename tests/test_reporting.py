from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.dialects import postgresql

from conftest import FakeAsyncSession, FakeResult, make_entry, make_lead, make_principal, sequence_handler
from app.api import deps
from app.core.exceptions import ValidationError
from app.services import accountant_dashboard, commission_report
from app.services.lead_scope import LeadScope

CTX = deps.TenantContext(org_id="default")


def _unrestricted(monkeypatch, module) -> None:
    async def _resolve(*args, **kwargs):
        return LeadScope.everything()

    monkeypatch.setattr(module, "resolve_scope", _resolve)


def _row(commission: str, gst: str) -> dict:
    return {"commission": Decimal(commission), "gst": Decimal(gst)}


def test_commission_totals_do_not_depend_on_page_size():
    rows = [_row("100", "18"), _row("250.50", "45.09"), _row("80", "14.40")]

    first = commission_report.paginate_commission_rows(rows, page=1, limit=1)
    everything = commission_report.paginate_commission_rows(rows, page=1, limit=50)

    assert len(first["items"]) == 1
    assert len(everything["items"]) == 3
    assert first["totals"] == everything["totals"]
    assert first["totals"]["gross_commission"] == Decimal("430.50")
    assert first["totals"]["total_gst"] == Decimal("77.49")
    assert first["totals"]["net_commission"] == Decimal("353.01")
    assert first["totals"]["total_entries"] == 3
    assert first["pagination"].total_pages == 3


def test_commission_page_past_the_end_is_empty_but_totalled():
    rows = [_row("10", "1")]
    result = commission_report.paginate_commission_rows(rows, page=4, limit=10)
    assert result["items"] == []
    assert result["totals"]["net_commission"] == Decimal("9.00")


@pytest.mark.asyncio
async def test_commission_report_rejects_inverted_range():
    db = FakeAsyncSession()
    with pytest.raises(ValidationError):
        await commission_report.build_commission_report(
            db, CTX, make_principal(), start_date=date(2026, 2, 1), end_date=date(2026, 1, 1)
        )
    assert db.executed == []


@pytest.mark.asyncio
async def test_commission_report_maps_joined_rows(monkeypatch):
    _unrestricted(monkeypatch, commission_report)
    lead = make_lead()
    first = make_entry(lead, amount="20000", commission="200", gst="36", disbursed_on=date(2026, 1, 20))
    second = make_entry(lead, amount="10000", commission="100", gst="18", disbursed_on=date(2026, 1, 25))
    db = FakeAsyncSession().on_execute_return(
        FakeResult(
            rows=[
                (second, lead.lead_code, lead.customer_name, "HDFC Bank", "Ravi Agent"),
                (first, lead.lead_code, lead.customer_name, None, "Ravi Agent"),
            ]
        )
    )

    report = await commission_report.build_commission_report(db, CTX, make_principal(), limit=1)

    assert len(report["items"]) == 1
    item = report["items"][0]
    assert item["entry_id"] == second.id
    assert item["bank_name"] == "HDFC Bank"
    assert item["agent_name"] == "Ravi Agent"
    assert item["net_commission"] == Decimal("82.00")
    assert report["totals"]["gross_commission"] == Decimal("300.00")
    assert report["totals"]["net_commission"] == Decimal("246.00")


def test_financial_summary_splits_active_and_completed():
    summary = accountant_dashboard.build_financial_summary(
        Decimal("300000"), Decimal("175000.5"), Decimal("1750"), 4, 1
    )
    assert summary["total_approved"] == Decimal("300000.00")
    assert summary["total_disbursed"] == Decimal("175000.50")
    assert summary["total_remaining"] == Decimal("124999.50")
    assert summary["total_commission"] == Decimal("1750.00")
    assert summary["total_leads"] == 4
    assert summary["completed_leads"] == 1
    assert summary["active_leads"] == 3


@pytest.mark.asyncio
async def test_dashboard_combines_totals_recent_leads_and_stats(monkeypatch):
    _unrestricted(monkeypatch, accountant_dashboard)
    recent = [make_lead(), make_lead()]
    db = FakeAsyncSession().on_execute(
        sequence_handler(
            [
                FakeResult(rows=[(Decimal("200000"), Decimal("50000"), Decimal("500"), 2, 0)]),
                FakeResult(items=recent),
                FakeResult(rows=[(3, Decimal("50000"), Decimal("15000"))]),
            ]
        )
    )

    dashboard = await accountant_dashboard.build_dashboard(db, CTX, make_principal(), as_of=date(2026, 1, 28))

    assert dashboard["financial_summary"]["total_remaining"] == Decimal("150000.00")
    assert dashboard["financial_summary"]["active_leads"] == 2
    assert dashboard["recent_leads"] == recent
    assert dashboard["disbursement_stats"] == {
        "total_disbursements": 3,
        "total_amount": Decimal("50000.00"),
        "this_month": Decimal("15000.00"),
    }
    assert len(db.executed) == 3


@pytest.mark.asyncio
async def test_dashboard_with_no_rows_is_all_zero(monkeypatch):
    _unrestricted(monkeypatch, accountant_dashboard)
    dashboard = await accountant_dashboard.build_dashboard(FakeAsyncSession(), CTX, make_principal())
    assert dashboard["financial_summary"]["total_leads"] == 0
    assert dashboard["financial_summary"]["total_remaining"] == Decimal("0.00")
    assert dashboard["recent_leads"] == []
    assert dashboard["disbursement_stats"]["total_amount"] == Decimal("0.00")


def _sql(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect())).lower()


@pytest.mark.asyncio
async def test_dashboard_for_unassigned_accountant_filters_every_query():
    db = FakeAsyncSession()

    dashboard = await accountant_dashboard.build_dashboard(db, CTX, make_principal())

    assert dashboard["financial_summary"]["total_leads"] == 0
    assert dashboard["recent_leads"] == []
    # First statement is the accountant assignment lookup.
    report_queries = db.executed[1:]
    assert len(report_queries) == 3
    for stmt in report_queries:
        assert "false" in _sql(stmt)


@pytest.mark.asyncio
async def test_commission_report_for_unassigned_accountant_is_empty():
    db = FakeAsyncSession()

    report = await commission_report.build_commission_report(db, CTX, make_principal())

    assert report["items"] == []
    assert report["totals"]["gross_commission"] == Decimal("0.00")
    assert len(db.executed) == 2
    assert "false" in _sql(db.executed[1])


@pytest.mark.asyncio
async def test_commission_report_applies_inclusive_date_bounds(monkeypatch):
    _unrestricted(monkeypatch, commission_report)
    db = FakeAsyncSession()

    await commission_report.build_commission_report(
        db, CTX, make_principal(), start_date=date(2026, 1, 1), end_date=date(2026, 1, 31)
    )

    compiled = db.executed[0].compile(dialect=postgresql.dialect())
    sql = str(compiled).lower()
    assert "lead_disbursements.disbursed_on >=" in sql
    assert "lead_disbursements.disbursed_on <=" in sql
    assert "false" not in sql
    assert date(2026, 1, 1) in compiled.params.values()
    assert date(2026, 1, 31) in compiled.params.values()
