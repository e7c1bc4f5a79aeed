"""Pure ledger operations on a Lead and its embedded disbursement history.

Every operation validates first and only then mutates, so a raised error leaves
the lead exactly as it was. Aggregates are always refolded from the entries.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable
from uuid import UUID, uuid4

from app.core.exceptions import LimitExceededError, NotFoundError, ValidationError
from app.models.lead import Lead
from app.models.lead_disbursement import LeadDisbursement
from app.schemas.lead import MONEY_LIMIT, DisbursementCreate, DisbursementPatch
from app.services.lead_status import ensure_ledger_eligible, status_for_amounts

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")
_REQUIRED_ON_EDIT = ("amount", "disbursed_on", "utr")


def as_money(value: Any) -> Decimal:
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    try:
        quantized = value.quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError("Amount is out of range", details={"value": str(value)}) from None
    if abs(quantized) > MONEY_LIMIT:
        raise ValidationError("Amount is out of range", details={"value": str(value)})
    return quantized


@dataclass(frozen=True)
class NewEntry:
    amount: Decimal
    disbursed_on: date
    utr: str
    bank_ref: str
    commission: Decimal
    gst: Decimal
    notes: str


def _check_amount(amount: Decimal) -> None:
    if amount <= 0:
        raise ValidationError("Disbursement amount must be greater than 0", details={"amount": str(amount)})


def _check_non_negative(field_name: str, value: Decimal) -> None:
    if value < 0:
        raise ValidationError(f"{field_name} cannot be negative", details={field_name: str(value)})


def prepare_entry(payload: DisbursementCreate) -> NewEntry:
    """Validate an add request without touching any lead."""
    utr = (payload.utr or "").strip()
    missing = [
        name
        for name, value in (("amount", payload.amount), ("date", payload.disbursed_on), ("utr", utr))
        if value in (None, "")
    ]
    if missing:
        raise ValidationError("Amount, date, and UTR are required", details={"missing": missing})
    amount = as_money(payload.amount)
    _check_amount(amount)
    commission = as_money(payload.commission)
    gst = as_money(payload.gst)
    _check_non_negative("commission", commission)
    _check_non_negative("gst", gst)
    return NewEntry(
        amount=amount,
        disbursed_on=payload.disbursed_on,
        utr=utr,
        bank_ref=payload.bank_ref or "",
        commission=commission,
        gst=gst,
        notes=payload.notes or "",
    )


def total_disbursed(entries: Iterable[LeadDisbursement]) -> Decimal:
    return sum((as_money(entry.amount) for entry in entries), ZERO)


def remaining_amount(lead: Lead) -> Decimal:
    return as_money(lead.loan_amount) - total_disbursed(lead.disbursement_history)


def recompute(lead: Lead) -> None:
    """Refold the lead aggregates from its entries and reapply the status rule."""
    entries = list(lead.disbursement_history)
    disbursed = total_disbursed(entries)
    lead.disbursed_amount = disbursed
    lead.commission_amount = sum((as_money(entry.commission) for entry in entries), ZERO)
    lead.status = status_for_amounts(disbursed, as_money(lead.loan_amount))


def find_entry(lead: Lead, entry_id: UUID) -> LeadDisbursement:
    for entry in lead.disbursement_history:
        if entry.id == entry_id:
            return entry
    raise NotFoundError("Disbursement entry not found", details={"entry_id": str(entry_id)})


def add_entry(lead: Lead, new_entry: NewEntry, *, actor_id: UUID | None) -> LeadDisbursement:
    ensure_ledger_eligible(lead.status)
    remaining = remaining_amount(lead)
    if new_entry.amount > remaining:
        raise LimitExceededError(
            f"Disbursement amount exceeds remaining loan amount. Maximum allowed: {remaining}",
            details={"remaining_amount": str(remaining), "requested": str(new_entry.amount)},
        )
    history = lead.disbursement_history
    entry = LeadDisbursement(
        id=uuid4(),
        org_id=lead.org_id,
        lead_id=lead.id,
        sequence=max((e.sequence for e in history), default=0) + 1,
        amount=new_entry.amount,
        disbursed_on=new_entry.disbursed_on,
        utr=new_entry.utr,
        bank_ref=new_entry.bank_ref,
        commission=new_entry.commission,
        gst=new_entry.gst,
        net_commission=new_entry.commission - new_entry.gst,
        notes=new_entry.notes,
        created_by_user_id=actor_id,
        created_at=datetime.now(timezone.utc),
    )
    history.append(entry)
    recompute(lead)
    return entry


def edit_entry(
    lead: Lead,
    entry_id: UUID,
    patch: DisbursementPatch,
    *,
    actor_id: UUID | None,
) -> LeadDisbursement:
    ensure_ledger_eligible(lead.status)
    entry = find_entry(lead, entry_id)

    changes = patch.model_dump(exclude_unset=True)
    cleared = [name for name in _REQUIRED_ON_EDIT if name in changes and changes[name] in (None, "")]
    if cleared:
        raise ValidationError("Amount, date, and UTR cannot be cleared", details={"fields": cleared})
    for name in ("amount", "commission", "gst"):
        if name in changes:
            changes[name] = as_money(changes[name])
    if "amount" in changes:
        _check_amount(changes["amount"])
    for name in ("commission", "gst"):
        if name in changes:
            _check_non_negative(name, changes[name])
    for name in ("bank_ref", "notes"):
        if name in changes and changes[name] is None:
            changes[name] = ""

    new_amount = changes.get("amount", as_money(entry.amount))
    new_total = total_disbursed(lead.disbursement_history) - as_money(entry.amount) + new_amount
    loan_amount = as_money(lead.loan_amount)
    if new_total > loan_amount:
        maximum = loan_amount - (new_total - new_amount)
        raise LimitExceededError(
            f"Updated total exceeds loan amount. Maximum allowed: {maximum}",
            details={"loan_amount": str(loan_amount), "resulting_total": str(new_total)},
        )

    for name, value in changes.items():
        setattr(entry, name, value)
    entry.net_commission = as_money(entry.commission) - as_money(entry.gst)
    entry.updated_by_user_id = actor_id
    entry.updated_at = datetime.now(timezone.utc)
    recompute(lead)
    return entry


def delete_entry(lead: Lead, entry_id: UUID) -> LeadDisbursement:
    ensure_ledger_eligible(lead.status)
    entry = find_entry(lead, entry_id)
    lead.disbursement_history.remove(entry)
    recompute(lead)
    return entry


def summarize_entries(entries: Iterable[LeadDisbursement]) -> dict[str, Any]:
    """Fold history totals; entries with missing numbers count as zero."""
    items = list(entries)
    total_commission = sum((as_money(e.commission) for e in items), ZERO)
    total_gst = sum((as_money(e.gst) for e in items), ZERO)
    return {
        "total_entries": len(items),
        "total_disbursed": total_disbursed(items),
        "total_commission": total_commission,
        "total_gst": total_gst,
        "net_commission": total_commission - total_gst,
    }


def ledger_summary(lead: Lead) -> dict[str, Any]:
    return {
        "id": lead.id,
        "loan_amount": as_money(lead.loan_amount),
        "disbursed_amount": as_money(lead.disbursed_amount),
        "remaining_amount": as_money(lead.loan_amount) - as_money(lead.disbursed_amount),
        "commission_amount": as_money(lead.commission_amount),
        "status": lead.status,
    }
