from __future__ import annotations

from decimal import Decimal

from app.core.exceptions import InvalidStateError, ValidationError
from app.schemas.lead import LeadStatus

# Statuses an accountant may see and record disbursements against.
LEDGER_ELIGIBLE_STATUSES: frozenset[str] = frozenset(
    {
        LeadStatus.SANCTIONED.value,
        LeadStatus.PARTIAL_DISBURSED.value,
        LeadStatus.DISBURSED.value,
        LeadStatus.COMPLETED.value,
    }
)

# Statuses a lead may be moved out of by a manual status update. Unlike the
# older accountant screens, this set also admits `disbursed` so it covers every
# ledger-eligible status.
STATUS_UPDATE_SOURCE_STATUSES: frozenset[str] = frozenset(
    {
        LeadStatus.APPROVED.value,
        LeadStatus.DISBURSEMENT_IN_PROGRESS.value,
        LeadStatus.SANCTIONED.value,
        LeadStatus.PARTIAL_DISBURSED.value,
        LeadStatus.DISBURSED.value,
        LeadStatus.COMPLETED.value,
    }
)


def is_ledger_eligible(status: str | None) -> bool:
    return status in LEDGER_ELIGIBLE_STATUSES


def status_for_amounts(disbursed: Decimal, loan_amount: Decimal) -> str:
    """Derive a ledger lead's status from how much of the loan has been paid out."""
    if disbursed <= 0:
        return LeadStatus.SANCTIONED.value
    if disbursed < loan_amount:
        return LeadStatus.PARTIAL_DISBURSED.value
    return LeadStatus.COMPLETED.value


def ensure_ledger_eligible(status: str | None) -> None:
    if not is_ledger_eligible(status):
        raise InvalidStateError(
            f"Lead status '{status}' does not allow disbursement changes",
            details={"status": status, "allowed": sorted(LEDGER_ELIGIBLE_STATUSES)},
        )


def validate_manual_transition(current: str | None, target: str) -> str:
    """Return the normalised target status or raise when the move is not permitted."""
    normalized = (target or "").strip().lower()
    if normalized not in LEDGER_ELIGIBLE_STATUSES:
        raise ValidationError(
            f"Invalid status '{target}'",
            details={"allowed": sorted(LEDGER_ELIGIBLE_STATUSES)},
        )
    if current not in STATUS_UPDATE_SOURCE_STATUSES:
        raise InvalidStateError(
            f"Lead status '{current}' cannot be updated",
            details={"status": current},
        )
    return normalized
