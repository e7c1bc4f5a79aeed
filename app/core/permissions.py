from enum import Enum
from typing import Iterable, List


class UserRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    REGIONAL_MANAGER = "regional_manager"
    RELATIONSHIP_MANAGER = "relationship_manager"
    FRANCHISE = "franchise"
    AGENT = "agent"
    ACCOUNTS_MANAGER = "accounts_manager"

    @classmethod
    def list_all(cls) -> List[str]:
        return [role.value for role in cls]


class Capability(str, Enum):
    # Disbursement ledger
    LEDGER_VIEW = "ledger.view"
    LEDGER_MANAGE = "ledger.manage"

    # Lead servicing
    LEAD_STATUS_UPDATE = "lead.status.update"
    LEAD_NOTE_ADD = "lead.note.add"

    # Reporting
    DASHBOARD_VIEW = "dashboard.view"
    REPORT_COMMISSION_VIEW = "report.commission.view"

    # Organisation
    HIERARCHY_VIEW = "hierarchy.view"
    AUDIT_LOG_VIEW = "audit_log.view"
    ACCOUNTANT_MANAGE = "accountant.manage"

    @classmethod
    def list_all(cls) -> List[str]:
        return [code.value for code in cls]

    @classmethod
    def normalize(cls, values: Iterable[str]) -> List[str]:
        """Return unique capability codes that are valid members."""
        seen = set()
        normalized: list[str] = []
        for value in values:
            try:
                code = cls(value)
            except ValueError:
                continue
            if code.value not in seen:
                seen.add(code.value)
                normalized.append(code.value)
        return normalized


ROLE_CAPABILITIES: dict[UserRole, frozenset[str]] = {
    UserRole.SUPER_ADMIN: frozenset(Capability.list_all()),
    UserRole.ACCOUNTS_MANAGER: frozenset(
        Capability.normalize(
            [
                Capability.LEDGER_VIEW,
                Capability.LEDGER_MANAGE,
                Capability.LEAD_STATUS_UPDATE,
                Capability.LEAD_NOTE_ADD,
                Capability.DASHBOARD_VIEW,
                Capability.REPORT_COMMISSION_VIEW,
                Capability.HIERARCHY_VIEW,
            ]
        )
    ),
    UserRole.REGIONAL_MANAGER: frozenset(
        Capability.normalize(
            [
                Capability.LEDGER_VIEW,
                Capability.DASHBOARD_VIEW,
                Capability.REPORT_COMMISSION_VIEW,
                Capability.HIERARCHY_VIEW,
            ]
        )
    ),
    UserRole.RELATIONSHIP_MANAGER: frozenset(),
    UserRole.FRANCHISE: frozenset(),
    UserRole.AGENT: frozenset(),
}
