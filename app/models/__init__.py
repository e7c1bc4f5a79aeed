from app.models.accountant import Accountant
from app.models.audit_log import AuditLog
from app.models.bank import Bank
from app.models.franchise import Franchise
from app.models.lead import Lead
from app.models.lead_disbursement import LeadDisbursement
from app.models.lead_note import LeadNote
from app.models.org import Org
from app.models.relationship_manager import RelationshipManager
from app.models.user import User

__all__ = [
    "Accountant",
    "AuditLog",
    "Bank",
    "Franchise",
    "Lead",
    "LeadDisbursement",
    "LeadNote",
    "Org",
    "RelationshipManager",
    "User",
]
