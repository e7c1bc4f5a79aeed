import uuid
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.base import Base


class Lead(Base):
    __tablename__ = "leads"
    __table_args__ = (
        CheckConstraint("loan_amount >= 0", name="ck_leads_loan_amount_nonneg"),
        CheckConstraint("disbursed_amount >= 0", name="ck_leads_disbursed_nonneg"),
        CheckConstraint("disbursed_amount <= loan_amount", name="ck_leads_disbursed_within_loan"),
        CheckConstraint("commission_amount >= 0", name="ck_leads_commission_nonneg"),
        CheckConstraint("version >= 1", name="ck_leads_version_positive"),
        CheckConstraint(
            "status IN ('new', 'verified', 'approved', 'disbursement_in_progress', 'sanctioned', "
            "'partial_disbursed', 'disbursed', 'completed', 'rejected')",
            name="ck_leads_status",
        ),
        Index("ix_leads_org_status", "org_id", "status"),
        Index("ix_leads_org_agent", "org_id", "agent_id"),
        Index("ix_leads_org_created", "org_id", "created_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(String, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    lead_code = Column(String(50), nullable=False)
    customer_name = Column(String(255), nullable=False)
    loan_account_no = Column(String(100), nullable=True)
    bank_id = Column(UUID(as_uuid=True), ForeignKey("banks.id", ondelete="SET NULL"), nullable=True)
    agent_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    status = Column(String(40), nullable=False, default="new")
    loan_amount = Column(Numeric(18, 2), nullable=False, default=0)
    disbursed_amount = Column(Numeric(18, 2), nullable=False, default=0)
    commission_amount = Column(Numeric(18, 2), nullable=False, default=0)
    commission_percentage = Column(Numeric(6, 3), nullable=True)
    status_notes = Column(Text, nullable=True)
    status_updated_by_user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    status_updated_at = Column(DateTime(timezone=True), nullable=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    agent = relationship("User", foreign_keys=[agent_id])
    bank = relationship("Bank")
    disbursement_history = relationship(
        "LeadDisbursement",
        back_populates="lead",
        order_by="LeadDisbursement.sequence",
        cascade="all, delete-orphan",
    )
    notes = relationship(
        "LeadNote",
        back_populates="lead",
        order_by="LeadNote.created_at",
        cascade="all, delete-orphan",
    )

    # Concurrent ledger writers on the same lead fail with StaleDataError instead
    # of silently overwriting each other.
    __mapper_args__ = {"version_id_col": version}

    @property
    def remaining_amount(self) -> Decimal:
        return Decimal(self.loan_amount or 0) - Decimal(self.disbursed_amount or 0)

    @property
    def agent_name(self) -> str | None:
        agent = self.__dict__.get("agent")
        return agent.full_name if agent else None

    @property
    def bank_name(self) -> str | None:
        bank = self.__dict__.get("bank")
        return bank.name if bank else None
