import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.base import Base


class LeadDisbursement(Base):
    """One ledger entry of a lead's disbursement history."""

    __tablename__ = "lead_disbursements"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_lead_disbursements_amount_positive"),
        CheckConstraint("commission >= 0", name="ck_lead_disbursements_commission_nonneg"),
        CheckConstraint("gst >= 0", name="ck_lead_disbursements_gst_nonneg"),
        UniqueConstraint("lead_id", "sequence", name="uq_lead_disbursements_lead_sequence"),
        Index("ix_lead_disbursements_org_date", "org_id", "disbursed_on"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(String, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    lead_id = Column(
        UUID(as_uuid=True),
        ForeignKey("leads.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sequence = Column(Integer, nullable=False)
    amount = Column(Numeric(18, 2), nullable=False)
    disbursed_on = Column(Date, nullable=False)
    utr = Column(String(100), nullable=False)
    bank_ref = Column(String(100), nullable=False, default="")
    commission = Column(Numeric(18, 2), nullable=False, default=0)
    gst = Column(Numeric(18, 2), nullable=False, default=0)
    net_commission = Column(Numeric(18, 2), nullable=False, default=0)
    notes = Column(Text, nullable=False, default="")
    created_by_user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    updated_by_user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)

    lead = relationship("Lead", back_populates="disbursement_history")
