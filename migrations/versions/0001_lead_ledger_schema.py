"""Create tenant, hierarchy, lead ledger and audit tables"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_lead_ledger_schema"
down_revision = None
branch_labels = None
depends_on = None


def _uuid(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), **kwargs)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            server_onupdate=sa.func.now(),
        ),
    ]


def _org_fk() -> sa.Column:
    return sa.Column("org_id", sa.String(), sa.ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)


def upgrade() -> None:
    op.create_table(
        "orgs",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="ACTIVE"),
        *_timestamps(),
    )

    op.create_table(
        "users",
        _uuid("id", primary_key=True),
        _org_fk(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("mobile", sa.String(length=50), nullable=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=40), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("token_version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_active_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("managed_by_type", sa.String(length=40), nullable=True),
        _uuid("managed_by_id", nullable=True),
        _uuid("franchise_owned_id", nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("org_id", "email", name="uq_users_org_email"),
        sa.CheckConstraint(
            "role IN ('super_admin', 'regional_manager', 'relationship_manager', "
            "'franchise', 'agent', 'accounts_manager')",
            name="ck_users_role",
        ),
        sa.CheckConstraint(
            "managed_by_type IS NULL OR managed_by_type IN ('FRANCHISE', 'RELATIONSHIP_MANAGER')",
            name="ck_users_managed_by_type",
        ),
        sa.CheckConstraint(
            "(managed_by_type IS NULL) = (managed_by_id IS NULL)",
            name="ck_users_managed_by_pair",
        ),
    )
    op.create_index("ix_users_org_id", "users", ["org_id"])
    op.create_index("ix_users_org_role", "users", ["org_id", "role"])
    op.create_index("ix_users_managed_by", "users", ["managed_by_type", "managed_by_id"])
    op.create_index("ix_users_franchise_owned_id", "users", ["franchise_owned_id"])

    op.create_table(
        "franchises",
        _uuid("id", primary_key=True),
        _org_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        _uuid("regional_manager_id", sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="active"),
        *_timestamps(),
    )
    op.create_index("ix_franchises_org_id", "franchises", ["org_id"])
    op.create_index("ix_franchises_org_regional_manager", "franchises", ["org_id", "regional_manager_id"])
    op.create_foreign_key(
        "fk_users_franchise_owned_id_franchises",
        "users",
        "franchises",
        ["franchise_owned_id"],
        ["id"],
        ondelete="SET NULL",
    )

    op.create_table(
        "relationship_managers",
        _uuid("id", primary_key=True),
        _org_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        _uuid("regional_manager_id", sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        _uuid("owner_user_id", sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="active"),
        *_timestamps(),
    )
    op.create_index("ix_relationship_managers_org_id", "relationship_managers", ["org_id"])
    op.create_index("ix_relationship_managers_owner_user_id", "relationship_managers", ["owner_user_id"])
    op.create_index(
        "ix_relationship_managers_org_regional_manager",
        "relationship_managers",
        ["org_id", "regional_manager_id"],
    )

    op.create_table(
        "accountants",
        _uuid("id", primary_key=True),
        _org_fk(),
        _uuid("user_id", sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("department", sa.String(length=100), nullable=False, server_default="Finance"),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="active"),
        sa.Column(
            "assigned_regional_manager_ids",
            postgresql.ARRAY(postgresql.UUID(as_uuid=True)),
            nullable=False,
            server_default="{}",
        ),
        *_timestamps(),
        sa.UniqueConstraint("org_id", "user_id", name="uq_accountants_org_user"),
    )
    op.create_index("ix_accountants_org_id", "accountants", ["org_id"])

    op.create_table(
        "banks",
        _uuid("id", primary_key=True),
        _org_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("org_id", "name", name="uq_banks_org_name"),
    )
    op.create_index("ix_banks_org_id", "banks", ["org_id"])

    op.create_table(
        "leads",
        _uuid("id", primary_key=True),
        _org_fk(),
        sa.Column("lead_code", sa.String(length=50), nullable=False),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column("loan_account_no", sa.String(length=100), nullable=True),
        _uuid("bank_id", sa.ForeignKey("banks.id", ondelete="SET NULL"), nullable=True),
        _uuid("agent_id", sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("status", sa.String(length=40), nullable=False, server_default="new"),
        sa.Column("loan_amount", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("disbursed_amount", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("commission_amount", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("commission_percentage", sa.Numeric(6, 3), nullable=True),
        sa.Column("status_notes", sa.Text(), nullable=True),
        _uuid("status_updated_by_user_id", sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("status_updated_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.CheckConstraint("loan_amount >= 0", name="ck_leads_loan_amount_nonneg"),
        sa.CheckConstraint("disbursed_amount >= 0", name="ck_leads_disbursed_nonneg"),
        sa.CheckConstraint("disbursed_amount <= loan_amount", name="ck_leads_disbursed_within_loan"),
        sa.CheckConstraint("commission_amount >= 0", name="ck_leads_commission_nonneg"),
        sa.CheckConstraint("version >= 1", name="ck_leads_version_positive"),
        sa.CheckConstraint(
            "status IN ('new', 'verified', 'approved', 'disbursement_in_progress', 'sanctioned', "
            "'partial_disbursed', 'disbursed', 'completed', 'rejected')",
            name="ck_leads_status",
        ),
    )
    op.create_index("ix_leads_org_id", "leads", ["org_id"])
    op.create_index("ix_leads_org_status", "leads", ["org_id", "status"])
    op.create_index("ix_leads_org_agent", "leads", ["org_id", "agent_id"])
    op.create_index("ix_leads_org_created", "leads", ["org_id", "created_at"])

    op.create_table(
        "lead_disbursements",
        _uuid("id", primary_key=True),
        _org_fk(),
        _uuid("lead_id", sa.ForeignKey("leads.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("disbursed_on", sa.Date(), nullable=False),
        sa.Column("utr", sa.String(length=100), nullable=False),
        sa.Column("bank_ref", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("commission", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("gst", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("net_commission", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=False, server_default=""),
        _uuid("created_by_user_id", sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        _uuid("updated_by_user_id", sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.CheckConstraint("amount > 0", name="ck_lead_disbursements_amount_positive"),
        sa.CheckConstraint("commission >= 0", name="ck_lead_disbursements_commission_nonneg"),
        sa.CheckConstraint("gst >= 0", name="ck_lead_disbursements_gst_nonneg"),
        sa.UniqueConstraint("lead_id", "sequence", name="uq_lead_disbursements_lead_sequence"),
    )
    op.create_index("ix_lead_disbursements_lead_id", "lead_disbursements", ["lead_id"])
    op.create_index("ix_lead_disbursements_org_date", "lead_disbursements", ["org_id", "disbursed_on"])

    op.create_table(
        "lead_notes",
        _uuid("id", primary_key=True),
        _org_fk(),
        _uuid("lead_id", sa.ForeignKey("leads.id", ondelete="CASCADE"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("note_type", sa.String(length=50), nullable=False, server_default="general"),
        _uuid("created_by_user_id", sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_lead_notes_lead_id", "lead_notes", ["lead_id"])

    op.create_table(
        "audit_logs",
        _uuid("id", primary_key=True),
        sa.Column("org_id", sa.String(), nullable=False),
        _uuid("actor_id", nullable=True),
        sa.Column("action", sa.String(length=255), nullable=False),
        sa.Column("resource_type", sa.String(length=255), nullable=False),
        sa.Column("resource_id", sa.String(length=255), nullable=False),
        sa.Column("old_value", sa.JSON(), nullable=True),
        sa.Column("new_value", sa.JSON(), nullable=True),
        sa.Column("changes", sa.JSON(), nullable=True),
        sa.Column("summary", sa.String(length=512), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_audit_logs_org_id", "audit_logs", ["org_id"])
    op.create_index("ix_audit_logs_org_created", "audit_logs", ["org_id", "created_at"])
    op.create_index("ix_audit_logs_org_resource", "audit_logs", ["org_id", "resource_type", "resource_id"])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("lead_notes")
    op.drop_table("lead_disbursements")
    op.drop_table("leads")
    op.drop_table("banks")
    op.drop_table("accountants")
    op.drop_table("relationship_managers")
    op.drop_constraint("fk_users_franchise_owned_id_franchises", "users", type_="foreignkey")
    op.drop_table("franchises")
    op.drop_table("users")
    op.drop_table("orgs")
