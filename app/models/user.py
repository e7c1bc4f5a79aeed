import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base
from app.models.types import ManagedBy, ManagedByKind


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("org_id", "email", name="uq_users_org_email"),
        CheckConstraint(
            "role IN ('super_admin', 'regional_manager', 'relationship_manager', "
            "'franchise', 'agent', 'accounts_manager')",
            name="ck_users_role",
        ),
        CheckConstraint(
            "managed_by_type IS NULL OR managed_by_type IN ('FRANCHISE', 'RELATIONSHIP_MANAGER')",
            name="ck_users_managed_by_type",
        ),
        CheckConstraint(
            "(managed_by_type IS NULL) = (managed_by_id IS NULL)",
            name="ck_users_managed_by_pair",
        ),
        Index("ix_users_org_role", "org_id", "role"),
        Index("ix_users_managed_by", "managed_by_type", "managed_by_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(String, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=False)
    mobile = Column(String(50), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(40), nullable=False)
    is_active = Column(Boolean, nullable=False, server_default="true")
    token_version = Column(Integer, nullable=False, server_default="0")
    last_active_at = Column(DateTime(timezone=True), nullable=True)
    # Agents only: the franchise or relationship manager that manages them.
    managed_by_type = Column(String(40), nullable=True)
    managed_by_id = Column(UUID(as_uuid=True), nullable=True)
    # Franchise-role users only.
    franchise_owned_id = Column(
        UUID(as_uuid=True),
        ForeignKey("franchises.id", ondelete="SET NULL", use_alter=True),
        nullable=True,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    @property
    def managed_by(self) -> ManagedBy | None:
        if not self.managed_by_type or not self.managed_by_id:
            return None
        return ManagedBy(ManagedByKind(self.managed_by_type), self.managed_by_id)

    @managed_by.setter
    def managed_by(self, value: ManagedBy | None) -> None:
        if value is None:
            self.managed_by_type = None
            self.managed_by_id = None
            return
        self.managed_by_type = value.kind.value
        self.managed_by_id = value.id
