from sqlalchemy import Column, DateTime, String, func

from app.db.base import Base


class Org(Base):
    """Tenant. Every other table is partitioned logically by ``org_id``."""

    __tablename__ = "orgs"

    id = Column(String, primary_key=True)
    name = Column(String(255), nullable=False)
    status = Column(String(50), nullable=False, default="ACTIVE")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
