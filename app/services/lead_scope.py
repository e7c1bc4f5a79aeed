"""Hierarchical visibility: which agents' leads a principal may read or mutate.

Scope is recomputed on every request and never cached. Resolution fails closed:
a missing profile, an empty assignment list or a database error all yield the
empty scope, never a wider one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable
from uuid import UUID

from sqlalchemy import and_, false, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from app.api import deps
from app.core.permissions import UserRole
from app.models.accountant import Accountant
from app.models.franchise import Franchise
from app.models.relationship_manager import RelationshipManager
from app.models.types import ManagedByKind
from app.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeadScope:
    unrestricted: bool = False
    regional_manager_ids: frozenset[UUID] = field(default_factory=frozenset)
    franchise_ids: frozenset[UUID] = field(default_factory=frozenset)
    relationship_manager_ids: frozenset[UUID] = field(default_factory=frozenset)
    agent_ids: frozenset[UUID] = field(default_factory=frozenset)
    franchise_user_ids: frozenset[UUID] = field(default_factory=frozenset)
    relationship_manager_user_ids: frozenset[UUID] = field(default_factory=frozenset)

    @classmethod
    def everything(cls) -> "LeadScope":
        return cls(unrestricted=True)

    @classmethod
    def empty(cls) -> "LeadScope":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.unrestricted and not self.agent_ids

    def allows_agent(self, agent_id: UUID | None) -> bool:
        return self.unrestricted or (agent_id is not None and agent_id in self.agent_ids)

    def allows_franchise(self, franchise_id: UUID | None) -> bool:
        return self.unrestricted or (franchise_id is not None and franchise_id in self.franchise_ids)

    def allows_relationship_manager(self, relationship_manager_id: UUID | None) -> bool:
        return self.unrestricted or (
            relationship_manager_id is not None
            and relationship_manager_id in self.relationship_manager_ids
        )

    def restrict(self, stmt: Select, column, ids: Iterable[UUID]) -> Select:
        if self.unrestricted:
            return stmt
        values = sorted(ids, key=str)
        if not values:
            return stmt.where(false())
        return stmt.where(column.in_(values))

    def filter(self, stmt: Select, column) -> Select:
        """Limit ``stmt`` to rows whose owning agent ``column`` is inside the scope."""
        return self.restrict(stmt, column, self.agent_ids)


async def resolve_scope(
    db: AsyncSession,
    ctx: deps.TenantContext,
    principal: deps.Principal,
) -> LeadScope:
    resolver = _RESOLVERS.get(principal.role)
    if resolver is None:
        return LeadScope.empty()
    try:
        return await resolver(db, ctx, principal)
    except (SQLAlchemyError, OSError):
        logger.exception(
            "Scope resolution failed; falling back to empty scope",
            extra={"actor_id": str(principal.user_id), "role": principal.role},
        )
        return LeadScope.empty()


async def _super_admin_scope(db, ctx, principal) -> LeadScope:
    return LeadScope.everything()


async def _agent_scope(db, ctx, principal) -> LeadScope:
    return LeadScope(agent_ids=frozenset({principal.user_id}))


async def _regional_manager_scope(db, ctx, principal) -> LeadScope:
    return await _walk_from_regional_managers(db, ctx, frozenset({principal.user_id}))


async def _accountant_scope(db, ctx, principal) -> LeadScope:
    stmt = select(Accountant.assigned_regional_manager_ids).where(
        Accountant.org_id == ctx.org_id,
        Accountant.user_id == principal.user_id,
    )
    assigned = (await db.execute(stmt)).scalar_one_or_none()
    regional_manager_ids = frozenset(assigned or [])
    if not regional_manager_ids:
        logger.info(
            "Accountant has no assigned regional managers",
            extra={"actor_id": str(principal.user_id)},
        )
        return LeadScope.empty()
    return await _walk_from_regional_managers(db, ctx, regional_manager_ids)


async def _franchise_scope(db, ctx, principal) -> LeadScope:
    owned_stmt = select(User.franchise_owned_id).where(
        User.org_id == ctx.org_id,
        User.id == principal.user_id,
    )
    franchise_id = (await db.execute(owned_stmt)).scalar_one_or_none()
    if franchise_id is None:
        return LeadScope.empty()
    agent_ids = await _agents_managed_by(db, ctx, frozenset({franchise_id}), frozenset())
    return LeadScope(
        franchise_ids=frozenset({franchise_id}),
        franchise_user_ids=frozenset({principal.user_id}),
        agent_ids=agent_ids,
    )


async def _relationship_manager_scope(db, ctx, principal) -> LeadScope:
    owned_stmt = select(RelationshipManager.id).where(
        RelationshipManager.org_id == ctx.org_id,
        RelationshipManager.owner_user_id == principal.user_id,
    )
    rm_ids = frozenset((await db.execute(owned_stmt)).scalars().all())
    if not rm_ids:
        return LeadScope.empty()
    agent_ids = await _agents_managed_by(db, ctx, frozenset(), rm_ids)
    return LeadScope(
        relationship_manager_ids=rm_ids,
        relationship_manager_user_ids=frozenset({principal.user_id}),
        agent_ids=agent_ids,
    )


async def _walk_from_regional_managers(
    db: AsyncSession,
    ctx: deps.TenantContext,
    regional_manager_ids: frozenset[UUID],
) -> LeadScope:
    rm_list = sorted(regional_manager_ids, key=str)

    franchise_stmt = select(Franchise.id).where(
        Franchise.org_id == ctx.org_id,
        Franchise.regional_manager_id.in_(rm_list),
    )
    franchise_ids = frozenset((await db.execute(franchise_stmt)).scalars().all())

    relationship_stmt = select(RelationshipManager.id, RelationshipManager.owner_user_id).where(
        RelationshipManager.org_id == ctx.org_id,
        RelationshipManager.regional_manager_id.in_(rm_list),
    )
    relationship_rows = (await db.execute(relationship_stmt)).all()
    relationship_manager_ids = frozenset(row[0] for row in relationship_rows)
    relationship_manager_user_ids = frozenset(row[1] for row in relationship_rows if row[1] is not None)

    agent_ids = await _agents_managed_by(db, ctx, franchise_ids, relationship_manager_ids)

    owner_stmt = select(User.id).where(
        User.org_id == ctx.org_id,
        User.role == UserRole.FRANCHISE.value,
        User.franchise_owned_id.in_(sorted(franchise_ids, key=str)),
    )
    franchise_user_ids = frozenset((await db.execute(owner_stmt)).scalars().all())

    return LeadScope(
        regional_manager_ids=regional_manager_ids,
        franchise_ids=franchise_ids,
        relationship_manager_ids=relationship_manager_ids,
        agent_ids=agent_ids,
        franchise_user_ids=franchise_user_ids,
        relationship_manager_user_ids=relationship_manager_user_ids,
    )


async def _agents_managed_by(
    db: AsyncSession,
    ctx: deps.TenantContext,
    franchise_ids: frozenset[UUID],
    relationship_manager_ids: frozenset[UUID],
) -> frozenset[UUID]:
    stmt = select(User.id).where(
        User.org_id == ctx.org_id,
        User.role == UserRole.AGENT.value,
        or_(
            and_(
                User.managed_by_type == ManagedByKind.FRANCHISE.value,
                User.managed_by_id.in_(sorted(franchise_ids, key=str)),
            ),
            and_(
                User.managed_by_type == ManagedByKind.RELATIONSHIP_MANAGER.value,
                User.managed_by_id.in_(sorted(relationship_manager_ids, key=str)),
            ),
        ),
    )
    return frozenset((await db.execute(stmt)).scalars().all())


_RESOLVERS = {
    UserRole.SUPER_ADMIN.value: _super_admin_scope,
    UserRole.REGIONAL_MANAGER.value: _regional_manager_scope,
    UserRole.ACCOUNTS_MANAGER.value: _accountant_scope,
    UserRole.FRANCHISE.value: _franchise_scope,
    UserRole.RELATIONSHIP_MANAGER.value: _relationship_manager_scope,
    UserRole.AGENT.value: _agent_scope,
}


def describe_scope(principal: deps.Principal, scope: LeadScope) -> dict:
    def _ids(values: frozenset[UUID]) -> list[UUID]:
        return sorted(values, key=str)

    return {
        "user_id": principal.user_id,
        "role": principal.role,
        "unrestricted": scope.unrestricted,
        "regional_manager_ids": _ids(scope.regional_manager_ids),
        "franchise_ids": _ids(scope.franchise_ids),
        "relationship_manager_ids": _ids(scope.relationship_manager_ids),
        "agent_ids": _ids(scope.agent_ids),
        "franchise_user_ids": _ids(scope.franchise_user_ids),
        "relationship_manager_user_ids": _ids(scope.relationship_manager_user_ids),
    }
