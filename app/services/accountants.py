from __future__ import annotations

import logging
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.permissions import UserRole
from app.core.security import get_password_hash
from app.models.accountant import Accountant
from app.models.user import User
from app.schemas.accountant import AccountantCreate, AccountantUpdate
from app.schemas.common import build_pagination
from app.services.audit import model_snapshot, record_audit_log

logger = logging.getLogger(__name__)


async def _ensure_email_available(
    db: AsyncSession,
    ctx: deps.TenantContext,
    email: str,
    *,
    exclude_user_id: UUID | None = None,
) -> None:
    stmt = select(User.id).where(User.org_id == ctx.org_id, func.lower(User.email) == email.lower())
    if exclude_user_id is not None:
        stmt = stmt.where(User.id != exclude_user_id)
    if (await db.execute(stmt)).scalar_one_or_none() is not None:
        raise ConflictError("A user with this email already exists", details={"email": email})


async def validate_regional_managers(
    db: AsyncSession,
    ctx: deps.TenantContext,
    regional_manager_ids: list[UUID],
) -> list[UUID]:
    """Return the ids de-duplicated in request order; each must be a regional manager of this org."""
    unique_ids = list(dict.fromkeys(regional_manager_ids))
    if not unique_ids:
        return []
    stmt = select(User.id).where(
        User.org_id == ctx.org_id,
        User.role == UserRole.REGIONAL_MANAGER.value,
        User.id.in_(unique_ids),
    )
    found = set((await db.execute(stmt)).scalars().all())
    missing = [str(rm_id) for rm_id in unique_ids if rm_id not in found]
    if missing:
        raise ValidationError(
            "Assigned users must be regional managers in this organization",
            details={"invalid_ids": missing},
        )
    return unique_ids


async def _load_with_user(
    db: AsyncSession,
    ctx: deps.TenantContext,
    accountant_id: UUID,
) -> tuple[Accountant, User]:
    stmt = (
        select(Accountant, User)
        .join(User, User.id == Accountant.user_id)
        .where(Accountant.org_id == ctx.org_id, Accountant.id == accountant_id)
    )
    row = (await db.execute(stmt)).first()
    if not row:
        raise NotFoundError("Accountant not found", details={"accountant_id": str(accountant_id)})
    return row[0], row[1]


async def _commit(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("Accountant conflicts with an existing user") from exc


async def list_accountants(
    db: AsyncSession,
    ctx: deps.TenantContext,
    *,
    status: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> dict:
    conditions = [Accountant.org_id == ctx.org_id]
    if status:
        conditions.append(Accountant.status == status)

    count_stmt = select(func.count()).select_from(Accountant).where(*conditions)
    total = int((await db.execute(count_stmt)).scalar_one() or 0)

    stmt = (
        select(Accountant)
        .where(*conditions)
        .order_by(Accountant.created_at.desc(), Accountant.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    items = (await db.execute(stmt)).scalars().all()
    return {"items": items, "pagination": build_pagination(page, limit, total)}


async def get_accountant(db: AsyncSession, ctx: deps.TenantContext, accountant_id: UUID) -> Accountant:
    stmt = select(Accountant).where(Accountant.org_id == ctx.org_id, Accountant.id == accountant_id)
    accountant = (await db.execute(stmt)).scalar_one_or_none()
    if not accountant:
        raise NotFoundError("Accountant not found", details={"accountant_id": str(accountant_id)})
    return accountant


async def create_accountant(
    db: AsyncSession,
    ctx: deps.TenantContext,
    principal: deps.Principal,
    payload: AccountantCreate,
) -> Accountant:
    email = str(payload.email).strip().lower()
    await _ensure_email_available(db, ctx, email)
    regional_manager_ids = await validate_regional_managers(db, ctx, payload.assigned_regional_manager_ids)
    try:
        hashed_password = get_password_hash(payload.password)
    except ValueError as exc:
        raise ValidationError(str(exc), details={"field": "password"}) from exc

    user = User(
        id=uuid4(),
        org_id=ctx.org_id,
        email=email,
        full_name=payload.name.strip(),
        mobile=payload.mobile,
        hashed_password=hashed_password,
        role=UserRole.ACCOUNTS_MANAGER.value,
        is_active=True,
        token_version=0,
    )
    accountant = Accountant(
        id=uuid4(),
        org_id=ctx.org_id,
        user_id=user.id,
        name=user.full_name,
        email=email,
        department=payload.department.strip(),
        status="active",
        assigned_regional_manager_ids=regional_manager_ids,
    )
    db.add(user)
    db.add(accountant)
    record_audit_log(
        db,
        ctx,
        principal,
        action="accountant.created",
        resource_type="accountant",
        resource_id=str(accountant.id),
        new_value=model_snapshot(accountant),
    )
    await _commit(db)
    await db.refresh(accountant)
    logger.info(
        "Accountant created",
        extra={"accountant_id": str(accountant.id), "user_id": str(user.id)},
    )
    return accountant


async def update_accountant(
    db: AsyncSession,
    ctx: deps.TenantContext,
    principal: deps.Principal,
    accountant_id: UUID,
    payload: AccountantUpdate,
) -> Accountant:
    accountant, user = await _load_with_user(db, ctx, accountant_id)
    changes = payload.model_dump(exclude_unset=True)
    for name in ("name", "email", "department", "status"):
        if name in changes and changes[name] is None:
            raise ValidationError(f"{name} cannot be cleared", details={"field": name})

    if "email" in changes:
        changes["email"] = str(changes["email"]).strip().lower()
        if changes["email"] != (user.email or "").lower():
            await _ensure_email_available(db, ctx, changes["email"], exclude_user_id=user.id)
    if changes.get("assigned_regional_manager_ids") is not None:
        changes["assigned_regional_manager_ids"] = await validate_regional_managers(
            db, ctx, changes["assigned_regional_manager_ids"]
        )
    elif "assigned_regional_manager_ids" in changes:
        changes["assigned_regional_manager_ids"] = []

    before = model_snapshot(accountant)
    if "name" in changes:
        accountant.name = changes["name"].strip()
        user.full_name = accountant.name
    if "email" in changes:
        accountant.email = changes["email"]
        user.email = changes["email"]
    if "mobile" in changes:
        user.mobile = changes["mobile"]
    if "department" in changes:
        accountant.department = changes["department"].strip()
    if "status" in changes:
        accountant.status = changes["status"]
        user.is_active = changes["status"] == "active"
    if "assigned_regional_manager_ids" in changes:
        accountant.assigned_regional_manager_ids = changes["assigned_regional_manager_ids"]

    record_audit_log(
        db,
        ctx,
        principal,
        action="accountant.updated",
        resource_type="accountant",
        resource_id=str(accountant.id),
        old_value=before,
        new_value=model_snapshot(accountant),
    )
    await _commit(db)
    await db.refresh(accountant)
    logger.info("Accountant updated", extra={"accountant_id": str(accountant.id)})
    return accountant


async def delete_accountant(
    db: AsyncSession,
    ctx: deps.TenantContext,
    principal: deps.Principal,
    accountant_id: UUID,
) -> None:
    """Remove the profile together with its login user."""
    accountant, user = await _load_with_user(db, ctx, accountant_id)
    record_audit_log(
        db,
        ctx,
        principal,
        action="accountant.deleted",
        resource_type="accountant",
        resource_id=str(accountant.id),
        old_value=model_snapshot(accountant),
    )
    await db.delete(accountant)
    await db.delete(user)
    await db.commit()
    logger.info("Accountant deleted", extra={"accountant_id": str(accountant_id), "user_id": str(user.id)})
