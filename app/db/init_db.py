import asyncio
import logging

from sqlalchemy import select

from app.core.permissions import UserRole
from app.core.security import get_password_hash
from app.core.settings import settings
from app.db.session import AsyncSessionLocal
from app.models.org import Org
from app.models.user import User

logger = logging.getLogger(__name__)


async def init_db() -> None:
    """Ensure the default org and its bootstrap super admin exist."""
    if not settings.seed_admin_email or not settings.seed_admin_password:
        logger.info("Seed admin credentials not configured; skipping bootstrap")
        return

    async with AsyncSessionLocal() as session:
        org = await session.get(Org, settings.default_org_id)
        if org is None:
            session.add(Org(id=settings.default_org_id, name=settings.default_org_id))
            await session.flush()
            logger.info("Created default org %s", settings.default_org_id)

        stmt = select(User).where(
            User.email == settings.seed_admin_email,
            User.org_id == settings.default_org_id,
        )
        user = (await session.execute(stmt)).scalar_one_or_none()
        if user:
            logger.info("Bootstrap super admin already exists")
            await session.commit()
            return

        session.add(
            User(
                org_id=settings.default_org_id,
                email=settings.seed_admin_email,
                full_name=settings.seed_admin_full_name,
                hashed_password=get_password_hash(settings.seed_admin_password),
                role=UserRole.SUPER_ADMIN.value,
                is_active=True,
                token_version=0,
            )
        )
        await session.commit()
        logger.info("Created bootstrap super admin %s", settings.seed_admin_email)


if __name__ == "__main__":
    asyncio.run(init_db())
