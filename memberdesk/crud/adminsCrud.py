import uuid
from typing import Optional, List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from memberdesk.models.adminModel import AdminUser
from memberdesk.security.hashing import hash_password


async def get_admin_by_email(db: AsyncSession, email: str) -> Optional[AdminUser]:
    res = await db.execute(select(AdminUser).where(AdminUser.email == email.strip().lower()))
    return res.scalar_one_or_none()


async def get_admin_by_id(db: AsyncSession, admin_id: uuid.UUID) -> Optional[AdminUser]:
    res = await db.execute(select(AdminUser).where(AdminUser.id == admin_id))
    return res.scalar_one_or_none()


async def list_admins(db: AsyncSession) -> List[AdminUser]:
    res = await db.execute(select(AdminUser).order_by(AdminUser.created_at.asc()))
    return list(res.scalars().all())


async def create_admin(
    db: AsyncSession,
    *,
    email: str,
    name: str,
    password: str,
    role: str = "manager",
) -> AdminUser:
    admin = AdminUser(
        email=email.strip().lower(),
        name=name.strip(),
        role=role,
        password_hash=hash_password(password),
    )

    db.add(admin)
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise

    await db.refresh(admin)
    return admin
