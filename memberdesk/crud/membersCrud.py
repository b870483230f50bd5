import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, List, Dict, Any

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from memberdesk.models.membersModel import Member


@dataclass
class MemberStatsData:
    total: int
    active: int
    new_this_month: int

    @property
    def active_percentage(self) -> int:
        return round(self.active / max(self.total, 1) * 100)


def _search_condition(search: str):
    search_term = f"%{search.strip()}%"
    return or_(
        Member.full_name.ilike(search_term),
        Member.assignment_number.ilike(search_term),
        Member.phone_number.ilike(search_term),
    )


async def list_members(
    db: AsyncSession,
    *,
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    offset: int = 0,
    limit: int = 20,
) -> List[Member]:
    """Newest members first, optionally filtered by free text and active flag."""
    stmt = select(Member)

    conditions = []
    if search and search.strip():
        conditions.append(_search_condition(search))
    if is_active is not None:
        conditions.append(Member.is_active == is_active)
    if conditions:
        stmt = stmt.where(and_(*conditions))

    stmt = (
        stmt.order_by(Member.created_at.desc(), Member.id.desc())
        .offset(offset)
        .limit(limit)
    )

    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_member_by_id(db: AsyncSession, member_id: uuid.UUID) -> Optional[Member]:
    result = await db.execute(select(Member).where(Member.id == member_id))
    return result.scalar_one_or_none()


async def get_latest_assignment_number(db: AsyncSession) -> Optional[str]:
    """Assignment number of the most recently created member."""
    result = await db.execute(
        select(Member.assignment_number)
        .order_by(Member.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def insert_member(db: AsyncSession, values: Dict[str, Any]) -> Member:
    member = Member(**values)
    db.add(member)
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise

    await db.refresh(member)
    return member


async def update_member(
    db: AsyncSession,
    member_id: uuid.UUID,
    values: Dict[str, Any],
) -> Optional[Member]:
    """Apply a partial update. Returns None when the member does not exist."""
    member = await get_member_by_id(db, member_id)
    if member is None:
        return None

    for field, value in values.items():
        setattr(member, field, value)

    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise

    await db.refresh(member)
    return member


async def delete_member(db: AsyncSession, member_id: uuid.UUID) -> Optional[Member]:
    """Delete a member and return the removed row, or None when missing."""
    member = await get_member_by_id(db, member_id)
    if member is None:
        return None

    await db.delete(member)
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise

    return member


async def get_member_stats(db: AsyncSession, today: date) -> MemberStatsData:
    """Totals for the dashboard: all members, active ones and this month's sign-ups."""
    month_start = datetime.combine(today.replace(day=1), time.min, tzinfo=timezone.utc)

    total = (await db.execute(select(func.count()).select_from(Member))).scalar_one()
    active = (
        await db.execute(
            select(func.count())
            .select_from(Member)
            .where(and_(Member.is_active.is_(True), Member.membership_end >= today))
        )
    ).scalar_one()
    new_this_month = (
        await db.execute(
            select(func.count())
            .select_from(Member)
            .where(Member.created_at >= month_start)
        )
    ).scalar_one()

    return MemberStatsData(total=total, active=active, new_this_month=new_this_month)


async def list_expiring_members(
    db: AsyncSession,
    today: date,
    days_ahead: int = 7,
) -> List[Member]:
    """Active members whose membership ends within the next N days"""
    result = await db.execute(
        select(Member)
        .where(
            and_(
                Member.is_active.is_(True),
                Member.membership_end.between(today, today + timedelta(days=days_ahead)),
            )
        )
        .order_by(Member.membership_end.asc())
    )
    return list(result.scalars().all())
