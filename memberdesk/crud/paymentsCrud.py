import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, List

from sqlalchemy import and_, case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from memberdesk.models.membersModel import Payment

PAYMENT_METHODS = ("cash", "upi")


@dataclass
class PaymentStatsData:
    total_revenue: Decimal
    total_payments: int
    cash_payments: int
    upi_payments: int


async def create_payment(
    db: AsyncSession,
    *,
    member_id: uuid.UUID,
    amount: Decimal,
    payment_method: str,
    payment_date: date,
    notes: Optional[str] = None,
    created_by: Optional[uuid.UUID] = None,
) -> Payment:
    """Record a payment for a member."""
    payment = Payment(
        member_id=member_id,
        amount=amount,
        payment_method=payment_method,
        payment_date=payment_date,
        notes=notes,
        created_by=created_by,
    )

    db.add(payment)
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise

    await db.refresh(payment)
    return payment


async def list_payments(db: AsyncSession, member_id: Optional[uuid.UUID] = None) -> List[Payment]:
    stmt = select(Payment).order_by(Payment.payment_date.desc(), Payment.created_at.desc())
    if member_id is not None:
        stmt = stmt.where(Payment.member_id == member_id)

    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_latest_payment_method(db: AsyncSession, member_id: uuid.UUID) -> Optional[str]:
    result = await db.execute(
        select(Payment.payment_method)
        .where(Payment.member_id == member_id)
        .order_by(Payment.payment_date.desc(), Payment.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_payment_stats(db: AsyncSession, today: date) -> PaymentStatsData:
    """Revenue and payment counts for the calendar month containing `today`."""
    month_start = today.replace(day=1)
    if month_start.month == 12:
        next_month = month_start.replace(year=month_start.year + 1, month=1)
    else:
        next_month = month_start.replace(month=month_start.month + 1)

    result = await db.execute(
        select(
            func.coalesce(func.sum(Payment.amount), 0).label("total_revenue"),
            func.count(Payment.id).label("total_payments"),
            func.coalesce(func.sum(case((Payment.payment_method == "cash", 1), else_=0)), 0).label("cash"),
            func.coalesce(func.sum(case((Payment.payment_method == "upi", 1), else_=0)), 0).label("upi"),
        ).where(
            and_(
                Payment.payment_date >= month_start,
                Payment.payment_date < next_month,
            )
        )
    )
    row = result.one()

    return PaymentStatsData(
        total_revenue=Decimal(str(row.total_revenue)),
        total_payments=int(row.total_payments),
        cash_payments=int(row.cash),
        upi_payments=int(row.upi),
    )
