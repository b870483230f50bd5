"""
Member, payment and assignment sequence models for memberdesk
"""
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, List

from sqlalchemy import (
    Boolean, CheckConstraint, Date, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import TIMESTAMP

from memberdesk.db.postgresql import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Member(Base):
    """One gym membership contract"""

    __tablename__ = "members"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    assignment_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone_number: Mapped[str] = mapped_column(String(32), nullable=False)
    joining_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    membership_start: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    membership_end: Mapped[date] = mapped_column(Date, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    photo_url: Mapped[Optional[str]] = mapped_column(String(500))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("admin_users.id"))

    # Relationships
    payments: Mapped[List["Payment"]] = relationship(
        back_populates="member", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_members_total_amount"),
        CheckConstraint(
            "discount_amount >= 0 AND discount_amount <= total_amount",
            name="ck_members_discount_amount",
        ),
        Index("idx_members_created_at", "created_at"),
        Index("idx_members_active", "is_active", "membership_end"),
    )


class Payment(Base):
    """Payment recorded against a member"""

    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    member_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("members.id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(10), nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=_utcnow)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("admin_users.id"))

    member: Mapped[Member] = relationship(back_populates="payments")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount"),
        CheckConstraint("payment_method IN ('cash','upi')", name="ck_payments_method"),
        Index("idx_payments_member_date", "member_id", "payment_date"),
    )


class AssignmentSequence(Base):
    """Per-year counter behind assignment numbers"""

    __tablename__ = "assignment_sequences"

    year: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
