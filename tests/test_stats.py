from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from memberdesk.core.errors import UniqueConstraintError
from memberdesk.crud.adminsCrud import create_admin, get_admin_by_email, list_admins
from memberdesk.crud.membersCrud import get_member_stats, list_expiring_members
from memberdesk.crud.paymentsCrud import create_payment, get_latest_payment_method, get_payment_stats
from memberdesk.db.guard import call_backend
from memberdesk.security.hashing import verify_password


async def test_payment_stats_cover_current_month(db, add_member):
    today = date.today()
    member = await add_member()
    member_id = member.id

    await create_payment(db, member_id=member_id, amount=Decimal("700"), payment_method="cash", payment_date=today)
    await create_payment(db, member_id=member_id, amount=Decimal("1500"), payment_method="upi", payment_date=today)
    await create_payment(
        db,
        member_id=member_id,
        amount=Decimal("999"),
        payment_method="cash",
        payment_date=today.replace(day=1) - timedelta(days=1),
    )

    stats = await get_payment_stats(db, today)

    assert stats.total_revenue == Decimal("2200")
    assert stats.total_payments == 2
    assert stats.cash_payments == 1
    assert stats.upi_payments == 1


async def test_payment_stats_empty_month(db):
    stats = await get_payment_stats(db, date(2025, 12, 15))

    assert stats.total_revenue == Decimal("0")
    assert stats.total_payments == 0


async def test_latest_payment_method(db, add_member):
    member = await add_member()
    member_id = member.id
    assert await get_latest_payment_method(db, member_id) is None

    await create_payment(
        db, member_id=member_id, amount=Decimal("700"), payment_method="cash", payment_date=date(2025, 1, 1)
    )
    await create_payment(
        db, member_id=member_id, amount=Decimal("700"), payment_method="upi", payment_date=date(2025, 2, 1)
    )

    assert await get_latest_payment_method(db, member_id) == "upi"


async def test_member_stats(db, add_member):
    today = date.today()
    now = datetime.now(timezone.utc)

    await add_member(membership_end=today + timedelta(days=30), created_at=now)
    await add_member(membership_end=today, created_at=now)
    await add_member(membership_end=today - timedelta(days=1))
    await add_member(membership_end=today + timedelta(days=30), is_active=False)

    stats = await get_member_stats(db, today)

    assert stats.total == 4
    assert stats.active == 2
    assert stats.new_this_month == 2
    assert stats.active_percentage == 50


async def test_expiring_members(db, add_member):
    today = date.today()
    await add_member(full_name="Soon", membership_end=today + timedelta(days=3))
    await add_member(full_name="Today", membership_end=today)
    await add_member(full_name="Later", membership_end=today + timedelta(days=10))
    await add_member(full_name="Inactive", membership_end=today + timedelta(days=2), is_active=False)
    await add_member(full_name="Lapsed", membership_end=today - timedelta(days=1))

    members = await list_expiring_members(db, today, days_ahead=7)

    assert [m.full_name for m in members] == ["Today", "Soon"]


async def test_admin_accounts(db, admin):
    manager = await create_admin(db, email=" Desk@Example.com ", name="Front Desk", password="desk-pass-123")

    assert manager.email == "desk@example.com"
    assert manager.role == "manager"
    assert manager.is_owner is False
    assert verify_password("desk-pass-123", manager.password_hash)

    found = await get_admin_by_email(db, "DESK@example.com")
    assert found.id == manager.id
    assert [a.email for a in await list_admins(db)] == ["owner@example.com", "desk@example.com"]

    with pytest.raises(UniqueConstraintError):
        await call_backend(
            create_admin(db, email="desk@example.com", name="Again", password="another-pass"),
            action="add admin",
        )
