import itertools
import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import memberdesk.models  # noqa: F401
from memberdesk.crud.adminsCrud import create_admin
from memberdesk.crud.membersCrud import insert_member
from memberdesk.db.postgresql import Base


class FakeIdentity:
    def __init__(self, user_id: Optional[uuid.UUID]):
        self.user_id = user_id

    def current_user_id(self) -> Optional[uuid.UUID]:
        return self.user_id


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
async def admin(db):
    return await create_admin(
        db,
        email="Owner@Example.com",
        name="Gym Owner",
        password="owner-pass-123",
        role="owner",
    )


@pytest.fixture
def identity(admin):
    return FakeIdentity(admin.id)


@pytest.fixture
def add_member(db, admin):
    """Insert members directly; each one is a minute newer than the last."""
    counter = itertools.count(1)
    base = datetime(2025, 1, 1, tzinfo=timezone.utc)
    admin_id = admin.id

    async def _add(**overrides):
        n = next(counter)
        values = {
            "assignment_number": f"HFP{n:03d}",
            "full_name": f"Member {n}",
            "phone_number": f"98765432{n:02d}",
            "joining_date": date(2025, 1, 1),
            "membership_start": date(2025, 1, 1),
            "membership_end": date(2025, 2, 1),
            "total_amount": Decimal("700"),
            "discount_amount": Decimal("0"),
            "created_at": base + timedelta(minutes=n),
            "created_by": admin_id,
        }
        values.update(overrides)
        return await insert_member(db, values)

    return _add
