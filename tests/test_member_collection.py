import asyncio
import uuid
from datetime import date
from decimal import Decimal

import pytest

from memberdesk.core.errors import (
    AuthorizationError,
    NotFoundError,
    UniqueConstraintError,
    ValidationError,
)
from memberdesk.crud.membersCrud import get_member_by_id
from memberdesk.services import member_collection as collection_module
from memberdesk.services.member_collection import MemberCollection, MemberFilters

from tests.conftest import FakeIdentity


class SequenceAllocator:
    def __init__(self, *numbers):
        self.numbers = list(numbers)
        self.calls = 0

    async def allocate(self):
        self.calls += 1
        return self.numbers.pop(0)


def _draft(**overrides):
    values = {
        "full_name": "Asha Rao",
        "phone_number": "9876543210",
        "joining_date": date(2025, 1, 15),
        "membership_start": date(2025, 1, 15),
        "membership_end": date(2025, 4, 15),
        "total_amount": Decimal("1500"),
        "discount_amount": Decimal("0"),
    }
    values.update(overrides)
    return values


async def test_list_pages_newest_first(db, identity, add_member):
    for _ in range(25):
        await add_member()

    collection = MemberCollection(db, identity)
    first = await collection.list(reset=True)
    assert len(first) == 20
    assert collection.has_more is True
    assert first[0].full_name == "Member 25"

    await collection.load_more()
    assert len(collection.members) == 25
    assert collection.has_more is False
    assert collection.members[-1].full_name == "Member 1"

    await collection.load_more()
    assert len(collection.members) == 25


async def test_full_last_page_needs_one_more_empty_fetch(db, identity, add_member):
    for _ in range(4):
        await add_member()

    collection = MemberCollection(db, identity, page_size=2)
    await collection.list(reset=True)
    await collection.load_more()
    assert collection.has_more is True

    await collection.load_more()
    assert len(collection.members) == 4
    assert collection.has_more is False


async def test_filters(db, identity, add_member):
    await add_member(full_name="Asha Rao")
    await add_member(full_name="Ravi Kumar", is_active=False)
    await add_member(full_name="Meera Asha", phone_number="9000000001")

    collection = MemberCollection(db, identity)
    names = [m.full_name for m in await collection.list(MemberFilters(search="asha"), reset=True)]
    assert names == ["Meera Asha", "Asha Rao"]

    by_phone = await collection.list(MemberFilters(search="9000000001"), reset=True)
    assert [m.full_name for m in by_phone] == ["Meera Asha"]

    by_number = await collection.list(MemberFilters(search="HFP002"), reset=True)
    assert [m.full_name for m in by_number] == ["Ravi Kumar"]

    inactive = await collection.list(MemberFilters(is_active=False), reset=True)
    assert [m.full_name for m in inactive] == ["Ravi Kumar"]


async def test_load_more_is_ignored_while_a_fetch_is_in_flight(db, identity, monkeypatch):
    release = asyncio.Event()
    calls = []

    async def slow_list_members(db, *, search=None, is_active=None, offset=0, limit=20):
        calls.append(offset)
        await release.wait()
        return []

    monkeypatch.setattr(collection_module, "list_members", slow_list_members)

    collection = MemberCollection(db, identity)
    pending = asyncio.create_task(collection.load_more())
    while not calls:
        await asyncio.sleep(0)
    assert collection.is_loading is True

    await collection.load_more()
    assert calls == [0]

    release.set()
    await pending
    assert collection.is_loading is False
    assert collection.has_more is False


async def test_list_without_user_returns_cache(db, monkeypatch):
    async def fail(*args, **kwargs):
        raise AssertionError("members should not be fetched")

    monkeypatch.setattr(collection_module, "list_members", fail)

    collection = MemberCollection(db, FakeIdentity(None))
    assert await collection.list(reset=True) == []


async def test_writes_require_user(db):
    collection = MemberCollection(db, FakeIdentity(None))
    with pytest.raises(AuthorizationError, match="User not authenticated"):
        await collection.create(_draft())


async def test_create_prepends_and_allocates(db, identity, add_member):
    await add_member()
    collection = MemberCollection(db, identity)
    await collection.list(reset=True)

    member = await collection.create(_draft())

    assert member.assignment_number == f"{date.today().year}001"
    assert member.created_by == identity.user_id
    assert collection.members[0] is member
    assert len(collection.members) == 2


async def test_create_retries_once_with_a_new_number(db, identity, add_member):
    await add_member(assignment_number="2025001")
    allocator = SequenceAllocator("2025001", "2025002")
    collection = MemberCollection(db, identity, allocator=allocator)

    member = await collection.create(_draft())

    assert member.assignment_number == "2025002"
    assert allocator.calls == 2


async def test_create_gives_up_after_second_conflict(db, identity, add_member):
    await add_member(assignment_number="2025001")
    await add_member(assignment_number="2025002")
    allocator = SequenceAllocator("2025001", "2025002")
    collection = MemberCollection(db, identity, allocator=allocator)

    with pytest.raises(UniqueConstraintError, match="Could not assign a unique assignment number"):
        await collection.create(_draft())
    assert collection.members == []


async def test_supplied_number_is_not_replaced(db, identity, add_member):
    await add_member(assignment_number="2025001")
    allocator = SequenceAllocator("2025050")
    collection = MemberCollection(db, identity, allocator=allocator)

    with pytest.raises(UniqueConstraintError, match="Assignment number already exists"):
        await collection.create(_draft(assignment_number="2025001"))
    assert allocator.calls == 0


async def test_update_replaces_cached_entry_in_place(db, identity, add_member):
    await add_member()
    target = await add_member()
    await add_member()
    target_id = target.id

    collection = MemberCollection(db, identity)
    await collection.list(reset=True)

    updated = await collection.update(target_id, {"full_name": "Renamed Member", "discount_amount": "100"})

    assert updated.full_name == "Renamed Member"
    assert updated.discount_amount == Decimal("100")
    assert [m.id for m in collection.members].index(target_id) == 1
    assert collection.members[1].full_name == "Renamed Member"


async def test_update_rejects_discount_above_total_without_writing(db, identity, add_member):
    member = await add_member(total_amount=Decimal("1500"))
    member_id = member.id
    collection = MemberCollection(db, identity)

    with pytest.raises(ValidationError, match="Discount amount cannot be greater than total amount"):
        await collection.update(member_id, {"discount_amount": Decimal("2000")})

    stored = await get_member_by_id(db, member_id)
    assert stored.discount_amount == Decimal("0")


async def test_update_missing_member(db, identity):
    collection = MemberCollection(db, identity)
    with pytest.raises(NotFoundError):
        await collection.update(uuid.uuid4(), {"full_name": "Nobody"})


async def test_renew_extends_end_date_only(db, identity, add_member):
    member = await add_member(
        membership_start=date(2025, 5, 10),
        membership_end=date(2025, 6, 10),
        total_amount=Decimal("700"),
    )
    collection = MemberCollection(db, identity)

    renewed = await collection.renew(member.id)

    assert renewed.membership_end == date(2025, 7, 10)
    assert renewed.membership_start == date(2025, 5, 10)
    assert renewed.total_amount == Decimal("700")

    with pytest.raises(ValidationError):
        await collection.renew(member.id, 0)


async def test_delete_removes_from_cache(db, identity, add_member):
    first = await add_member()
    second = await add_member()
    first_id, second_id = first.id, second.id

    collection = MemberCollection(db, identity)
    await collection.list(reset=True)

    deleted = await collection.delete(first_id)

    assert deleted.id == first_id
    assert [m.id for m in collection.members] == [second_id]
    assert await get_member_by_id(db, first_id) is None

    with pytest.raises(NotFoundError):
        await collection.delete(first_id)


async def test_closed_collection_keeps_its_cache(db, identity, add_member):
    await add_member()
    collection = MemberCollection(db, identity)
    collection.close()

    rows = await collection.list(reset=True)
    assert len(rows) == 1
    assert collection.members == []

    await collection.create(_draft())
    assert collection.members == []
