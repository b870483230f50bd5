import asyncio
import logging
from datetime import date
from types import SimpleNamespace

import pytest

from memberdesk.core.errors import TransientBackendError
from memberdesk.crud.assignmentCrud import next_assignment_sequence
from memberdesk.services.assignment_numbers import (
    AssignmentNumberAllocator,
    format_assignment_number,
    next_from_latest,
    parse_assignment_number,
    timestamp_assignment_number,
)


def test_format_pads_to_three_digits():
    assert format_assignment_number(2025, 1) == "2025001"
    assert format_assignment_number(2025, 42) == "2025042"
    assert format_assignment_number(2025, 1234) == "20251234"


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2025007", (2025, 7)),
        ("20251234", (2025, 1234)),
        ("HFP042", (None, 42)),
        ("hfp7", (None, 7)),
        (" 2025010 ", (2025, 10)),
        ("2025", None),
        ("ABC123", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_assignment_number(value, expected):
    assert parse_assignment_number(value) == expected


@pytest.mark.parametrize(
    "latest, expected",
    [
        (None, "2025001"),
        ("garbage", "2025001"),
        ("2025041", "2025042"),
        ("2024099", "2025001"),
        ("HFP041", "2025042"),
    ],
)
def test_next_from_latest(latest, expected):
    assert next_from_latest(latest, 2025) == expected


def test_timestamp_number_uses_last_six_digits():
    assert timestamp_assignment_number(2025, now_ms=1717171717123) == "2025717123"


def _fixed_today():
    return date(2025, 5, 1)


async def test_allocator_prefers_sequence():
    async def sequence(year):
        assert year == 2025
        return 7

    async def latest():
        raise AssertionError("latest should not be read")

    allocator = AssignmentNumberAllocator(sequence, latest, today=_fixed_today)
    assert await allocator.allocate() == "2025007"


async def test_allocator_falls_back_to_latest_number():
    async def sequence(year):
        raise TransientBackendError("Failed to generate assignment number. Please retry.")

    async def latest():
        return "2025041"

    allocator = AssignmentNumberAllocator(sequence, latest, today=_fixed_today)
    assert await allocator.allocate() == "2025042"


async def test_allocator_falls_back_to_timestamp():
    async def sequence(year):
        raise TransientBackendError("down")

    async def latest():
        raise TransientBackendError("down")

    allocator = AssignmentNumberAllocator(sequence, latest, today=_fixed_today)
    number = await allocator.allocate()
    assert number.startswith("2025")
    assert len(number) == 10
    assert number[4:].isdigit()


class LockedCounter:
    """Server-side counter stand-in: read-modify-write under a lock."""

    def __init__(self):
        self.values = {}
        self.lock = asyncio.Lock()

    async def next(self, year):
        async with self.lock:
            current = self.values.get(year, 0)
            await asyncio.sleep(0)
            self.values[year] = current + 1
            return self.values[year]


async def test_concurrent_allocations_are_distinct():
    counter = LockedCounter()

    async def latest():
        return None

    allocator = AssignmentNumberAllocator(counter.next, latest, today=_fixed_today)
    numbers = await asyncio.gather(*(allocator.allocate() for _ in range(50)))

    assert len(set(numbers)) == 50
    assert sorted(numbers) == [format_assignment_number(2025, n) for n in range(1, 51)]


async def test_sequence_upsert_counts_per_year(db):
    assert await next_assignment_sequence(db, 2025) == 1
    assert await next_assignment_sequence(db, 2025) == 2
    assert await next_assignment_sequence(db, 2025) == 3
    assert await next_assignment_sequence(db, 2026) == 1


async def test_allocator_for_session(db):
    allocator = AssignmentNumberAllocator.for_session(db)
    year = date.today().year

    assert await allocator.allocate() == f"{year}001"
    assert await allocator.allocate() == f"{year}002"


class _UnsupportedSession:
    def get_bind(self):
        return SimpleNamespace(dialect=SimpleNamespace(name="mssql"))


async def test_unsupported_dialect_warns_once(caplog):
    caplog.set_level(logging.WARNING, logger="memberdesk.crud.assignment")
    session = _UnsupportedSession()

    for _ in range(2):
        with pytest.raises(TransientBackendError, match="not supported on mssql"):
            await next_assignment_sequence(session, 2025)

    warnings = [r for r in caplog.records if r.name == "memberdesk.crud.assignment"]
    assert len(warnings) == 1
    assert "mssql" in warnings[0].getMessage()
