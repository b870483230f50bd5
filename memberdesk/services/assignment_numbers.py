"""
Assignment number allocation.

Canonical numbers are ``YYYY###``: the calendar year followed by a per-year
sequence padded to at least three digits. Older records may carry ``HFP###``;
those are still understood when deriving the next number from the latest one.
"""
import re
import time
from datetime import date
from typing import Awaitable, Callable, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from memberdesk.core.logging_config import get_logger
from memberdesk.crud.assignmentCrud import next_assignment_sequence
from memberdesk.crud.membersCrud import get_latest_assignment_number
from memberdesk.db.guard import call_backend

logger = get_logger("services.assignment_numbers")

LEGACY_PREFIX = "HFP"
FIRST_SEQUENCE = 1

_YEAR_FORMAT = re.compile(r"^(?P<year>\d{4})(?P<seq>\d{3,})$")
_LEGACY_FORMAT = re.compile(rf"^{LEGACY_PREFIX}(?P<seq>\d+)$", re.IGNORECASE)

SequenceSource = Callable[[int], Awaitable[int]]
LatestSource = Callable[[], Awaitable[Optional[str]]]


def format_assignment_number(year: int, sequence: int) -> str:
    return f"{year}{sequence:03d}"


def parse_assignment_number(value: Optional[str]) -> Optional[Tuple[Optional[int], int]]:
    """
    Split an assignment number into ``(year, sequence)``.

    Legacy ``HFP###`` numbers have no year and return ``(None, sequence)``.
    Anything else returns None.
    """
    if not value:
        return None
    value = value.strip()

    match = _YEAR_FORMAT.match(value)
    if match:
        return int(match.group("year")), int(match.group("seq"))

    match = _LEGACY_FORMAT.match(value)
    if match:
        return None, int(match.group("seq"))

    return None


def next_from_latest(latest: Optional[str], year: int) -> str:
    """Derive the next number from the most recent one without the server counter."""
    parsed = parse_assignment_number(latest)
    if parsed is None:
        return format_assignment_number(year, FIRST_SEQUENCE)

    latest_year, sequence = parsed
    if latest_year is not None and latest_year != year:
        # New year, new sequence
        return format_assignment_number(year, FIRST_SEQUENCE)
    return format_assignment_number(year, sequence + 1)


def timestamp_assignment_number(year: int, now_ms: Optional[int] = None) -> str:
    """Last-resort number built from the clock. Unique in practice, not guaranteed."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{year}{str(now_ms)[-6:]}"


class AssignmentNumberAllocator:
    """Hands out assignment numbers, degrading gracefully when the counter is unavailable."""

    def __init__(
        self,
        sequence: SequenceSource,
        latest: LatestSource,
        today: Callable[[], date] = date.today,
    ):
        self._sequence = sequence
        self._latest = latest
        self._today = today

    @classmethod
    def for_session(cls, db: AsyncSession) -> "AssignmentNumberAllocator":
        async def sequence(year: int) -> int:
            return await call_backend(
                next_assignment_sequence(db, year), action="generate assignment number"
            )

        async def latest() -> Optional[str]:
            return await call_backend(
                get_latest_assignment_number(db), action="read latest assignment number"
            )

        return cls(sequence=sequence, latest=latest)

    async def allocate(self) -> str:
        year = self._today().year

        try:
            value = await self._sequence(year)
            number = format_assignment_number(year, value)
            logger.info(f"Generated assignment number {number}")
            return number
        except Exception as e:
            logger.error(f"Error generating assignment number from sequence: {e}")

        try:
            latest = await self._latest()
            number = next_from_latest(latest, year)
            logger.info(f"Derived assignment number {number} from latest {latest!r}")
            return number
        except Exception as e:
            logger.error(f"Fallback assignment number generation failed: {e}")

        number = timestamp_assignment_number(year)
        logger.warning(f"Using timestamp assignment number {number}; uniqueness is not guaranteed")
        return number
