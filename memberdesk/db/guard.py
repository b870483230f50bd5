"""Timeout and error mapping for calls that reach the database."""
import asyncio
from typing import Awaitable, TypeVar

from sqlalchemy.exc import DataError, DBAPIError, IntegrityError, SQLAlchemyError

from memberdesk.core import settings
from memberdesk.core.errors import (
    MemberDeskError,
    TransientBackendError,
    UniqueConstraintError,
    ValidationError,
)
from memberdesk.core.logging_config import get_logger

logger = get_logger("db")

T = TypeVar("T")


def map_integrity_error(exc: IntegrityError) -> MemberDeskError:
    detail = str(exc.orig).lower()
    if "assignment_number" in detail:
        return UniqueConstraintError("Assignment number already exists. Please try again.")
    if "unique" in detail or "duplicate" in detail:
        return UniqueConstraintError("A record with the same value already exists.")
    return ValidationError("The record violates a data constraint.")


async def call_backend(awaitable: Awaitable[T], *, action: str) -> T:
    """Await a backend call under the request timeout and map its failures."""
    try:
        return await asyncio.wait_for(awaitable, timeout=settings.REQUEST_TIMEOUT_SECONDS)
    except MemberDeskError:
        raise
    except asyncio.TimeoutError as exc:
        logger.error("%s timed out after %ss", action, settings.REQUEST_TIMEOUT_SECONDS)
        raise TransientBackendError(f"Failed to {action}: the request timed out. Please retry.") from exc
    except IntegrityError as exc:
        logger.warning("%s rejected by constraint: %s", action, exc.orig)
        raise map_integrity_error(exc) from exc
    except DataError as exc:
        logger.warning("%s rejected by the database: %s", action, exc.orig)
        raise ValidationError("A value is out of range for the database.") from exc
    except (DBAPIError, SQLAlchemyError, OSError) as exc:
        logger.error("%s failed: %s", action, exc)
        raise TransientBackendError(f"Failed to {action}. Please retry.") from exc
