"""Conversion helpers for common type coercion."""

import uuid
from decimal import Decimal, InvalidOperation
from typing import Optional


def coerce_uuid(value: object) -> Optional[uuid.UUID]:
    """Return a UUID for valid string/UUID inputs, otherwise None."""
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, str):
        try:
            return uuid.UUID(value)
        except ValueError:
            return None
    return None


def coerce_amount(value: object) -> Decimal:
    """Return a Decimal amount; blank or unparsable input counts as zero."""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        try:
            parsed = Decimal(value.strip())
        except InvalidOperation:
            return Decimal("0")
        return parsed if parsed.is_finite() else Decimal("0")
    return Decimal("0")
