"""Error kinds surfaced by member operations."""


class MemberDeskError(Exception):
    """Base error. `kind` is exposed to API clients."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(MemberDeskError):
    """Client input rejected before any backend call."""

    kind = "validation"


class UniqueConstraintError(MemberDeskError):
    """Assignment number already taken."""

    kind = "unique_constraint"


class AuthorizationError(MemberDeskError):
    kind = "authorization"


class TransientBackendError(MemberDeskError):
    """Network, server or timeout failure. Safe to retry."""

    kind = "transient"


class NotFoundError(MemberDeskError):
    kind = "not_found"


class PartialCompletionWarning(UserWarning):
    """The primary record committed but a follow-up step failed."""

    def __init__(self, step: str, message: str):
        super().__init__(message)
        self.step = step
        self.message = message
