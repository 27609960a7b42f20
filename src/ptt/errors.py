"""
Exceptions shared by the Production Timeline Tracker services.

Every service raises subclasses of PTTError so that callers (CLI, web layer)
can map them onto user-facing failures without knowing the service.
"""


class PTTError(Exception):
    """Base exception for tracker operations."""


class NotFoundError(PTTError):
    """A season, snapshot, task entry or template does not exist."""


class ValidationError(PTTError):
    """The request is well-formed but violates a business rule."""


class DuplicateError(ValidationError):
    """A unique name or order code is already taken."""


class OrderingError(ValidationError):
    """Preceding codes do not sort strictly before the owning code."""

    def __init__(self, message: str, invalid_codes: list[str]):
        self.invalid_codes = invalid_codes
        super().__init__(message)


class MissingPrecedingError(ValidationError):
    """Preceding codes reference templates that do not exist."""

    def __init__(self, message: str, missing_codes: list[str]):
        self.missing_codes = missing_codes
        super().__init__(message)


class CycleError(ValidationError):
    """The template graph would contain a circular dependency."""

    def __init__(self, message: str, cycle: list[str] | None = None):
        self.cycle = cycle
        super().__init__(message)


class InUseError(ValidationError):
    """The record is still referenced and cannot be deleted."""


class ForbiddenError(PTTError):
    """The actor is not allowed to perform this change."""


class ConcurrentUpdateError(PTTError):
    """The snapshot was modified by another transaction since it was loaded."""
