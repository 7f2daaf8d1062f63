"""Error taxonomy raised by the engine.

A raised error means the operation did not happen: every check runs before
the first write.
"""

from __future__ import annotations


class PortalError(Exception):
    """Base class for every refused engine operation."""


class ValidationError(PortalError):
    """A required field is missing or invalid."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class DateUnavailableError(ValidationError):
    """The date does not accept new client requests."""

    def __init__(self, date: str) -> None:
        super().__init__(
            f"{date} is not available for requests. Please select another date.",
            field="date",
        )
        self.date = date


class NotFoundError(PortalError):
    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class StateConflictError(PortalError):
    """Transition not allowed from the current state."""


class PermissionDeniedError(PortalError):
    """Actor is not allowed to perform the operation."""
