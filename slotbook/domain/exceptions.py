"""
Domain-specific exception hierarchy for the slotbook application.
"""


class SlotbookError(Exception):
    """Base class for all application-level errors."""


class ValidationError(SlotbookError, ValueError):
    """Raised when caller input (dates, durations, schedules) is malformed."""


class NotFoundError(SlotbookError):
    """Raised when a referenced record (e.g. a service) does not exist."""


class ConfigurationError(SlotbookError):
    """Raised when a provider has no usable availability settings."""


class SlotUnavailableError(SlotbookError):
    """Raised when a requested booking no longer fits an offered slot."""


class InternalError(SlotbookError):
    """Raised when a collaborator fails unexpectedly while computing slots."""


class ApiError(SlotbookError):
    """Raised when the slots HTTP API cannot be reached or rejects a call."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
