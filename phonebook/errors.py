"""Error types raised by the CRUD layer and rendered by the API."""

from typing import Any


class PhonebookError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors


class ValidationError(PhonebookError):
    """Input was well formed but cannot be applied."""

    status_code = 400


class NotFoundError(PhonebookError):
    """The addressed record does not exist."""

    status_code = 404


class TransactionError(PhonebookError):
    """A multi-statement write failed and was rolled back."""

    status_code = 500

    def __init__(self, operation: str):
        super().__init__(f"Could not {operation}")
        self.operation = operation
