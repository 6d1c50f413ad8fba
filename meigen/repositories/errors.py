from __future__ import annotations

from typing import Optional


class QuoteValidationError(ValueError):
    """Raised when a quote cannot be saved as given (too long, blank author)."""


class StoreError(RuntimeError):
    """Raised when a backend cannot complete an operation.

    ``operation`` names the store call that failed so the boundary can log it
    without parsing the message.
    """

    def __init__(self, message: str, operation: Optional[str] = None) -> None:
        super().__init__(message)
        self.operation = operation


class StoreFileNotFoundError(StoreError):
    """The durable file of a file-backed store does not exist."""


class StoreFileExistsError(StoreError):
    """Refusing to initialise a file-backed store over an existing file."""


class QuoteDeserializationError(StoreError):
    """Persisted data could not be turned back into quotes."""
