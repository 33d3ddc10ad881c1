"""Shared exceptions module.

The pipeline distinguishes three failure families:

- ``NotFoundException``: a referenced tenant or invoice is absent. Fatal for the
  current delivery and propagated so the transport redelivers.
- ``InvalidInputError``: malformed input at the producing boundary. Rejected
  immediately and never retried.
- ``TransientIOError``: store, blob or network failure. Propagated; recovery is
  left to transport redelivery.

Duplicate deliveries are not errors; the idempotency ledger resolves them.
"""

from typing import Optional

from pydantic import ValidationError


class MeterlyException(Exception):
    """Base exception for Meterly services."""

    def __init__(self, message: Optional[str] = None):
        """Create a new MeterlyException instance.

        Args:
        ----
            message (str, optional): The error message.

        """
        self.message = message or self.__class__.__name__
        super().__init__(self.message)


class NotFoundException(MeterlyException):
    """Exception raised when an object is not found."""

    def __init__(self, message: Optional[str] = "Object not found"):
        """Create a new NotFoundException instance."""
        super().__init__(message)


class InvalidInputError(MeterlyException):
    """Exception raised when input is malformed and must not enter the pipeline."""

    def __init__(self, message: Optional[str] = "Invalid input"):
        """Create a new InvalidInputError instance."""
        super().__init__(message)


class TransientIOError(MeterlyException):
    """Exception raised when a store, blob or network operation fails.

    Stages never retry these locally; the bus redelivers the message.
    """

    def __init__(self, message: Optional[str] = "Transient I/O failure"):
        """Create a new TransientIOError instance."""
        super().__init__(message)


class StorageError(TransientIOError):
    """Raised when a key-value or blob store operation fails."""

    def __init__(self, backend: str, message: Optional[str] = "Storage operation failed"):
        """Create a new StorageError instance.

        Args:
        ----
            backend (str): The storage backend that failed (e.g. "redis", "s3").
            message (str, optional): The error message.

        """
        self.backend = backend
        super().__init__(f"{backend}: {message}")


class ConditionFailedError(MeterlyException):
    """Raised when a conditional write finds the item in an unexpected state."""

    def __init__(self, table: str, key: str, message: Optional[str] = None):
        """Create a new ConditionFailedError instance."""
        self.table = table
        self.key = key
        super().__init__(message or f"Condition failed for {table}/{key}")


def unpack_validation_error(exc: ValidationError) -> dict:
    """Unpack a Pydantic validation error into a dictionary.

    Args:
    ----
        exc (ValidationError): The Pydantic validation error.

    Returns:
    -------
        dict: The dictionary representation of the validation error.

    """
    error_messages = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        message = error["msg"]
        error_messages.append({field: message})

    return {"errors": error_messages}
