from enum import Enum


class ErrorKind(str, Enum):
    """Category of a relay failure, reported to clients as ``errorType``."""
    INVALID_INPUT = "InvalidInput"
    NOT_FOUND = "NotFound"
    CONFLICT = "Conflict"
    INVALID_STATE = "InvalidState"
    STORE_FAILURE = "StoreFailure"


class RelayError(Exception):
    """Base class for all failures raised by the relay core."""
    kind: ErrorKind = ErrorKind.INVALID_STATE

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidInputError(RelayError):
    """Raised when a required field is missing or malformed."""
    kind = ErrorKind.INVALID_INPUT


class NotFoundError(RelayError):
    """Raised when a referenced session, message or connection does not exist."""
    kind = ErrorKind.NOT_FOUND


class ConflictError(RelayError):
    """Raised on duplicate creation or when a claim race was lost."""
    kind = ErrorKind.CONFLICT


class InvalidStateError(RelayError):
    """Raised when an operation is not valid for the current session status."""
    kind = ErrorKind.INVALID_STATE


class StoreFailureError(RelayError):
    """Raised when the persistent store call itself failed or timed out."""
    kind = ErrorKind.STORE_FAILURE
