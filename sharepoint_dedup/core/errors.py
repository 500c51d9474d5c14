"""
Error taxonomy shared by the scanner, replacer and verifier.

Every error raised by the core carries an ``ErrorKind`` so that the HTTP
layer can map it to a status code and per-item results can report it.
"""

from enum import Enum
from typing import Optional

import requests


class ErrorKind(str, Enum):
    INVALID_INPUT = "InvalidInput"
    NOT_FOUND = "NotFound"
    UNAUTHORIZED = "Unauthorized"
    TRANSPORT = "Transport"
    REMOTE_API = "RemoteApi"
    IO = "IO"
    CANCELLED = "Cancelled"
    UNEXPECTED = "Unexpected"


class DedupError(Exception):
    """Base class for errors surfaced by the deduplicator."""
    kind = ErrorKind.UNEXPECTED

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(DedupError):
    kind = ErrorKind.INVALID_INPUT


class NotFoundError(DedupError):
    kind = ErrorKind.NOT_FOUND


class UnauthorizedError(DedupError):
    kind = ErrorKind.UNAUTHORIZED


class TransportError(DedupError):
    kind = ErrorKind.TRANSPORT


class RemoteApiError(DedupError):
    """Structured error returned by the Graph API; message is kept verbatim."""
    kind = ErrorKind.REMOTE_API

    def __init__(self, message: str, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.code = code
        self.status_code = status_code


class ScanCancelledError(DedupError):
    kind = ErrorKind.CANCELLED

    def __init__(self, message: str = "Scan was cancelled"):
        super().__init__(message)


# Never caught at scope boundaries.
FATAL_ERRORS = (MemoryError, RecursionError)


def classify_error(exc: BaseException) -> ErrorKind:
    """Map any exception onto an ErrorKind."""
    if isinstance(exc, DedupError):
        return exc.kind
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return ErrorKind.TRANSPORT
    if isinstance(exc, PermissionError):
        return ErrorKind.UNAUTHORIZED
    if isinstance(exc, OSError):
        return ErrorKind.IO
    return ErrorKind.UNEXPECTED


def error_message(exc: BaseException) -> str:
    """Human readable message for an exception, never empty."""
    message = exc.message if isinstance(exc, DedupError) else str(exc)
    return message or type(exc).__name__
